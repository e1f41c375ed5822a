import pytest

from beefykit.codec import CodecError, encode_bytes
from beefykit.mmr import BeefyNextAuthoritySet, MmrLeaf, decode_leaf, storage_key


def _leaf():
    return MmrLeaf(
        parent_number_and_hash=(42, bytes([1]) * 32),
        parachain_heads=bytes([2]) * 32,
        beefy_next_authority_set=BeefyNextAuthoritySet(id=7, len=3, root=bytes([9]) * 32),
    )


def test_leaf_round_trip():
    leaf = _leaf()
    assert MmrLeaf.decode(leaf.encode()) == leaf


def test_leaf_encoded_length_and_layout():
    leaf = _leaf()
    encoded = leaf.encode()
    assert len(encoded) == 4 + 32 + 32 + 8 + 4 + 32
    assert encoded[4:36] == bytes([1]) * 32
    assert encoded[-32:] == bytes([9]) * 32


def test_default_leaf_is_all_zero():
    assert MmrLeaf().encode() == bytes(112)


def test_decode_leaf_double_encoded():
    leaf = _leaf()
    assert decode_leaf(encode_bytes(leaf.encode())) == leaf


def test_decode_leaf_truncated():
    with pytest.raises(CodecError):
        decode_leaf(encode_bytes(_leaf().encode()[:-1]))


def test_encode_rejects_short_hash():
    leaf = MmrLeaf(parachain_heads=b"\x00" * 31)
    with pytest.raises(CodecError):
        leaf.encode()


def test_storage_key_pinned():
    assert storage_key("mmr", 1) == bytes.fromhex("0c6d6d720100000000000000")


def test_storage_key_layout():
    key = storage_key("prefix", 2**40)
    assert key[1:7] == b"prefix"
    assert int.from_bytes(key[7:], "little") == 2**40


def test_leaf_str_mentions_hashes():
    text = str(_leaf())
    assert text.startswith("MmrLeaf { parent_number_and_hash: (42, 0x" + "01" * 32 + ")")
    assert "BeefyNextAuthoritySet { id: 7, len: 3, root: 0x" + "09" * 32 + " }" in text