"""The MMR leaf structure and MMR offchain storage keys."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from beefykit.codec import CodecError, ScaleDecoder, encode_bytes, encode_uint

_HASH_LENGTH = 32
_ZERO_HASH = bytes(_HASH_LENGTH)


def _encode_hash(value: bytes) -> bytes:
    raw = bytes(value)
    if len(raw) != _HASH_LENGTH:
        raise CodecError(f"hash must be {_HASH_LENGTH} bytes, got {len(raw)}")
    return raw


def _hash_repr(value: bytes) -> str:
    return "0x" + bytes(value).hex()


@dataclass
class BeefyNextAuthoritySet:
    """Details of the next authority set."""

    id: int = 0
    len: int = 0
    root: bytes = _ZERO_HASH

    def __str__(self) -> str:
        return (
            f"BeefyNextAuthoritySet {{ id: {self.id}, len: {self.len}, "
            f"root: {_hash_repr(self.root)} }}"
        )


@dataclass
class MmrLeaf:
    """A leaf of the Merkle Mountain Range."""

    parent_number_and_hash: Tuple[int, bytes] = (0, _ZERO_HASH)
    parachain_heads: bytes = _ZERO_HASH
    beefy_next_authority_set: BeefyNextAuthoritySet = field(
        default_factory=BeefyNextAuthoritySet
    )

    def encode(self) -> bytes:
        """Encode the leaf in SCALE form."""
        number, parent_hash = self.parent_number_and_hash
        next_set = self.beefy_next_authority_set
        return (
            encode_uint(number, 4)
            + _encode_hash(parent_hash)
            + _encode_hash(self.parachain_heads)
            + encode_uint(next_set.id, 8)
            + encode_uint(next_set.len, 4)
            + _encode_hash(next_set.root)
        )

    @classmethod
    def decode(cls, data: bytes) -> "MmrLeaf":
        """Decode a leaf from the start of ``data``."""
        decoder = ScaleDecoder(data)
        number = decoder.uint(4)
        parent_hash = decoder.read(_HASH_LENGTH)
        parachain_heads = decoder.read(_HASH_LENGTH)
        next_set = BeefyNextAuthoritySet(
            id=decoder.uint(8),
            len=decoder.uint(4),
            root=decoder.read(_HASH_LENGTH),
        )
        return cls(
            parent_number_and_hash=(number, parent_hash),
            parachain_heads=parachain_heads,
            beefy_next_authority_set=next_set,
        )

    def __str__(self) -> str:
        number, parent_hash = self.parent_number_and_hash
        return (
            f"MmrLeaf {{ parent_number_and_hash: ({number}, {_hash_repr(parent_hash)}), "
            f"parachain_heads: {_hash_repr(self.parachain_heads)}, "
            f"beefy_next_authority_set: {self.beefy_next_authority_set} }}"
        )


def decode_leaf(data: bytes) -> MmrLeaf:
    """Decode a leaf given as a SCALE-encoded byte vector holding the encoded leaf."""
    inner = ScaleDecoder(data).bytes()
    return MmrLeaf.decode(inner)


def storage_key(prefix: str, pos: int) -> bytes:
    """Return the offchain storage key for node ``pos`` under indexing ``prefix``."""
    return encode_bytes(prefix.encode("utf-8")) + encode_uint(pos, 8)