"""Uncompressing authority ids (compressed secp256k1 public keys)."""

from __future__ import annotations

from typing import Iterable, List

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from beefykit.codec import ScaleDecoder
from beefykit.hexutil import AUTHORITY_ID_LENGTH, decode_authority_id, parse_hex


def uncompress_beefy_ids(ids: Iterable[bytes]) -> List[bytes]:
    """Return the 65-byte uncompressed form of each authority id, printing each one."""
    uncompressed_keys = []
    for authority_id in ids:
        raw = bytes(authority_id)
        if len(raw) != AUTHORITY_ID_LENGTH or raw[0] not in (2, 3):
            raise ValueError(f"not a compressed secp256k1 public key: 0x{raw.hex()}")
        try:
            key = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), raw)
        except ValueError as err:
            raise ValueError(f"invalid secp256k1 public key 0x{raw.hex()}: {err}") from err
        uncompressed = key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
        print(f"[0x{raw.hex()}] Uncompressed:\n\t {uncompressed.hex()}")
        uncompressed_keys.append(uncompressed)
    return uncompressed_keys


def beefy_id_from_hex(text: str) -> bytes:
    """Parse a hex string holding one SCALE-encoded authority id."""
    return decode_authority_id(ScaleDecoder(parse_hex(text)))