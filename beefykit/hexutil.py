"""Hex-string parsing and the wire form of 33-byte authority ids."""

from __future__ import annotations

import re
from typing import List

from beefykit.codec import CodecError, ScaleDecoder

# Compressed ECDSA public keys are 33 bytes long.
AUTHORITY_ID_LENGTH = 33

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


def parse_hex(text: str) -> bytes:
    """Parse a hex string, with or without a leading ``0x``, into bytes."""
    digits = text[2:] if text.startswith("0x") else text
    if len(digits) % 2:
        raise ValueError(f"odd number of hex digits in {text!r}")
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"invalid hex string: {text!r}")
    return bytes.fromhex(digits)


def encode_authority_id(authority_id: bytes) -> bytes:
    """Encode an authority id as its raw 33 bytes."""
    raw = bytes(authority_id)
    if len(raw) != AUTHORITY_ID_LENGTH:
        raise CodecError(f"authority id must be {AUTHORITY_ID_LENGTH} bytes, got {len(raw)}")
    return raw


def decode_authority_id(decoder: ScaleDecoder) -> bytes:
    """Read one 33-byte authority id from ``decoder``."""
    return decoder.read(AUTHORITY_ID_LENGTH)


def parse_authorities(text: str) -> List[bytes]:
    """Parse a hex string holding a SCALE-encoded vector of authority ids."""
    return ScaleDecoder(parse_hex(text)).vec(decode_authority_id)