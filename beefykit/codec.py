"""SCALE binary encoding: integers, compact lengths, byte strings, options and vectors."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, TypeVar

T = TypeVar("T")

# The big-integer compact mode stores the byte count minus four in six bits.
_MAX_COMPACT_BYTES = 4 + 0b111111


class CodecError(ValueError):
    """Raised when a value cannot be encoded or input cannot be decoded."""


def encode_uint(value: int, size: int) -> bytes:
    """Encode an unsigned integer as ``size`` little-endian bytes."""
    if value < 0 or value >= 1 << (8 * size):
        raise CodecError(f"{value} does not fit in an unsigned {8 * size}-bit integer")
    return value.to_bytes(size, "little")


def encode_compact(value: int) -> bytes:
    """Encode a non-negative integer in SCALE compact form."""
    if value < 0:
        raise CodecError(f"compact integers cannot be negative: {value}")
    if value < 1 << 6:
        return bytes([value << 2])
    if value < 1 << 14:
        return ((value << 2) | 0b01).to_bytes(2, "little")
    if value < 1 << 30:
        return ((value << 2) | 0b10).to_bytes(4, "little")
    length = max(4, (value.bit_length() + 7) // 8)
    if length > _MAX_COMPACT_BYTES:
        raise CodecError(f"{value} is too large for compact encoding")
    return bytes([((length - 4) << 2) | 0b11]) + value.to_bytes(length, "little")


def encode_bytes(data: bytes) -> bytes:
    """Encode a byte string prefixed with its compact length."""
    raw = bytes(data)
    return encode_compact(len(raw)) + raw


def encode_str(text: str) -> bytes:
    """Encode a string as length-prefixed UTF-8."""
    return encode_bytes(text.encode("utf-8"))


def encode_bool(value: bool) -> bytes:
    """Encode a boolean as a single byte: 0x01 for true, 0x00 for false."""
    return encode_uint(int(bool(value)), 1)


def encode_option(value: Optional[T], encode_item: Callable[[T], bytes]) -> bytes:
    """Encode an optional value: a zero byte for ``None``, else one byte and the item."""
    if value is None:
        return b"\x00"
    return b"\x01" + encode_item(value)


def encode_vec(items: Iterable[T], encode_item: Callable[[T], bytes]) -> bytes:
    """Encode a sequence prefixed with its compact length."""
    elements = list(items)
    return encode_compact(len(elements)) + b"".join(encode_item(item) for item in elements)


class ScaleDecoder:
    """Sequential reader over SCALE-encoded bytes."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def _remaining(self) -> int:
        return len(self._data) - self._pos

    def read(self, length: int) -> bytes:
        """Return the next ``length`` raw bytes."""
        if length < 0:
            raise CodecError(f"cannot read a negative number of bytes: {length}")
        if length > self._remaining:
            raise CodecError(
                f"unexpected end of input: wanted {length} bytes, {self._remaining} left"
            )
        end = self._pos + length
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def uint(self, size: int) -> int:
        """Read an unsigned little-endian integer of ``size`` bytes."""
        return int.from_bytes(self.read(size), "little")

    def compact(self) -> int:
        """Read a compact-encoded integer, rejecting non-canonical forms."""
        first = self.read(1)[0]
        mode = first & 0b11
        if mode == 0:
            return first >> 2
        if mode == 1:
            value = int.from_bytes(bytes([first]) + self.read(1), "little") >> 2
            minimum = 1 << 6
        elif mode == 2:
            value = int.from_bytes(bytes([first]) + self.read(3), "little") >> 2
            minimum = 1 << 14
        else:
            length = (first >> 2) + 4
            value = int.from_bytes(self.read(length), "little")
            minimum = 1 << 30 if length == 4 else 1 << (8 * (length - 1))
        if value < minimum:
            raise CodecError("non-canonical compact encoding")
        return value

    def bytes(self) -> bytes:
        """Read a length-prefixed byte string."""
        return self.read(self.compact())

    def str(self) -> str:
        """Read a length-prefixed UTF-8 string."""
        raw = self.bytes()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise CodecError(f"invalid UTF-8 string: {err}") from err

    def bool(self) -> bool:
        """Read a single-byte boolean."""
        byte = self.read(1)[0]
        if byte > 1:
            raise CodecError(f"invalid boolean byte: {byte:#04x}")
        return byte == 1

    def option(self, decode_item: Callable[[ScaleDecoder], T]) -> Optional[T]:
        """Read an optional value."""
        tag = self.read(1)[0]
        if tag == 0:
            return None
        if tag == 1:
            return decode_item(self)
        raise CodecError(f"invalid option tag: {tag:#04x}")

    def vec(self, decode_item: Callable[[ScaleDecoder], T]) -> List[T]:
        """Read a length-prefixed sequence."""
        count = self.compact()
        return [decode_item(self) for _ in range(count)]

    def finish(self) -> None:
        """Raise if any input is left unread."""
        if self._remaining:
            raise CodecError(f"{self._remaining} trailing bytes left after decoding")


Encoder = Callable[[Any], bytes]