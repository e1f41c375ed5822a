"""Shared protocol types: validator sets, consensus log items and vote messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Union

from beefykit.codec import CodecError, ScaleDecoder, encode_uint, encode_vec
from beefykit.commitment import Commitment

KEY_TYPE = b"beef"
BEEFY_ENGINE_ID = b"BEEF"
GENESIS_AUTHORITY_SET_ID = 0

_AUTHORITIES_CHANGE = 1
_ON_DISABLED = 2
_MMR_ROOT = 3

_HASH_LENGTH = 32


@dataclass
class ValidatorSet:
    """A set of authorities together with its identifier."""

    validators: List[Any] = field(default_factory=list)
    id: int = 0

    @classmethod
    def empty(cls) -> "ValidatorSet":
        """Return an empty validator set with id 0."""
        return cls(validators=[], id=0)

    def encode(self, encode_id: Callable[[Any], bytes]) -> bytes:
        """Encode the validators vector followed by the 64-bit set id."""
        return encode_vec(self.validators, encode_id) + encode_uint(self.id, 8)

    @classmethod
    def decode(cls, decoder: ScaleDecoder, decode_id: Callable[[ScaleDecoder], Any]) -> "ValidatorSet":
        """Read a validator set from ``decoder``."""
        validators = decoder.vec(decode_id)
        set_id = decoder.uint(8)
        return cls(validators=validators, id=set_id)


@dataclass
class AuthoritiesChange:
    """Consensus log item: the authorities have changed."""

    validator_set: ValidatorSet


@dataclass(frozen=True)
class OnDisabled:
    """Consensus log item: disable the authority with the given index."""

    index: int


@dataclass(frozen=True)
class MmrRoot:
    """Consensus log item: a 32-byte MMR root hash."""

    root: bytes

    def __post_init__(self) -> None:
        root = bytes(self.root)
        if len(root) != _HASH_LENGTH:
            raise ValueError(f"MMR root must be {_HASH_LENGTH} bytes, got {len(root)}")
        object.__setattr__(self, "root", root)


ConsensusLog = Union[AuthoritiesChange, OnDisabled, MmrRoot]


@dataclass(frozen=True)
class ConsensusDigest:
    """A consensus digest item: an engine id and its encoded log."""

    engine_id: bytes
    data: bytes


def encode_consensus_log(log: ConsensusLog, encode_id: Callable[[Any], bytes]) -> bytes:
    """Encode a consensus log item with its variant index."""
    if isinstance(log, AuthoritiesChange):
        return bytes([_AUTHORITIES_CHANGE]) + log.validator_set.encode(encode_id)
    if isinstance(log, OnDisabled):
        return bytes([_ON_DISABLED]) + encode_uint(log.index, 4)
    if isinstance(log, MmrRoot):
        return bytes([_MMR_ROOT]) + log.root
    raise TypeError(f"not a consensus log item: {log!r}")


def decode_consensus_log(data: bytes, decode_id: Callable[[ScaleDecoder], Any]) -> ConsensusLog:
    """Decode a consensus log item from the start of ``data``."""
    decoder = ScaleDecoder(data)
    tag = decoder.uint(1)
    if tag == _AUTHORITIES_CHANGE:
        return AuthoritiesChange(ValidatorSet.decode(decoder, decode_id))
    if tag == _ON_DISABLED:
        return OnDisabled(decoder.uint(4))
    if tag == _MMR_ROOT:
        return MmrRoot(decoder.read(_HASH_LENGTH))
    raise CodecError(f"unknown consensus log variant: {tag}")


@dataclass
class VoteMessage:
    """A vote on a commitment, gossiped by a node to its peers."""

    commitment: Commitment
    id: Any
    signature: Any

    def encode(
        self,
        encode_payload: Callable[[Any], bytes],
        encode_block_number: Callable[[Any], bytes],
        encode_id: Callable[[Any], bytes],
        encode_signature: Callable[[Any], bytes],
    ) -> bytes:
        """Encode the commitment, then the authority id, then the signature."""
        return (
            self.commitment.encode(encode_payload, encode_block_number)
            + encode_id(self.id)
            + encode_signature(self.signature)
        )

    @classmethod
    def decode(
        cls,
        decoder: ScaleDecoder,
        decode_payload: Callable[[ScaleDecoder], Any],
        decode_block_number: Callable[[ScaleDecoder], Any],
        decode_id: Callable[[ScaleDecoder], Any],
        decode_signature: Callable[[ScaleDecoder], Any],
    ) -> "VoteMessage":
        """Read a vote message from ``decoder``."""
        commitment = Commitment.decode(decoder, decode_payload, decode_block_number)
        authority_id = decode_id(decoder)
        signature = decode_signature(decoder)
        return cls(commitment=commitment, id=authority_id, signature=signature)