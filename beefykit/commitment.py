"""Commitments signed by the validator set, and their signed form."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, Optional, TypeVar

from beefykit.codec import ScaleDecoder, encode_option, encode_uint, encode_vec

N = TypeVar("N")
P = TypeVar("P")
S = TypeVar("S")


@dataclass
class Commitment(Generic[N, P]):
    """A payload for a finalized block, to be signed by validator set ``validator_set_id``.

    Commitments are ordered by validator set id, then by block number; the payload
    takes no part in ordering but does in equality.
    """

    payload: P
    block_number: N
    validator_set_id: int

    def _order_key(self) -> tuple:
        return (self.validator_set_id, self.block_number)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self._order_key() < other._order_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self._order_key() <= other._order_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self._order_key() > other._order_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Commitment):
            return NotImplemented
        return self._order_key() >= other._order_key()

    def encode(
        self,
        encode_payload: Callable[[P], bytes],
        encode_block_number: Callable[[N], bytes],
    ) -> bytes:
        """Encode as payload, block number, then the 64-bit validator set id."""
        return (
            encode_payload(self.payload)
            + encode_block_number(self.block_number)
            + encode_uint(self.validator_set_id, 8)
        )

    @classmethod
    def decode(
        cls,
        decoder: ScaleDecoder,
        decode_payload: Callable[[ScaleDecoder], Any],
        decode_block_number: Callable[[ScaleDecoder], Any],
    ) -> "Commitment":
        """Read a commitment from ``decoder``."""
        payload = decode_payload(decoder)
        block_number = decode_block_number(decoder)
        validator_set_id = decoder.uint(8)
        return cls(payload=payload, block_number=block_number, validator_set_id=validator_set_id)


@dataclass
class SignedCommitment(Generic[N, P, S]):
    """A commitment with one optional signature slot per validator."""

    commitment: Commitment
    signatures: List[Optional[S]] = field(default_factory=list)

    def no_of_signatures(self) -> int:
        """Return the number of collected signatures."""
        return sum(1 for signature in self.signatures if signature is not None)

    def encode(
        self,
        encode_payload: Callable[[P], bytes],
        encode_block_number: Callable[[N], bytes],
        encode_signature: Callable[[S], bytes],
    ) -> bytes:
        """Encode the commitment followed by the vector of optional signatures."""
        return self.commitment.encode(encode_payload, encode_block_number) + encode_vec(
            self.signatures, lambda signature: encode_option(signature, encode_signature)
        )

    @classmethod
    def decode(
        cls,
        decoder: ScaleDecoder,
        decode_payload: Callable[[ScaleDecoder], Any],
        decode_block_number: Callable[[ScaleDecoder], Any],
        decode_signature: Callable[[ScaleDecoder], Any],
    ) -> "SignedCommitment":
        """Read a signed commitment from ``decoder``."""
        commitment = Commitment.decode(decoder, decode_payload, decode_block_number)
        signatures = decoder.vec(lambda d: d.option(decode_signature))
        return cls(commitment=commitment, signatures=signatures)