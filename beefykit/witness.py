"""Witness form of a signed commitment for two-phase light-client verification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from beefykit.codec import ScaleDecoder, encode_bool, encode_vec
from beefykit.commitment import Commitment, SignedCommitment


@dataclass
class SignedCommitmentWitness:
    """A commitment with a bit vector of signers and a merkle root of the signatures."""

    commitment: Commitment
    signed_by: List[bool] = field(default_factory=list)
    signatures_merkle_root: Any = None

    @classmethod
    def from_signed(
        cls,
        signed: SignedCommitment,
        merkelize: Callable[[List[Optional[Any]]], Any],
    ) -> Tuple["SignedCommitmentWitness", List[Optional[Any]]]:
        """Split a signed commitment into its witness and the full list of signatures."""
        signatures = signed.signatures
        signed_by = [signature is not None for signature in signatures]
        root = merkelize(signatures)
        witness = cls(
            commitment=signed.commitment,
            signed_by=signed_by,
            signatures_merkle_root=root,
        )
        return witness, signatures

    def encode(
        self,
        encode_payload: Callable[[Any], bytes],
        encode_block_number: Callable[[Any], bytes],
        encode_root: Callable[[Any], bytes],
    ) -> bytes:
        """Encode the commitment, the signer bit vector and the merkle root."""
        return (
            self.commitment.encode(encode_payload, encode_block_number)
            + encode_vec(self.signed_by, encode_bool)
            + encode_root(self.signatures_merkle_root)
        )

    @classmethod
    def decode(
        cls,
        decoder: ScaleDecoder,
        decode_payload: Callable[[ScaleDecoder], Any],
        decode_block_number: Callable[[ScaleDecoder], Any],
        decode_root: Callable[[ScaleDecoder], Any],
    ) -> "SignedCommitmentWitness":
        """Read a witness from ``decoder``."""
        commitment = Commitment.decode(decoder, decode_payload, decode_block_number)
        signed_by = decoder.vec(ScaleDecoder.bool)
        root = decode_root(decoder)
        return cls(commitment=commitment, signed_by=signed_by, signatures_merkle_root=root)