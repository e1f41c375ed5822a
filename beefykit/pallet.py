"""On-chain bookkeeping of the authority set and its changes."""

from __future__ import annotations

from typing import Any, Iterable, List, Tuple

from beefykit.primitives import (
    BEEFY_ENGINE_ID,
    AuthoritiesChange,
    ConsensusDigest,
    OnDisabled,
    ValidatorSet,
    encode_consensus_log,
)

# Compressed ECDSA public keys are 33 bytes long.
_AUTHORITY_ID_LENGTH = 33


def _encode_authority_id(authority_id: bytes) -> bytes:
    raw = bytes(authority_id)
    if len(raw) != _AUTHORITY_ID_LENGTH:
        raise ValueError(
            f"authority id must be {_AUTHORITY_ID_LENGTH} bytes, got {len(raw)}"
        )
    return raw


def mock_beefy_id(id: int) -> bytes:
    """Return a made-up 33-byte authority id with every byte set to ``id``."""
    return bytes([id]) * _AUTHORITY_ID_LENGTH


class BeefyPallet:
    """Tracks the current and next authority sets and the validator set id.

    Authority set changes and disabled authorities are recorded as consensus
    digest items in :attr:`digest`.
    """

    def __init__(self) -> None:
        self._authorities: List[bytes] = []
        self._validator_set_id: int = 0
        self._next_authorities: List[bytes] = []
        self.digest: List[ConsensusDigest] = []

    @property
    def authorities(self) -> List[bytes]:
        """The current authority set."""
        return list(self._authorities)

    @property
    def validator_set_id(self) -> int:
        """The id of the current validator set."""
        return self._validator_set_id

    @property
    def next_authorities(self) -> List[bytes]:
        """The authority set scheduled for the next session."""
        return list(self._next_authorities)

    def validator_set(self) -> ValidatorSet:
        """Return the current active validator set."""
        return ValidatorSet(validators=self.authorities, id=self._validator_set_id)

    def _deposit_log(self, log: Any) -> None:
        self.digest.append(
            ConsensusDigest(
                engine_id=BEEFY_ENGINE_ID,
                data=encode_consensus_log(log, _encode_authority_id),
            )
        )

    def _change_authorities(self, new: List[bytes], queued: List[bytes]) -> None:
        # A set change is signalled only if the set has actually changed.
        if new != self._authorities:
            self._authorities = list(new)
            next_id = self._validator_set_id + 1
            self._validator_set_id = next_id
            self._deposit_log(
                AuthoritiesChange(ValidatorSet(validators=list(new), id=next_id))
            )
        self._next_authorities = list(queued)

    def initialize_authorities(self, authorities: Iterable[bytes]) -> None:
        """Set the genesis authorities; raise if authorities are already set."""
        initial = list(authorities)
        if not initial:
            return
        if self._authorities:
            raise RuntimeError("Authorities are already initialized!")
        self._authorities = list(initial)
        self._validator_set_id = 0
        self._next_authorities = list(initial)

    def on_genesis_session(self, validators: Iterable[Tuple[Any, bytes]]) -> None:
        """Initialize authorities from the genesis session's (account, key) pairs."""
        self.initialize_authorities([key for _, key in validators])

    def on_new_session(
        self,
        changed: bool,
        validators: Iterable[Tuple[Any, bytes]],
        queued_validators: Iterable[Tuple[Any, bytes]],
    ) -> None:
        """Apply a new session's authorities if the session reports a change."""
        if not changed:
            return
        next_authorities = [key for _, key in validators]
        next_queued = [key for _, key in queued_validators]
        self._change_authorities(next_authorities, next_queued)

    def on_disabled(self, index: int) -> None:
        """Record that the authority at ``index`` has been disabled."""
        self._deposit_log(OnDisabled(index))

    def is_member(self, authority_id: bytes) -> bool:
        """Return whether ``authority_id`` is in the current authority set."""
        return any(existing == authority_id for existing in self._authorities)