"""Gossip validation that keeps only a bounded number of voting rounds alive."""

from __future__ import annotations

import bisect
import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from beefykit.primitives import VoteMessage

logger = logging.getLogger("beefy")

# Limit gossip by keeping only a bound number of voting rounds alive.
MAX_LIVE_GOSSIP_ROUNDS = 5


def topic() -> bytes:
    """Return the single gossip topic all vote messages are published under."""
    return hashlib.blake2b(b"beefy", digest_size=32).digest()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a gossip message: keep it under ``topic`` or discard it."""

    topic: Optional[bytes] = None

    @classmethod
    def process_and_keep(cls, message_topic: bytes) -> "ValidationResult":
        return cls(topic=message_topic)

    @classmethod
    def discard(cls) -> "ValidationResult":
        return cls(topic=None)

    @property
    def keep(self) -> bool:
        return self.topic is not None


class GossipValidator:
    """Validates vote messages and expires those outside the live rounds.

    ``decode_vote`` turns raw bytes into a :class:`VoteMessage`, raising ``ValueError``
    on malformed input; ``verify`` returns whether a decoded vote's signature is valid.
    """

    def __init__(
        self,
        decode_vote: Callable[[bytes], VoteMessage],
        verify: Callable[[VoteMessage], bool],
    ) -> None:
        self._decode_vote = decode_vote
        self._verify = verify
        self._topic = topic()
        self._live_rounds: List[Any] = []
        self._lock = threading.Lock()

    @property
    def live_rounds(self) -> Tuple[Any, ...]:
        """The rounds currently considered live, in ascending order."""
        with self._lock:
            return tuple(self._live_rounds)

    def note_round(self, round: Any) -> None:
        """Mark ``round`` as live, pruning the oldest rounds beyond the limit."""
        with self._lock:
            while len(self._live_rounds) > MAX_LIVE_GOSSIP_ROUNDS:
                del self._live_rounds[0]
            idx = bisect.bisect_left(self._live_rounds, round)
            if idx == len(self._live_rounds) or self._live_rounds[idx] != round:
                self._live_rounds.insert(idx, round)

    def is_live(self, round: Any) -> bool:
        """Return whether ``round`` is among the live rounds."""
        with self._lock:
            return self._is_live(round)

    def _is_live(self, round: Any) -> bool:
        idx = bisect.bisect_left(self._live_rounds, round)
        return idx < len(self._live_rounds) and self._live_rounds[idx] == round

    def _try_decode(self, data: bytes) -> Optional[VoteMessage]:
        try:
            return self._decode_vote(data)
        except ValueError:
            return None

    def validate(self, sender: Any, data: bytes) -> ValidationResult:
        """Keep well-formed, correctly signed votes; discard everything else."""
        message = self._try_decode(data)
        if message is not None:
            if self._verify(message):
                return ValidationResult.process_and_keep(self._topic)
            logger.debug("Bad signature on message: %r, from: %r", message, sender)
        return ValidationResult.discard()

    def message_expired(self, data: bytes) -> bool:
        """Return True for undecodable messages and votes on rounds that are not live."""
        message = self._try_decode(data)
        if message is None:
            return True
        return not self.is_live(message.commitment.block_number)

    def message_allowed(self, data: bytes) -> bool:
        """Return True for undecodable messages and votes on live rounds."""
        message = self._try_decode(data)
        if message is None:
            return True
        return self.is_live(message.commitment.block_number)