"""Vote bookkeeping for voting rounds keyed by (payload, block number)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, List, Optional, Tuple

from beefykit.primitives import ValidatorSet

Round = Tuple[Hashable, Any]
Vote = Tuple[Any, Any]


def threshold(authorities: int) -> int:
    """Return the number of votes needed to conclude a round among ``authorities``."""
    faulty = max(authorities - 1, 0) // 3
    return authorities - faulty


@dataclass
class _RoundTracker:
    votes: List[Vote] = field(default_factory=list)

    def add_vote(self, vote: Vote) -> bool:
        # Equivocations are not handled: a repeated vote is simply ignored.
        if vote in self.votes:
            return False
        self.votes.append(vote)
        return True

    def is_done(self, needed: int) -> bool:
        return len(self.votes) >= needed


class Rounds:
    """Votes collected per round for one validator set."""

    def __init__(self, validator_set: ValidatorSet) -> None:
        self._rounds: Dict[Round, _RoundTracker] = {}
        self._validator_set = validator_set

    def validator_set_id(self) -> int:
        """Return the id of the validator set these rounds belong to."""
        return self._validator_set.id

    def validators(self) -> List[Any]:
        """Return a copy of the validator list."""
        return list(self._validator_set.validators)

    def add_vote(self, round: Round, vote: Vote) -> bool:
        """Record ``vote`` for ``round``; return False if it was already recorded."""
        tracker = self._rounds.setdefault(round, _RoundTracker())
        return tracker.add_vote(vote)

    def is_done(self, round: Round) -> bool:
        """Return whether ``round`` has gathered enough votes."""
        tracker = self._rounds.get(round)
        if tracker is None:
            return False
        return tracker.is_done(threshold(len(self._validator_set.validators)))

    def drop(self, round: Round) -> Optional[List[Optional[Any]]]:
        """Remove ``round`` and return one signature slot per validator, or None if unknown."""
        tracker = self._rounds.pop(round, None)
        if tracker is None:
            return None
        return [
            next((sig for voter, sig in tracker.votes if voter == authority_id), None)
            for authority_id in self._validator_set.validators
        ]