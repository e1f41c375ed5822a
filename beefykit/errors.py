"""Errors raised by signing and signature checks."""

from __future__ import annotations

from typing import Any


class CryptoError(Exception):
    """Base class for crypto related errors."""


class InvalidSignature(CryptoError):
    """A message signature by an authority is invalid."""

    def __init__(self, signature: str, authority_id: Any) -> None:
        self.signature = signature
        self.authority_id = authority_id
        super().__init__(f"Message signature {signature} by {authority_id!r} is invalid.")


class CannotSign(CryptoError):
    """A commitment could not be signed with the given key."""

    def __init__(self, authority_id: Any, reason: str) -> None:
        self.authority_id = authority_id
        self.reason = reason
        super().__init__(f"Failed to sign comitment using key: {authority_id!r}. Reason: {reason}")