"""Fan-out of signed commitments to any number of subscribers."""

from __future__ import annotations

import copy
import queue
import threading
from typing import Any, List, Optional, Tuple


class Subscription:
    """The receiving end of one subscriber's channel."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def get(self, timeout: Optional[float] = None) -> Any:
        """Return the next signed commitment; raise ``queue.Empty`` on timeout."""
        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        """Stop receiving; the sender drops this subscription on its next notify."""
        self._closed.set()

    def _send(self, item: Any) -> bool:
        if self.closed:
            return False
        self._queue.put(item)
        return True


class _Subscribers:
    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.items: List[Subscription] = []


class SignedCommitmentSender:
    """Sends each signed commitment to every open subscription."""

    def __init__(self, subscribers: _Subscribers) -> None:
        self._subscribers = subscribers

    def notify(self, signed_commitment: Any) -> None:
        """Deliver a copy of ``signed_commitment`` to all subscribers, dropping closed ones."""
        with self._subscribers.lock:
            open_subs = [s for s in self._subscribers.items if not s.closed]
            if open_subs:
                open_subs = [s for s in open_subs if s._send(copy.deepcopy(signed_commitment))]
            self._subscribers.items = open_subs


class SignedCommitmentStream:
    """Hands out new subscriptions to signed commitments."""

    def __init__(self, subscribers: _Subscribers) -> None:
        self._subscribers = subscribers

    def subscribe(self) -> Subscription:
        """Return a new subscription receiving every later signed commitment."""
        subscription = Subscription()
        with self._subscribers.lock:
            self._subscribers.items.append(subscription)
        return subscription

    def __len__(self) -> int:
        with self._subscribers.lock:
            return len(self._subscribers.items)


def channel() -> Tuple[SignedCommitmentSender, SignedCommitmentStream]:
    """Create a connected sender and stream."""
    subscribers = _Subscribers()
    return SignedCommitmentSender(subscribers), SignedCommitmentStream(subscribers)