"""The single-slot memory of the last accepted request body."""

import asyncio
from typing import Optional


def should_delay(previous: Optional[str], current: str) -> bool:
    """True if the current body repeats the previously accepted one.

    An empty slot never matches, so two empty-bodied requests are not duplicates.
    """
    return previous is not None and previous == current


def next_state(previous: Optional[str], current: str) -> Optional[str]:
    """
    Computes the slot value after a request has been accepted.

    A duplicate pair clears the slot, so a third identical body is not delayed.
    An empty body also clears it, since the slot never holds "".
    """
    if should_delay(previous, current) or current == "":
        return None
    return current


class DuplicateBodyTracker:
    """Holds the last accepted request body for the lifetime of the application.

    ``check_and_update`` reads, decides and writes the slot inside a lock, with
    no suspension point in between, so concurrent requests are ordered by the
    moment they reach the check rather than by when they arrived.
    """

    def __init__(self) -> None:
        self._previous: Optional[str] = None
        self._lock = asyncio.Lock()

    @property
    def previous(self) -> Optional[str]:
        return self._previous

    async def check_and_update(self, body: str) -> bool:
        """
        Decides whether this body must be delayed and records it.

        Args:
            body: The decoded body of an accepted request.

        Returns:
            True if the response for this request should be delayed.
        """
        async with self._lock:
            delay = should_delay(self._previous, body)
            self._previous = next_state(self._previous, body)
            return delay
