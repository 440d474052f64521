"""Exceptions raised by SeatShuffle.

Validation happens before any seat is filled, so every exception below is
raised ahead of the assignment phases. Shortages of seats, of people in a
category, or of history-compatible candidates are never errors: they show
up in the result instead.
"""
from __future__ import annotations

from typing import Iterable


class SeatShuffleError(Exception):
    """Base class for all SeatShuffle errors."""


class InvalidTopology(SeatShuffleError):
    """Position or pair declarations contradict each other."""


class InvalidPolicy(SeatShuffleError):
    """Constraint policy is malformed or does not fit the topology."""


class DuplicatePin(SeatShuffleError):
    """Two or more fixed people are pinned to the same position."""

    def __init__(self, position_id: str, identities: Iterable[str]) -> None:
        self.position_id = position_id
        self.identities = list(identities)
        super().__init__(
            f"Position {position_id} is pinned by more than one person: {', '.join(self.identities)}"
        )


class UnknownPinnedPosition(SeatShuffleError):
    """A fixed person is pinned to a position that is missing or inactive."""

    def __init__(self, identity: str, position_id: str) -> None:
        self.identity = identity
        self.position_id = position_id
        super().__init__(f"{identity} is pinned to unknown or inactive position {position_id}")


class EmptyRoster(SeatShuffleError):
    """Raised for an empty roster when the engine runs with ``strict_empty``."""


class HistoryLoadError(SeatShuffleError):
    """A stored history snapshot could not be read."""


class SwapRejected(SeatShuffleError):
    """A manual swap would move a fixed person."""
