"""Constraint policy: which soft constraints are on and how pair desks mix."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidPolicy
from .topology import Topology

logger = logging.getLogger(__name__)


class PairMode(str, Enum):
    CROSS_CATEGORY = "cross-category"
    SAME_CATEGORY = "same-category"
    NONE = "none"

    @classmethod
    def parse(cls, value: object) -> "PairMode":
        """Accept a member, its value, or ``None`` (meaning no pairing rule)."""
        if value is None:
            return cls.NONE
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if not text:
            return cls.NONE
        for mode in cls:
            if mode.value == text:
                return mode
        raise InvalidPolicy(
            f"Unknown pair mode {value!r}; expected one of {', '.join(m.value for m in cls)}"
        )


@dataclass(frozen=True)
class ConstraintPolicy:
    pair_mode: PairMode = PairMode.NONE
    avoid_previous_position: bool = False
    avoid_previous_partner: bool = False

    def __post_init__(self) -> None:
        # Allow plain strings from CLI and UI adapters.
        object.__setattr__(self, "pair_mode", PairMode.parse(self.pair_mode))

    @property
    def pairs_by_category(self) -> bool:
        return self.pair_mode is not PairMode.NONE

    def check(self, topology: Topology, strict: bool = False) -> bool:
        """Check the policy against a topology.

        A category pairing mode on a topology without pair desks has nothing
        to act on. That is a no-op with a warning unless ``strict`` is set.
        Returns True when the policy fully applies.
        """
        if self.pairs_by_category and not topology.pair_groups():
            message = f"Pair mode {self.pair_mode.value} has no effect: the layout has no pair desks"
            if strict:
                raise InvalidPolicy(message)
            logger.warning(message)
            return False
        return True
