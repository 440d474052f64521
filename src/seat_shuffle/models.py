"""Data models for SeatShuffle."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import math


_CATEGORY_ALIASES = {
    "m": "M",
    "male": "M",
    "boy": "M",
    "남": "M",
    "남자": "M",
    "f": "F",
    "female": "F",
    "girl": "F",
    "여": "F",
    "여자": "F",
}


def is_blank(value: object) -> bool:
    """Return True for ``None``, empty strings and pandas' ``NaN``."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    text = str(value).strip()
    return not text or text.lower() == "nan"


def parse_text(value: object) -> Optional[str]:
    """Strip a cell value, returning ``None`` when it is blank.

    Whole floats such as ``3.0`` (pandas reads numeric id columns that way
    when a column has gaps) come back as ``"3"``.
    """
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_bool(value: object, default: bool = True) -> bool:
    """Parse common truthy strings into bool. Blank cells give ``default``."""
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "y"}


def normalize_category(value: object) -> str:
    """Map gender-like spellings onto ``M``/``F``; other labels are upper-cased."""
    text = parse_text(value)
    if text is None:
        return ""
    return _CATEGORY_ALIASES.get(text.lower(), text.upper())


@dataclass(frozen=True)
class Person:
    """A student on the roster."""

    identity: str
    category: str = ""
    pinned_position: Optional[str] = None

    @property
    def is_fixed(self) -> bool:
        return self.pinned_position is not None


@dataclass(frozen=True)
class Position:
    """A seat. ``partition`` is layout bookkeeping only."""

    id: str
    active: bool = True
    partition: int = 0


@dataclass(frozen=True)
class PairGroup:
    """Two seats filled together. Slot order is the declaration order."""

    first: str
    second: str

    @property
    def slots(self) -> tuple[str, str]:
        return (self.first, self.second)

    def other(self, position_id: str) -> str:
        if position_id == self.first:
            return self.second
        if position_id == self.second:
            return self.first
        raise KeyError(position_id)

    def __contains__(self, position_id: object) -> bool:
        return position_id in (self.first, self.second)
