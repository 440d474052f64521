"""Seat topology: which seats exist and which of them form pair desks.

A :class:`Topology` is a value object. Layout builders at the bottom of the
module produce the standard classroom shapes (rows of single desks, rows of
pair desks, clusters of group desks, a U of single desks) without any drawing
geometry.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidTopology
from .models import PairGroup, Position


class Topology:
    """Immutable set of positions plus the pair groups linking some of them."""

    __slots__ = ("_positions", "_index", "_pairs", "_pair_by_position")

    def __init__(self, positions: Sequence[Position], pairs: Sequence[PairGroup]) -> None:
        # Use build_topology(); this constructor assumes validated input.
        self._positions: Tuple[Position, ...] = tuple(positions)
        self._index: Dict[str, Position] = {p.id: p for p in self._positions}
        self._pairs: Tuple[PairGroup, ...] = tuple(pairs)
        self._pair_by_position: Dict[str, PairGroup] = {}
        for pair in self._pairs:
            for slot in pair.slots:
                self._pair_by_position[slot] = pair

    def __repr__(self) -> str:
        return (
            f"Topology(positions={len(self._positions)}, active={self.capacity}, "
            f"pairs={len(self._pairs)})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Topology):
            return NotImplemented
        return self._positions == other._positions and self._pairs == other._pairs

    def __hash__(self) -> int:
        return hash((self._positions, self._pairs))

    # ----------------------------- queries -----------------------------
    @property
    def positions(self) -> Tuple[Position, ...]:
        return self._positions

    @property
    def capacity(self) -> int:
        """Number of active positions."""
        return sum(1 for p in self._positions if p.active)

    def contains(self, position_id: str) -> bool:
        return position_id in self._index

    def is_active(self, position_id: str) -> bool:
        position = self._index.get(position_id)
        return position is not None and position.active

    def get(self, position_id: str) -> Position:
        return self._index[position_id]

    def active_positions(self) -> List[str]:
        """Active position ids in declaration order."""
        return [p.id for p in self._positions if p.active]

    def pair_groups(self) -> List[PairGroup]:
        return list(self._pairs)

    def singles(self) -> List[str]:
        """Active positions outside every pair group, in declaration order."""
        return [p.id for p in self._positions if p.active and p.id not in self._pair_by_position]

    def pair_of(self, position_id: str) -> Optional[PairGroup]:
        return self._pair_by_position.get(position_id)

    def partner_position(self, position_id: str) -> Optional[str]:
        pair = self._pair_by_position.get(position_id)
        return pair.other(position_id) if pair else None

    def partitions(self) -> Dict[int, List[str]]:
        """Position ids grouped by partition (column), in declaration order."""
        grouped: Dict[int, List[str]] = {}
        for p in self._positions:
            grouped.setdefault(p.partition, []).append(p.id)
        return grouped

    def deactivate(self, *position_ids: str) -> "Topology":
        """Return a copy with the given seats switched off.

        A pair desk losing one seat is dissolved; the remaining seat becomes
        a single.
        """
        unknown = [pid for pid in position_ids if pid not in self._index]
        if unknown:
            raise InvalidTopology(f"Cannot deactivate unknown positions: {', '.join(unknown)}")
        off = set(position_ids)
        positions = [
            Position(id=p.id, active=False, partition=p.partition) if p.id in off else p
            for p in self._positions
        ]
        pairs = [pair for pair in self._pairs if not (off & set(pair.slots))]
        return Topology(positions, pairs)


def build_topology(
    positions: Iterable[Position | str],
    pair_links: Iterable[Sequence[str]] = (),
) -> Topology:
    """Validate declarations and build a :class:`Topology`.

    ``positions`` may mix :class:`Position` objects and bare ids (active,
    partition 0). ``pair_links`` is a sequence of two-element id sequences.
    """
    declared: List[Position] = []
    seen: set[str] = set()
    for item in positions:
        position = item if isinstance(item, Position) else Position(id=str(item))
        if position.id in seen:
            raise InvalidTopology(f"Duplicate position id: {position.id}")
        seen.add(position.id)
        declared.append(position)

    index = {p.id: p for p in declared}
    pairs: List[PairGroup] = []
    paired: Dict[str, PairGroup] = {}
    for link in pair_links:
        ids = [str(x) for x in link]
        if len(ids) != 2:
            raise InvalidTopology(f"A pair group needs exactly two positions, got {ids}")
        a, b = ids
        if a == b:
            raise InvalidTopology(f"Pair group repeats position {a}")
        for pid in (a, b):
            if pid not in index:
                raise InvalidTopology(f"Pair group references unknown position {pid}")
            if not index[pid].active:
                raise InvalidTopology(f"Pair group references inactive position {pid}")
            if pid in paired:
                raise InvalidTopology(f"Position {pid} belongs to more than one pair group")
        pair = PairGroup(a, b)
        paired[a] = paired[b] = pair
        pairs.append(pair)

    return Topology(declared, pairs)


# ----------------------------- layout builders -----------------------------
def _check_counts(total_seats: int, partitions: int) -> None:
    if total_seats < 0:
        raise InvalidTopology("Seat count cannot be negative")
    if partitions < 1:
        raise InvalidTopology("At least one partition is required")


def single_layout(total_seats: int, partitions: int = 1) -> Topology:
    """Rows of individual desks split evenly over ``partitions`` columns."""
    _check_counts(total_seats, partitions)
    per_partition = math.ceil(total_seats / partitions) if total_seats else 0
    positions = [
        Position(id=str(i + 1), partition=i // per_partition)
        for i in range(total_seats)
    ]
    return build_topology(positions)


def pair_layout(total_seats: int, partitions: int = 1) -> Topology:
    """Pair desks: seats 1-2, 3-4, ... are linked. An odd last seat stays single."""
    _check_counts(total_seats, partitions)
    desk_count = math.ceil(total_seats / 2)
    desks_per_partition = math.ceil(desk_count / partitions) if desk_count else 0
    positions: List[Position] = []
    links: List[Tuple[str, str]] = []
    for desk in range(desk_count):
        partition = desk // desks_per_partition
        left = str(desk * 2 + 1)
        positions.append(Position(id=left, partition=partition))
        if desk * 2 + 2 <= total_seats:
            right = str(desk * 2 + 2)
            positions.append(Position(id=right, partition=partition))
            links.append((left, right))
    return build_topology(positions, links)


def group_layout(total_seats: int, group_size: int = 4) -> Topology:
    """Group tables of ``group_size`` seats; each group is its own partition."""
    if group_size < 1:
        raise InvalidTopology("Group size must be at least 1")
    _check_counts(total_seats, 1)
    positions = [Position(id=str(i + 1), partition=i // group_size) for i in range(total_seats)]
    return build_topology(positions)


def ushape_layout(total_seats: int) -> Topology:
    """Single desks around three walls facing an open middle.

    A quarter of the seats go to each of the front, right and left runs and
    the remainder to the back run. Runs are partitions 0-3 in that order;
    an empty run has no partition.
    """
    _check_counts(total_seats, 1)
    side = total_seats // 4
    runs = (side, side, side, total_seats - 3 * side)
    positions: List[Position] = []
    for partition, length in enumerate(runs):
        for _ in range(length):
            positions.append(Position(id=str(len(positions) + 1), partition=partition))
    return build_topology(positions)


LAYOUTS = ("single", "pair", "group", "ushape")


def layout_from_name(name: str, total_seats: int, partitions: int = 1, group_size: int = 4) -> Topology:
    key = (name or "").strip().lower()
    if key == "single":
        return single_layout(total_seats, partitions)
    if key == "pair":
        return pair_layout(total_seats, partitions)
    if key == "group":
        return group_layout(total_seats, group_size)
    if key == "ushape":
        return ushape_layout(total_seats)
    raise InvalidTopology(f"Unknown layout {name!r}; expected one of {', '.join(LAYOUTS)}")
