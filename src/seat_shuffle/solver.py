"""
Constrained seat shuffling.

One run places a roster onto a topology in four ordered phases and never
revisits an earlier decision:

    1. fixed people go to their pinned seats
    2. pair desks are filled slot by slot under the pairing mode
    3. single seats are filled in declaration order
    4. a fresh history snapshot is derived from the result

Each open slot takes the first candidate, in shuffled pool order, that
passes the strictest rule still available:

    strict            category rule + avoid last seat + avoid last partner
    ignore-partner    category rule + avoid last seat
    ignore-position   category rule + avoid last partner
    ignore-soft       category rule only
    borrow-category   the same four steps over every remaining person

The shuffle of the free roster at the start of the run is the only source of
randomness, so a seeded ``random.Random`` makes a run reproducible.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .errors import DuplicatePin, EmptyRoster, SwapRejected, UnknownPinnedPosition
from .history import HistorySnapshot
from .models import Person
from .policy import ConstraintPolicy, PairMode
from .topology import Topology

logger = logging.getLogger(__name__)

STRICT = "strict"
BORROW = "borrow-category"

# (label, check last position, check last partner)
_LADDER: Tuple[Tuple[str, bool, bool], ...] = (
    (STRICT, True, True),
    ("ignore-partner", True, False),
    ("ignore-position", False, True),
    ("ignore-soft", False, False),
)


# ----------------------------- result -----------------------------
@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of one run. Degraded outcomes are reported here, not raised."""

    assignment: Dict[str, Optional[str]]
    unassigned_people: Tuple[str, ...] = ()
    unfilled_positions: Tuple[str, ...] = ()
    new_history: HistorySnapshot = field(default_factory=HistorySnapshot)
    category_borrowed: Tuple[str, ...] = ()
    relaxations: Dict[str, str] = field(default_factory=dict)
    pairing_violations: Tuple[Tuple[str, str], ...] = ()

    @property
    def occupied(self) -> Dict[str, str]:
        return {pid: who for pid, who in self.assignment.items() if who}

    def position_of(self, identity: str) -> Optional[str]:
        for pid, who in self.assignment.items():
            if who == identity:
                return pid
        return None

    def partner_of(self, identity: str) -> Optional[str]:
        return self.new_history.last_partner.get(identity)

    def summary(self) -> Dict[str, int]:
        occupied = len(self.occupied)
        return {
            "positions": len(self.assignment),
            "occupied": occupied,
            "people": occupied + len(self.unassigned_people),
            "unassigned": len(self.unassigned_people),
            "unfilled": len(self.unfilled_positions),
            "category_borrowed": len(self.category_borrowed),
            "relaxed": len(self.relaxations),
            "pairing_violations": len(self.pairing_violations),
        }

    def to_dict(self) -> Dict[str, object]:
        return {
            "assignment": dict(self.assignment),
            "unassignedPeople": list(self.unassigned_people),
            "unfilledPositions": list(self.unfilled_positions),
            "newHistory": self.new_history.to_dict(),
            "categoryBorrowed": list(self.category_borrowed),
        }


# ----------------------------- pools -----------------------------
@dataclass(frozen=True)
class _Requirement:
    """Category rule for one slot: equal to, or different from, ``category``.

    A ``preferred`` rule only orders candidates: people matching it come
    first, everyone else follows.
    """

    category: str
    same: bool = True
    preferred: bool = False

    def matches(self, person: Person) -> bool:
        return (person.category == self.category) == self.same


class _Pools:
    """Free people in shuffled order, also split per category.

    Dicts keep insertion order, so taking a person is O(1) and every
    iteration follows the shuffle.
    """

    def __init__(self, shuffled: Sequence[Person], category_order: Sequence[str]) -> None:
        self.order: Dict[str, Person] = {p.identity: p for p in shuffled}
        self.by_category: Dict[str, Dict[str, Person]] = {c: {} for c in category_order}
        for p in shuffled:
            self.by_category.setdefault(p.category, {})[p.identity] = p

    def __len__(self) -> int:
        return len(self.order)

    def take(self, person: Person) -> None:
        del self.order[person.identity]
        del self.by_category[person.category][person.identity]

    def largest_category(self) -> Optional[str]:
        """Category with the most people left; ties go to roster order."""
        best: Optional[str] = None
        best_size = 0
        for category, members in self.by_category.items():
            if len(members) > best_size:
                best, best_size = category, len(members)
        return best

    def candidates(self, requirement: Optional[_Requirement]) -> Iterator[Person]:
        if requirement is None:
            pool = self.order.values()
        elif requirement.preferred:
            first = list(self.by_category.get(requirement.category, {}).values())
            rest = [p for p in self.order.values() if p.category != requirement.category]
            pool = first + rest
        elif requirement.same:
            pool = self.by_category.get(requirement.category, {}).values()
        else:
            pool = (p for p in self.order.values() if requirement.matches(p))
        # Materialise so the caller may take() while iterating.
        return iter(list(pool))


# ----------------------------- engine -----------------------------
class SeatingEngine:
    """Stateless seat shuffler.

    ``rng`` is used as given, so its state carries over between runs.
    Otherwise every run gets a fresh ``random.Random(seed)``: a fixed seed
    repeats the same arrangement, and ``seed=None`` reseeds per run.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        strict_empty: bool = False,
        strict_policy: bool = False,
    ) -> None:
        self.rng = rng
        self.seed = seed
        self.strict_empty = strict_empty
        self.strict_policy = strict_policy

    def _random(self) -> random.Random:
        return self.rng if self.rng is not None else random.Random(self.seed)

    # ----------------------------- phase 0 -----------------------------
    def _partition_roster(
        self, roster: Sequence[Person], topology: Topology
    ) -> Tuple[List[Person], List[Person]]:
        """Split into (fixed, free) and validate pins."""
        seen: set[str] = set()
        fixed: List[Person] = []
        free: List[Person] = []
        pins: Dict[str, List[str]] = {}
        for person in roster:
            if person.identity in seen:
                raise ValueError(f"Duplicate identity in roster: {person.identity}")
            seen.add(person.identity)
            if not person.is_fixed:
                free.append(person)
                continue
            if not topology.is_active(person.pinned_position):
                raise UnknownPinnedPosition(person.identity, person.pinned_position)
            pins.setdefault(person.pinned_position, []).append(person.identity)
            fixed.append(person)
        for position_id, identities in pins.items():
            if len(identities) > 1:
                raise DuplicatePin(position_id, identities)
        return fixed, free

    # ----------------------------- ladder -----------------------------
    @staticmethod
    def _steps(policy: ConstraintPolicy) -> List[Tuple[str, bool, bool]]:
        """Ladder steps with disabled constraints folded away."""
        steps: List[Tuple[str, bool, bool]] = []
        seen: set[Tuple[bool, bool]] = set()
        for label, by_position, by_partner in _LADDER:
            key = (by_position and policy.avoid_previous_position, by_partner and policy.avoid_previous_partner)
            if key in seen:
                continue
            seen.add(key)
            steps.append((label, *key))
        return steps

    def _pick(
        self,
        slot: str,
        neighbour: Optional[str],
        requirement: Optional[_Requirement],
        pools: _Pools,
        steps: List[Tuple[str, bool, bool]],
        history: HistorySnapshot,
    ) -> Tuple[Optional[Person], Optional[str]]:
        for label, by_position, by_partner in steps:
            for person in pools.candidates(requirement):
                if by_position and history.sat_at(person.identity, slot):
                    continue
                if by_partner and neighbour and history.were_partners(person.identity, neighbour):
                    continue
                pools.take(person)
                return person, label
        if requirement is not None and len(pools):
            person, label = self._pick(slot, neighbour, None, pools, steps, history)
            if person is not None:
                return person, BORROW if label == STRICT else f"{BORROW}/{label}"
        return None, None

    @staticmethod
    def _requirement(
        policy: ConstraintPolicy, pools: _Pools, neighbour: Optional[Person]
    ) -> Optional[_Requirement]:
        if policy.pair_mode is PairMode.NONE:
            return None
        if neighbour is None:
            # Lead slot has no rule of its own. The fullest pool goes first so
            # the partner slot has the best chance of meeting the rule.
            lead = pools.largest_category()
            return _Requirement(lead, preferred=True) if lead is not None else None
        return _Requirement(neighbour.category, same=policy.pair_mode is PairMode.SAME_CATEGORY)

    # ----------------------------- main run -----------------------------
    def run(
        self,
        roster: Sequence[Person],
        topology: Topology,
        policy: Optional[ConstraintPolicy] = None,
        history: Optional[HistorySnapshot] = None,
    ) -> AssignmentResult:
        """Produce one assignment. Inputs are never mutated."""
        policy = policy or ConstraintPolicy()
        history = history or HistorySnapshot.empty()

        if not roster:
            if self.strict_empty:
                raise EmptyRoster("Roster has no people to seat")
            logger.info("Empty roster; returning an empty assignment")
            active = topology.active_positions()
            return AssignmentResult(
                assignment={pid: None for pid in active},
                unfilled_positions=tuple(active),
            )

        # Phase 0
        fixed, free = self._partition_roster(roster, topology)
        pairing_applies = policy.check(topology, strict=self.strict_policy)
        people: Dict[str, Person] = {p.identity: p for p in roster}
        assignment: Dict[str, Optional[str]] = {pid: None for pid in topology.active_positions()}

        # Phase 1
        for person in fixed:
            assignment[person.pinned_position] = person.identity
        logger.debug("Placed %d fixed people", len(fixed))

        category_order = list(dict.fromkeys(p.category for p in free))
        shuffled = list(free)
        self._random().shuffle(shuffled)
        pools = _Pools(shuffled, category_order)
        steps = self._steps(policy)
        relaxations: Dict[str, str] = {}
        borrowed: List[str] = []

        def place(slot: str, person: Person, label: str) -> None:
            assignment[slot] = person.identity
            if label != STRICT:
                relaxations[person.identity] = label
            if label.startswith(BORROW):
                borrowed.append(person.identity)

        # Phase 2
        for pair in topology.pair_groups():
            for slot in pair.slots:
                if assignment[slot] is not None:
                    continue
                if not len(pools):
                    break
                other = assignment[pair.other(slot)]
                neighbour = people[other] if other else None
                requirement = self._requirement(policy, pools, neighbour) if pairing_applies else None
                person, label = self._pick(slot, other, requirement, pools, steps, history)
                if person is None:
                    break
                place(slot, person, label)
        logger.debug("Filled pair desks; %d free people left", len(pools))

        # Phase 3
        for slot in topology.singles():
            if not len(pools):
                break
            if assignment[slot] is not None:
                continue
            person, label = self._pick(slot, None, None, pools, steps, history)
            if person is None:
                break
            place(slot, person, label)

        # Phase 4
        new_history = HistorySnapshot.from_assignment(assignment, topology)

        unassigned = tuple(p.identity for p in free if p.identity in pools.order)
        unfilled = tuple(pid for pid, who in assignment.items() if who is None)
        if unassigned:
            logger.info("%d people could not be seated: %s", len(unassigned), ", ".join(unassigned))
        if borrowed:
            logger.info("Seated outside the pairing category: %s", ", ".join(borrowed))
        if relaxations:
            logger.info("Soft constraints relaxed for %d people", len(relaxations))

        return AssignmentResult(
            assignment=assignment,
            unassigned_people=unassigned,
            unfilled_positions=unfilled,
            new_history=new_history,
            category_borrowed=tuple(borrowed),
            relaxations=relaxations,
        )


def run(
    roster: Sequence[Person],
    topology: Topology,
    policy: Optional[ConstraintPolicy] = None,
    history: Optional[HistorySnapshot] = None,
    seed: Optional[int] = None,
    strict_empty: bool = False,
) -> AssignmentResult:
    """Convenience wrapper around :class:`SeatingEngine`."""
    return SeatingEngine(seed=seed, strict_empty=strict_empty).run(roster, topology, policy, history)


# ----------------------------- manual swaps -----------------------------
def pairing_violations(
    assignment: Mapping[str, Optional[str]],
    roster: Sequence[Person],
    topology: Topology,
    policy: ConstraintPolicy,
) -> List[Tuple[str, str]]:
    """Fully occupied pair desks whose occupants break the pairing mode."""
    if policy.pair_mode is PairMode.NONE:
        return []
    category = {p.identity: p.category for p in roster}
    want_same = policy.pair_mode is PairMode.SAME_CATEGORY
    bad: List[Tuple[str, str]] = []
    for pair in topology.pair_groups():
        a, b = assignment.get(pair.first), assignment.get(pair.second)
        if a and b and (category.get(a) == category.get(b)) != want_same:
            bad.append(pair.slots)
    return bad


def swap(
    result: AssignmentResult,
    roster: Sequence[Person],
    topology: Topology,
    a: str,
    b: str,
    policy: Optional[ConstraintPolicy] = None,
) -> AssignmentResult:
    """Exchange the occupants of two seats after a run.

    Fixed people cannot be moved. Pairing breaches are allowed but reported.
    """
    for pid in (a, b):
        if pid not in result.assignment:
            raise SwapRejected(f"Position {pid} is not an active seat")
    fixed = {p.identity for p in roster if p.is_fixed}
    for pid in (a, b):
        who = result.assignment[pid]
        if who in fixed and a != b:
            raise SwapRejected(f"{who} is fixed to position {pid}")

    assignment = dict(result.assignment)
    assignment[a], assignment[b] = assignment[b], assignment[a]
    violations: List[Tuple[str, str]] = []
    if policy is not None:
        violations = pairing_violations(assignment, roster, topology, policy)
        for first, second in violations:
            logger.warning("Pair desk %s-%s no longer follows %s", first, second, policy.pair_mode.value)

    return AssignmentResult(
        assignment=assignment,
        unassigned_people=result.unassigned_people,
        unfilled_positions=tuple(pid for pid, who in assignment.items() if who is None),
        new_history=HistorySnapshot.from_assignment(assignment, topology),
        pairing_violations=tuple(violations),
    )
