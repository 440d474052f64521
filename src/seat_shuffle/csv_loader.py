"""CSV loading utilities."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import IO, Any, Dict, List, Tuple

import pandas as pd

from .errors import InvalidTopology
from .models import Person, Position, normalize_category, parse_bool, parse_text
from .solver import AssignmentResult
from .topology import Topology, build_topology


def _column(df: pd.DataFrame, *names: str) -> str | None:
    """Return the first of ``names`` present in ``df`` (case-insensitive)."""
    lookup = {str(c).strip().lower(): c for c in df.columns}
    for name in names:
        if name in lookup:
            return lookup[name]
    return None


def load_roster(path: Path | str | IO[Any]) -> List[Person]:
    """Load the roster from ``roster.csv``.

    Accepts ``name``/``identity``, ``gender``/``category`` and an optional
    ``fixed_seat``/``pinned_position`` column. Rows with a blank name are
    skipped.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    name_col = _column(df, "name", "identity")
    if name_col is None:
        raise ValueError("Roster needs a 'name' or 'identity' column")
    category_col = _column(df, "gender", "category")
    pin_col = _column(df, "fixed_seat", "pinned_position")

    people: List[Person] = []
    seen: set[str] = set()
    for _, row in df.iterrows():
        identity = parse_text(row[name_col])
        if identity is None:
            continue
        if identity in seen:
            raise ValueError(f"Duplicate name in roster: {identity}")
        seen.add(identity)
        people.append(
            Person(
                identity=identity,
                category=normalize_category(row[category_col]) if category_col else "",
                pinned_position=parse_text(row[pin_col]) if pin_col else None,
            )
        )
    return people


def load_topology(path: Path | str | IO[Any]) -> Topology:
    """Load seats from ``positions.csv``.

    Columns: ``id`` plus optional ``active``, ``partition`` and ``pair``.
    Exactly two rows sharing a ``pair`` label form a pair desk.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    id_col = _column(df, "id", "position")
    if id_col is None:
        raise ValueError("Positions file needs an 'id' column")
    active_col = _column(df, "active")
    partition_col = _column(df, "partition")
    pair_col = _column(df, "pair")

    positions: List[Position] = []
    pair_members: Dict[str, List[str]] = {}
    for _, row in df.iterrows():
        position_id = parse_text(row[id_col])
        if position_id is None:
            continue
        partition = parse_text(row[partition_col]) if partition_col else None
        positions.append(
            Position(
                id=position_id,
                active=parse_bool(row[active_col]) if active_col else True,
                partition=int(float(partition)) if partition is not None else 0,
            )
        )
        label = parse_text(row[pair_col]) if pair_col else None
        if label is not None:
            pair_members.setdefault(label, []).append(position_id)

    links: List[Tuple[str, str]] = []
    for label, members in pair_members.items():
        if len(members) != 2:
            raise InvalidTopology(f"Pair {label} has {len(members)} positions: {', '.join(members)}")
        links.append((members[0], members[1]))
    return build_topology(positions, links)


def load_all(roster_path: Path | str, topology_path: Path | str) -> Tuple[List[Person], Topology]:
    """Convenience wrapper returning roster and topology."""
    return load_roster(roster_path), load_topology(topology_path)


def write_assignment(result: AssignmentResult, path: Path | str) -> None:
    """Write ``position,identity`` rows; empty seats get a blank identity."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["position", "identity"])
        for position_id, identity in result.assignment.items():
            w.writerow([position_id, identity or ""])
