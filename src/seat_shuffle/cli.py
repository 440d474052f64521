"""Command line interface for SeatShuffle."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from .csv_loader import load_roster, load_topology, write_assignment
from .errors import SeatShuffleError
from .history import HistorySnapshot, JsonHistoryStore
from .policy import ConstraintPolicy, PairMode
from .solver import SeatingEngine
from .topology import LAYOUTS, layout_from_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classroom seat shuffling")
    parser.add_argument("--roster", required=True, help="Path to roster.csv")
    seats = parser.add_mutually_exclusive_group(required=True)
    seats.add_argument("--positions", help="Path to positions.csv")
    seats.add_argument("--layout", choices=LAYOUTS, help="Generate a standard layout instead of reading positions.csv")
    parser.add_argument("--seats", type=int,
                        help="Seat count for --layout. Defaults to the roster size.")
    parser.add_argument("--partitions", type=int, default=1,
                        help="Number of columns for single and pair layouts; ignored by group and ushape.")
    parser.add_argument("--group-size", type=int, default=4,
                        help="Seats per group for the group layout.")
    parser.add_argument("--pair-mode", choices=[m.value for m in PairMode], default=PairMode.NONE.value,
                        help="How pair desks mix categories.")
    parser.add_argument("--avoid-previous-position", action="store_true",
                        help="Try not to give anyone the seat they had last time.")
    parser.add_argument("--avoid-previous-partner", action="store_true",
                        help="Try not to repeat last time's desk partners.")
    parser.add_argument("--history", type=Path,
                        help="JSON history file; read before the run and replaced after it.")
    parser.add_argument("--seed", type=int, help="Random seed for a reproducible shuffle.")
    parser.add_argument("--strict-empty", action="store_true",
                        help="Fail instead of returning an empty result for an empty roster.")
    parser.add_argument("--out-assignments", type=Path,
                        help="Write assignments CSV: position,identity.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log degraded outcomes.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by ``python -m seat_shuffle.cli``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        roster = load_roster(args.roster)
        if args.positions:
            topology = load_topology(args.positions)
        else:
            seats = args.seats if args.seats is not None else len(roster)
            topology = layout_from_name(args.layout, seats, args.partitions, args.group_size)

        policy = ConstraintPolicy(
            pair_mode=args.pair_mode,
            avoid_previous_position=args.avoid_previous_position,
            avoid_previous_partner=args.avoid_previous_partner,
        )
        store = JsonHistoryStore(args.history) if args.history else None
        history = store.load() if store else HistorySnapshot.empty()

        engine = SeatingEngine(seed=args.seed, strict_empty=args.strict_empty)
        result = engine.run(roster, topology, policy, history)
    except (SeatShuffleError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if store:
        store.save(result.new_history)

    # Print simple assignments
    for position_id, identity in result.assignment.items():
        print(f"{position_id},{identity or ''}")

    if args.out_assignments:
        write_assignment(result, args.out_assignments)

    summary = result.summary()
    print(f"[REPORT] seated={summary['occupied']}/{summary['people']} "
          f"unfilled={summary['unfilled']} borrowed={summary['category_borrowed']} "
          f"relaxed={summary['relaxed']}")
    if result.unassigned_people:
        print(f"[REPORT] unassigned={'|'.join(result.unassigned_people)}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
