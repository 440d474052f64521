"""SeatShuffle package."""
from .models import Person, Position, PairGroup
from .errors import (
    SeatShuffleError,
    InvalidTopology,
    InvalidPolicy,
    DuplicatePin,
    UnknownPinnedPosition,
    EmptyRoster,
    HistoryLoadError,
    SwapRejected,
)
from .topology import (
    Topology,
    build_topology,
    single_layout,
    pair_layout,
    group_layout,
    ushape_layout,
    layout_from_name,
)
from .policy import ConstraintPolicy, PairMode
from .history import HistorySnapshot, HistoryStore, InMemoryHistoryStore, JsonHistoryStore
from .solver import AssignmentResult, SeatingEngine, run, swap
from .csv_loader import load_roster, load_topology, load_all, write_assignment

__all__ = [
    "Person",
    "Position",
    "PairGroup",
    "SeatShuffleError",
    "InvalidTopology",
    "InvalidPolicy",
    "DuplicatePin",
    "UnknownPinnedPosition",
    "EmptyRoster",
    "HistoryLoadError",
    "SwapRejected",
    "Topology",
    "build_topology",
    "single_layout",
    "pair_layout",
    "group_layout",
    "ushape_layout",
    "layout_from_name",
    "ConstraintPolicy",
    "PairMode",
    "HistorySnapshot",
    "HistoryStore",
    "InMemoryHistoryStore",
    "JsonHistoryStore",
    "AssignmentResult",
    "SeatingEngine",
    "run",
    "swap",
    "load_roster",
    "load_topology",
    "load_all",
    "write_assignment",
]
