"""Previous-run history and the stores that keep it between runs.

The engine never reads or writes a store itself. Callers wrap one run in
``load -> run -> save``; two callers sharing a store must serialise that
sequence or the later save wins.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Protocol

from .errors import HistoryLoadError
from .topology import Topology

logger = logging.getLogger(__name__)


def _frozen(mapping: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    # JSON nulls mean "no record", not the text "None".
    return MappingProxyType({str(k): str(v) for k, v in (mapping or {}).items() if v is not None})


@dataclass(frozen=True)
class HistorySnapshot:
    """Where everyone sat last time and who sat next to them."""

    last_position: Mapping[str, str] = field(default_factory=dict)
    last_partner: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "last_position", _frozen(self.last_position))
        object.__setattr__(self, "last_partner", _frozen(self.last_partner))

    def __hash__(self) -> int:
        return hash((tuple(sorted(self.last_position.items())), tuple(sorted(self.last_partner.items()))))

    @classmethod
    def empty(cls) -> "HistorySnapshot":
        return cls()

    def is_empty(self) -> bool:
        return not self.last_position and not self.last_partner

    def sat_at(self, identity: str, position_id: str) -> bool:
        return self.last_position.get(identity) == position_id

    def were_partners(self, a: str, b: str) -> bool:
        return self.last_partner.get(a) == b or self.last_partner.get(b) == a

    @classmethod
    def from_assignment(cls, assignment: Mapping[str, Optional[str]], topology: Topology) -> "HistorySnapshot":
        """Record every occupied seat, and partners for fully occupied pair desks."""
        last_position: Dict[str, str] = {}
        last_partner: Dict[str, str] = {}
        for position_id, identity in assignment.items():
            if identity:
                last_position[identity] = position_id
        for pair in topology.pair_groups():
            a = assignment.get(pair.first)
            b = assignment.get(pair.second)
            if a and b:
                last_partner[a] = b
                last_partner[b] = a
        return cls(last_position, last_partner)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            "lastPosition": dict(self.last_position),
            "lastPartner": dict(self.last_partner),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "HistorySnapshot":
        last_position = data.get("lastPosition") or {}
        last_partner = data.get("lastPartner") or {}
        if not isinstance(last_position, Mapping) or not isinstance(last_partner, Mapping):
            raise HistoryLoadError("lastPosition and lastPartner must be objects")
        return cls(last_position, last_partner)


class HistoryStore(Protocol):
    def load(self) -> HistorySnapshot:
        ...

    def save(self, snapshot: HistorySnapshot) -> None:
        ...


class InMemoryHistoryStore:
    """Keeps the latest snapshot in memory. Used by the Streamlit session."""

    def __init__(self, snapshot: Optional[HistorySnapshot] = None) -> None:
        self._snapshot = snapshot or HistorySnapshot.empty()

    def load(self) -> HistorySnapshot:
        return self._snapshot

    def save(self, snapshot: HistorySnapshot) -> None:
        self._snapshot = snapshot


class JsonHistoryStore:
    """Snapshot stored as one JSON document, replaced wholesale on save."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> HistorySnapshot:
        if not self.path.exists():
            logger.debug("No history at %s; starting empty", self.path)
            return HistorySnapshot.empty()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise HistoryLoadError(f"Cannot read history from {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise HistoryLoadError(f"History in {self.path} is not a JSON object")
        return HistorySnapshot.from_dict(data)

    def save(self, snapshot: HistorySnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug("Saved history for %d people to %s", len(snapshot.last_position), self.path)
