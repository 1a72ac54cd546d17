"""State store — JSON-based persistence for pledge registry state.

Stores and recovers:
- Pledge records (commitment, priority, temporal bound per owner)
- Clock height

This is a simple file-based store suitable for single-node deployment.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from pledges.models.pledge import Commitment, PledgeRecord, TemporalBound


class StateStore:
    """JSON file-based state persistence.

    Usage:
        store = StateStore(Path("data/state.json"))
        store.save_records(registry.records())
        store.save_height(clock.current)

        # On recovery:
        records = store.load_records()
        height = store.load_height()
    """

    def __init__(self, storage_path: Path) -> None:
        self._path = storage_path
        self._state: dict[str, Any] = {}
        if storage_path.exists():
            self._load()

    def _load(self) -> None:
        with self._path.open("r", encoding="utf-8") as f:
            self._state = json.load(f)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._state, f, indent=2, sort_keys=True, ensure_ascii=False)

    # ------------------------------------------------------------------
    # Pledge records
    # ------------------------------------------------------------------

    def save_records(self, records: list[PledgeRecord]) -> None:
        """Serialize pledge records to state."""
        entries = []
        for record in sorted(records, key=lambda r: r.owner):
            entries.append({
                "owner": record.owner,
                "commitment": _commitment_to_dict(record.commitment),
                "priority": record.priority,
                "temporal_bound": _bound_to_dict(record.temporal_bound),
            })
        self._state["pledges"] = entries
        self._save()

    def load_records(self) -> list[PledgeRecord]:
        """Deserialize pledge records from state.

        Raises ValueError on structurally malformed entries. Value rules
        (text length, priority levels) are checked by PledgeRegistry.load.
        """
        entries = self._state.get("pledges", [])
        if not isinstance(entries, list):
            raise ValueError(f"{self._path}: pledges must be a list")
        records = []
        for data in entries:
            if not isinstance(data, dict) or not isinstance(data.get("owner"), str):
                raise ValueError(f"{self._path}: malformed pledge entry {data!r}")
            try:
                commitment = None
                if data.get("commitment") is not None:
                    commitment = Commitment(
                        text=data["commitment"]["text"],
                        fulfilled=data["commitment"]["fulfilled"],
                    )
                bound = None
                if data.get("temporal_bound") is not None:
                    bound = TemporalBound(
                        deadline_height=data["temporal_bound"]["deadline_height"],
                        alert_activated=data["temporal_bound"]["alert_activated"],
                    )
            except (KeyError, TypeError) as exc:
                raise ValueError(
                    f"{self._path}: malformed pledge entry for {data['owner']}: {exc!r}"
                ) from exc
            records.append(PledgeRecord(
                owner=data["owner"],
                commitment=commitment,
                priority=data.get("priority"),
                temporal_bound=bound,
            ))
        return records

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def save_height(self, height: int) -> None:
        self._state["height"] = height
        self._save()

    def load_height(self) -> int:
        return int(self._state.get("height", 0))

    def save_all(self, records: list[PledgeRecord], height: int) -> None:
        """Write records and height in one file write."""
        self._state["height"] = height
        self.save_records(records)


def _commitment_to_dict(commitment: Optional[Commitment]) -> Optional[dict[str, Any]]:
    if commitment is None:
        return None
    return {"text": commitment.text, "fulfilled": commitment.fulfilled}


def _bound_to_dict(bound: Optional[TemporalBound]) -> Optional[dict[str, Any]]:
    if bound is None:
        return None
    return {
        "deadline_height": bound.deadline_height,
        "alert_activated": bound.alert_activated,
    }
