"""Pledge data models — the aggregate, its sub-records and result values.

A pledge is one aggregate per owner identity, stored as a single
composite record with three optional parts:

    commitment      (text, fulfilled)            — the pledge itself
    priority        int in the policy levels
    temporal_bound  (deadline_height, alert_activated)

The presence of ``commitment`` is the presence of the pledge. Priority
and temporal bound are independently settable and outlive the
commitment when it is terminated.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class PledgeState(str, enum.Enum):
    """Lifecycle state of an identity's pledge.

    State machine:
        ABSENT → PRESENT    (initialize / delegate)
        PRESENT → PRESENT   (modify / assign_priority / set_temporal_boundary / set_alert)
        PRESENT → ABSENT    (terminate)
    """
    ABSENT = "absent"
    PRESENT = "present"


class PledgeErrorKind(str, enum.Enum):
    """Typed rejection reasons. Every rejection has zero side effects."""
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class PledgeError:
    """A rejected operation."""
    kind: PledgeErrorKind
    message: str


@dataclass(frozen=True)
class Commitment:
    """The commitment statement and its fulfillment flag."""
    text: str
    fulfilled: bool = False


@dataclass(frozen=True)
class TemporalBound:
    """Deadline height plus a manually toggled alert flag.

    The alert is never derived from the current height.
    """
    deadline_height: int
    alert_activated: bool = False


@dataclass
class PledgeRecord:
    """Composite record for one owner identity.

    Mutable — the registry replaces the sub-records in place.
    """
    owner: str
    commitment: Optional[Commitment] = None
    priority: Optional[int] = None
    temporal_bound: Optional[TemporalBound] = None

    @property
    def state(self) -> PledgeState:
        if self.commitment is None:
            return PledgeState.ABSENT
        return PledgeState.PRESENT

    @property
    def is_empty(self) -> bool:
        """True when no part of the aggregate is set."""
        return (
            self.commitment is None
            and self.priority is None
            and self.temporal_bound is None
        )


@dataclass(frozen=True)
class PledgeView:
    """Fixed-shape read projection of a pledge.

    Exposes the text length rather than the text itself.
    """
    exists: bool
    text_length: int
    fulfilled: bool

    @staticmethod
    def absent() -> PledgeView:
        return PledgeView(exists=False, text_length=0, fulfilled=False)

    @staticmethod
    def of(commitment: Commitment) -> PledgeView:
        return PledgeView(
            exists=True,
            text_length=len(commitment.text),
            fulfilled=commitment.fulfilled,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "exists": self.exists,
            "text_length": self.text_length,
            "fulfilled": self.fulfilled,
        }


@dataclass(frozen=True)
class PledgeResult:
    """Outcome of a registry operation: success with data, or an error."""
    success: bool
    error: Optional[PledgeError] = None
    data: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def ok(**data: Any) -> PledgeResult:
        return PledgeResult(success=True, data=dict(data))

    @staticmethod
    def fail(kind: PledgeErrorKind, message: str) -> PledgeResult:
        return PledgeResult(success=False, error=PledgeError(kind, message))
