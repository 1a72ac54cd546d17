"""Core data models for the pledge registry."""

from pledges.models.pledge import (
    Commitment,
    PledgeError,
    PledgeErrorKind,
    PledgeRecord,
    PledgeResult,
    PledgeState,
    PledgeView,
    TemporalBound,
)

__all__ = [
    "Commitment",
    "PledgeError",
    "PledgeErrorKind",
    "PledgeRecord",
    "PledgeResult",
    "PledgeState",
    "PledgeView",
    "TemporalBound",
]
