"""Pledge registry — the pledge lifecycle and its associated lookups.

The registry is a pure state machine — no side effects beyond its own
store. Audit events and persistence are handled by the service layer.

Every operation validates completely before writing anything, so a
rejected call leaves the store exactly as it was and an accepted call
becomes visible as a single unit. Rejections are returned as
PledgeResult values, never raised.

State machine (per identity, over the commitment only):
    ABSENT → PRESENT    (initialize, delegate)
    PRESENT → PRESENT   (modify, assign_priority, set_temporal_boundary, set_alert)
    PRESENT → ABSENT    (terminate)

Priority and temporal bound have no lifecycle of their own. Unless the
policy enables cascading, they stay readable after terminate.
"""

from __future__ import annotations

import copy
from typing import Iterable, Optional

from pledges.models.pledge import (
    Commitment,
    PledgeErrorKind,
    PledgeRecord,
    PledgeResult,
    PledgeState,
    PledgeView,
    TemporalBound,
)
from pledges.policy.resolver import PledgePolicy


class PledgeRegistry:
    """Single authority over all pledge records, keyed by owner identity.

    Usage:
        registry = PledgeRegistry(resolver.pledge_policy())
        registry.initialize("alice", "finish report")
        registry.assign_priority("alice", 2)
        registry.set_temporal_boundary("alice", 100, current_height=50)
        view = registry.verify("alice")
    """

    def __init__(self, policy: PledgePolicy) -> None:
        self._policy = policy
        self._records: dict[str, PledgeRecord] = {}

    @property
    def policy(self) -> PledgePolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Commitment lifecycle
    # ------------------------------------------------------------------

    def initialize(self, caller: str, text: str) -> PledgeResult:
        """Create the caller's pledge with fulfilled=False."""
        return self._create(caller, text)

    def delegate(self, caller: str, target: str, text: str) -> PledgeResult:
        """Create a pledge on behalf of ``target``.

        The existence check is against the target. With open delegation
        any caller may create a pledge for any identity.
        """
        if not self._policy.open_delegation and caller != target:
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"Delegation is closed: {caller} cannot pledge on behalf of {target}",
            )
        result = self._create(target, text)
        if result.success:
            return PledgeResult.ok(owner=target, delegated_by=caller)
        return result

    def modify(self, caller: str, text: str, fulfilled: bool) -> PledgeResult:
        """Overwrite the caller's commitment text and fulfillment flag."""
        record = self._pledge_of(caller)
        if record is None:
            return _not_found(caller)
        invalid = self._check_text(text)
        if invalid is not None:
            return invalid
        if not isinstance(fulfilled, bool):
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"fulfilled must be a boolean, got {fulfilled!r}",
            )
        record.commitment = Commitment(text=text, fulfilled=fulfilled)
        return PledgeResult.ok(owner=caller, fulfilled=fulfilled)

    def terminate(self, caller: str) -> PledgeResult:
        """Remove the caller's commitment.

        Priority and temporal bound are left in place unless the policy
        cascades termination.
        """
        record = self._pledge_of(caller)
        if record is None:
            return _not_found(caller)
        record.commitment = None
        if self._policy.cascade_on_terminate:
            record.priority = None
            record.temporal_bound = None
        self._drop_if_empty(caller)
        return PledgeResult.ok(
            owner=caller,
            cascaded=self._policy.cascade_on_terminate,
        )

    # ------------------------------------------------------------------
    # Priority
    # ------------------------------------------------------------------

    def assign_priority(self, caller: str, level: int) -> PledgeResult:
        """Set or overwrite the caller's priority weight."""
        record = self._pledge_of(caller)
        if record is None:
            return _not_found(caller)
        levels = self._policy.priority_levels
        if not isinstance(level, int) or isinstance(level, bool) or level not in levels:
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"Priority must be one of {sorted(levels)}, got {level!r}",
            )
        record.priority = level
        return PledgeResult.ok(owner=caller, priority=level)

    def priority_of(self, identity: str) -> Optional[int]:
        """Stored priority for an identity, with or without a live pledge."""
        record = self._records.get(identity)
        return record.priority if record is not None else None

    # ------------------------------------------------------------------
    # Temporal bound
    # ------------------------------------------------------------------

    def set_temporal_boundary(
        self,
        caller: str,
        duration: int,
        current_height: int,
    ) -> PledgeResult:
        """Set the deadline to ``current_height + duration``.

        Overwrites any prior bound and resets the alert flag.
        """
        record = self._pledge_of(caller)
        if record is None:
            return _not_found(caller)
        if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"Duration must be a positive integer, got {duration!r}",
            )
        deadline = current_height + duration
        record.temporal_bound = TemporalBound(deadline_height=deadline)
        return PledgeResult.ok(owner=caller, deadline_height=deadline)

    def set_alert(self, caller: str, active: bool) -> PledgeResult:
        """Manually toggle the alert flag on the caller's temporal bound."""
        record = self._pledge_of(caller)
        if record is None:
            return _not_found(caller)
        if record.temporal_bound is None:
            return PledgeResult.fail(
                PledgeErrorKind.NOT_FOUND,
                f"No temporal bound set for {caller}",
            )
        if not isinstance(active, bool):
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"active must be a boolean, got {active!r}",
            )
        record.temporal_bound = TemporalBound(
            deadline_height=record.temporal_bound.deadline_height,
            alert_activated=active,
        )
        return PledgeResult.ok(owner=caller, alert_activated=active)

    def temporal_bound_of(self, identity: str) -> Optional[TemporalBound]:
        """Stored temporal bound for an identity, with or without a live pledge."""
        record = self._records.get(identity)
        return record.temporal_bound if record is not None else None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def verify(self, caller: str) -> PledgeView:
        """Read-only projection. Absence is a normal result, not an error."""
        record = self._pledge_of(caller)
        if record is None:
            return PledgeView.absent()
        return PledgeView.of(record.commitment)

    def state_of(self, identity: str) -> PledgeState:
        record = self._records.get(identity)
        return record.state if record is not None else PledgeState.ABSENT

    def records(self) -> list[PledgeRecord]:
        """All stored records, including ones holding only orphaned fields."""
        return list(self._records.values())

    @property
    def pledge_count(self) -> int:
        return sum(1 for r in self._records.values() if r.commitment is not None)

    # ------------------------------------------------------------------
    # Bulk load and rollback support
    # ------------------------------------------------------------------

    def load(self, records: Iterable[PledgeRecord]) -> None:
        """Replace the store with previously persisted records.

        Fail-closed: every record is checked against the same rules the
        mutating operations enforce. On any violation ValueError is
        raised and the current store is left untouched.
        """
        loaded: dict[str, PledgeRecord] = {}
        for record in records:
            if record.owner in loaded:
                raise ValueError(f"Duplicate pledge owner on load: {record.owner}")
            errors = self._validate_record(record)
            if errors:
                raise ValueError(
                    f"Invalid pledge record on load for {record.owner}: {'; '.join(errors)}"
                )
            if not record.is_empty:
                loaded[record.owner] = record
        self._records = loaded

    def snapshot(self, identity: str) -> Optional[PledgeRecord]:
        """Detached copy of an identity's record (None if nothing stored)."""
        record = self._records.get(identity)
        return copy.deepcopy(record) if record is not None else None

    def restore(self, identity: str, record: Optional[PledgeRecord]) -> None:
        """Put back a record taken with snapshot()."""
        if record is None or record.is_empty:
            self._records.pop(identity, None)
        else:
            self._records[identity] = copy.deepcopy(record)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create(self, owner: str, text: str) -> PledgeResult:
        if self._pledge_of(owner) is not None:
            return PledgeResult.fail(
                PledgeErrorKind.ALREADY_EXISTS,
                f"Pledge already exists for {owner}",
            )
        invalid = self._check_text(text)
        if invalid is not None:
            return invalid
        record = self._records.get(owner)
        if record is None:
            record = PledgeRecord(owner=owner)
            self._records[owner] = record
        record.commitment = Commitment(text=text, fulfilled=False)
        return PledgeResult.ok(owner=owner)

    def _check_text(self, text: str) -> Optional[PledgeResult]:
        if not isinstance(text, str) or not text:
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                "Commitment text must be a non-empty string",
            )
        if len(text) > self._policy.max_text_length:
            return PledgeResult.fail(
                PledgeErrorKind.INVALID_INPUT,
                f"Commitment text exceeds {self._policy.max_text_length} characters "
                f"(got {len(text)})",
            )
        return None

    def _validate_record(self, record: PledgeRecord) -> list[str]:
        """Check a stored record against the registry invariants. Empty = OK."""
        errors: list[str] = []
        if record.commitment is not None:
            invalid = self._check_text(record.commitment.text)
            if invalid is not None:
                errors.append(invalid.error.message)
            if not isinstance(record.commitment.fulfilled, bool):
                errors.append(
                    f"fulfilled must be a boolean, got {record.commitment.fulfilled!r}"
                )
        if record.priority is not None:
            levels = self._policy.priority_levels
            if (
                not isinstance(record.priority, int)
                or isinstance(record.priority, bool)
                or record.priority not in levels
            ):
                errors.append(
                    f"Priority must be one of {sorted(levels)}, got {record.priority!r}"
                )
        bound = record.temporal_bound
        if bound is not None:
            deadline = bound.deadline_height
            if not isinstance(deadline, int) or isinstance(deadline, bool) or deadline < 1:
                errors.append(f"deadline_height must be an int >= 1, got {deadline!r}")
            if not isinstance(bound.alert_activated, bool):
                errors.append(
                    f"alert_activated must be a boolean, got {bound.alert_activated!r}"
                )
        return errors

    def _pledge_of(self, identity: str) -> Optional[PledgeRecord]:
        """Record for an identity only if it holds a live commitment."""
        record = self._records.get(identity)
        if record is None or record.commitment is None:
            return None
        return record

    def _drop_if_empty(self, identity: str) -> None:
        record = self._records.get(identity)
        if record is not None and record.is_empty:
            del self._records[identity]


def _not_found(identity: str) -> PledgeResult:
    return PledgeResult.fail(
        PledgeErrorKind.NOT_FOUND,
        f"No pledge found for {identity}",
    )
