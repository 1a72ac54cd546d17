"""Pledge service — unified facade over the pledge registry.

This is the primary interface for programmatic access. It wires:
- The pledge registry (lifecycle, priority, temporal bounds)
- The height clock (deadline time basis)
- Persistence (event log, state store)

All operations produce typed ServiceResult values. Every successful
mutation is recorded to the event log before it is acknowledged; if
the audit append fails, the registry change is rolled back and the
operation fails closed. Event payloads carry operation metadata only,
never commitment text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pledges import __version__
from pledges.clock import HeightClock
from pledges.models.pledge import (
    PledgeErrorKind,
    PledgeResult,
    PledgeView,
    TemporalBound,
)
from pledges.persistence.event_log import EventKind, EventLog, EventRecord
from pledges.persistence.state_store import StateStore
from pledges.policy.resolver import PolicyResolver
from pledges.registry.engine import PledgeRegistry


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)
    error_kind: Optional[PledgeErrorKind] = None


class PledgeService:
    """Pledge registry facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = PledgeService(resolver)

        result = service.initialize("alice", "finish report")
        result = service.assign_priority("alice", 2)
        result = service.set_temporal_boundary("alice", 100)
        view = service.verify("alice").data

    Persistence (optional):
        service = PledgeService(resolver, event_log=log, state_store=store)
        # State is persisted on each mutation and loaded on construction.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        clock: Optional[HeightClock] = None,
        event_log: Optional[EventLog] = None,
        state_store: Optional[StateStore] = None,
    ) -> None:
        self._resolver = resolver
        self._registry = PledgeRegistry(resolver.pledge_policy())
        self._event_log = event_log if event_log is not None else EventLog()
        self._state_store = state_store

        if state_store is not None:
            self._registry.load(state_store.load_records())
            self._clock = clock or HeightClock(start=state_store.load_height())
        else:
            self._clock = clock or HeightClock()

        # Initialize counter from persisted log to avoid ID collision on restart
        self._event_counter = self._event_log.count

        # Set to True if a StateStore write fails after the audit event
        # has been durably committed.
        self._persistence_degraded: bool = False

    @property
    def registry(self) -> PledgeRegistry:
        return self._registry

    @property
    def clock(self) -> HeightClock:
        return self._clock

    @property
    def event_log(self) -> EventLog:
        return self._event_log

    # ------------------------------------------------------------------
    # Commitment lifecycle
    # ------------------------------------------------------------------

    def initialize(self, caller: str, text: str) -> ServiceResult:
        """Create the caller's own pledge."""
        return self._mutate(
            caller, caller, EventKind.PLEDGE_INITIALIZED,
            lambda: self._registry.initialize(caller, text),
        )

    def delegate(self, caller: str, target: str, text: str) -> ServiceResult:
        """Create a pledge for ``target`` on the caller's behalf."""
        return self._mutate(
            caller, target, EventKind.PLEDGE_DELEGATED,
            lambda: self._registry.delegate(caller, target, text),
        )

    def modify(self, caller: str, text: str, fulfilled: bool) -> ServiceResult:
        return self._mutate(
            caller, caller, EventKind.PLEDGE_MODIFIED,
            lambda: self._registry.modify(caller, text, fulfilled),
        )

    def terminate(self, caller: str) -> ServiceResult:
        return self._mutate(
            caller, caller, EventKind.PLEDGE_TERMINATED,
            lambda: self._registry.terminate(caller),
        )

    # ------------------------------------------------------------------
    # Priority and temporal bound
    # ------------------------------------------------------------------

    def assign_priority(self, caller: str, level: int) -> ServiceResult:
        return self._mutate(
            caller, caller, EventKind.PRIORITY_ASSIGNED,
            lambda: self._registry.assign_priority(caller, level),
        )

    def set_temporal_boundary(self, caller: str, duration: int) -> ServiceResult:
        """Set the caller's deadline relative to the current clock height."""
        height = self._clock.current
        return self._mutate(
            caller, caller, EventKind.TEMPORAL_BOUND_SET,
            lambda: self._registry.set_temporal_boundary(caller, duration, height),
            extra={"height": height},
        )

    def set_alert(self, caller: str, active: bool) -> ServiceResult:
        return self._mutate(
            caller, caller, EventKind.ALERT_TOGGLED,
            lambda: self._registry.set_alert(caller, active),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def verify(self, caller: str) -> ServiceResult:
        """Read-only pledge projection. Always succeeds."""
        view: PledgeView = self._registry.verify(caller)
        return ServiceResult(success=True, data=view.to_dict())

    def get_priority(self, identity: str) -> Optional[int]:
        return self._registry.priority_of(identity)

    def get_temporal_bound(self, identity: str) -> Optional[TemporalBound]:
        return self._registry.temporal_bound_of(identity)

    def describe(self, identity: str) -> dict[str, Any]:
        """Everything stored for an identity, without the commitment text."""
        bound = self._registry.temporal_bound_of(identity)
        return {
            "identity": identity,
            "state": self._registry.state_of(identity).value,
            "pledge": self._registry.verify(identity).to_dict(),
            "priority": self._registry.priority_of(identity),
            "temporal_bound": None if bound is None else {
                "deadline_height": bound.deadline_height,
                "alert_activated": bound.alert_activated,
            },
        }

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    def advance_height(self, blocks: int) -> ServiceResult:
        """Move the height clock forward. Deadlines are not evaluated."""
        if not isinstance(blocks, int) or isinstance(blocks, bool) or blocks < 0:
            return ServiceResult(
                success=False,
                errors=[f"Height is monotonic; cannot advance by {blocks!r}"],
                error_kind=PledgeErrorKind.INVALID_INPUT,
            )
        previous = self._clock.current
        # Audit first: the clock cannot be wound back after advancing.
        err = self._record_event(
            EventKind.HEIGHT_ADVANCED, "system",
            {"from_height": previous, "to_height": previous + blocks},
        )
        if err:
            return ServiceResult(success=False, errors=[err])
        height = self._clock.advance(blocks)
        data: dict[str, Any] = {"height": height}
        warning = self._safe_persist_post_audit()
        if warning:
            data["persistence_warning"] = warning
        return ServiceResult(success=True, data=data)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Return registry-wide status summary."""
        records = self._registry.records()
        policy = self._registry.policy
        return {
            "version": __version__,
            "policy_version": self._resolver.version,
            "height": self._clock.current,
            "pledges": {
                "total": self._registry.pledge_count,
                "fulfilled": sum(
                    1 for r in records
                    if r.commitment is not None and r.commitment.fulfilled
                ),
                "with_priority": sum(1 for r in records if r.priority is not None),
                "with_deadline": sum(1 for r in records if r.temporal_bound is not None),
                "orphaned": sum(1 for r in records if r.commitment is None),
            },
            "policy": {
                "max_text_length": policy.max_text_length,
                "priority_levels": sorted(policy.priority_levels),
                "open_delegation": policy.open_delegation,
                "cascade_on_terminate": policy.cascade_on_terminate,
            },
            "events": self._event_log.count,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _mutate(
        self,
        caller: str,
        owner: str,
        kind: EventKind,
        operation: Callable[[], PledgeResult],
        extra: Optional[dict[str, Any]] = None,
    ) -> ServiceResult:
        """Run a registry mutation with fail-closed audit recording.

        If the audit append fails, the owner's record is restored to its
        pre-operation snapshot and an error is returned.
        """
        before = self._registry.snapshot(owner)
        result = operation()
        if not result.success:
            return ServiceResult(
                success=False,
                errors=[result.error.message],
                error_kind=result.error.kind,
            )

        payload = dict(result.data)
        if extra:
            payload.update(extra)
        err = self._record_event(kind, caller, payload)
        if err:
            self._registry.restore(owner, before)
            return ServiceResult(success=False, errors=[err])

        data = dict(result.data)
        warning = self._safe_persist_post_audit()
        if warning:
            data["persistence_warning"] = warning
        return ServiceResult(success=True, data=data)

    def _next_event_id(self) -> str:
        self._event_counter += 1
        return f"EVT-{self._event_counter:08d}"

    def _record_event(
        self, kind: EventKind, actor_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event. Returns error string or None."""
        try:
            event = EventRecord.create(
                event_id=self._next_event_id(),
                event_kind=kind,
                actor_id=actor_id,
                payload=payload,
            )
            self._event_log.append(event)
        except (ValueError, OSError) as e:
            return f"Event log failure: {e}"
        return None

    def _persist_state(self) -> None:
        """Persist current state to the state store (if wired)."""
        if self._state_store is None:
            return
        self._state_store.save_all(self._registry.records(), self._clock.current)

    def _safe_persist_post_audit(self) -> Optional[str]:
        """Persist state after audit events have been committed.

        MUST NOT rollback in-memory state — the audit trail is already
        durable. On failure, sets _persistence_degraded and returns a
        warning string (not a hard error).
        """
        try:
            self._persist_state()
            return None
        except OSError as e:
            self._persistence_degraded = True
            return f"Persistence degraded: {e} — state committed in audit trail but StateStore is stale"
