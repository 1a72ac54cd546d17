"""Tests for PledgeService — proves the facade orchestrates correctly."""

import json
import pytest
from pathlib import Path

from pledges.clock import HeightClock
from pledges.models.pledge import PledgeErrorKind, PledgeRecord, TemporalBound
from pledges.persistence.event_log import EventKind, EventLog, EventRecord
from pledges.persistence.state_store import StateStore
from pledges.policy.resolver import PolicyResolver
from pledges.service import PledgeService


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


class _FailingEventLog(EventLog):
    def append(self, event: EventRecord) -> None:
        raise OSError("disk full")


class _FailingStateStore(StateStore):
    def save_all(self, records: list[PledgeRecord], height: int) -> None:
        raise OSError("read-only filesystem")


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def service(resolver: PolicyResolver) -> PledgeService:
    return PledgeService(resolver, clock=HeightClock(start=50))


class TestLifecycle:
    def test_initialize_and_verify(self, service: PledgeService) -> None:
        result = service.initialize("alice", "finish report")
        assert result.success
        view = service.verify("alice")
        assert view.success
        assert view.data == {"exists": True, "text_length": 13, "fulfilled": False}

    def test_error_kind_surfaces(self, service: PledgeService) -> None:
        result = service.initialize("alice", "")
        assert not result.success
        assert result.error_kind == PledgeErrorKind.INVALID_INPUT
        assert result.errors

    def test_verify_absent_succeeds(self, service: PledgeService) -> None:
        result = service.verify("nobody")
        assert result.success
        assert result.data["exists"] is False

    def test_deadline_uses_clock(self, service: PledgeService) -> None:
        service.initialize("alice", "a")
        result = service.set_temporal_boundary("alice", 100)
        assert result.data["deadline_height"] == 150
        assert service.get_temporal_bound("alice") == TemporalBound(150, False)

    def test_deadline_after_advance(self, service: PledgeService) -> None:
        service.initialize("alice", "a")
        service.advance_height(25)
        service.set_temporal_boundary("alice", 10)
        assert service.get_temporal_bound("alice").deadline_height == 85

    def test_delegate_and_terminate(self, service: PledgeService) -> None:
        assert service.delegate("alice", "bob", "review draft").success
        assert service.verify("bob").data["exists"] is True
        assert service.terminate("bob").success
        assert service.verify("bob").data["exists"] is False

    def test_end_to_end(self, service: PledgeService) -> None:
        assert service.initialize("A", "finish report").success
        assert service.assign_priority("A", 2).success
        assert service.set_temporal_boundary("A", 100).data["deadline_height"] == 150
        assert service.modify("A", "finish report v2", True).success
        assert service.verify("A").data == {"exists": True, "text_length": 16, "fulfilled": True}
        assert service.terminate("A").success
        assert service.verify("A").data["exists"] is False
        assert service.get_priority("A") == 2
        assert service.get_temporal_bound("A").deadline_height == 150

    def test_describe(self, service: PledgeService) -> None:
        service.initialize("alice", "a")
        service.assign_priority("alice", 3)
        info = service.describe("alice")
        assert info["state"] == "present"
        assert info["priority"] == 3
        assert info["temporal_bound"] is None
        assert "text" not in info["pledge"]


class TestClock:
    def test_advance(self, service: PledgeService) -> None:
        result = service.advance_height(10)
        assert result.success
        assert result.data["height"] == 60
        assert service.clock.current == 60

    def test_negative_advance_rejected(self, service: PledgeService) -> None:
        result = service.advance_height(-1)
        assert result.error_kind == PledgeErrorKind.INVALID_INPUT
        assert service.clock.current == 50

    def test_advance_does_not_touch_alerts(self, service: PledgeService) -> None:
        service.initialize("alice", "a")
        service.set_temporal_boundary("alice", 1)
        service.advance_height(1000)
        assert service.get_temporal_bound("alice").alert_activated is False


class TestAuditTrail:
    def test_mutations_are_logged(self, service: PledgeService) -> None:
        service.initialize("alice", "finish report")
        service.assign_priority("alice", 2)
        service.set_temporal_boundary("alice", 10)
        service.set_alert("alice", True)
        service.modify("alice", "done", True)
        service.delegate("alice", "bob", "for bob")
        service.terminate("alice")
        kinds = [e.event_kind for e in service.event_log.events()]
        assert kinds == [
            EventKind.PLEDGE_INITIALIZED,
            EventKind.PRIORITY_ASSIGNED,
            EventKind.TEMPORAL_BOUND_SET,
            EventKind.ALERT_TOGGLED,
            EventKind.PLEDGE_MODIFIED,
            EventKind.PLEDGE_DELEGATED,
            EventKind.PLEDGE_TERMINATED,
        ]

    def test_reads_and_failures_not_logged(self, service: PledgeService) -> None:
        service.verify("alice")
        service.modify("alice", "x", True)
        service.initialize("alice", "")
        assert service.event_log.count == 0

    def test_payload_excludes_text(self, service: PledgeService) -> None:
        service.initialize("alice", "very private plan")
        event = service.event_log.last_event
        assert "very private plan" not in str(event.payload)
        assert event.actor_id == "alice"

    def test_delegation_logged_under_caller(self, service: PledgeService) -> None:
        service.delegate("alice", "bob", "for bob")
        event = service.event_log.last_event
        assert event.actor_id == "alice"
        assert event.payload["owner"] == "bob"

    def test_event_failure_rolls_back(self, resolver: PolicyResolver) -> None:
        service = PledgeService(resolver, event_log=_FailingEventLog())
        result = service.initialize("alice", "a")
        assert not result.success
        assert "Event log failure" in result.errors[0]
        assert service.verify("alice").data["exists"] is False

    def test_event_failure_restores_prior_record(self, resolver: PolicyResolver) -> None:
        service = PledgeService(resolver)
        service.initialize("alice", "a")
        service.assign_priority("alice", 1)
        service._event_log = _FailingEventLog()
        assert not service.assign_priority("alice", 3).success
        assert not service.terminate("alice").success
        assert service.get_priority("alice") == 1
        assert service.verify("alice").data["exists"] is True

    def test_event_failure_leaves_clock(self, resolver: PolicyResolver) -> None:
        service = PledgeService(resolver, event_log=_FailingEventLog())
        assert not service.advance_height(5).success
        assert service.clock.current == 0


class TestPersistence:
    def test_state_survives_restart(self, resolver: PolicyResolver, tmp_path: Path) -> None:
        log_path = tmp_path / "events.jsonl"
        state_path = tmp_path / "state.json"
        service = PledgeService(
            resolver,
            event_log=EventLog(log_path),
            state_store=StateStore(state_path),
        )
        service.advance_height(50)
        service.initialize("alice", "finish report")
        service.assign_priority("alice", 2)
        service.set_temporal_boundary("alice", 100)
        service.terminate("alice")

        restarted = PledgeService(
            resolver,
            event_log=EventLog(log_path),
            state_store=StateStore(state_path),
        )
        assert restarted.clock.current == 50
        assert restarted.verify("alice").data["exists"] is False
        assert restarted.get_priority("alice") == 2
        assert restarted.get_temporal_bound("alice").deadline_height == 150
        # Event IDs continue from the persisted log
        assert restarted.initialize("alice", "again").success
        assert restarted.event_log.count == 6

    def test_store_failure_marks_degraded(self, resolver: PolicyResolver, tmp_path: Path) -> None:
        service = PledgeService(resolver, state_store=_FailingStateStore(tmp_path / "s.json"))
        result = service.initialize("alice", "a")
        assert result.success
        assert "persistence_warning" in result.data
        assert service.status()["persistence_degraded"] is True
        assert service.verify("alice").data["exists"] is True

    def test_invalid_stored_record_refused(self, resolver: PolicyResolver, tmp_path: Path) -> None:
        state_path = tmp_path / "state.json"
        state_path.write_text(
            json.dumps({
                "height": 0,
                "pledges": [{
                    "owner": "alice",
                    "commitment": {"text": "", "fulfilled": "yes"},
                    "priority": 7,
                    "temporal_bound": None,
                }],
            }),
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="Invalid pledge record on load for alice"):
            PledgeService(resolver, state_store=StateStore(state_path))


class TestStatus:
    def test_counts(self, service: PledgeService) -> None:
        service.initialize("alice", "a")
        service.modify("alice", "a", True)
        service.initialize("bob", "b")
        service.assign_priority("bob", 1)
        service.set_temporal_boundary("bob", 5)
        service.terminate("bob")
        status = service.status()
        assert status["height"] == 50
        assert status["pledges"] == {
            "total": 1,
            "fulfilled": 1,
            "with_priority": 1,
            "with_deadline": 1,
            "orphaned": 1,
        }
        assert status["policy"]["priority_levels"] == [1, 2, 3]
        assert status["events"] == 6
