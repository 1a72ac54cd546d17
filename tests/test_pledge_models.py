"""Tests for pledge data models."""

from pledges.models.pledge import (
    Commitment,
    PledgeErrorKind,
    PledgeRecord,
    PledgeResult,
    PledgeState,
    PledgeView,
    TemporalBound,
)


class TestPledgeRecord:
    def test_state_follows_commitment(self) -> None:
        record = PledgeRecord(owner="alice")
        assert record.state == PledgeState.ABSENT
        record.commitment = Commitment(text="x")
        assert record.state == PledgeState.PRESENT

    def test_is_empty(self) -> None:
        assert PledgeRecord(owner="a").is_empty
        assert not PledgeRecord(owner="a", priority=1).is_empty
        assert not PledgeRecord(owner="a", temporal_bound=TemporalBound(5)).is_empty

    def test_defaults(self) -> None:
        assert Commitment(text="x").fulfilled is False
        assert TemporalBound(deadline_height=5).alert_activated is False


class TestPledgeView:
    def test_absent_shape(self) -> None:
        assert PledgeView.absent().to_dict() == {
            "exists": False, "text_length": 0, "fulfilled": False,
        }

    def test_projection_hides_text(self) -> None:
        view = PledgeView.of(Commitment(text="secret plan", fulfilled=True))
        assert view.to_dict() == {"exists": True, "text_length": 11, "fulfilled": True}


class TestPledgeResult:
    def test_ok(self) -> None:
        result = PledgeResult.ok(owner="a")
        assert result.success
        assert result.error is None
        assert result.data == {"owner": "a"}

    def test_fail(self) -> None:
        result = PledgeResult.fail(PledgeErrorKind.NOT_FOUND, "missing")
        assert not result.success
        assert result.error.kind == PledgeErrorKind.NOT_FOUND
        assert result.error.message == "missing"
        assert result.data == {}
