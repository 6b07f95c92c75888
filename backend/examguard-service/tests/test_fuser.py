"""
Tests for the Violation Fuser, Timeline and Alert Board
"""
import pytest
from unittest.mock import Mock

from examguard.proctor.events import AlertCategory, DetectionResult, ViolationEvent, ViolationKind
from examguard.proctor.fuser import AlertBoard, Timeline, ViolationFuser

from conftest import CROWD, NOBODY, SAFE


class TestDetectionResult:
    """Safe/unsafe classification of oracle output"""

    def test_exactly_one_present_is_safe(self):
        assert SAFE.is_safe
        assert SAFE.violation_kind is None

    def test_nobody_is_critical(self):
        assert NOBODY.violation_kind == ViolationKind.CRITICAL

    def test_several_people_is_warning(self):
        assert CROWD.violation_kind == ViolationKind.WARNING

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            DetectionResult(person_present=False, count=-1, description="bad")


class TestTimeline:
    """Append-only ordered log"""

    def test_arrival_order_kept(self):
        timeline = Timeline()
        late = ViolationEvent(timestamp=200, kind=ViolationKind.WARNING, message="late")
        early = ViolationEvent(timestamp=100, kind=ViolationKind.FOCUS_LOST, message="early")

        timeline.append(late)
        timeline.append(early)

        assert list(timeline) == [late, early]
        assert timeline.descending() == [late, early]

    def test_descending_sorts_by_timestamp(self):
        timeline = Timeline()
        for ts in (300, 100, 200):
            timeline.append(ViolationEvent(timestamp=ts, kind=ViolationKind.CRITICAL, message=str(ts)))

        assert [e.timestamp for e in timeline.descending()] == [300, 200, 100]
        # Underlying order is untouched
        assert [e.timestamp for e in timeline] == [300, 100, 200]

    def test_entries_is_a_snapshot(self):
        timeline = Timeline()
        snapshot = timeline.entries
        timeline.append(ViolationEvent(timestamp=1, kind=ViolationKind.WARNING, message="x"))

        assert snapshot == ()
        assert len(timeline) == 1

    def test_count_by_kind_includes_all_kinds(self):
        timeline = Timeline()
        timeline.append(ViolationEvent(timestamp=1, kind=ViolationKind.FOCUS_LOST, message="a"))
        timeline.append(ViolationEvent(timestamp=2, kind=ViolationKind.FOCUS_LOST, message="b"))

        counts = timeline.count_by_kind()
        assert counts[ViolationKind.FOCUS_LOST] == 2
        assert counts[ViolationKind.CRITICAL] == 0
        assert set(counts) == set(ViolationKind)


class TestAlertBoard:
    """Alerts expire after their category's window"""

    def test_ai_alert_lasts_three_seconds(self, wall_clock):
        board = AlertBoard(clock=wall_clock)
        board.raise_alert(AlertCategory.AI)

        wall_clock.advance(2999)
        assert board.is_active(AlertCategory.AI)
        wall_clock.advance(1)
        assert not board.is_active(AlertCategory.AI)

    def test_focus_alert_lasts_five_seconds(self, wall_clock):
        board = AlertBoard(clock=wall_clock)
        board.raise_alert(AlertCategory.FOCUS_LOST)

        wall_clock.advance(4000)
        assert board.active() == [AlertCategory.FOCUS_LOST]
        wall_clock.advance(1000)
        assert board.active() == []

    def test_reraise_restarts_window(self, wall_clock):
        board = AlertBoard(clock=wall_clock)
        board.raise_alert(AlertCategory.AI)
        wall_clock.advance(2000)
        board.raise_alert(AlertCategory.AI)
        wall_clock.advance(2000)

        assert board.is_active(AlertCategory.AI)

    def test_custom_durations(self, wall_clock):
        board = AlertBoard(durations_ms={AlertCategory.AI: 100}, clock=wall_clock)
        board.raise_alert(AlertCategory.AI)
        wall_clock.advance(100)

        assert not board.is_active(AlertCategory.AI)
        assert board.durations_ms[AlertCategory.FOCUS_LOST] == 5000


class TestViolationFuser:
    """Both writers funnel through the fuser"""

    def test_forced_entry_always_appended(self, wall_clock):
        fuser = ViolationFuser(clock=wall_clock)

        event = fuser.record_forced("User switched tabs or minimized window.", evidence="data:image/jpeg;base64,AAAA")

        assert event.kind == ViolationKind.FOCUS_LOST
        assert event.timestamp == wall_clock.now
        assert fuser.timeline.entries == (event,)
        assert fuser.alerts.is_active(AlertCategory.FOCUS_LOST)
        assert not fuser.alerts.is_active(AlertCategory.AI)

    def test_forced_entry_default_message(self, wall_clock):
        fuser = ViolationFuser(clock=wall_clock)
        event = fuser.record_forced("")
        assert event.message == "System integrity event."

    def test_safe_detection_ignored(self, wall_clock):
        fuser = ViolationFuser(clock=wall_clock)

        assert fuser.record_detected(SAFE, evidence="data:,") is None
        assert len(fuser.timeline) == 0
        assert fuser.alerts.active() == []

    def test_unsafe_detection_recorded(self, wall_clock):
        fuser = ViolationFuser(clock=wall_clock)

        event = fuser.record_detected(CROWD, evidence="data:,", timestamp=42)

        assert event.kind == ViolationKind.WARNING
        assert event.timestamp == 42
        assert event.message == "Multiple people detected (2)."
        assert fuser.alerts.is_active(AlertCategory.AI)

    def test_callback_invoked_once_per_entry(self, wall_clock):
        callback = Mock()
        fuser = ViolationFuser(on_violation=callback, clock=wall_clock)

        fuser.record_detected(SAFE, evidence=None)
        first = fuser.record_detected(NOBODY, evidence=None)
        second = fuser.record_forced("blur")

        assert callback.call_count == 2
        callback.assert_any_call(first)
        callback.assert_any_call(second)

    def test_callback_error_does_not_lose_entry(self, wall_clock):
        fuser = ViolationFuser(on_violation=Mock(side_effect=RuntimeError("consumer down")), clock=wall_clock)

        fuser.record_forced("User switched tabs or minimized window.")

        assert len(fuser.timeline) == 1

    def test_event_serialization(self):
        event = ViolationEvent(timestamp=5, kind=ViolationKind.CRITICAL, message="No face detected in the frame.")
        assert event.to_dict() == {
            "timestamp": 5,
            "kind": "CRITICAL",
            "message": "No face detected in the frame.",
            "evidence": None,
        }
