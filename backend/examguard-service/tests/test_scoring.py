"""
Tests for Integrity Scoring, Flags and Metrics Aggregation
"""
from examguard.proctor.events import ViolationEvent, ViolationKind
from examguard.proctor.fuser import Timeline
from examguard.proctor.metrics import MetricsAggregator
from examguard.proctor.scoring import FlagGenerator, IntegrityScorer


def timeline_of(*kinds):
    timeline = Timeline()
    for i, kind in enumerate(kinds):
        timeline.append(ViolationEvent(timestamp=i, kind=kind, message=kind.value))
    return timeline


class TestMetricsAggregator:
    """Counts derived from the timeline"""

    def test_ai_alerts_exclude_focus_loss(self):
        timeline = timeline_of(
            ViolationKind.CRITICAL,
            ViolationKind.WARNING,
            ViolationKind.FOCUS_LOST,
            ViolationKind.FOCUS_LOST,
        )

        metrics = MetricsAggregator.from_timeline("EXM_1", timeline)

        assert metrics.total_entries == 4
        assert metrics.ai_alerts == 2
        assert metrics.tab_activity == 2
        assert metrics.get_counts() == {
            "face_absence": 1.0,
            "presence_warning": 1.0,
            "tab_switches": 2.0,
        }

    def test_summary(self):
        metrics = MetricsAggregator.from_timeline("EXM_1", timeline_of(ViolationKind.CRITICAL))
        summary = metrics.get_summary()

        assert summary["session_id"] == "EXM_1"
        assert summary["counts_by_kind"]["CRITICAL"] == 1
        assert summary["counts_by_kind"]["FOCUS_LOST"] == 0


class TestIntegrityScorer:
    """Penalty-based integrity score"""

    def test_clean_session_scores_100(self):
        scorer = IntegrityScorer()
        assert scorer.compute({}) == 100
        assert scorer.get_grade(100) == "A"

    def test_penalties_applied(self):
        scorer = IntegrityScorer()
        score = scorer.compute({"face_absence": 1, "presence_warning": 1, "tab_switches": 1})
        assert score == 100 - 15 - 10 - 8

    def test_score_clamped_at_zero(self):
        scorer = IntegrityScorer()
        breakdown = scorer.compute_breakdown({"face_absence": 50, "tab_switches": 50})

        assert breakdown["integrity_score"] == 0
        assert breakdown["penalties"]["face_absence"]["count"] == IntegrityScorer.MAX_INCIDENTS_PER_METRIC
        assert scorer.get_grade(0) == "F"

    def test_custom_weights(self):
        scorer = IntegrityScorer(weights={"tab_switches": 1.0})
        assert scorer.compute({"tab_switches": 5}) == 95


class TestFlagGenerator:
    """Review flags from incident counts"""

    def test_thresholds(self):
        flagger = FlagGenerator()

        assert flagger.generate({"tab_switches": 2}) == []
        assert flagger.generate({"tab_switches": 3}) == ["tab_switches"]
        assert flagger.generate({"face_absence": 1, "presence_warning": 2}) == [
            "face_absence",
            "presence_warning",
        ]

    def test_face_absence_always_reviewed(self):
        flagger = FlagGenerator()
        assert flagger.requires_review(["face_absence"], 95)

    def test_low_score_reviewed(self):
        assert FlagGenerator().requires_review([], 59)

    def test_single_minor_flag_not_reviewed(self):
        assert not FlagGenerator().requires_review(["tab_switches"], 76)
