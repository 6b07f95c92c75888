"""
Metrics Aggregator - Aggregates timeline entries for a proctoring session
"""

import logging
from typing import Dict, Any
from dataclasses import dataclass, field

from ..events import ViolationKind
from ..fuser import Timeline

logger = logging.getLogger(__name__)


@dataclass
class MetricsAggregator:
    """
    Counts timeline entries for reporting.

    AI alerts are every entry not caused by a focus signal;
    tab activity is the FOCUS_LOST entries.
    """

    session_id: str

    total_entries: int = 0
    counts: Dict[ViolationKind, int] = field(default_factory=dict)

    @classmethod
    def from_timeline(cls, session_id: str, timeline: Timeline) -> "MetricsAggregator":
        metrics = cls(session_id=session_id)
        metrics.update(timeline)
        return metrics

    def update(self, timeline: Timeline):
        """
        Recount from the timeline.

        Args:
            timeline: Session timeline (never mutated here)
        """
        self.counts = timeline.count_by_kind()
        self.total_entries = len(timeline)

    @property
    def ai_alerts(self) -> int:
        return self.total_entries - self.counts.get(ViolationKind.FOCUS_LOST, 0)

    @property
    def tab_activity(self) -> int:
        return self.counts.get(ViolationKind.FOCUS_LOST, 0)

    def get_counts(self) -> Dict[str, float]:
        """
        Metric values keyed the way the scorer and flagger expect.

        Returns:
            Dict with metric names and their counts
        """
        return {
            "face_absence": float(self.counts.get(ViolationKind.CRITICAL, 0)),
            "presence_warning": float(self.counts.get(ViolationKind.WARNING, 0)),
            "tab_switches": float(self.tab_activity),
        }

    def get_summary(self) -> Dict[str, Any]:
        """
        Get complete metrics summary.

        Returns:
            Dict with all aggregated metrics
        """
        return {
            "session_id": self.session_id,
            "total_entries": self.total_entries,
            "ai_alerts": self.ai_alerts,
            "tab_activity": self.tab_activity,
            "counts_by_kind": {kind.value: n for kind, n in self.counts.items()},
        }
