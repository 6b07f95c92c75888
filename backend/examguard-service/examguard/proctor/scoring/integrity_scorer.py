"""
Integrity Scorer - Turns incident counts into a 0-100 integrity score
"""

import logging
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class IntegrityScorer:
    """
    Starts every session at 100 and deducts a fixed penalty per incident:

        score = 100 - 15 * face_absence - 10 * presence_warning - 8 * tab_switches

    Each incident type stops counting after MAX_INCIDENTS_PER_METRIC
    occurrences. The result is clamped to 0-100.
    """

    # Points lost per recorded incident
    WEIGHTS: Dict[str, float] = {
        "face_absence": 15.0,
        "presence_warning": 10.0,
        "tab_switches": 8.0
    }

    MAX_INCIDENTS_PER_METRIC = 10

    # (minimum score, grade), best first
    GRADE_BANDS: Tuple[Tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = {**self.WEIGHTS, **(weights or {})}

    def compute(self, counts: Dict[str, float]) -> int:
        """Integrity score for a set of incident counts (higher is better)"""
        return self.compute_breakdown(counts)["integrity_score"]

    def compute_breakdown(self, counts: Dict[str, float]) -> Dict[str, object]:
        """
        Score plus the penalty contributed by each incident type.

        Args:
            counts: Incident name -> number of occurrences

        Returns:
            Dict with integrity_score, penalties and total_penalty
        """
        penalties = {}
        for name, weight in self.weights.items():
            capped = min(counts.get(name, 0.0), self.MAX_INCIDENTS_PER_METRIC)
            penalties[name] = {"count": capped, "weight": weight, "penalty": round(weight * capped, 2)}

        total = sum(p["penalty"] for p in penalties.values())
        integrity_score = int(round(min(100.0, max(0.0, 100.0 - total))))
        logger.debug(f"Integrity score {integrity_score} (penalty {total:.1f})")

        return {
            "integrity_score": integrity_score,
            "penalties": penalties,
            "total_penalty": round(total, 2)
        }

    def get_grade(self, score: int) -> str:
        """Letter grade A-F for an integrity score"""
        for floor, grade in self.GRADE_BANDS:
            if score >= floor:
                return grade
        return "F"
