"""
Flag Generator - Marks incident types that need a proctor's attention
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class FlagGenerator:
    """
    Raises a flag for each incident type whose count reaches its threshold.

    A session is sent to manual review when it has a critical flag, a low
    integrity score, or several flags at once.
    """

    # Occurrences needed before an incident type is flagged
    THRESHOLDS: Dict[str, float] = {
        "face_absence": 1.0,       # Candidate left the frame at least once
        "presence_warning": 2.0,   # Extra people / not facing the camera
        "tab_switches": 3.0        # Repeated focus losses
    }

    CRITICAL_FLAGS = ("face_absence",)
    REVIEW_SCORE_THRESHOLD = 60
    MIN_FLAGS_FOR_REVIEW = 2

    def __init__(self, thresholds: Optional[Dict[str, float]] = None):
        self.thresholds = {**self.THRESHOLDS, **(thresholds or {})}

    def generate(self, counts: Dict[str, float]) -> List[str]:
        """
        Args:
            counts: Incident name -> number of occurrences

        Returns:
            Flagged incident names, in threshold order
        """
        flags = [name for name, limit in self.thresholds.items() if counts.get(name, 0.0) >= limit]
        for name in flags:
            logger.info(f"Flag triggered: {name} ({counts.get(name, 0.0):.0f} >= {self.thresholds[name]:.0f})")
        return flags

    def requires_review(self, flags: List[str], score: int) -> bool:
        """True if a human should look at this session"""
        return (
            any(flag in self.CRITICAL_FLAGS for flag in flags)
            or score < self.REVIEW_SCORE_THRESHOLD
            or len(flags) >= self.MIN_FLAGS_FOR_REVIEW
        )
