"""
Proctoring Events - Value types shared by the oracle, loop and fuser
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ViolationKind(str, Enum):
    """Severity/category of a timeline entry"""
    NORMAL = "NORMAL"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    FOCUS_LOST = "FOCUS_LOST"


class AlertCategory(str, Enum):
    """Transient alert channels, each with its own display window"""
    AI = "AI"
    FOCUS_LOST = "FOCUS_LOST"


@dataclass(frozen=True)
class DetectionResult:
    """
    Normalized oracle output for one frame.

    Only ``count == 1 and person_present`` is considered safe.
    ``degraded`` marks a substituted default after an oracle failure.
    """

    person_present: bool
    count: int
    description: str
    degraded: bool = False

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"count must be non-negative, got {self.count}")

    @property
    def is_safe(self) -> bool:
        return self.person_present and self.count == 1

    @property
    def violation_kind(self) -> Optional[ViolationKind]:
        """Kind of entry this result produces, or None when safe"""
        if self.is_safe:
            return None
        if self.count == 0:
            return ViolationKind.CRITICAL
        return ViolationKind.WARNING

    def to_dict(self) -> dict:
        return {
            "person_present": self.person_present,
            "count": self.count,
            "description": self.description,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class ViolationEvent:
    """One immutable entry in the session timeline"""

    timestamp: int
    kind: ViolationKind
    message: str
    evidence: Optional[str] = None  # data: URL of the JPEG snapshot

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "kind": self.kind.value,
            "message": self.message,
            "evidence": self.evidence,
        }
