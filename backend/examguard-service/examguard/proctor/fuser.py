"""
Violation Event Fuser - Merges AI detections and forced focus events

Both the proctoring loop and the focus-signal path write here. The
timeline only ever grows; alerts are a separate, self-expiring view.
"""

import logging
from collections import Counter
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .events import AlertCategory, DetectionResult, ViolationEvent, ViolationKind
from .sampler import epoch_ms
from .utils.logging import log_violation_recorded

logger = logging.getLogger(__name__)

ViolationCallback = Callable[[ViolationEvent], None]


class Timeline:
    """Append-only, arrival-ordered list of violation events"""

    def __init__(self):
        self._entries: List[ViolationEvent] = []

    def append(self, event: ViolationEvent) -> None:
        self._entries.append(event)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ViolationEvent]:
        return iter(tuple(self._entries))

    @property
    def entries(self) -> Tuple[ViolationEvent, ...]:
        return tuple(self._entries)

    def descending(self) -> List[ViolationEvent]:
        """Entries newest-first by capture time, for display"""
        return sorted(self._entries, key=lambda e: e.timestamp, reverse=True)

    def count_by_kind(self) -> Dict[ViolationKind, int]:
        counts = Counter(e.kind for e in self._entries)
        return {kind: counts.get(kind, 0) for kind in ViolationKind}


class AlertBoard:
    """
    Transient alerts, one window per category.

    Raising an alert (re)starts its window; expiry is evaluated lazily
    against the clock.
    """

    DEFAULT_DURATIONS_MS = {
        AlertCategory.AI: 3000,
        AlertCategory.FOCUS_LOST: 5000,
    }

    def __init__(
        self,
        durations_ms: Optional[Dict[AlertCategory, int]] = None,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.durations_ms = dict(self.DEFAULT_DURATIONS_MS)
        if durations_ms:
            self.durations_ms.update(durations_ms)
        self._clock = clock
        self._expires_at: Dict[AlertCategory, int] = {}

    def raise_alert(self, category: AlertCategory) -> None:
        self._expires_at[category] = self._clock() + self.durations_ms[category]

    def is_active(self, category: AlertCategory) -> bool:
        expires_at = self._expires_at.get(category)
        return expires_at is not None and self._clock() < expires_at

    def active(self) -> List[AlertCategory]:
        return [c for c in AlertCategory if self.is_active(c)]


class ViolationFuser:
    """
    Single writer interface to the session timeline.

    ``on_violation`` is called once for every appended entry.
    """

    def __init__(
        self,
        on_violation: Optional[ViolationCallback] = None,
        alerts: Optional[AlertBoard] = None,
        clock: Callable[[], int] = epoch_ms,
        session_id: str = "-",
    ):
        self.timeline = Timeline()
        self.alerts = alerts or AlertBoard(clock=clock)
        self.on_violation = on_violation
        self.session_id = session_id
        self._clock = clock

    def _append(self, event: ViolationEvent) -> ViolationEvent:
        self.timeline.append(event)
        log_violation_recorded(self.session_id, event.kind.value, event.message, event.evidence is not None)

        if self.on_violation is not None:
            try:
                self.on_violation(event)
            except Exception:
                logger.exception(f"on_violation consumer failed for {event.kind.value} entry")
        return event

    def record_forced(
        self,
        message: str,
        kind: ViolationKind = ViolationKind.FOCUS_LOST,
        evidence: Optional[str] = None,
        timestamp: Optional[int] = None,
    ) -> ViolationEvent:
        """Append a system event unconditionally and raise the focus alert"""
        event = ViolationEvent(
            timestamp=self._clock() if timestamp is None else timestamp,
            kind=kind,
            message=message or "System integrity event.",
            evidence=evidence,
        )
        self.alerts.raise_alert(AlertCategory.FOCUS_LOST)
        return self._append(event)

    def record_detected(
        self,
        result: DetectionResult,
        evidence: Optional[str],
        timestamp: Optional[int] = None,
    ) -> Optional[ViolationEvent]:
        """Append an entry only for unsafe results and raise the AI alert"""
        kind = result.violation_kind
        if kind is None:
            return None

        event = ViolationEvent(
            timestamp=self._clock() if timestamp is None else timestamp,
            kind=kind,
            message=result.description,
            evidence=evidence,
        )
        self.alerts.raise_alert(AlertCategory.AI)
        return self._append(event)
