"""
Proctoring Logger - One-line records of session and timeline activity

Every line starts with ``[PROCTOR] session=<id> event=<name>`` followed by
``key=value`` pairs so logs can be grepped per session.
"""

import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


def _format(session_id: str, event_type: str, details: Optional[Dict[str, Any]]) -> str:
    parts = [f"[PROCTOR] session={session_id} event={event_type}"]
    parts.extend(f"{key}={value}" for key, value in (details or {}).items())
    return " ".join(parts)


def log_proctor_event(
    session_id: str,
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Args:
        session_id: Exam session ID
        event_type: e.g. warming_up, active, check, violation, session_end
        details: Extra key/value pairs for the line
        level: debug, info, warning or error
    """
    logger.log(getattr(logging, level.upper(), logging.INFO), _format(session_id, event_type, details))


def log_session_start(session_id: str, strategy: str, check_interval_ms: int):
    log_proctor_event(session_id, "session_start", {"strategy": strategy, "check_interval_ms": check_interval_ms})


def log_session_end(session_id: str, integrity_score: int, entries: int, flags: Iterable[str]):
    log_proctor_event(
        session_id,
        "session_end",
        {"integrity_score": integrity_score, "timeline_entries": entries, "flags": ",".join(flags) or "none"},
    )


def log_violation_recorded(session_id: str, kind: str, message: str, has_evidence: bool):
    """Timeline append; warning level so incidents stand out"""
    log_proctor_event(
        session_id,
        "violation",
        {"kind": kind, "evidence": "yes" if has_evidence else "no", "message": repr(message)},
        level="warning",
    )


def log_critical_event(session_id: str, event: str, details: Optional[Dict[str, Any]] = None):
    log_proctor_event(session_id, f"critical_{event}", details, level="warning")
