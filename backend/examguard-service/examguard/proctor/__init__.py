"""
ExamGuard Proctoring Module

Watches a candidate's webcam during a timed exam:
- Periodic presence checks (no face / several people)
- Tab switches and window focus loss
- Snapshot evidence for every recorded incident

Produces an incident timeline and an Integrity Score (0-100) per session.
"""

from .api import router

__all__ = ["router"]
