"""
Proctoring API - FastAPI endpoints for proctored exams

Endpoints:
- POST /api/proctor/start - Create an exam session
- POST /api/proctor/begin - Start testing and activate proctoring
- POST /api/proctor/frame - Push a webcam frame from the browser
- POST /api/proctor/focus-event - Report a visibility/focus transition
- POST /api/proctor/answer - Answer the current question
- POST /api/proctor/retry-camera - Retry a failed activation
- POST /api/proctor/stop - Finish the exam and get the report
- GET /api/proctor/status/{session_id} - Get session status
- GET /api/proctor/report/{session_id} - Get the report
"""

import base64
import binascii
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field

from ..config import settings
from .detectors import build_oracle
from .models.model_loader import check_models
from .sampler import CameraSource, PushedFrameSource, VideoSource
from .session import ExamPhase, ExamSession, FocusSignal, SessionStateError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proctor", tags=["Proctoring"])

# In-memory session storage
_sessions: Dict[str, ExamSession] = {}

# Finished sessions stay readable this long
SESSION_RETENTION_SECONDS = 300


# ============== Request/Response Models ==============

class SourceKind(str, Enum):
    BROWSER = "browser"
    CAMERA = "camera"


class StartSessionRequest(BaseModel):
    """Request to create an exam session"""
    student_id: Optional[str] = Field(None, description="ID of the student")
    source: SourceKind = Field(SourceKind.BROWSER, description="Where frames come from")


class StartSessionResponse(BaseModel):
    """Response after creating a session"""
    session_id: str
    phase: str
    source: str
    strategy: str
    total_questions: int
    time_limit_seconds: int
    message: str


class SessionRequest(BaseModel):
    """Request addressing an existing session"""
    session_id: str


class ActivationResponse(BaseModel):
    """Proctoring state after begin/retry"""
    session_id: str
    phase: str
    proctoring_active: bool
    error: Optional[str] = None
    error_message: Optional[str] = None
    question: Optional[Dict[str, Any]] = None


class PushFrameRequest(BaseModel):
    """Request to push a webcam frame"""
    session_id: str
    frame_base64: str = Field(..., description="Base64 JPEG, optionally as a data: URL")


class PushFrameResponse(BaseModel):
    accepted: bool
    camera_ready: bool


class FocusEventRequest(BaseModel):
    """A focus/visibility transition observed by the client"""
    session_id: str
    signal: FocusSignal


class FocusEventResponse(BaseModel):
    recorded: bool
    event: Optional[Dict[str, Any]] = None
    incident_count: int
    active_alerts: List[str]


class AnswerRequest(BaseModel):
    """Answer for the current question"""
    session_id: str
    option: int = Field(..., ge=0, description="Index of the selected option")


class AnswerResponse(BaseModel):
    recorded: bool
    question_id: int
    phase: str
    question_index: int
    finished: bool


class ModelStatusResponse(BaseModel):
    """Detection backend availability"""
    strategy: str
    face_cascade: bool
    gemini_configured: bool


# ============== Helpers ==============

def _get_session(session_id: str) -> ExamSession:
    session = _sessions.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _build_source(kind: SourceKind) -> VideoSource:
    if kind == SourceKind.CAMERA:
        return CameraSource(
            index=settings.CAMERA_INDEX,
            width=settings.FRAME_WIDTH,
            height=settings.FRAME_HEIGHT,
        )
    return PushedFrameSource(stale_after=settings.PUSHED_FRAME_STALE_SECONDS)


def _activation_response(session: ExamSession, active: bool) -> ActivationResponse:
    status = session.loop.status()
    question = session.current_question
    return ActivationResponse(
        session_id=session.id,
        phase=session.phase.value,
        proctoring_active=active,
        error=status["error"],
        error_message=status["error_message"],
        question=question.to_dict() if question else None,
    )


def _decode_frame(frame_base64: str) -> bytes:
    if frame_base64.startswith("data:"):
        frame_base64 = frame_base64.split(",", 1)[-1]
    try:
        return base64.b64decode(frame_base64, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="Invalid base64 frame data")


# ============== API Endpoints ==============

@router.post("/start", response_model=StartSessionResponse)
async def start_session(request: StartSessionRequest, background_tasks: BackgroundTasks):
    """
    Create a new exam session in the EXPLANATION phase.

    The oracle is built from configuration but not warmed until /begin.
    """
    try:
        oracle = build_oracle(settings)
    except ValueError as e:
        logger.error(f"Failed to build detection oracle: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    session = ExamSession.from_settings(
        settings,
        source=_build_source(request.source),
        oracle=oracle,
        student_id=request.student_id,
    )
    _sessions[session.id] = session
    background_tasks.add_task(_cleanup_expired_sessions)

    logger.info(f"Created exam session: {session.id} (source={request.source.value}, oracle={oracle.name})")

    return StartSessionResponse(
        session_id=session.id,
        phase=session.phase.value,
        source=request.source.value,
        strategy=oracle.name,
        total_questions=len(session.questions),
        time_limit_seconds=session.question_time_limit,
        message="Exam session created",
    )


@router.post("/begin", response_model=ActivationResponse)
async def begin_exam(request: SessionRequest):
    """
    Enter the testing phase.

    Browser clients should push at least one frame first; activation waits
    for the source to produce frames.
    """
    session = _get_session(request.session_id)

    try:
        active = await session.begin()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _activation_response(session, active)


@router.post("/frame", response_model=PushFrameResponse)
async def push_frame(request: PushFrameRequest):
    """Store the latest browser webcam frame for sampling"""
    session = _get_session(request.session_id)
    source = session.loop.source

    if not isinstance(source, PushedFrameSource):
        raise HTTPException(status_code=400, detail="Session does not accept pushed frames")

    try:
        source.push_jpeg(_decode_frame(request.frame_base64))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PushFrameResponse(accepted=True, camera_ready=source.is_ready())


@router.post("/focus-event", response_model=FocusEventResponse)
async def report_focus_event(request: FocusEventRequest):
    """
    Record a focus transition.

    Hidden and blur add a FOCUS_LOST entry immediately, even while a
    routine check is running.
    """
    session = _get_session(request.session_id)
    event = session.handle_focus_signal(request.signal)

    return FocusEventResponse(
        recorded=event is not None,
        event=event.to_dict() if event else None,
        incident_count=len(session.timeline),
        active_alerts=[c.value for c in session.fuser.alerts.active()],
    )


@router.post("/answer", response_model=AnswerResponse)
async def answer_question(request: AnswerRequest):
    session = _get_session(request.session_id)

    try:
        response = await session.answer(request.option)
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AnswerResponse(
        recorded=True,
        question_id=response.question_id,
        phase=session.phase.value,
        question_index=session.current_index,
        finished=session.phase == ExamPhase.SUMMARY,
    )


@router.post("/retry-camera", response_model=ActivationResponse)
async def retry_camera(request: SessionRequest):
    """Retry activation after a media or model failure"""
    session = _get_session(request.session_id)

    try:
        active = await session.retry_camera()
    except SessionStateError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _activation_response(session, active)


@router.post("/stop")
async def stop_session(request: SessionRequest, background_tasks: BackgroundTasks) -> Dict[str, Any]:
    """
    Finish the exam and return the final report.

    Releases the camera and oracle; the report stays readable for at
    least SESSION_RETENTION_SECONDS.
    """
    session = _get_session(request.session_id)

    report = await session.finish()
    await session.close()

    background_tasks.add_task(_cleanup_expired_sessions)

    return report


@router.get("/status/{session_id}")
async def get_session_status(session_id: str) -> Dict[str, Any]:
    """Current phase, question, alerts and proctoring loop state"""
    return _get_session(session_id).status()


@router.get("/report/{session_id}")
async def get_session_report(session_id: str) -> Dict[str, Any]:
    return _get_session(session_id).report()


@router.get("/models-status", response_model=ModelStatusResponse)
async def get_models_status():
    """
    Check which detection backends are available.
    """
    status = check_models(settings.GEMINI_API_KEY)
    return ModelStatusResponse(strategy=settings.DETECTION_STRATEGY, **status)


# ============== Background Tasks ==============

async def _cleanup_expired_sessions():
    """
    Drop sessions that finished more than SESSION_RETENTION_SECONDS ago.

    Includes sessions that ended on their own without a /stop call.
    """
    now = datetime.utcnow()
    for session_id, session in list(_sessions.items()):
        if session.finished_at is None:
            continue
        if (now - session.finished_at).total_seconds() < SESSION_RETENTION_SECONDS:
            continue

        del _sessions[session_id]
        try:
            await session.close()
        except Exception as e:
            logger.error(f"Error closing session {session_id}: {e}")
        logger.info(f"Cleaned up session: {session_id}")


async def shutdown_sessions():
    """Close every session; called on application shutdown"""
    for session_id, session in list(_sessions.items()):
        try:
            await session.close()
        except Exception as e:
            logger.error(f"Error closing session {session_id}: {e}")
    _sessions.clear()


# ============== Health Check ==============

@router.get("/health")
async def health_check():
    """Health check for proctoring module"""
    return {
        "status": "healthy",
        "active_sessions": len(_sessions),
        "module": "proctoring"
    }
