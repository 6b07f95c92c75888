"""
ExamGuard Proctoring Service - FastAPI Application
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import time

from .config import settings
from .proctor.api import router as proctor_router, shutdown_sessions
from .utils.logging import log_startup, log_request, log_error
from .utils.logging_config import setup_logging


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Webcam proctoring for timed online exams",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)


# ============================================================================
# Request Logging Middleware
# ============================================================================

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests with timing."""
    start = time.time()
    method = request.method
    path = request.url.path

    try:
        response = await call_next(request)
    except Exception as e:
        log_error("RequestError", str(e))
        raise

    # Frames arrive several times a second; keep them out of the log
    if path not in ["/health", "/favicon.ico", "/api/proctor/frame"]:
        duration_ms = int((time.time() - start) * 1000)
        log_request(method, path, response.status_code, duration_ms)

    return response


# CORS middleware - allow all origins so the exam page can be served anywhere
# Note: When using allow_origins=["*"], credentials must be False
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(proctor_router)


@app.on_event("startup")
async def startup_event():
    """Configure logging and print the startup banner."""
    setup_logging("examguard", level=settings.LOG_LEVEL, log_to_file=settings.LOG_TO_FILE)
    log_startup(
        settings.APP_NAME,
        settings.PORT,
        settings.DETECTION_STRATEGY,
        settings.PROCTOR_CHECK_INTERVAL_MS,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Release cameras and oracle clients held by open sessions."""
    await shutdown_sessions()


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": "1.0.0"
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.APP_NAME,
        "docs": "/docs" if settings.DEBUG else "Disabled in production"
    }
