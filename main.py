"""
FORMCHECK Backend API

FastAPI entry point: real-time exercise form analysis over REST and
WebSocket.

Run with:
    uvicorn main:app --reload
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from shared.utils import LOG_DATE_FORMAT, LOG_FORMAT, error_response, setup_logger, utc_now

# Root logging must be configured before the service modules create their loggers
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)],
)

from form_service.models import FormCheckError, dispose_landmark_provider
from form_service.router import router as form_router

LOG_LEVEL = "DEBUG" if settings.DEBUG else "INFO"
logger = setup_logger("formcheck.main", level=LOG_LEVEL)
request_logger = setup_logger("formcheck.requests", level=LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {settings.APP_NAME} starting (camera={settings.CAMERA_SOURCE!r}, model={settings.POSE_MODEL_PATH})")
    if settings.DETECT_TIMEOUT_SECONDS is not None:
        logger.info(f"⏱️  Landmark detection timeout: {settings.DETECT_TIMEOUT_SECONDS}s")

    yield

    # The pose model is shared by every connection, release it once here
    dispose_landmark_provider()
    logger.info(f"👋 {settings.APP_NAME} stopped")


app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Pose-based exercise classification and form feedback",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """One line per request with status and duration."""
    started = time.perf_counter()
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"

    try:
        response = await call_next(request)
    except Exception:
        elapsed = (time.perf_counter() - started) * 1000
        request_logger.exception(f"💥 {request.method} {path} failed after {elapsed:.1f}ms")
        raise

    elapsed = (time.perf_counter() - started) * 1000
    level = logging.WARNING if response.status_code >= 400 else logging.INFO
    request_logger.log(level, f"{request.method} {path} → {response.status_code} ({elapsed:.1f}ms)")
    return response


@app.exception_handler(FormCheckError)
async def form_check_error_handler(request: Request, exc: FormCheckError):
    """Capture and model failures that escape a route become 503s."""
    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content=error_response(str(exc), error_code=type(exc).__name__),
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "formcheck-api", "timestamp": utc_now()}


app.include_router(form_router, prefix="/api/form-check", tags=["Form Check"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
