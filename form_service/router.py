"""
FORMCHECK Form Service Router

Endpoints for real-time exercise form analysis.
Uses MediaPipe pose estimation with rule-based exercise classification.
"""

import asyncio
import base64
import logging
import time
from typing import Any, Dict, List, Optional

import cv2
import numpy as np
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from shared.utils import log_duration, success_response, ws_error, ws_message

from .models import (
    ExerciseLabel,
    FormAnalyzer,
    FormCheckController,
    FormCheckError,
    ModelLoadError,
    OpenCVCaptureSource,
    PoseAnalysis,
    draw_pose_overlay,
    get_form_analyzer,
    get_landmark_provider,
    has_rule_set,
)
from .models.capture import CaptureSource
from .models.pose_provider import LandmarkProvider

router = APIRouter()
logger = logging.getLogger(__name__)


def get_capture_source() -> CaptureSource:
    """Capture source for server-side live sessions."""
    return OpenCVCaptureSource()


# ============= Pydantic Models =============

class ExerciseInfo(BaseModel):
    label: str
    has_rules: bool


# ============= Helpers =============

def decode_frame(data: bytes) -> Optional[np.ndarray]:
    """Decode JPEG/PNG bytes into a BGR frame."""
    nparr = np.frombuffer(data, np.uint8)
    if nparr.size == 0:
        return None
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)


def encode_frame(frame: np.ndarray) -> str:
    """Encode a BGR frame as base64 JPEG."""
    _, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, 70])
    return base64.b64encode(buffer).decode("utf-8")


def monotonic_us() -> int:
    return time.monotonic_ns() // 1000


def analysis_message(analysis: PoseAnalysis) -> Dict[str, Any]:
    return ws_message("POSE_ANALYSIS", **analysis.to_dict())


# ============= REST Endpoints =============

@router.get("/exercises", response_model=List[ExerciseInfo])
async def list_exercises():
    """List exercise labels the classifier can produce."""
    return [
        ExerciseInfo(label=label.value, has_rules=has_rule_set(label))
        for label in ExerciseLabel
    ]


@router.post("/analyze-frame")
async def analyze_frame(
    file: UploadFile = File(...),
    annotate: bool = False,
    provider: LandmarkProvider = Depends(get_landmark_provider),
    analyzer: FormAnalyzer = Depends(get_form_analyzer),
):
    """
    Analyze a single uploaded image.

    Returns the PoseAnalysis of the first detected body, optionally with
    the annotated frame as base64 JPEG.
    """
    frame = decode_frame(await file.read())
    if frame is None:
        raise HTTPException(status_code=400, detail="Invalid image data")

    try:
        await run_in_threadpool(provider.initialize)
    except ModelLoadError as e:
        logger.error(f"Pose model unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))

    timestamp_us = monotonic_us()
    with log_duration(logger, "Frame analysis"):
        landmarks = await run_in_threadpool(provider.detect, frame, timestamp_us)
    if landmarks is None:
        return success_response({"pose_detected": False}, "No pose detected in frame")

    analysis = analyzer.analyze(landmarks, timestamp_us / 1000)
    data = {"pose_detected": True, **analysis.to_dict()}
    if annotate:
        data["annotated_frame"] = encode_frame(draw_pose_overlay(frame, analysis))

    return success_response(data, "Frame analyzed")


# ============= WebSocket Endpoints =============

@router.websocket("/ws/stream/{client_id}")
async def form_stream(
    websocket: WebSocket,
    client_id: str,
    provider: LandmarkProvider = Depends(get_landmark_provider),
    analyzer: FormAnalyzer = Depends(get_form_analyzer),
):
    """
    Client-driven stream.

    Receives encoded video frames, replies with one message per frame:
    POSE_ANALYSIS, NO_POSE or ERROR.
    """
    await websocket.accept()

    try:
        await run_in_threadpool(provider.initialize)
    except ModelLoadError as e:
        logger.error(f"Pose model unavailable for {client_id}: {e}")
        await websocket.send_json(ws_error(str(e), e))
        await websocket.close()
        return

    try:
        await websocket.send_json(ws_message("CONNECTED", client_id=client_id, message="Form check stream connected"))

        while True:
            data = await websocket.receive_bytes()

            frame = decode_frame(data)
            if frame is None:
                await websocket.send_json(ws_error("Invalid frame data"))
                continue

            timestamp_us = monotonic_us()
            try:
                landmarks = await run_in_threadpool(provider.detect, frame, timestamp_us)
            except Exception as e:
                logger.warning(f"Pose detection failed for {client_id}: {e}")
                await websocket.send_json(ws_error("Pose detection failed", e))
                continue

            if landmarks is None:
                await websocket.send_json(ws_message("NO_POSE", timestamp=timestamp_us / 1000))
                continue

            analysis = analyzer.analyze(landmarks, timestamp_us / 1000)
            await websocket.send_json(analysis_message(analysis))

    except WebSocketDisconnect:
        logger.info(f"Client {client_id} disconnected from form stream")


@router.websocket("/ws/live")
async def live_form_check(
    websocket: WebSocket,
    provider: LandmarkProvider = Depends(get_landmark_provider),
    capture_source: CaptureSource = Depends(get_capture_source),
    analyzer: FormAnalyzer = Depends(get_form_analyzer),
):
    """
    Server-side camera session.

    Client sends {"command": "start"} / {"command": "stop"}; the server
    pushes POSE_ANALYSIS messages while running and CLEARED on stop.
    """
    await websocket.accept()
    send_lock = asyncio.Lock()

    async def send(payload: Dict[str, Any]) -> None:
        async with send_lock:
            await websocket.send_json(payload)

    async def send_analysis(analysis: PoseAnalysis) -> None:
        await send(analysis_message(analysis))

    async def send_cleared() -> None:
        await send(ws_message("CLEARED"))

    async def send_error(error: Exception) -> None:
        await send(ws_error(str(error), error))

    controller = FormCheckController(
        capture_source,
        provider,
        on_analysis=send_analysis,
        on_clear=send_cleared,
        on_error=send_error,
        analyzer=analyzer,
    )

    try:
        await send(ws_message("CONNECTED", state=controller.state.value))

        while True:
            message = await websocket.receive_json()
            command = message.get("command") if isinstance(message, dict) else None

            if command == "start":
                try:
                    started = await controller.start()
                except FormCheckError as e:
                    await send_error(e)
                    continue
                await send(ws_message("STATUS", state=controller.state.value, started=started))
            elif command == "stop":
                await controller.stop()
                await send(ws_message("STATUS", state=controller.state.value))
            else:
                await send(ws_error(f"Unknown command: {command!r}"))

    except WebSocketDisconnect:
        logger.info("Client disconnected from live form check")
    finally:
        # The socket is gone; nothing left to notify
        controller.on_clear = None
        controller.on_error = None
        await controller.stop()
