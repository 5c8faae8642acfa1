"""
FORMCHECK Form Service - Acquisition & Loop Controller

Owns the capture device and drives the per-frame
capture -> detect -> classify -> evaluate -> emit cycle on the asyncio
event loop.

State machine:
    IDLE -> INITIALIZING -> RUNNING -> STOPPED
    (STOPPED or IDLE) -> INITIALIZING on the next start()
    any -> IDLE on close()

Each loop iteration awaits its landmark provider call before the next one
is scheduled, so at most one detection is ever in flight. Every start()
gets a fresh CancellationToken that is checked at the top of each
iteration and again before the next one is scheduled.

Blocking frame reads and detections run in worker threads, which cannot be
interrupted. The controller keeps their futures: stop() waits for a pending
read before closing the stream, and no detection starts while an earlier
one is still running.
"""

import asyncio
import contextlib
import inspect
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from core.config import settings

from .capture import CaptureConstraints, CaptureSource, FrameStream
from .errors import DeviceUnavailable, ProviderTimeout
from .form_analyzer import FormAnalyzer, get_form_analyzer
from .landmarks import LandmarkSet, PoseAnalysis
from .pose_provider import LandmarkProvider

logger = logging.getLogger(__name__)


AnalysisSink = Callable[[PoseAnalysis], Union[None, Awaitable[None]]]
ClearCallback = Callable[[], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


class ControllerState(Enum):
    """Form-check controller states."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    RUNNING = "running"
    STOPPED = "stopped"


class CancellationToken:
    """One-way liveness flag owned by a single start() call."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


async def _call(func: Callable, *args: Any) -> Any:
    """Await coroutine functions directly, run blocking ones in a worker thread."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await asyncio.to_thread(func, *args)


def _consume_result(future: asyncio.Future) -> None:
    # Abandoned worker futures must not log "exception was never retrieved"
    if not future.cancelled():
        future.exception()


def _spawn(func: Callable, *args: Any) -> asyncio.Future:
    """Run a blocking call in a worker thread as a future that outlives cancellation."""
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    future.add_done_callback(_consume_result)
    return future


async def _settle(future: Optional[asyncio.Future], timeout: Optional[float] = None) -> bool:
    """Wait for a worker future without cancelling it. False if it is still running."""
    if future is None or future.done():
        return True
    done, _ = await asyncio.wait({future}, timeout=timeout)
    return bool(done)


class FormCheckController:
    """
    Drives real-time form analysis for one capture device.

    Usage:
        controller = FormCheckController(OpenCVCaptureSource(), provider, on_analysis=send)
        await controller.start()
        ...
        await controller.close()
    """

    def __init__(
        self,
        capture_source: CaptureSource,
        provider: LandmarkProvider,
        on_analysis: AnalysisSink,
        on_clear: Optional[ClearCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        analyzer: Optional[FormAnalyzer] = None,
        constraints: Optional[CaptureConstraints] = None,
        frame_interval: Optional[float] = None,
        detect_timeout: Optional[float] = None,
        max_empty_reads: Optional[int] = None,
        clock: Callable[[], int] = time.monotonic_ns,
    ):
        """
        Args:
            capture_source: Opens the video device
            provider: Landmark provider (initialized by start())
            on_analysis: Receives every PoseAnalysis as it is produced
            on_clear: Called when a running session stops, to clear overlays
            on_error: Called when the running loop ends on a failure
            analyzer: Classify/evaluate pipeline (global instance if None)
            constraints: Capture settings (from settings if None)
            frame_interval: Pause between iterations in seconds
            detect_timeout: Per-call provider timeout in seconds (None waits forever)
            max_empty_reads: Consecutive frameless reads that end the session
            clock: Monotonic nanosecond clock used for frame timestamps
        """
        self.capture_source = capture_source
        self.provider = provider
        self.on_analysis = on_analysis
        self.on_clear = on_clear
        self.on_error = on_error
        self.analyzer = analyzer or get_form_analyzer()
        self.constraints = constraints or CaptureConstraints.from_settings()
        self.frame_interval = settings.FRAME_INTERVAL_SECONDS if frame_interval is None else frame_interval
        self.detect_timeout = settings.DETECT_TIMEOUT_SECONDS if detect_timeout is None else detect_timeout
        self.max_empty_reads = settings.MAX_EMPTY_READS if max_empty_reads is None else max_empty_reads
        self._clock = clock

        self.state = ControllerState.IDLE
        self._stream: Optional[FrameStream] = None
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._reading: Optional[asyncio.Future] = None
        self._detecting: Optional[asyncio.Future] = None
        self._empty_reads = 0

    @property
    def is_running(self) -> bool:
        return self.state == ControllerState.RUNNING

    # ═══════════════════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ═══════════════════════════════════════════════════════════════════════════

    async def start(self) -> bool:
        """
        Open the capture device, initialize the provider and begin the loop.

        Returns:
            True if the loop was started, False if a session was already
            starting/running or stop() interrupted initialization.

        Raises:
            PermissionDenied, DeviceUnavailable: capture could not be opened
            ModelLoadError: provider failed to initialize
            ProviderTimeout: a detection from an earlier session is still
                running after detect_timeout
        """
        if self.state in (ControllerState.INITIALIZING, ControllerState.RUNNING):
            logger.debug(f"start() ignored, controller is {self.state.value}")
            return False

        token = CancellationToken()
        self._token = token
        self.state = ControllerState.INITIALIZING
        logger.info("Form check initializing")

        stream: Optional[FrameStream] = None
        started = False
        try:
            if not await _settle(self._detecting, self.detect_timeout):
                raise ProviderTimeout("Previous landmark detection is still running")
            self._detecting = None
            if token.cancelled:
                return False

            stream = await asyncio.to_thread(self.capture_source.open, self.constraints)
            if token.cancelled:
                return False

            await _call(self.provider.initialize)
            if token.cancelled:
                return False

            first_frame = await asyncio.to_thread(stream.read)
            if first_frame is None:
                raise DeviceUnavailable("Capture device delivered no frames")
            if token.cancelled:
                return False

            self._stream = stream
            self._empty_reads = 0
            self.state = ControllerState.RUNNING
            self._task = asyncio.create_task(self._run_loop(token, stream))
            started = True
            logger.info("Form check running")
            return True
        except Exception as e:
            logger.error(f"Form check failed to start: {type(e).__name__}: {e}")
            raise
        finally:
            if not started:
                if stream is not None:
                    stream.close()
                # A newer start() may own the controller by now
                if self._token is token:
                    self._token = None
                    if self.state == ControllerState.INITIALIZING:
                        self.state = ControllerState.IDLE

    async def stop(self) -> None:
        """Stop the loop and release the capture device. Safe to call repeatedly."""
        token, self._token = self._token, None
        if token is not None:
            token.cancel()

        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        # Closing the stream under a read still running in a thread is undefined
        await _settle(self._reading)
        self._reading = None
        await self._release()

        if await _settle(self._detecting, self.detect_timeout):
            self._detecting = None

    async def close(self) -> None:
        """Teardown: stop, dispose the provider and return to IDLE."""
        await self.stop()
        await _call(self.provider.dispose)
        self.state = ControllerState.IDLE
        logger.info("Form check closed")

    async def __aenter__(self) -> "FormCheckController":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _release(self) -> None:
        was_active = self.state in (ControllerState.INITIALIZING, ControllerState.RUNNING)

        if self._stream is not None:
            self._stream.close()
            self._stream = None

        if self.state != ControllerState.IDLE:
            self.state = ControllerState.STOPPED

        if was_active:
            logger.info("Form check stopped")
            if self.on_clear is not None:
                await _maybe_await(self.on_clear())

    # ═══════════════════════════════════════════════════════════════════════════
    # FRAME LOOP
    # ═══════════════════════════════════════════════════════════════════════════

    async def _run_loop(self, token: CancellationToken, stream: FrameStream) -> None:
        while not token.cancelled:
            try:
                await self._iterate(token, stream)
            except Exception as e:
                logger.error(f"Form check loop ended: {type(e).__name__}: {e}")
                await self._halt(token)
                if self.on_error is not None:
                    await _maybe_await(self.on_error(e))
                return

            if token.cancelled:
                break
            await asyncio.sleep(self.frame_interval)

    async def _iterate(self, token: CancellationToken, stream: FrameStream) -> Optional[PoseAnalysis]:
        """One capture -> detect -> analyze -> emit cycle."""
        self._reading = _spawn(stream.read)
        frame = await asyncio.shield(self._reading)
        self._reading = None
        if token.cancelled:
            return None

        if frame is None:
            self._empty_reads += 1
            if self._empty_reads >= self.max_empty_reads:
                raise DeviceUnavailable(f"Capture device delivered no frames for {self._empty_reads} reads")
            return None
        self._empty_reads = 0

        timestamp_us = self._clock() // 1000
        landmarks = await self._detect(frame, timestamp_us)
        if landmarks is None:
            logger.debug("No pose detected, skipping frame")
            return None
        if token.cancelled:
            return None

        analysis = self.analyzer.analyze(landmarks, timestamp_us / 1000)
        await _maybe_await(self.on_analysis(analysis))
        return analysis

    async def _detect(self, frame: Any, timestamp_us: int) -> Optional[LandmarkSet]:
        if inspect.iscoroutinefunction(self.provider.detect):
            call = self.provider.detect(frame, timestamp_us)
        else:
            self._detecting = _spawn(self.provider.detect, frame, timestamp_us)
            call = asyncio.shield(self._detecting)

        try:
            if self.detect_timeout is None:
                return await call
            return await asyncio.wait_for(call, self.detect_timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(f"Landmark provider did not answer within {self.detect_timeout}s") from e
        except Exception as e:
            logger.warning(f"Pose detection error: {e}")
            return None

    async def _halt(self, token: CancellationToken) -> None:
        """Stop from inside the loop task."""
        token.cancel()
        if self._token is token:
            self._token = None
            self._task = None
            await self._release()
