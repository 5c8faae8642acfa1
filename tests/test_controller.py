"""
Form check controller tests

Each test drives the controller on its own event loop via asyncio.run.
"""

import asyncio
import itertools

import pytest

from form_service.models import (
    GENERIC_FEEDBACK,
    CaptureConstraints,
    ControllerState,
    DeviceUnavailable,
    ExerciseLabel,
    FormAnalyzer,
    FormCheckController,
    ModelLoadError,
    PermissionDenied,
    ProviderTimeout,
)

from tests import poses
from tests.fakes import (
    FakeCaptureSource,
    GatedProvider,
    HangingProvider,
    ScriptedProvider,
    SlowFrameStream,
    SlowProvider,
)


class Recorder:
    def __init__(self):
        self.analyses = []
        self.clears = 0
        self.errors = []

    def on_analysis(self, analysis):
        self.analyses.append(analysis)

    async def on_clear(self):
        self.clears += 1

    def on_error(self, error):
        self.errors.append(error)


def make_controller(source, provider, recorder, **kwargs):
    ticks = itertools.count(start=1_000_000_000, step=33_000_000)
    kwargs.setdefault("frame_interval", 0)
    return FormCheckController(
        source,
        provider,
        on_analysis=recorder.on_analysis,
        on_clear=recorder.on_clear,
        on_error=recorder.on_error,
        analyzer=FormAnalyzer(min_feedback_confidence=0.0),
        constraints=CaptureConstraints(),
        clock=lambda: next(ticks),
        **kwargs,
    )


async def wait_until(predicate, timeout=2.0):
    async def poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout)


def test_start_and_stop():
    async def scenario():
        source = FakeCaptureSource()
        provider = ScriptedProvider()
        recorder = Recorder()
        controller = make_controller(source, provider, recorder)

        assert controller.state == ControllerState.IDLE
        assert await controller.start() is True
        assert controller.state == ControllerState.RUNNING
        assert provider.initialize_calls == 1

        await controller.stop()
        assert controller.state == ControllerState.STOPPED
        assert source.streams[0].closed
        assert recorder.clears == 1

        # Second stop is a no-op
        await controller.stop()
        assert controller.state == ControllerState.STOPPED
        assert recorder.clears == 1

    asyncio.run(scenario())


def test_start_while_running_is_ignored():
    async def scenario():
        source = FakeCaptureSource()
        controller = make_controller(source, ScriptedProvider(), Recorder())

        assert await controller.start() is True
        assert await controller.start() is False
        assert len(source.streams) == 1

        await controller.stop()

    asyncio.run(scenario())


def test_restart_after_stop():
    async def scenario():
        source = FakeCaptureSource()
        controller = make_controller(source, ScriptedProvider(), Recorder())

        await controller.start()
        await controller.stop()
        assert await controller.start() is True
        assert controller.state == ControllerState.RUNNING
        assert len(source.streams) == 2
        assert source.streams[0].closed
        assert not source.streams[1].closed

        await controller.close()

    asyncio.run(scenario())


def test_model_load_failure_releases_capture():
    async def scenario():
        source = FakeCaptureSource()
        provider = ScriptedProvider(init_error=ModelLoadError("model file missing"))
        controller = make_controller(source, provider, Recorder())

        with pytest.raises(ModelLoadError):
            await controller.start()

        assert controller.state == ControllerState.IDLE
        assert source.streams[0].closed

    asyncio.run(scenario())


def test_permission_denied_skips_provider():
    async def scenario():
        source = FakeCaptureSource(error=PermissionDenied("camera access denied"))
        provider = ScriptedProvider()
        controller = make_controller(source, provider, Recorder())

        with pytest.raises(PermissionDenied):
            await controller.start()

        assert controller.state == ControllerState.IDLE
        assert provider.initialize_calls == 0

    asyncio.run(scenario())


def test_device_without_frames_is_unavailable():
    async def scenario():
        source = FakeCaptureSource(frames=0)
        controller = make_controller(source, ScriptedProvider(), Recorder())

        with pytest.raises(DeviceUnavailable):
            await controller.start()

        assert controller.state == ControllerState.IDLE
        assert source.streams[0].closed

    asyncio.run(scenario())


def test_stop_during_initialization():
    async def scenario():
        source = FakeCaptureSource()
        provider = GatedProvider()
        recorder = Recorder()
        controller = make_controller(source, provider, recorder)

        start_task = asyncio.create_task(controller.start())
        await provider.entered.wait()
        assert controller.state == ControllerState.INITIALIZING

        await controller.stop()
        provider.gate.set()

        assert await start_task is False
        assert controller.state == ControllerState.STOPPED
        assert source.streams[0].closed
        assert recorder.analyses == []

    asyncio.run(scenario())


def test_frames_flow_through_to_sink():
    async def scenario():
        source = FakeCaptureSource()
        incomplete = poses.truncated(poses.push_up_pose(), 20)
        provider = ScriptedProvider(script=[None, poses.push_up_pose(), incomplete])
        recorder = Recorder()
        controller = make_controller(source, provider, recorder)

        await controller.start()
        await asyncio.wait_for(provider.exhausted.wait(), 2.0)
        await controller.stop()

        # The frame without a pose produces no analysis
        assert len(recorder.analyses) == 2

        push_up, unknown = recorder.analyses
        assert push_up.detected_exercise == ExerciseLabel.PUSH_UP
        assert push_up.confidence == pytest.approx(0.9)
        assert push_up.feedback
        assert GENERIC_FEEDBACK not in push_up.feedback

        assert unknown.detected_exercise == ExerciseLabel.UNKNOWN
        assert unknown.confidence == 0.0
        assert unknown.feedback == (GENERIC_FEEDBACK,)

        assert push_up.timestamp < unknown.timestamp
        assert recorder.clears == 1

    asyncio.run(scenario())


def test_timestamps_strictly_increase():
    async def scenario():
        provider = ScriptedProvider(script=[poses.squat_pose()] * 5)
        recorder = Recorder()
        controller = make_controller(FakeCaptureSource(), provider, recorder)

        await controller.start()
        await asyncio.wait_for(provider.exhausted.wait(), 2.0)
        await controller.stop()

        sent = [timestamp for _, timestamp in provider.calls]
        assert sent == sorted(set(sent))

    asyncio.run(scenario())


def test_no_analysis_after_stop():
    async def scenario():
        provider = ScriptedProvider(default=poses.squat_pose())
        recorder = Recorder()
        controller = make_controller(FakeCaptureSource(), provider, recorder)

        await controller.start()
        await wait_until(lambda: len(recorder.analyses) >= 3)
        await controller.stop()

        emitted = len(recorder.analyses)
        await asyncio.sleep(0.05)
        assert len(recorder.analyses) == emitted

    asyncio.run(scenario())


def test_provider_error_skips_frame():
    async def scenario():
        provider = ScriptedProvider(script=[RuntimeError("inference failed"), poses.plank_pose()])
        recorder = Recorder()
        controller = make_controller(FakeCaptureSource(), provider, recorder)

        await controller.start()
        await asyncio.wait_for(provider.exhausted.wait(), 2.0)
        await controller.stop()

        assert [a.detected_exercise for a in recorder.analyses] == [ExerciseLabel.PLANK]
        assert recorder.errors == []

    asyncio.run(scenario())


def test_detect_timeout_stops_session():
    async def scenario():
        source = FakeCaptureSource()
        recorder = Recorder()
        controller = make_controller(source, HangingProvider(), recorder, detect_timeout=0.05)

        await controller.start()
        await wait_until(lambda: recorder.errors)

        assert isinstance(recorder.errors[0], ProviderTimeout)
        assert controller.state == ControllerState.STOPPED
        assert source.streams[0].closed
        assert recorder.clears == 1

        await controller.stop()
        assert recorder.clears == 1

    asyncio.run(scenario())


def test_close_disposes_provider():
    async def scenario():
        provider = ScriptedProvider()
        source = FakeCaptureSource()

        async with make_controller(source, provider, Recorder()) as controller:
            await controller.start()

        assert controller.state == ControllerState.IDLE
        assert provider.dispose_calls == 1
        assert source.streams[0].closed

    asyncio.run(scenario())


def test_stop_waits_for_pending_read():
    async def scenario():
        source = FakeCaptureSource(stream_factory=SlowFrameStream)
        controller = make_controller(source, ScriptedProvider(), Recorder())

        await controller.start()
        stream = source.streams[0]
        await wait_until(stream.in_read.is_set)

        await controller.stop()

        assert stream.closed
        assert not stream.closed_during_read
        assert controller.state == ControllerState.STOPPED

    asyncio.run(scenario())


def test_restart_never_overlaps_blocking_detections():
    async def scenario():
        provider = SlowProvider(poses.squat_pose(), delay=0.2)
        controller = make_controller(FakeCaptureSource(), provider, Recorder())

        await controller.start()
        await wait_until(lambda: provider.active == 1)
        await controller.stop()
        assert provider.active == 0

        await controller.start()
        await wait_until(lambda: provider.calls >= 2)
        await controller.stop()

        assert provider.max_active == 1

    asyncio.run(scenario())


def test_start_refused_while_timed_out_detection_runs():
    async def scenario():
        provider = SlowProvider(poses.squat_pose(), delay=0.5)
        recorder = Recorder()
        controller = make_controller(FakeCaptureSource(), provider, recorder, detect_timeout=0.05)

        await controller.start()
        await wait_until(lambda: recorder.errors)
        assert isinstance(recorder.errors[0], ProviderTimeout)
        assert provider.active == 1

        with pytest.raises(ProviderTimeout):
            await controller.start()
        assert controller.state == ControllerState.IDLE

        await wait_until(lambda: provider.active == 0)
        assert await controller.start() is True
        await controller.stop()

        assert provider.max_active == 1

    asyncio.run(scenario())


def test_exhausted_video_ends_session():
    async def scenario():
        source = FakeCaptureSource(frames=3)
        recorder = Recorder()
        provider = ScriptedProvider(default=poses.squat_pose())
        controller = make_controller(source, provider, recorder, max_empty_reads=5)

        await controller.start()
        await wait_until(lambda: recorder.errors)

        assert isinstance(recorder.errors[0], DeviceUnavailable)
        assert controller.state == ControllerState.STOPPED
        assert source.streams[0].closed
        # The first frame is consumed by start()
        assert len(recorder.analyses) == 2

    asyncio.run(scenario())
