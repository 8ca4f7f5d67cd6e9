"""Tests for frame drivers and cancelable frame loops."""

import asyncio

import pytest

from skytrail.animation.clock import AnimationClock
from skytrail.animation.frames import (
    AsyncioFrameDriver,
    FrameDriver,
    FrameLoop,
    ManualFrameDriver,
)
from skytrail.errors import ConfigurationError

# =============================================================================
# Manual Driver
# =============================================================================


class TestManualFrameDriver:
    """Test the step-driven driver."""

    def test_request_fires_once(self):
        driver = ManualFrameDriver()
        seen = []
        driver.request_frame(seen.append)
        assert driver.advance() == 1
        assert driver.advance() == 0
        assert len(seen) == 1

    def test_timestamps_advance(self):
        driver = ManualFrameDriver(frame_interval=0.5)
        seen = []
        driver.request_frame(seen.append)
        driver.advance()
        assert seen == [0.5]

    def test_cancel(self):
        driver = ManualFrameDriver()
        request_id = driver.request_frame(lambda t: pytest.fail("cancelled frame ran"))
        driver.cancel_frame(request_id)
        assert driver.pending == 0
        assert driver.advance() == 0

    def test_cancel_unknown_is_ignored(self):
        ManualFrameDriver().cancel_frame(12345)

    def test_satisfies_protocol(self):
        assert isinstance(ManualFrameDriver(), FrameDriver)
        assert isinstance(AsyncioFrameDriver(), FrameDriver)


# =============================================================================
# Frame Loop
# =============================================================================


class TestFrameLoop:
    """Test one-callback-per-refresh subscriptions."""

    def test_one_tick_per_frame(self):
        clock = AnimationClock(loop_length=100000.0, speed=50.0)
        driver = ManualFrameDriver()
        handle = FrameLoop(driver).start(clock.tick)
        assert driver.advance(10) == 10
        assert clock.current() == 500.0
        assert handle.frames == 10

    def test_stop_prevents_callbacks(self):
        calls = []
        driver = ManualFrameDriver()
        loop = FrameLoop(driver)
        handle = loop.start(lambda: calls.append(1))
        driver.advance(3)
        loop.stop(handle)
        assert driver.pending == 0
        assert driver.advance(5) == 0
        assert len(calls) == 3
        assert not handle.active

    def test_stop_twice(self):
        driver = ManualFrameDriver()
        loop = FrameLoop(driver)
        handle = loop.start(lambda: None)
        loop.stop(handle)
        loop.stop(handle)
        assert handle.request_id is None

    def test_stop_from_callback(self):
        driver = ManualFrameDriver()
        loop = FrameLoop(driver)
        calls = []

        def on_frame():
            calls.append(1)
            if len(calls) == 2:
                loop.stop(handle)

        handle = loop.start(on_frame)
        driver.advance(5)
        assert len(calls) == 2
        assert driver.pending == 0

    def test_independent_handles(self):
        driver = ManualFrameDriver()
        loop = FrameLoop(driver)
        a_calls, b_calls = [], []
        a = loop.start(lambda: a_calls.append(1))
        loop.start(lambda: b_calls.append(1))
        driver.advance(2)
        loop.stop(a)
        driver.advance(2)
        assert len(a_calls) == 2
        assert len(b_calls) == 4

    def test_callback_error_ends_subscription(self):
        driver = ManualFrameDriver()

        def boom():
            raise RuntimeError("frame failed")

        handle = FrameLoop(driver).start(boom)
        with pytest.raises(RuntimeError, match="frame failed"):
            driver.advance()
        assert driver.pending == 0
        assert handle.request_id is None


# =============================================================================
# Asyncio Driver
# =============================================================================


class TestAsyncioFrameDriver:
    """Test the event-loop driver."""

    def test_runs_frames_until_stopped(self):
        async def run():
            driver = AsyncioFrameDriver(fps=200.0)
            loop = FrameLoop(driver)
            calls = []
            handle = loop.start(lambda: calls.append(1))
            while len(calls) < 3:
                await asyncio.sleep(0.005)
            loop.stop(handle)
            count = len(calls)
            await asyncio.sleep(0.05)
            return count, len(calls)

        at_stop, after = asyncio.run(run())
        assert at_stop >= 3
        assert after == at_stop

    def test_cancel_pending(self):
        async def run():
            driver = AsyncioFrameDriver(fps=100.0)
            calls = []
            request_id = driver.request_frame(calls.append)
            driver.cancel_frame(request_id)
            await asyncio.sleep(0.05)
            return calls

        assert asyncio.run(run()) == []

    def test_bad_fps(self):
        with pytest.raises(ConfigurationError, match="fps"):
            AsyncioFrameDriver(fps=0.0)

    def test_integer_fps(self):
        assert AsyncioFrameDriver(fps=30).fps == 30.0
