"""Per-frame scheduling with explicit, cancelable subscriptions.

The display refresh is owned by an external ``FrameDriver``, modeled on the
browser's request/cancel animation-frame pair: a driver calls each requested
callback once, at the next refresh, with the frame timestamp in seconds.

``FrameLoop.start`` re-requests a frame after every callback, giving one tick
per refresh, and returns an ``AnimationHandle``. Passing that handle to
``FrameLoop.stop`` cancels the pending request; once stopped, the callback
never runs again, even if the driver had already dispatched the frame.

Architecture:
    ManualFrameDriver   frames fire only on ``advance()`` (tests, export)
    AsyncioFrameDriver  frames fire on an asyncio loop at a fixed rate

Example:
    >>> driver = ManualFrameDriver()
    >>> loop = FrameLoop(driver)
    >>> handle = loop.start(lambda: clock.tick())
    >>> driver.advance(3)  # three ticks
    3
    >>> loop.stop(handle)
    >>> driver.advance()
    0
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from beartype import beartype

from skytrail.errors import ConfigurationError

logger = logging.getLogger(__name__)

FrameCallback = Callable[[float], None]

# =============================================================================
# Driver Protocol
# =============================================================================


@runtime_checkable
class FrameDriver(Protocol):
    """Source of display refresh callbacks."""

    def request_frame(self, callback: FrameCallback) -> int:
        """Run ``callback(timestamp)`` once at the next refresh.

        Returns:
            Request id accepted by ``cancel_frame``
        """
        ...

    def cancel_frame(self, request_id: int) -> None:
        """Drop a pending request. Unknown ids are ignored."""
        ...


# =============================================================================
# Drivers
# =============================================================================


@beartype
class ManualFrameDriver:
    """Step-driven driver: the caller decides when a refresh happens.

    Attributes:
        frame_interval: Simulated time between refreshes [s]
        now: Timestamp of the last refresh [s]
    """

    def __init__(self, frame_interval: float | int = 1.0 / 60.0) -> None:
        self.frame_interval = float(frame_interval)
        self.now = 0.0
        self._pending: dict[int, FrameCallback] = {}
        self._next_id = 1

    @property
    def pending(self) -> int:
        """Number of requests waiting for the next refresh."""
        return len(self._pending)

    def request_frame(self, callback: FrameCallback) -> int:
        request_id = self._next_id
        self._next_id += 1
        self._pending[request_id] = callback
        return request_id

    def cancel_frame(self, request_id: int) -> None:
        self._pending.pop(request_id, None)

    def advance(self, frames: int = 1) -> int:
        """Simulate ``frames`` refreshes.

        Requests made during a refresh run at the following one.

        Returns:
            Number of callbacks invoked
        """
        fired = 0
        for _ in range(frames):
            self.now += self.frame_interval
            due, self._pending = self._pending, {}
            for callback in due.values():
                callback(self.now)
                fired += 1
        return fired


@beartype
class AsyncioFrameDriver:
    """Fixed-rate driver running on an asyncio event loop.

    Must be used from the thread that runs the loop.
    """

    def __init__(
        self,
        fps: float | int = 60.0,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            fps: Refresh rate [Hz]
            loop: Event loop; defaults to the running loop at first request
        """
        if not fps > 0:
            raise ConfigurationError(f"fps must be > 0, got {fps}")
        self.fps = float(fps)
        self._loop = loop
        self._handles: dict[int, asyncio.TimerHandle] = {}
        self._next_id = 1

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def request_frame(self, callback: FrameCallback) -> int:
        request_id = self._next_id
        self._next_id += 1
        self._handles[request_id] = self.loop.call_later(
            1.0 / self.fps, self._fire, request_id, callback
        )
        return request_id

    def cancel_frame(self, request_id: int) -> None:
        handle = self._handles.pop(request_id, None)
        if handle is not None:
            handle.cancel()

    def _fire(self, request_id: int, callback: FrameCallback) -> None:
        self._handles.pop(request_id, None)
        callback(self.loop.time())


# =============================================================================
# Frame Loop
# =============================================================================


@dataclass(eq=False)
class AnimationHandle:
    """Subscription returned by ``FrameLoop.start``.

    Attributes:
        request_id: Pending driver request, if any
        active: False once stopped
        frames: Callbacks delivered so far
    """
    request_id: int | None = None
    active: bool = True
    frames: int = 0


@beartype
class FrameLoop:
    """Runs a callback once per display refresh until stopped."""

    def __init__(self, driver: FrameDriver) -> None:
        self.driver = driver

    def start(self, callback: Callable[[], None]) -> AnimationHandle:
        """Subscribe ``callback`` to every refresh.

        Args:
            callback: Work for one frame; exceptions propagate to the driver
                and end the subscription

        Returns:
            Handle to pass to ``stop``
        """
        handle = AnimationHandle()

        def on_frame(_timestamp: float) -> None:
            handle.request_id = None
            if not handle.active:
                return
            handle.frames += 1
            callback()
            if handle.active:
                handle.request_id = self.driver.request_frame(on_frame)

        handle.request_id = self.driver.request_frame(on_frame)
        logger.debug("Frame loop started on %s", type(self.driver).__name__)
        return handle

    def stop(self, handle: AnimationHandle) -> None:
        """Cancel a subscription. Stopping twice is a no-op."""
        if not handle.active:
            return
        handle.active = False
        if handle.request_id is not None:
            self.driver.cancel_frame(handle.request_id)
            handle.request_id = None
        logger.debug("Frame loop stopped after %d frames", handle.frames)
