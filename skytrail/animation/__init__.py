"""Virtual clock and frame scheduling.

Example:
    >>> from skytrail.animation import AnimationClock, FrameLoop, ManualFrameDriver
    >>>
    >>> clock = AnimationClock(loop_length=100000.0, speed=50.0)
    >>> driver = ManualFrameDriver()
    >>> loop = FrameLoop(driver)
    >>> handle = loop.start(clock.tick)
    >>> driver.advance(10)
    10
    >>> clock.current()
    500.0
"""

from skytrail.animation.clock import AnimationClock
from skytrail.animation.frames import (
    AnimationHandle,
    AsyncioFrameDriver,
    FrameDriver,
    FrameLoop,
    ManualFrameDriver,
)

__all__ = [
    "AnimationClock",
    "AnimationHandle",
    "AsyncioFrameDriver",
    "FrameDriver",
    "FrameLoop",
    "ManualFrameDriver",
]
