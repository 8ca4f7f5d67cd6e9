"""Looping virtual clock.

The clock holds a single value, ``time``, in ``[0, loop_length)``. Each
display frame calls ``tick()`` once, which advances it by ``speed`` and wraps
modulo ``loop_length``. Nothing else mutates it.

Example:
    >>> clock = AnimationClock(loop_length=1000.0, speed=50.0, start=980.0)
    >>> clock.tick()
    30.0
    >>> clock.current()
    30.0
"""

import math

from beartype import beartype

from skytrail.config import SessionConfig
from skytrail.errors import ConfigurationError


@beartype
class AnimationClock:
    """Virtual time source for a rendering session.

    ``loop_length`` and ``speed`` are fixed for the lifetime of the clock;
    build a new clock to change them.
    """

    __slots__ = ("_loop_length", "_speed", "_start", "_time")

    def __init__(
        self,
        loop_length: float | int,
        speed: float | int,
        start: float | int = 0.0,
    ) -> None:
        """Initialize the clock.

        Args:
            loop_length: Period of the virtual timeline [ticks]
            speed: Advance per frame [ticks]
            start: Initial time, in [0, loop_length) [ticks]

        Raises:
            ConfigurationError: On non-positive or non-finite parameters
        """
        loop_length, speed, start = float(loop_length), float(speed), float(start)
        if not (math.isfinite(loop_length) and loop_length > 0):
            raise ConfigurationError(f"loop_length must be > 0, got {loop_length}")
        if not (math.isfinite(speed) and speed > 0):
            raise ConfigurationError(f"animation speed must be > 0, got {speed}")
        if not 0.0 <= start < loop_length:
            raise ConfigurationError(f"start must be in [0, {loop_length}), got {start}")
        self._loop_length = loop_length
        self._speed = speed
        self._start = start
        self._time = start

    @classmethod
    def from_config(cls, config: SessionConfig, start: float | int = 0.0) -> "AnimationClock":
        """Create a clock from session configuration."""
        return cls(loop_length=config.loop_length, speed=config.animation_speed, start=start)

    @property
    def loop_length(self) -> float:
        return self._loop_length

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def frames_per_loop(self) -> int:
        """Number of ticks before the time first wraps from 0 back to 0."""
        return math.ceil(self._loop_length / self._speed)

    def current(self) -> float:
        """Current virtual time [ticks]."""
        return self._time

    def tick(self) -> float:
        """Advance one frame and return the new time."""
        self._time = (self._time + self._speed) % self._loop_length
        return self._time

    def reset(self) -> None:
        """Return to the start time."""
        self._time = self._start

    def __repr__(self) -> str:
        return (
            f"AnimationClock(time={self._time}, loop_length={self._loop_length}, "
            f"speed={self._speed})"
        )
