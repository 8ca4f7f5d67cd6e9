"""Trajectory data model and timestamp alignment.

A ``Trajectory`` is one recorded flight: an identifier, an (N, 3) array of
[longitude, latitude, altitude] positions and N parallel timestamps. It is
validated on construction and treated as immutable for the rest of the
session.

Recordings captured by independent receivers start their clocks at different
instants. ``align`` attaches a constant offset so that several trajectories
share one virtual timeline:

    >>> from skytrail.data import Trajectory, align
    >>> traj = Trajectory.from_lists("ab1fbb", path, timestamps)
    >>> aligned = align(traj, offset=4758.87)
    >>> aligned.effective_timestamps[0] == traj.timestamps[0] + 4758.87
    True

The offset is calibration data supplied by configuration, never inferred.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from skytrail.errors import ConfigurationError, ValidationError

# =============================================================================
# Trajectory
# =============================================================================


def _readonly(array: NDArray[np.float64]) -> NDArray[np.float64]:
    array = np.array(array, dtype=np.float64, copy=True)
    array.setflags(write=False)
    return array


@beartype
@dataclass(frozen=True, eq=False)
class Trajectory:
    """A recorded 3D path with parallel timestamps.

    Attributes:
        name: Identifier of the tracked object (e.g. ICAO hex "ab1fbb")
        positions: [lon, lat, alt] per point, shape (N, 3) [deg, deg, m]
        timestamps: Raw timestamp per point, shape (N,) [ticks]
    """
    name: str
    positions: NDArray[np.float64]
    timestamps: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate shapes and ordering, then freeze the arrays."""
        positions = _readonly(self.positions)
        timestamps = _readonly(self.timestamps)

        if positions.ndim != 2 or positions.shape[1] != 3:
            raise ValidationError(
                f"Trajectory '{self.name}': positions must be shape (N, 3), got {positions.shape}"
            )
        if timestamps.ndim != 1:
            raise ValidationError(
                f"Trajectory '{self.name}': timestamps must be 1-D, got {timestamps.shape}"
            )
        if len(positions) != len(timestamps):
            raise ValidationError(
                f"Trajectory '{self.name}': {len(positions)} positions but "
                f"{len(timestamps)} timestamps, lengths must match"
            )
        if len(timestamps) == 0:
            raise ValidationError(f"Trajectory '{self.name}': needs at least 1 point")
        if not (np.all(np.isfinite(positions)) and np.all(np.isfinite(timestamps))):
            raise ValidationError(f"Trajectory '{self.name}': contains non-finite values")

        backwards = np.flatnonzero(np.diff(timestamps) < 0)
        if backwards.size:
            i = int(backwards[0]) + 1
            raise ValidationError(
                f"Trajectory '{self.name}': timestamps not monotonic at index {i} "
                f"({timestamps[i - 1]} -> {timestamps[i]})"
            )

        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "timestamps", timestamps)

    @classmethod
    def from_lists(
        cls,
        name: str,
        path: Sequence[Sequence[float | int]],
        timestamps: Sequence[float | int],
    ) -> "Trajectory":
        """Create a trajectory from plain Python lists (e.g. parsed JSON).

        Args:
            name: Object identifier
            path: Sequence of [lon, lat, alt] triples
            timestamps: Sequence of numeric timestamps

        Raises:
            ValidationError: If the path is ragged or not 3-component
        """
        try:
            positions = np.asarray(path, dtype=np.float64)
            times = np.asarray(timestamps, dtype=np.float64)
        except (TypeError, ValueError) as err:
            raise ValidationError(f"Trajectory '{name}': non-numeric data ({err})") from err

        if positions.ndim == 1 and positions.size == 0:
            positions = positions.reshape(0, 3)
        return cls(name=name, positions=positions, timestamps=times)

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def longitude(self) -> NDArray[np.float64]:
        """Longitude per point [deg]."""
        return self.positions[:, 0]

    @property
    def latitude(self) -> NDArray[np.float64]:
        """Latitude per point [deg]."""
        return self.positions[:, 1]

    @property
    def altitude(self) -> NDArray[np.float64]:
        """Altitude per point [m]."""
        return self.positions[:, 2]

    @property
    def start(self) -> float:
        """First raw timestamp [ticks]."""
        return float(self.timestamps[0])

    @property
    def end(self) -> float:
        """Last raw timestamp [ticks]."""
        return float(self.timestamps[-1])

    @property
    def duration(self) -> float:
        """Recorded span [ticks]."""
        return self.end - self.start

    def to_dataframe(self):
        """Convert to Polars DataFrame, one row per point."""
        import polars as pl

        return pl.DataFrame({
            "name": [self.name] * len(self),
            "longitude": self.longitude,
            "latitude": self.latitude,
            "altitude": self.altitude,
            "timestamp": self.timestamps,
        })


# =============================================================================
# Alignment
# =============================================================================


@beartype
@dataclass(frozen=True, eq=False)
class AlignedTrajectory:
    """A trajectory placed on the shared virtual timeline.

    Attributes:
        trajectory: The underlying recording
        offset: Constant added to every raw timestamp [ticks]
        effective_timestamps: ``trajectory.timestamps + offset``, precomputed
    """
    trajectory: Trajectory
    offset: float | int = 0.0
    effective_timestamps: NDArray[np.float64] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", float(self.offset))
        if not math.isfinite(self.offset):
            raise ConfigurationError(
                f"Offset for '{self.trajectory.name}' must be finite, got {self.offset}"
            )
        object.__setattr__(
            self, "effective_timestamps", _readonly(self.trajectory.timestamps + self.offset)
        )

    @property
    def name(self) -> str:
        return self.trajectory.name

    @property
    def positions(self) -> NDArray[np.float64]:
        return self.trajectory.positions

    @property
    def start(self) -> float:
        """First effective timestamp [ticks]."""
        return float(self.effective_timestamps[0])

    @property
    def end(self) -> float:
        """Last effective timestamp [ticks]."""
        return float(self.effective_timestamps[-1])

    def __len__(self) -> int:
        return len(self.trajectory)


@beartype
def align(trajectory: Trajectory, offset: float | int = 0.0) -> AlignedTrajectory:
    """Shift a trajectory onto the shared timeline by a constant offset.

    Args:
        trajectory: Trajectory to align
        offset: Calibration offset [ticks]

    Returns:
        AlignedTrajectory whose effective timestamps are raw + offset
    """
    return AlignedTrajectory(trajectory=trajectory, offset=float(offset))


@beartype
def align_all(
    trajectories: Sequence[Trajectory],
    offsets: Sequence[float | int],
) -> list[AlignedTrajectory]:
    """Align trajectories with an offset table, matched by index.

    Trajectories beyond the end of ``offsets`` are aligned with offset 0.
    """
    return [
        align(traj, offsets[i] if i < len(offsets) else 0.0)
        for i, traj in enumerate(trajectories)
    ]
