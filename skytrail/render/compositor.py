"""Trail compositing: from virtual time to render-ready layers.

For each aligned trajectory and the current virtual time ``t`` the visible
trail is the run of points whose effective timestamp lies in
``(t - trail_length, t]``. Effective timestamps are sorted, so the run is
found with two binary searches:

    first = searchsorted(ts, t - trail_length, side="right")
    stop  = searchsorted(ts, t, side="right")

Each visible vertex gets a color from the configured strategy and a fade
weight ``1 - (t - ts[i]) / trail_length`` in (0, 1], 1 at the head of the
trail. Trails are never wrapped: when the clock loops back to 0 a trajectory
whose timestamps sit near the end of the loop simply has no visible points.

Example:
    >>> compositor = TrailCompositor(TrailStyle(trail_length=150.0), AltitudeColor(theme))
    >>> layers = compositor.compose(aligned_trajectories, current_time=250.0)
    >>> [layer.name for layer in layers]
    ['ab1fbb']
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from beartype import beartype
from numpy.typing import NDArray

from skytrail.config import TrailStyle
from skytrail.data.trajectory import AlignedTrajectory
from skytrail.render.colors import AltitudeColor, StaticColor

# =============================================================================
# Windowing
# =============================================================================


@beartype
def active_window(
    effective_timestamps: NDArray[np.float64],
    current_time: float | int,
    trail_length: float | int,
) -> slice:
    """Index range of points with timestamp in ``(current_time - trail_length, current_time]``.

    Args:
        effective_timestamps: Non-decreasing timestamps [ticks]
        current_time: Virtual time [ticks]
        trail_length: Window length [ticks]

    Returns:
        slice(first, stop); empty when nothing is visible
    """
    first = int(np.searchsorted(effective_timestamps, current_time - trail_length, side="right"))
    stop = int(np.searchsorted(effective_timestamps, current_time, side="right"))
    return slice(first, max(first, stop))


@beartype
def fade_weights(
    effective_timestamps: NDArray[np.float64],
    current_time: float | int,
    trail_length: float | int,
) -> NDArray[np.float64]:
    """Visibility weight of each timestamp: 1 at ``current_time``, toward 0 at the tail."""
    return 1.0 - (current_time - effective_timestamps) / trail_length


# =============================================================================
# Render Layer
# =============================================================================


@dataclass(frozen=True, eq=False)
class TrailLayer:
    """Everything a scene renderer needs to draw one trail for one frame.

    Attributes:
        id: Stable layer id (``trips0``, ``trips1``, ...)
        name: Trajectory name
        positions: Visible [lon, lat, alt] vertices, oldest first, shape (K, 3)
        colors: RGB per vertex, shape (K, 3), uint8
        weights: Fade weight per vertex, shape (K,), in (0, 1]
        timestamps: Effective timestamp per vertex, shape (K,) [ticks]
        indices: Source indices ``[first, stop)`` in the trajectory
        opacity: Layer opacity [0-1]
        width_min_pixels: Minimum stroke width [px]
        rounded: Round joins and caps
        trail_length: Window length [ticks]
        current_time: Virtual time of this frame [ticks]
    """
    id: str
    name: str
    positions: NDArray[np.float64]
    colors: NDArray[np.uint8]
    weights: NDArray[np.float64]
    timestamps: NDArray[np.float64]
    indices: tuple[int, int]
    opacity: float
    width_min_pixels: float
    rounded: bool
    trail_length: float
    current_time: float

    def __len__(self) -> int:
        return len(self.positions)

    @property
    def head(self) -> NDArray[np.float64]:
        """Newest visible position."""
        return self.positions[-1]

    def to_dataframe(self):
        """Convert to Polars DataFrame, one row per vertex."""
        import polars as pl

        return pl.DataFrame({
            "index": np.arange(*self.indices),
            "longitude": self.positions[:, 0],
            "latitude": self.positions[:, 1],
            "altitude": self.positions[:, 2],
            "timestamp": self.timestamps,
            "weight": self.weights,
            "r": self.colors[:, 0],
            "g": self.colors[:, 1],
            "b": self.colors[:, 2],
        })


# =============================================================================
# Compositor
# =============================================================================


@beartype
class TrailCompositor:
    """Turns aligned trajectories plus a virtual time into trail layers.

    Stateless between frames; ``style`` and ``color`` are read-only inputs.
    """

    def __init__(self, style: TrailStyle, color: AltitudeColor | StaticColor) -> None:
        self.style = style
        self.color = color

    def trail(
        self,
        aligned: AlignedTrajectory,
        current_time: float | int,
        layer_id: str = "trips0",
    ) -> TrailLayer | None:
        """Compose the trail of one trajectory, or None if nothing is visible."""
        current_time = float(current_time)
        ts = aligned.effective_timestamps
        window = active_window(ts, current_time, self.style.trail_length)
        if window.start == window.stop:
            return None

        visible_ts = ts[window]
        return TrailLayer(
            id=layer_id,
            name=aligned.name,
            positions=aligned.positions[window],
            colors=self.color.colors(aligned.trajectory, window),
            weights=fade_weights(visible_ts, current_time, self.style.trail_length),
            timestamps=visible_ts,
            indices=(window.start, window.stop),
            opacity=self.style.opacity,
            width_min_pixels=self.style.width_min_pixels,
            rounded=self.style.rounded,
            trail_length=self.style.trail_length,
            current_time=current_time,
        )

    def compose(
        self,
        trajectories: Sequence[AlignedTrajectory],
        current_time: float | int,
    ) -> list[TrailLayer]:
        """Compose one frame.

        Layer ids follow trajectory order (``trips{i}``) and stay stable even
        when earlier trajectories have no visible points.
        """
        layers = []
        for i, aligned in enumerate(trajectories):
            layer = self.trail(aligned, current_time, layer_id=f"trips{i}")
            if layer is not None:
                layers.append(layer)
        return layers
