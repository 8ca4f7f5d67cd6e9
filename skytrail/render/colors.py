"""Altitude-to-color mapping.

Altitudes are normalized against the theme's range, clamped to [0, 1] and
inverted so that low altitude samples the *top* of the colormap:

    n = (altitude - altitude_min) / (altitude_max - altitude_min)
    position = 1 - clip(n, 0, 1)

The colormap is sampled at ``position`` and converted to 8-bit RGB. Scalar
and vectorized entry points share one code path, so a vertex gets the same
color whichever one computed it.

Example:
    >>> from skytrail.render.colors import color_for
    >>> color_for(0.0, 0.0, 12000.0, "plasma")   # ground level, warm end
    (240, 249, 33)
"""

from collections.abc import Mapping, Sequence
from typing import Protocol, runtime_checkable

import matplotlib
import numpy as np
from beartype import beartype
from matplotlib.colors import Colormap, LinearSegmentedColormap
from numpy.typing import NDArray

from skytrail.config import RGB, Theme
from skytrail.data.trajectory import Trajectory
from skytrail.errors import ConfigurationError

# =============================================================================
# Normalization
# =============================================================================


@beartype
def normalize_altitude(
    altitude: float | int | NDArray[np.float64],
    altitude_min: float | int,
    altitude_max: float | int,
) -> float | NDArray[np.float64]:
    """Map altitude onto [0, 1] over the given range (unclamped)."""
    altitude_min, altitude_max = float(altitude_min), float(altitude_max)
    if altitude_max == altitude_min:
        raise ConfigurationError("altitude_max must differ from altitude_min")
    return (altitude - altitude_min) / (altitude_max - altitude_min)


@beartype
def colormap_position(
    altitude: float | int | NDArray[np.float64],
    altitude_min: float | int,
    altitude_max: float | int,
) -> float | NDArray[np.float64]:
    """Colormap sample position: 1 at or below ``altitude_min``, 0 at or above ``altitude_max``."""
    n = np.clip(normalize_altitude(altitude, altitude_min, altitude_max), 0.0, 1.0)
    if np.ndim(n) == 0:
        return float(1.0 - n)
    return 1.0 - n


# =============================================================================
# Colormaps
# =============================================================================


@beartype
def get_colormap(theme: Theme) -> Colormap:
    """Resolve the theme's colormap.

    A named colormap comes from matplotlib's registry (a private copy). With
    no name, a linear ramp runs from the cool endpoint ``trail_colors[1]`` at
    0 to the warm endpoint ``trail_colors[0]`` at 1.
    """
    if theme.colormap is not None:
        return matplotlib.colormaps[theme.colormap]
    warm, cool = theme.trail_colors
    return LinearSegmentedColormap.from_list(
        "skytrail_endpoints",
        [tuple(c / 255.0 for c in cool), tuple(c / 255.0 for c in warm)],
    )


def _resolve(colormap: Colormap | str) -> Colormap:
    if isinstance(colormap, str):
        if colormap not in matplotlib.colormaps:
            raise ConfigurationError(f"Unknown colormap: {colormap!r}")
        return matplotlib.colormaps[colormap]
    return colormap


def _to_rgb255(rgba: NDArray[np.float64]) -> NDArray[np.uint8]:
    return np.round(np.asarray(rgba)[..., :3] * 255.0).astype(np.uint8)


# =============================================================================
# Color Mapper
# =============================================================================


@beartype
def colors_for(
    altitudes: NDArray[np.float64],
    altitude_min: float | int,
    altitude_max: float | int,
    colormap: Colormap | str = "plasma",
) -> NDArray[np.uint8]:
    """Vectorized ``color_for``.

    Args:
        altitudes: Altitudes, shape (N,) [m]
        altitude_min: Warm end of the range [m]
        altitude_max: Cool end of the range [m]
        colormap: Colormap or registered colormap name

    Returns:
        RGB colors, shape (N, 3), uint8
    """
    cmap = _resolve(colormap)
    position = colormap_position(np.asarray(altitudes, dtype=np.float64), altitude_min, altitude_max)
    return _to_rgb255(cmap(np.atleast_1d(position)))


@beartype
def color_for(
    altitude: float | int,
    altitude_min: float | int,
    altitude_max: float | int,
    colormap: Colormap | str = "plasma",
) -> RGB:
    """Color of a single vertex at ``altitude``.

    Returns:
        (r, g, b) with components in 0..255
    """
    r, g, b = colors_for(np.array([altitude], dtype=np.float64), altitude_min, altitude_max, colormap)[0]
    return (int(r), int(g), int(b))


# =============================================================================
# Color Strategies
# =============================================================================


@runtime_checkable
class ColorStrategy(Protocol):
    """Per-vertex coloring used by the trail compositor."""

    def colors(self, trajectory: Trajectory, window: slice) -> NDArray[np.uint8]:
        """Colors for ``trajectory`` points in ``window``, shape (K, 3)."""
        ...


@beartype
class AltitudeColor:
    """Colors each vertex by its altitude through the theme colormap."""

    def __init__(self, theme: Theme) -> None:
        self.theme = theme
        self.colormap = get_colormap(theme)

    def colors(self, trajectory: Trajectory, window: slice) -> NDArray[np.uint8]:
        return colors_for(
            trajectory.altitude[window],
            self.theme.altitude_min,
            self.theme.altitude_max,
            self.colormap,
        )


@beartype
class StaticColor:
    """One fixed color per trajectory, looked up by name."""

    def __init__(self, colors_by_name: Mapping[str, RGB], default: RGB) -> None:
        self.colors_by_name = dict(colors_by_name)
        self.default = default

    @classmethod
    def from_theme(cls, theme: Theme, names: Sequence[str] = ()) -> "StaticColor":
        """Assign ``theme.trail_colors`` to ``names`` in order.

        Names past the end of the palette, and unknown names, get the last
        palette color, so only the first trajectory gets ``trail_colors[0]``.

        Colors follow load order, not fixed aircraft ids. With the default
        sources, ``ab1fbb`` loads first and gets ``trail_colors[0]``, while
        ``abca00`` gets ``trail_colors[1]``. Reordering ``sources`` swaps the
        colors. To pin a color to an id regardless of order, build
        ``StaticColor({"ab1fbb": ...}, default=...)`` directly.
        """
        palette = theme.trail_colors
        return cls(
            {name: palette[i] for i, name in enumerate(names) if i < len(palette)},
            default=palette[-1],
        )

    def color(self, name: str) -> RGB:
        return self.colors_by_name.get(name, self.default)

    def colors(self, trajectory: Trajectory, window: slice) -> NDArray[np.uint8]:
        count = len(range(*window.indices(len(trajectory))))
        rgb = np.array(self.color(trajectory.name), dtype=np.uint8)
        return np.tile(rgb, (count, 1))


@beartype
def make_color_strategy(
    mode: str,
    theme: Theme,
    names: Sequence[str] = (),
) -> AltitudeColor | StaticColor:
    """Build the strategy selected by ``SessionConfig.color_mode``."""
    if mode == "altitude":
        return AltitudeColor(theme)
    if mode == "static":
        return StaticColor.from_theme(theme, names)
    raise ConfigurationError(f"Unknown color mode: {mode!r}. Valid: ['altitude', 'static']")
