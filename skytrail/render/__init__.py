"""Trail compositing, coloring and rendering.

Example:
    >>> from skytrail.render import AltitudeColor, TrailCompositor
    >>> from skytrail.config import Theme, TrailStyle
    >>>
    >>> compositor = TrailCompositor(TrailStyle(), AltitudeColor(Theme()))
    >>> layers = compositor.compose(aligned, current_time=2500.0)
"""

from skytrail.render.colors import (
    AltitudeColor,
    ColorStrategy,
    StaticColor,
    color_for,
    colormap_position,
    colors_for,
    get_colormap,
    make_color_strategy,
    normalize_altitude,
)
from skytrail.render.compositor import (
    TrailCompositor,
    TrailLayer,
    active_window,
    fade_weights,
)
from skytrail.render.scene import (
    PlotlySceneRenderer,
    SceneRenderer,
    camera_from_view,
    scene_ranges,
)

__all__ = [
    # Colors
    "AltitudeColor",
    "ColorStrategy",
    "StaticColor",
    "color_for",
    "colormap_position",
    "colors_for",
    "get_colormap",
    "make_color_strategy",
    "normalize_altitude",
    # Compositor
    "TrailCompositor",
    "TrailLayer",
    "active_window",
    "fade_weights",
    # Scene
    "PlotlySceneRenderer",
    "SceneRenderer",
    "camera_from_view",
    "scene_ranges",
]
