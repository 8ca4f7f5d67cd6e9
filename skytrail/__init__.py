"""Skytrail - Animated, altitude-colored flight trails.

This package turns timestamped 3D flight paths into per-frame trail layers:
a looping virtual clock picks the visible window of each trajectory, and
every visible vertex is colored by altitude. Drawing is left to a scene
renderer; a Plotly renderer is included.

Example:
    >>> from skytrail import AnimationSession, SessionConfig
    >>>
    >>> config = SessionConfig(sources=("trace_ab1fbb.json", "trace_abca00.json"))
    >>> session = AnimationSession.load(config)
    >>> layers = session.step()  # advance one frame
    >>> session.to_figure(n_frames=300, ticks_per_frame=20).write_html("flights.html")
"""

__version__ = "0.1.0"

# Clock and scheduling
from skytrail.animation import (
    AnimationClock,
    AnimationHandle,
    AsyncioFrameDriver,
    FrameDriver,
    FrameLoop,
    ManualFrameDriver,
)

# Configuration
from skytrail.config import (
    Lighting,
    Material,
    SessionConfig,
    Theme,
    TrailStyle,
    ViewState,
)

# Data
from skytrail.data import (
    AlignedTrajectory,
    Trajectory,
    TrajectoryStore,
    align,
    align_all,
)

# Errors
from skytrail.errors import (
    ConfigurationError,
    LoadError,
    SkytrailError,
    ValidationError,
)

# Rendering
from skytrail.render import (
    AltitudeColor,
    PlotlySceneRenderer,
    StaticColor,
    TrailCompositor,
    TrailLayer,
    color_for,
    colors_for,
)

# Session
from skytrail.session import AnimationSession

__all__ = [
    # Version
    "__version__",
    # Clock and scheduling
    "AnimationClock",
    "AnimationHandle",
    "AsyncioFrameDriver",
    "FrameDriver",
    "FrameLoop",
    "ManualFrameDriver",
    # Configuration
    "SessionConfig",
    "TrailStyle",
    "Theme",
    "Material",
    "Lighting",
    "ViewState",
    # Data
    "Trajectory",
    "AlignedTrajectory",
    "TrajectoryStore",
    "align",
    "align_all",
    # Errors
    "SkytrailError",
    "LoadError",
    "ValidationError",
    "ConfigurationError",
    # Rendering
    "AltitudeColor",
    "StaticColor",
    "color_for",
    "colors_for",
    "TrailCompositor",
    "TrailLayer",
    "PlotlySceneRenderer",
    # Session
    "AnimationSession",
]
