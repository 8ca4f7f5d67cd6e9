"""Rendering session: configuration, data, clock and compositor wired together.

One frame is one ``step``: advance the clock, recompose every trail, hand the
layers to the renderer. ``start`` subscribes ``step`` to a frame driver and
returns a handle; ``stop`` with that handle ends the subscription.

Example:
    >>> from skytrail import AnimationSession, SessionConfig
    >>> from skytrail.animation import AsyncioFrameDriver
    >>>
    >>> session = AnimationSession.load(SessionConfig(), renderer=my_renderer)
    >>> handle = session.start(AsyncioFrameDriver(fps=60.0))
    >>> ...
    >>> session.stop(handle)

Offline export to an interactive HTML animation:

    >>> fig = session.to_figure(n_frames=400, ticks_per_frame=10)
    >>> fig.write_html("flights.html")
"""

import logging
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any

from beartype import beartype

from skytrail.animation.clock import AnimationClock
from skytrail.animation.frames import AnimationHandle, FrameDriver, FrameLoop
from skytrail.config import SessionConfig, mapbox_access_token
from skytrail.data.store import TrajectoryStore
from skytrail.data.trajectory import Trajectory, align_all
from skytrail.render.colors import make_color_strategy
from skytrail.render.compositor import TrailCompositor, TrailLayer
from skytrail.render.scene import PlotlySceneRenderer, SceneRenderer

logger = logging.getLogger(__name__)


@beartype
class AnimationSession:
    """A configured, loaded animation ready to run.

    Attributes:
        config: Session configuration
        trajectories: Aligned trajectories, in load order
        clock: The session clock; only ``step`` ticks it
        compositor: Trail compositor
        renderer: Optional layer consumer called once per frame
        last_layers: Layers produced by the most recent frame
    """

    def __init__(
        self,
        config: SessionConfig,
        trajectories: Sequence[Trajectory],
        renderer: SceneRenderer | None = None,
        start_time: float | int = 0.0,
    ) -> None:
        """Initialize the session from already loaded trajectories.

        Args:
            config: Session configuration
            trajectories: Validated trajectories; ``config.offsets`` is
                applied by index
            renderer: Layer consumer
            start_time: Initial clock time [ticks]
        """
        self.config = config
        self.trajectories = align_all(trajectories, config.offsets)
        self.clock = AnimationClock.from_config(config, start=start_time)
        self.compositor = TrailCompositor(
            config.trail,
            make_color_strategy(config.color_mode, config.theme, [t.name for t in trajectories]),
        )
        self.renderer = renderer
        self.last_layers: list[TrailLayer] = []
        self._loops: dict[AnimationHandle, FrameLoop] = {}

        for aligned in self.trajectories:
            if aligned.end >= config.loop_length or aligned.start < 0:
                logger.warning(
                    "Trajectory %s spans [%.1f, %.1f], partly outside the loop [0, %.1f)",
                    aligned.name, aligned.start, aligned.end, config.loop_length,
                )

    @classmethod
    def load(
        cls,
        config: SessionConfig,
        renderer: SceneRenderer | None = None,
        store: TrajectoryStore | None = None,
    ) -> "AnimationSession":
        """Load ``config.sources`` and build a session.

        Raises:
            LoadError: A source is unreachable or malformed
            ValidationError: A trajectory violates the data invariants
        """
        store = store or TrajectoryStore(timeout=config.request_timeout)
        trajectories = store.load(config.sources)
        logger.info(
            "Session ready: %d trajectories, loop %.0f ticks at %.1f ticks/frame",
            len(trajectories), config.loop_length, config.animation_speed,
        )
        return cls(config, trajectories, renderer=renderer)

    # -------------------------------------------------------------------------
    # Frames
    # -------------------------------------------------------------------------

    def frame(self) -> list[TrailLayer]:
        """Layers at the current time, without advancing the clock."""
        return self.compositor.compose(self.trajectories, self.clock.current())

    def step(self) -> list[TrailLayer]:
        """Advance one frame and hand the new layers to the renderer."""
        current_time = self.clock.tick()
        layers = self.compositor.compose(self.trajectories, current_time)
        self.last_layers = layers
        if self.renderer is not None:
            self.renderer.render(layers, current_time)
        return layers

    def _on_frame(self) -> None:
        self.step()

    def start(self, driver: FrameDriver) -> AnimationHandle:
        """Run ``step`` once per refresh of ``driver``."""
        loop = FrameLoop(driver)
        handle = loop.start(self._on_frame)
        self._loops[handle] = loop
        return handle

    def stop(self, handle: AnimationHandle) -> None:
        """Stop a run started with ``start``. Unknown or stopped handles are ignored."""
        loop = self._loops.pop(handle, None)
        if loop is not None:
            loop.stop(handle)

    def stop_all(self) -> None:
        """Stop every running subscription (session teardown)."""
        for handle in list(self._loops):
            self.stop(handle)

    # -------------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------------

    @property
    def time_span(self) -> tuple[float, float]:
        """Earliest and latest effective timestamp across trajectories [ticks]."""
        return (
            min(a.start for a in self.trajectories),
            max(a.end for a in self.trajectories),
        )

    def basemap(self) -> dict[str, Any]:
        """Initial configuration for the basemap provider."""
        return {
            "map_style": self.config.map_style,
            "view_state": asdict(self.config.view_state),
            "access_token": mapbox_access_token(),
            "building_color": self.config.theme.building_color,
        }

    def to_figure(
        self,
        n_frames: int = 200,
        ticks_per_frame: int = 1,
        start_time: float | int | None = None,
        title: str = "Flight Trails",
    ):
        """Plotly animation sampled from a copy of the session clock.

        The session's own clock is not advanced.

        Args:
            n_frames: Number of animation frames
            ticks_per_frame: Clock ticks between frames
            start_time: First frame time; defaults to the current time
            title: Figure title
        """
        clock = AnimationClock.from_config(
            self.config,
            start=self.clock.current() if start_time is None else start_time,
        )
        renderer = PlotlySceneRenderer(self.config.view_state, title=title)
        return renderer.animate(
            self.trajectories,
            self.compositor,
            clock,
            n_frames=n_frames,
            ticks_per_frame=ticks_per_frame,
        )
