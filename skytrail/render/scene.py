"""Plotly scene renderer for trail layers.

Draws the compositor's ``TrailLayer`` output as 3D lines in
(longitude, latitude, altitude) space. The renderer does no windowing or
coloring of its own: every vertex, color and style value comes from the
layer.

- ``render`` builds a static figure for one frame
- ``animate`` ticks a clock and builds a figure with one Plotly frame per
  tick sample, Play/Pause buttons and a time slider

Example:
    >>> renderer = PlotlySceneRenderer(config.view_state)
    >>> fig = renderer.render(compositor.compose(aligned, clock.current()), clock.current())
    >>> fig.write_html("frame.html")
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

import numpy as np
import plotly.graph_objects as go
from beartype import beartype

from skytrail.animation.clock import AnimationClock
from skytrail.config import ViewState
from skytrail.data.trajectory import AlignedTrajectory
from skytrail.errors import ConfigurationError
from skytrail.render.compositor import TrailCompositor, TrailLayer

# =============================================================================
# Renderer Protocol
# =============================================================================


@runtime_checkable
class SceneRenderer(Protocol):
    """Consumer of per-frame trail layers."""

    def render(self, layers: Sequence[TrailLayer], current_time: float) -> Any:
        """Draw one frame."""
        ...


# =============================================================================
# Helpers
# =============================================================================


def _rgba_strings(layer: TrailLayer) -> list[str]:
    """Per-vertex CSS colors, with the fade weight as alpha."""
    alpha = np.clip(layer.weights, 0.0, 1.0)
    return [
        f"rgba({r},{g},{b},{a:.3f})"
        for (r, g, b), a in zip(layer.colors.tolist(), alpha, strict=True)
    ]


def _css(color: tuple[int, int, int]) -> str:
    r, g, b = color
    return f"rgb({r},{g},{b})"


@beartype
def camera_from_view(view: ViewState, distance: float | int = 2.0) -> dict:
    """Plotly scene camera approximating a map pitch/bearing.

    Pitch 0 looks straight down; bearing 0 looks north.
    """
    pitch = np.radians(max(view.pitch, 1.0))
    bearing = np.radians(view.bearing)
    horizontal = distance * np.sin(pitch)
    return dict(
        eye=dict(
            x=float(-horizontal * np.sin(bearing)),
            y=float(-horizontal * np.cos(bearing)),
            z=float(distance * np.cos(pitch)),
        ),
        up=dict(x=0, y=0, z=1),
    )


@beartype
def scene_ranges(trajectories: Sequence[AlignedTrajectory], pad: float | int = 0.05) -> dict:
    """Axis ranges covering every trajectory, padded by ``pad`` of the span."""
    stacked = np.vstack([a.positions for a in trajectories])
    lo = stacked.min(axis=0)
    hi = stacked.max(axis=0)
    span = np.where(hi > lo, hi - lo, 1.0)
    lo = lo - pad * span
    hi = hi + pad * span
    return {
        "xaxis": [float(lo[0]), float(hi[0])],
        "yaxis": [float(lo[1]), float(hi[1])],
        "zaxis": [float(max(lo[2], 0.0)), float(hi[2])],
    }


# =============================================================================
# Plotly Renderer
# =============================================================================


@beartype
class PlotlySceneRenderer:
    """Renders trail layers with Plotly ``Scatter3d`` traces."""

    def __init__(
        self,
        view_state: ViewState,
        title: str = "Flight Trails",
        show_heads: bool = True,
    ) -> None:
        """Initialize the renderer.

        Args:
            view_state: Initial viewport, used for the camera
            title: Figure title
            show_heads: Mark the newest point of each trail
        """
        self.view_state = view_state
        self.title = title
        self.show_heads = show_heads

    # -------------------------------------------------------------------------
    # Traces
    # -------------------------------------------------------------------------

    def trail_trace(self, layer: TrailLayer) -> go.Scatter3d:
        """Line trace for one layer."""
        hover_text = [
            f"{layer.name}<br>t={t:.0f}<br>Alt: {alt:.0f} m"
            for t, alt in zip(layer.timestamps, layer.positions[:, 2], strict=True)
        ]
        return go.Scatter3d(
            x=layer.positions[:, 0],
            y=layer.positions[:, 1],
            z=layer.positions[:, 2],
            mode="lines",
            line=dict(color=_rgba_strings(layer), width=layer.width_min_pixels),
            opacity=layer.opacity,
            name=layer.name,
            text=hover_text,
            hovertemplate="%{text}<extra></extra>",
        )

    def head_trace(self, layer: TrailLayer) -> go.Scatter3d:
        """Marker at the newest point of one layer."""
        x, y, z = layer.head
        r, g, b = (int(c) for c in layer.colors[-1])
        return go.Scatter3d(
            x=[x], y=[y], z=[z],
            mode="markers",
            marker=dict(size=layer.width_min_pixels, color=_css((r, g, b))),
            name=f"{layer.name} (now)",
            showlegend=False,
        )

    def _empty_trace(self, name: str) -> go.Scatter3d:
        return go.Scatter3d(x=[], y=[], z=[], mode="lines", name=name)

    # -------------------------------------------------------------------------
    # Figures
    # -------------------------------------------------------------------------

    def _layout(self, ranges: dict | None = None) -> dict:
        scene: dict[str, Any] = dict(
            xaxis=dict(title="Longitude (deg)"),
            yaxis=dict(title="Latitude (deg)"),
            zaxis=dict(title="Altitude (m)"),
            aspectmode="manual",
            aspectratio=dict(x=1.5, y=1.5, z=0.5),
            camera=camera_from_view(self.view_state),
            bgcolor="rgb(5,5,20)",
        )
        if ranges is not None:
            for axis, axis_range in ranges.items():
                scene[axis]["range"] = axis_range
        return dict(
            title=dict(text=self.title, x=0.5),
            scene=scene,
            template="plotly_dark",
            showlegend=True,
        )

    def render(self, layers: Sequence[TrailLayer], current_time: float | int) -> go.Figure:
        """Static figure of one frame."""
        fig = go.Figure()
        for layer in layers:
            fig.add_trace(self.trail_trace(layer))
            if self.show_heads:
                fig.add_trace(self.head_trace(layer))
        fig.update_layout(**self._layout())
        fig.update_layout(title=dict(text=f"{self.title}  t={current_time:.0f}"))
        return fig

    def animate(
        self,
        trajectories: Sequence[AlignedTrajectory],
        compositor: TrailCompositor,
        clock: AnimationClock,
        n_frames: int = 200,
        ticks_per_frame: int = 1,
        frame_duration_ms: int = 50,
    ) -> go.Figure:
        """Animated figure sampled from the clock.

        The clock is ticked ``ticks_per_frame`` times between samples, so the
        figure covers ``n_frames * ticks_per_frame`` ticks starting at the
        clock's current time.

        Args:
            trajectories: Aligned trajectories
            compositor: Trail compositor
            clock: Clock to tick (mutated)
            n_frames: Number of Plotly frames
            ticks_per_frame: Clock ticks per Plotly frame
            frame_duration_ms: Playback time per frame [ms]
        """
        if n_frames < 1 or ticks_per_frame < 1:
            raise ConfigurationError(
                f"n_frames and ticks_per_frame must be >= 1, got {n_frames} and {ticks_per_frame}"
            )

        per_traj = 2 if self.show_heads else 1
        n_traces = per_traj * len(trajectories)

        frames: list[go.Frame] = []
        frame_times: list[float] = []
        for i in range(n_frames):
            t = clock.current()
            frame_times.append(t)
            data = [self._empty_trace(a.name) for a in trajectories for _ in range(per_traj)]
            for k, aligned in enumerate(trajectories):
                layer = compositor.trail(aligned, t, layer_id=f"trips{k}")
                if layer is None:
                    continue
                data[per_traj * k] = self.trail_trace(layer)
                if self.show_heads:
                    data[per_traj * k + 1] = self.head_trace(layer)
            frames.append(go.Frame(data=data, name=str(i), traces=list(range(n_traces))))
            for _ in range(ticks_per_frame):
                clock.tick()

        fig = go.Figure(data=frames[0].data, frames=frames)
        fig.update_layout(**self._layout(scene_ranges(trajectories)))

        slider_steps = [
            dict(
                method="animate",
                label=f"{t:.0f}",
                args=[[str(i)], {"frame": {"duration": 0, "redraw": True}, "mode": "immediate"}],
            )
            for i, t in enumerate(frame_times)
        ]
        fig.update_layout(
            updatemenus=[
                dict(
                    type="buttons",
                    showactive=True,
                    x=0.1,
                    y=0,
                    xanchor="right",
                    yanchor="top",
                    buttons=[
                        dict(
                            label="Play",
                            method="animate",
                            args=[None, {
                                "frame": {"duration": frame_duration_ms, "redraw": True},
                                "fromcurrent": True,
                                "transition": {"duration": 0},
                            }],
                        ),
                        dict(
                            label="Pause",
                            method="animate",
                            args=[[None], {
                                "frame": {"duration": 0, "redraw": False},
                                "mode": "immediate",
                                "transition": {"duration": 0},
                            }],
                        ),
                    ],
                )
            ],
            sliders=[dict(
                active=0,
                currentvalue=dict(prefix="t = "),
                pad=dict(t=50),
                steps=slider_steps,
            )],
        )
        return fig
