"""Tests for the animation session: per-frame steps, subscriptions and export."""

import json
import logging
from dataclasses import replace

import pytest
from numpy.testing import assert_allclose

from skytrail import AnimationSession, SessionConfig, TrailStyle
from skytrail.animation.frames import ManualFrameDriver
from skytrail.data.store import TrajectoryStore
from skytrail.data.trajectory import Trajectory
from skytrail.errors import LoadError


class RecordingRenderer:
    """Keeps every frame it is handed."""

    def __init__(self):
        self.frames = []

    def render(self, layers, current_time):
        self.frames.append((current_time, [layer.id for layer in layers]))


def make_trajectory(name, timestamps):
    path = [[-91.0 + 0.01 * i, 30.0, 500.0 * i] for i in range(len(timestamps))]
    return Trajectory.from_lists(name, path, list(timestamps))


@pytest.fixture
def config():
    return SessionConfig(
        sources=(),
        trail=TrailStyle(trail_length=150.0),
        loop_length=1000.0,
        animation_speed=50.0,
        offsets=(0.0, 400.0),
    )


@pytest.fixture
def trajectories():
    return [
        make_trajectory("ab1fbb", [0.0, 100.0, 200.0, 300.0]),
        make_trajectory("abca00", [0.0, 100.0, 200.0]),
    ]


# =============================================================================
# Frames
# =============================================================================


class TestSessionFrames:
    """Test stepping the session frame by frame."""

    def test_offsets_applied_by_index(self, config, trajectories):
        session = AnimationSession(config, trajectories)
        assert_allclose(session.trajectories[1].effective_timestamps, [400.0, 500.0, 600.0])
        assert session.time_span == (0.0, 600.0)

    def test_step_ticks_and_renders(self, config, trajectories):
        renderer = RecordingRenderer()
        session = AnimationSession(config, trajectories, renderer=renderer, start_time=200.0)
        layers = session.step()
        assert session.clock.current() == 250.0
        assert [layer.id for layer in layers] == ["trips0"]
        assert renderer.frames == [(250.0, ["trips0"])]
        assert session.last_layers is layers

    def test_both_trails_visible(self, config, trajectories):
        session = AnimationSession(config, trajectories, start_time=350.0)
        layers = session.step()
        assert [layer.id for layer in layers] == ["trips0", "trips1"]

    def test_integer_config(self, trajectories):
        config = SessionConfig(
            sources=(),
            trail=TrailStyle(trail_length=150),
            loop_length=1000,
            animation_speed=50,
            offsets=(0, 400),
        )
        session = AnimationSession(config, trajectories, start_time=200)
        assert [layer.id for layer in session.step()] == ["trips0"]
        assert session.clock.current() == 250.0

    def test_frame_does_not_tick(self, config, trajectories):
        session = AnimationSession(config, trajectories, start_time=250.0)
        session.frame()
        assert session.clock.current() == 250.0

    def test_static_color_mode(self, config, trajectories):
        session = AnimationSession(replace(config, color_mode="static"), trajectories, start_time=250.0)
        (layer,) = session.frame()
        assert tuple(layer.colors[0]) == (253, 128, 93)

    def test_warns_outside_loop(self, config, caplog):
        late = make_trajectory("late", [900.0, 1100.0])
        with caplog.at_level(logging.WARNING, logger="skytrail.session"):
            AnimationSession(config, [late])
        assert "outside the loop" in caplog.text


class TestSessionSubscriptions:
    """Test start/stop against a frame driver."""

    def test_start_and_stop(self, config, trajectories):
        renderer = RecordingRenderer()
        session = AnimationSession(config, trajectories, renderer=renderer)
        driver = ManualFrameDriver()
        handle = session.start(driver)
        driver.advance(4)
        session.stop(handle)
        driver.advance(4)
        assert [t for t, _ in renderer.frames] == [50.0, 100.0, 150.0, 200.0]
        assert session.clock.current() == 200.0

    def test_stop_unknown_handle(self, config, trajectories):
        session = AnimationSession(config, trajectories)
        handle = session.start(ManualFrameDriver())
        session.stop(handle)
        session.stop(handle)

    def test_stop_all(self, config, trajectories):
        session = AnimationSession(config, trajectories)
        driver = ManualFrameDriver()
        session.start(driver)
        session.start(driver)
        session.stop_all()
        assert driver.pending == 0
        assert driver.advance() == 0


# =============================================================================
# Loading and Export
# =============================================================================


class TestSessionLoad:
    """Test building a session from configured sources."""

    def test_load(self, tmp_path, config):
        paths = []
        for name in ("ab1fbb", "abca00"):
            path = tmp_path / f"{name}.json"
            path.write_text(json.dumps({
                "name": name,
                "path": [[-91.0, 30.0, 1000.0], [-90.9, 30.1, 2000.0]],
                "timestamps": [0, 100],
            }))
            paths.append(str(path))
        session = AnimationSession.load(replace(config, sources=tuple(paths)), store=TrajectoryStore())
        assert [a.name for a in session.trajectories] == ["ab1fbb", "abca00"]
        assert session.trajectories[1].offset == 400.0

    def test_load_failure(self, tmp_path, config):
        missing = replace(config, sources=(str(tmp_path / "missing.json"),))
        with pytest.raises(LoadError):
            AnimationSession.load(missing)

    def test_basemap(self, config, trajectories, monkeypatch):
        monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")
        basemap = AnimationSession(config, trajectories).basemap()
        assert basemap["map_style"] == "mapbox://styles/mapbox/dark-v10"
        assert basemap["view_state"]["zoom"] == 6.0
        assert basemap["access_token"] == "pk.test"
        assert basemap["building_color"] == (74, 80, 87)

    def test_to_figure_leaves_clock(self, config, trajectories):
        session = AnimationSession(config, trajectories, start_time=100.0)
        fig = session.to_figure(n_frames=8, ticks_per_frame=2)
        assert len(fig.frames) == 8
        assert session.clock.current() == 100.0
        assert fig.layout.sliders[0].steps[1].label == "200"
