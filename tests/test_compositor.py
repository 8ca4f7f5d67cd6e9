"""Tests for trail windowing, fading and layer composition."""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from skytrail.animation.clock import AnimationClock
from skytrail.config import Theme, TrailStyle
from skytrail.data.trajectory import Trajectory, align
from skytrail.render.colors import AltitudeColor, StaticColor, colors_for
from skytrail.render.compositor import TrailCompositor, active_window, fade_weights


def make_aligned(name="ab1fbb", timestamps=(0.0, 100.0, 200.0, 300.0), offset=0.0):
    path = [[-91.0 + 0.01 * i, 30.0, 1000.0 * (i + 1)] for i in range(len(timestamps))]
    return align(Trajectory.from_lists(name, path, list(timestamps)), offset=offset)


@pytest.fixture
def compositor():
    return TrailCompositor(TrailStyle(trail_length=150.0), AltitudeColor(Theme()))


# =============================================================================
# Windowing
# =============================================================================


class TestActiveWindow:
    """Test visible index ranges."""

    TS = np.array([0.0, 100.0, 200.0, 300.0])

    def test_excludes_tail_boundary(self):
        window = active_window(self.TS, 250.0, 150.0)
        assert (window.start, window.stop) == (2, 3)

    def test_includes_current_time(self):
        window = active_window(self.TS, 200.0, 150.0)
        assert (window.start, window.stop) == (1, 3)

    def test_before_start_is_empty(self):
        window = active_window(self.TS + 500.0, 100.0, 150.0)
        assert window.start == window.stop

    def test_after_end_is_empty(self):
        window = active_window(self.TS, 1000.0, 150.0)
        assert window.start == window.stop

    def test_matches_brute_force(self):
        rng = np.random.default_rng(7)
        ts = np.sort(rng.uniform(0.0, 1000.0, 200))
        for t in rng.uniform(-100.0, 1100.0, 50):
            window = active_window(ts, float(t), 120.0)
            expected = np.flatnonzero((ts > t - 120.0) & (ts <= t))
            assert_array_equal(np.arange(window.start, window.stop), expected)

    def test_integer_time(self):
        window = active_window(self.TS, 250, 150)
        assert (window.start, window.stop) == (2, 3)
        assert_allclose(fade_weights(np.array([175.0]), 250, 150), [0.5])

    def test_duplicate_timestamps(self):
        ts = np.array([0.0, 10.0, 10.0, 10.0, 20.0])
        window = active_window(ts, 10.0, 5.0)
        assert (window.start, window.stop) == (1, 4)


class TestFadeWeights:
    """Test fade weights across the window."""

    def test_head_is_one(self):
        assert_allclose(fade_weights(np.array([250.0]), 250.0, 150.0), [1.0])

    def test_linear_fade(self):
        weights = fade_weights(np.array([100.0, 175.0, 250.0]), 250.0, 150.0)
        assert_allclose(weights, [0.0, 0.5, 1.0])


# =============================================================================
# Compositor
# =============================================================================


class TestTrailCompositor:
    """Test per-frame trail layers."""

    def test_visible_window(self, compositor):
        layer = compositor.trail(make_aligned(), 250.0)
        assert layer.indices == (2, 3)
        assert_allclose(layer.timestamps, [200.0])
        assert_allclose(layer.positions, [[-90.98, 30.0, 3000.0]])

    def test_nothing_visible_before_start(self, compositor):
        assert compositor.trail(make_aligned(offset=1000.0), 250.0) is None

    def test_wrapped_time_shows_nothing_late(self, compositor):
        """After the clock wraps to 30 a late trajectory is not drawn."""
        clock = AnimationClock(loop_length=1000.0, speed=50.0, start=980.0)
        late = make_aligned(timestamps=(800.0, 900.0, 950.0))
        assert compositor.trail(late, clock.tick()) is None

    def test_weights_in_unit_interval(self, compositor):
        layer = compositor.trail(make_aligned(), 210.0)
        assert np.all(layer.weights > 0.0)
        assert np.all(layer.weights <= 1.0)
        assert_allclose(layer.weights, [1.0 - 110.0 / 150.0, 1.0 - 10.0 / 150.0])

    def test_colors_follow_altitude(self, compositor):
        aligned = make_aligned()
        layer = compositor.trail(aligned, 300.0)
        assert_array_equal(layer.colors, colors_for(np.array([3000.0, 4000.0]), 0.0, 12000.0))

    def test_offset_shifts_window(self, compositor):
        layer = compositor.trail(make_aligned(offset=4758.87), 4758.87 + 260.0)
        assert layer.indices == (2, 3)

    def test_integer_time_and_style(self):
        compositor = TrailCompositor(TrailStyle(trail_length=150, opacity=1), AltitudeColor(Theme()))
        layer = compositor.trail(make_aligned(offset=5), 255)
        assert layer.indices == (2, 3)
        assert layer.current_time == 255.0
        assert layer.trail_length == 150.0
        assert layer.opacity == 1.0
        assert [lay.id for lay in compositor.compose([make_aligned()], 250)] == ["trips0"]

    def test_layer_metadata(self, compositor):
        layer = compositor.trail(make_aligned(), 250.0, layer_id="trips1")
        assert layer.id == "trips1"
        assert layer.name == "ab1fbb"
        assert layer.opacity == 0.3
        assert layer.width_min_pixels == 5.0
        assert layer.rounded is True
        assert layer.trail_length == 150.0
        assert layer.current_time == 250.0
        assert len(layer) == 1
        assert_allclose(layer.head, [-90.98, 30.0, 3000.0])

    def test_static_colors(self):
        theme = Theme()
        compositor = TrailCompositor(
            TrailStyle(trail_length=150.0),
            StaticColor.from_theme(theme, ["ab1fbb", "abca00"]),
        )
        layer = compositor.trail(make_aligned("abca00"), 200.0)
        assert_array_equal(layer.colors, [[23, 184, 190]] * 2)

    def test_compose_ids_stable(self, compositor):
        early = make_aligned("ab1fbb")
        late = make_aligned("abca00", offset=1000.0)
        layers = compositor.compose([late, early], 250.0)
        assert [(layer.id, layer.name) for layer in layers] == [("trips1", "ab1fbb")]

        layers = compositor.compose([late, early], 1250.0)
        assert [layer.id for layer in layers] == ["trips0"]

    def test_compose_is_pure(self, compositor):
        trajectories = [make_aligned("ab1fbb"), make_aligned("abca00", offset=50.0)]
        first = compositor.compose(trajectories, 260.0)
        second = compositor.compose(trajectories, 260.0)
        for a, b in zip(first, second, strict=True):
            assert a.indices == b.indices
            assert_array_equal(a.colors, b.colors)
            assert_allclose(a.weights, b.weights)

    def test_to_dataframe(self, compositor):
        df = compositor.trail(make_aligned(), 300.0).to_dataframe()
        assert df.height == 2
        assert df["index"].to_list() == [2, 3]
        assert_allclose(df["weight"].to_numpy(), [1.0 - 100.0 / 150.0, 1.0])
