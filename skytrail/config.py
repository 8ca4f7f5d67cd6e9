"""Session configuration for skytrail.

Everything a rendering session needs is set once, up front, in an immutable
``SessionConfig``. Invalid values raise ``ConfigurationError`` when the
objects are constructed, so nothing is discovered mid-animation.

Defaults reproduce the two-aircraft ADS-B replay the package was built for:

    >>> from skytrail.config import SessionConfig
    >>> config = SessionConfig()
    >>> config.loop_length, config.animation_speed
    (100000.0, 50.0)
    >>> config.offsets
    (0.0, 4758.87)

Configuration can be stored as JSON and overridden from the environment:

    >>> config = SessionConfig.from_json(path.read_text())
    >>> config = SessionConfig.from_env(base=config)  # SKYTRAIL_* variables
"""

import json
import math
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Literal

from beartype import beartype
from beartype.roar import BeartypeCallHintViolation

from skytrail.errors import ConfigurationError

RGB = tuple[int, int, int]

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_SOURCES: tuple[str, ...] = (
    "https://raw.githubusercontent.com/engelsjk/adsbxutils/main/flightpathdata/deckgl/trace_full_ab1fbb_deckgl.json",
    "https://raw.githubusercontent.com/engelsjk/adsbxutils/main/flightpathdata/deckgl/trace_full_abca00_deckgl.json",
)

# Clock-start mismatch between the two default recordings [ticks].
# Calibrated by hand for that pair; other recordings need their own value.
DEFAULT_OFFSETS: tuple[float, ...] = (0.0, 4758.87)

DEFAULT_MAP_STYLE = "mapbox://styles/mapbox/dark-v10"

MAPBOX_TOKEN_ENV = "MAPBOX_ACCESS_TOKEN"
ENV_PREFIX = "SKYTRAIL_"


def _check_rgb(name: str, color: RGB) -> None:
    if any(c < 0 or c > 255 for c in color):
        raise ConfigurationError(f"{name} components must be in 0..255, got {color}")


def _rgb(value: Any) -> RGB:
    r, g, b = value
    return (int(r), int(g), int(b))


def _floats(value: Any) -> tuple[float, ...]:
    return tuple(float(v) for v in value)


def _store_floats(obj: Any, *names: str) -> None:
    """Normalize numeric fields of a frozen dataclass to float."""
    for name in names:
        object.__setattr__(obj, name, float(getattr(obj, name)))


def _reject_unknown(cls: type, data: dict[str, Any]) -> None:
    known = set(cls.__dataclass_fields__)
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {cls.__name__} keys: {sorted(unknown)}. Valid: {sorted(known)}"
        )


# =============================================================================
# Theme
# =============================================================================


@beartype
@dataclass(frozen=True)
class Material:
    """Surface material preset passed through to renderers that light meshes."""
    ambient: float | int = 0.1
    diffuse: float | int = 0.6
    shininess: float | int = 32.0
    specular_color: RGB = (60, 64, 70)

    def __post_init__(self) -> None:
        _store_floats(self, "ambient", "diffuse", "shininess")
        _check_rgb("specular_color", self.specular_color)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Material":
        _reject_unknown(cls, data)
        kwargs: dict[str, Any] = {
            k: float(v) for k, v in data.items() if k != "specular_color"
        }
        if "specular_color" in data:
            kwargs["specular_color"] = _rgb(data["specular_color"])
        return cls(**kwargs)


@beartype
@dataclass(frozen=True)
class Lighting:
    """Ambient plus single point light preset.

    Attributes:
        ambient_color: Ambient light color
        ambient_intensity: Ambient light intensity
        point_color: Point light color
        point_intensity: Point light intensity
        point_position: Point light position [lon, lat, altitude m]
    """
    ambient_color: RGB = (255, 255, 255)
    ambient_intensity: float | int = 1.0
    point_color: RGB = (255, 255, 255)
    point_intensity: float | int = 2.0
    point_position: tuple[float | int, float | int, float | int] = (-74.05, 40.7, 8000.0)

    def __post_init__(self) -> None:
        _store_floats(self, "ambient_intensity", "point_intensity")
        x, y, z = self.point_position
        object.__setattr__(self, "point_position", (float(x), float(y), float(z)))
        _check_rgb("ambient_color", self.ambient_color)
        _check_rgb("point_color", self.point_color)
        if self.ambient_intensity < 0 or self.point_intensity < 0:
            raise ConfigurationError("Light intensities must be >= 0")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Lighting":
        _reject_unknown(cls, data)
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key.endswith("_color"):
                kwargs[key] = _rgb(value)
            elif key == "point_position":
                x, y, z = _floats(value)
                kwargs[key] = (x, y, z)
            else:
                kwargs[key] = float(value)
        return cls(**kwargs)


@beartype
@dataclass(frozen=True)
class Theme:
    """Colors and altitude normalization used to paint trails.

    Attributes:
        altitude_min: Altitude mapped to the warm end of the colormap [m]
        altitude_max: Altitude mapped to the cool end of the colormap [m]
        colormap: Name of a matplotlib colormap. ``None`` builds a two-stop
            colormap from ``trail_colors`` instead.
        trail_colors: Color endpoints; also the per-aircraft static colors
        building_color: Extruded building color for basemaps that draw them
        material: Material preset
        lighting: Lighting preset
    """
    altitude_min: float | int = 0.0
    altitude_max: float | int = 12000.0
    colormap: str | None = "plasma"
    trail_colors: tuple[RGB, RGB] = ((253, 128, 93), (23, 184, 190))
    building_color: RGB = (74, 80, 87)
    material: Material = field(default_factory=Material)
    lighting: Lighting = field(default_factory=Lighting)

    def __post_init__(self) -> None:
        _store_floats(self, "altitude_min", "altitude_max")
        if not (math.isfinite(self.altitude_min) and math.isfinite(self.altitude_max)):
            raise ConfigurationError("Altitude range must be finite")
        if self.altitude_max == self.altitude_min:
            raise ConfigurationError(
                f"altitude_max must differ from altitude_min, both are {self.altitude_min}"
            )
        for i, color in enumerate(self.trail_colors):
            _check_rgb(f"trail_colors[{i}]", color)
        _check_rgb("building_color", self.building_color)
        if self.colormap is not None:
            import matplotlib

            if self.colormap not in matplotlib.colormaps:
                raise ConfigurationError(f"Unknown colormap: {self.colormap!r}")

    @property
    def altitude_span(self) -> float:
        """Width of the normalization range [m]."""
        return self.altitude_max - self.altitude_min

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Theme":
        _reject_unknown(cls, data)
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key in ("altitude_min", "altitude_max"):
                kwargs[key] = float(value)
            elif key == "colormap":
                kwargs[key] = value
            elif key == "trail_colors":
                first, second = value
                kwargs[key] = (_rgb(first), _rgb(second))
            elif key == "building_color":
                kwargs[key] = _rgb(value)
            elif key == "material":
                kwargs[key] = Material.from_dict(value)
            elif key == "lighting":
                kwargs[key] = Lighting.from_dict(value)
        return cls(**kwargs)


# =============================================================================
# Trail Style
# =============================================================================


@beartype
@dataclass(frozen=True)
class TrailStyle:
    """Per-layer trail settings handed verbatim to the renderer.

    Attributes:
        trail_length: Visible history behind the current time [ticks]
        opacity: Layer opacity [0-1]
        width_min_pixels: Minimum screen-space stroke width [px]
        rounded: Round path joins and caps
    """
    trail_length: float | int = 1000.0
    opacity: float | int = 0.3
    width_min_pixels: float | int = 5.0
    rounded: bool = True

    def __post_init__(self) -> None:
        _store_floats(self, "trail_length", "opacity", "width_min_pixels")
        if not self.trail_length > 0:
            raise ConfigurationError(f"trail_length must be > 0, got {self.trail_length}")
        if not 0.0 <= self.opacity <= 1.0:
            raise ConfigurationError(f"opacity must be in [0, 1], got {self.opacity}")
        if self.width_min_pixels < 0:
            raise ConfigurationError(
                f"width_min_pixels must be >= 0, got {self.width_min_pixels}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrailStyle":
        _reject_unknown(cls, data)
        kwargs: dict[str, Any] = {
            k: (bool(v) if k == "rounded" else float(v)) for k, v in data.items()
        }
        return cls(**kwargs)


# =============================================================================
# Viewport
# =============================================================================


@beartype
@dataclass(frozen=True)
class ViewState:
    """Initial viewport handed to the basemap provider.

    Attributes:
        longitude: View center longitude [deg]
        latitude: View center latitude [deg]
        zoom: Web-mercator zoom level
        pitch: Camera tilt from nadir [deg]
        bearing: Camera heading, 0 = north up [deg]
        max_pitch: Largest pitch the user may tilt to [deg]
    """
    longitude: float | int = -91.36156905126727
    latitude: float | int = 29.97256762427715
    zoom: float | int = 6.0
    pitch: float | int = 45.0
    bearing: float | int = 0.0
    max_pitch: float | int = 60.0

    def __post_init__(self) -> None:
        _store_floats(self, "longitude", "latitude", "zoom", "pitch", "bearing", "max_pitch")
        if not -180.0 <= self.longitude <= 180.0:
            raise ConfigurationError(f"longitude out of range: {self.longitude}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ConfigurationError(f"latitude out of range: {self.latitude}")
        if not 0.0 <= self.pitch <= self.max_pitch:
            raise ConfigurationError(
                f"pitch must be in [0, max_pitch={self.max_pitch}], got {self.pitch}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ViewState":
        _reject_unknown(cls, data)
        return cls(**{k: float(v) for k, v in data.items()})


# =============================================================================
# Session Configuration
# =============================================================================


@beartype
@dataclass(frozen=True)
class SessionConfig:
    """Complete, immutable configuration of one rendering session.

    Attributes:
        sources: Trajectory source locators (URLs or local paths)
        trail: Trail style for every layer
        loop_length: Virtual clock period [ticks]
        animation_speed: Clock advance per frame [ticks]
        offsets: Per-trajectory timestamp offsets, by load order [ticks]
        theme: Colors and altitude normalization
        view_state: Initial basemap viewport
        map_style: Basemap style reference
        color_mode: ``"altitude"`` colors by height, ``"static"`` colors
            each aircraft with a fixed theme color
        request_timeout: HTTP timeout for remote sources [s]
    """
    sources: tuple[str, ...] = DEFAULT_SOURCES
    trail: TrailStyle = field(default_factory=TrailStyle)
    loop_length: float | int = 100000.0
    animation_speed: float | int = 50.0
    offsets: tuple[float | int, ...] = DEFAULT_OFFSETS
    theme: Theme = field(default_factory=Theme)
    view_state: ViewState = field(default_factory=ViewState)
    map_style: str = DEFAULT_MAP_STYLE
    color_mode: Literal["altitude", "static"] = "altitude"
    request_timeout: float | int = 30.0

    def __post_init__(self) -> None:
        _store_floats(self, "loop_length", "animation_speed", "request_timeout")
        object.__setattr__(self, "offsets", _floats(self.offsets))
        if not self.loop_length > 0:
            raise ConfigurationError(f"loop_length must be > 0, got {self.loop_length}")
        if not self.animation_speed > 0:
            raise ConfigurationError(
                f"animation_speed must be > 0, got {self.animation_speed}"
            )
        for i, offset in enumerate(self.offsets):
            if not math.isfinite(offset):
                raise ConfigurationError(f"offsets[{i}] must be finite, got {offset}")
        if not self.request_timeout > 0:
            raise ConfigurationError(
                f"request_timeout must be > 0, got {self.request_timeout}"
            )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dict."""
        return json.loads(json.dumps(asdict(self)))

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionConfig":
        """Build a configuration from a (possibly partial) dict.

        Missing keys keep their defaults. Unknown keys, and values of the
        wrong type at any nesting level, raise ``ConfigurationError``.
        """
        try:
            _reject_unknown(cls, data)
            kwargs: dict[str, Any] = {}
            for key, value in data.items():
                if key == "sources":
                    kwargs[key] = tuple(str(s) for s in value)
                elif key == "offsets":
                    kwargs[key] = _floats(value)
                elif key in ("loop_length", "animation_speed", "request_timeout"):
                    kwargs[key] = float(value)
                elif key == "trail":
                    kwargs[key] = TrailStyle.from_dict(value)
                elif key == "theme":
                    kwargs[key] = Theme.from_dict(value)
                elif key == "view_state":
                    kwargs[key] = ViewState.from_dict(value)
                else:
                    kwargs[key] = value
            return cls(**kwargs)
        except ConfigurationError:
            raise
        except (BeartypeCallHintViolation, TypeError, ValueError) as err:
            raise ConfigurationError(f"Invalid configuration: {err}") from err

    @classmethod
    def from_json(cls, json_str: str) -> "SessionConfig":
        """Deserialize from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as err:
            raise ConfigurationError(f"Configuration is not valid JSON: {err}") from err
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        base: "SessionConfig | None" = None,
        environ: Mapping[str, str] | None = None,
    ) -> "SessionConfig":
        """Override scalar settings from ``SKYTRAIL_*`` environment variables.

        Supported variables (all optional):
            SKYTRAIL_SOURCES: comma-separated locators
            SKYTRAIL_OFFSETS: comma-separated offsets
            SKYTRAIL_TRAIL_LENGTH, SKYTRAIL_LOOP_LENGTH,
            SKYTRAIL_ANIMATION_SPEED, SKYTRAIL_ALTITUDE_MIN,
            SKYTRAIL_ALTITUDE_MAX, SKYTRAIL_COLOR_MODE
        """
        config = base or cls()
        env = os.environ if environ is None else environ

        sources = _get_list(env, "SOURCES")
        offsets = _get_list(env, "OFFSETS")
        trail_length = _get_float(env, "TRAIL_LENGTH")
        loop_length = _get_float(env, "LOOP_LENGTH")
        animation_speed = _get_float(env, "ANIMATION_SPEED")
        altitude_min = _get_float(env, "ALTITUDE_MIN")
        altitude_max = _get_float(env, "ALTITUDE_MAX")
        color_mode = env.get(ENV_PREFIX + "COLOR_MODE", "").strip()

        changes: dict[str, Any] = {}
        if sources is not None:
            changes["sources"] = tuple(sources)
        if offsets is not None:
            try:
                changes["offsets"] = _floats(offsets)
            except ValueError as err:
                raise ConfigurationError(f"Invalid {ENV_PREFIX}OFFSETS: {err}") from err
        if trail_length is not None:
            changes["trail"] = replace(config.trail, trail_length=trail_length)
        if loop_length is not None:
            changes["loop_length"] = loop_length
        if animation_speed is not None:
            changes["animation_speed"] = animation_speed
        if altitude_min is not None or altitude_max is not None:
            changes["theme"] = replace(
                config.theme,
                altitude_min=config.theme.altitude_min if altitude_min is None else altitude_min,
                altitude_max=config.theme.altitude_max if altitude_max is None else altitude_max,
            )
        if color_mode:
            if color_mode not in ("altitude", "static"):
                raise ConfigurationError(f"Invalid {ENV_PREFIX}COLOR_MODE: {color_mode!r}")
            changes["color_mode"] = color_mode

        return replace(config, **changes) if changes else config


# =============================================================================
# Environment Helpers
# =============================================================================


def _get_float(env: Mapping[str, str], name: str) -> float | None:
    v = env.get(ENV_PREFIX + name)
    if v is None or v.strip() == "":
        return None
    try:
        return float(v)
    except ValueError:
        raise ConfigurationError(f"Invalid float for {ENV_PREFIX}{name}: {v!r}") from None


def _get_list(env: Mapping[str, str], name: str) -> list[str] | None:
    v = env.get(ENV_PREFIX + name)
    if v is None or v.strip() == "":
        return None
    return [item.strip() for item in v.split(",") if item.strip()]


def mapbox_access_token(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the basemap access token from the environment, if set."""
    env = os.environ if environ is None else environ
    token = env.get(MAPBOX_TOKEN_ENV, "").strip()
    return token or None
