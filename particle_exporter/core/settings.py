"""
Particle effect settings.

The settings document is an immutable snapshot: the engine and the export
pipeline only read it. Documents are built from plain mappings (YAML/JSON)
with out-of-range values clamped instead of rejected.
"""

import json
import logging
import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .curves import (
    Curve, ColorGradient, Range,
    DEFAULT_CURVE_PRESETS, WHITE_FADE,
)
from .shapes import Shape, PointShape, shape_from_dict, shape_to_dict

logger = logging.getLogger(__name__)


MAX_EMITTERS = 5
MIN_DURATION = 0.01

SPRITE_TYPES = (
    "circle", "star", "polygon", "glow", "needle",
    "raindrop", "snowflake", "smoke", "custom",
)

Vec2 = Tuple[float, float]


class EmissionType(Enum):
    CONTINUOUS = "continuous"
    BURST = "burst"
    DURATION = "duration"


class SpawnAngleMode(Enum):
    """Initial particle rotation"""
    ALIGN_MOTION = "alignMotion"   # Along the initial velocity
    SPECIFIC = "specific"          # Fixed spawn_angle
    RANDOM = "random"              # Uniform 0-360
    RANGE = "range"                # Uniform in [spawn_angle_min, spawn_angle_max]


# =============================================================================
# Emitter Settings
# =============================================================================

@dataclass(frozen=True)
class EmitterSettings:
    """Everything one emitter needs to spawn and animate its particles"""
    # Shape and placement
    position: Vec2 = (0.0, 0.0)
    shape: Shape = PointShape()
    angle: float = -90.0               # Degrees, -90 = up
    angle_spread: float = 30.0         # Degrees, full width of the cone

    # Emission
    emission_type: EmissionType = EmissionType.CONTINUOUS
    rate: float = 10.0                 # Particles per second
    rate_over_time: Curve = DEFAULT_CURVE_PRESETS['rate']
    max_particles: int = 500
    burst_count: int = 10
    burst_cycles: int = 1
    burst_interval: float = 0.5
    duration_start: float = 0.0
    duration_end: float = 2.0

    looping: bool = True
    prewarm: bool = False
    start_delay: float = 0.0

    # Lifetime
    lifetime: Range = Range(0.5, 1.5)

    # Forces
    gravity_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['gravity']
    gravity_range: Range = Range(0.0, 0.0)
    drag_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['drag']
    drag_range: Range = Range(1.0, 1.0)

    # Size
    separate_size: bool = False
    size_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['size']
    size_range: Range = Range(1.0, 1.0)
    size_x_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['size_x']
    size_x_range: Range = Range(1.0, 1.0)
    size_y_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['size_y']
    size_y_range: Range = Range(1.0, 1.0)
    scale_ratio_x: float = 1.0
    scale_ratio_y: float = 1.0

    # Speed and weight
    initial_speed_range: Range = Range(100.0, 200.0)
    speed_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['speed']
    speed_range: Range = Range(1.0, 1.0)
    weight_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['weight']
    weight_range: Range = Range(1.0, 1.0)

    # Rotation (degrees, degrees per second)
    spin_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['spin']
    spin_range: Range = Range(0.0, 0.0)
    angular_velocity_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['angular_velocity']
    angular_velocity_range: Range = Range(0.0, 0.0)
    spawn_angle_mode: SpawnAngleMode = SpawnAngleMode.ALIGN_MOTION
    spawn_angle: float = 0.0
    spawn_angle_min: float = -45.0
    spawn_angle_max: float = 45.0

    # Attraction
    attraction_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['attraction']
    attraction_range: Range = Range(0.0, 0.0)
    attraction_point: Vec2 = (0.0, 0.0)

    # Turbulence
    noise_strength_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['noise']
    noise_strength_range: Range = Range(0.0, 0.0)
    noise_frequency_range: Range = Range(0.02, 0.08)
    noise_speed_range: Range = Range(2.0, 4.0)

    # Vortex
    vortex_strength_over_lifetime: Curve = DEFAULT_CURVE_PRESETS['vortex']
    vortex_strength_range: Range = Range(0.0, 0.0)
    vortex_point: Vec2 = (0.0, 0.0)

    # Appearance
    color_over_lifetime: ColorGradient = WHITE_FADE
    sprite: str = "circle"
    custom_sprite_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmitterSettings':
        """Create from a config mapping, clamping out-of-range values"""
        kwargs = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            kwargs[f.name] = _coerce(f.default, data[f.name], f.name)

        if 'shape' in data:
            kwargs['shape'] = shape_from_dict(data['shape'])

        sprite = kwargs.get('sprite', cls.sprite)
        if sprite not in SPRITE_TYPES:
            raise ValueError(f"Unknown sprite: {sprite}. Available: {', '.join(SPRITE_TYPES)}")

        return cls(**kwargs).clamped()

    def clamped(self) -> 'EmitterSettings':
        """Copy with every value forced into its valid range"""
        life_min = max(0.0, self.lifetime.min)
        life_max = max(life_min, self.lifetime.max)
        return replace(
            self,
            rate=max(0.0, self.rate),
            max_particles=max(0, int(self.max_particles)),
            burst_count=max(0, int(self.burst_count)),
            burst_cycles=max(0, int(self.burst_cycles)),
            burst_interval=max(0.0, self.burst_interval),
            duration_start=max(0.0, self.duration_start),
            duration_end=max(self.duration_start, self.duration_end),
            start_delay=max(0.0, self.start_delay),
            lifetime=Range(life_min, life_max),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == 'shape':
                data[f.name] = shape_to_dict(value)
            elif isinstance(value, (Curve, ColorGradient)):
                data[f.name] = value.to_dict()
            elif isinstance(value, Range):
                data[f.name] = value.to_list()
            elif isinstance(value, Enum):
                data[f.name] = value.value
            elif isinstance(value, tuple):
                data[f.name] = list(value)
            else:
                data[f.name] = value
        return data


def _coerce(default: Any, value: Any, name: str) -> Any:
    """Convert a raw config value to the type of the field's default"""
    if isinstance(default, Curve):
        return Curve.from_dict(value)
    if isinstance(default, ColorGradient):
        return ColorGradient.from_dict(value)
    if isinstance(default, Range):
        return Range.of(value)
    if isinstance(default, Enum):
        try:
            return type(default)(value)
        except ValueError:
            choices = ', '.join(m.value for m in type(default))
            raise ValueError(f"Unknown {name}: {value}. Available: {choices}") from None
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, tuple):
        if isinstance(value, dict):
            return (float(value.get('x', 0.0)), float(value.get('y', 0.0)))
        return (float(value[0]), float(value[1]))
    return value


# =============================================================================
# Emitters and Document
# =============================================================================

@dataclass(frozen=True)
class Emitter:
    """A named emitter instance inside a settings document"""
    id: str
    name: str
    settings: EmitterSettings = field(default_factory=EmitterSettings)
    enabled: bool = True     # Included in export
    visible: bool = True     # Drawn in preview

    @classmethod
    def from_dict(cls, data: Dict[str, Any], index: int = 0) -> 'Emitter':
        emitter_id = str(data.get('id', f"emitter_{index + 1}"))
        name = str(data.get('name', f"Emitter {index + 1}"))
        settings_data = data.get('settings')
        if settings_data is None:
            reserved = {'id', 'name', 'enabled', 'visible'}
            settings_data = {k: v for k, v in data.items() if k not in reserved}
        return cls(
            id=emitter_id,
            name=name,
            settings=EmitterSettings.from_dict(settings_data),
            enabled=bool(data.get('enabled', True)),
            visible=bool(data.get('visible', True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'enabled': self.enabled,
            'visible': self.visible,
            'settings': self.settings.to_dict(),
        }


@dataclass(frozen=True)
class ExportSettings:
    """Channel toggles and keyframe reduction thresholds"""
    export_translate: bool = True
    export_rotate: bool = True
    export_scale: bool = True
    export_color: bool = True

    position_threshold: float = 12.0   # Pixels
    rotation_threshold: float = 20.0   # Degrees
    scale_threshold: float = 0.2
    color_threshold: float = 60.0      # Sum of channel deltas, 0-255 scale

    spine_version: str = "4.2.00"
    decimation: float = 0.0            # Percent of keys dropped in dense regions

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExportSettings':
        kwargs = {
            f.name: _coerce(f.default, data[f.name], f.name)
            for f in fields(cls) if f.name in data
        }
        settings = cls(**kwargs)
        return replace(
            settings,
            position_threshold=max(0.0, settings.position_threshold),
            rotation_threshold=max(0.0, settings.rotation_threshold),
            scale_threshold=max(0.0, settings.scale_threshold),
            color_threshold=max(0.0, settings.color_threshold),
            decimation=max(0.0, min(100.0, settings.decimation)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ParticleSettings:
    """
    Full effect document: ordered emitters plus shared timeline and export
    settings.
    """
    emitters: Tuple[Emitter, ...] = (Emitter("emitter_1", "Emitter 1"),)
    duration: float = 2.0
    fps: int = 30
    frame_size: int = 512
    export: ExportSettings = field(default_factory=ExportSettings)

    def __post_init__(self):
        if len({e.id for e in self.emitters}) != len(self.emitters):
            raise ValueError("Emitter ids must be unique")
        object.__setattr__(self, 'duration', max(MIN_DURATION, float(self.duration)))
        object.__setattr__(self, 'fps', max(1, int(self.fps)))

    @property
    def enabled_emitters(self) -> List[Emitter]:
        return [e for e in self.emitters if e.enabled]

    @property
    def frame_count(self) -> int:
        """Output frames after frame 0 for one cycle"""
        return math.ceil(self.duration * self.fps)

    def emitter(self, emitter_id: str) -> Optional[Emitter]:
        for emitter in self.emitters:
            if emitter.id == emitter_id:
                return emitter
        return None

    def index_of(self, emitter_id: str) -> int:
        for i, emitter in enumerate(self.emitters):
            if emitter.id == emitter_id:
                return i
        raise KeyError(emitter_id)

    def with_overrides(self, **overrides: Any) -> 'ParticleSettings':
        """Copy with timeline values replaced (None values are ignored)"""
        values = {k: v for k, v in overrides.items() if v is not None}
        return ParticleSettings.from_dict({**self.to_dict(), **values})

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParticleSettings':
        """
        Create from a config mapping.

        Keys: emitters (list), duration, fps, frame_size, export (mapping).
        A mapping without 'emitters' is treated as a single emitter.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Settings must be a mapping, got {type(data).__name__}")

        raw_emitters = data.get('emitters')
        if raw_emitters is None:
            reserved = {'duration', 'fps', 'frame_size', 'export'}
            raw_emitters = [{k: v for k, v in data.items() if k not in reserved}]

        if len(raw_emitters) > MAX_EMITTERS:
            logger.warning(
                "Document has %d emitters; keeping the first %d",
                len(raw_emitters), MAX_EMITTERS,
            )
            raw_emitters = raw_emitters[:MAX_EMITTERS]

        emitters = tuple(Emitter.from_dict(e, i) for i, e in enumerate(raw_emitters))

        return cls(
            emitters=emitters,
            duration=max(MIN_DURATION, float(data.get('duration', cls.duration))),
            fps=max(1, int(data.get('fps', cls.fps))),
            frame_size=max(16, int(data.get('frame_size', cls.frame_size))),
            export=ExportSettings.from_dict(data.get('export', {}) or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'duration': self.duration,
            'fps': self.fps,
            'frame_size': self.frame_size,
            'export': self.export.to_dict(),
            'emitters': [e.to_dict() for e in self.emitters],
        }


def load_settings(path: str | Path) -> ParticleSettings:
    """Load a settings document from a YAML or JSON file"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    with open(path, 'r') as f:
        if path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    logger.debug("Loaded settings from %s", path)
    return ParticleSettings.from_dict(data or {})
