"""
Lifetime Curves and Color Gradients

Scalar curves and RGBA gradients sampled at a particle's lifetime fraction.

Features:
- Linear and smooth (quadratic ease in-out) interpolation
- Points sorted by time on every evaluation
- Gradient channels interpolated independently, rounded to 0-255
- Range sampling from an injected random generator
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

import numpy as np

from .utils import ColorUtils, MathUtils


RGBA = Tuple[int, int, int, int]


# =============================================================================
# Curve Data
# =============================================================================

class Interpolation(Enum):
    """How a curve blends between two neighbouring points"""
    LINEAR = "linear"
    SMOOTH = "smooth"


@dataclass(frozen=True)
class CurvePoint:
    time: float
    value: float


@dataclass(frozen=True)
class Curve:
    """
    Scalar curve over lifetime.

    Points are (time, value) pairs where time is 0-1. Stored in the order
    given; evaluation always sorts by time first.
    """
    points: Tuple[CurvePoint, ...] = ()
    interpolation: Interpolation = Interpolation.LINEAR

    @classmethod
    def linear(cls, start: float, end: float) -> 'Curve':
        """Straight line from start to end"""
        return cls((CurvePoint(0.0, start), CurvePoint(1.0, end)))

    @classmethod
    def constant(cls, value: float) -> 'Curve':
        return cls.linear(value, value)

    @classmethod
    def from_points(
        cls,
        points: List[Tuple[float, float]],
        interpolation: Union[str, Interpolation] = Interpolation.LINEAR
    ) -> 'Curve':
        """Build from (time, value) pairs"""
        return cls(
            tuple(CurvePoint(float(t), float(v)) for t, v in points),
            Interpolation(interpolation),
        )

    @classmethod
    def from_dict(cls, data: Union[Dict[str, Any], List[Any]]) -> 'Curve':
        """
        Create from a config mapping.

        Accepts {'points': [[t, v], ...] or [{'time': t, 'value': v}],
        'interpolation': 'linear'|'smooth'} or a bare list of points.
        """
        if isinstance(data, list):
            data = {'points': data}
        points = []
        for point in data.get('points', []):
            if isinstance(point, dict):
                points.append((point['time'], point['value']))
            else:
                points.append((point[0], point[1]))
        return cls.from_points(points, data.get('interpolation', 'linear'))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': [[p.time, p.value] for p in self.points],
            'interpolation': self.interpolation.value,
        }


@dataclass(frozen=True)
class ColorPoint:
    time: float
    color: RGBA


@dataclass(frozen=True)
class ColorGradient:
    """Color gradient for particle color over lifetime"""
    points: Tuple[ColorPoint, ...] = ()

    @classmethod
    def from_stops(cls, stops: List[Tuple[float, RGBA]]) -> 'ColorGradient':
        """Build from (time, RGBA) stops"""
        return cls(tuple(
            ColorPoint(float(t), tuple(int(c) for c in color)) for t, color in stops
        ))

    @classmethod
    def fade(cls, r: int, g: int, b: int) -> 'ColorGradient':
        """Solid color fading from opaque to transparent"""
        return cls.from_stops([(0.0, (r, g, b, 255)), (1.0, (r, g, b, 0))])

    @classmethod
    def from_dict(cls, data: Union[Dict[str, Any], List[Any]]) -> 'ColorGradient':
        """
        Create from a config mapping.

        Stops may be [t, [r, g, b, a]], [t, '#rrggbbaa'] or
        {'time': t, 'color': ...}.
        """
        if isinstance(data, list):
            data = {'points': data}
        stops = []
        for point in data.get('points', []):
            if isinstance(point, dict):
                t, color = point['time'], point['color']
            else:
                t, color = point[0], point[1]
            if isinstance(color, str):
                color = ColorUtils.from_hex(color)
            elif isinstance(color, dict):
                color = (color['r'], color['g'], color['b'], color.get('a', 255))
            elif len(color) == 3:
                color = (*color, 255)
            stops.append((t, tuple(int(MathUtils.clamp(c, 0, 255)) for c in color)))
        return cls.from_stops(stops)

    def to_dict(self) -> Dict[str, Any]:
        return {'points': [[p.time, list(p.color)] for p in self.points]}


@dataclass(frozen=True)
class Range:
    """Min/max pair sampled once per particle"""
    min: float = 0.0
    max: float = 0.0

    @classmethod
    def of(cls, value: Union['Range', float, int, List[float], Tuple[float, float], Dict[str, float]]) -> 'Range':
        """Coerce a scalar, pair or {'min', 'max'} mapping"""
        if isinstance(value, Range):
            return value
        if isinstance(value, dict):
            return cls(float(value.get('min', 0.0)), float(value.get('max', value.get('min', 0.0))))
        if isinstance(value, (list, tuple)):
            return cls(float(value[0]), float(value[1]))
        return cls(float(value), float(value))

    def to_list(self) -> List[float]:
        return [self.min, self.max]


# =============================================================================
# Evaluation
# =============================================================================

def clamp01(value: float) -> float:
    return MathUtils.clamp01(value)


def sample_range(value_range: Range, rng: np.random.Generator) -> float:
    """Uniform sample between range.min and range.max"""
    return value_range.min + rng.random() * (value_range.max - value_range.min)


def _bracket(times: List[float], t: float) -> int:
    """Index of the segment start for t (may be the last index)"""
    i = 0
    while i < len(times) - 1 and times[i + 1] < t:
        i += 1
    return i


def _local_t(t: float, t1: float, t2: float) -> float:
    span = t2 - t1
    if span <= 0:
        return 0.0
    return MathUtils.clamp01((t - t1) / span)


def evaluate_curve(curve: Curve, t: float) -> float:
    """Sample curve at time t (0-1)"""
    t = clamp01(t)
    points = sorted(curve.points, key=lambda p: p.time)

    if not points:
        return 0.0
    if len(points) == 1:
        return points[0].value

    i = _bracket([p.time for p in points], t)
    if i >= len(points) - 1:
        return points[-1].value

    p1, p2 = points[i], points[i + 1]
    local_t = _local_t(t, p1.time, p2.time)

    if curve.interpolation is Interpolation.LINEAR:
        return MathUtils.lerp(p1.value, p2.value, local_t)
    return MathUtils.lerp(p1.value, p2.value, MathUtils.ease_in_out_quad(local_t))


def evaluate_color_gradient(gradient: ColorGradient, t: float) -> RGBA:
    """Sample gradient at time t (0-1)"""
    t = clamp01(t)
    points = sorted(gradient.points, key=lambda p: p.time)

    if not points:
        return (255, 255, 255, 255)
    if len(points) == 1:
        return points[0].color

    i = _bracket([p.time for p in points], t)
    if i >= len(points) - 1:
        return points[-1].color

    p1, p2 = points[i], points[i + 1]
    local_t = _local_t(t, p1.time, p2.time)

    return tuple(
        MathUtils.round_half_up(MathUtils.lerp(c1, c2, local_t))
        for c1, c2 in zip(p1.color, p2.color)
    )


# =============================================================================
# Preset Curves
# =============================================================================

SIZE_SHRINK = Curve.linear(1.0, 0.2)
CONSTANT_ONE = Curve.constant(1.0)
CONSTANT_ZERO = Curve.constant(0.0)
WHITE_FADE = ColorGradient.fade(255, 255, 255)

DEFAULT_CURVE_PRESETS: Dict[str, Curve] = {
    'size': SIZE_SHRINK,
    'size_x': SIZE_SHRINK,
    'size_y': SIZE_SHRINK,
    'speed': CONSTANT_ONE,
    'weight': CONSTANT_ONE,
    'spin': CONSTANT_ZERO,
    'angular_velocity': CONSTANT_ONE,
    'attraction': CONSTANT_ZERO,
    'noise': CONSTANT_ZERO,
    'vortex': CONSTANT_ZERO,
    'gravity': CONSTANT_ONE,
    'drag': CONSTANT_ONE,
    'rate': CONSTANT_ONE,
}
