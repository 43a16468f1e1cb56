"""
Emission Shapes

Each shape is its own frozen dataclass carrying only the parameters it uses;
`sample_offset` is the single entry point that turns a shape into a random
spawn offset relative to the emitter anchor.

Shapes:
- point: always the anchor
- line: uniform along the emitter direction, centred on the anchor
- circle: area (linear radius) or edge (fixed radius, optional thickness)
- rectangle: area or perimeter walk (top, right, bottom, left)
- rounded_rect: area or perimeter walk with four quarter-circle corners
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, Tuple, Union

import numpy as np


Offset = Tuple[float, float]


class EmissionMode(Enum):
    """Fill the shape or walk its outline"""
    AREA = "area"
    EDGE = "edge"


# =============================================================================
# Shape Variants
# =============================================================================

@dataclass(frozen=True)
class PointShape:
    kind = "point"


@dataclass(frozen=True)
class LineShape:
    kind = "line"
    length: float = 100.0
    spread_rotation: float = 0.0  # Degrees added to the emission angle


@dataclass(frozen=True)
class CircleShape:
    kind = "circle"
    radius: float = 20.0
    mode: EmissionMode = EmissionMode.AREA
    arc: float = 360.0            # Degrees of the circle in use
    thickness: float = 0.0        # Edge band width, 0 = exact radius
    rotation: float = 0.0         # Degrees, centre of the arc


@dataclass(frozen=True)
class RectangleShape:
    kind = "rectangle"
    width: float = 100.0
    height: float = 100.0
    mode: EmissionMode = EmissionMode.AREA
    arc: float = 360.0            # Share of the perimeter in use, in degrees
    thickness: float = 0.0
    rotation: float = 0.0


@dataclass(frozen=True)
class RoundedRectShape:
    kind = "rounded_rect"
    width: float = 100.0
    height: float = 100.0
    corner_radius: float = 20.0
    mode: EmissionMode = EmissionMode.AREA
    arc: float = 360.0
    thickness: float = 0.0
    rotation: float = 0.0

    @property
    def effective_radius(self) -> float:
        """Corner radius clamped to half of each side"""
        return max(0.0, min(self.corner_radius, self.width / 2, self.height / 2))


Shape = Union[PointShape, LineShape, CircleShape, RectangleShape, RoundedRectShape]

SHAPE_TYPES: Dict[str, type] = {
    cls.kind: cls
    for cls in (PointShape, LineShape, CircleShape, RectangleShape, RoundedRectShape)
}


# =============================================================================
# Sampling
# =============================================================================

def _rotate(offset: Offset, degrees: float) -> Offset:
    if degrees == 0:
        return offset
    rad = math.radians(degrees)
    cos_r, sin_r = math.cos(rad), math.sin(rad)
    x, y = offset
    return (x * cos_r - y * sin_r, x * sin_r + y * cos_r)


def _sample_point(shape: PointShape, angle: float, rng: np.random.Generator) -> Offset:
    return (0.0, 0.0)


def _sample_line(shape: LineShape, angle: float, rng: np.random.Generator) -> Offset:
    rad = math.radians(angle)
    distance = (rng.random() - 0.5) * shape.length
    return (math.cos(rad) * distance, math.sin(rad) * distance)


def _sample_circle(shape: CircleShape, angle: float, rng: np.random.Generator) -> Offset:
    arc = math.radians(shape.arc)
    start = -arc / 2 + math.radians(shape.rotation)
    theta = start + rng.random() * arc

    if shape.mode is EmissionMode.AREA:
        # Linear in radius, so density is higher near the centre
        radius = rng.random() * shape.radius
    elif shape.thickness > 0:
        inner = max(0.0, shape.radius - shape.thickness / 2)
        outer = shape.radius + shape.thickness / 2
        radius = inner + rng.random() * (outer - inner)
    else:
        radius = shape.radius

    return (math.cos(theta) * radius, math.sin(theta) * radius)


def _area_offset(width: float, height: float, rng: np.random.Generator) -> Offset:
    return ((rng.random() - 0.5) * width, (rng.random() - 0.5) * height)


def _rectangle_edge(shape: RectangleShape, rng: np.random.Generator) -> Offset:
    w, h = shape.width, shape.height
    perimeter = 2 * (w + h)
    t = rng.random() * perimeter * (shape.arc / 360.0)
    band = (rng.random() - 0.5) * shape.thickness if shape.thickness > 0 else 0.0

    if t < w:
        return (t - w / 2, -h / 2 - band)
    if t < w + h:
        return (w / 2 + band, (t - w) - h / 2)
    if t < 2 * w + h:
        return ((2 * w + h - t) - w / 2, h / 2 + band)
    return (-w / 2 - band, (perimeter - t) - h / 2)


def _sample_rectangle(shape: RectangleShape, angle: float, rng: np.random.Generator) -> Offset:
    if shape.mode is EmissionMode.AREA:
        offset = _area_offset(shape.width, shape.height, rng)
    else:
        offset = _rectangle_edge(shape, rng)
    return _rotate(offset, shape.rotation)


def _corner(cx: float, cy: float, r: float, theta: float, band: float) -> Offset:
    return (cx + math.cos(theta) * (r + band), cy + math.sin(theta) * (r + band))


def _rounded_rect_edge(shape: RoundedRectShape, rng: np.random.Generator) -> Offset:
    w, h = shape.width, shape.height
    r = shape.effective_radius
    if r <= 0:
        return _rectangle_edge(
            RectangleShape(w, h, EmissionMode.EDGE, shape.arc, shape.thickness), rng
        )
    sw = w - 2 * r
    sh = h - 2 * r
    quarter = math.pi * r / 2
    perimeter = 2 * (sw + sh) + 2 * math.pi * r

    t = rng.random() * perimeter * (shape.arc / 360.0)
    band = (rng.random() - 0.5) * shape.thickness if shape.thickness > 0 else 0.0

    # Segment boundaries walking clockwise from the top-left end of the top edge
    top_end = sw
    tr_end = top_end + quarter
    right_end = tr_end + sh
    br_end = right_end + quarter
    bottom_end = br_end + sw
    bl_end = bottom_end + quarter
    left_end = bl_end + sh

    if t < top_end:
        return (t - w / 2 + r, -h / 2 - band)
    if t < tr_end:
        theta = (t - top_end) / r - math.pi / 2
        return _corner(w / 2 - r, -h / 2 + r, r, theta, band)
    if t < right_end:
        return (w / 2 + band, (t - tr_end) - h / 2 + r)
    if t < br_end:
        theta = (t - right_end) / r
        return _corner(w / 2 - r, h / 2 - r, r, theta, band)
    if t < bottom_end:
        return ((w / 2 - r) - (t - br_end), h / 2 + band)
    if t < bl_end:
        theta = (t - bottom_end) / r + math.pi / 2
        return _corner(-w / 2 + r, h / 2 - r, r, theta, band)
    if t < left_end:
        return (-w / 2 - band, (h / 2 - r) - (t - bl_end))
    theta = (t - left_end) / r + math.pi
    return _corner(-w / 2 + r, -h / 2 + r, r, theta, band)


def _sample_rounded_rect(shape: RoundedRectShape, angle: float, rng: np.random.Generator) -> Offset:
    if shape.mode is EmissionMode.AREA:
        offset = _area_offset(shape.width, shape.height, rng)
    else:
        offset = _rounded_rect_edge(shape, rng)
    return _rotate(offset, shape.rotation)


_SAMPLERS: Dict[type, Callable[[Any, float, np.random.Generator], Offset]] = {
    PointShape: _sample_point,
    LineShape: _sample_line,
    CircleShape: _sample_circle,
    RectangleShape: _sample_rectangle,
    RoundedRectShape: _sample_rounded_rect,
}


def sample_offset(shape: Shape, angle: float, rng: np.random.Generator) -> Offset:
    """
    Random spawn offset from the emitter anchor.

    Args:
        shape: Any shape variant
        angle: Emitter direction in degrees (used by lines)
        rng: Random generator owned by the engine

    Returns:
        (dx, dy) in simulation units, y pointing down
    """
    try:
        sampler = _SAMPLERS[type(shape)]
    except KeyError:
        raise TypeError(f"Unsupported shape: {shape!r}") from None
    return sampler(shape, angle, rng)


# =============================================================================
# Config Conversion
# =============================================================================

def shape_from_dict(data: Union[str, Dict[str, Any], None]) -> Shape:
    """
    Create a shape from config.

    Accepts a bare kind ('circle') or a mapping with 'type' plus the variant's
    fields. Unknown fields are ignored.
    """
    if data is None:
        return PointShape()
    if isinstance(data, str):
        data = {'type': data}

    kind = data.get('type', 'point')
    if kind == 'roundedRect':
        kind = 'rounded_rect'
    if kind not in SHAPE_TYPES:
        raise ValueError(f"Unknown shape: {kind}. Available: {', '.join(SHAPE_TYPES)}")

    cls = SHAPE_TYPES[kind]
    valid_fields = {f for f in cls.__dataclass_fields__}
    kwargs = {k: v for k, v in data.items() if k in valid_fields}

    if 'mode' in kwargs:
        kwargs['mode'] = EmissionMode(kwargs['mode'])
    for key, value in kwargs.items():
        if key != 'mode':
            kwargs[key] = float(value)

    # Extents are clamped to be non-negative
    for key in ('length', 'radius', 'width', 'height', 'corner_radius', 'thickness'):
        if key in kwargs:
            kwargs[key] = max(0.0, kwargs[key])
    if 'arc' in kwargs:
        kwargs['arc'] = max(0.0, min(360.0, kwargs['arc']))

    return cls(**kwargs)


def shape_to_dict(shape: Shape) -> Dict[str, Any]:
    data: Dict[str, Any] = {'type': shape.kind}
    for key, value in asdict(shape).items():
        data[key] = value.value if isinstance(value, Enum) else value
    return data
