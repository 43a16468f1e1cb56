"""
Procedural Particle Sprites

White RGBA sprites tinted at runtime by the slot color. Hard-edged shapes are
drawn with ImageDraw at 4x and downsampled; soft shapes are computed as numpy
alpha maps.

Sprites:
- circle, polygon (hexagon), star (5 spikes)
- glow: radial falloff
- needle: vertical streak fading at both ends
- raindrop, snowflake
- smoke: soft puff with an offset lobe
"""

import math
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

SPRITE_SIZE = 64
SUPERSAMPLE = 4

Point = Tuple[float, float]


# =============================================================================
# Helpers
# =============================================================================

def _from_alpha(alpha: np.ndarray) -> Image.Image:
    """White image with the given 0-1 alpha map"""
    h, w = alpha.shape
    pixels = np.full((h, w, 4), 255, dtype=np.uint8)
    pixels[..., 3] = (np.clip(alpha, 0.0, 1.0) * 255 + 0.5).astype(np.uint8)
    return Image.fromarray(pixels, 'RGBA')


def _pixel_grid(size: int) -> Tuple[np.ndarray, np.ndarray]:
    """Pixel-centre coordinates"""
    coords = np.arange(size, dtype=float) + 0.5
    return np.meshgrid(coords, coords)


def _gradient(t: np.ndarray, stops: Sequence[Tuple[float, float]]) -> np.ndarray:
    """Piecewise-linear alpha over (offset, alpha) stops, clamped at the ends"""
    offsets = [s[0] for s in stops]
    values = [s[1] for s in stops]
    return np.interp(t, offsets, values)


def _drawn(size: int, draw_fn: Callable[[ImageDraw.ImageDraw, float, float], None]) -> Image.Image:
    """Draw at SUPERSAMPLE scale, then downsample for anti-aliasing"""
    big = size * SUPERSAMPLE
    mask = Image.new('L', (big, big), 0)
    draw_fn(ImageDraw.Draw(mask), big / 2, big)
    mask = mask.resize((size, size), Image.Resampling.LANCZOS)
    alpha = np.asarray(mask, dtype=float) / 255.0
    return _from_alpha(alpha)


def _radial_points(center: float, radii: List[float], count: int) -> List[Point]:
    points = []
    for i in range(count):
        angle = i * 2 * math.pi / count - math.pi / 2
        r = radii[i % len(radii)]
        points.append((center + math.cos(angle) * r, center + math.sin(angle) * r))
    return points


# =============================================================================
# Shapes
# =============================================================================

def draw_circle(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        r = s / 2 - 2 * SUPERSAMPLE
        d.ellipse((c - r, c - r, c + r, c + r), fill=255)
    return _drawn(size, draw)


def draw_glow(size: int) -> Image.Image:
    x, y = _pixel_grid(size)
    center = size / 2
    radius = size / 2 - 2
    t = np.hypot(x - center, y - center) / radius
    alpha = _gradient(t, [(0.0, 1.0), (0.5, 0.8), (1.0, 0.0)])
    alpha[t > 1] = 0.0
    return _from_alpha(alpha)


def draw_star(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        outer = s / 2 - 2 * SUPERSAMPLE
        d.polygon(_radial_points(c, [outer, outer * 0.5], 10), fill=255)
    return _drawn(size, draw)


def draw_polygon(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        d.polygon(_radial_points(c, [s / 2 - 2 * SUPERSAMPLE], 6), fill=255)
    return _drawn(size, draw)


def draw_needle(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        half_w = s * 0.08
        half_l = s * 0.4
        d.rounded_rectangle((c - half_w, c - half_l, c + half_w, c + half_l), radius=half_w, fill=255)

    shape = draw_shape_alpha(size, draw)
    _, y = _pixel_grid(size)
    half_l = size * 0.4
    t = (y - (size / 2 - half_l)) / (2 * half_l)
    fade = _gradient(t, [(0.0, 0.0), (0.25, 0.4), (0.5, 1.0), (0.75, 0.4), (1.0, 0.0)])
    return _from_alpha(shape * fade)


def _quadratic(p0: Point, p1: Point, p2: Point, steps: int = 24) -> List[Point]:
    points = []
    for i in range(steps + 1):
        t = i / steps
        u = 1 - t
        points.append((
            u * u * p0[0] + 2 * u * t * p1[0] + t * t * p2[0],
            u * u * p0[1] + 2 * u * t * p1[1] + t * t * p2[1],
        ))
    return points


def draw_raindrop(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        r = s * 0.35
        top, bottom = (c, c - r), (c, c + r)
        outline = _quadratic(top, (c + r, c), bottom) + _quadratic(bottom, (c - r, c), top)[1:]
        d.polygon(outline, fill=255)
    return _drawn(size, draw)


def draw_snowflake(size: int) -> Image.Image:
    def draw(d: ImageDraw.ImageDraw, c: float, s: float) -> None:
        arm = s * 0.28
        width = max(1, round(s * 0.03))

        def segment(angle: float, a: Point, b: Point) -> None:
            cos_a, sin_a = math.cos(angle), math.sin(angle)
            ends = [(c + px * cos_a - py * sin_a, c + px * sin_a + py * cos_a) for px, py in (a, b)]
            d.line(ends, fill=255, width=width)
            for ex, ey in ends:
                d.ellipse((ex - width / 2, ey - width / 2, ex + width / 2, ey + width / 2), fill=255)

        for i in range(3):
            for angle in (math.pi / 3 * i, math.pi / 3 * i + math.pi / 6):
                segment(angle, (0, -arm), (0, arm))
                segment(angle, (-arm * 0.6, -arm * 0.2), (arm * 0.6, arm * 0.2))
    return _drawn(size, draw)


def draw_smoke(size: int) -> Image.Image:
    x, y = _pixel_grid(size)
    center = size / 2
    radius = size * 0.42
    dist = np.hypot(x - center, y - center)

    # Gradient runs from 0.1 r to r
    t = (dist - radius * 0.1) / (radius * 0.9)
    puff = _gradient(t, [(0.0, 0.45), (0.5, 0.2), (1.0, 0.0)])
    puff[dist > radius] = 0.0

    lobe_r = radius * 0.45
    lobe_mask = np.hypot(x - (center - radius * 0.25), y - (center - radius * 0.2)) <= lobe_r
    lobe = np.where(lobe_mask, puff * 0.5, 0.0)

    alpha = lobe + puff * (1 - lobe)
    return _from_alpha(alpha)


def draw_shape_alpha(size: int, draw_fn: Callable[[ImageDraw.ImageDraw, float, float], None]) -> np.ndarray:
    """Anti-aliased 0-1 coverage of a drawn shape"""
    return np.asarray(_drawn(size, draw_fn), dtype=float)[..., 3] / 255.0


SPRITE_DRAWERS: Dict[str, Callable[[int], Image.Image]] = {
    'circle': draw_circle,
    'glow': draw_glow,
    'star': draw_star,
    'polygon': draw_polygon,
    'needle': draw_needle,
    'raindrop': draw_raindrop,
    'snowflake': draw_snowflake,
    'smoke': draw_smoke,
}


def create_particle_sprite(kind: str, size: int = SPRITE_SIZE) -> Image.Image:
    """Procedural white RGBA sprite"""
    if kind not in SPRITE_DRAWERS:
        raise ValueError(f"Unknown sprite: {kind}. Available: {', '.join(SPRITE_DRAWERS)}")
    return SPRITE_DRAWERS[kind](size)


def load_custom_sprite(path: str | Path, size: int = SPRITE_SIZE) -> Image.Image:
    """
    Load an image file and fit it, centred, into a size x size RGBA cell.

    Raises:
        FileNotFoundError: path does not exist
        OSError: Pillow cannot decode the file
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sprite image not found: {path}")

    with Image.open(path) as img:
        img = img.convert('RGBA')
        img.thumbnail((size, size), Image.Resampling.LANCZOS)

    cell = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    cell.paste(img, ((size - img.width) // 2, (size - img.height) // 2))
    return cell
