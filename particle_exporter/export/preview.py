"""
Baked preview image: every frame overlaid on one canvas.
"""

from typing import Sequence

import numpy as np
from PIL import Image

from .baking import BakedFrame

PREVIEW_RADIUS = 8.0
PREVIEW_OPACITY = 0.3


def render_baked_preview(frames: Sequence[BakedFrame], frame_size: int) -> Image.Image:
    """
    Draw each particle of each frame as a translucent disc.

    Discs have radius 8 * scale and opacity 0.3 * alpha, centred on the
    canvas (the emitter anchor is the canvas centre). Compositing is
    source-over in premultiplied space.
    """
    color = np.zeros((frame_size, frame_size, 3), dtype=float)   # Premultiplied
    alpha = np.zeros((frame_size, frame_size), dtype=float)

    coords = np.arange(frame_size, dtype=float) + 0.5
    center = frame_size / 2

    for frame in frames:
        for p in frame.particles.values():
            radius = PREVIEW_RADIUS * p.scale
            opacity = PREVIEW_OPACITY * p.alpha
            if radius <= 0 or opacity <= 0:
                continue

            cx, cy = center + p.x, center + p.y
            x0 = max(0, int(cx - radius))
            x1 = min(frame_size, int(cx + radius) + 2)
            y0 = max(0, int(cy - radius))
            y1 = min(frame_size, int(cy + radius) + 2)
            if x0 >= x1 or y0 >= y1:
                continue

            xs, ys = np.meshgrid(coords[x0:x1], coords[y0:y1])
            # One pixel of edge softening
            coverage = np.clip(radius + 0.5 - np.hypot(xs - cx, ys - cy), 0.0, 1.0)
            src_a = coverage * opacity
            if not src_a.any():
                continue

            rgb = np.array(p.color[:3], dtype=float) / 255.0
            keep = 1.0 - src_a
            color[y0:y1, x0:x1] = rgb * src_a[..., None] + color[y0:y1, x0:x1] * keep[..., None]
            alpha[y0:y1, x0:x1] = src_a + alpha[y0:y1, x0:x1] * keep

    # Un-premultiply
    out = np.zeros((frame_size, frame_size, 4), dtype=np.uint8)
    nonzero = alpha > 0
    out[nonzero, :3] = np.clip(color[nonzero] / alpha[nonzero, None] * 255 + 0.5, 0, 255).astype(np.uint8)
    out[..., 3] = np.clip(alpha * 255 + 0.5, 0, 255).astype(np.uint8)

    return Image.fromarray(out, 'RGBA')
