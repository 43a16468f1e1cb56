"""
Keyframe Reduction

Turns a particle's per-frame snapshots into sparse keyframe lists. A key is
written only where something changed enough to matter, plus the keys needed
to keep appearance and disappearance exact.

Features:
- Per-channel thresholds (position, rotation, scale, color)
- Median-smoothed, unwrapped rotation
- Attachment keys on appearance and disappearance
- Stepped interpolation while a particle is hidden
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.settings import ExportSettings
from ..core.utils import ColorUtils, MathUtils
from .baking import BakedFrame, ParticleSnapshot

Key = Dict[str, Any]

MIN_VISIBLE_ALPHA = 1.0 / 255.0


@dataclass(frozen=True)
class ParticleTrack:
    """One exported particle: its identity and skeleton names"""
    emitter_id: str
    local_id: int
    bone_name: str
    slot_name: str


@dataclass
class Keyframes:
    translate: List[Key] = field(default_factory=list)
    rotate: List[Key] = field(default_factory=list)
    scale: List[Key] = field(default_factory=list)
    attachment: List[Key] = field(default_factory=list)
    rgba: List[Key] = field(default_factory=list)
    has_appeared: bool = False


# =============================================================================
# Angle helpers
# =============================================================================

def normalize_angle(angle: float, previous: float) -> float:
    """Shift angle by whole turns so it is within 180 degrees of previous"""
    while angle - previous > 180:
        angle -= 360
    while angle - previous < -180:
        angle += 360
    return angle


def smooth_angles(angles: Sequence[float], window: int = 3) -> List[float]:
    """Median filter; the window shrinks at both ends"""
    half = window // 2
    result = []
    for i in range(len(angles)):
        neighbourhood = sorted(angles[max(0, i - half):min(len(angles), i + half + 1)])
        result.append(neighbourhood[len(neighbourhood) // 2])
    return result


def is_visible(particle: Optional[ParticleSnapshot]) -> bool:
    return particle is not None and particle.alpha >= MIN_VISIBLE_ALPHA


# =============================================================================
# Builder
# =============================================================================

def _time(frame: BakedFrame) -> float:
    return MathUtils.round_time(frame.time)


def _translate_key(time: float, x: float, y: float) -> Key:
    # Document space is y-up
    return {'time': time, 'x': MathUtils.round_to(x, 2), 'y': MathUtils.round_to(-y, 2)}


def build_particle_keyframes(
    frames: Sequence[BakedFrame],
    track: ParticleTrack,
    export: ExportSettings,
    sprite_name: str
) -> Keyframes:
    """
    Build keyframes for one particle over a frame sequence.

    Args:
        frames: Baked frames in time order
        track: Particle identity and names
        export: Channel toggles and thresholds
        sprite_name: Attachment name shown while visible

    Returns:
        Keyframes; has_appeared is False when the particle was never visible
    """
    keys = Keyframes()

    particles = [frame.get(track.emitter_id, track.local_id) for frame in frames]

    raw_angles: List[float] = []
    for particle in particles:
        if particle is not None:
            raw_angles.append(particle.rotation)
        else:
            raw_angles.append(raw_angles[-1] if raw_angles else 0.0)
    smoothed = smooth_angles(raw_angles, 3)

    prev_pos: Optional[Tuple[float, float]] = None
    prev_rotation: Optional[float] = None
    prev_scale: Optional[Tuple[float, float]] = None
    prev_color: Optional[Tuple[float, float, float, float]] = None
    was_visible = False
    angle = 0.0
    stepped = False

    def push(channel: List[Key], key: Key) -> None:
        if stepped:
            key['curve'] = 'stepped'
        channel.append(key)

    last = len(frames) - 1
    for i, (frame, particle) in enumerate(zip(frames, particles)):
        visible = is_visible(particle)
        edge = i == 0 or i == last or was_visible != visible
        time = _time(frame)

        if visible:
            if not keys.has_appeared or not was_visible:
                keys.has_appeared = True
                keys.attachment.append({'time': time, 'name': sprite_name})
                stepped = False

            pos = (particle.x, particle.y)
            scale = (particle.scale_x, particle.scale_y)
            color = (
                particle.color[0] / 255,
                particle.color[1] / 255,
                particle.color[2] / 255,
                particle.alpha,
            )

            if prev_rotation is None:
                angle = smoothed[i]
            else:
                angle = normalize_angle(smoothed[i], angle)

            if export.export_translate:
                moved = math.dist(pos, prev_pos) if prev_pos else 0.0
                if edge or prev_pos is None or moved > export.position_threshold:
                    push(keys.translate, _translate_key(time, *pos))
                    prev_pos = pos

            if export.export_rotate:
                delta = angle - prev_rotation if prev_rotation is not None else 0.0
                if edge or prev_rotation is None or abs(delta) > export.rotation_threshold:
                    push(keys.rotate, {'time': time, 'value': MathUtils.round_to(angle, 2)})
                    prev_rotation = angle

            if export.export_scale:
                if (edge or prev_scale is None
                        or abs(scale[0] - prev_scale[0]) > export.scale_threshold
                        or abs(scale[1] - prev_scale[1]) > export.scale_threshold):
                    push(keys.scale, {
                        'time': time,
                        'x': MathUtils.round_to(scale[0], 3),
                        'y': MathUtils.round_to(scale[1], 3),
                    })
                    prev_scale = scale

            if export.export_color:
                if prev_color is None:
                    changed = True
                else:
                    delta_sum = sum(abs(c - p) * 255 for c, p in zip(color, prev_color))
                    changed = delta_sum > export.color_threshold
                if edge or changed:
                    push(keys.rgba, {'time': time, 'color': ColorUtils.to_hex(*color)})
                    prev_color = color

            was_visible = True

        else:
            if was_visible:
                keys.attachment.append({'time': time, 'name': None})
                stepped = True

                # Freeze the bone where it vanished
                if export.export_translate and prev_pos is not None:
                    push(keys.translate, _translate_key(time, *prev_pos))
                if export.export_rotate and prev_rotation is not None:
                    push(keys.rotate, {'time': time, 'value': MathUtils.round_to(prev_rotation, 2)})
                if export.export_scale and prev_scale is not None:
                    push(keys.scale, {'time': time, 'x': 0, 'y': 0})

            was_visible = False

    return keys
