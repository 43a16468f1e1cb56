"""
Animation Baking

Drives a ParticleEngine headlessly across the effect timeline and records an
immutable snapshot of every live particle per frame. Looping effects get two
extra passes merged in: a prewarm sequence for loop continuity at the start,
and a wrap buffer for particles born near the end of the cycle.
"""

import logging
import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np

from ..core.engine import ParticleEngine
from ..core.settings import ParticleSettings

logger = logging.getLogger(__name__)


def make_particle_key(emitter_id: str, local_id: int) -> str:
    """Unique particle key across emitters"""
    return f"{emitter_id}__{local_id}"


# =============================================================================
# Snapshot Types
# =============================================================================

@dataclass(frozen=True)
class ParticleSnapshot:
    """Particle state at one baked frame, relative to its emitter anchor"""
    emitter_id: str
    local_id: int
    x: float
    y: float
    rotation: float            # Degrees
    scale: float
    scale_x: float
    scale_y: float
    alpha: float
    color: Tuple[int, int, int, int]
    life: float
    max_life: float

    @property
    def key(self) -> str:
        return make_particle_key(self.emitter_id, self.local_id)

    @property
    def visible(self) -> bool:
        return self.alpha >= 1.0 / 255.0


@dataclass(frozen=True)
class BakedFrame:
    time: float
    particles: Mapping[str, ParticleSnapshot]

    @classmethod
    def create(cls, time: float, particles: Dict[str, ParticleSnapshot]) -> 'BakedFrame':
        return cls(time, MappingProxyType(dict(particles)))

    def get(self, emitter_id: str, local_id: int) -> Optional[ParticleSnapshot]:
        return self.particles.get(make_particle_key(emitter_id, local_id))


@dataclass(frozen=True)
class BakeResult:
    frames: Tuple[BakedFrame, ...]
    prewarm_frames: Tuple[BakedFrame, ...]

    @property
    def has_prewarm(self) -> bool:
        return len(self.prewarm_frames) > 0


# =============================================================================
# Baking
# =============================================================================

def capture_snapshot(engine: ParticleEngine) -> Dict[str, ParticleSnapshot]:
    """Snapshot every live particle of an enabled emitter"""
    settings = engine.settings
    snapshot: Dict[str, ParticleSnapshot] = {}

    for p in engine.particles:
        emitter = settings.emitter(p.emitter_id)
        if emitter is None or not emitter.enabled:
            continue

        ax, ay = emitter.settings.position
        snapshot[make_particle_key(p.emitter_id, p.local_id)] = ParticleSnapshot(
            emitter_id=p.emitter_id,
            local_id=p.local_id,
            x=p.x - ax,
            y=p.y - ay,
            rotation=math.degrees(p.rotation),
            scale=p.scale,
            scale_x=p.scale_x,
            scale_y=p.scale_y,
            alpha=p.alpha,
            color=p.color,
            life=p.life,
            max_life=p.max_life,
        )

    return snapshot


def bake_particle_animation(
    settings: ParticleSettings,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None
) -> BakeResult:
    """
    Simulate the effect and capture per-frame snapshots.

    Args:
        settings: Effect document
        rng: Random generator (takes precedence over seed)
        seed: Seed for a fresh generator

    Returns:
        BakeResult with main frames (frame_count + 1 of them) and prewarm frames
    """
    engine = ParticleEngine(settings, rng=rng, seed=seed)
    dt = 1.0 / settings.fps
    frame_count = settings.frame_count
    enabled = settings.enabled_emitters

    # Prewarm pass
    prewarm_ids = [e.id for e in enabled if e.settings.looping and e.settings.prewarm]
    prewarm_snapshots: List[Dict[str, ParticleSnapshot]] = []

    if prewarm_ids:
        prewarm_snapshots.append(capture_snapshot(engine))
        for _ in range(frame_count):
            engine.advance(dt, skip_time_reset=True, emitter_ids=prewarm_ids)
            prewarm_snapshots.append(capture_snapshot(engine))
        engine.rewind_after_prewarm()
        logger.debug("Prewarm baked: %d frames for %s", len(prewarm_snapshots), prewarm_ids)

    prewarm_frames = tuple(
        BakedFrame.create(i * dt, snap) for i, snap in enumerate(prewarm_snapshots)
    )

    # Main pass, with a wrap buffer when anything loops
    any_looping = any(e.settings.looping for e in enabled)
    extra_time = max((e.settings.lifetime.max for e in enabled), default=0.0) if any_looping else 0.0
    total_steps = math.ceil((settings.duration + extra_time) * settings.fps)

    simulated: List[Dict[str, ParticleSnapshot]] = [capture_snapshot(engine)]
    for _ in range(total_steps):
        engine.advance(dt)
        simulated.append(capture_snapshot(engine))

    logger.debug(
        "Baked %d output frames from %d simulated steps (extra %.2fs)",
        frame_count + 1, total_steps, extra_time,
    )

    frames = [BakedFrame.create(0.0, simulated[0])]
    for i in range(1, min(frame_count, total_steps) + 1):
        merged = _merge_frame(i, simulated, prewarm_snapshots, frame_count, dt, any_looping)
        frames.append(BakedFrame.create(i * dt, merged))

    return BakeResult(tuple(frames), prewarm_frames)


def _merge_frame(
    index: int,
    simulated: List[Dict[str, ParticleSnapshot]],
    prewarm: List[Dict[str, ParticleSnapshot]],
    frame_count: int,
    dt: float,
    any_looping: bool
) -> Dict[str, ParticleSnapshot]:
    """Combine the plain frame with prewarm and wrap-around particles"""
    plain = simulated[index]
    merged = dict(plain)

    if not any_looping:
        return merged

    if prewarm:
        # Same position in the prewarm cycle
        if index < len(prewarm):
            for key, snap in prewarm[index].items():
                if key not in plain:
                    merged[key] = snap

        # Same distance from the end of the prewarm cycle
        from_end = frame_count - index
        if 0 <= from_end < len(prewarm):
            for key, snap in prewarm[len(prewarm) - 1 - from_end].items():
                if key not in merged:
                    merged[key] = snap

    # Particles alive past the cycle end wrap to the start
    wrap_index = frame_count + index
    if wrap_index < len(simulated):
        into_wrap = index * dt
        for key, snap in simulated[wrap_index].items():
            if key in plain:
                continue
            remaining = snap.life - into_wrap
            if remaining > 0:
                merged[key] = replace(snap, life=remaining)

    return merged

