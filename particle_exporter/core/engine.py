"""
Particle Simulation Engine

Advances emitters and their particles over time from an immutable settings
snapshot. All random sampling goes through one injected numpy Generator, so a
seeded engine reproduces the same trajectories.

Features:
- Continuous, burst and duration-windowed emission
- Looping emitters wrap their cycle clock; one-shot emitters stop at the end
- Prewarm: run a looping emitter for one full cycle before playback
- Per-particle base samples that personalize the lifetime curves
- Gravity, drag, turbulence noise, attraction and vortex forces
- Stats subscription for live preview callers
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .curves import (
    clamp01, evaluate_color_gradient, evaluate_curve, sample_range,
)
from .noise import noise2d
from .settings import Emitter, EmissionType, ParticleSettings, SpawnAngleMode
from .shapes import LineShape, sample_offset

logger = logging.getLogger(__name__)


PREWARM_STEP = 1.0 / 60.0


# =============================================================================
# Runtime State
# =============================================================================

@dataclass
class Particle:
    """Individual particle with full physics state"""
    uid: int                  # Unique per engine between resets
    local_id: int             # Per-emitter index, used for bone names
    emitter_id: str

    # Position and velocity
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0

    # Lifetime
    life: float = 1.0
    max_life: float = 1.0

    rotation: float = 0.0     # Radians

    # Base samples drawn once at spawn
    base_speed: float = 0.0
    base_spin_rate: float = 0.0          # rad/s
    base_angular_velocity: float = 0.0   # rad/s
    base_gravity: float = 0.0
    base_drag: float = 1.0
    base_noise_strength: float = 0.0
    base_noise_frequency: float = 0.0
    base_noise_speed: float = 0.0
    base_attraction: float = 0.0
    base_vortex_strength: float = 0.0
    base_speed_scale: float = 1.0
    base_weight: float = 1.0
    base_size_x: float = 1.0
    base_size_y: float = 1.0

    # Derived every step
    scale: float = 1.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    color: Tuple[int, int, int, int] = (255, 255, 255, 255)
    alpha: float = 1.0

    @property
    def lifetime_fraction(self) -> float:
        """Elapsed life as 0-1"""
        if self.max_life <= 0:
            return 1.0
        return 1.0 - self.life / self.max_life


@dataclass
class EmitterState:
    """Per-emitter runtime bookkeeping, rebuilt on every reset"""
    clock: float = 0.0                 # Emitter cycle time, wraps when looping
    spawn_accumulator: float = 0.0     # Carryover for rate-based emission
    burst_cycle_index: int = 0
    last_burst_time: float = 0.0
    has_prewarmed: bool = False
    next_local_id: int = 0
    spawned: int = 0


@dataclass(frozen=True)
class ParticleStats:
    particle_count: int
    time: float


StatsCallback = Callable[[ParticleStats], None]


# =============================================================================
# Engine
# =============================================================================

class ParticleEngine:
    """
    Simulates every enabled emitter of a settings document.

    Example:
        engine = ParticleEngine(settings, seed=42)
        for _ in range(60):
            engine.advance(1 / 30)
            draw(engine.particles)
    """

    def __init__(
        self,
        settings: ParticleSettings,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None
    ):
        self._settings = settings
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.particles: List[Particle] = []
        self.time = 0.0

        self._emitters: Dict[str, Emitter] = {e.id: e for e in settings.emitters}
        self._states: Dict[str, EmitterState] = {}
        self._by_emitter: Dict[str, List[Particle]] = {}
        self._callbacks: List[StatsCallback] = []
        self._next_uid = 0

        self._initialize_states()

    @property
    def settings(self) -> ParticleSettings:
        return self._settings

    @property
    def particle_count(self) -> int:
        return len(self.particles)

    def emitter_state(self, emitter_id: str) -> EmitterState:
        return self._states[emitter_id]

    def particles_by_emitter(self) -> Dict[str, List[Particle]]:
        """Live particles grouped by emitter id, in spawn order"""
        return {emitter_id: list(group) for emitter_id, group in self._by_emitter.items()}

    # -------------------------------------------------------------------------
    # Stats subscription
    # -------------------------------------------------------------------------

    def on_stats_update(self, callback: StatsCallback) -> Callable[[], None]:
        """
        Subscribe to per-step stats.

        Returns:
            Function that removes the subscription
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def notify_stats(self) -> None:
        stats = ParticleStats(particle_count=len(self.particles), time=self.time)
        for callback in list(self._callbacks):
            callback(stats)

    # -------------------------------------------------------------------------
    # Reset / prewarm
    # -------------------------------------------------------------------------

    def _initialize_states(self) -> None:
        self._states = {e.id: EmitterState() for e in self._settings.emitters}
        self._by_emitter = {e.id: [] for e in self._settings.emitters}

    def reset(self, prewarm: bool = True) -> None:
        """Clear particles, time and emitter state; optionally prewarm"""
        self.particles = []
        self.time = 0.0
        self._next_uid = 0
        self._initialize_states()

        if prewarm:
            for emitter in self._settings.emitters:
                if emitter.enabled and emitter.settings.looping and emitter.settings.prewarm:
                    self.prewarm_emitter(emitter.id)

        logger.debug("Engine reset (%d particles after prewarm)", len(self.particles))
        self.notify_stats()

    def prewarm_emitter(self, emitter_id: str) -> None:
        """Run one emitter for a full cycle at 60 Hz without advancing time"""
        emitter = self._emitters[emitter_id]
        steps = math.ceil(self._settings.duration / PREWARM_STEP)

        for _ in range(steps):
            self._update_emitter(emitter, PREWARM_STEP, skip_time_reset=True)
            self._update_particles(PREWARM_STEP)

        self._restart_cycle(self._states[emitter_id])
        self._states[emitter_id].has_prewarmed = True
        logger.debug("Prewarmed %s for %d steps", emitter_id, steps)

    def rewind_after_prewarm(self) -> None:
        """
        Restart the timeline after an external prewarm pass.

        Particles persist; simulation time and every emitter clock return to 0,
        so start delays apply again.
        """
        self.time = 0.0
        for emitter in self._settings.emitters:
            state = self._states[emitter.id]
            self._restart_cycle(state)
            if emitter.settings.looping and emitter.settings.prewarm:
                state.has_prewarmed = True

    @staticmethod
    def _restart_cycle(state: EmitterState) -> None:
        state.clock = 0.0
        state.burst_cycle_index = 0
        state.last_burst_time = 0.0

    # -------------------------------------------------------------------------
    # Simulation step
    # -------------------------------------------------------------------------

    def advance(
        self,
        dt: float,
        skip_time_reset: bool = False,
        emitter_ids: Optional[Iterable[str]] = None
    ) -> None:
        """
        Advance the simulation by dt seconds.

        Args:
            dt: Step size in seconds
            skip_time_reset: Suppress looping wrap and one-shot stop (prewarm)
            emitter_ids: Restrict emission to these emitters (default: all enabled)
        """
        self.time += dt
        only = set(emitter_ids) if emitter_ids is not None else None

        for emitter in self._settings.emitters:
            if not emitter.enabled:
                continue
            if only is not None and emitter.id not in only:
                continue
            self._update_emitter(emitter, dt, skip_time_reset)

        self._update_particles(dt)
        self.notify_stats()

    update = advance

    def _update_emitter(self, emitter: Emitter, dt: float, skip_time_reset: bool) -> None:
        em = emitter.settings
        state = self._states[emitter.id]
        duration = self._settings.duration

        state.clock += dt

        if not skip_time_reset:
            if em.looping:
                elapsed = state.clock - em.start_delay
                if elapsed >= duration:
                    state.clock = em.start_delay + math.fmod(elapsed, duration)
                    state.burst_cycle_index = 0
                    state.last_burst_time = em.start_delay
            elif state.clock > em.start_delay + duration:
                state.clock = em.start_delay + duration
                return

        elapsed = state.clock - em.start_delay
        if elapsed < 0:
            return

        normalized = clamp01(elapsed / duration) if duration > 0 else 0.0
        rate = em.rate * max(0.0, evaluate_curve(em.rate_over_time, normalized))

        if em.emission_type is EmissionType.CONTINUOUS:
            self._emit_over_time(emitter, state, rate, dt)

        elif em.emission_type is EmissionType.BURST:
            cycle_limit = math.inf if em.looping else em.burst_cycles
            if state.burst_cycle_index < cycle_limit:
                since_last = elapsed - (state.last_burst_time - em.start_delay)
                if state.burst_cycle_index == 0 or since_last >= em.burst_interval:
                    for _ in range(em.burst_count):
                        if len(self._by_emitter[emitter.id]) >= em.max_particles:
                            break
                        self.spawn_particle(emitter)
                    state.last_burst_time = state.clock
                    state.burst_cycle_index += 1

        elif em.emission_type is EmissionType.DURATION:
            if em.duration_start <= elapsed <= em.duration_end:
                self._emit_over_time(emitter, state, rate, dt)

    def _emit_over_time(self, emitter: Emitter, state: EmitterState, rate: float, dt: float) -> None:
        if rate <= 0:
            return
        state.spawn_accumulator += dt
        interval = 1.0 / rate
        live = self._by_emitter[emitter.id]
        while state.spawn_accumulator >= interval and len(live) < emitter.settings.max_particles:
            self.spawn_particle(emitter)
            state.spawn_accumulator -= interval

    def _update_particles(self, dt: float) -> None:
        survivors: List[Particle] = []

        for p in self.particles:
            emitter = self._emitters.get(p.emitter_id)
            if emitter is None or not emitter.enabled:
                self._forget(p)
                continue

            p.life -= dt
            if p.life <= 0:
                self._forget(p)
                continue

            self._integrate(p, emitter, dt)
            survivors.append(p)

        self.particles = survivors

    def _forget(self, particle: Particle) -> None:
        group = self._by_emitter.get(particle.emitter_id)
        if group is not None and particle in group:
            group.remove(particle)

    def _integrate(self, p: Particle, emitter: Emitter, dt: float) -> None:
        """Apply every lifetime curve and force to one particle"""
        em = emitter.settings
        t = p.lifetime_fraction

        # Size
        if em.separate_size:
            size_x = clamp01(evaluate_curve(em.size_x_over_lifetime, t))
            size_y = clamp01(evaluate_curve(em.size_y_over_lifetime, t))
        else:
            size_x = size_y = clamp01(evaluate_curve(em.size_over_lifetime, t))
        p.scale_x = p.base_size_x * size_x * em.scale_ratio_x
        p.scale_y = p.base_size_y * size_y * em.scale_ratio_y
        p.scale = (p.scale_x + p.scale_y) / 2

        speed_mult = clamp01(evaluate_curve(em.speed_over_lifetime, t))
        weight_mult = clamp01(evaluate_curve(em.weight_over_lifetime, t))

        # Gravity
        gravity = p.base_gravity * clamp01(evaluate_curve(em.gravity_over_lifetime, t))
        p.vy += gravity * p.base_weight * weight_mult * dt

        # Turbulence
        noise_strength = p.base_noise_strength * clamp01(evaluate_curve(em.noise_strength_over_lifetime, t))
        if noise_strength != 0:
            fx, fy = noise2d(
                p.x * p.base_noise_frequency,
                p.y * p.base_noise_frequency,
                self.time * p.base_noise_speed,
            )
            p.vx += fx * noise_strength * dt
            p.vy += fy * noise_strength * dt

        # Attraction
        attraction = p.base_attraction * clamp01(evaluate_curve(em.attraction_over_lifetime, t))
        if attraction != 0:
            dx = em.attraction_point[0] - p.x
            dy = em.attraction_point[1] - p.y
            dist = math.hypot(dx, dy)
            if dist > 0:
                p.vx += dx / dist * attraction * dt
                p.vy += dy / dist * attraction * dt

        # Vortex: tangential swirl plus a weaker radial pull
        vortex = p.base_vortex_strength * clamp01(evaluate_curve(em.vortex_strength_over_lifetime, t))
        if vortex != 0:
            dx = em.vortex_point[0] - p.x
            dy = em.vortex_point[1] - p.y
            dist = math.hypot(dx, dy)
            if dist > 0:
                nx, ny = dx / dist, dy / dist
                falloff = 1.0 / (1.0 + dist * 0.001)
                p.vx += -ny * vortex * falloff * dt
                p.vy += nx * vortex * falloff * dt
                p.vx += nx * vortex * 0.3 * falloff * dt
                p.vy += ny * vortex * 0.3 * falloff * dt

        # Drag
        drag = p.base_drag * clamp01(evaluate_curve(em.drag_over_lifetime, t))
        p.vx *= drag
        p.vy *= drag

        # Move
        speed_factor = p.base_speed_scale * speed_mult
        p.x += p.vx * speed_factor * dt
        p.y += p.vy * speed_factor * dt

        # Rotation
        p.rotation += p.base_spin_rate * clamp01(evaluate_curve(em.spin_over_lifetime, t)) * dt
        p.rotation += p.base_angular_velocity * clamp01(evaluate_curve(em.angular_velocity_over_lifetime, t)) * dt

        # Color
        r, g, b, a = evaluate_color_gradient(em.color_over_lifetime, t)
        p.color = (r, g, b, 255)
        p.alpha = a / 255.0

    # -------------------------------------------------------------------------
    # Spawning
    # -------------------------------------------------------------------------

    def spawn_particle(self, emitter: Emitter) -> Particle:
        """Create one particle for an emitter and add it to the pool"""
        em = emitter.settings
        state = self._states[emitter.id]
        rng = self.rng

        ox, oy = sample_offset(em.shape, em.angle, rng)
        x = em.position[0] + ox
        y = em.position[1] + oy

        base_angle = em.angle
        if isinstance(em.shape, LineShape):
            base_angle += em.shape.spread_rotation
        angle = math.radians(base_angle + (rng.random() - 0.5) * abs(em.angle_spread))
        speed = sample_range(em.initial_speed_range, rng)

        mode = em.spawn_angle_mode
        if mode is SpawnAngleMode.ALIGN_MOTION:
            rotation = angle
        elif mode is SpawnAngleMode.SPECIFIC:
            rotation = math.radians(em.spawn_angle)
        elif mode is SpawnAngleMode.RANDOM:
            rotation = rng.random() * 2 * math.pi
        else:
            rotation = math.radians(
                em.spawn_angle_min + rng.random() * (em.spawn_angle_max - em.spawn_angle_min)
            )

        life = em.lifetime.min + rng.random() * (em.lifetime.max - em.lifetime.min)

        particle = Particle(
            uid=self._next_uid,
            local_id=state.next_local_id,
            emitter_id=emitter.id,
            x=x,
            y=y,
            vx=math.cos(angle) * speed,
            vy=math.sin(angle) * speed,
            life=life,
            max_life=life,
            rotation=rotation,
            base_speed=speed,
            base_spin_rate=math.radians(sample_range(em.spin_range, rng)),
            base_gravity=sample_range(em.gravity_range, rng),
            base_drag=sample_range(em.drag_range, rng),
            base_noise_strength=sample_range(em.noise_strength_range, rng),
            base_noise_frequency=sample_range(em.noise_frequency_range, rng),
            base_noise_speed=sample_range(em.noise_speed_range, rng),
            base_attraction=sample_range(em.attraction_range, rng),
            base_vortex_strength=sample_range(em.vortex_strength_range, rng),
            base_speed_scale=sample_range(em.speed_range, rng),
            base_weight=sample_range(em.weight_range, rng),
        )

        if em.separate_size:
            particle.base_size_x = sample_range(em.size_x_range, rng)
            particle.base_size_y = sample_range(em.size_y_range, rng)
        else:
            # One sample for both axes keeps uniform particles proportional
            size = sample_range(em.size_range, rng)
            particle.base_size_x = particle.base_size_y = size

        particle.base_angular_velocity = math.radians(sample_range(em.angular_velocity_range, rng))

        # Initial derived values so a snapshot taken before the first step is valid
        r, g, b, a = evaluate_color_gradient(em.color_over_lifetime, 0.0)
        particle.color = (r, g, b, 255)
        particle.alpha = a / 255.0

        self._next_uid += 1
        state.next_local_id += 1
        state.spawned += 1

        self.particles.append(particle)
        self._by_emitter[emitter.id].append(particle)
        return particle
