"""Tests for the particle simulation engine."""

from __future__ import annotations

import math
from typing import List, Set

import pytest

from particle_exporter.core.engine import ParticleEngine, ParticleStats
from particle_exporter.core.settings import MIN_DURATION, ParticleSettings


def _run(engine: ParticleEngine, seconds: float, dt: float) -> None:
    for _ in range(math.ceil(seconds / dt)):
        engine.advance(dt)


@pytest.mark.parametrize("dt", [1 / 30, 1 / 60, 1 / 13])
def test_continuous_count_independent_of_step(settings_factory, dt: float) -> None:
    settings = settings_factory(
        {'looping': False, 'rate': 10, 'lifetime': [5, 5]},
        duration=2.0,
    )
    engine = ParticleEngine(settings, seed=3)

    _run(engine, 2.5, dt)

    assert abs(engine.particle_count - math.floor(2.0 * 10)) <= 1


def test_single_burst_spawns_exactly_burst_count(settings_factory) -> None:
    settings = settings_factory({
        'emission_type': 'burst',
        'burst_count': 50,
        'burst_cycles': 1,
        'looping': False,
        'lifetime': [5, 5],
    })
    engine = ParticleEngine(settings, seed=1)

    _run(engine, 0.9, 0.05)

    assert engine.particle_count == 50
    assert engine.emitter_state('em').burst_cycle_index == 1


def test_uids_are_unique_and_increasing(settings_factory) -> None:
    settings = settings_factory({'rate': 40, 'lifetime': [0.2, 0.3]})
    engine = ParticleEngine(settings, seed=9)
    seen: Set[int] = set()

    for _ in range(60):
        engine.advance(1 / 30)
        uids = [p.uid for p in engine.particles]
        assert uids == sorted(set(uids))
        seen.update(uids)

    assert len(seen) > 40
    assert max(seen) < engine.emitter_state('em').spawned


def test_local_ids_count_per_emitter() -> None:
    settings = ParticleSettings.from_dict({
        'duration': 1.0,
        'emitters': [
            {'id': 'a', 'rate': 20, 'lifetime': [5, 5]},
            {'id': 'b', 'rate': 20, 'lifetime': [5, 5]},
        ],
    })
    engine = ParticleEngine(settings, seed=2)
    _run(engine, 0.5, 1 / 30)

    groups = engine.particles_by_emitter()
    for group in groups.values():
        assert [p.local_id for p in group] == list(range(len(group)))
    assert len({p.uid for p in engine.particles}) == engine.particle_count


def test_max_particles_caps_live_count(settings_factory) -> None:
    settings = settings_factory({'rate': 1000, 'max_particles': 7, 'lifetime': [10, 10]})
    engine = ParticleEngine(settings, seed=5)

    _run(engine, 1.0, 1 / 30)

    assert engine.particle_count == 7


def test_same_seed_reproduces_trajectories(settings_factory) -> None:
    settings = settings_factory({'rate': 30, 'angle_spread': 90, 'noise_strength_range': [10, 20]})
    first = ParticleEngine(settings, seed=77)
    second = ParticleEngine(settings, seed=77)

    _run(first, 0.6, 1 / 30)
    _run(second, 0.6, 1 / 30)

    assert [(p.x, p.y, p.rotation) for p in first.particles] == \
        [(p.x, p.y, p.rotation) for p in second.particles]


def test_start_delay_holds_back_emission(settings_factory) -> None:
    settings = settings_factory({'rate': 30, 'start_delay': 0.5, 'lifetime': [5, 5]})
    engine = ParticleEngine(settings, seed=4)

    _run(engine, 0.4, 0.05)
    assert engine.particle_count == 0

    _run(engine, 0.3, 0.05)
    assert engine.particle_count > 0


def test_looping_clock_wraps_within_cycle(settings_factory) -> None:
    settings = settings_factory({'rate': 5, 'looping': True}, duration=1.0)
    engine = ParticleEngine(settings, seed=4)

    for _ in range(100):
        engine.advance(0.07)
        assert engine.emitter_state('em').clock < 1.0 + 1e-9


def test_one_shot_stops_after_duration(settings_factory) -> None:
    settings = settings_factory({'rate': 20, 'looping': False, 'lifetime': [0.2, 0.2]}, duration=0.5)
    engine = ParticleEngine(settings, seed=4)

    _run(engine, 1.0, 1 / 30)

    assert engine.particle_count == 0
    assert engine.emitter_state('em').clock == pytest.approx(0.5)


def test_disabled_emitters_do_not_emit(settings_factory) -> None:
    settings = settings_factory({'rate': 50, 'enabled': False})
    engine = ParticleEngine(settings, seed=4)

    _run(engine, 0.5, 1 / 30)

    assert engine.particle_count == 0


def test_emitter_filter_restricts_emission() -> None:
    settings = ParticleSettings.from_dict({
        'emitters': [{'id': 'a', 'rate': 30}, {'id': 'b', 'rate': 30}],
    })
    engine = ParticleEngine(settings, seed=8)

    for _ in range(15):
        engine.advance(1 / 30, emitter_ids=['b'])

    assert {p.emitter_id for p in engine.particles} == {'b'}


def test_reset_prewarms_looping_emitters(loop_prewarm_settings) -> None:
    engine = ParticleEngine(loop_prewarm_settings, seed=11)

    engine.reset()

    state = engine.emitter_state('em')
    assert engine.particle_count > 0
    assert engine.time == 0.0
    assert state.clock == 0.0
    assert state.has_prewarmed


def test_reset_without_prewarm_is_empty(loop_prewarm_settings) -> None:
    engine = ParticleEngine(loop_prewarm_settings, seed=11)
    engine.advance(0.5)

    engine.reset(prewarm=False)

    assert engine.particle_count == 0
    assert engine.time == 0.0


def test_stats_subscription_and_unsubscribe(settings_factory) -> None:
    engine = ParticleEngine(settings_factory({'rate': 30}), seed=1)
    received: List[ParticleStats] = []

    unsubscribe = engine.on_stats_update(received.append)
    engine.advance(0.1)
    engine.advance(0.1)
    unsubscribe()
    engine.advance(0.1)

    assert len(received) == 2
    assert received[-1].time == pytest.approx(0.2)
    assert received[0].time == pytest.approx(0.1)


def test_particles_fade_with_gradient(settings_factory) -> None:
    settings = settings_factory({
        'rate': 10,
        'lifetime': [1, 1],
        'color_over_lifetime': [[0, [255, 0, 0, 255]], [1, [255, 0, 0, 0]]],
    })
    engine = ParticleEngine(settings, seed=1)

    _run(engine, 0.5, 0.05)

    oldest = engine.particles[0]
    assert oldest.color == (255, 0, 0, 255)
    assert 0.0 < oldest.alpha < 1.0


def _single_particle(settings_factory, **emitter):
    """Engine with one motionless-by-default particle after its first 0.1 s step"""
    settings = settings_factory({
        'emission_type': 'burst',
        'burst_count': 1,
        'looping': False,
        'lifetime': [5, 5],
        'angle': 0,
        'angle_spread': 0,
        'initial_speed_range': [0, 0],
        'spawn_angle_mode': 'specific',
        **emitter,
    })
    engine = ParticleEngine(settings, seed=1)
    engine.advance(0.1)
    assert engine.particle_count == 1
    return engine.particles[0]


def test_gravity_accelerates_before_moving(settings_factory) -> None:
    p = _single_particle(settings_factory, initial_speed_range=[100, 100], gravity_range=[200, 200])

    assert p.vx == pytest.approx(100)
    assert p.vy == pytest.approx(20)
    assert p.x == pytest.approx(10)
    assert p.y == pytest.approx(2)


def test_weight_scales_gravity(settings_factory) -> None:
    p = _single_particle(settings_factory, gravity_range=[200, 200], weight_range=[0.5, 0.5])

    assert p.vy == pytest.approx(10)


def test_drag_scales_velocity_before_moving(settings_factory) -> None:
    p = _single_particle(settings_factory, initial_speed_range=[100, 100], drag_range=[0.5, 0.5])

    assert p.vx == pytest.approx(50)
    assert p.x == pytest.approx(5)


def test_vortex_swirls_sideways_with_weaker_pull(settings_factory) -> None:
    p = _single_particle(
        settings_factory,
        position=[100, 0],
        vortex_strength_range=[100, 100],
        vortex_strength_over_lifetime=[[0, 1], [1, 1]],
    )

    falloff = 1.0 / (1.0 + 100 * 0.001)
    assert p.vy == pytest.approx(-100 * falloff * 0.1)
    assert p.vx == pytest.approx(-30 * falloff * 0.1)
    assert abs(p.vy) > abs(p.vx)


def test_attraction_pulls_towards_point(settings_factory) -> None:
    p = _single_particle(
        settings_factory,
        attraction_range=[50, 50],
        attraction_over_lifetime=[[0, 1], [1, 1]],
        attraction_point=[0, 100],
    )

    assert p.vx == pytest.approx(0)
    assert p.vy == pytest.approx(5)


def test_spin_and_angular_velocity_both_rotate(settings_factory) -> None:
    p = _single_particle(
        settings_factory,
        spin_range=[90, 90],
        spin_over_lifetime=[[0, 1], [1, 1]],
        angular_velocity_range=[45, 45],
    )

    assert p.rotation == pytest.approx(math.radians(13.5))


def test_speed_range_scales_displacement_only(settings_factory) -> None:
    p = _single_particle(settings_factory, initial_speed_range=[100, 100], speed_range=[2, 2])

    assert p.vx == pytest.approx(100)
    assert p.x == pytest.approx(20)


def test_duration_emission_spawns_inside_window_only(settings_factory) -> None:
    settings = settings_factory({
        'emission_type': 'duration',
        'duration_start': 0.3,
        'duration_end': 0.6,
        'rate': 20,
        'looping': False,
        'lifetime': [5, 5],
    })
    engine = ParticleEngine(settings, seed=2)

    for _ in range(5):
        engine.advance(0.05)
    assert engine.particle_count == 0

    for _ in range(9):
        engine.advance(0.05)
    spawned = engine.particle_count
    assert 4 <= spawned <= 7

    for _ in range(6):
        engine.advance(0.05)
    assert engine.particle_count == spawned


def test_looping_burst_fires_again_after_wrap(settings_factory) -> None:
    settings = settings_factory({
        'emission_type': 'burst',
        'burst_count': 3,
        'burst_interval': 5.0,
        'looping': True,
        'lifetime': [10, 10],
    }, duration=1.0)
    engine = ParticleEngine(settings, seed=2)

    for _ in range(9):
        engine.advance(0.1)
    assert engine.particle_count == 3

    for _ in range(4):
        engine.advance(0.1)
    assert engine.particle_count == 6
    assert engine.emitter_state('em').burst_cycle_index == 1


def test_directly_built_zero_duration_is_floored() -> None:
    settings = ParticleSettings(duration=0.0, fps=0)
    engine = ParticleEngine(settings, seed=1)

    for _ in range(3):
        engine.advance(1 / 30)

    assert settings.duration == MIN_DURATION
    assert settings.fps == 1
    assert engine.emitter_state('emitter_1').clock < MIN_DURATION
