"""Shared fixtures: small deterministic effect documents."""

from __future__ import annotations

from typing import Any, Dict

import numpy as np
import pytest

from particle_exporter.core import ParticleSettings


def make_settings(emitter: Dict[str, Any] | None = None, **document: Any) -> ParticleSettings:
    """One-emitter document with short timeline defaults"""
    data: Dict[str, Any] = {
        'duration': 1.0,
        'fps': 10,
        'frame_size': 128,
        'emitters': [{'id': 'em', 'name': 'Sparks', **(emitter or {})}],
    }
    data.update(document)
    return ParticleSettings.from_dict(data)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def one_shot_settings() -> ParticleSettings:
    return make_settings({
        'looping': False,
        'rate': 20,
        'lifetime': [0.4, 0.4],
        'angle_spread': 0,
        'initial_speed_range': [50, 50],
    })


@pytest.fixture
def loop_prewarm_settings() -> ParticleSettings:
    return make_settings({
        'looping': True,
        'prewarm': True,
        'rate': 10,
        'lifetime': [0.5, 0.5],
        'initial_speed_range': [40, 40],
        'color_over_lifetime': [[0, [255, 255, 255, 255]], [1, [255, 255, 255, 255]]],
    })
