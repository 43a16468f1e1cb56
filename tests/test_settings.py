"""Tests for settings documents: parsing, clamping and file loading."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import yaml

from particle_exporter.core.curves import Range
from particle_exporter.core.settings import (
    MAX_EMITTERS,
    EmissionType,
    EmitterSettings,
    ParticleSettings,
    SpawnAngleMode,
    load_settings,
)
from particle_exporter.core.shapes import CircleShape, EmissionMode


def test_defaults_hold_one_enabled_emitter() -> None:
    settings = ParticleSettings()

    assert len(settings.enabled_emitters) == 1
    assert settings.frame_count == 60


def test_flat_mapping_is_a_single_emitter() -> None:
    settings = ParticleSettings.from_dict({'rate': 25, 'duration': 3, 'sprite': 'star'})

    assert len(settings.emitters) == 1
    assert settings.duration == 3.0
    assert settings.emitters[0].settings.rate == 25.0
    assert settings.emitters[0].settings.sprite == 'star'


def test_out_of_range_values_are_clamped() -> None:
    settings = ParticleSettings.from_dict({
        'fps': 0,
        'duration': -2,
        'emitters': [{
            'rate': -5,
            'lifetime': [-1, -3],
            'burst_count': -4,
            'start_delay': -1,
            'shape': {'type': 'circle', 'radius': -10},
        }],
    })
    em = settings.emitters[0].settings

    assert settings.fps == 1
    assert settings.duration > 0
    assert em.rate == 0.0
    assert em.lifetime == Range(0.0, 0.0)
    assert em.burst_count == 0
    assert em.start_delay == 0.0
    assert em.shape.radius == 0.0


def test_extra_emitters_are_dropped_with_warning(caplog: pytest.LogCaptureFixture) -> None:
    emitters = [{'id': f"e{i}"} for i in range(MAX_EMITTERS + 2)]

    with caplog.at_level(logging.WARNING):
        settings = ParticleSettings.from_dict({'emitters': emitters})

    assert len(settings.emitters) == MAX_EMITTERS
    assert "keeping the first" in caplog.text


@pytest.mark.parametrize("field,value", [
    ('sprite', 'banana'),
    ('emission_type', 'sometimes'),
    ('spawn_angle_mode', 'sideways'),
])
def test_invalid_choices_name_the_options(field: str, value: str) -> None:
    with pytest.raises(ValueError, match="Available"):
        EmitterSettings.from_dict({field: value})


def test_non_mapping_document_is_rejected() -> None:
    with pytest.raises(ValueError, match="mapping"):
        ParticleSettings.from_dict(["not", "a", "mapping"])


def test_duplicate_emitter_ids_are_rejected() -> None:
    with pytest.raises(ValueError, match="unique"):
        ParticleSettings.from_dict({'emitters': [{'id': 'a'}, {'id': 'a'}]})


def test_enum_and_shape_fields_are_parsed() -> None:
    em = EmitterSettings.from_dict({
        'emission_type': 'burst',
        'spawn_angle_mode': 'alignMotion',
        'shape': {'type': 'circle', 'radius': 8, 'mode': 'edge'},
        'position': {'x': 3, 'y': -4},
    })

    assert em.emission_type is EmissionType.BURST
    assert em.spawn_angle_mode is SpawnAngleMode.ALIGN_MOTION
    assert em.shape == CircleShape(radius=8.0, mode=EmissionMode.EDGE)
    assert em.position == (3.0, -4.0)


def test_to_dict_round_trip() -> None:
    settings = ParticleSettings.from_dict({
        'duration': 1.5,
        'emitters': [
            {'id': 'a', 'name': 'Fire', 'size_over_lifetime': [[0, 1], [1, 0.5]]},
            {'id': 'b', 'name': 'Smoke', 'enabled': False, 'sprite': 'smoke'},
        ],
        'export': {'position_threshold': 4},
    })

    assert ParticleSettings.from_dict(settings.to_dict()) == settings


def test_with_overrides_ignores_none() -> None:
    settings = ParticleSettings().with_overrides(fps=24, duration=None)

    assert settings.fps == 24
    assert settings.duration == ParticleSettings().duration


def test_load_yaml_and_json(tmp_path: Path) -> None:
    document = {'fps': 12, 'emitters': [{'id': 'x', 'rate': 4}]}
    yaml_path = tmp_path / "effect.yaml"
    json_path = tmp_path / "effect.json"
    yaml_path.write_text(yaml.safe_dump(document))
    json_path.write_text(json.dumps(document))

    assert load_settings(yaml_path) == load_settings(json_path)
    assert load_settings(yaml_path).fps == 12


def test_missing_settings_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.yaml")
