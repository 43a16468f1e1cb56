"""Tests for export orchestration."""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path

import pytest

from particle_exporter import export_effect
from particle_exporter.export.exporter import ParticleExporter


def _names(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.namelist()


def test_export_builds_complete_archive(one_shot_settings) -> None:
    result = ParticleExporter(one_shot_settings, seed=1).export()

    assert result.success
    assert result.frame_count == one_shot_settings.frame_count + 1
    assert result.particle_count > 0
    assert result.entries == ['particle.png', 'particle.atlas', 'particle_spine.json', 'preview.png']
    assert _names(result.data) == result.entries

    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        document = json.loads(zf.read('particle_spine.json'))
        atlas_text = zf.read('particle.atlas').decode()
        png = zf.read('particle.png')

    assert 'particle_anim' in document['animations']
    assert atlas_text.startswith('particle.png\nsize: 80,80\n')
    assert png.startswith(b'\x89PNG')


def test_preview_can_be_left_out(one_shot_settings) -> None:
    result = ParticleExporter(one_shot_settings, seed=1, include_preview=False).export()

    assert 'preview.png' not in _names(result.data)


def test_same_seed_gives_identical_archives(one_shot_settings) -> None:
    first = ParticleExporter(one_shot_settings, seed=21).export()
    second = ParticleExporter(one_shot_settings, seed=21).export()

    assert first.data == second.data


def test_write_creates_archive(one_shot_settings, tmp_path: Path) -> None:
    target = tmp_path / "out" / "effect.zip"

    result = ParticleExporter(one_shot_settings, seed=1).write(target)

    assert result.success
    assert result.path == target
    assert target.read_bytes() == result.data


def test_unreadable_custom_sprite_aborts_export(
    settings_factory, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    settings = settings_factory({'sprite': 'custom', 'custom_sprite_path': str(tmp_path / "nope.png")})
    target = tmp_path / "effect.zip"

    with caplog.at_level(logging.ERROR):
        result = ParticleExporter(settings, seed=1).write(target)

    assert not result.success
    assert result.message.startswith("Error:")
    assert result.data is None
    assert not target.exists()
    assert "Export failed" in caplog.text


def test_corrupt_custom_sprite_aborts_export(settings_factory, tmp_path: Path) -> None:
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"definitely not an image")
    settings = settings_factory({'sprite': 'custom', 'custom_sprite_path': str(bad)})

    result = ParticleExporter(settings, seed=1).export()

    assert not result.success


def test_custom_sprite_without_path_uses_circle(settings_factory) -> None:
    settings = settings_factory({'sprite': 'custom', 'looping': False})

    result = ParticleExporter(settings, seed=1).export()

    assert result.success


def test_one_region_per_enabled_emitter() -> None:
    from particle_exporter.core.settings import ParticleSettings

    settings = ParticleSettings.from_dict({
        'duration': 0.5,
        'fps': 10,
        'emitters': [
            {'id': 'a', 'sprite': 'star', 'looping': False},
            {'id': 'b', 'enabled': False},
            {'id': 'c', 'sprite': 'glow', 'looping': False},
        ],
    })

    result = ParticleExporter(settings, seed=3).export()

    with zipfile.ZipFile(io.BytesIO(result.data)) as zf:
        atlas_text = zf.read('particle.atlas').decode()
    regions = [line for line in atlas_text.splitlines() if line.startswith('sprite_')]
    assert regions == ['sprite_1', 'sprite_2']


def test_write_json_only(one_shot_settings, tmp_path: Path) -> None:
    path = ParticleExporter(one_shot_settings, seed=1).write_json(tmp_path / "anim.json")

    document = json.loads(path.read_text())
    assert document['skeleton']['hash'] == 'particle_export'


def test_export_effect_from_preset(tmp_path: Path) -> None:
    target = tmp_path / "burst.zip"

    result = export_effect(preset='burst', output_path=str(target), seed=5, duration=0.5, fps=10)

    assert result.success
    assert target.exists()
    assert result.frame_count == 6
