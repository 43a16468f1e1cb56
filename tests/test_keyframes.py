"""Tests for per-particle keyframe reduction."""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

import pytest

from particle_exporter.core.settings import ExportSettings
from particle_exporter.export.baking import BakedFrame, ParticleSnapshot
from particle_exporter.export.keyframes import (
    ParticleTrack,
    build_particle_keyframes,
    normalize_angle,
    smooth_angles,
)

TRACK = ParticleTrack('em', 0, 'e1_particle_0', 'e1_particle_slot_0')

BASE = ParticleSnapshot(
    emitter_id='em', local_id=0, x=0.0, y=0.0, rotation=0.0,
    scale=1.0, scale_x=1.0, scale_y=1.0, alpha=1.0,
    color=(255, 0, 0, 255), life=1.0, max_life=1.0,
)


def frames_from(snaps: List[Optional[ParticleSnapshot]], dt: float = 0.1) -> List[BakedFrame]:
    return [
        BakedFrame.create(i * dt, {s.key: s} if s is not None else {})
        for i, s in enumerate(snaps)
    ]


def test_static_particle_keeps_first_and_last_keys() -> None:
    frames = frames_from([BASE] * 6)

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(), 'sprite_1')

    assert [k['time'] for k in keys.translate] == [0.0, 0.5]
    assert [k['time'] for k in keys.rotate] == [0.0, 0.5]
    assert [k['time'] for k in keys.scale] == [0.0, 0.5]
    assert [k['time'] for k in keys.rgba] == [0.0, 0.5]
    assert keys.attachment == [{'time': 0.0, 'name': 'sprite_1'}]


def test_translate_keys_follow_threshold_and_flip_y() -> None:
    frames = frames_from([replace(BASE, x=5.0 * i, y=2.0) for i in range(8)])

    keys = build_particle_keyframes(
        frames, TRACK, ExportSettings(position_threshold=12.0), 'sprite_1'
    )

    assert [k['x'] for k in keys.translate] == [0.0, 15.0, 30.0, 35.0]
    assert all(k['y'] == -2.0 for k in keys.translate)


def test_color_key_is_hex_with_alpha() -> None:
    frames = frames_from([replace(BASE, alpha=0.5)])

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(), 'sprite_1')

    assert keys.rgba == [{'time': 0.0, 'color': 'ff000080'}]


def test_disappearance_hides_attachment_and_steps_keys() -> None:
    frames = frames_from([BASE, replace(BASE, x=3.0), BASE, None, None])

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(), 'sprite_1')

    assert keys.attachment == [
        {'time': 0.0, 'name': 'sprite_1'},
        {'time': 0.3, 'name': None},
    ]
    assert keys.translate[-1]['time'] == 0.3
    assert keys.translate[-1]['curve'] == 'stepped'
    assert keys.scale[-1] == {'time': 0.3, 'x': 0, 'y': 0, 'curve': 'stepped'}
    assert all('curve' not in k for k in keys.attachment)


def test_late_appearance_starts_with_attachment() -> None:
    frames = frames_from([None, None, BASE, BASE])

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(), 'sprite_1')

    assert keys.attachment[0] == {'time': 0.2, 'name': 'sprite_1'}
    assert keys.translate[0]['time'] == 0.2


def test_transparent_particle_never_appears() -> None:
    frames = frames_from([replace(BASE, alpha=0.0)] * 3)

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(), 'sprite_1')

    assert not keys.has_appeared
    assert keys.translate == []


def test_disabled_channels_produce_no_keys() -> None:
    frames = frames_from([BASE] * 3)
    export = ExportSettings(export_rotate=False, export_color=False)

    keys = build_particle_keyframes(frames, TRACK, export, 'sprite_1')

    assert keys.rotate == []
    assert keys.rgba == []
    assert keys.translate


def test_normalize_angle_unwraps_monotonically() -> None:
    raw = [((i * 40) % 360) - 180 for i in range(20)]

    unwrapped = [raw[0]]
    for angle in raw[1:]:
        unwrapped.append(normalize_angle(angle, unwrapped[-1]))

    assert all(b - a == pytest.approx(40) for a, b in zip(unwrapped, unwrapped[1:]))


def test_smooth_angles_removes_single_frame_spike() -> None:
    assert smooth_angles([0, 0, 90, 0, 0]) == [0, 0, 0, 0, 0]
    assert smooth_angles([]) == []


def test_rotation_keys_stay_continuous_across_wrap() -> None:
    angles = [170.0, 175.0, -175.0, -165.0, -150.0, -130.0]
    frames = frames_from([replace(BASE, rotation=a) for a in angles])

    keys = build_particle_keyframes(frames, TRACK, ExportSettings(rotation_threshold=1.0), 'sprite_1')

    values = [k['value'] for k in keys.rotate]
    assert all(abs(b - a) < 180 for a, b in zip(values, values[1:]))
    assert values[-1] > 180
