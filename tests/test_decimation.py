"""Tests for density-based keyframe decimation."""

from __future__ import annotations

import copy

from particle_exporter.export.decimation import decimate_keyframes, key_densities


def _keys():
    sparse = [{'time': float(t), 'x': t} for t in (0, 1, 2)]
    dense = [{'time': round(3.0 + i * 0.01, 3), 'x': i} for i in range(30)]
    tail = [{'time': 5.0, 'x': 0}, {'time': 6.0, 'x': 0}]
    return sparse + dense + tail


def test_short_tracks_and_zero_percent_are_untouched() -> None:
    keys = _keys()

    assert decimate_keyframes(keys[:2], 50) == keys[:2]
    assert decimate_keyframes(keys, 0) == keys
    assert decimate_keyframes(keys, 100) == keys


def test_dense_stretch_is_thinned() -> None:
    keys = _keys()

    result = decimate_keyframes(keys, 50)

    assert len(result) < len(keys)
    assert result[0] is keys[0]
    assert result[-1] is keys[-1]
    for sparse in keys[:3] + keys[-2:]:
        assert sparse in result


def test_stepped_keys_survive() -> None:
    keys = _keys()
    keys[18]['curve'] = 'stepped'

    result = decimate_keyframes(keys, 90)

    assert keys[18] in result


def test_input_is_not_modified() -> None:
    keys = _keys()
    before = copy.deepcopy(keys)

    decimate_keyframes(keys, 75)

    assert keys == before


def test_densities_flag_the_crowded_region() -> None:
    densities = key_densities(_keys())

    assert not densities[0].is_high
    assert densities[3 + 15].is_high
