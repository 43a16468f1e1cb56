"""
Keyframe decimation.

Thins keys out of high-density stretches of a track while keeping the keys
that shape the animation: first, last, stepped and the boundaries of each
dense stretch.
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from ..core.utils import MathUtils

DENSITY_WINDOW = 0.3          # Seconds, about 9 frames at 30 fps
HIGH_DENSITY_FACTOR = 1.2     # Above average by 20%


@dataclass
class KeyDensity:
    index: int
    density: int              # Keys within the time window
    is_high: bool = False


def key_densities(keys: List[Dict[str, Any]], window: float = DENSITY_WINDOW) -> List[KeyDensity]:
    """Count neighbours of each key inside a centred time window"""
    if not keys:
        return []

    half = window / 2
    times = [k['time'] for k in keys]
    densities = [
        KeyDensity(i, sum(1 for other in times if t - half <= other <= t + half))
        for i, t in enumerate(times)
    ]

    average = sum(d.density for d in densities) / len(densities)
    threshold = average * HIGH_DENSITY_FACTOR
    for d in densities:
        d.is_high = d.density > threshold

    return densities


def _is_critical(index: int, key: Dict[str, Any], densities: List[KeyDensity]) -> bool:
    if index == 0 or index == len(densities) - 1:
        return True
    if key.get('curve') == 'stepped':
        return True

    current = densities[index]
    if not current.is_high:
        return False
    # Entry or exit of a dense stretch
    return not densities[index - 1].is_high or not densities[index + 1].is_high


def decimate_keyframes(
    keys: List[Dict[str, Any]],
    removal_percentage: float,
    window: float = DENSITY_WINDOW
) -> List[Dict[str, Any]]:
    """
    Remove a percentage of keys from dense regions.

    Args:
        keys: Keys sorted by time
        removal_percentage: Share of dense keys to drop (0-100, exclusive)
        window: Density window in seconds

    Returns:
        New list; the input is returned unchanged when nothing applies
    """
    if len(keys) <= 2 or removal_percentage <= 0 or removal_percentage >= 100:
        return keys

    densities = key_densities(keys, window)
    if not any(d.is_high for d in densities):
        return keys

    keep_every = max(1, MathUtils.round_half_up(100 / (100 - removal_percentage)))

    result = []
    counter = 0
    for i, key in enumerate(keys):
        if _is_critical(i, key, densities):
            result.append(key)
            continue

        if densities[i].is_high:
            if counter % keep_every == 0:
                result.append(key)
            counter += 1
        else:
            result.append(key)
            counter = 0

    return result
