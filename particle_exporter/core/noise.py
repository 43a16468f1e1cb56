"""
Turbulence noise field.

Hash-based pseudo-noise returning a 2D force for a particle position and a
simulation time. Pure: the same (x, y, time) always yields the same force.
"""

import math
from typing import Tuple


def simple_noise(x: float, y: float) -> float:
    """Hash noise in [0, 1)"""
    n = math.sin(x * 12.9898 + y * 78.233) * 43758.5453
    return n - math.floor(n)


def noise2d(x: float, y: float, time: float) -> Tuple[float, float]:
    """
    Turbulence force at (x, y) for the given time.

    Combines a coarse direction that changes three times per second, fast
    spikes, a flicker term and a pulse. Magnitude is capped at 2.
    """
    stepped_time = math.floor(time * 3)

    coarse = simple_noise(x * 1.37 + stepped_time * 11.17, y * 1.37 - stepped_time * 7.41)
    spikes = simple_noise(x * 4.11 + time * 6.73, y * 4.11 - time * 5.29) ** 3
    flicker = (simple_noise(x * 0.63 + stepped_time * 3.19, y * 0.63 - stepped_time * 2.71) * 2 - 1) * 0.35

    base_angle = (coarse * 2 - 1) * math.pi + flicker * math.pi
    pulse = abs(math.sin((time + coarse) * 6)) * 0.35
    strength = min(2.0, 0.35 + spikes * 1.4 + pulse + abs(flicker))

    return (math.cos(base_angle) * strength, math.sin(base_angle) * strength)
