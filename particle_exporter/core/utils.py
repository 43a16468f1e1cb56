"""
Utility functions for math, color encoding and logging setup
"""

import logging
import math
import sys
from typing import Optional, Tuple


DEFAULT_LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: int = logging.INFO, format: Optional[str] = None) -> None:
    """Configure the root logger once; leaves an existing setup alone"""
    if logging.getLogger().handlers:
        return

    logging.basicConfig(
        level=level,
        format=format or DEFAULT_LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


class MathUtils:
    """Math helpers shared by the engine and the exporters"""

    @staticmethod
    def lerp(a: float, b: float, t: float) -> float:
        """Linear interpolation between a and b"""
        return a + (b - a) * t

    @staticmethod
    def ease_in_out_quad(t: float) -> float:
        """Quadratic ease in-out"""
        if t < 0.5:
            return 2 * t * t
        return 1 - pow(-2 * t + 2, 2) / 2

    @staticmethod
    def clamp(value: float, min_val: float, max_val: float) -> float:
        """Clamp value between min and max"""
        return max(min_val, min(max_val, value))

    @staticmethod
    def clamp01(value: float) -> float:
        return max(0.0, min(1.0, value))

    @staticmethod
    def round_half_up(value: float) -> int:
        """Round to nearest integer, halves towards +infinity"""
        return int(math.floor(value + 0.5))

    @classmethod
    def round_to(cls, value: float, decimals: int) -> float:
        """Round to a fixed number of decimals, halves rounding up (not round())"""
        factor = 10 ** decimals
        return math.floor(value * factor + 0.5) / factor

    @classmethod
    def round_time(cls, seconds: float) -> float:
        """Round a timestamp to millisecond precision"""
        return cls.round_to(seconds, 3)


class ColorUtils:
    """Color conversions used by the keyframe and document builders"""

    @staticmethod
    def to_hex(r: float, g: float, b: float, a: float) -> str:
        """Encode normalized (0-1) RGBA as an 'rrggbbaa' string"""
        channels = (r, g, b, a)
        return "".join(
            f"{MathUtils.round_half_up(MathUtils.clamp01(c) * 255):02x}" for c in channels
        )

    @staticmethod
    def from_hex(value: str) -> Tuple[int, int, int, int]:
        """Parse '#rrggbb' or '#rrggbbaa' into 0-255 RGBA"""
        value = value.lstrip('#')
        if len(value) not in (6, 8):
            raise ValueError(f"Invalid color: #{value}. Expected #rrggbb or #rrggbbaa")
        r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
        a = int(value[6:8], 16) if len(value) == 8 else 255
        return (r, g, b, a)
