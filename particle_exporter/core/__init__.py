"""
Particle Exporter - Core simulation
"""

from .utils import ColorUtils, MathUtils, configure_logging
from .curves import (
    # Data
    Curve, CurvePoint, ColorGradient, ColorPoint, Range, Interpolation,
    # Evaluation
    evaluate_curve, evaluate_color_gradient, sample_range, clamp01,
    # Presets
    DEFAULT_CURVE_PRESETS, SIZE_SHRINK, WHITE_FADE,
)
from .noise import noise2d, simple_noise
from .shapes import (
    EmissionMode, Shape, PointShape, LineShape, CircleShape,
    RectangleShape, RoundedRectShape, sample_offset, shape_from_dict, shape_to_dict,
)
from .settings import (
    EmissionType, SpawnAngleMode, EmitterSettings, Emitter, ExportSettings,
    ParticleSettings, load_settings, MAX_EMITTERS, SPRITE_TYPES,
)
from .engine import Particle, EmitterState, ParticleStats, ParticleEngine
from .presets import EffectPreset, PresetManager, get_preset_manager, list_presets

__all__ = [
    # Utilities
    'ColorUtils', 'MathUtils', 'configure_logging',
    # Curves
    'Curve', 'CurvePoint', 'ColorGradient', 'ColorPoint', 'Range', 'Interpolation',
    'evaluate_curve', 'evaluate_color_gradient', 'sample_range', 'clamp01',
    'DEFAULT_CURVE_PRESETS', 'SIZE_SHRINK', 'WHITE_FADE',
    # Noise
    'noise2d', 'simple_noise',
    # Shapes
    'EmissionMode', 'Shape', 'PointShape', 'LineShape', 'CircleShape',
    'RectangleShape', 'RoundedRectShape', 'sample_offset', 'shape_from_dict', 'shape_to_dict',
    # Settings
    'EmissionType', 'SpawnAngleMode', 'EmitterSettings', 'Emitter', 'ExportSettings',
    'ParticleSettings', 'load_settings', 'MAX_EMITTERS', 'SPRITE_TYPES',
    # Engine
    'Particle', 'EmitterState', 'ParticleStats', 'ParticleEngine',
    # Presets
    'EffectPreset', 'PresetManager', 'get_preset_manager', 'list_presets',
]
