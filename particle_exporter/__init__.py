"""
Particle Exporter - Bake particle effects into skeletal animation packages
"""

from .core import ParticleSettings, ParticleEngine, PresetManager, get_preset_manager, load_settings
from .export import ParticleExporter, ExportResult, ExportError, bake_particle_animation

__version__ = "0.1.0"
__all__ = [
    'ParticleSettings',
    'ParticleEngine',
    'PresetManager',
    'get_preset_manager',
    'load_settings',
    'ParticleExporter',
    'ExportResult',
    'ExportError',
    'bake_particle_animation',
    'export_effect',
]


def export_effect(
    config: str = None,
    preset: str = None,
    output_path: str = "particle_export.zip",
    seed: int = None,
    include_preview: bool = True,
    **overrides
) -> ExportResult:
    """
    Export an effect from a settings file or a named preset.

    Args:
        config: Path to a YAML or JSON settings document
        preset: Preset name (used when config is None)
        output_path: Where to write the archive
        seed: Random seed for a reproducible bake
        include_preview: Add preview.png to the archive
        **overrides: Timeline overrides (duration, fps, frame_size)

    Returns:
        ExportResult describing the written archive
    """
    if config is not None:
        settings = load_settings(config)
    elif preset is not None:
        settings = get_preset_manager().require(preset).to_settings()
    else:
        settings = ParticleSettings()

    if overrides:
        settings = settings.with_overrides(**overrides)

    exporter = ParticleExporter(settings, seed=seed, include_preview=include_preview)
    return exporter.write(output_path)
