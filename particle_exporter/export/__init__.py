"""
Particle Exporter - Baking, keyframe reduction and packaging
"""

from .baking import (
    ParticleSnapshot, BakedFrame, BakeResult,
    bake_particle_animation, capture_snapshot, make_particle_key,
)
from .keyframes import ParticleTrack, Keyframes, build_particle_keyframes, normalize_angle, smooth_angles
from .decimation import decimate_keyframes
from .skeleton import SkeletonStructure, build_skeleton, sprite_names
from .animation import (
    AnimationSet, build_animation_document, document_to_json,
    reduce_animations, splice_loop_into_prewarm, trim_prewarm, add_loop_seam, serialize_document,
)
from .sprites import SPRITE_DRAWERS, create_particle_sprite, load_custom_sprite
from .atlas import AtlasRegion, pack_atlas, atlas_descriptor
from .preview import render_baked_preview
from .archive import ArchiveEntry, ArchiveWriter, crc32
from .exporter import ExportError, ExportResult, ParticleExporter, ARCHIVE_NAME

__all__ = [
    # Baking
    'ParticleSnapshot', 'BakedFrame', 'BakeResult',
    'bake_particle_animation', 'capture_snapshot', 'make_particle_key',
    # Keyframes
    'ParticleTrack', 'Keyframes', 'build_particle_keyframes', 'normalize_angle', 'smooth_angles',
    'decimate_keyframes',
    # Document
    'SkeletonStructure', 'build_skeleton', 'sprite_names',
    'AnimationSet', 'build_animation_document', 'document_to_json',
    'reduce_animations', 'splice_loop_into_prewarm', 'trim_prewarm', 'add_loop_seam', 'serialize_document',
    # Images
    'SPRITE_DRAWERS', 'create_particle_sprite', 'load_custom_sprite',
    'AtlasRegion', 'pack_atlas', 'atlas_descriptor', 'render_baked_preview',
    # Archive
    'ArchiveEntry', 'ArchiveWriter', 'crc32',
    'ExportError', 'ExportResult', 'ParticleExporter', 'ARCHIVE_NAME',
]
