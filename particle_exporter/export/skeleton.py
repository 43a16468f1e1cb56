"""
Skeleton structure: bones, slots and the default skin.

Hierarchy is root -> one bone per emitter -> one bone per tracked particle.
Each particle bone carries one slot whose region attachment is the emitter's
atlas sprite.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..core.settings import ParticleSettings
from ..core.utils import MathUtils
from .baking import BakedFrame
from .keyframes import ParticleTrack
from .sprites import SPRITE_SIZE


# =============================================================================
# Naming
# =============================================================================

def emitter_prefix(settings: ParticleSettings, emitter_id: str) -> str:
    """'e1', 'e2'... by position in the document"""
    return f"e{settings.index_of(emitter_id) + 1}"


def particle_bone_name(settings: ParticleSettings, emitter_id: str, local_id: int) -> str:
    return f"{emitter_prefix(settings, emitter_id)}_particle_{local_id}"


def particle_slot_name(settings: ParticleSettings, emitter_id: str, local_id: int) -> str:
    return f"{emitter_prefix(settings, emitter_id)}_particle_slot_{local_id}"


def slot_for_bone(bone_name: str) -> str:
    return bone_name.replace('particle_', 'particle_slot_', 1)


def sprite_names(settings: ParticleSettings) -> Dict[str, str]:
    """Atlas region name per enabled emitter: sprite_1, sprite_2..."""
    return {
        emitter.id: f"sprite_{i + 1}"
        for i, emitter in enumerate(settings.enabled_emitters)
    }


# =============================================================================
# Structure
# =============================================================================

@dataclass
class SkeletonStructure:
    bones: List[Dict[str, Any]] = field(default_factory=list)
    slots: List[Dict[str, Any]] = field(default_factory=list)
    skins: Dict[str, Dict[str, Any]] = field(default_factory=lambda: {'default': {}})
    tracks: List[ParticleTrack] = field(default_factory=list)


def collect_particle_ids(
    frames: Sequence[BakedFrame],
    settings: ParticleSettings
) -> Dict[str, List[int]]:
    """
    Local ids seen per enabled emitter, ascending.

    Looping emitters with prewarm are limited to floor(rate * duration) bones,
    the steady-state population of one cycle.
    """
    seen: Dict[str, set] = {}
    for frame in frames:
        for snap in frame.particles.values():
            seen.setdefault(snap.emitter_id, set()).add(snap.local_id)

    result: Dict[str, List[int]] = {}
    for emitter in settings.enabled_emitters:
        ids = seen.get(emitter.id)
        if not ids:
            continue
        em = emitter.settings
        if em.looping and em.prewarm:
            limit = math.floor(em.rate * settings.duration)
            ids = {i for i in ids if i < limit}
        result[emitter.id] = sorted(ids)

    return result


def build_skeleton(frames: Sequence[BakedFrame], settings: ParticleSettings) -> SkeletonStructure:
    """Bones, slots, skin and particle tracks from the main baked frames"""
    ids_by_emitter = collect_particle_ids(frames, settings)
    sprites = sprite_names(settings)
    structure = SkeletonStructure(bones=[{'name': 'root'}])

    for emitter in settings.enabled_emitters:
        if emitter.id not in ids_by_emitter:
            continue
        bone: Dict[str, Any] = {'name': emitter.name, 'parent': 'root'}
        x, y = emitter.settings.position
        if x != 0:
            bone['x'] = MathUtils.round_to(x, 2)
        if y != 0:
            bone['y'] = MathUtils.round_to(-y, 2)
        structure.bones.append(bone)

    for emitter in settings.enabled_emitters:
        if emitter.id not in ids_by_emitter:
            continue
        sprite = sprites[emitter.id]

        for local_id in ids_by_emitter[emitter.id]:
            bone_name = particle_bone_name(settings, emitter.id, local_id)
            slot_name = particle_slot_name(settings, emitter.id, local_id)

            structure.tracks.append(ParticleTrack(emitter.id, local_id, bone_name, slot_name))
            structure.bones.append({'name': bone_name, 'parent': emitter.name})
            structure.slots.append({'name': slot_name, 'bone': bone_name, 'attachment': None})
            structure.skins['default'][slot_name] = {
                sprite: {
                    'type': 'region',
                    'name': sprite,
                    'path': sprite,
                    'x': 0,
                    'y': 0,
                    'scaleX': 1,
                    'scaleY': 1,
                    'rotation': 0,
                    'width': SPRITE_SIZE,
                    'height': SPRITE_SIZE,
                },
            }

    return structure


def skeleton_header(settings: ParticleSettings) -> Dict[str, Any]:
    return {
        'hash': 'particle_export',
        'spine': settings.export.spine_version,
        'x': 0,
        'y': 0,
        'width': settings.frame_size,
        'height': settings.frame_size,
    }
