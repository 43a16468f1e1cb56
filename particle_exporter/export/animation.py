"""
Animation Document Builder

Converts a bake into the skeletal animation document as an explicit sequence
of stages. Every stage takes its inputs read-only and returns new data:

    reduce -> splice -> trim -> seam -> serialize

Animations:
- 'loop' when any emitter loops with prewarm, otherwise 'particle_anim'
- 'prewarm' when the bake has a prewarm pass and it produced keys
"""

import copy
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Optional, Sequence, Tuple

from ..core.settings import ParticleSettings
from ..core.utils import MathUtils
from .baking import BakedFrame, BakeResult, make_particle_key
from .decimation import decimate_keyframes
from .keyframes import ParticleTrack, build_particle_keyframes, is_visible
from .skeleton import SkeletonStructure, build_skeleton, skeleton_header, slot_for_bone, sprite_names

logger = logging.getLogger(__name__)

AnimationData = Dict[str, Dict[str, Dict[str, List[Dict[str, Any]]]]]

BONE_CHANNELS = ('translate', 'rotate', 'scale')
SLOT_CHANNELS = ('attachment', 'rgba')


@dataclass(frozen=True)
class AnimationSet:
    """Main and prewarm animations between stages"""
    main: Optional[AnimationData] = None
    prewarm: Optional[AnimationData] = None
    bones_with_offset: FrozenSet[str] = field(default_factory=frozenset)


def is_loop_prewarm_mode(settings: ParticleSettings) -> bool:
    return any(e.settings.looping and e.settings.prewarm for e in settings.enabled_emitters)


def _channels(animation: AnimationData) -> Iterator[Tuple[str, str, List[Dict[str, Any]]]]:
    """Yield (name, channel, keys) for every bone and slot track"""
    for bone_name, bone in animation['bones'].items():
        for channel in BONE_CHANNELS:
            if channel in bone:
                yield bone_name, channel, bone[channel]
    for slot_name, slot in animation['slots'].items():
        for channel in SLOT_CHANNELS:
            if channel in slot:
                yield slot_name, channel, slot[channel]


def normalize_animation_times(animation: AnimationData) -> AnimationData:
    """Shift every key so the earliest one sits at time 0"""
    result = copy.deepcopy(animation)
    times = [key['time'] for _, _, keys in _channels(result) for key in keys]
    start = min(times, default=0.0)
    if start > 0:
        for _, _, keys in _channels(result):
            for key in keys:
                key['time'] = MathUtils.round_time(key['time'] - start)
    return result


# =============================================================================
# Stage: reduce
# =============================================================================

def build_animation_data(
    frames: Sequence[BakedFrame],
    tracks: Sequence[ParticleTrack],
    settings: ParticleSettings,
    normalize_start: bool = False
) -> Optional[AnimationData]:
    """
    Keyframes for every track over one frame sequence.

    Returns:
        {'bones': {...}, 'slots': {...}} or None when nothing became visible
    """
    if not frames or not tracks:
        return None

    export = settings.export
    sprites = sprite_names(settings)
    animation: AnimationData = {'bones': {}, 'slots': {}}

    for track in tracks:
        keys = build_particle_keyframes(frames, track, export, sprites[track.emitter_id])
        if not keys.has_appeared:
            continue

        bone = {}
        if export.export_translate and keys.translate:
            bone['translate'] = keys.translate
        if export.export_rotate and keys.rotate:
            bone['rotate'] = keys.rotate
        if export.export_scale and keys.scale:
            bone['scale'] = keys.scale
        if bone:
            animation['bones'][track.bone_name] = bone

        slot = {}
        if keys.attachment:
            slot['attachment'] = keys.attachment
        if export.export_color and keys.rgba:
            slot['rgba'] = keys.rgba
        if slot:
            animation['slots'][track.slot_name] = slot

    if not animation['bones'] and not animation['slots']:
        return None

    if export.decimation > 0:
        animation = decimate_animation(animation, export.decimation)

    if normalize_start:
        animation = normalize_animation_times(animation)

    return animation


def decimate_animation(animation: AnimationData, percentage: float) -> AnimationData:
    """Thin dense channels; attachment keys carry visibility and are all kept"""
    result = copy.deepcopy(animation)
    for group in ('bones', 'slots'):
        for entry in result[group].values():
            for channel, keys in list(entry.items()):
                if channel == 'attachment':
                    continue
                entry[channel] = decimate_keyframes(keys, percentage)
    return result


def reduce_animations(
    bake: BakeResult,
    structure: SkeletonStructure,
    settings: ParticleSettings
) -> AnimationSet:
    """Main and prewarm animations for the tracked particles"""
    any_looping = any(e.settings.looping for e in settings.enabled_emitters)

    main = build_animation_data(
        bake.frames, structure.tracks, settings, normalize_start=not any_looping
    )
    prewarm = None
    if any_looping and bake.has_prewarm:
        prewarm = build_animation_data(bake.prewarm_frames, structure.tracks, settings)

    return AnimationSet(main=main, prewarm=prewarm)


# =============================================================================
# Stage: splice
# =============================================================================

def splice_loop_into_prewarm(
    animations: AnimationSet,
    bake: BakeResult,
    structure: SkeletonStructure
) -> AnimationSet:
    """
    Continue prewarm tracks with their loop keys.

    For particles visible in the last loop frame whose bone already animates
    in both animations, every loop key is appended to the prewarm track,
    shifted by the prewarm duration. Bones that received keys are recorded.
    """
    if (animations.main is None or animations.prewarm is None
            or not bake.frames or not bake.prewarm_frames):
        return animations

    main = animations.main
    prewarm = copy.deepcopy(animations.prewarm)
    offset = bake.prewarm_frames[-1].time
    last_frame = bake.frames[-1]
    track_by_key = {make_particle_key(t.emitter_id, t.local_id): t for t in structure.tracks}

    def shifted(keys: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return [
            {**key, 'time': MathUtils.round_time(offset + key['time'])}
            for key in keys
        ]

    with_offset = set(animations.bones_with_offset)

    for key, snap in last_frame.particles.items():
        if not is_visible(snap) or key not in track_by_key:
            continue
        track = track_by_key[key]

        loop_bone = main['bones'].get(track.bone_name)
        prewarm_bone = prewarm['bones'].get(track.bone_name)
        if loop_bone and prewarm_bone:
            received = False
            for channel in BONE_CHANNELS:
                if loop_bone.get(channel):
                    prewarm_bone.setdefault(channel, []).extend(shifted(loop_bone[channel]))
                    received = True
            if received:
                with_offset.add(track.bone_name)

        loop_slot = main['slots'].get(track.slot_name)
        prewarm_slot = prewarm['slots'].get(track.slot_name)
        if loop_slot and prewarm_slot:
            for channel in SLOT_CHANNELS:
                if loop_slot.get(channel):
                    prewarm_slot.setdefault(channel, []).extend(shifted(loop_slot[channel]))

    return replace(animations, prewarm=prewarm, bones_with_offset=frozenset(with_offset))


# =============================================================================
# Stage: trim
# =============================================================================

def trim_prewarm(animations: AnimationSet, settings: ParticleSettings) -> AnimationSet:
    """In loop+prewarm mode keep only prewarm bones continued by the loop"""
    if animations.prewarm is None or not is_loop_prewarm_mode(settings):
        return animations

    prewarm = animations.prewarm
    keep = sorted(animations.bones_with_offset)
    trimmed: AnimationData = {
        'bones': {
            name: copy.deepcopy(prewarm['bones'][name])
            for name in keep if name in prewarm['bones']
        },
        'slots': {
            slot_for_bone(name): copy.deepcopy(prewarm['slots'][slot_for_bone(name)])
            for name in keep if slot_for_bone(name) in prewarm['slots']
        },
    }
    return replace(animations, prewarm=trimmed)


# =============================================================================
# Stage: seam
# =============================================================================

def add_loop_seam(
    animations: AnimationSet,
    frames: Sequence[BakedFrame],
    structure: SkeletonStructure,
    settings: ParticleSettings
) -> AnimationSet:
    """
    Close the loop: particles visible at frame 0 repeat their first key at
    the loop duration.
    """
    if animations.main is None or not frames or not is_loop_prewarm_mode(settings):
        return animations

    main = copy.deepcopy(animations.main)
    seam_time = MathUtils.round_time(frames[-1].time)
    first_frame = frames[0]

    tracks: Dict[str, ParticleTrack] = {}
    for track in structure.tracks:
        tracks[track.bone_name] = track
        tracks[track.slot_name] = track

    for name, _channel, keys in _channels(main):
        track = tracks.get(name)
        if not keys or track is None:
            continue
        if is_visible(first_frame.get(track.emitter_id, track.local_id)):
            keys.append({**keys[0], 'time': seam_time})

    return replace(animations, main=main)


# =============================================================================
# Stage: serialize
# =============================================================================

def serialize_document(
    structure: SkeletonStructure,
    animations: AnimationSet,
    settings: ParticleSettings
) -> Dict[str, Any]:
    """Assemble the final document mapping"""
    named: Dict[str, Any] = {}
    if animations.main is not None:
        name = 'loop' if is_loop_prewarm_mode(settings) else 'particle_anim'
        named[name] = animations.main
    if animations.prewarm is not None and (animations.prewarm['bones'] or animations.prewarm['slots']):
        named['prewarm'] = animations.prewarm

    return {
        'skeleton': skeleton_header(settings),
        'bones': copy.deepcopy(structure.bones),
        'slots': copy.deepcopy(structure.slots),
        'skins': copy.deepcopy(structure.skins),
        'animations': copy.deepcopy(named),
    }


def document_to_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, separators=(',', ':'))


# =============================================================================
# Pipeline
# =============================================================================

Stage = Callable[[AnimationSet], AnimationSet]


def build_animation_document(
    bake: BakeResult,
    settings: ParticleSettings,
    on_stage: Optional[Callable[[str], None]] = None
) -> Dict[str, Any]:
    """
    Run every stage and return the document mapping.

    Args:
        bake: Result of bake_particle_animation
        settings: Effect document
        on_stage: Called with each stage name before it runs
    """
    structure = build_skeleton(bake.frames, settings)
    logger.debug(
        "Skeleton: %d bones, %d slots, %d tracks",
        len(structure.bones), len(structure.slots), len(structure.tracks),
    )

    stages: List[Tuple[str, Stage]] = [
        ('splice', lambda a: splice_loop_into_prewarm(a, bake, structure)),
        ('trim', lambda a: trim_prewarm(a, settings)),
        ('seam', lambda a: add_loop_seam(a, bake.frames, structure, settings)),
    ]

    if on_stage:
        on_stage('reduce')
    animations = reduce_animations(bake, structure, settings)

    for name, stage in stages:
        if on_stage:
            on_stage(name)
        animations = stage(animations)

    if on_stage:
        on_stage('serialize')
    return serialize_document(structure, animations, settings)
