"""
Atlas packing and the text descriptor that goes with it.
"""

import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from PIL import Image

from .sprites import SPRITE_SIZE, create_particle_sprite

ATLAS_PADDING = 8
ATLAS_IMAGE_NAME = "particle.png"


@dataclass(frozen=True)
class AtlasRegion:
    name: str
    x: int
    y: int
    width: int
    height: int


def pack_atlas(entries: Sequence[Tuple[str, Image.Image]]) -> Tuple[Image.Image, List[AtlasRegion]]:
    """
    Pack named sprites into a square-ish grid.

    Each cell is the sprite plus padding on every side; columns are
    ceil(sqrt(n)). With no entries a single circle sprite is packed.
    """
    if not entries:
        entries = [("sprite_1", create_particle_sprite("circle", SPRITE_SIZE))]

    columns = max(1, math.ceil(math.sqrt(len(entries))))
    rows = max(1, math.ceil(len(entries) / columns))
    cell = SPRITE_SIZE + ATLAS_PADDING * 2

    atlas = Image.new('RGBA', (cell * columns, cell * rows), (0, 0, 0, 0))
    regions = []

    for index, (name, sprite) in enumerate(entries):
        x = (index % columns) * cell + ATLAS_PADDING
        y = (index // columns) * cell + ATLAS_PADDING
        if sprite.size != (SPRITE_SIZE, SPRITE_SIZE):
            sprite = sprite.resize((SPRITE_SIZE, SPRITE_SIZE), Image.Resampling.LANCZOS)
        atlas.paste(sprite, (x, y))
        regions.append(AtlasRegion(name, x, y, SPRITE_SIZE, SPRITE_SIZE))

    return atlas, regions


def atlas_descriptor(size: Tuple[int, int], regions: Sequence[AtlasRegion]) -> str:
    """Text atlas listing each region of the packed image"""
    lines = [
        ATLAS_IMAGE_NAME,
        f"size: {size[0]},{size[1]}",
        "format: RGBA8888",
        "filter: Linear,Linear",
        "repeat: none",
    ]
    for region in regions:
        lines += [
            region.name,
            "  rotate: false",
            f"  xy: {region.x}, {region.y}",
            f"  size: {region.width}, {region.height}",
            f"  orig: {region.width}, {region.height}",
            "  offset: 0, 0",
            "  index: -1",
        ]
    return "\n".join(lines) + "\n"
