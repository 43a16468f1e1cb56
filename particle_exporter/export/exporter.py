"""
Particle Exporter - Bakes an effect and packages it as a ZIP archive

Archive contents:
- particle.png: sprite atlas
- particle.atlas: atlas descriptor
- particle_spine.json: skeletal animation document
- preview.png: every baked frame overlaid (optional)
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image

from ..core.settings import ParticleSettings
from .animation import build_animation_document, document_to_json
from .archive import ArchiveWriter
from .atlas import ATLAS_IMAGE_NAME, AtlasRegion, atlas_descriptor, pack_atlas
from .baking import BakeResult, bake_particle_animation
from .preview import render_baked_preview
from .skeleton import sprite_names
from .sprites import SPRITE_SIZE, create_particle_sprite, load_custom_sprite

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "particle_export.zip"
ATLAS_DESCRIPTOR_NAME = "particle.atlas"
DOCUMENT_NAME = "particle_spine.json"
PREVIEW_NAME = "preview.png"


class ExportError(Exception):
    """An image could not be produced or encoded; no archive is written"""


@dataclass
class ExportResult:
    """Outcome of one export, with a single status message"""
    success: bool
    message: str
    data: Optional[bytes] = None
    path: Optional[Path] = None
    frame_count: int = 0
    particle_count: int = 0
    entries: List[str] = field(default_factory=list)


def encode_png(image: Image.Image) -> bytes:
    """PNG bytes of a Pillow image"""
    buffer = io.BytesIO()
    try:
        image.save(buffer, 'PNG')
    except (OSError, ValueError) as e:
        raise ExportError(f"Failed to encode PNG: {e}") from e
    return buffer.getvalue()


def count_unique_particles(bake: BakeResult) -> int:
    return len({key for frame in bake.frames for key in frame.particles})


class ParticleExporter:
    """
    Runs the export pipeline for one settings document.

    Example:
        exporter = ParticleExporter(settings, seed=7)
        result = exporter.write("out/particle_export.zip")
    """

    def __init__(
        self,
        settings: ParticleSettings,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        include_preview: bool = True
    ):
        self.settings = settings
        self.seed = seed
        self.rng = rng
        self.include_preview = include_preview

    # =========================================================================
    # Stages
    # =========================================================================

    def bake(self) -> BakeResult:
        logger.info(
            "Baking %d emitter(s): %.2fs at %d fps",
            len(self.settings.enabled_emitters), self.settings.duration, self.settings.fps,
        )
        return bake_particle_animation(self.settings, rng=self.rng, seed=self.seed)

    def build_document(self, bake: BakeResult) -> str:
        document = build_animation_document(
            bake, self.settings,
            on_stage=lambda name: logger.debug("Animation stage: %s", name),
        )
        return document_to_json(document)

    def resolve_sprites(self) -> List[Tuple[str, Image.Image]]:
        """Named sprite image per enabled emitter"""
        names = sprite_names(self.settings)
        sprites = []

        for emitter in self.settings.enabled_emitters:
            em = emitter.settings
            try:
                if em.sprite == 'custom' and em.custom_sprite_path:
                    image = load_custom_sprite(em.custom_sprite_path, SPRITE_SIZE)
                elif em.sprite == 'custom':
                    logger.warning("Emitter '%s' has no custom sprite path; using circle", emitter.name)
                    image = create_particle_sprite('circle', SPRITE_SIZE)
                else:
                    image = create_particle_sprite(em.sprite, SPRITE_SIZE)
            except (OSError, ValueError) as e:
                raise ExportError(f"Sprite for emitter '{emitter.name}' failed: {e}") from e
            sprites.append((names[emitter.id], image))

        return sprites

    def build_atlas(self) -> Tuple[Image.Image, List[AtlasRegion]]:
        return pack_atlas(self.resolve_sprites())

    # =========================================================================
    # Export
    # =========================================================================

    def build_archive(self) -> Tuple[ArchiveWriter, BakeResult]:
        """
        Run every stage and collect the archive entries.

        Raises:
            ExportError: an image could not be produced or encoded
        """
        bake = self.bake()
        logger.info(
            "Baked %d frames, %d particles",
            len(bake.frames), count_unique_particles(bake),
        )

        logger.info("Building animation document")
        document = self.build_document(bake)

        logger.info("Packing atlas")
        atlas, regions = self.build_atlas()

        archive = ArchiveWriter()
        archive.add(ATLAS_IMAGE_NAME, encode_png(atlas))
        archive.add_text(ATLAS_DESCRIPTOR_NAME, atlas_descriptor(atlas.size, regions))
        archive.add_text(DOCUMENT_NAME, document)

        if self.include_preview:
            logger.info("Rendering preview")
            preview = render_baked_preview(bake.frames, self.settings.frame_size)
            archive.add(PREVIEW_NAME, encode_png(preview))

        return archive, bake

    def export(self) -> ExportResult:
        """Build the archive in memory"""
        try:
            archive, bake = self.build_archive()
        except ExportError as e:
            logger.error("Export failed: %s", e)
            return ExportResult(success=False, message=f"Error: {e}")

        data = archive.to_bytes()
        frames = len(bake.frames)
        particles = count_unique_particles(bake)
        return ExportResult(
            success=True,
            message=f"Exported {frames} frames, {particles} particles",
            data=data,
            frame_count=frames,
            particle_count=particles,
            entries=archive.names,
        )

    def write(self, path: str | Path) -> ExportResult:
        """Export and write the archive; nothing is written on failure"""
        result = self.export()
        if not result.success:
            return result

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(result.data)
        result.path = path
        logger.info("Wrote %s (%d bytes)", path, len(result.data))
        return result

    def write_json(self, path: str | Path) -> Path:
        """Write only the animation document"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.build_document(self.bake()), encoding='utf-8')
        logger.info("Wrote %s", path)
        return path


def export_summary(settings: ParticleSettings) -> Dict[str, object]:
    """Counts describing what an export of these settings will contain"""
    enabled = settings.enabled_emitters
    return {
        'emitters': len(enabled),
        'frames': settings.frame_count + 1,
        'duration': settings.duration,
        'fps': settings.fps,
        'looping': any(e.settings.looping for e in enabled),
        'prewarm': any(e.settings.looping and e.settings.prewarm for e in enabled),
    }
