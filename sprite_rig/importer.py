"""
Sprite Rig Importer

Runs the import pipeline over a parsed document:

    targets -> pivots -> offsets -> frame images -> atlas -> normalized pivots

Each call works on its own context; nothing is shared between imports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from PIL import Image

from .atlas_generator import PackResult, build_atlas, pack_atlas
from .compositor import ImageSet, generate_frame_images
from .document import Document, FrameTag
from .meta_layers import process_meta_layers
from .normalizer import PackedSprite, normalize_sprites
from .pivots import inherit_pivots, resolve_offsets
from .settings import ImportSettings
from .targets import Target, TargetRegistry, calculate_targets


logger = logging.getLogger(__name__)


class Stage(Enum):
    CALCULATE_TARGETS = "calculate targets"
    CALCULATE_PIVOTS = "calculate pivots"
    CALCULATE_OFFSETS = "calculate offsets"
    COMPOSITE_FRAMES = "composite frames"
    PACK_ATLAS = "pack atlas"
    NORMALIZE_PIVOTS = "normalize pivots"


class ImportFailed(Exception):
    """An import run aborted; none of its outputs are usable."""

    def __init__(self, stage: Stage, detail: str):
        super().__init__(f"Import failed during {stage.value}: {detail}")
        self.stage = stage
        self.detail = detail


@dataclass
class ImportContext:
    document: Document
    settings: ImportSettings
    registry: TargetRegistry
    images: Optional[ImageSet] = None
    packing: Optional[PackResult] = None
    sprites: List[PackedSprite] = field(default_factory=list)
    atlas: Optional[Image.Image] = None


@dataclass
class ImportResult:
    """Everything an import run hands to downstream consumers."""
    document: Document
    settings: ImportSettings
    atlas: Image.Image
    atlas_size: int
    sprites: List[PackedSprite]
    targets: Dict[str, Target]

    def sprite(self, name: str) -> Optional[PackedSprite]:
        for sprite in self.sprites:
            if sprite.name == name:
                return sprite
        return None

    def sprites_for_tag(self, tag: FrameTag) -> List[PackedSprite]:
        frames = set(tag.frames)
        return [s for s in self.sprites if s.frame in frames]

    def sprites_for_target(self, path: str) -> List[PackedSprite]:
        return sorted(
            (s for s in self.sprites if s.target_path == path),
            key=lambda s: s.frame,
        )


def _run_stages(ctx: ImportContext) -> None:
    document, settings, registry = ctx.document, ctx.settings, ctx.registry

    stage = Stage.CALCULATE_TARGETS
    try:
        calculate_targets(document, registry)

        stage = Stage.CALCULATE_PIVOTS
        process_meta_layers(document, registry)
        inherit_pivots(document, registry, settings)

        stage = Stage.CALCULATE_OFFSETS
        resolve_offsets(document, registry, settings)

        stage = Stage.COMPOSITE_FRAMES
        ctx.images = generate_frame_images(document, registry, settings.dense_packed)

        stage = Stage.PACK_ATLAS
        images = list(ctx.images)
        ctx.packing = pack_atlas([(img.width, img.height) for img in images], settings.border)
        ctx.atlas = build_atlas(images, ctx.packing)

        stage = Stage.NORMALIZE_PIVOTS
        ctx.sprites = normalize_sprites(images, ctx.packing, registry, settings)
    except Exception as e:
        logger.exception("Import of '%s' failed during %s", document.name, stage.value)
        raise ImportFailed(stage, f"{type(e).__name__}: {e}") from e


def import_document(document: Document, settings: Optional[ImportSettings] = None) -> ImportResult:
    """
    Import a document into an atlas, packed sprites and per-target rig data.

    Args:
        document: Parsed source document (not modified apart from each
            layer's resolved target path)
        settings: Import options; defaults when omitted

    Returns:
        ImportResult

    Raises:
        ImportFailed: on any unexpected error; the run's outputs are discarded
    """
    settings = settings or ImportSettings()
    registry = TargetRegistry(document, root_name=settings.base_name)
    ctx = ImportContext(document=document, settings=settings, registry=registry)

    logger.info(
        "Importing '%s' (%dx%d, %d layers, %d frames)",
        document.name, document.width, document.height,
        len(document.layers), len(document.frames),
    )
    _run_stages(ctx)
    logger.info(
        "Imported '%s': %d targets, %d sprites, atlas %dx%d",
        document.name, len(registry), len(ctx.sprites), ctx.packing.size, ctx.packing.size,
    )

    return ImportResult(
        document=document,
        settings=settings,
        atlas=ctx.atlas,
        atlas_size=ctx.packing.size,
        sprites=ctx.sprites,
        targets=dict(registry.targets),
    )


__all__ = ["ImportContext", "ImportFailed", "ImportResult", "Stage", "import_document"]
