"""
Sprite rig import.

Turns a layered, frame-based drawing into a packed sprite atlas plus
per-frame rig data (pivots and parent-relative offsets) for 2D skeletal
animation.
"""

from .document import Document, DocumentError, load_document
from .importer import ImportFailed, ImportResult, import_document
from .rig_data import build_rig_data
from .settings import ImportSettings, PixelOrigin, SpriteAlignment

__all__ = [
    "Document",
    "DocumentError",
    "ImportFailed",
    "ImportResult",
    "ImportSettings",
    "PixelOrigin",
    "SpriteAlignment",
    "build_rig_data",
    "import_document",
    "load_document",
]
