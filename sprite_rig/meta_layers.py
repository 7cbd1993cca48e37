"""
Meta layer processors.

Meta layers carry an annotation name (e.g. "@pivot") instead of artwork. The
table below maps each supported annotation to the function that handles it;
annotations without an entry are reported and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

from .document import Document, Layer, LayerKind
from .pivots import assign_layer_pivots
from .targets import TargetRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetaLayerProcessor:
    action: str
    execution_order: int
    process: Callable[[Document, TargetRegistry, Layer], object]


def _process_pivot(document: Document, registry: TargetRegistry, layer: Layer) -> object:
    return assign_layer_pivots(document, registry, layer)


META_LAYER_PROCESSORS: Dict[str, MetaLayerProcessor] = {
    "pivot": MetaLayerProcessor(action="pivot", execution_order=0, process=_process_pivot),
}


def process_meta_layers(document: Document, registry: TargetRegistry) -> List[Layer]:
    """
    Run the processor of every meta layer, ordered by execution order and
    then by descending layer index.

    Returns:
        The meta layers that were processed
    """
    meta_layers = [layer for layer in document.layers if layer.kind == LayerKind.META]
    runnable = []
    for layer in meta_layers:
        processor = META_LAYER_PROCESSORS.get(layer.action or "")
        if processor is None:
            logger.warning("No processor for meta layer '%s' (action %r)", layer.name, layer.action)
            continue
        runnable.append((processor, layer))

    runnable.sort(key=lambda item: (item[0].execution_order, -item[1].index))
    for processor, layer in runnable:
        processor.process(document, registry, layer)

    return [layer for _, layer in runnable]


__all__ = ["META_LAYER_PROCESSORS", "MetaLayerProcessor", "process_meta_layers"]
