"""Single-slot embedding cache.

Holds the embedding of the most recently processed image. Storing a new
embedding, or invalidating, always drops the previous one first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sam_onnx.errors import NoEmbeddingError
from sam_onnx.types import EmbeddingTensor, ShapeDescriptor

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    EMPTY = "empty"
    READY = "ready"


@dataclass
class CachedEmbedding:
    """Embedding plus the geometry it was computed for."""

    embedding: EmbeddingTensor
    model_width: int
    model_height: int
    image_width: int
    image_height: int

    @property
    def shape(self) -> ShapeDescriptor:
        return self.embedding.shape


class EmbeddingCache:
    def __init__(self) -> None:
        self._entry: Optional[CachedEmbedding] = None

    @property
    def state(self) -> CacheState:
        return CacheState.EMPTY if self._entry is None else CacheState.READY

    @property
    def is_ready(self) -> bool:
        return self._entry is not None

    def invalidate(self) -> None:
        if self._entry is not None:
            logger.debug("Dropping cached embedding %s", self._entry.shape)
        self._entry = None

    def store(self, entry: CachedEmbedding) -> None:
        self.invalidate()
        self._entry = entry

    def require(self) -> CachedEmbedding:
        """Return the resident entry or raise NoEmbeddingError."""

        if self._entry is None:
            raise NoEmbeddingError("No image embeddings; call process_image first.")
        return self._entry
