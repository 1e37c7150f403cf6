"""Error kinds raised by the segmentation pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_INPUT = "InvalidInput"
    ALLOCATION_FAILURE = "AllocationFailure"
    PREPROCESS_ERROR = "PreprocessError"
    ENGINE_ERROR = "EngineError"
    NO_EMBEDDING = "NoEmbeddingError"
    INTERNAL_ERROR = "InternalError"


class SamOnnxError(RuntimeError):
    """Base class for every failure reported by the pipeline."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR


class InvalidInputError(SamOnnxError, ValueError):
    """Missing or malformed image, prompts, sizes or context."""

    kind = ErrorKind.INVALID_INPUT


class AllocationError(SamOnnxError, MemoryError):
    """A working buffer could not be allocated."""

    kind = ErrorKind.ALLOCATION_FAILURE


class PreprocessError(SamOnnxError):
    """The image could not be turned into an encoder tensor."""

    kind = ErrorKind.PREPROCESS_ERROR


class EngineError(SamOnnxError):
    """The inference engine failed to load or run a graph.

    Attributes:
        stage: Which engine call failed ("load", "encode" or "decode").
        diagnostic: Message supplied by the engine, if any.
    """

    kind = ErrorKind.ENGINE_ERROR

    def __init__(self, message: str, stage: str = "", diagnostic: Optional[str] = None) -> None:
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message)
        self.stage = stage
        self.diagnostic = diagnostic


class NoEmbeddingError(SamOnnxError):
    """Segmentation was requested before an image was processed."""

    kind = ErrorKind.NO_EMBEDDING


class InternalError(SamOnnxError):
    """Two components disagreed on a contract that should always hold."""

    kind = ErrorKind.INTERNAL_ERROR
