"""Pre/post-processing and two-phase inference for promptable segmentation.

The encoder graph turns one image into a dense embedding; the decoder graph
turns that embedding plus point prompts into a mask and an IoU estimate.
This package owns everything around the two graphs: letterboxed resizing,
normalization, prompt coordinate transforms, decoder input assembly,
mask binarization and the single-slot embedding cache.
"""

from sam_onnx.config import ContextConfig, RuntimeConfig
from sam_onnx.context import (
    ContextState,
    SegmentationContext,
    create_context,
    destroy_context,
    free_segmentation_result,
    get_last_error,
    process_image,
    run_segmentation,
)
from sam_onnx.errors import (
    AllocationError,
    EngineError,
    InternalError,
    InvalidInputError,
    NoEmbeddingError,
    PreprocessError,
    SamOnnxError,
)
from sam_onnx.types import (
    Geometry,
    PromptPoint,
    PromptSet,
    RawImage,
    SegmentationResult,
)

__all__ = [
    "ContextConfig",
    "RuntimeConfig",
    "ContextState",
    "SegmentationContext",
    "create_context",
    "destroy_context",
    "free_segmentation_result",
    "get_last_error",
    "process_image",
    "run_segmentation",
    "AllocationError",
    "EngineError",
    "InternalError",
    "InvalidInputError",
    "NoEmbeddingError",
    "PreprocessError",
    "SamOnnxError",
    "Geometry",
    "PromptPoint",
    "PromptSet",
    "RawImage",
    "SegmentationResult",
]
