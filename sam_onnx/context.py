"""Segmentation context: engine handles, embedding cache and error state.

Flow:
    1) ``create_context`` loads the encoder and decoder graphs.
    2) ``process_image`` preprocesses one image, runs the encoder and caches
       the embedding, replacing whatever was cached before.
    3) ``run_segmentation`` may be called any number of times with
       different prompts; each call reuses the cached embedding and only
       runs the decoder.
    4) ``destroy`` releases the cache and both sessions.

A context is not thread-safe. Use one context per worker, or serialize
access with an external lock.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Iterable, Optional, Union

import numpy as np

from sam_onnx.adapters.onnx_adapter import OnnxSamAdapter
from sam_onnx.cache import CachedEmbedding, EmbeddingCache
from sam_onnx.config import MASK_INPUT_SIZE, TARGET_LENGTH, ContextConfig
from sam_onnx.errors import InternalError, InvalidInputError, SamOnnxError
from sam_onnx.postprocessing import best_mask, binarize
from sam_onnx.preprocessing import ImagePreprocessor
from sam_onnx.transforms import assemble_decoder_inputs
from sam_onnx.types import EmbeddingTensor, PromptSet, RawImage, SegmentationResult

logger = logging.getLogger(__name__)

INVALID_CONTEXT = "Invalid context"


class ContextState(str, Enum):
    CREATED = "created"
    IMAGE_PROCESSED = "image_processed"
    SEGMENTATION_READY = "segmentation_ready"
    DESTROYED = "destroyed"


class SegmentationContext:
    """Two-phase promptable segmentation over a pair of ONNX graphs.

    Args:
        config: Model paths and runtime settings.
        engine: Object exposing ``load``, ``encode``, ``decode`` and
            ``release``. Defaults to an OnnxSamAdapter built from ``config``.
    """

    def __init__(self, config: ContextConfig, engine=None) -> None:
        config.validate()
        self.config = config
        self.engine = engine if engine is not None else OnnxSamAdapter(config)
        self.preprocessor = ImagePreprocessor(
            target_length=TARGET_LENGTH,
            unit_roundtrip=config.preserve_unit_roundtrip,
        )
        self.cache = EmbeddingCache()
        self._state = ContextState.CREATED
        self._last_error = ""

        logger.info("Creating ONNX context...")
        self.engine.load()
        logger.info("ONNX context created successfully")

    def __enter__(self) -> "SegmentationContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.destroy()

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def destroyed(self) -> bool:
        return self._state is ContextState.DESTROYED

    @property
    def last_error(self) -> str:
        return self._last_error

    @property
    def model_width(self) -> Optional[int]:
        return self.cache.require().model_width if self.cache.is_ready else None

    @property
    def model_height(self) -> Optional[int]:
        return self.cache.require().model_height if self.cache.is_ready else None

    def _record(self, error: SamOnnxError) -> None:
        self._last_error = str(error)
        logger.error("ONNX Error (%s): %s", error.kind.value, error)

    def _ensure_alive(self) -> None:
        if self.destroyed:
            raise InvalidInputError("Context has been destroyed.")

    @staticmethod
    def _coerce_image(image) -> RawImage:
        if image is None:
            raise InvalidInputError("Invalid parameters: image is missing.")
        if isinstance(image, RawImage):
            return image
        if isinstance(image, np.ndarray):
            return RawImage.from_array(image)
        return RawImage.from_pil(image)

    def process_image(self, image: Union[RawImage, np.ndarray]) -> None:
        """Compute and cache the embedding for ``image``.

        ``image`` may be a RawImage, an HxWx3 uint8 array or a PIL image.

        The previous embedding is dropped before any work starts, so a
        failure leaves the cache empty rather than stale.
        """

        try:
            self._ensure_alive()
            self.cache.invalidate()
            self._state = ContextState.CREATED

            raw = self._coerce_image(image)
            tensor = self.preprocessor(raw)
            embedding = self.engine.encode(tensor)
            if not isinstance(embedding, EmbeddingTensor) or embedding.shape.rank != 4:
                raise InternalError("Encoder must return a 4-D embedding tensor.")
        except SamOnnxError as exc:
            self._record(exc)
            raise

        self.cache.store(
            CachedEmbedding(
                embedding=embedding,
                model_width=tensor.shape[3],
                model_height=tensor.shape[2],
                image_width=raw.width,
                image_height=raw.height,
            )
        )
        self._state = ContextState.IMAGE_PROCESSED
        logger.info(
            "Image processing complete. Embedding size: %d", embedding.shape.numel
        )

    def run_segmentation(
        self,
        points: Union[PromptSet, Iterable],
        orig_width: Optional[int] = None,
        orig_height: Optional[int] = None,
    ) -> SegmentationResult:
        """Segment the cached image from prompt points.

        Args:
            points: PromptSet, or iterable of (x, y) / (x, y, label) in
                original-image pixels.
            orig_width: Mask width; defaults to the processed image width.
            orig_height: Mask height; defaults to the processed image height.

        Raises:
            NoEmbeddingError: No image has been processed successfully.
        """

        try:
            self._ensure_alive()
            entry = self.cache.require()
            prompts = points if isinstance(points, PromptSet) else PromptSet.from_points(points)
            width = entry.image_width if orig_width is None else orig_width
            height = entry.image_height if orig_height is None else orig_height

            logger.info("Running segmentation with %d points...", len(prompts))
            inputs = assemble_decoder_inputs(
                entry.embedding,
                prompts,
                width,
                height,
                target_length=TARGET_LENGTH,
                mask_input_size=MASK_INPUT_SIZE,
            )
            outputs = self.engine.decode(inputs)
            logits, score = best_mask(outputs, width, height)
            mask = binarize(logits, width, height, threshold=self.config.mask_threshold)
        except SamOnnxError as exc:
            self._record(exc)
            raise

        self._state = ContextState.SEGMENTATION_READY
        logger.info("Segmentation complete. IoU score: %.3f", score)
        return SegmentationResult(
            mask=mask.reshape(height, width), width=width, height=height, score=score
        )

    def destroy(self) -> None:
        """Release the cached embedding and both sessions."""

        if self.destroyed:
            return
        self.cache.invalidate()
        self.engine.release()
        self._state = ContextState.DESTROYED
        logger.info("ONNX context destroyed")


def create_context(
    encoder_path: str,
    decoder_path: str,
    config: Optional[ContextConfig] = None,
    engine=None,
) -> SegmentationContext:
    """Load both graphs and return a ready context."""

    config = replace(config or ContextConfig(), encoder_path=encoder_path, decoder_path=decoder_path)
    return SegmentationContext(config, engine=engine)


def destroy_context(ctx: Optional[SegmentationContext]) -> None:
    if ctx is None:
        return
    ctx.destroy()


def process_image(ctx: Optional[SegmentationContext], image) -> None:
    if ctx is None:
        raise InvalidInputError(INVALID_CONTEXT)
    ctx.process_image(image)


def run_segmentation(
    ctx: Optional[SegmentationContext],
    points,
    orig_width: Optional[int] = None,
    orig_height: Optional[int] = None,
) -> SegmentationResult:
    if ctx is None:
        raise InvalidInputError(INVALID_CONTEXT)
    return ctx.run_segmentation(points, orig_width, orig_height)


def free_segmentation_result(result: Optional[SegmentationResult]) -> None:
    if result is None:
        return
    result.release()


def get_last_error(ctx: Optional[SegmentationContext]) -> str:
    return ctx.last_error if ctx is not None else INVALID_CONTEXT
