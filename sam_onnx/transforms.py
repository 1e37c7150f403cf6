"""Prompt coordinate transforms and decoder input assembly."""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from sam_onnx.config import (
    BACKGROUND_LABEL,
    FOREGROUND_LABEL,
    MASK_INPUT_SIZE,
    PADDING_POINT_LABEL,
    TARGET_LENGTH,
)
from sam_onnx.errors import InternalError, InvalidInputError
from sam_onnx.geometry import compute_geometry
from sam_onnx.types import DecoderInputs, EmbeddingTensor, Geometry, PromptSet

logger = logging.getLogger(__name__)

_VALID_LABELS = {FOREGROUND_LABEL, BACKGROUND_LABEL}


def transform_points(
    coords: np.ndarray, orig_w: int, orig_h: int, target_length: int = TARGET_LENGTH
) -> Tuple[np.ndarray, Geometry]:
    """Map (N, 2) original-pixel (x, y) points into resized, unpadded space.

    Each axis is scaled by ``resized / original`` for that axis. No pad offset
    is added: the decoder works in the resized frame, not the padded canvas.
    """

    geometry = compute_geometry(orig_h=orig_h, orig_w=orig_w, target_length=target_length)
    coords = np.array(coords, dtype=np.float32).reshape(-1, 2)
    ratio_x = np.float32(geometry.resized_width) / np.float32(orig_w)
    ratio_y = np.float32(geometry.resized_height) / np.float32(orig_h)
    coords[:, 0] = coords[:, 0] * ratio_x
    coords[:, 1] = coords[:, 1] * ratio_y

    logger.debug(
        "Transformed coordinates with scale %.3f (%dx%d -> %dx%d)",
        geometry.scale,
        orig_w,
        orig_h,
        geometry.resized_width,
        geometry.resized_height,
    )
    return coords, geometry


def _validate_prompts(prompts: PromptSet) -> None:
    if prompts is None or len(prompts) == 0:
        raise InvalidInputError("At least one prompt point is required.")
    for point in prompts:
        if not (np.isfinite(point.x) and np.isfinite(point.y)):
            raise InvalidInputError(f"Prompt point ({point.x}, {point.y}) is not finite.")
        if point.label not in _VALID_LABELS:
            raise InvalidInputError(
                f"Prompt label must be {FOREGROUND_LABEL} or {BACKGROUND_LABEL}, got {point.label}."
            )


def assemble_decoder_inputs(
    embedding: EmbeddingTensor,
    prompts: PromptSet,
    orig_w: int,
    orig_h: int,
    target_length: int = TARGET_LENGTH,
    mask_input_size: int = MASK_INPUT_SIZE,
) -> DecoderInputs:
    """Build the six decoder inputs for one prompt set.

    A padding point at (0, 0) with label -1 is always appended. The mask
    prompt is an all-zero tensor and ``has_mask_input`` is 0.
    """

    _validate_prompts(prompts)
    if embedding.shape.rank != 4:
        raise InternalError(f"Cached embedding must be 4-D, got shape {embedding.shape}.")
    if embedding.data.size != embedding.shape.numel:
        raise InternalError(
            f"Cached embedding holds {embedding.data.size} values, shape {embedding.shape} "
            f"needs {embedding.shape.numel}."
        )

    raw = [(point.x, point.y) for point in prompts]
    raw.append((0.0, 0.0))
    coords, _ = transform_points(np.asarray(raw, dtype=np.float32), orig_w, orig_h, target_length)

    labels = [float(point.label) for point in prompts]
    labels.append(float(PADDING_POINT_LABEL))
    total_points = len(labels)

    return DecoderInputs(
        image_embeddings=embedding.data.reshape(embedding.shape.dims).astype(np.float32, copy=False),
        point_coords=coords.reshape(1, total_points, 2),
        point_labels=np.asarray(labels, dtype=np.float32).reshape(1, total_points),
        mask_input=np.zeros((1, 1, mask_input_size, mask_input_size), dtype=np.float32),
        has_mask_input=np.zeros((1,), dtype=np.float32),
        orig_im_size=np.asarray([orig_h, orig_w], dtype=np.float32),
    )
