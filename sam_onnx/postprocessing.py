"""Mask postprocessing: decoder logits to a binary mask."""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from sam_onnx.errors import AllocationError, InternalError
from sam_onnx.types import DecoderOutputs

logger = logging.getLogger(__name__)


def binarize(
    mask_logits: np.ndarray, width: int, height: int, threshold: float = 0.0
) -> np.ndarray:
    """Threshold logits into a flat float32 mask of exactly 0.0 / 1.0.

    ``mask_logits`` must hold ``width * height`` values laid out row-major
    at the original image resolution.
    """

    flat = np.asarray(mask_logits).reshape(-1)
    expected = int(width) * int(height)
    if flat.size != expected:
        raise InternalError(
            f"Decoder mask has {flat.size} values, expected {width}x{height}={expected}."
        )
    try:
        return (flat > np.float32(threshold)).astype(np.float32)
    except MemoryError as exc:
        raise AllocationError("Failed to allocate result mask") from exc


def best_mask(outputs: DecoderOutputs, width: int, height: int) -> Tuple[np.ndarray, float]:
    """First mask and its IoU prediction from the decoder outputs.

    The decoder resizes its logits to ``orig_im_size`` itself, so the mask's
    trailing dims must already be (height, width).
    """

    masks = np.asarray(outputs.masks)
    logger.debug("Output mask dimensions: %s", list(masks.shape))
    if masks.ndim < 2 or tuple(masks.shape[-2:]) != (height, width):
        raise InternalError(
            f"Decoder mask shape {tuple(masks.shape)} does not end with ({height}, {width})."
        )
    iou = np.asarray(outputs.iou_predictions).reshape(-1)
    if iou.size == 0:
        raise InternalError("Decoder returned no IoU predictions.")
    first = masks.reshape(-1, height, width)[0]
    return first, float(iou[0])
