"""Resize geometry shared by image preprocessing and prompt transforms.

Both code paths must derive the scale and resized size from the same
arithmetic, otherwise prompt points land in the wrong place on the
embedding with no visible error. Everything here is computed in float32
to match the exported model's reference preprocessing.
"""

from __future__ import annotations

import logging
from numbers import Integral
from typing import Tuple

import numpy as np

from sam_onnx.errors import InvalidInputError
from sam_onnx.types import Geometry

logger = logging.getLogger(__name__)

_HALF = np.float32(0.5)


def _require_positive(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}.")
    if value <= 0:
        raise InvalidInputError(f"{name} must be positive, got {value}.")
    return int(value)


def compute_geometry(orig_h: int, orig_w: int, target_length: int) -> Geometry:
    """Scale the longest side of an (orig_h, orig_w) image to target_length.

    Resized sizes are rounded half-up.
    """

    orig_h = _require_positive("orig_h", orig_h)
    orig_w = _require_positive("orig_w", orig_w)
    target_length = _require_positive("target_length", target_length)

    scale = np.float32(target_length) / np.float32(max(orig_h, orig_w))
    resized_h = int(np.float32(orig_h) * scale + _HALF)
    resized_w = int(np.float32(orig_w) * scale + _HALF)

    logger.debug(
        "Resizing from %dx%d to %dx%d (scale: %.3f)",
        orig_w,
        orig_h,
        resized_w,
        resized_h,
        scale,
    )
    return Geometry(scale=float(scale), resized_width=resized_w, resized_height=resized_h)


def pad_offsets(geometry: Geometry, target_length: int) -> Tuple[int, int]:
    """Top-left corner of the resized image inside the square canvas."""

    offset_x = (target_length - geometry.resized_width) // 2
    offset_y = (target_length - geometry.resized_height) // 2
    return offset_x, offset_y
