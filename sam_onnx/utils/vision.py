"""Numpy kernels for resampling and normalizing encoder inputs.

All arithmetic is float32 and follows the operation order of the exported
model's reference preprocessing so that the produced tensors match it.
"""

from typing import Sequence

import numpy as np

from sam_onnx.types import Geometry

_ONE = np.float32(1.0)
_UNIT = np.float32(255.0)


def source_grid(resized: int, scale: float, source: int):
    """Map destination indices back to source space.

    Returns the lower neighbour index, the upper neighbour index clamped to
    ``source - 1`` and the fractional weight of the upper neighbour.
    """

    src = np.arange(resized, dtype=np.float32) / np.float32(scale)
    lower = np.minimum(src.astype(np.int64), source - 1)
    upper = np.minimum(lower + 1, source - 1)
    weight = src - lower.astype(np.float32)
    return lower, upper, weight


def bilinear_resize(pixels: np.ndarray, geometry: Geometry) -> np.ndarray:
    """Resample HxWxC pixels to the resized size in ``geometry``.

    Sample positions are ``dst / scale`` with no half-pixel shift. Neighbours
    past the last row or column are clamped, never wrapped or extrapolated.

    Returns:
        Float32 array of shape (resized_height, resized_width, C).
    """

    height, width = pixels.shape[:2]
    x0, x1, wx = source_grid(geometry.resized_width, geometry.scale, width)
    y0, y1, wy = source_grid(geometry.resized_height, geometry.scale, height)

    rows0 = y0[:, None]
    rows1 = y1[:, None]
    p00 = pixels[rows0, x0[None, :]].astype(np.float32)
    p01 = pixels[rows0, x1[None, :]].astype(np.float32)
    p10 = pixels[rows1, x0[None, :]].astype(np.float32)
    p11 = pixels[rows1, x1[None, :]].astype(np.float32)

    wx = wx[None, :]
    wy = wy[:, None]
    w00 = ((_ONE - wx) * (_ONE - wy))[..., None]
    w01 = (wx * (_ONE - wy))[..., None]
    w10 = ((_ONE - wx) * wy)[..., None]
    w11 = (wx * wy)[..., None]
    return w00 * p00 + w01 * p01 + w10 * p10 + w11 * p11


def normalize_pixels(
    values: np.ndarray,
    mean: Sequence[float],
    std: Sequence[float],
    unit_roundtrip: bool = True,
) -> np.ndarray:
    """Per-channel ``(value - mean) / std`` on 0-255 scale HxWxC values.

    With ``unit_roundtrip`` the value is first divided by 255 and multiplied
    back, which only changes float32 rounding.
    """

    values = values.astype(np.float32, copy=False)
    if unit_roundtrip:
        values = values / _UNIT * _UNIT
    mean = np.asarray(mean, dtype=np.float32)
    std = np.asarray(std, dtype=np.float32)
    return (values - mean) / std
