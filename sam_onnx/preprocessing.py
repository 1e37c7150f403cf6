"""Image preprocessing: resize, letterbox and normalize into an NCHW tensor."""

from __future__ import annotations

import logging

import numpy as np

from sam_onnx.config import PIXEL_MEAN, PIXEL_STD, TARGET_LENGTH
from sam_onnx.errors import InvalidInputError, PreprocessError
from sam_onnx.geometry import compute_geometry, pad_offsets
from sam_onnx.types import PreprocessedTensor, RawImage
from sam_onnx.utils.vision import bilinear_resize, normalize_pixels

logger = logging.getLogger(__name__)


class ImagePreprocessor:
    """Turns a RawImage into the encoder's [1, 3, T, T] input.

    The resized image is centred on a zero canvas. Only the resized region
    is normalized; pad cells keep the canvas value 0.0, the normalized value
    of the mean colour, not (0 - mean) / std.
    """

    def __init__(
        self,
        target_length: int = TARGET_LENGTH,
        unit_roundtrip: bool = True,
    ) -> None:
        self.target_length = target_length
        self.unit_roundtrip = unit_roundtrip
        self.pixel_mean = PIXEL_MEAN
        self.pixel_std = PIXEL_STD

    def __call__(self, image: RawImage) -> PreprocessedTensor:
        return self.preprocess(image)

    def preprocess(self, image: RawImage) -> PreprocessedTensor:
        if image is None or getattr(image, "pixels", None) is None:
            raise PreprocessError("Image or its pixel buffer is missing.")
        if not isinstance(image.pixels, np.ndarray) or image.pixels.ndim != 3:
            raise PreprocessError(
                f"Expected an HxWx3 pixel array, got shape {np.shape(image.pixels)}."
            )
        if image.channels != 3:
            raise PreprocessError(f"Expected 3 interleaved channels, got {image.channels}.")

        try:
            geometry = compute_geometry(image.height, image.width, self.target_length)
        except InvalidInputError as exc:
            raise PreprocessError(str(exc)) from exc

        target = self.target_length
        try:
            canvas = np.zeros((1, 3, target, target), dtype=np.float32)
            resized = bilinear_resize(image.pixels, geometry)
        except MemoryError as exc:
            raise PreprocessError("Failed to allocate memory for preprocessed image") from exc

        normalized = normalize_pixels(
            resized, self.pixel_mean, self.pixel_std, unit_roundtrip=self.unit_roundtrip
        )
        offset_x, offset_y = pad_offsets(geometry, target)
        canvas[
            0,
            :,
            offset_y : offset_y + geometry.resized_height,
            offset_x : offset_x + geometry.resized_width,
        ] = np.transpose(normalized, (2, 0, 1))

        tensor = PreprocessedTensor(data=canvas, geometry=geometry)
        logger.debug("Preprocessing complete. Output tensor shape: %s", tensor.shape)
        return tensor


def preprocess(image: RawImage, target_length: int = TARGET_LENGTH) -> PreprocessedTensor:
    """Functional shortcut around ImagePreprocessor with default settings."""

    return ImagePreprocessor(target_length=target_length)(image)
