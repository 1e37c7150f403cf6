"""Shared type definitions for the SAM ONNX bridge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Sequence, Tuple

import numpy as np

from sam_onnx.config import DECODER_INPUT_NAMES, FOREGROUND_LABEL
from sam_onnx.errors import InvalidInputError


@dataclass(frozen=True)
class ShapeDescriptor:
    """Tensor dimensions as reported by whoever produced the tensor."""

    dims: Tuple[int, ...]

    @classmethod
    def of(cls, array: np.ndarray) -> "ShapeDescriptor":
        return cls(tuple(int(dim) for dim in array.shape))

    @property
    def rank(self) -> int:
        return len(self.dims)

    @property
    def numel(self) -> int:
        total = 1
        for dim in self.dims:
            total *= dim
        return total

    def __iter__(self) -> Iterator[int]:
        return iter(self.dims)

    def __getitem__(self, index: int) -> int:
        return self.dims[index]

    def __str__(self) -> str:
        return "[" + ", ".join(str(dim) for dim in self.dims) + "]"


@dataclass(frozen=True)
class RawImage:
    """Read-only view over interleaved 8-bit RGB pixels (H, W, 3).

    The caller keeps ownership of the underlying buffer; the pipeline only
    reads through a non-writeable view.
    """

    pixels: np.ndarray

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RawImage":
        """Wrap an HxWx3 uint8 array without copying it."""

        if array is None:
            raise InvalidInputError("Image pixel buffer is missing.")
        array = np.asarray(array)
        if array.ndim != 3 or array.shape[-1] != 3:
            raise InvalidInputError(
                f"Expected an HxWx3 image, got shape {tuple(array.shape)}."
            )
        if array.dtype != np.uint8:
            raise InvalidInputError(f"Expected uint8 pixels, got {array.dtype}.")
        if array.shape[0] <= 0 or array.shape[1] <= 0:
            raise InvalidInputError("Image must have positive width and height.")
        view = array.view()
        view.flags.writeable = False
        return cls(pixels=view)

    @classmethod
    def from_pil(cls, image) -> "RawImage":
        """Wrap a Pillow image, converting it to RGB first."""

        try:
            from PIL import Image
        except ImportError as exc:
            raise InvalidInputError(
                f"Unsupported image type {type(image).__name__}; Pillow is not installed."
            ) from exc

        if not isinstance(image, Image.Image):
            raise InvalidInputError("Expected a PIL.Image.Image instance.")
        return cls.from_array(np.asarray(image.convert("RGB"), dtype=np.uint8))

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return int(self.pixels.shape[2])


@dataclass(frozen=True)
class Geometry:
    """Resize geometry shared by the image and prompt code paths."""

    scale: float
    resized_width: int
    resized_height: int


@dataclass
class PreprocessedTensor:
    """Normalized NCHW float32 encoder input of shape [1, 3, T, T]."""

    data: np.ndarray
    geometry: Geometry

    @property
    def shape(self) -> ShapeDescriptor:
        return ShapeDescriptor.of(self.data)


@dataclass
class EmbeddingTensor:
    """Dense image embedding plus the 4-D shape the encoder reported."""

    data: np.ndarray
    shape: ShapeDescriptor


@dataclass(frozen=True)
class PromptPoint:
    """A single click in original-image pixel space."""

    x: float
    y: float
    label: int = FOREGROUND_LABEL


@dataclass(frozen=True)
class PromptSet:
    """Ordered prompt points; padding is added later during assembly."""

    points: Tuple[PromptPoint, ...]

    @classmethod
    def from_points(cls, points: Iterable) -> "PromptSet":
        """Accept PromptPoint instances, (x, y) or (x, y, label) tuples."""

        if points is None:
            raise InvalidInputError("Prompt points are missing.")
        try:
            items = list(points)
        except TypeError as exc:
            raise InvalidInputError(f"Prompt points must be iterable, got {points!r}.") from exc
        parsed = []
        for point in items:
            if isinstance(point, PromptPoint):
                parsed.append(point)
                continue
            try:
                values = tuple(point)
            except TypeError as exc:
                raise InvalidInputError(f"Cannot interpret prompt point {point!r}.") from exc
            if len(values) not in (2, 3):
                raise InvalidInputError(f"Cannot interpret prompt point {point!r}.")
            parsed.append(_make_point(*values))
        return cls(points=tuple(parsed))

    @classmethod
    def from_arrays(
        cls, coords: np.ndarray, labels: Optional[Sequence[int]] = None
    ) -> "PromptSet":
        """Build from an (N, 2) coordinate array and optional labels."""

        try:
            coords = np.asarray(coords, dtype=np.float32).reshape(-1, 2)
        except (TypeError, ValueError) as exc:
            raise InvalidInputError(f"Cannot interpret prompt coordinates: {exc}") from exc
        if labels is None:
            labels = [FOREGROUND_LABEL] * len(coords)
        if len(labels) != len(coords):
            raise InvalidInputError("Point labels must match the number of coordinates.")
        return cls(points=tuple(_make_point(x, y, label) for (x, y), label in zip(coords, labels)))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PromptPoint]:
        return iter(self.points)


def _make_point(x, y, label=FOREGROUND_LABEL) -> PromptPoint:
    try:
        return PromptPoint(float(x), float(y), int(label))
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Cannot interpret prompt point {(x, y, label)!r}: {exc}") from exc


@dataclass
class DecoderInputs:
    """The six named decoder inputs, already shaped for the graph."""

    image_embeddings: np.ndarray
    point_coords: np.ndarray
    point_labels: np.ndarray
    mask_input: np.ndarray
    has_mask_input: np.ndarray
    orig_im_size: np.ndarray

    def as_feed(self) -> Dict[str, np.ndarray]:
        return {name: getattr(self, name) for name in DECODER_INPUT_NAMES}


@dataclass
class DecoderOutputs:
    """Raw decoder outputs."""

    masks: np.ndarray
    iou_predictions: np.ndarray
    low_res_masks: np.ndarray


@dataclass
class SegmentationResult:
    """Binary mask at original resolution plus the decoder's IoU estimate.

    Owned by the caller. ``release`` drops the mask buffer and may be
    called any number of times.
    """

    mask: Optional[np.ndarray]
    width: int
    height: int
    score: float

    @property
    def released(self) -> bool:
        return self.mask is None

    def release(self) -> None:
        if self.mask is None:
            return
        self.mask = None
        self.width = 0
        self.height = 0
        self.score = 0.0

    def to_uint8(self) -> np.ndarray:
        """Return the mask as a 0/255 uint8 image of shape (H, W)."""

        if self.mask is None:
            raise InvalidInputError("Segmentation result has already been released.")
        return (self.mask.reshape(self.height, self.width) > 0).astype("uint8") * 255
