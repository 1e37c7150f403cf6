"""Configuration dataclasses and fixed model constants for the SAM ONNX bridge."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from sam_onnx.errors import InvalidInputError

# Long side of the square encoder input. Fixed by the encoder/decoder pairing.
TARGET_LENGTH = 1024
# Side of the decoder's low-resolution mask prompt.
MASK_INPUT_SIZE = 256

PIXEL_MEAN: Tuple[float, float, float] = (123.675, 116.28, 103.53)
PIXEL_STD: Tuple[float, float, float] = (58.395, 57.12, 57.375)

FOREGROUND_LABEL = 1
BACKGROUND_LABEL = 0
PADDING_POINT_LABEL = -1

ENCODER_INPUT_NAME = "images"
ENCODER_OUTPUT_NAME = "image_embeddings"
DECODER_INPUT_NAMES: Tuple[str, ...] = (
    "image_embeddings",
    "point_coords",
    "point_labels",
    "mask_input",
    "has_mask_input",
    "orig_im_size",
)
DECODER_OUTPUT_NAMES: Tuple[str, ...] = ("masks", "iou_predictions", "low_res_masks")

# Provider name, or (name, provider options) as accepted by InferenceSession.
ProviderSpec = Union[str, Tuple[str, Dict[str, Any]]]


@dataclass
class RuntimeConfig:
    """Settings for the ONNX Runtime sessions.

    Attributes:
        providers: Execution providers in priority order, each a name or a
            (name, options) pair. Unknown names are rejected by ONNX Runtime
            when the sessions are created.
        log_severity_level: ONNX Runtime severity (0 verbose .. 4 fatal).
        log_id: Identifier attached to engine log lines.
        intra_op_num_threads: Thread count for a single op, 0 lets the
            engine decide.
    """

    providers: List[ProviderSpec] = field(default_factory=lambda: ["CPUExecutionProvider"])
    log_severity_level: int = 2
    log_id: str = "mobilesam"
    intra_op_num_threads: int = 0


@dataclass
class ContextConfig:
    """Top-level configuration for a segmentation context.

    Attributes:
        encoder_path: Path to the image encoder ONNX graph.
        decoder_path: Path to the prompt/mask decoder ONNX graph.
        runtime: ONNX Runtime session settings.
        mask_threshold: Logit threshold used to binarize decoder masks.
        preserve_unit_roundtrip: Keep the divide-by-255 / multiply-by-255
            step before normalization so tensors match the reference
            pipeline bit for bit.
    """

    encoder_path: str = "models/mobile_sam_encoder.onnx"
    decoder_path: str = "models/mobile_sam_decoder.onnx"
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    mask_threshold: float = 0.0
    preserve_unit_roundtrip: bool = True

    def validate(self) -> None:
        """Reject configurations that cannot produce a working context."""

        if not self.encoder_path:
            raise InvalidInputError("encoder_path must not be empty.")
        if not self.decoder_path:
            raise InvalidInputError("decoder_path must not be empty.")
        if not self.runtime.providers:
            raise InvalidInputError("At least one execution provider is required.")
        for spec in self.runtime.providers:
            _check_provider(spec)
        if not 0 <= self.runtime.log_severity_level <= 4:
            raise InvalidInputError("log_severity_level must be within [0, 4].")
        if self.runtime.intra_op_num_threads < 0:
            raise InvalidInputError("intra_op_num_threads must be >= 0.")


def _check_provider(spec) -> None:
    if isinstance(spec, str):
        name = spec
    elif isinstance(spec, tuple) and len(spec) == 2 and isinstance(spec[1], dict):
        name = spec[0]
    else:
        raise InvalidInputError(
            f"Execution provider must be a name or a (name, options) pair, got {spec!r}."
        )
    if not isinstance(name, str) or not name:
        raise InvalidInputError(f"Execution provider name must be a non-empty string, got {name!r}.")
