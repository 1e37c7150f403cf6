"""ONNX Runtime adapter running the encoder and decoder graphs."""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from sam_onnx.config import (
    DECODER_OUTPUT_NAMES,
    ENCODER_INPUT_NAME,
    ENCODER_OUTPUT_NAME,
    ContextConfig,
)
from sam_onnx.errors import EngineError
from sam_onnx.types import (
    DecoderInputs,
    DecoderOutputs,
    EmbeddingTensor,
    PreprocessedTensor,
    ShapeDescriptor,
)

logger = logging.getLogger(__name__)


class OnnxSamAdapter:
    """Thin wrapper around two ONNX Runtime inference sessions.

    Graphs are treated as black boxes with fixed input and output names.
    Every runtime failure is re-raised as EngineError carrying the engine's
    own message.
    """

    def __init__(self, config: ContextConfig) -> None:
        self.config = config
        self._loaded = False
        self._ort = None
        self._encoder = None
        self._decoder = None

    @property
    def loaded(self) -> bool:
        return self._loaded

    def _session_options(self):
        options = self._ort.SessionOptions()
        options.log_severity_level = self.config.runtime.log_severity_level
        options.logid = self.config.runtime.log_id
        if self.config.runtime.intra_op_num_threads:
            options.intra_op_num_threads = self.config.runtime.intra_op_num_threads
        return options

    def _create_session(self, path: str, options):
        return self._ort.InferenceSession(
            path, sess_options=options, providers=list(self.config.runtime.providers)
        )

    def load(self) -> None:
        """Create the encoder and decoder sessions."""

        if self._loaded:
            return
        try:
            import onnxruntime as ort
        except Exception as exc:  # pragma: no cover - depends on external libs
            raise EngineError("Failed to import onnxruntime", stage="load", diagnostic=str(exc)) from exc
        self._ort = ort

        options = self._session_options()
        logger.info("Creating encoder session from: %s", self.config.encoder_path)
        try:
            encoder = self._create_session(self.config.encoder_path, options)
        except Exception as exc:
            raise EngineError(
                "Error creating encoder session", stage="load", diagnostic=str(exc)
            ) from exc

        logger.info("Creating decoder session from: %s", self.config.decoder_path)
        try:
            decoder = self._create_session(self.config.decoder_path, options)
        except Exception as exc:
            raise EngineError(
                "Error creating decoder session", stage="load", diagnostic=str(exc)
            ) from exc

        self._encoder = encoder
        self._decoder = decoder
        self._loaded = True

    def release(self) -> None:
        """Drop both sessions. Safe to call more than once."""

        self._encoder = None
        self._decoder = None
        self._loaded = False

    def _require_loaded(self, stage: str) -> None:
        if not self._loaded:
            raise EngineError("Inference sessions are not loaded", stage=stage)

    def encode(self, tensor: PreprocessedTensor) -> EmbeddingTensor:
        """Run the encoder and copy out its embedding."""

        self._require_loaded("encode")
        logger.debug("Creating tensor '%s' with shape %s", ENCODER_INPUT_NAME, tensor.shape)
        logger.info("Running encoder...")
        try:
            outputs = self._encoder.run([ENCODER_OUTPUT_NAME], {ENCODER_INPUT_NAME: tensor.data})
        except Exception as exc:
            raise EngineError("Encoder inference failed", stage="encode", diagnostic=str(exc)) from exc

        if not outputs:
            raise EngineError("Encoder returned no outputs", stage="encode")
        data = np.array(outputs[0], dtype=np.float32, copy=True)
        shape = ShapeDescriptor.of(data)
        logger.info("Embedding dimensions: %s", shape)
        return EmbeddingTensor(data=data, shape=shape)

    def decode(self, inputs: DecoderInputs) -> DecoderOutputs:
        """Run the decoder on the six assembled inputs."""

        self._require_loaded("decode")
        feed = inputs.as_feed()
        for name, value in feed.items():
            logger.debug("Creating tensor '%s' with shape %s", name, list(value.shape))
        logger.info("Running decoder...")
        output_names: List[str] = list(DECODER_OUTPUT_NAMES)
        try:
            outputs = self._decoder.run(output_names, feed)
        except Exception as exc:
            raise EngineError("Decoder inference failed", stage="decode", diagnostic=str(exc)) from exc

        if len(outputs) != len(output_names):
            raise EngineError(
                f"Decoder returned {len(outputs)} outputs, expected {len(output_names)}",
                stage="decode",
            )
        masks, iou_predictions, low_res_masks = outputs
        return DecoderOutputs(
            masks=np.asarray(masks),
            iou_predictions=np.asarray(iou_predictions),
            low_res_masks=np.asarray(low_res_masks),
        )
