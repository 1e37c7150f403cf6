import unittest

import numpy as np

from sam_onnx.adapters.onnx_adapter import OnnxSamAdapter
from sam_onnx.config import DECODER_INPUT_NAMES, DECODER_OUTPUT_NAMES, ContextConfig, RuntimeConfig
from sam_onnx.errors import EngineError
from sam_onnx.geometry import compute_geometry
from sam_onnx.types import DecoderInputs, PreprocessedTensor


class _FakeSession:
    def __init__(self, outputs=None, error: Exception = None) -> None:
        self.outputs = outputs
        self.error = error
        self.calls = []

    def run(self, output_names, feed):
        self.calls.append((list(output_names), dict(feed)))
        if self.error is not None:
            raise self.error
        return self.outputs


def _tensor() -> PreprocessedTensor:
    return PreprocessedTensor(
        data=np.zeros((1, 3, 4, 4), dtype=np.float32),
        geometry=compute_geometry(4, 4, 4),
    )


def _decoder_inputs() -> DecoderInputs:
    return DecoderInputs(
        image_embeddings=np.zeros((1, 2, 2, 2), np.float32),
        point_coords=np.zeros((1, 2, 2), np.float32),
        point_labels=np.array([[1.0, -1.0]], np.float32),
        mask_input=np.zeros((1, 1, 256, 256), np.float32),
        has_mask_input=np.zeros((1,), np.float32),
        orig_im_size=np.array([3.0, 4.0], np.float32),
    )


class OnnxSamAdapterTest(unittest.TestCase):
    def _make_adapter(self, encoder=None, decoder=None) -> OnnxSamAdapter:
        adapter = OnnxSamAdapter(ContextConfig())
        adapter._encoder = encoder
        adapter._decoder = decoder
        adapter._loaded = True
        return adapter

    def test_encode_copies_embedding_and_reads_shape(self) -> None:
        output = np.ones((1, 8, 4, 4), dtype=np.float32)
        session = _FakeSession(outputs=[output])
        adapter = self._make_adapter(encoder=session)

        embedding = adapter.encode(_tensor())

        self.assertEqual(tuple(embedding.shape), (1, 8, 4, 4))
        self.assertTrue(np.array_equal(embedding.data, output))
        self.assertIsNot(embedding.data, output)
        names, feed = session.calls[0]
        self.assertEqual(names, ["image_embeddings"])
        self.assertEqual(list(feed.keys()), ["images"])

    def test_encode_failure_carries_engine_message(self) -> None:
        adapter = self._make_adapter(encoder=_FakeSession(error=RuntimeError("bad input shape")))

        with self.assertRaises(EngineError) as ctx:
            adapter.encode(_tensor())

        self.assertEqual(ctx.exception.stage, "encode")
        self.assertEqual(ctx.exception.diagnostic, "bad input shape")
        self.assertIn("Encoder inference failed", str(ctx.exception))

    def test_decode_uses_wire_names(self) -> None:
        outputs = [np.zeros((1, 1, 3, 4)), np.array([[0.7]]), np.zeros((1, 1, 256, 256))]
        session = _FakeSession(outputs=outputs)
        adapter = self._make_adapter(decoder=session)

        result = adapter.decode(_decoder_inputs())

        names, feed = session.calls[0]
        self.assertEqual(tuple(names), DECODER_OUTPUT_NAMES)
        self.assertEqual(tuple(feed.keys()), DECODER_INPUT_NAMES)
        self.assertEqual(result.masks.shape, (1, 1, 3, 4))
        self.assertAlmostEqual(float(result.iou_predictions[0, 0]), 0.7)

    def test_decode_failures(self) -> None:
        adapter = self._make_adapter(decoder=_FakeSession(error=RuntimeError("boom")))
        with self.assertRaises(EngineError) as ctx:
            adapter.decode(_decoder_inputs())
        self.assertEqual(ctx.exception.stage, "decode")

        adapter = self._make_adapter(decoder=_FakeSession(outputs=[np.zeros(1)]))
        with self.assertRaises(EngineError):
            adapter.decode(_decoder_inputs())

    def test_requires_loaded_sessions(self) -> None:
        adapter = OnnxSamAdapter(ContextConfig())

        with self.assertRaises(EngineError):
            adapter.encode(_tensor())
        with self.assertRaises(EngineError):
            adapter.decode(_decoder_inputs())

    def test_load_reports_session_errors(self) -> None:
        adapter = OnnxSamAdapter(ContextConfig(encoder_path="enc.onnx", decoder_path="dec.onnx"))
        created = []

        def _create_session(path, options):
            if path == "dec.onnx":
                raise RuntimeError("NO_SUCHFILE")
            created.append(path)
            return _FakeSession()

        adapter._create_session = _create_session

        with self.assertRaises(EngineError) as ctx:
            adapter.load()

        self.assertEqual(created, ["enc.onnx"])
        self.assertEqual(ctx.exception.stage, "load")
        self.assertIn("decoder", str(ctx.exception))
        self.assertFalse(adapter.loaded)

    def test_session_receives_provider_options(self) -> None:
        providers = [("CUDAExecutionProvider", {"device_id": 1}), "CPUExecutionProvider"]
        config = ContextConfig(runtime=RuntimeConfig(providers=providers))
        adapter = OnnxSamAdapter(config)
        received = {}

        class _FakeOrt:
            @staticmethod
            def InferenceSession(path, sess_options=None, providers=None):
                received.update(path=path, options=sess_options, providers=providers)
                return _FakeSession()

        adapter._ort = _FakeOrt
        adapter._create_session("enc.onnx", "opts")

        self.assertEqual(received["path"], "enc.onnx")
        self.assertEqual(received["options"], "opts")
        self.assertEqual(received["providers"], providers)

    def test_unknown_provider_fails_at_load(self) -> None:
        config = ContextConfig(runtime=RuntimeConfig(providers=["WarpDriveExecutionProvider"]))
        adapter = OnnxSamAdapter(config)

        def _create_session(path, options):
            raise ValueError("Unknown Provider Type: WarpDriveExecutionProvider")

        adapter._create_session = _create_session

        with self.assertRaises(EngineError) as ctx:
            adapter.load()

        self.assertEqual(ctx.exception.stage, "load")
        self.assertIn("WarpDriveExecutionProvider", str(ctx.exception))

    def test_release_drops_sessions(self) -> None:
        adapter = self._make_adapter(encoder=_FakeSession(), decoder=_FakeSession())

        adapter.release()
        adapter.release()

        self.assertFalse(adapter.loaded)
        self.assertIsNone(adapter._encoder)
        self.assertIsNone(adapter._decoder)


if __name__ == "__main__":
    unittest.main()
