import unittest

from sam_onnx.config import ContextConfig, RuntimeConfig
from sam_onnx.errors import InvalidInputError


def _config(providers) -> ContextConfig:
    return ContextConfig(runtime=RuntimeConfig(providers=providers))


class ContextConfigTest(unittest.TestCase):
    def test_defaults_are_valid(self) -> None:
        ContextConfig().validate()

    def test_accepts_provider_names_beyond_cpu(self) -> None:
        _config(["ROCMExecutionProvider", "CPUExecutionProvider"]).validate()
        _config(["QNNExecutionProvider", "XnnpackExecutionProvider"]).validate()

    def test_accepts_provider_with_options(self) -> None:
        _config([("CPUExecutionProvider", {"arena_extend_strategy": "kSameAsRequested"})]).validate()
        _config([("CUDAExecutionProvider", {"device_id": 0}), "CPUExecutionProvider"]).validate()

    def test_rejects_malformed_provider_entries(self) -> None:
        for providers in (
            [],
            [""],
            [42],
            [("CPUExecutionProvider",)],
            [("CPUExecutionProvider", "arena")],
            [(None, {})],
            [["CPUExecutionProvider", {}]],
        ):
            with self.subTest(providers=providers):
                with self.assertRaises(InvalidInputError):
                    _config(providers).validate()

    def test_rejects_bad_paths_and_runtime_settings(self) -> None:
        with self.assertRaises(InvalidInputError):
            ContextConfig(encoder_path="").validate()
        with self.assertRaises(InvalidInputError):
            ContextConfig(decoder_path="").validate()
        with self.assertRaises(InvalidInputError):
            ContextConfig(runtime=RuntimeConfig(log_severity_level=5)).validate()
        with self.assertRaises(InvalidInputError):
            ContextConfig(runtime=RuntimeConfig(intra_op_num_threads=-1)).validate()


if __name__ == "__main__":
    unittest.main()
