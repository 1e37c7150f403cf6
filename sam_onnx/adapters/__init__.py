"""Adapters for external inference engines."""

from sam_onnx.adapters.onnx_adapter import OnnxSamAdapter

__all__ = [
    "OnnxSamAdapter",
]
