"""ONNX model preprocessing utilities."""

__docformat__ = "restructuredtext"
__all__ = [
    "load_model",
    "mark_foldonnx_model",
    "preprocess_model",
]

from foldonnx.preprocess.loader import (
    load_model,
    mark_foldonnx_model,
    preprocess_model,
)
