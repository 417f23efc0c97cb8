"""ONNX model loading and preprocessing."""

__docformat__ = "restructuredtext"
__all__ = ["load_model", "mark_foldonnx_model", "preprocess_model"]

import warnings

import onnx
from onnx import ModelProto

from foldonnx import __version__, utils


def load_model(onnx_path: str, check_model: bool = True) -> ModelProto:
    """Load an ONNX model from file.

    :param onnx_path: Path to ONNX file
    :param check_model: Whether to validate the model with onnx.checker
    :return: Loaded model
    :raises ValueError: If the checker rejects the model
    """
    model = onnx.load(onnx_path)

    if check_model:
        try:
            onnx.checker.check_model(model)
        except (onnx.checker.ValidationError, ValueError, AttributeError, TypeError) as error:
            raise ValueError(f"Invalid ONNX model: {error}") from error

    return model


def preprocess_model(
    model: ModelProto,
    constant_to_initializer: bool = True,
    infer_shapes: bool = True,
    clear_docstrings: bool = False,
) -> ModelProto:
    """Prepare a model for constant folding.

    Preprocessing steps:
    1. Copy the model so the caller's instance is untouched
    2. Convert Constant nodes to initializers (if enabled)
    3. Run shape inference so output edges carry element types (if enabled)
    4. Clear node docstrings (if enabled)

    :param model: Input ONNX model
    :param constant_to_initializer: Whether to convert Constant nodes
    :param infer_shapes: Whether to run ONNX shape inference
    :param clear_docstrings: Whether to clear node docstrings
    :return: Preprocessed copy of the model
    """
    new_model = ModelProto()
    new_model.CopyFrom(model)

    if constant_to_initializer:
        new_model = utils.convert_constant_to_initializer(new_model)

    if infer_shapes:
        try:
            new_model = onnx.shape_inference.infer_shapes(new_model)
        except (onnx.shape_inference.InferenceError, ValueError, RuntimeError) as error:
            warnings.warn(f"Shape inference failed: {error}", UserWarning, stacklevel=2)

    if clear_docstrings:
        new_model = utils.clear_onnx_docstring(new_model)

    return new_model


def mark_foldonnx_model(model: ModelProto, version: str = __version__) -> ModelProto:
    """Mark model as processed by FoldONNX.

    :param model: Input ONNX model
    :param version: FoldONNX version string
    :return: Marked model
    """
    model.producer_name = f"FoldONNX-{version}"
    model.doc_string = f"Constant folded by FoldONNX v{version}"
    return model
