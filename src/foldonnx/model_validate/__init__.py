"""Validation utilities for folded ONNX models."""

__docformat__ = "restructuredtext"
__all__ = [
    "check_broken_connections",
    "check_orphan_initializers",
    "compare_model_outputs",
    "run_onnx_inference",
    "validate_model",
]

import onnx
from onnx import ModelProto

from foldonnx.model_validate.graph_validator import (
    check_broken_connections,
    check_orphan_initializers,
)
from foldonnx.model_validate.numerical_compare import compare_model_outputs, run_onnx_inference


def validate_model(model: ModelProto) -> dict:
    """Run the structural checks on a model.

    Orphan initializers are reported but do not make a model invalid.

    :param model: ONNX ModelProto
    :return: Validation results dictionary
    """
    try:
        onnx.checker.check_model(model)
        checker = {"valid": True, "error": None}
    except (onnx.checker.ValidationError, ValueError, AttributeError, TypeError) as error:
        checker = {"valid": False, "error": str(error)}

    results = {
        "onnx_checker": checker,
        "broken_connections": check_broken_connections(model.graph),
        "orphan_initializers": check_orphan_initializers(model.graph),
    }
    results["is_valid"] = checker["valid"] and not results["broken_connections"]
    return results
