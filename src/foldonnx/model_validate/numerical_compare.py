"""Numerical comparison of an original model and its folded version."""

__docformat__ = "restructuredtext"
__all__ = ["compare_model_outputs", "run_onnx_inference"]

import numpy as np
import onnxruntime as ort
from onnx import ModelProto

from foldonnx import utils


def run_onnx_inference(
    model: ModelProto,
    inputs: dict[str, np.ndarray],
) -> dict[str, np.ndarray]:
    """Run ONNX Runtime inference on model.

    :param model: ONNX model
    :param inputs: Dictionary of input arrays
    :return: Dictionary of output arrays
    """
    session = ort.InferenceSession(model.SerializeToString(), providers=["CPUExecutionProvider"])

    input_names = {inp.name for inp in session.get_inputs()}
    output_names = [out.name for out in session.get_outputs()]
    feed_dict = {name: value for name, value in inputs.items() if name in input_names}

    outputs = session.run(output_names, feed_dict)

    return dict(zip(output_names, outputs, strict=True))


def _compare_outputs(
    i: int,
    outputs1: dict[str, np.ndarray],
    outputs2: dict[str, np.ndarray],
    rtol: float,
    atol: float,
) -> tuple[bool, float, list[str]]:
    """Compare outputs from two models for a single sample.

    :return: Tuple of (match, max_diff, mismatches)
    """
    match = True
    max_diff = 0.0
    mismatches = []

    for name, out1 in outputs1.items():
        if name not in outputs2:
            match = False
            mismatches.append(f"Test {i}: Output {name} missing from folded model")
            continue

        out2 = outputs2[name]
        if out1.shape != out2.shape:
            match = False
            mismatches.append(f"Test {i}: Output {name} shape {out1.shape} vs {out2.shape}")
            continue

        if not np.allclose(out1, out2, rtol=rtol, atol=atol, equal_nan=True):
            match = False
            diff = float(np.max(np.abs(out1.astype(np.float64) - out2.astype(np.float64))))
            max_diff = max(max_diff, diff)
            mismatches.append(f"Test {i}: Output {name} differs (max_diff={diff:.2e})")

    return match, max_diff, mismatches


def compare_model_outputs(
    original: ModelProto,
    folded: ModelProto,
    test_inputs: list[dict[str, np.ndarray]] | None = None,
    num_samples: int = 5,
    rtol: float = 1e-5,
    atol: float = 1e-6,
) -> dict:
    """Compare outputs of the original and folded models.

    :param original: Model before folding
    :param folded: Model after folding
    :param test_inputs: Pre-generated inputs (random inputs when None)
    :param num_samples: Number of random samples if generating inputs
    :param rtol: Relative tolerance for comparison
    :param atol: Absolute tolerance for comparison
    :return: Comparison report dictionary
    """
    if test_inputs is None:
        test_inputs = utils.generate_random_inputs(original, num_samples)

    passed = 0
    failed = 0
    max_diff = 0.0
    mismatches = []

    for i, inputs in enumerate(test_inputs):
        outputs1 = run_onnx_inference(original, inputs)
        outputs2 = run_onnx_inference(folded, inputs)

        match, sample_max_diff, sample_mismatches = _compare_outputs(
            i, outputs1, outputs2, rtol, atol
        )

        max_diff = max(max_diff, sample_max_diff)
        mismatches.extend(sample_mismatches)

        if match:
            passed += 1
        else:
            failed += 1

    return {
        "all_match": failed == 0,
        "num_tests": len(test_inputs),
        "passed": passed,
        "failed": failed,
        "max_diff": max_diff,
        "mismatches": mismatches,
    }
