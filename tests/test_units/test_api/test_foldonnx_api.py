"""Tests for the FoldONNX API and fold_constants."""

import numpy as np
import onnx
import pytest
from onnx import helper

from foldonnx import FoldONNX, FoldingConfig, ValidationConfig, fold_constants
from tests.test_units.conftest import (
    create_initializer,
    create_minimal_onnx_model,
    create_tensor_value_info,
    run_onnx_model,
)


def _scale_model():
    """Y = X * (Constant(2) + 1), with an unused initializer."""
    nodes = [
        helper.make_node(
            "Constant",
            [],
            ["two"],
            value=helper.make_tensor("two_value", onnx.TensorProto.FLOAT, [1], [2.0]),
        ),
        helper.make_node("Add", ["two", "one"], ["scale"], name="add_scale"),
        helper.make_node("Mul", ["X", "scale"], ["Y"], name="mul"),
    ]
    return create_minimal_onnx_model(
        nodes,
        [create_tensor_value_info("X", "float32", [2])],
        [create_tensor_value_info("Y", "float32", [2])],
        [
            create_initializer("one", np.array([1.0], dtype=np.float32)),
            create_initializer("stale", np.array([9.0], dtype=np.float32)),
        ],
    )


class TestFoldConstants:
    """Test fold_constants on in-memory models."""

    def test_folds_and_preserves_outputs(self):
        """The folded model computes the same outputs."""
        model = _scale_model()
        folded, modified = fold_constants(model)
        assert modified is True
        assert [node.op_type for node in folded.graph.node] == ["Mul"]

        x = np.array([1.0, -2.0], dtype=np.float32)
        np.testing.assert_allclose(
            run_onnx_model(folded, {"X": x})[0], run_onnx_model(model, {"X": x})[0]
        )

    def test_input_model_untouched(self):
        """The caller's model is not modified."""
        model = _scale_model()
        fold_constants(model)
        assert len(model.graph.node) == 3

    def test_unused_initializers_removed(self):
        """Initializers made unused by folding are cleaned up by default."""
        folded, _ = fold_constants(_scale_model())
        assert {init.name for init in folded.graph.initializer} == {"scale"}

    def test_unused_initializers_kept_when_disabled(self):
        """Cleanup can be turned off."""
        folded, _ = fold_constants(
            _scale_model(), FoldingConfig(remove_unused_initializers=False)
        )
        names = {init.name for init in folded.graph.initializer}
        assert {"one", "stale", "scale", "two"} <= names

    def test_without_constant_conversion(self):
        """Constant nodes are folded by the pass when not preprocessed."""
        folded, modified = fold_constants(
            _scale_model(), FoldingConfig(constant_to_initializer=False)
        )
        assert modified is True
        assert [node.op_type for node in folded.graph.node] == ["Mul"]

    def test_checker_accepts_result(self):
        """The folded model passes the ONNX checker."""
        folded, _ = fold_constants(_scale_model())
        onnx.checker.check_model(folded)


class TestFoldONNX:
    """Test the file-based FoldONNX API."""

    def test_fold_file(self, tmp_path):
        """Folding a file writes *_folded.onnx and reports the reduction."""
        source = tmp_path / "model.onnx"
        onnx.save(_scale_model(), str(source))

        report = FoldONNX().fold(str(source))

        assert report["modified"] is True
        assert report["original_nodes"] == 3
        assert report["folded_nodes"] == 1
        assert report["reduction"] == 2
        assert report["output_path"] == str(tmp_path / "model_folded.onnx")
        folded = onnx.load(report["output_path"])
        assert folded.producer_name.startswith("FoldONNX-")

    def test_fold_with_validation(self, tmp_path):
        """Numerical validation runs when requested."""
        source = tmp_path / "model.onnx"
        target = tmp_path / "out" / "folded.onnx"
        onnx.save(_scale_model(), str(source))

        report = FoldONNX().fold(
            str(source),
            str(target),
            validation=ValidationConfig(validate_outputs=True, num_samples=2),
        )
        assert target.exists()
        assert report["validation"]["all_match"] is True
        assert report["validation"]["num_tests"] == 2

    def test_invalid_model_raises(self, tmp_path):
        """Models rejected by the checker raise ValueError."""
        model = _scale_model()
        model.graph.node[2].input[0] = "missing"
        source = tmp_path / "broken.onnx"
        onnx.save(model, str(source))
        with pytest.raises(ValueError, match="Invalid ONNX model"):
            FoldONNX().fold(str(source))

    def test_validate(self):
        """Structural validation of a folded model."""
        folded, _ = FoldONNX().fold_model(_scale_model())
        result = FoldONNX().validate(folded)
        assert result["is_valid"] is True
        assert result["broken_connections"] == []
        assert result["orphan_initializers"] == []
