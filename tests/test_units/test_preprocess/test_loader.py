"""Tests for model loading and preprocessing."""

import numpy as np
import onnx
import pytest
from onnx import helper

from foldonnx.preprocess import load_model, mark_foldonnx_model, preprocess_model
from tests.test_units.conftest import create_minimal_onnx_model, create_tensor_value_info


def _constant_model():
    nodes = [
        helper.make_node("Constant", [], ["c"], value_floats=[1.0, 2.0], doc_string="const"),
        helper.make_node("Add", ["X", "c"], ["Y"], doc_string="add"),
    ]
    return create_minimal_onnx_model(
        nodes,
        [create_tensor_value_info("X", "float32", [2])],
        [create_tensor_value_info("Y", "float32", [2])],
    )


class TestPreprocessModel:
    """Test preprocess_model."""

    def test_constant_to_initializer(self):
        """Constant nodes become initializers."""
        model = preprocess_model(_constant_model(), infer_shapes=False)
        assert [node.op_type for node in model.graph.node] == ["Add"]
        np.testing.assert_array_equal(
            onnx.numpy_helper.to_array(model.graph.initializer[0]), [1.0, 2.0]
        )

    def test_original_untouched(self):
        """Preprocessing works on a copy."""
        original = _constant_model()
        preprocess_model(original)
        assert len(original.graph.node) == 2

    def test_shape_inference_adds_value_info(self):
        """Shape inference annotates intermediate edges."""
        model = create_minimal_onnx_model(
            [helper.make_node("Relu", ["X"], ["r"]), helper.make_node("Neg", ["r"], ["Y"])],
            [create_tensor_value_info("X", "float32", [2])],
            [create_tensor_value_info("Y", "float32", [2])],
        )
        model = preprocess_model(model)
        assert "r" in {vi.name for vi in model.graph.value_info}

    def test_clear_docstrings(self):
        """Node docstrings can be cleared."""
        model = preprocess_model(
            _constant_model(), constant_to_initializer=False, clear_docstrings=True
        )
        assert all(node.doc_string == "" for node in model.graph.node)


class TestLoadModel:
    """Test load_model and mark_foldonnx_model."""

    def test_load(self, tmp_path):
        """A valid model loads."""
        path = tmp_path / "model.onnx"
        onnx.save(_constant_model(), str(path))
        assert len(load_model(str(path)).graph.node) == 2

    def test_load_invalid_raises(self, tmp_path):
        """Checker failures are reported as ValueError."""
        model = _constant_model()
        model.graph.node[1].input[0] = "missing"
        path = tmp_path / "model.onnx"
        onnx.save(model, str(path))
        with pytest.raises(ValueError, match="Invalid ONNX model"):
            load_model(str(path))
        assert len(load_model(str(path), check_model=False).graph.node) == 2

    def test_mark(self):
        """Marked models carry the producer name."""
        model = mark_foldonnx_model(_constant_model(), "1.2.3")
        assert model.producer_name == "FoldONNX-1.2.3"
        assert "1.2.3" in model.doc_string

    def test_mark_default_version(self):
        """The default marker is the package version."""
        from foldonnx import __version__

        model = mark_foldonnx_model(_constant_model())
        assert model.producer_name == f"FoldONNX-{__version__}"
