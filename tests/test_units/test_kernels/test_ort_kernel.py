"""Tests for the ONNX Runtime fallback kernel."""

import numpy as np
from onnx import TensorProto, helper, numpy_helper

from foldonnx.graph import Node
from foldonnx.kernels import ExecutionFrame, KernelContext, OnnxRuntimeKernel


def _context(node, inputs, output_types=None):
    initializers = {name: numpy_helper.from_array(value, name) for name, value in inputs.items()}
    return KernelContext(
        ExecutionFrame([node], initializers), node, {"": 17}, output_types=output_types
    )


class TestOnnxRuntimeKernel:
    """Test single-node evaluation through ONNX Runtime."""

    def test_sigmoid(self):
        """Operators without a NumPy kernel run through ONNX Runtime."""
        node = Node(0, "Sigmoid", ["x"], ["y"])
        context = _context(node, {"x": np.array([0.0], dtype=np.float32)})
        result = OnnxRuntimeKernel().compute(context)
        assert len(result) == 1
        np.testing.assert_allclose(result[0], [0.5])

    def test_multiple_outputs(self):
        """Every declared output is returned in order."""
        node = Node(0, "Split", ["x"], ["left", "right"])
        context = _context(node, {"x": np.arange(4, dtype=np.int64)})
        left, right = OnnxRuntimeKernel().compute(context)
        np.testing.assert_array_equal(left, [0, 1])
        np.testing.assert_array_equal(right, [2, 3])

    def test_declared_output_type_used(self):
        """Declared output element types are used for the single-node model."""
        node = Node(0, "Sigmoid", ["x"], ["y"])
        context = _context(
            node, {"x": np.array([0.0], dtype=np.float32)}, {"y": TensorProto.FLOAT}
        )
        result = OnnxRuntimeKernel().compute(context)
        assert result[0].dtype == np.float32

    def test_supports(self):
        """Only standard-domain operators without subgraphs are supported."""
        assert OnnxRuntimeKernel.supports(Node(0, "Sigmoid", ["x"], ["y"]))
        assert not OnnxRuntimeKernel.supports(Node(0, "Foo", ["x"], ["y"], domain="com.example"))

    def test_supports_checks_input_types(self):
        """Type signatures without an onnxruntime kernel are not supported."""
        node = Node(0, "Erf", ["x"], ["y"])
        assert OnnxRuntimeKernel.supports(node, [TensorProto.FLOAT], {"": 17})
        assert not OnnxRuntimeKernel.supports(node, [TensorProto.DOUBLE], {"": 17})

    def test_unknown_input_type_is_optimistic(self):
        """Without every input type the operator schema alone decides."""
        node = Node(0, "Erf", ["x"], ["y"])
        assert OnnxRuntimeKernel.supports(node, [None], {"": 17})

