"""Tests for model utilities."""

import numpy as np
from onnx import helper

from foldonnx.utils import (
    convert_constant_to_initializer,
    count_nodes,
    generate_random_inputs,
    get_initializers,
)
from tests.test_units.conftest import (
    create_if_model,
    create_initializer,
    create_minimal_onnx_model,
    create_tensor_value_info,
)


class TestConvertConstantToInitializer:
    """Test convert_constant_to_initializer."""

    def test_scalar_int(self):
        """value_int constants become int64 initializers."""
        model = create_minimal_onnx_model(
            [
                helper.make_node("Constant", [], ["k"], value_int=3),
                helper.make_node("Add", ["X", "k"], ["Y"]),
            ],
            [create_tensor_value_info("X", "int64", [])],
            [create_tensor_value_info("Y", "int64", [])],
        )
        convert_constant_to_initializer(model)
        initializers = get_initializers(model)
        assert initializers["k"].data_type == 7
        assert [node.op_type for node in model.graph.node] == ["Add"]

    def test_graph_output_constant_kept(self):
        """Constants feeding a graph output stay as nodes."""
        model = create_minimal_onnx_model(
            [helper.make_node("Constant", [], ["Y"], value_float=1.0)],
            [],
            [create_tensor_value_info("Y", "float32", [])],
        )
        convert_constant_to_initializer(model)
        assert len(model.graph.node) == 1
        assert not model.graph.initializer

    def test_existing_initializer_name_kept(self):
        """Constants clashing with an initializer name stay as nodes."""
        model = create_minimal_onnx_model(
            [
                helper.make_node("Constant", [], ["k"], value_float=1.0),
                helper.make_node("Relu", ["k"], ["Y"]),
            ],
            [],
            [create_tensor_value_info("Y", "float32", [])],
            [create_initializer("k", np.array(2.0, dtype=np.float32))],
        )
        convert_constant_to_initializer(model)
        assert [node.op_type for node in model.graph.node] == ["Constant", "Relu"]


class TestCountNodes:
    """Test count_nodes."""

    def test_recursive(self):
        """Subgraph nodes are counted unless disabled."""
        model = create_if_model()
        assert count_nodes(model.graph) == 5
        assert count_nodes(model.graph, recursive=False) == 1


class TestGenerateRandomInputs:
    """Test generate_random_inputs."""

    def test_shapes_and_dtypes(self):
        """Inputs follow the declared signature and skip initializers."""
        model = create_if_model()
        samples = generate_random_inputs(model, num_samples=2)
        assert len(samples) == 2
        assert samples[0]["X"].dtype == np.float32
        assert samples[0]["X"].shape == (2,)
        assert samples[0]["cond"].dtype == np.bool_
