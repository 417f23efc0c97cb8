"""Tests for post-folding initializer cleanup."""

import numpy as np
from onnx import helper

from foldonnx.graph import Graph, remove_unused_initializers
from tests.test_units.conftest import (
    create_graph,
    create_if_model,
    create_initializer,
    create_tensor_value_info,
)


class TestRemoveUnusedInitializers:
    """Test remove_unused_initializers."""

    def test_removes_unreferenced(self):
        """Initializers nobody reads are dropped."""
        graph = create_graph(
            [helper.make_node("Relu", ["used"], ["Y"])],
            [],
            [create_tensor_value_info("Y", "float32", [1])],
            [create_initializer("used", [1.0]), create_initializer("unused", [2.0])],
        )
        removed = remove_unused_initializers(graph)
        assert removed == ["unused"]
        assert set(graph.initializers) == {"used"}

    def test_keeps_graph_output_and_input(self):
        """Initializers that are graph outputs or inputs are part of the interface."""
        graph = create_graph(
            [],
            [create_tensor_value_info("overridable", "float32", [1])],
            [create_tensor_value_info("Y", "float32", [1])],
            [create_initializer("Y", [1.0]), create_initializer("overridable", [2.0])],
        )
        assert remove_unused_initializers(graph) == []
        assert set(graph.initializers) == {"Y", "overridable"}

    def test_keeps_initializer_used_by_subgraph(self):
        """Outer initializers consumed inside a branch are kept."""
        model = create_if_model()
        model.graph.initializer.append(
            create_initializer("X_shadow", np.array([0.0, 0.0], dtype=np.float32))
        )
        graph = Graph.from_model(model)
        else_graph = graph.get_node(0).subgraphs["else_branch"][0]
        else_graph.get_node(1).inputs[1] = "X_shadow"

        removed = remove_unused_initializers(graph)
        assert "X_shadow" not in removed
        assert "X_shadow" in graph.initializers

    def test_cleans_nested_subgraphs(self):
        """Subgraph initializers that became unused are removed too."""
        graph = Graph.from_model(create_if_model())
        then_graph = graph.get_node(0).subgraphs["then_branch"][0]
        then_graph.remove_node(0)
        then_graph.add_initializer(
            create_initializer("then_sum", np.array([4.0, 6.0], dtype=np.float32))
        )

        removed = remove_unused_initializers(graph)
        assert sorted(removed) == ["a", "b"]
        assert set(then_graph.initializers) == {"then_sum"}
