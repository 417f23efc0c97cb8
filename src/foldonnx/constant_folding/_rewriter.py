"""Substitute a folded node with its materialized outputs."""

__docformat__ = "restructuredtext"
__all__ = ["replace_node_with_initializers"]

from collections.abc import Sequence

from onnx import TensorProto

from foldonnx.errors import FoldingInvariantError, GraphError
from foldonnx.graph import Graph, Node


def replace_node_with_initializers(
    graph: Graph, node: Node, initializers: Sequence[TensorProto]
) -> list[tuple[int, str]]:
    """Insert ``initializers``, sever the node's output edges and remove it.

    Every check runs before the first mutation, so either the whole rewrite
    happens or the graph is left untouched. Consumers need no edits because
    the initializers carry the original output names. Initializers that
    become unused are left for a later cleanup.

    :return: The severed ``(consumer index, value name)`` edges
    """
    if graph.get_node(node.index) is not node:
        raise GraphError(f"Node {node.name or node.index} is not part of graph {graph.name}.")
    names = [initializer.name for initializer in initializers]
    if sorted(names) != sorted(node.existing_outputs):
        raise FoldingInvariantError(
            f"Initializers {names} do not match the outputs {node.existing_outputs} "
            f"of {node.name or node.index}."
        )

    for initializer in initializers:
        graph.add_initializer(initializer)
    severed = graph.remove_node_output_edges(node)
    graph.remove_node(node.index)
    return severed
