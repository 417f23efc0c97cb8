"""Graph structure validation for folded ONNX models."""

__docformat__ = "restructuredtext"
__all__ = ["check_broken_connections", "check_orphan_initializers"]

from collections.abc import Iterator

import onnx
from onnx import GraphProto, NodeProto


def _subgraphs(node: NodeProto) -> Iterator[GraphProto]:
    for attr in node.attribute:
        if attr.type == onnx.AttributeProto.GRAPH:
            yield attr.g
        elif attr.type == onnx.AttributeProto.GRAPHS:
            yield from attr.graphs


def _node_label(node: NodeProto) -> str:
    return node.name if node.name else f"{node.op_type}_unnamed"


def check_broken_connections(
    graph: GraphProto,
    outer_scope: frozenset[str] = frozenset(),
) -> list[dict]:
    """Find node inputs and graph outputs that nothing defines.

    Subgraphs are checked with the names of their enclosing graphs in scope.

    :param graph: Graph to check
    :param outer_scope: Names visible from enclosing graphs
    :return: List of connection error dictionaries
    """
    available_tensors = set(outer_scope)
    available_tensors.update(init.name for init in graph.initializer)
    available_tensors.update(inp.name for inp in graph.input)
    for node in graph.node:
        available_tensors.update(node.output)

    errors = [
        {
            "graph": graph.name,
            "node": _node_label(node),
            "op_type": node.op_type,
            "missing_input": inp,
        }
        for node in graph.node
        for inp in node.input
        if inp and inp not in available_tensors
    ]
    errors.extend(
        {"graph": graph.name, "node": None, "op_type": None, "missing_input": out.name}
        for out in graph.output
        if out.name not in available_tensors
    )

    scope = frozenset(available_tensors)
    for node in graph.node:
        for subgraph in _subgraphs(node):
            errors.extend(check_broken_connections(subgraph, scope))
    return errors


def check_orphan_initializers(graph: GraphProto) -> list[str]:
    """Find initializers not used by any node, subgraph or graph output.

    :param graph: Graph to check
    :return: List of orphan initializer names
    """
    used = {out.name for out in graph.output}

    def collect(g: GraphProto) -> None:
        used.update(out.name for out in g.output)
        for node in g.node:
            used.update(node.input)
            for subgraph in _subgraphs(node):
                collect(subgraph)

    collect(graph)
    return [init.name for init in graph.initializer if init.name not in used]
