"""Decide whether a node may be constant folded."""

__docformat__ = "restructuredtext"
__all__ = [
    "all_node_inputs_are_constant",
    "can_fold",
    "constant_input_types",
    "ineligibility_reason",
    "is_supported_target",
]

from collections.abc import Set

from foldonnx.graph import Graph, Node
from foldonnx.kernels import KernelRegistry


def constant_input_types(graph: Graph, node: Node) -> list[int | None]:
    """Element type of each node input that is a constant initializer.

    Omitted optional inputs are 0 and non-constant inputs are None.
    """
    types: list[int | None] = []
    for name in node.inputs:
        if not name:
            types.append(0)
            continue
        initializer = graph.get_constant_initializer(name)
        types.append(None if initializer is None else initializer.data_type)
    return types


def is_supported_target(
    node: Node,
    compatible_targets: Set[str],
    registry: KernelRegistry,
    graph: Graph | None = None,
) -> bool:
    """Check the node runs on a compatible target that has a kernel for it.

    An empty ``compatible_targets`` accepts every target. With ``graph``, the
    kernel must also cover the types of the node's constant inputs.
    """
    if compatible_targets and node.execution_target not in compatible_targets:
        return False
    if graph is None:
        return registry.has_kernel(node, node.execution_target)
    return registry.has_kernel(
        node, node.execution_target, constant_input_types(graph, node), graph.opset_imports
    )


def all_node_inputs_are_constant(
    graph: Graph, node: Node, excluded_initializers: Set[str] = frozenset()
) -> bool:
    """Check every present input resolves to a constant initializer.

    Omitted optional inputs (empty names) are ignored, so a node without
    inputs is trivially constant.
    """
    return all(
        graph.get_constant_initializer(name, frozenset(excluded_initializers)) is not None
        for name in node.existing_inputs
    )


def ineligibility_reason(
    node: Node,
    graph: Graph,
    registry: KernelRegistry,
    compatible_targets: Set[str] = frozenset(),
    excluded_op_types: Set[str] = frozenset(),
    excluded_initializers: Set[str] = frozenset(),
) -> str | None:
    """Return why ``node`` cannot be folded, or None if it can."""
    if not is_supported_target(node, compatible_targets, registry, graph):
        return f"no kernel on a compatible target (assigned {node.execution_target})"
    if node.op_type in excluded_op_types:
        return "excluded operator"
    # Control flow bodies are folded through recursion, never as a whole
    if node.contains_subgraph():
        return "owns subgraphs"
    if graph.is_node_outputs_in_graph_outputs(node):
        return "produces a graph output"
    if not all_node_inputs_are_constant(graph, node, excluded_initializers):
        return "non-constant input"
    return None


def can_fold(
    node: Node,
    graph: Graph,
    registry: KernelRegistry,
    compatible_targets: Set[str] = frozenset(),
    excluded_op_types: Set[str] = frozenset(),
    excluded_initializers: Set[str] = frozenset(),
) -> bool:
    return (
        ineligibility_reason(
            node, graph, registry, compatible_targets, excluded_op_types, excluded_initializers
        )
        is None
    )
