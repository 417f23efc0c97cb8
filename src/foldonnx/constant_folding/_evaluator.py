"""Run a single node in isolation against constant inputs."""

__docformat__ = "restructuredtext"
__all__ = ["evaluate_node"]

import logging
from typing import Any

from foldonnx.errors import FoldingError, FoldingInvariantError
from foldonnx.graph import Graph, Node
from foldonnx.kernels import ExecutionFrame, KernelContext, KernelRegistry

logger = logging.getLogger(__name__)


def evaluate_node(node: Node, graph: Graph, registry: KernelRegistry) -> list[Any]:
    """Execute ``node`` once and return one value per declared output.

    The execution frame is built from the complete initializer set: the node
    has already been checked to consume constants only. The frame and kernel
    are dropped when this function returns.

    :param node: Eligible node
    :param graph: Graph owning the node, read only
    :param registry: Kernel registry used to resolve the implementation
    :return: Computed values in output order
    :raises FoldingInvariantError: If no kernel exists, the kernel fails or
        the number of produced values does not match the declared outputs
    """
    frame = ExecutionFrame([node], graph.all_initializers())
    output_names = node.existing_outputs
    fetch_indices = [frame.get_value_index(name) for name in output_names]

    kernel = registry.create_kernel(node, [node.execution_target])
    if kernel is None:
        raise FoldingInvariantError(
            f"No kernel for {node.op_type} on {node.execution_target} "
            f"although node {node.name or node.index} was eligible for folding."
        )

    context = KernelContext(
        frame,
        node,
        opset_imports=graph.opset_imports,
        ir_version=graph.ir_version,
        output_types={name: graph.declared_elem_type(name) for name in output_names},
    )
    logger.debug("Evaluating %s (%s)", node.name or node.index, node.op_type)
    try:
        outputs = list(kernel.compute(context))
    except FoldingError:
        raise
    except Exception as error:
        raise FoldingInvariantError(
            f"Kernel for {node.op_type} failed on node {node.name or node.index}: {error}"
        ) from error

    if len(outputs) != len(output_names):
        raise FoldingInvariantError(
            f"Kernel for {node.op_type} produced {len(outputs)} values, "
            f"expected {len(output_names)}."
        )

    for index, value in zip(fetch_indices, outputs, strict=True):
        frame.set_value(index, value)
    return frame.get_outputs(fetch_indices)
