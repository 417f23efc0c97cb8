"""Constant folding transformer."""

__docformat__ = "restructuredtext"
__all__ = ["ConstantFolding"]

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from foldonnx.constant_folding._constants import DEFAULT_EXCLUDED_OP_TYPES
from foldonnx.constant_folding._eligibility import ineligibility_reason
from foldonnx.constant_folding._evaluator import evaluate_node
from foldonnx.constant_folding._materializer import build_initializer
from foldonnx.constant_folding._rewriter import replace_node_with_initializers
from foldonnx.constant_folding._transformer import GraphTransformer
from foldonnx.graph import Graph
from foldonnx.kernels import KernelRegistry, default_registry

if TYPE_CHECKING:
    from foldonnx.configs import FoldingConfig

logger = logging.getLogger(__name__)


class ConstantFolding(GraphTransformer):
    """Statically compute nodes that depend on constant initializers only.

    The graph is traversed top-down in topological order, so a node whose
    inputs were produced by folded nodes is folded in the same pass. Each
    folded node is replaced by initializers named after its outputs.
    Initializers that become unused are not removed here.
    """

    def __init__(
        self,
        compatible_targets: Iterable[str] = (),
        excluded_op_types: Iterable[str] = DEFAULT_EXCLUDED_OP_TYPES,
        excluded_initializers: Iterable[str] = (),
        registry: KernelRegistry | None = None,
    ):
        super().__init__("ConstantFolding", compatible_targets)
        self.excluded_op_types = frozenset(excluded_op_types)
        self.excluded_initializers = frozenset(excluded_initializers)
        self.registry = registry or default_registry()

    @classmethod
    def from_config(
        cls, config: "FoldingConfig", registry: KernelRegistry | None = None
    ) -> "ConstantFolding":
        return cls(
            compatible_targets=config.compatible_targets,
            excluded_op_types=config.excluded_operators,
            excluded_initializers=config.excluded_initializers,
            registry=registry,
        )

    def _apply_impl(self, graph: Graph, graph_level: int) -> bool:
        modified = False
        folded = 0

        # The order is a snapshot; only the node being visited is ever removed
        for index in graph.topological_order():
            node = graph.get_node(index)
            if node is None:
                continue

            # Subgraphs are folded even when the owning node never is
            if self._recurse(node, graph_level):
                modified = True

            reason = ineligibility_reason(
                node,
                graph,
                self.registry,
                self.compatible_targets,
                self.excluded_op_types,
                self.excluded_initializers,
            )
            if reason is not None:
                logger.debug("Skipping %s (%s): %s", node.name or index, node.op_type, reason)
                continue

            values = evaluate_node(node, graph, self.registry)
            initializers = [
                build_initializer(value, name, graph.declared_elem_type(name))
                for name, value in zip(node.existing_outputs, values, strict=True)
            ]
            severed = replace_node_with_initializers(graph, node, initializers)

            logger.debug(
                "Folded %s (%s) into %s, %d consumer edges now read initializers",
                node.name or index,
                node.op_type,
                node.existing_outputs,
                len(severed),
            )
            folded += 1
            modified = True

        if folded:
            logger.info("Folded %d nodes in %s (level %d)", folded, graph.name, graph_level)
        return modified
