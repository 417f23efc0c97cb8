"""Base class for in-place graph transformers."""

__docformat__ = "restructuredtext"
__all__ = ["GraphTransformer"]

import logging
from collections.abc import Iterable

from foldonnx.graph import Graph, Node

logger = logging.getLogger(__name__)


class GraphTransformer:
    """A named rewrite applied to a :class:`Graph` and its nested subgraphs.

    Subclasses implement :meth:`_apply_impl` for one graph level and call
    :meth:`_recurse` to descend into the subgraphs a node owns.
    """

    def __init__(self, name: str, compatible_targets: Iterable[str] = ()):
        self.name = name
        self.compatible_targets = frozenset(compatible_targets)

    def apply(self, graph: Graph) -> bool:
        """Transform ``graph`` in place.

        :param graph: Graph to transform
        :return: Whether the graph was modified
        """
        modified = self._apply_impl(graph, 0)
        logger.info("%s on %s: modified=%s", self.name, graph.name, modified)
        return modified

    def _apply_impl(self, graph: Graph, graph_level: int) -> bool:
        raise NotImplementedError

    def _recurse(self, node: Node, graph_level: int) -> bool:
        modified = False
        for subgraphs in node.subgraphs.values():
            for subgraph in subgraphs:
                if self._apply_impl(subgraph, graph_level + 1):
                    modified = True
        return modified
