"""Post-folding graph cleanup."""

__docformat__ = "restructuredtext"
__all__ = ["remove_unused_initializers"]

import logging

from foldonnx.graph._graph import Graph

logger = logging.getLogger(__name__)


def remove_unused_initializers(graph: Graph) -> list[str]:
    """Drop initializers that no node, subgraph or graph output consumes.

    Initializers that are also graph inputs are part of the graph interface
    and are kept. Nested subgraphs are cleaned as well.

    :param graph: Graph to clean in place
    :return: Names of the removed initializers
    """
    removed = []
    for node in graph.live_nodes():
        for subgraphs in node.subgraphs.values():
            for subgraph in subgraphs:
                removed.extend(remove_unused_initializers(subgraph))

    used = graph.output_names() | graph.input_names()
    for node in graph.live_nodes():
        used.update(node.existing_inputs)
        used.update(node.implicit_inputs())

    for name in list(graph.initializers):
        if name not in used:
            del graph.initializers[name]
            removed.append(name)

    if removed:
        logger.debug("Removed %d unused initializers from %s", len(removed), graph.name)
    return removed
