"""Graph IR consumed by the folding pass."""

__docformat__ = "restructuredtext"
__all__ = ["Graph", "Node", "remove_unused_initializers"]

from foldonnx.graph._cleanup import remove_unused_initializers
from foldonnx.graph._graph import Graph, Node
