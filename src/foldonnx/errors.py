"""Exceptions raised by FoldONNX."""

__docformat__ = "restructuredtext"
__all__ = ["FoldingError", "FoldingInvariantError", "GraphError"]


class FoldingError(Exception):
    """Base class of all FoldONNX errors."""


class GraphError(FoldingError):
    """The graph is malformed (cycle, duplicate producer, unknown node index)."""


class FoldingInvariantError(FoldingError):
    """A contract between the folding pass and its collaborators was broken.

    Raised for kernel output count mismatches, non-tensor computed values,
    element type mismatches and missing or failing kernels. These are never
    retried.
    """
