"""FoldONNX: constant folding for ONNX models."""

__docformat__ = "restructuredtext"
__version__ = "2026.10.0"

__all__ = [
    "DEFAULT_EXCLUDED_OP_TYPES",
    "ConstantFolding",
    "FoldONNX",
    "FoldingConfig",
    "FoldingError",
    "FoldingInvariantError",
    "Graph",
    "GraphError",
    "Node",
    "ValidationConfig",
    "__version__",
    "fold_constants",
]

from foldonnx.configs import FoldingConfig, ValidationConfig
from foldonnx.constant_folding import DEFAULT_EXCLUDED_OP_TYPES, ConstantFolding
from foldonnx.errors import FoldingError, FoldingInvariantError, GraphError
from foldonnx.foldonnx import FoldONNX, fold_constants
from foldonnx.graph import Graph, Node
