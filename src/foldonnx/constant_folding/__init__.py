"""Constant folding pass."""

__docformat__ = "restructuredtext"
__all__ = [
    "DEFAULT_EXCLUDED_OP_TYPES",
    "ConstantFolding",
    "GraphTransformer",
    "all_node_inputs_are_constant",
    "build_initializer",
    "can_fold",
    "constant_input_types",
    "evaluate_node",
    "ineligibility_reason",
    "read_initializer",
    "replace_node_with_initializers",
]

from foldonnx.constant_folding._constants import DEFAULT_EXCLUDED_OP_TYPES
from foldonnx.constant_folding._eligibility import (
    all_node_inputs_are_constant,
    can_fold,
    constant_input_types,
    ineligibility_reason,
)
from foldonnx.constant_folding._evaluator import evaluate_node
from foldonnx.constant_folding._folding import ConstantFolding
from foldonnx.constant_folding._materializer import build_initializer, read_initializer
from foldonnx.constant_folding._rewriter import replace_node_with_initializers
from foldonnx.constant_folding._transformer import GraphTransformer
