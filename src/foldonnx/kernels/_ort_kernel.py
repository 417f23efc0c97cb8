"""Generic kernel that runs a single node through ONNX Runtime."""

__docformat__ = "restructuredtext"
__all__ = ["OnnxRuntimeKernel"]

import functools
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np
import onnx
import onnxruntime as ort
from onnx import AttributeProto, ModelProto, ValueInfoProto
from onnxruntime.capi.onnxruntime_pybind11_state import (
    Fail as OrtFail,
    InvalidArgument as OrtInvalidArgument,
    InvalidGraph as OrtInvalidGraph,
    NotImplemented as OrtNotImplemented,
)

from foldonnx.kernels._constants import (
    CPU_TARGET,
    DEFAULT_OPSET,
    STANDARD_DOMAINS,
    tensor_dtype_of,
)
from foldonnx.kernels._frame import KernelContext

if TYPE_CHECKING:
    from foldonnx.graph import Node

logger = logging.getLogger(__name__)


def _elem_type_of(value: np.ndarray) -> int:
    if value.dtype.kind in "OSU":
        return onnx.TensorProto.STRING
    elem_type = tensor_dtype_of(value.dtype)
    if elem_type is None:
        raise TypeError(f"No ONNX element type for dtype {value.dtype}.")
    return elem_type


def _infer_output_types(model: ModelProto) -> dict[str, int]:
    try:
        inferred = onnx.shape_inference.infer_shapes(model)
    except (onnx.shape_inference.InferenceError, ValueError, RuntimeError) as error:
        logger.debug("Shape inference failed for single-node model: %s", error)
        return {}
    types = {}
    for value_info in (*inferred.graph.output, *inferred.graph.value_info):
        elem_type = value_info.type.tensor_type.elem_type
        if elem_type:
            types[value_info.name] = elem_type
    return types


def _single_node_model(
    op_type: str,
    domain: str,
    input_names: Sequence[str],
    output_names: Sequence[str],
    attributes: Iterable[AttributeProto],
    inputs: Sequence[ValueInfoProto],
    output_types: Mapping[str, int | None],
    opset_imports: Mapping[str, int],
) -> ModelProto:
    """Wrap one operator into a model with typed inputs and outputs.

    Output types missing from ``output_types`` are taken from ONNX shape
    inference when it can determine them.
    """
    node_proto = onnx.helper.make_node(
        op_type,
        inputs=list(input_names),
        outputs=list(output_names),
        name=op_type,
        domain=domain or None,
    )
    node_proto.attribute.extend(attributes)
    present_outputs = [name for name in output_names if name]

    opset_imports = dict(opset_imports)
    if "" not in opset_imports and "ai.onnx" not in opset_imports:
        opset_imports[""] = DEFAULT_OPSET
    if domain and domain != "ai.onnx" and domain not in opset_imports:
        opset_imports[domain] = onnx.defs.get_schema(op_type, domain=domain).since_version
    opsetids = [
        onnx.helper.make_opsetid(opset_domain, version)
        for opset_domain, version in opset_imports.items()
    ]

    def make_model(outputs: list[ValueInfoProto]) -> ModelProto:
        graph = onnx.helper.make_graph([node_proto], "fold_single_node", list(inputs), outputs)
        model = onnx.helper.make_model(graph, opset_imports=opsetids)
        model.ir_version = onnx.helper.find_min_ir_version_for(opsetids, ignore_unknown=True)
        return model

    declared = {name: output_types[name] for name in present_outputs if output_types.get(name)}
    if len(declared) != len(present_outputs):
        untyped = make_model(
            [onnx.helper.make_empty_tensor_value_info(name) for name in present_outputs]
        )
        inferred = _infer_output_types(untyped)
        for name in present_outputs:
            if name not in declared and name in inferred:
                declared[name] = inferred[name]

    outputs = [
        onnx.helper.make_tensor_value_info(name, declared[name], None)
        if name in declared
        else onnx.helper.make_empty_tensor_value_info(name)
        for name in present_outputs
    ]
    return make_model(outputs)


def _create_session(model: ModelProto, target: str) -> ort.InferenceSession:
    options = ort.SessionOptions()
    options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_DISABLE_ALL
    options.log_severity_level = 3
    return ort.InferenceSession(
        model.SerializeToString(), sess_options=options, providers=[target]
    )


@functools.lru_cache(maxsize=None)
def _has_type_kernel(
    op_type: str,
    domain: str,
    input_types: tuple[int, ...],
    output_mask: tuple[bool, ...],
    attributes: tuple[bytes, ...],
    opset_items: tuple[tuple[str, int], ...],
    target: str,
) -> bool:
    """Check onnxruntime has a kernel for one operator type signature.

    Omitted optional inputs carry element type 0. The answer only depends on
    the arguments, so it is cached per signature.
    """
    input_names = [f"input_{i}" if elem_type else "" for i, elem_type in enumerate(input_types)]
    output_names = [f"output_{i}" if present else "" for i, present in enumerate(output_mask)]
    inputs = [
        onnx.helper.make_tensor_value_info(name, elem_type, None)
        for name, elem_type in zip(input_names, input_types, strict=True)
        if name
    ]
    model = _single_node_model(
        op_type,
        domain,
        input_names,
        output_names,
        [AttributeProto.FromString(attr) for attr in attributes],
        inputs,
        {},
        dict(opset_items),
    )
    try:
        _create_session(model, target)
    except OrtNotImplemented as error:
        logger.debug("No onnxruntime kernel for %s%s: %s", op_type, input_types, error)
        return False
    except (OrtFail, OrtInvalidArgument, OrtInvalidGraph) as error:
        # Not a kernel lookup failure; evaluation reports it with the real inputs
        logger.debug("Could not check kernel for %s%s: %s", op_type, input_types, error)
    return True


class OnnxRuntimeKernel:
    """Evaluate any standard-domain operator with ``onnxruntime``.

    The node is wrapped in a throwaway single-node model whose inputs are
    fed from the execution frame. Graph optimizations are disabled so the
    session runs exactly the operator it was given.
    """

    target = CPU_TARGET

    @classmethod
    def supports(
        cls,
        node: "Node",
        input_types: Sequence[int | None] | None = None,
        opset_imports: Mapping[str, int] | None = None,
    ) -> bool:
        """Check the operator exists and, when every input type is known,
        that onnxruntime implements it for those types.

        :param node: Node to check
        :param input_types: Element type per entry of ``node.inputs``; 0 for
            omitted optional inputs and None where unknown
        :param opset_imports: Opsets of the graph owning the node
        """
        if node.domain not in STANDARD_DOMAINS or node.contains_subgraph():
            return False
        domain = "" if node.domain == "ai.onnx" else node.domain
        if not onnx.defs.has(node.op_type, domain):
            return False
        if input_types is None or any(elem_type is None for elem_type in input_types):
            return True
        return _has_type_kernel(
            node.op_type,
            domain,
            tuple(input_types),
            tuple(bool(name) for name in node.outputs),
            tuple(attr.SerializeToString() for attr in node.attributes.values()),
            tuple(sorted((opset_imports or {}).items())),
            cls.target,
        )

    def _build_model(
        self, context: KernelContext, feeds: dict[str, np.ndarray]
    ) -> tuple[ModelProto, list[str]]:
        node = context.node
        inputs = [
            onnx.helper.make_tensor_value_info(name, _elem_type_of(value), value.shape)
            for name, value in feeds.items()
        ]
        model = _single_node_model(
            node.op_type,
            node.domain,
            node.inputs,
            node.outputs,
            node.attributes.values(),
            inputs,
            context.output_types,
            context.opset_imports,
        )
        return model, node.existing_outputs

    def compute(self, context: KernelContext) -> list[Any]:
        feeds: dict[str, np.ndarray] = {}
        for name, value in zip(context.node.inputs, context.inputs(), strict=True):
            if name and value is not None:
                feeds[name] = value

        model, output_names = self._build_model(context, feeds)
        session = _create_session(model, self.target)
        return session.run(output_names, feeds)
