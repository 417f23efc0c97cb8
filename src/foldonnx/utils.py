"""Utility functions for ONNX model manipulation."""

__docformat__ = "restructuredtext"
__all__ = [
    "clear_onnx_docstring",
    "convert_constant_to_initializer",
    "count_nodes",
    "generate_random_inputs",
    "get_initializers",
]

import numpy as np
import onnx
from onnx import GraphProto, ModelProto, NodeProto, TensorProto

from foldonnx.kernels._constants import ONNX_DTYPE_TO_NUMPY


def clear_onnx_docstring(model: ModelProto) -> ModelProto:
    """Clear all doc strings from ONNX model nodes.

    :param model: ONNX model
    :return: Model with cleared docstrings
    """
    for node in model.graph.node:
        node.doc_string = ""
    return model


def get_initializers(model: ModelProto) -> dict[str, TensorProto]:
    """Get initializers from ONNX model.

    :param model: ONNX model
    :return: Dictionary of initializers
    """
    return {initializer.name: initializer for initializer in model.graph.initializer}


def _constant_to_array(node: NodeProto) -> np.ndarray | None:
    attr = node.attribute[0] if len(node.attribute) == 1 else None
    if attr is None:
        return None
    if attr.name == "value":
        return onnx.numpy_helper.to_array(attr.t)
    if attr.name == "value_float":
        return np.array(attr.f, dtype=np.float32)
    if attr.name == "value_floats":
        return np.array(attr.floats, dtype=np.float32)
    if attr.name == "value_int":
        return np.array(attr.i, dtype=np.int64)
    if attr.name == "value_ints":
        return np.array(attr.ints, dtype=np.int64)
    return None


def convert_constant_to_initializer(model: ModelProto) -> ModelProto:
    """Convert Constant nodes of the main graph to initializers.

    Constant nodes that feed a graph output, and those whose value cannot be
    read as a dense tensor, are kept as nodes.

    :param model: ONNX model, modified in place
    :return: The same model
    """
    graph = model.graph
    output_names = {output.name for output in graph.output}
    initializer_names = {initializer.name for initializer in graph.initializer}

    new_nodes = []
    for node in graph.node:
        if node.op_type == "Constant" and node.domain in ("", "ai.onnx"):
            name = node.output[0]
            np_array = _constant_to_array(node)
            if (
                np_array is not None
                and name not in output_names
                and name not in initializer_names
            ):
                graph.initializer.append(onnx.numpy_helper.from_array(np_array, name))
                continue
        new_nodes.append(node)

    if len(new_nodes) != len(graph.node):
        graph.ClearField("node")
        graph.node.extend(new_nodes)
    return model


def count_nodes(graph: GraphProto, recursive: bool = True) -> int:
    """Count nodes of ``graph``, including nested subgraphs when ``recursive``."""
    count = 0
    for node in graph.node:
        count += 1
        if not recursive:
            continue
        for attr in node.attribute:
            if attr.type == onnx.AttributeProto.GRAPH:
                count += count_nodes(attr.g)
            elif attr.type == onnx.AttributeProto.GRAPHS:
                count += sum(count_nodes(g) for g in attr.graphs)
    return count


def generate_random_inputs(
    model: ModelProto,
    num_samples: int = 1,
) -> list[dict[str, np.ndarray]]:
    """Generate random inputs matching model signature.

    Dynamic dimensions are set to 1.

    :param model: ONNX model
    :param num_samples: Number of input samples to generate
    :return: List of input dictionaries
    """
    inputs_list = []
    rng = np.random.default_rng()
    initializer_names = {init.name for init in model.graph.initializer}

    for _ in range(num_samples):
        input_dict = {}
        for input_info in model.graph.input:
            # Skip if this is an initializer (not a true input)
            if input_info.name in initializer_names:
                continue

            shape = tuple(
                d.dim_value if d.HasField("dim_value") else 1
                for d in input_info.type.tensor_type.shape.dim
            )

            elem_type = input_info.type.tensor_type.elem_type
            dtype = ONNX_DTYPE_TO_NUMPY.get(elem_type, np.float32)

            if dtype in (np.float32, np.float64, np.float16):
                input_array = rng.standard_normal(shape).astype(dtype)
            elif dtype is np.bool_:
                input_array = rng.integers(0, 2, size=shape).astype(dtype)
            else:
                input_array = rng.integers(0, 10, size=shape).astype(dtype)

            input_dict[input_info.name] = input_array

        inputs_list.append(input_dict)

    return inputs_list
