"""Shared fixtures and utilities for unit tests."""

import numpy as np
import onnxruntime as ort
import pytest
from onnx import TensorProto, helper, numpy_helper

from foldonnx.graph import Graph

OPSET = 17
IR_VERSION = 8


def create_tensor_value_info(name, dtype, shape):
    """Create a tensor value info for ONNX graph."""
    if dtype == "float32":
        onnx_dtype = TensorProto.FLOAT
    elif dtype == "int64":
        onnx_dtype = TensorProto.INT64
    elif dtype == "int32":
        onnx_dtype = TensorProto.INT32
    elif dtype == "bool":
        onnx_dtype = TensorProto.BOOL
    else:
        onnx_dtype = TensorProto.FLOAT

    return helper.make_tensor_value_info(name, onnx_dtype, shape)


def create_initializer(name, values, dtype="float32"):
    """Create an initializer (constant tensor) for ONNX graph."""
    if isinstance(values, np.ndarray):
        array = values
    else:
        array = np.array(values, dtype=dtype)

    return numpy_helper.from_array(array, name=name)


def create_minimal_onnx_model(nodes, inputs, outputs, initializers=None, value_info=None):
    """Create minimal ONNX model for testing without file I/O.

    Args:
        nodes: List of ONNX node objects
        inputs: List of tensor value info objects (graph inputs)
        outputs: List of tensor value info objects (graph outputs)
        initializers: Optional list of initializer tensors
        value_info: Optional list of value infos for intermediate edges

    Returns:
        ONNX ModelProto
    """
    graph = helper.make_graph(
        nodes,
        "test_graph",
        inputs,
        outputs,
        initializer=initializers or [],
        value_info=value_info or [],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", OPSET)])
    model.ir_version = IR_VERSION
    return model


def create_graph(nodes, inputs, outputs, initializers=None, value_info=None):
    """Create a foldonnx Graph from ONNX nodes."""
    model = create_minimal_onnx_model(nodes, inputs, outputs, initializers, value_info)
    return Graph.from_model(model)


def run_onnx_model(model, inputs_dict):
    """Run ONNX model and return outputs.

    Args:
        model: ONNX ModelProto
        inputs_dict: Dict mapping input names to numpy arrays

    Returns:
        List of output arrays
    """
    sess = ort.InferenceSession(
        model.SerializeToString(),
        providers=["CPUExecutionProvider"],
    )
    return sess.run(None, inputs_dict)


def get_nodes_by_type(graph, op_type):
    """Get all live nodes of specific op_type in a foldonnx Graph."""
    return [node for node in graph.live_nodes() if node.op_type == op_type]


def get_initializer_array(graph, name):
    """Get initializer by name from a foldonnx Graph as array, or None."""
    tensor = graph.get_initializer(name)
    return None if tensor is None else numpy_helper.to_array(tensor)


def create_add_relu_model():
    """Const(2.0) -> Add(3.0) -> Relu -> Y."""
    initializers = [
        create_initializer("two", np.array([2.0], dtype=np.float32)),
        create_initializer("three", np.array([3.0], dtype=np.float32)),
    ]
    nodes = [
        helper.make_node("Add", inputs=["two", "three"], outputs=["add_out"], name="add"),
        helper.make_node("Relu", inputs=["add_out"], outputs=["Y"], name="relu"),
    ]
    outputs = [create_tensor_value_info("Y", "float32", [1])]
    value_info = [create_tensor_value_info("add_out", "float32", [1])]
    return create_minimal_onnx_model(nodes, [], outputs, initializers, value_info)


def create_if_model():
    """If node whose branches contain a foldable Add and a RandomUniform.

    then: Add(a, b) -> then_sum; Mul(then_sum, X) -> then_out
    else: RandomUniform -> rand; Add(rand, X) -> else_out
    """
    then_branch = helper.make_graph(
        [
            helper.make_node("Add", ["a", "b"], ["then_sum"], name="then_add"),
            helper.make_node("Mul", ["then_sum", "X"], ["then_out"], name="then_mul"),
        ],
        "then_branch",
        [],
        [create_tensor_value_info("then_out", "float32", [2])],
        initializer=[
            create_initializer("a", np.array([1.0, 2.0], dtype=np.float32)),
            create_initializer("b", np.array([3.0, 4.0], dtype=np.float32)),
        ],
    )
    else_branch = helper.make_graph(
        [
            helper.make_node(
                "RandomUniform", [], ["rand"], name="else_random", shape=[2], dtype=1
            ),
            helper.make_node("Add", ["rand", "X"], ["else_out"], name="else_add"),
        ],
        "else_branch",
        [],
        [create_tensor_value_info("else_out", "float32", [2])],
    )
    if_node = helper.make_node(
        "If",
        inputs=["cond"],
        outputs=["Y"],
        name="if",
        then_branch=then_branch,
        else_branch=else_branch,
    )
    inputs = [
        create_tensor_value_info("cond", "bool", []),
        create_tensor_value_info("X", "float32", [2]),
    ]
    outputs = [create_tensor_value_info("Y", "float32", [2])]
    return create_minimal_onnx_model([if_node], inputs, outputs)


@pytest.fixture
def add_relu_model():
    """Const(2.0) -> Add(3.0) -> Relu -> Y model."""
    return create_add_relu_model()


@pytest.fixture
def if_model():
    """Model with an If node owning foldable and non-deterministic branches."""
    return create_if_model()
