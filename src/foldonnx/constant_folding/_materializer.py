"""Convert computed values into graph initializers."""

__docformat__ = "restructuredtext"
__all__ = ["build_initializer", "read_initializer"]

from typing import Any

import numpy as np
import onnx
from onnx import TensorProto

from foldonnx.errors import FoldingInvariantError
from foldonnx.kernels._constants import SUB_BYTE_TYPES, tensor_dtype_of


def build_initializer(value: Any, name: str, elem_type: int | None = None) -> TensorProto:
    """Build the initializer that replaces output edge ``name``.

    The element type is the one declared on the edge so downstream consumers
    keep seeing the same type; the computed dtype is used only when the edge
    declares none. Dimensions come from the computed value and the payload is
    a raw byte copy.

    :param value: Value computed by a kernel
    :param name: Name of the output edge being replaced
    :param elem_type: Declared ONNX element type of the edge, if known
    :return: Initializer tensor
    :raises FoldingInvariantError: If ``value`` is not a tensor or its dtype
        disagrees with the declared element type
    """
    if not isinstance(value, np.ndarray):
        raise FoldingInvariantError(
            f"Computed value for {name} is not a tensor: {type(value).__name__}."
        )

    if value.dtype.kind in "OSU":
        if elem_type not in (None, TensorProto.STRING):
            raise FoldingInvariantError(
                f"Computed string tensor for {name} but the edge declares type {elem_type}."
            )
        # Strings have no raw representation
        return onnx.numpy_helper.from_array(value.astype(object), name)

    computed_type = tensor_dtype_of(value.dtype)
    if computed_type is None:
        raise FoldingInvariantError(f"Unsupported computed dtype {value.dtype} for {name}.")
    if elem_type is None:
        elem_type = computed_type
    elif elem_type != computed_type:
        raise FoldingInvariantError(
            f"Computed dtype {value.dtype} for {name} does not match declared type "
            f"{TensorProto.DataType.Name(elem_type)}."
        )

    if elem_type in SUB_BYTE_TYPES:
        return onnx.numpy_helper.from_array(value, name)

    tensor = TensorProto()
    tensor.name = name
    tensor.data_type = elem_type
    tensor.dims.extend(value.shape)
    tensor.raw_data = np.ascontiguousarray(value).tobytes()
    return tensor


def read_initializer(tensor: TensorProto) -> np.ndarray:
    return onnx.numpy_helper.to_array(tensor)
