"""Constants and type mappings for kernel execution."""

__docformat__ = "restructuredtext"
__all__ = [
    "CPU_TARGET",
    "DEFAULT_IR_VERSION",
    "DEFAULT_OPSET",
    "ONNX_DTYPE_TO_NUMPY",
    "STANDARD_DOMAINS",
    "SUB_BYTE_TYPES",
    "tensor_dtype_of",
]

import numpy as np
import onnx
from onnx import TensorProto

# Execution target identifiers follow onnxruntime provider names
CPU_TARGET = "CPUExecutionProvider"

# Domains served by the onnxruntime fallback kernel
STANDARD_DOMAINS = frozenset({"", "ai.onnx", "ai.onnx.ml"})

DEFAULT_OPSET = 17
DEFAULT_IR_VERSION = 8

# ONNX data type to NumPy dtype mapping
# Based on ONNX TensorProto.DataType enum
ONNX_DTYPE_TO_NUMPY: dict[int, type] = {
    1: np.float32,
    2: np.uint8,
    3: np.int8,
    4: np.uint16,
    5: np.int16,
    6: np.int32,
    7: np.int64,
    8: np.object_,
    9: np.bool_,
    10: np.float16,
    11: np.float64,
    12: np.uint32,
    13: np.uint64,
    14: np.complex64,
    15: np.complex128,
}

# Sub-byte types are packed two elements per byte in raw_data
SUB_BYTE_TYPES = frozenset({TensorProto.UINT4, TensorProto.INT4, TensorProto.FLOAT4E2M1})


def tensor_dtype_of(dtype: np.dtype) -> int | None:
    """ONNX element type of a NumPy dtype, including the ml_dtypes types
    (bfloat16, float8, int4) that ``numpy_helper.to_array`` returns.

    :return: The ``TensorProto.DataType`` value, or None if ONNX has no match
    """
    try:
        return onnx.helper.np_dtype_to_tensor_dtype(np.dtype(dtype))
    except (KeyError, ValueError, TypeError):
        return None
