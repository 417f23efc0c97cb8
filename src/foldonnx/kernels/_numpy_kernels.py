"""NumPy kernels for common constant-foldable operators.

Every kernel returns arrays of exactly the ONNX output dtype; NumPy's type
promotion must not leak into folded initializers. Cases a kernel does not
handle natively are delegated to :class:`OnnxRuntimeKernel`.
"""

__docformat__ = "restructuredtext"
__all__ = ["NUMPY_KERNELS", "register_numpy_kernels"]

from collections.abc import Callable

import numpy as np

from foldonnx.kernels._constants import CPU_TARGET, ONNX_DTYPE_TO_NUMPY
from foldonnx.kernels._frame import KernelContext
from foldonnx.kernels._ort_kernel import OnnxRuntimeKernel
from foldonnx.kernels._registry import KernelRegistry


def _delegate(context: KernelContext) -> list[np.ndarray]:
    return OnnxRuntimeKernel().compute(context)


def _axes_from(context: KernelContext, input_index: int, attr_name: str = "axes"):
    """Read axes from an input (opset >= 13) or from the attribute."""
    axes = context.input(input_index)
    if axes is not None:
        return tuple(int(axis) for axis in axes.reshape(-1))
    attr_axes = context.attrs({attr_name: None})[attr_name]
    return None if attr_axes is None else tuple(attr_axes)


def _binary(op: Callable[[np.ndarray, np.ndarray], np.ndarray]) -> Callable:
    def kernel(context: KernelContext) -> list[np.ndarray]:
        tensor1, tensor2 = context.input(0), context.input(1)
        return [np.asarray(op(tensor1, tensor2), dtype=tensor1.dtype)]

    return kernel


def _unary(op: Callable[[np.ndarray], np.ndarray]) -> Callable:
    def kernel(context: KernelContext) -> list[np.ndarray]:
        tensor = context.input(0)
        return [np.asarray(op(tensor), dtype=tensor.dtype)]

    return kernel


def _div(context: KernelContext) -> list[np.ndarray]:
    tensor1, tensor2 = context.input(0), context.input(1)
    if np.issubdtype(tensor1.dtype, np.integer) and np.issubdtype(tensor2.dtype, np.integer):
        # ONNX integer division truncates toward zero, floor division does not
        quotient = np.floor_divide(tensor1, tensor2)
        remainder = tensor1 - quotient * tensor2
        adjust = (remainder != 0) & ((tensor1 < 0) != (tensor2 < 0))
        return [np.asarray(quotient + adjust, dtype=tensor1.dtype)]
    return [np.asarray(tensor1 / tensor2, dtype=tensor1.dtype)]


def _pow(context: KernelContext) -> list[np.ndarray]:
    base, exponent = context.input(0), context.input(1)
    if np.issubdtype(base.dtype, np.integer):
        if np.issubdtype(exponent.dtype, np.integer):
            if np.any(exponent < 0):
                return _delegate(context)
        else:
            # The power is taken in floating point, then truncated to the base type
            result = np.power(base.astype(np.float64), exponent.astype(np.float64))
            return [result.astype(base.dtype)]
    return [np.asarray(np.power(base, exponent.astype(base.dtype)), dtype=base.dtype)]


def _matmul(context: KernelContext) -> list[np.ndarray]:
    tensor1, tensor2 = context.input(0), context.input(1)
    return [np.asarray(np.matmul(tensor1, tensor2), dtype=tensor1.dtype)]


def _equal(context: KernelContext) -> list[np.ndarray]:
    return [np.asarray(np.equal(context.input(0), context.input(1)), dtype=np.bool_)]


def _where(context: KernelContext) -> list[np.ndarray]:
    condition, operand_x, operand_y = context.inputs()[:3]
    return [np.asarray(np.where(condition, operand_x, operand_y), dtype=operand_x.dtype)]


def _cast(context: KernelContext) -> list[np.ndarray]:
    target_dtype = context.attrs({"to": None})["to"]
    value = context.input(0)
    if target_dtype not in ONNX_DTYPE_TO_NUMPY or target_dtype == 8 or value.dtype.kind in "OSU":
        return _delegate(context)
    return [np.asarray(value.astype(ONNX_DTYPE_TO_NUMPY[target_dtype]))]


def _identity(context: KernelContext) -> list[np.ndarray]:
    return [np.array(context.input(0), copy=True)]


def _reshape(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    shape = [int(dim) for dim in context.input(1)]
    allowzero = context.attrs({"allowzero": 0})["allowzero"]
    if not allowzero:
        shape = [data.shape[i] if dim == 0 else dim for i, dim in enumerate(shape)]
    return [np.array(data.reshape(shape), copy=True)]


def _transpose(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    perm = context.attrs({"perm": None})["perm"]
    return [np.ascontiguousarray(np.transpose(data, perm))]


def _gather(context: KernelContext) -> list[np.ndarray]:
    data, indices = context.input(0), context.input(1)
    axis = context.attrs({"axis": 0})["axis"]
    return [np.asarray(np.take(data, indices, axis=axis), dtype=data.dtype)]


def _slice(context: KernelContext) -> list[np.ndarray]:
    if context.opset() < 10:
        return _delegate(context)

    data = context.input(0)
    starts = context.input(1)
    ends = context.input(2)

    # Optional axes parameter
    axes = context.input(3)
    if axes is None:
        axes = np.arange(len(starts))

    # Optional steps parameter
    steps = context.input(4)
    if steps is None:
        steps = np.ones_like(starts)

    # Build slice objects
    slices = [slice(None)] * data.ndim
    for i, axis in enumerate(axes):
        slices[int(axis)] = slice(int(starts[i]), int(ends[i]), int(steps[i]))

    return [np.ascontiguousarray(data[tuple(slices)])]


def _unsqueeze(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    axes = _axes_from(context, 1)
    return [np.array(np.expand_dims(data, axis=axes), copy=True)]


def _squeeze(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    axes = _axes_from(context, 1)
    return [np.array(np.squeeze(data, axis=axes), copy=True)]


def _concat(context: KernelContext) -> list[np.ndarray]:
    tensor_list = [tensor for tensor in context.inputs() if tensor is not None]
    axis = context.attrs({"axis": None})["axis"]
    return [np.concatenate(tensor_list, axis=axis).astype(tensor_list[0].dtype, copy=False)]


def _reduce_sum(context: KernelContext) -> list[np.ndarray]:
    tensor = context.input(0)
    attrs = context.attrs({"keepdims": 1, "noop_with_empty_axes": 0, "axes": None})
    axes = _axes_from(context, 1)

    if not axes:
        if attrs["noop_with_empty_axes"]:
            return [np.array(tensor, copy=True)]
        axes = tuple(range(tensor.ndim))

    result = np.sum(tensor, axis=axes, keepdims=bool(attrs["keepdims"]))
    return [np.asarray(result, dtype=tensor.dtype)]


def _range(context: KernelContext) -> list[np.ndarray]:
    start, limit, delta = (tensor.reshape(-1)[0] for tensor in context.inputs()[:3])
    dtype = context.input(0).dtype
    return [np.arange(start, limit, delta, dtype=dtype)]


def _constant_of_shape(context: KernelContext) -> list[np.ndarray]:
    shape_tensor = context.input(0)
    value = context.attrs({"value": np.zeros(1, dtype=np.float32)})["value"].reshape(-1)[0]
    return [np.full([int(dim) for dim in shape_tensor.reshape(-1)], value, dtype=value.dtype)]


def _shape(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    attrs = context.attrs({"start": 0, "end": None})
    return [np.array(data.shape[attrs["start"] : attrs["end"]], dtype=np.int64)]


def _size(context: KernelContext) -> list[np.ndarray]:
    return [np.array(context.input(0).size, dtype=np.int64)]


def _constant(context: KernelContext) -> list[np.ndarray]:
    attrs = context.attrs()
    if "value" in attrs:
        return [np.array(attrs["value"], copy=True)]
    if "value_float" in attrs:
        return [np.array(attrs["value_float"], dtype=np.float32)]
    if "value_floats" in attrs:
        return [np.array(attrs["value_floats"], dtype=np.float32)]
    if "value_int" in attrs:
        return [np.array(attrs["value_int"], dtype=np.int64)]
    if "value_ints" in attrs:
        return [np.array(attrs["value_ints"], dtype=np.int64)]
    return _delegate(context)


def _expand(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    shape = tuple(int(dim) for dim in context.input(1))
    output_shape = np.broadcast_shapes(data.shape, shape)
    return [np.array(np.broadcast_to(data, output_shape), copy=True)]


def _flatten(context: KernelContext) -> list[np.ndarray]:
    data = context.input(0)
    axis = context.attrs({"axis": 1})["axis"]
    if axis < 0:
        axis += data.ndim
    outer = int(np.prod(data.shape[:axis], dtype=np.int64))
    inner = int(np.prod(data.shape[axis:], dtype=np.int64))
    return [np.array(data.reshape(outer, inner), copy=True)]


NUMPY_KERNELS: dict[str, Callable[[KernelContext], list[np.ndarray]]] = {
    "Abs": _unary(np.abs),
    "Add": _binary(np.add),
    "Cast": _cast,
    "Concat": _concat,
    "Constant": _constant,
    "ConstantOfShape": _constant_of_shape,
    "Div": _div,
    "Equal": _equal,
    "Exp": _unary(np.exp),
    "Expand": _expand,
    "Flatten": _flatten,
    "Gather": _gather,
    "Identity": _identity,
    "MatMul": _matmul,
    "Mul": _binary(np.multiply),
    "Neg": _unary(np.negative),
    "Pow": _pow,
    "Range": _range,
    "ReduceSum": _reduce_sum,
    "Relu": _unary(lambda tensor: np.maximum(tensor, tensor.dtype.type(0))),
    "Reshape": _reshape,
    "Shape": _shape,
    "Size": _size,
    "Slice": _slice,
    "Sqrt": _unary(np.sqrt),
    "Squeeze": _squeeze,
    "Sub": _binary(np.subtract),
    "Transpose": _transpose,
    "Unsqueeze": _unsqueeze,
    "Where": _where,
}


def register_numpy_kernels(registry: KernelRegistry, target: str = CPU_TARGET) -> None:
    """Register every kernel in :data:`NUMPY_KERNELS` for ``target``."""
    for op_type, kernel in NUMPY_KERNELS.items():
        registry.register(op_type, target)(kernel)
