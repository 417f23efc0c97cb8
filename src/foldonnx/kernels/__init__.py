"""Kernel registry and single-node execution environment."""

__docformat__ = "restructuredtext"
__all__ = [
    "CPU_TARGET",
    "ExecutionFrame",
    "Kernel",
    "KernelContext",
    "KernelRegistry",
    "NUMPY_KERNELS",
    "OnnxRuntimeKernel",
    "default_registry",
    "register_numpy_kernels",
]

import functools

from foldonnx.kernels._constants import CPU_TARGET
from foldonnx.kernels._frame import ExecutionFrame, KernelContext
from foldonnx.kernels._numpy_kernels import NUMPY_KERNELS, register_numpy_kernels
from foldonnx.kernels._ort_kernel import OnnxRuntimeKernel
from foldonnx.kernels._registry import Kernel, KernelRegistry


@functools.cache
def default_registry() -> KernelRegistry:
    """Registry with the NumPy kernels and the ONNX Runtime fallback on CPU."""
    registry = KernelRegistry()
    register_numpy_kernels(registry, CPU_TARGET)
    registry.register_fallback(CPU_TARGET, OnnxRuntimeKernel)
    return registry
