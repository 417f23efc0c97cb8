"""Kernel registry keyed by operator and execution target."""

__docformat__ = "restructuredtext"
__all__ = ["Kernel", "KernelRegistry"]

import functools
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Protocol

import numpy as np

from foldonnx.kernels._constants import CPU_TARGET
from foldonnx.kernels._frame import KernelContext

if TYPE_CHECKING:
    from foldonnx.graph import Node


class Kernel(Protocol):
    """Anything that can compute the outputs of one node."""

    def compute(self, context: KernelContext) -> Sequence[np.ndarray]: ...


class _FunctionKernel:
    def __init__(self, function: Callable[[KernelContext], Sequence[np.ndarray]]):
        self._function = function

    def compute(self, context: KernelContext) -> Sequence[np.ndarray]:
        return self._function(context)


def _normalize_domain(domain: str) -> str:
    return "" if domain == "ai.onnx" else domain


class KernelRegistry:
    """Maps ``(domain, op_type, target)`` to a kernel factory.

    Explicitly registered kernels take precedence over fallback kernels. A
    fallback is a kernel class exposing
    ``supports(node, input_types, opset_imports) -> bool`` that covers many
    operators for one target.
    """

    def __init__(self):
        self._kernels: dict[tuple[str, str, str], Callable[[], Kernel]] = {}
        self._fallbacks: dict[str, list] = {}

    def register(self, op_type: str, target: str = CPU_TARGET, domain: str = "") -> Callable:
        """Decorator registering a kernel class or a ``compute`` function."""

        def decorator(kernel):
            if isinstance(kernel, type):
                factory = kernel
            else:
                factory = functools.partial(_FunctionKernel, kernel)
            self._kernels[(_normalize_domain(domain), op_type, target)] = factory
            return kernel

        return decorator

    def register_fallback(self, target: str, kernel_cls: type) -> None:
        self._fallbacks.setdefault(target, []).append(kernel_cls)

    def lookup(
        self,
        node: "Node",
        target: str,
        input_types: Sequence[int | None] | None = None,
        opset_imports: Mapping[str, int] | None = None,
    ) -> Callable[[], Kernel] | None:
        """Find the kernel factory for ``node`` on ``target``.

        ``input_types`` and ``opset_imports`` let fallbacks check the type
        signature; without them only the operator itself is checked.
        """
        key = (_normalize_domain(node.domain), node.op_type, target)
        if key in self._kernels:
            return self._kernels[key]
        for kernel_cls in self._fallbacks.get(target, []):
            if kernel_cls.supports(node, input_types, opset_imports):
                return kernel_cls
        return None

    def has_kernel(
        self,
        node: "Node",
        target: str,
        input_types: Sequence[int | None] | None = None,
        opset_imports: Mapping[str, int] | None = None,
    ) -> bool:
        return self.lookup(node, target, input_types, opset_imports) is not None

    def targets(self) -> list[str]:
        registered = {target for (_, _, target) in self._kernels} | set(self._fallbacks)
        return sorted(registered)

    def supported_targets(self, node: "Node") -> list[str]:
        return [target for target in self.targets() if self.has_kernel(node, target)]

    def create_kernel(self, node: "Node", targets: Sequence[str]) -> Kernel | None:
        """Instantiate the first kernel found for ``node`` in ``targets`` order."""
        for target in targets:
            factory = self.lookup(node, target)
            if factory is not None:
                return factory()
        return None
