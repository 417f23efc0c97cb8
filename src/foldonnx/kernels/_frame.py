"""Per-node execution environment.

An :class:`ExecutionFrame` owns a flat list of value slots for the values a
handful of nodes touch. Constant slots are preloaded from initializers; the
rest are filled by kernels. The frame never references the graph it was
built from, so it can be discarded as soon as outputs are fetched.
"""

__docformat__ = "restructuredtext"
__all__ = ["ExecutionFrame", "KernelContext"]

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np
import onnx
from onnx import TensorProto

from foldonnx.errors import FoldingInvariantError
from foldonnx.kernels._attrs import scan_attrs
from foldonnx.kernels._constants import DEFAULT_IR_VERSION

if TYPE_CHECKING:
    from foldonnx.graph import Node


class ExecutionFrame:
    """Value slots for evaluating ``nodes`` against constant ``initializers``."""

    def __init__(self, nodes: Iterable["Node"], initializers: Mapping[str, TensorProto]):
        self._index_by_name: dict[str, int] = {}
        self._values: list[np.ndarray | None] = []

        for node in nodes:
            for name in (*node.existing_inputs, *node.existing_outputs):
                if name not in self._index_by_name:
                    self._index_by_name[name] = len(self._values)
                    self._values.append(None)

        # Only the initializers the nodes reference are decoded
        for name, index in self._index_by_name.items():
            if name in initializers:
                self._values[index] = onnx.numpy_helper.to_array(initializers[name])

    def __len__(self) -> int:
        return len(self._values)

    def get_value_index(self, name: str) -> int:
        if name not in self._index_by_name:
            raise FoldingInvariantError(f"Value {name} is not part of the execution frame.")
        return self._index_by_name[name]

    def get_value(self, index: int) -> np.ndarray | None:
        return self._values[index]

    def set_value(self, index: int, value: Any) -> None:
        self._values[index] = value

    def get_outputs(self, fetch_indices: Sequence[int]) -> list[Any]:
        """Return the values in ``fetch_indices`` order.

        :raises FoldingInvariantError: If a requested slot was never filled
        """
        fetches = []
        for index in fetch_indices:
            value = self._values[index]
            if value is None:
                raise FoldingInvariantError(f"Execution frame slot {index} was not produced.")
            fetches.append(value)
        return fetches


class KernelContext:
    """What a kernel sees of the node it computes."""

    def __init__(
        self,
        frame: ExecutionFrame,
        node: "Node",
        opset_imports: Mapping[str, int] | None = None,
        ir_version: int = DEFAULT_IR_VERSION,
        output_types: Mapping[str, int] | None = None,
    ):
        self.frame = frame
        self.node = node
        self.output_types = dict(output_types or {})
        self.opset_imports = dict(opset_imports or {})
        self.ir_version = ir_version

    @property
    def num_inputs(self) -> int:
        return len(self.node.inputs)

    @property
    def output_names(self) -> list[str]:
        return self.node.existing_outputs

    def input(self, i: int) -> np.ndarray | None:
        """Input ``i``, or None when it is omitted or out of range."""
        if i >= len(self.node.inputs) or not self.node.inputs[i]:
            return None
        value = self.frame.get_value(self.frame.get_value_index(self.node.inputs[i]))
        if value is None:
            raise FoldingInvariantError(
                f"Input {self.node.inputs[i]} of {self.node.op_type} has no constant value."
            )
        return value

    def inputs(self) -> list[np.ndarray | None]:
        return [self.input(i) for i in range(self.num_inputs)]

    def attrs(self, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        return scan_attrs(defaults or {}, self.node.attributes.values())

    def opset(self, domain: str = "") -> int:
        if domain in self.opset_imports:
            return self.opset_imports[domain]
        if domain == "" and "ai.onnx" in self.opset_imports:
            return self.opset_imports["ai.onnx"]
        raise FoldingInvariantError(f"No opset imported for domain {domain!r}.")
