"""Mutable graph IR over ONNX protobufs.

Nodes live in a sparse arena indexed by a stable integer handle. Removing a
node empties its slot and handles are never reused, so a lookup miss is a
normal result rather than an error.
"""

__docformat__ = "restructuredtext"
__all__ = ["Graph", "Node"]

import heapq
from collections.abc import Iterable, Iterator

import onnx
from onnx import AttributeProto, GraphProto, ModelProto, NodeProto, TensorProto, ValueInfoProto

from foldonnx.errors import GraphError
from foldonnx.kernels._constants import CPU_TARGET, DEFAULT_IR_VERSION, DEFAULT_OPSET


class Node:
    """A single operator in a :class:`Graph`.

    Control-flow attributes (``GRAPH`` / ``GRAPHS``) are lifted into
    :attr:`subgraphs` as child graphs and written back on serialization.
    """

    def __init__(
        self,
        index: int,
        op_type: str,
        inputs: Iterable[str],
        outputs: Iterable[str],
        name: str = "",
        domain: str = "",
        attributes: Iterable[AttributeProto] = (),
        execution_target: str = CPU_TARGET,
    ):
        self.index = index
        self.op_type = op_type
        self.inputs = list(inputs)
        self.outputs = list(outputs)
        self.name = name
        self.domain = domain
        self.attributes: dict[str, AttributeProto] = {attr.name: attr for attr in attributes}
        self.execution_target = execution_target
        self.subgraphs: dict[str, list["Graph"]] = {}

    def __repr__(self) -> str:
        return f"Node(index={self.index}, op_type={self.op_type!r}, name={self.name!r})"

    @property
    def existing_outputs(self) -> list[str]:
        """Output names that are present (omitted optional outputs are empty)."""
        return [name for name in self.outputs if name]

    @property
    def existing_inputs(self) -> list[str]:
        return [name for name in self.inputs if name]

    def contains_subgraph(self) -> bool:
        return any(self.subgraphs.values())

    def implicit_inputs(self) -> list[str]:
        """Outer-scope names consumed by the nested subgraphs of this node."""
        names: list[str] = []
        for graphs in self.subgraphs.values():
            for subgraph in graphs:
                for name in subgraph.outer_scope_names():
                    if name not in names:
                        names.append(name)
        return names

    def to_onnx(self) -> NodeProto:
        node = onnx.helper.make_node(
            self.op_type,
            inputs=self.inputs,
            outputs=self.outputs,
            name=self.name,
            domain=self.domain or None,
        )
        for attr_name, attr in self.attributes.items():
            if attr_name in self.subgraphs:
                graphs = [subgraph.to_onnx() for subgraph in self.subgraphs[attr_name]]
                if attr.type == AttributeProto.GRAPH:
                    node.attribute.append(onnx.helper.make_attribute(attr_name, graphs[0]))
                else:
                    node.attribute.append(
                        onnx.helper.make_attribute(
                            attr_name, graphs, attr_type=AttributeProto.GRAPHS
                        )
                    )
                continue
            node.attribute.append(attr)
        return node


class Graph:
    """Mutable container of nodes, initializers and graph-level inputs/outputs."""

    def __init__(
        self,
        name: str = "graph",
        inputs: Iterable[ValueInfoProto] = (),
        outputs: Iterable[ValueInfoProto] = (),
        initializers: Iterable[TensorProto] = (),
        value_info: Iterable[ValueInfoProto] = (),
        opset_imports: dict[str, int] | None = None,
        ir_version: int = DEFAULT_IR_VERSION,
        parent: "Graph | None" = None,
    ):
        self.name = name
        self.inputs = list(inputs)
        self.outputs = list(outputs)
        self.initializers: dict[str, TensorProto] = {}
        for initializer in initializers:
            if initializer.name in self.initializers:
                raise GraphError(f"Duplicate initializer name: {initializer.name}.")
            self.initializers[initializer.name] = initializer
        self.value_info: dict[str, ValueInfoProto] = {vi.name: vi for vi in value_info}
        self.opset_imports = dict(opset_imports or {"": DEFAULT_OPSET})
        self.ir_version = ir_version
        self.parent = parent

        self.nodes: list[Node | None] = []
        self._producers: dict[str, int] = {}

    # Construction and serialization

    @classmethod
    def from_onnx(
        cls,
        graph_proto: GraphProto,
        opset_imports: dict[str, int] | None = None,
        ir_version: int = DEFAULT_IR_VERSION,
        parent: "Graph | None" = None,
    ) -> "Graph":
        graph = cls(
            name=graph_proto.name,
            inputs=graph_proto.input,
            outputs=graph_proto.output,
            initializers=graph_proto.initializer,
            value_info=graph_proto.value_info,
            opset_imports=opset_imports,
            ir_version=ir_version,
            parent=parent,
        )
        for node_proto in graph_proto.node:
            node = graph.add_node(
                node_proto.op_type,
                node_proto.input,
                node_proto.output,
                name=node_proto.name,
                domain=node_proto.domain,
                attributes=node_proto.attribute,
            )
            for attr in node_proto.attribute:
                if attr.type == AttributeProto.GRAPH:
                    node.subgraphs[attr.name] = [
                        cls.from_onnx(attr.g, graph.opset_imports, ir_version, parent=graph)
                    ]
                elif attr.type == AttributeProto.GRAPHS:
                    node.subgraphs[attr.name] = [
                        cls.from_onnx(g, graph.opset_imports, ir_version, parent=graph)
                        for g in attr.graphs
                    ]
        return graph

    @classmethod
    def from_model(cls, model: ModelProto) -> "Graph":
        opset_imports = {opset.domain: opset.version for opset in model.opset_import}
        return cls.from_onnx(model.graph, opset_imports, model.ir_version or DEFAULT_IR_VERSION)

    def to_onnx(self) -> GraphProto:
        io_names = {vi.name for vi in self.inputs} | {vi.name for vi in self.outputs}
        produced = set(self._producers)
        value_info = [
            vi for name, vi in self.value_info.items() if name in produced and name not in io_names
        ]
        return onnx.helper.make_graph(
            [node.to_onnx() for node in self.live_nodes()],
            self.name,
            self.inputs,
            self.outputs,
            initializer=list(self.initializers.values()),
            value_info=value_info,
        )

    def to_model(self) -> ModelProto:
        model = onnx.helper.make_model(
            self.to_onnx(),
            opset_imports=[
                onnx.helper.make_opsetid(domain, version)
                for domain, version in self.opset_imports.items()
            ],
        )
        model.ir_version = self.ir_version
        return model

    # Nodes

    def add_node(
        self,
        op_type: str,
        inputs: Iterable[str],
        outputs: Iterable[str],
        name: str = "",
        domain: str = "",
        attributes: Iterable[AttributeProto] = (),
        execution_target: str = CPU_TARGET,
    ) -> Node:
        node = Node(
            len(self.nodes),
            op_type,
            inputs,
            outputs,
            name=name,
            domain=domain,
            attributes=attributes,
            execution_target=execution_target,
        )
        for output_name in node.existing_outputs:
            if output_name in self._producers:
                raise GraphError(
                    f"Value {output_name} is produced by more than one node "
                    f"({self._producers[output_name]} and {node.index})."
                )
        for output_name in node.existing_outputs:
            self._producers[output_name] = node.index
        self.nodes.append(node)
        return node

    def get_node(self, index: int) -> Node | None:
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def live_nodes(self) -> Iterator[Node]:
        return (node for node in self.nodes if node is not None)

    @property
    def node_count(self) -> int:
        return sum(1 for _ in self.live_nodes())

    def producer(self, name: str) -> Node | None:
        index = self._producers.get(name)
        return None if index is None else self.nodes[index]

    def consumers(self, name: str) -> list[Node]:
        return [
            node
            for node in self.live_nodes()
            if name in node.inputs or name in node.implicit_inputs()
        ]

    def topological_order(self) -> list[int]:
        """Return a snapshot of live node indices in topological order.

        Ties are broken by node index so the order is deterministic.
        """
        in_degree: dict[int, int] = {}
        successors: dict[int, list[int]] = {}
        for node in self.live_nodes():
            predecessors = set()
            for name in node.inputs + node.implicit_inputs():
                producer_index = self._producers.get(name)
                if producer_index is not None and producer_index != node.index:
                    predecessors.add(producer_index)
            in_degree[node.index] = len(predecessors)
            for producer_index in predecessors:
                successors.setdefault(producer_index, []).append(node.index)

        ready = [index for index, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            index = heapq.heappop(ready)
            order.append(index)
            for successor in successors.get(index, []):
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    heapq.heappush(ready, successor)

        if len(order) != len(in_degree):
            raise GraphError(
                f"Graph {self.name} contains a cycle: "
                f"ordered={len(order)}, nodes={len(in_degree)}."
            )
        return order

    def remove_node_output_edges(self, node: Node) -> list[tuple[int, str]]:
        """Sever the edges from ``node`` to its consumers.

        Consumers keep their input names, which now resolve to whatever else
        defines the name (usually an initializer).

        :return: The severed edges as ``(consumer index, value name)`` pairs
        """
        severed = []
        for output_name in node.existing_outputs:
            if self._producers.get(output_name) != node.index:
                continue
            for consumer in self.consumers(output_name):
                severed.append((consumer.index, output_name))
            del self._producers[output_name]
        return severed

    def remove_node(self, index: int) -> None:
        node = self.get_node(index)
        if node is None:
            raise GraphError(f"Node index {index} does not exist in graph {self.name}.")
        for output_name in node.existing_outputs:
            if self._producers.get(output_name) == index:
                del self._producers[output_name]
        self.nodes[index] = None

    # Initializers

    def get_initializer(self, name: str) -> TensorProto | None:
        return self.initializers.get(name)

    def add_initializer(self, tensor: TensorProto) -> None:
        """Insert ``tensor``, overwriting any initializer with the same name."""
        self.initializers[tensor.name] = tensor

    def all_initializers(self) -> dict[str, TensorProto]:
        """Initializers visible from this graph, inner scopes shadowing outer ones."""
        initializers = {} if self.parent is None else self.parent.all_initializers()
        initializers.update(self.initializers)
        return initializers

    def get_constant_initializer(
        self,
        name: str,
        excluded_names: frozenset[str] = frozenset(),
        check_outer_scope: bool = True,
    ) -> TensorProto | None:
        """Return the initializer for ``name`` if it is a compile-time constant.

        An initializer that is also a graph input can be overridden at runtime
        and is not constant. Names defined locally in any other way shadow
        outer scopes.
        """
        if name in excluded_names:
            return None
        if name in self.initializers:
            if name in self.input_names():
                return None
            return self.initializers[name]
        if name in self._producers or name in self.input_names():
            return None
        if check_outer_scope and self.parent is not None:
            return self.parent.get_constant_initializer(name, excluded_names, check_outer_scope)
        return None

    # Edges

    def input_names(self) -> set[str]:
        return {vi.name for vi in self.inputs}

    def output_names(self) -> set[str]:
        return {vi.name for vi in self.outputs}

    def is_graph_output(self, name: str) -> bool:
        return name in self.output_names()

    def is_node_outputs_in_graph_outputs(self, node: Node) -> bool:
        output_names = self.output_names()
        return any(name in output_names for name in node.existing_outputs)

    def declared_elem_type(self, name: str) -> int | None:
        """Element type declared for edge ``name``, or None if unknown."""
        for value_info in (*self.outputs, *self.value_info.values(), *self.inputs):
            if value_info.name != name:
                continue
            if value_info.type.HasField("tensor_type") and value_info.type.tensor_type.elem_type:
                return value_info.type.tensor_type.elem_type
        return None

    def outer_scope_names(self) -> list[str]:
        """Names consumed in this graph (or nested ones) that it does not define."""
        defined = set(self.initializers) | self.input_names() | set(self._producers)
        names: list[str] = []
        for node in self.live_nodes():
            for name in node.existing_inputs + node.implicit_inputs():
                if name not in defined and name not in names:
                    names.append(name)
        for name in self.output_names():
            if name not in defined and name not in names:
                names.append(name)
        return names
