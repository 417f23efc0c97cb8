"""ONNX node attribute extraction."""

__docformat__ = "restructuredtext"
__all__ = ["EXTRACT_ATTR_MAP", "scan_attrs"]

from collections.abc import Iterable
from typing import Any

import onnx
from onnx import AttributeProto

# Attribute type extractors
EXTRACT_ATTR_MAP: dict[int, Any] = {
    0: lambda x: None,  # UNDEFINED
    1: lambda x: x.f,  # FLOAT
    2: lambda x: x.i,  # INT
    3: lambda x: x.s.decode("utf-8"),  # STRING
    4: lambda x: onnx.numpy_helper.to_array(x.t),  # TENSOR
    5: lambda x: x.g,  # GRAPH
    6: lambda x: tuple(x.floats),  # FLOATS
    7: lambda x: tuple(x.ints),  # INTS
    8: lambda x: tuple(s.decode("utf-8") for s in x.strings),  # STRINGS
    9: lambda x: tuple(onnx.numpy_helper.to_array(t) for t in x.tensors),  # TENSORS
    10: lambda x: tuple(x.graphs),  # GRAPHS
    11: lambda x: None,  # SPARSE_TENSOR
}


def scan_attrs(default_attrs: dict[str, Any], attrs: Iterable[AttributeProto]) -> dict[str, Any]:
    """
    Scan and extract ONNX node attributes.

    :param default_attrs: Default attribute values
    :param attrs: ONNX node attributes
    :return: Extracted attributes merged with defaults
    """
    result = default_attrs.copy()
    for attr in attrs:
        extract = EXTRACT_ATTR_MAP.get(attr.type)
        if extract is None:
            raise NotImplementedError(
                f"Attribute {attr.name} with type {attr.type} is not supported"
            )
        result[attr.name] = extract(attr)
    return result
