"""
Domain layer: errors, immutable graph records, operation descriptors and
the interfaces collaborators program against. No numeric kernels live here.
"""

from ._errors import (
    EngineError,
    GraphIntegrityError,
    NumericalDomainError,
    ShapeMismatch,
    UnsupportedOp,
)
from ._node import LEAF, Node, NodeHandle
from ._operation import OperationDescriptor
from ._session import IGradientMap, ISession
from ._tensor import ITensorValue

__all__ = [
    "EngineError",
    "GraphIntegrityError",
    "NumericalDomainError",
    "ShapeMismatch",
    "UnsupportedOp",
    "LEAF",
    "Node",
    "NodeHandle",
    "OperationDescriptor",
    "IGradientMap",
    "ISession",
    "ITensorValue",
]
