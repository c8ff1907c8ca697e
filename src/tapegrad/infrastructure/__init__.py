"""
Infrastructure layer: NumPy-backed values, built-in operations, graph
machinery and the `Session` entry point.
"""

from ._config import EngineConfig
from ._session import Session
from .graph import GradientMap
from .ops import OperationRegistry, get_registry
from .tensor import TensorValue

__all__ = [
    "EngineConfig",
    "Session",
    "GradientMap",
    "OperationRegistry",
    "get_registry",
    "TensorValue",
]
