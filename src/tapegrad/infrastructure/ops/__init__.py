"""
Built-in differentiable operations and the process-wide registry.
"""

from ._registry import OperationRegistry, get_registry

__all__ = ["OperationRegistry", "get_registry"]
