"""
tapegrad: a tape-based reverse-mode automatic differentiation engine.

Collaborating numeric code builds graphs through `Session.apply` and reads
gradients back with `Session.backward` / `Session.gradient_of`.
"""

from .domain import (
    EngineError,
    GraphIntegrityError,
    NodeHandle,
    NumericalDomainError,
    ShapeMismatch,
    UnsupportedOp,
)
from .infrastructure import (
    EngineConfig,
    GradientMap,
    OperationRegistry,
    Session,
    TensorValue,
    get_registry,
)
from .infrastructure._debug import enable as enable_debug_logging
from .infrastructure.utils import GradcheckResult, gradcheck, numerical_gradient

__version__ = "0.1.0"

__all__ = [
    "EngineError",
    "GraphIntegrityError",
    "NodeHandle",
    "NumericalDomainError",
    "ShapeMismatch",
    "UnsupportedOp",
    "EngineConfig",
    "GradientMap",
    "OperationRegistry",
    "Session",
    "TensorValue",
    "get_registry",
    "enable_debug_logging",
    "GradcheckResult",
    "gradcheck",
    "numerical_gradient",
]
