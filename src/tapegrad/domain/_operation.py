"""
Operation descriptor definitions.

Differentiable operations are represented as data rather than as a class
hierarchy: each registry entry is an `OperationDescriptor` holding three
pure functions (forward, backward, shape inference). Descriptors carry no
per-call state and are shared read-only by every session.

Function contracts
------------------
forward(inputs, attrs) -> array
    Compute the output from the input arrays. May raise
    `NumericalDomainError` when an input lies outside the function's domain.
backward(inputs, output, grad_output, attrs) -> sequence of arrays
    Vector-Jacobian product: given the gradient with respect to the output,
    return exactly one gradient per input, each with that input's shape.
infer_shape(shapes, attrs) -> shape
    Validate operand shapes and return the output shape, raising
    `ShapeMismatch` on incompatibility. Called before `forward`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

Shape = tuple[int, ...]
Attrs = Mapping[str, Any]

ForwardFn = Callable[[Sequence[Any], Attrs], Any]
BackwardFn = Callable[[Sequence[Any], Any, Any, Attrs], Sequence[Any]]
ShapeFn = Callable[[Sequence[Shape], Attrs], Shape]


@dataclass(frozen=True)
class OperationDescriptor:
    """
    Registry entry describing one differentiable operation.

    Attributes
    ----------
    name : str
        The operation kind (registry key).
    arity : int
        Number of tensor operands the operation accepts.
    forward : ForwardFn
        Forward evaluator.
    backward : BackwardFn
        Backward (vector-Jacobian product) evaluator.
    infer_shape : ShapeFn
        Shape-inference and validation rule.
    """

    name: str
    arity: int
    forward: ForwardFn
    backward: BackwardFn
    infer_shape: ShapeFn
