"""
Binary elementwise operations with broadcasting.

Every operation here accepts operands whose shapes are compatible under the
standard broadcasting rule. The backward functions compute the gradient at
the broadcast (result) shape and then reduce it with `sum_to_shape` so that
each returned gradient matches its operand's original shape exactly.

Registered kinds: add, subtract, multiply, divide, maximum, minimum.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import NumericalDomainError
from ..tensor._broadcast import sum_to_shape
from ._registry import register_backward, register_forward
from ._shape_rules import broadcast_rule


@register_forward("add", arity=2, infer_shape=broadcast_rule("add"))
def add_forward(inputs, attrs):
    a, b = inputs
    return np.add(a, b)


@register_backward("add")
def add_backward(inputs, output, grad_output, attrs):
    a, b = inputs
    return (sum_to_shape(grad_output, a.shape), sum_to_shape(grad_output, b.shape))


@register_forward("subtract", arity=2, infer_shape=broadcast_rule("subtract"))
def subtract_forward(inputs, attrs):
    a, b = inputs
    return np.subtract(a, b)


@register_backward("subtract")
def subtract_backward(inputs, output, grad_output, attrs):
    a, b = inputs
    return (sum_to_shape(grad_output, a.shape), sum_to_shape(-grad_output, b.shape))


@register_forward("multiply", arity=2, infer_shape=broadcast_rule("multiply"))
def multiply_forward(inputs, attrs):
    a, b = inputs
    return np.multiply(a, b)


@register_backward("multiply")
def multiply_backward(inputs, output, grad_output, attrs):
    """
    d(a*b)/da = grad_output * b, d(a*b)/db = grad_output * a
    """
    a, b = inputs
    return (
        sum_to_shape(grad_output * b, a.shape),
        sum_to_shape(grad_output * a, b.shape),
    )


@register_forward("divide", arity=2, infer_shape=broadcast_rule("divide"))
def divide_forward(inputs, attrs):
    """
    Elementwise quotient ``a / b``.

    Raises
    ------
    NumericalDomainError
        If any element of the divisor is exactly zero.
    """
    a, b = inputs
    if np.any(b == 0):
        raise NumericalDomainError("divide", "division by exact zero")
    return np.divide(a, b)


@register_backward("divide")
def divide_backward(inputs, output, grad_output, attrs):
    """
    d(a/b)/da = grad_output / b, d(a/b)/db = -grad_output * a / b**2
    """
    a, b = inputs
    return (
        sum_to_shape(grad_output / b, a.shape),
        sum_to_shape(-grad_output * a / (b * b), b.shape),
    )


# Ties route the gradient to the first operand.


@register_forward("maximum", arity=2, infer_shape=broadcast_rule("maximum"))
def maximum_forward(inputs, attrs):
    a, b = inputs
    return np.maximum(a, b)


@register_backward("maximum")
def maximum_backward(inputs, output, grad_output, attrs):
    a, b = inputs
    mask = (a >= b).astype(grad_output.dtype)
    return (
        sum_to_shape(grad_output * mask, a.shape),
        sum_to_shape(grad_output * (1 - mask), b.shape),
    )


@register_forward("minimum", arity=2, infer_shape=broadcast_rule("minimum"))
def minimum_forward(inputs, attrs):
    a, b = inputs
    return np.minimum(a, b)


@register_backward("minimum")
def minimum_backward(inputs, output, grad_output, attrs):
    a, b = inputs
    mask = (a <= b).astype(grad_output.dtype)
    return (
        sum_to_shape(grad_output * mask, a.shape),
        sum_to_shape(grad_output * (1 - mask), b.shape),
    )
