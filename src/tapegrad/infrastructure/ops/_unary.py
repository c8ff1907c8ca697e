"""
Unary elementwise operations.

Registered kinds: negate, exp, log, sqrt, square, abs, tanh, sigmoid, relu,
clip, power.

Domain guards
-------------
`log`, `sqrt` and `power` reject inputs outside their real domain at forward
time with `NumericalDomainError` instead of producing NaN/Inf. `sqrt` and
fractional `power` also reject a backward pass through an input of exactly
zero, where the derivative is unbounded.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import NumericalDomainError
from ._registry import register_backward, register_forward
from ._shape_rules import same_shape


@register_forward("negate", arity=1, infer_shape=same_shape)
def negate_forward(inputs, attrs):
    return np.negative(inputs[0])


@register_backward("negate")
def negate_backward(inputs, output, grad_output, attrs):
    return (-grad_output,)


@register_forward("exp", arity=1, infer_shape=same_shape)
def exp_forward(inputs, attrs):
    return np.exp(inputs[0])


@register_backward("exp")
def exp_backward(inputs, output, grad_output, attrs):
    # d/dx exp(x) = exp(x)
    return (grad_output * output,)


@register_forward("log", arity=1, infer_shape=same_shape)
def log_forward(inputs, attrs):
    """
    Elementwise natural logarithm.

    Raises
    ------
    NumericalDomainError
        If any input element is zero or negative.
    """
    (x,) = inputs
    if np.any(~(x > 0)):
        raise NumericalDomainError("log", "input contains non-positive values")
    return np.log(x)


@register_backward("log")
def log_backward(inputs, output, grad_output, attrs):
    # d/dx log(x) = 1/x
    return (grad_output / inputs[0],)


@register_forward("sqrt", arity=1, infer_shape=same_shape)
def sqrt_forward(inputs, attrs):
    (x,) = inputs
    if np.any(~(x >= 0)):
        raise NumericalDomainError("sqrt", "input contains negative values")
    return np.sqrt(x)


@register_backward("sqrt")
def sqrt_backward(inputs, output, grad_output, attrs):
    """
    d/dx sqrt(x) = 1 / (2 sqrt(x)), unbounded at x == 0.
    """
    if np.any((output == 0) & (grad_output != 0)):
        raise NumericalDomainError("sqrt", "gradient is unbounded at 0")
    safe = np.where(output == 0, 1, output)
    return (np.where(output == 0, 0, grad_output / (2 * safe)),)


@register_forward("square", arity=1, infer_shape=same_shape)
def square_forward(inputs, attrs):
    return np.square(inputs[0])


@register_backward("square")
def square_backward(inputs, output, grad_output, attrs):
    return (2 * inputs[0] * grad_output,)


@register_forward("abs", arity=1, infer_shape=same_shape)
def abs_forward(inputs, attrs):
    return np.abs(inputs[0])


@register_backward("abs")
def abs_backward(inputs, output, grad_output, attrs):
    # subgradient 0 at x == 0
    return (np.sign(inputs[0]) * grad_output,)


@register_forward("tanh", arity=1, infer_shape=same_shape)
def tanh_forward(inputs, attrs):
    return np.tanh(inputs[0])


@register_backward("tanh")
def tanh_backward(inputs, output, grad_output, attrs):
    return (grad_output * (1 - output * output),)


@register_forward("sigmoid", arity=1, infer_shape=same_shape)
def sigmoid_forward(inputs, attrs):
    """
    Numerically stable logistic function.

    Uses ``1 / (1 + exp(-x))`` for non-negative inputs and
    ``exp(x) / (1 + exp(x))`` otherwise, so neither branch overflows.
    """
    (x,) = inputs
    z = np.exp(-np.abs(x))
    return np.where(x >= 0, 1 / (1 + z), z / (1 + z))


@register_backward("sigmoid")
def sigmoid_backward(inputs, output, grad_output, attrs):
    return (grad_output * output * (1 - output),)


@register_forward("relu", arity=1, infer_shape=same_shape)
def relu_forward(inputs, attrs):
    return np.maximum(inputs[0], 0)


@register_backward("relu")
def relu_backward(inputs, output, grad_output, attrs):
    return (grad_output * (inputs[0] > 0),)


def _clip_bounds(attrs):
    lo = attrs.get("min")
    hi = attrs.get("max")
    if lo is None and hi is None:
        raise TypeError("clip: at least one of 'min' or 'max' is required")
    if lo is not None and hi is not None and lo > hi:
        raise ValueError(f"clip: min ({lo}) must not exceed max ({hi})")
    return lo, hi


def _clip_shape(shapes, attrs):
    _clip_bounds(attrs)
    return same_shape(shapes, attrs)


@register_forward("clip", arity=1, infer_shape=_clip_shape)
def clip_forward(inputs, attrs):
    lo, hi = _clip_bounds(attrs)
    return np.clip(inputs[0], lo, hi)


@register_backward("clip")
def clip_backward(inputs, output, grad_output, attrs):
    """
    Gradient passes where the input lies inside [min, max] (inclusive).
    """
    (x,) = inputs
    lo, hi = _clip_bounds(attrs)
    mask = np.ones(x.shape, dtype=bool)
    if lo is not None:
        mask &= x >= lo
    if hi is not None:
        mask &= x <= hi
    return (grad_output * mask,)


def _power_exponent(attrs) -> float:
    if "exponent" not in attrs:
        raise TypeError("power: missing required attribute 'exponent'")
    p = attrs["exponent"]
    if isinstance(p, bool) or not isinstance(p, (int, float, np.number)):
        raise TypeError(f"power: exponent must be a real scalar, got {p!r}")
    return float(p)


def _power_shape(shapes, attrs):
    _power_exponent(attrs)
    return same_shape(shapes, attrs)


@register_forward("power", arity=1, infer_shape=_power_shape)
def power_forward(inputs, attrs):
    """
    Elementwise ``x ** exponent`` for a scalar exponent.

    Raises
    ------
    NumericalDomainError
        If the exponent is fractional and an input is negative, or the
        exponent is negative and an input is zero.
    """
    (x,) = inputs
    p = _power_exponent(attrs)
    if not float(p).is_integer() and np.any(x < 0):
        raise NumericalDomainError(
            "power", f"negative base with non-integer exponent {p}"
        )
    if p < 0 and np.any(x == 0):
        raise NumericalDomainError("power", f"zero base with negative exponent {p}")
    return np.power(x, p)


@register_backward("power")
def power_backward(inputs, output, grad_output, attrs):
    (x,) = inputs
    p = _power_exponent(attrs)
    if p == 0:
        return (np.zeros_like(grad_output),)
    if p >= 1:
        return (grad_output * p * np.power(x, p - 1),)
    if np.any((x == 0) & (grad_output != 0)):
        raise NumericalDomainError("power", "gradient is unbounded at 0")
    safe = np.where(x == 0, 1, x)
    return (np.where(x == 0, 0, grad_output * p * np.power(safe, p - 1)),)
