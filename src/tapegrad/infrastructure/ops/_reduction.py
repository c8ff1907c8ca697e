"""
Axis reductions: sum, mean, max.

All three accept an ``axis`` attribute (int, tuple of ints, or None for a
full reduction) and a ``keepdims`` flag. The backward functions re-expand
the incoming gradient to the reduced input's rank and broadcast it back to
the input shape.
"""

from __future__ import annotations

import numpy as np

from ._registry import register_backward, register_forward
from ._shape_rules import normalize_axes, reduction_rule


def _expand_to_input(grad_output: np.ndarray, x_shape, attrs, op: str) -> np.ndarray:
    """
    Re-insert reduced axes (when keepdims was False) and broadcast `grad_output`
    to `x_shape`.
    """
    axes = normalize_axes(op, attrs.get("axis"), tuple(x_shape))
    g = np.asarray(grad_output)
    if not attrs.get("keepdims", False):
        axes_ = tuple(range(len(x_shape))) if axes is None else axes
        g = np.expand_dims(g, axes_) if axes_ else g
    return np.broadcast_to(g, x_shape)


def _reduce_count(x_shape, attrs, op: str) -> int:
    axes = normalize_axes(op, attrs.get("axis"), tuple(x_shape))
    dims = x_shape if axes is None else [x_shape[a] for a in axes]
    count = 1
    for d in dims:
        count *= int(d)
    return count


@register_forward("sum", arity=1, infer_shape=reduction_rule("sum"))
def sum_forward(inputs, attrs):
    (x,) = inputs
    axes = normalize_axes("sum", attrs.get("axis"), x.shape)
    return np.sum(x, axis=axes, keepdims=bool(attrs.get("keepdims", False)))


@register_backward("sum")
def sum_backward(inputs, output, grad_output, attrs):
    """
    Broadcast the gradient back over the summed axes.
    """
    (x,) = inputs
    return (np.array(_expand_to_input(grad_output, x.shape, attrs, "sum")),)


@register_forward("mean", arity=1, infer_shape=reduction_rule("mean", allow_empty=False))
def mean_forward(inputs, attrs):
    (x,) = inputs
    axes = normalize_axes("mean", attrs.get("axis"), x.shape)
    return np.mean(x, axis=axes, keepdims=bool(attrs.get("keepdims", False)))


@register_backward("mean")
def mean_backward(inputs, output, grad_output, attrs):
    (x,) = inputs
    count = _reduce_count(x.shape, attrs, "mean")
    return (_expand_to_input(grad_output, x.shape, attrs, "mean") / count,)


@register_forward("max", arity=1, infer_shape=reduction_rule("max", allow_empty=False))
def max_forward(inputs, attrs):
    (x,) = inputs
    axes = normalize_axes("max", attrs.get("axis"), x.shape)
    return np.max(x, axis=axes, keepdims=bool(attrs.get("keepdims", False)))


@register_backward("max")
def max_backward(inputs, output, grad_output, attrs):
    """
    Route the gradient to every element equal to the maximum of its slice.
    """
    (x,) = inputs
    m = _expand_to_input(output, x.shape, attrs, "max")
    mask = (x == m).astype(grad_output.dtype)
    return (mask * _expand_to_input(grad_output, x.shape, attrs, "max"),)
