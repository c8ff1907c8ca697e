"""
Shape-only operations: reshape, transpose, broadcast_to.

Their backward functions apply the inverse shape transform to the incoming
gradient (reshape back, inverse permutation, sum over broadcast axes).
"""

from __future__ import annotations

import numpy as np

from ..tensor._broadcast import sum_to_shape
from ._registry import register_backward, register_forward
from ._shape_rules import broadcast_to_rule, reshape_rule, transpose_axes, transpose_rule


@register_forward("reshape", arity=1, infer_shape=reshape_rule)
def reshape_forward(inputs, attrs):
    (x,) = inputs
    return np.reshape(x, reshape_rule((x.shape,), attrs)).copy()


@register_backward("reshape")
def reshape_backward(inputs, output, grad_output, attrs):
    return (np.reshape(grad_output, inputs[0].shape),)


@register_forward("transpose", arity=1, infer_shape=transpose_rule)
def transpose_forward(inputs, attrs):
    (x,) = inputs
    return np.ascontiguousarray(np.transpose(x, transpose_axes(x.shape, attrs.get("axes"))))


@register_backward("transpose")
def transpose_backward(inputs, output, grad_output, attrs):
    (x,) = inputs
    perm = transpose_axes(x.shape, attrs.get("axes"))
    return (np.transpose(grad_output, np.argsort(perm)),)


@register_forward("broadcast_to", arity=1, infer_shape=broadcast_to_rule)
def broadcast_to_forward(inputs, attrs):
    (x,) = inputs
    return np.broadcast_to(x, tuple(int(d) for d in attrs["shape"])).copy()


@register_backward("broadcast_to")
def broadcast_to_backward(inputs, output, grad_output, attrs):
    return (sum_to_shape(grad_output, inputs[0].shape),)
