"""
Matrix product for 1-D and 2-D operands.

Backward follows the adjoint rule for ``C = A @ B``:

    dA = dC @ B^T
    dB = A^T @ dC

1-D operands are promoted the way NumPy promotes them (a leading vector
becomes a row, a trailing vector becomes a column) and the gradients are
reshaped back to the original operand shapes.
"""

from __future__ import annotations

import numpy as np

from ._registry import register_backward, register_forward
from ._shape_rules import matmul_rule


@register_forward("matmul", arity=2, infer_shape=matmul_rule)
def matmul_forward(inputs, attrs):
    a, b = inputs
    return np.matmul(a, b)


@register_backward("matmul")
def matmul_backward(inputs, output, grad_output, attrs):
    a, b = inputs
    a2 = a.reshape(1, -1) if a.ndim == 1 else a
    b2 = b.reshape(-1, 1) if b.ndim == 1 else b
    g2 = np.reshape(grad_output, (a2.shape[0], b2.shape[1]))

    grad_a = g2 @ b2.T
    grad_b = a2.T @ g2
    return (grad_a.reshape(a.shape), grad_b.reshape(b.shape))
