"""
Broadcasting and inverse-broadcast (sum-to-shape) helpers.

`sum_to_shape` is the primitive every broadcasting operation uses in its
backward pass: if an operand of shape `target_shape` was broadcast to the
result shape during the forward pass, the incoming gradient must be summed
over every broadcast axis to recover a gradient of exactly `target_shape`.

Conceptually, `sum_to_shape` is the inverse of `broadcast_to`:
- Forward: broadcast a smaller operand to a larger shape for elementwise ops.
- Backward: sum-reduce the gradient over the broadcast axes.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ...domain._errors import ShapeMismatch


def broadcast_shapes(op: str, *shapes: Sequence[int]) -> tuple[int, ...]:
    """
    Compute the broadcast result shape of `shapes`.

    Trailing dimensions are aligned; a dimension of size 1 stretches to
    match the other operand.

    Parameters
    ----------
    op : str
        Operation name reported in the error.
    *shapes : Sequence[int]
        Operand shapes.

    Returns
    -------
    tuple[int, ...]
        The broadcast shape.

    Raises
    ------
    ShapeMismatch
        If any pair of aligned dimensions differs and neither is 1.
    """
    shapes_ = [tuple(int(d) for d in s) for s in shapes]
    rank = max((len(s) for s in shapes_), default=0)
    out: list[int] = []
    for axis in range(rank):
        dim = 1
        for s in shapes_:
            pad = rank - len(s)
            d = 1 if axis < pad else s[axis - pad]
            if d == 1:
                continue
            if dim != 1 and d != dim:
                raise ShapeMismatch(
                    op,
                    shapes_,
                    detail=f"cannot broadcast at aligned axis {axis}: {dim} vs {d}",
                )
            dim = d
        out.append(dim)
    return tuple(out)


def _sum_to_shape_reduce_axes(
    src_shape: tuple[int, ...], target_shape: tuple[int, ...]
) -> tuple[tuple[int, ...], int]:
    """
    Compute the reduction axes and rank padding for `sum_to_shape`.

    Given a source shape `src_shape` (the broadcast/result shape) and a
    desired `target_shape` (the original pre-broadcast shape), this helper:

    1) Left-pads `target_shape` with leading ones so it has the same rank as
       `src_shape`.
    2) Validates that `target_shape` could have been broadcast to `src_shape`.
    3) Determines which axes must be summed to collapse broadcast dimensions
       back to size 1.

    Returns
    -------
    reduce_axes:
        Axes in the source to sum over using `keepdims=True`.
    pad:
        The number of leading dimensions added to the target.

    Raises
    ------
    ShapeMismatch
        If `target_shape` has higher rank than `src_shape`, or if any
        dimension is not broadcast-compatible.
    """
    src = tuple(int(d) for d in src_shape)
    tgt = tuple(int(d) for d in target_shape)

    if len(tgt) > len(src):
        raise ShapeMismatch(
            "sum_to_shape",
            (src, tgt),
            detail=f"target rank {len(tgt)} > source rank {len(src)}",
        )

    pad = len(src) - len(tgt)
    padded_tgt = (1,) * pad + tgt

    for i, (sd, td) in enumerate(zip(src, padded_tgt)):
        if td not in (1, sd):
            raise ShapeMismatch(
                "sum_to_shape",
                (src, tgt),
                detail=f"dim mismatch at axis {i}: src={sd}, target={td}",
            )

    reduce_axes = tuple(
        i for i, (sd, td) in enumerate(zip(src, padded_tgt)) if td == 1 and sd != 1
    )
    return reduce_axes, pad


def sum_to_shape(grad: np.ndarray, target_shape: Sequence[int]) -> np.ndarray:
    """
    Sum-reduce `grad` to `target_shape`.

    Parameters
    ----------
    grad : np.ndarray
        Gradient with the broadcast (result) shape.
    target_shape : Sequence[int]
        Original operand shape. Must be broadcast-compatible with
        `grad.shape`.

    Returns
    -------
    np.ndarray
        A new array of exactly `target_shape`.

    Raises
    ------
    ShapeMismatch
        If `target_shape` could not have been broadcast to `grad.shape`.
    """
    tgt = tuple(int(d) for d in target_shape)
    g = np.asarray(grad)
    if g.shape == tgt:
        return g.copy()

    reduce_axes, pad = _sum_to_shape_reduce_axes(g.shape, tgt)
    out = g.sum(axis=reduce_axes, keepdims=True) if reduce_axes else g
    if pad:
        out = out.reshape(out.shape[pad:])
    out = np.ascontiguousarray(out).reshape(tgt)

    # Defensive check
    if out.shape != tgt:
        raise RuntimeError(
            f"sum_to_shape produced {out.shape}, expected {tgt}"
        )
    return out
