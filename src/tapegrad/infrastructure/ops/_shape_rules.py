"""
Shape-inference rules shared by the built-in operations.

Each rule has the signature ``rule(shapes, attrs) -> shape`` and raises
`ShapeMismatch` (carrying the operation name and the offending shapes) when
the operands are incompatible. Rules run before any forward computation, so
a failing rule guarantees that no node is created.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np

from ...domain._errors import ShapeMismatch
from ..tensor._broadcast import broadcast_shapes

Shape = tuple[int, ...]
Rule = Callable[[Sequence[Shape], Mapping[str, Any]], Shape]


def same_shape(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
    """Elementwise unary rule: the output keeps the input shape."""
    return tuple(shapes[0])


def broadcast_rule(op: str) -> Rule:
    """Return a rule applying standard broadcasting to every operand."""

    def rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
        return broadcast_shapes(op, *shapes)

    return rule


def normalize_axes(op: str, axis: Any, shape: Shape) -> Optional[tuple[int, ...]]:
    """
    Normalize a reduction `axis` attribute against `shape`.

    Parameters
    ----------
    op : str
        Operation name reported in errors.
    axis : int | Sequence[int] | None
        Requested axis or axes. Negative values count from the end.
    shape : Shape
        Input shape.

    Returns
    -------
    Optional[tuple[int, ...]]
        Sorted non-negative axes, or None for a full reduction.

    Raises
    ------
    TypeError
        If `axis` is not an int, a sequence of ints, or None.
    ShapeMismatch
        If an axis is out of bounds or repeated.
    """
    if axis is None:
        return None
    raw = (axis,) if isinstance(axis, (int, np.integer)) else axis
    try:
        raw = tuple(raw)
    except TypeError:
        raise TypeError(f"{op}: axis must be int, tuple of int or None") from None
    if any(isinstance(a, bool) or not isinstance(a, (int, np.integer)) for a in raw):
        raise TypeError(f"{op}: axis must be int, tuple of int or None")
    raw = tuple(int(a) for a in raw)

    ndim = len(shape)
    out = []
    for a in raw:
        a_ = a + ndim if a < 0 else a
        if a_ < 0 or a_ >= ndim:
            raise ShapeMismatch(
                op, (shape,), detail=f"axis {a} out of bounds for ndim {ndim}"
            )
        out.append(a_)
    if len(set(out)) != len(out):
        raise ShapeMismatch(op, (shape,), detail=f"repeated axis in {tuple(raw)}")
    return tuple(sorted(out))


def reduced_shape(shape: Shape, axes: Optional[tuple[int, ...]], keepdims: bool) -> Shape:
    """Shape left after reducing `axes` (all axes when None)."""
    axes_ = tuple(range(len(shape))) if axes is None else axes
    if keepdims:
        return tuple(1 if i in axes_ else d for i, d in enumerate(shape))
    return tuple(d for i, d in enumerate(shape) if i not in axes_)


def reduction_rule(op: str, *, allow_empty: bool = True) -> Rule:
    """Return the rule for an axis reduction with optional keepdims."""

    def rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
        shape = tuple(shapes[0])
        axes = normalize_axes(op, attrs.get("axis"), shape)
        if not allow_empty:
            dims = shape if axes is None else tuple(shape[a] for a in axes)
            if any(d == 0 for d in dims):
                raise ShapeMismatch(
                    op, (shape,), detail="cannot reduce over a zero-size axis"
                )
        return reduced_shape(shape, axes, bool(attrs.get("keepdims", False)))

    return rule


def reshape_rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
    """
    Resolve the ``shape`` attribute (one ``-1`` allowed) against the input.
    """
    src = tuple(shapes[0])
    if "shape" not in attrs:
        raise TypeError("reshape: missing required attribute 'shape'")
    target = attrs["shape"]
    target = (target,) if isinstance(target, int) else tuple(int(d) for d in target)

    numel = 1
    for d in src:
        numel *= d

    unknown = [i for i, d in enumerate(target) if d == -1]
    if len(unknown) > 1 or any(d < -1 for d in target):
        raise ShapeMismatch("reshape", (src, target), detail="invalid target shape")

    known = 1
    for d in target:
        if d != -1:
            known *= d
    if unknown:
        if known == 0 or numel % known != 0:
            raise ShapeMismatch(
                "reshape", (src, target), detail="cannot infer the -1 dimension"
            )
        target = tuple(numel // known if d == -1 else d for d in target)
    elif known != numel:
        raise ShapeMismatch(
            "reshape", (src, target), detail=f"{numel} elements vs {known}"
        )
    return target


def transpose_axes(shape: Shape, axes: Any) -> tuple[int, ...]:
    """
    Resolve the ``axes`` attribute of transpose; None reverses all axes.
    """
    ndim = len(shape)
    if axes is None:
        return tuple(reversed(range(ndim)))
    if isinstance(axes, (int, np.integer)):
        axes = (axes,)
    axes_ = tuple(int(a) + ndim if int(a) < 0 else int(a) for a in axes)
    if sorted(axes_) != list(range(ndim)):
        raise ShapeMismatch(
            "transpose",
            (shape,),
            detail=f"axes {tuple(axes)} is not a permutation of {ndim} dims",
        )
    return axes_


def transpose_rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
    shape = tuple(shapes[0])
    perm = transpose_axes(shape, attrs.get("axes"))
    return tuple(shape[a] for a in perm)


def broadcast_to_rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
    src = tuple(shapes[0])
    if "shape" not in attrs:
        raise TypeError("broadcast_to: missing required attribute 'shape'")
    target = tuple(int(d) for d in attrs["shape"])
    if len(src) > len(target) or broadcast_shapes("broadcast_to", src, target) != target:
        raise ShapeMismatch(
            "broadcast_to", (src, target), detail="source does not broadcast to target"
        )
    return target


def matmul_rule(shapes: Sequence[Shape], attrs: Mapping[str, Any]) -> Shape:
    """
    Matrix product rule for 1-D and 2-D operands (NumPy promotion).
    """
    a, b = tuple(shapes[0]), tuple(shapes[1])
    if len(a) not in (1, 2) or len(b) not in (1, 2):
        raise ShapeMismatch("matmul", (a, b), detail="operands must be 1-D or 2-D")
    k_a = a[-1]
    k_b = b[0]
    if k_a != k_b:
        raise ShapeMismatch(
            "matmul", (a, b), detail=f"inner dimensions differ: {k_a} vs {k_b}"
        )
    out = a[:-1] + b[1:]
    return tuple(out)
