"""
Tape builder: the recording layer behind every tensor operation.

`TapeBuilder.record` is the only writer of operation nodes. It validates
handles and shapes, runs the forward evaluator and appends exactly one node.
All validation happens before the append, so a failing call leaves the
arena unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

import numpy as np

from ...domain._errors import GraphIntegrityError, NumericalDomainError, ShapeMismatch
from ...domain._node import LEAF, NodeHandle
from .._config import EngineConfig
from .._debug import dbg
from ..ops._registry import OperationRegistry, get_registry
from ..tensor._tensor_value import TensorValue
from ._arena import GraphArena

log = dbg("tape")


def freeze_attrs(attrs: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """
    Return a copy of `attrs` in which lists and arrays are turned into tuples.
    """
    out: dict[str, Any] = {}
    for key, value in (attrs or {}).items():
        if isinstance(value, np.ndarray):
            value = tuple(value.tolist())
        elif isinstance(value, list):
            value = tuple(value)
        out[str(key)] = value
    return out


def ensure_finite_forward(
    op_kind: str, out: np.ndarray, arrays: Sequence[np.ndarray]
) -> None:
    """
    Reject a non-finite forward result computed from all-finite inputs.

    Raises
    ------
    NumericalDomainError
        If `out` holds NaN/Inf while every array in `arrays` is finite.
    """
    if not np.all(np.isfinite(out)) and all(np.all(np.isfinite(a)) for a in arrays):
        raise NumericalDomainError(
            op_kind, "forward produced non-finite values from finite inputs"
        )


class TapeBuilder:
    """
    Records operations into a `GraphArena`.

    Parameters
    ----------
    arena : GraphArena
        The arena receiving new nodes.
    config : EngineConfig
        Session configuration (dtype, finiteness checks).
    registry : Optional[OperationRegistry], optional
        Operation catalogue. Defaults to the process-wide registry.
    """

    def __init__(
        self,
        arena: GraphArena,
        config: EngineConfig,
        registry: Optional[OperationRegistry] = None,
    ) -> None:
        self._arena = arena
        self._config = config
        self._registry = registry if registry is not None else get_registry()

    def record_leaf(
        self, value: Any, requires_grad: bool, name: Optional[str] = None
    ) -> NodeHandle:
        """
        Append a leaf node holding `value` converted to the configured dtype.

        Raises
        ------
        ShapeMismatch
            If `value` is ragged or not numeric.
        """
        tv = TensorValue.from_data(value, dtype=self._config.dtype)
        handle = self._arena.append(LEAF, (), tv, requires_grad, name=name)
        log.debug(
            "leaf %d shape=%s requires_grad=%s name=%s",
            handle.node_id,
            tv.shape,
            requires_grad,
            name,
        )
        return handle

    def record(
        self,
        op_kind: str,
        input_handles: Sequence[NodeHandle],
        attrs: Optional[Mapping[str, Any]] = None,
    ) -> NodeHandle:
        """
        Evaluate `op_kind` on `input_handles` and append the result node.

        Parameters
        ----------
        op_kind : str
            Registry tag of the operation.
        input_handles : Sequence[NodeHandle]
            Operand handles, in order. All must belong to this arena.
        attrs : Optional[Mapping[str, Any]], optional
            Operation attributes (e.g. ``axis``, ``shape``).

        Returns
        -------
        NodeHandle
            Handle of the new node.

        Raises
        ------
        UnsupportedOp
            If `op_kind` is not registered.
        GraphIntegrityError
            If a handle does not belong to this arena.
        ShapeMismatch
            If the operand count or shapes are incompatible with the
            operation (carries the operation name and operand shapes).
        NumericalDomainError
            If an input lies outside the function's domain, or the forward
            result is non-finite although every input is finite.
        """
        descriptor = self._registry.lookup(op_kind)
        if isinstance(input_handles, NodeHandle):
            input_handles = (input_handles,)
        nodes = [self._arena.resolve(h) for h in input_handles]
        shapes = [n.shape for n in nodes]

        if len(nodes) != descriptor.arity:
            raise ShapeMismatch(
                op_kind,
                shapes,
                detail=f"expected {descriptor.arity} operand(s), got {len(nodes)}",
            )

        frozen = freeze_attrs(attrs)
        expected_shape = tuple(descriptor.infer_shape(shapes, frozen))

        arrays = [n.value.data for n in nodes]
        out = np.asarray(descriptor.forward(arrays, frozen), dtype=self._config.dtype)

        if out.shape != expected_shape:
            raise GraphIntegrityError(
                f"{op_kind}: forward produced shape {out.shape}, "
                f"shape inference expected {expected_shape}"
            )
        if self._config.check_finite:
            ensure_finite_forward(op_kind, out, arrays)

        requires_grad = any(n.requires_grad for n in nodes)
        handle = self._arena.append(
            op_kind,
            [n.node_id for n in nodes],
            TensorValue(out),
            requires_grad,
            attrs=frozen,
        )
        log.debug(
            "node %d = %s%s shape=%s",
            handle.node_id,
            op_kind,
            tuple(n.node_id for n in nodes),
            out.shape,
        )
        return handle
