"""
Session: the scope collaborators use to build graphs and query gradients.

A `Session` owns exactly one live `GraphArena` and exposes the engine's
boundary surface:

    sess = Session()
    x = sess.new_variable([[1.0, 2.0]], requires_grad=True)
    y = sess.apply("sum", [sess.apply("square", [x])])
    grads = sess.backward(y)
    sess.gradient_of(grads, x)        # TensorValue([[2., 4.]])

Concurrency
-----------
Every public operation runs to completion before returning. Calls on one
session are serialised by an internal lock, so `apply` never interleaves
with `backward` on the same arena. Distinct sessions share nothing except
the read-only operation registry and may be used from different threads.
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from ..domain._errors import ShapeMismatch
from ..domain._node import NodeHandle
from ._config import EngineConfig
from ._debug import dbg
from .graph._accumulator import GradientAccumulator, GradientMap
from .graph._arena import GraphArena
from .graph._scheduler import TopologicalScheduler
from .graph._tape import TapeBuilder, ensure_finite_forward
from .ops._registry import OperationRegistry, get_registry
from .tensor._tensor_value import TensorValue

log = dbg("session")


class Session:
    """
    Owner of one graph arena and the most recent gradient map.

    Parameters
    ----------
    config : Optional[EngineConfig], optional
        Engine settings. Defaults to ``EngineConfig()``.
    registry : Optional[OperationRegistry], optional
        Operation catalogue. Defaults to the process-wide registry.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[OperationRegistry] = None,
    ) -> None:
        self._config = config if config is not None else EngineConfig()
        self._registry = registry if registry is not None else get_registry()
        self._lock = threading.Lock()
        self._arena = GraphArena()
        self._tape = TapeBuilder(self._arena, self._config, self._registry)
        self._names: dict[str, NodeHandle] = {}
        self._gradients: Optional[GradientMap] = None

    def __repr__(self) -> str:
        return f"Session(arena={self._arena.arena_id}, nodes={len(self._arena)})"

    def __len__(self) -> int:
        return len(self._arena)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def arena_id(self) -> int:
        return self._arena.arena_id

    @property
    def last_gradients(self) -> Optional[GradientMap]:
        """The gradient map of the last successful backward pass, if any."""
        return self._gradients

    # ------------------------------------------------------------------
    # Graph construction
    # ------------------------------------------------------------------
    def new_variable(
        self, value: Any, requires_grad: bool = False, name: Optional[str] = None
    ) -> NodeHandle:
        """
        Create a leaf variable.

        Parameters
        ----------
        value : Any
            Scalar, nested sequence, ndarray or `TensorValue`.
        requires_grad : bool, optional
            Whether gradients should flow to this variable. Defaults to False.
        name : Optional[str], optional
            Optional name for later lookup via `variable`.

        Raises
        ------
        ShapeMismatch
            If `value` is malformed (ragged or non-numeric).
        ValueError
            If `name` is already used in this session.
        """
        with self._lock:
            if name is not None and name in self._names:
                raise ValueError(f"A variable named {name!r} already exists.")
            handle = self._tape.record_leaf(value, requires_grad, name=name)
            if name is not None:
                self._names[name] = handle
            return handle

    def constant(self, value: Any) -> NodeHandle:
        """Create a leaf that never receives gradients."""
        return self.new_variable(value, requires_grad=False)

    def variable(self, name: str) -> NodeHandle:
        """
        Return the handle of the variable created with `name`.

        Raises
        ------
        KeyError
            If no variable has that name.
        """
        try:
            return self._names[name]
        except KeyError:
            raise KeyError(f"No variable named {name!r}.") from None

    def apply(
        self, op_kind: str, inputs: Sequence[NodeHandle], **attrs: Any
    ) -> NodeHandle:
        """
        Record `op_kind` applied to `inputs`; see `TapeBuilder.record`.
        """
        with self._lock:
            return self._tape.record(op_kind, inputs, attrs)

    # ------------------------------------------------------------------
    # Differentiation
    # ------------------------------------------------------------------
    def backward(self, output: NodeHandle, seed: Optional[Any] = None) -> GradientMap:
        """
        Run a backward pass from `output`.

        Parameters
        ----------
        output : NodeHandle
            Node to differentiate.
        seed : Optional[Any], optional
            Gradient with respect to `output`. Defaults to ones when `output`
            holds a single element; required (and shape-checked) otherwise.

        Returns
        -------
        GradientMap
            Accumulated gradients. Also kept as `last_gradients`.

        Raises
        ------
        ShapeMismatch
            If the seed is missing for a multi-element output or mis-shaped.
        GraphIntegrityError
            If `output` does not belong to this session's arena.
        NumericalDomainError
            If a backward evaluator hits an undefined derivative.
        """
        with self._lock:
            grads = GradientAccumulator(self._arena, self._config, self._registry).run(
                [output], [seed]
            )
            self._gradients = grads
            return grads

    def gradient_of(self, grads: GradientMap, handle: NodeHandle) -> Optional[TensorValue]:
        """Return the gradient of `handle` in `grads`, or None."""
        return grads.gradient_of(handle)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------
    def value_of(self, handle: NodeHandle) -> TensorValue:
        """Return the cached forward value of `handle`."""
        return self._arena.resolve(handle).value

    def shape_of(self, handle: NodeHandle) -> tuple[int, ...]:
        return self._arena.resolve(handle).shape

    def requires_grad(self, handle: NodeHandle) -> bool:
        return self._arena.resolve(handle).requires_grad

    def evaluate(
        self,
        target: NodeHandle,
        feeds: Optional[Mapping[NodeHandle, Any]] = None,
    ) -> TensorValue:
        """
        Recompute `target` with some node values replaced.

        The ancestors of `target` are replayed in increasing identifier
        order. Fed nodes take the supplied value; nodes depending on a fed
        node are recomputed with their recorded operation and attributes;
        every other node reuses its cached value. The arena is not modified.

        Parameters
        ----------
        target : NodeHandle
            Node whose value is requested.
        feeds : Optional[Mapping[NodeHandle, Any]], optional
            Replacement values, each matching its node's shape.

        Raises
        ------
        ShapeMismatch
            If a fed value does not match its node's shape.
        GraphIntegrityError
            If a handle does not belong to this session's arena.
        NumericalDomainError
            If a recomputed operation rejects its inputs, or (with
            ``check_finite``) yields non-finite values from finite inputs.
        """
        with self._lock:
            target_node = self._arena.resolve(target)
            replaced: dict[int, np.ndarray] = {}
            for handle, value in (feeds or {}).items():
                node = self._arena.resolve(handle)
                arr = TensorValue.from_data(value, dtype=self._config.dtype).data
                if arr.shape != node.shape:
                    raise ShapeMismatch(
                        "evaluate", (node.shape, arr.shape), detail="fed value shape"
                    )
                replaced[node.node_id] = arr

            if not replaced:
                return target_node.value

            values: dict[int, np.ndarray] = {}
            order = TopologicalScheduler(self._arena).forward_order([target_node.node_id])
            for node_id in order:
                node = self._arena.node(node_id)
                if node_id in replaced:
                    values[node_id] = replaced[node_id]
                elif node.is_leaf or not any(i in values for i in node.inputs):
                    continue
                else:
                    arrays = [
                        values[i] if i in values else self._arena.node(i).value.data
                        for i in node.inputs
                    ]
                    fwd = self._registry.lookup(node.op_kind).forward
                    out = np.asarray(fwd(arrays, node.attrs), dtype=self._config.dtype)
                    if self._config.check_finite:
                        ensure_finite_forward(node.op_kind, out, arrays)
                    values[node_id] = out

            if target_node.node_id in values:
                return TensorValue(values[target_node.node_id])
            return target_node.value

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------
    def reset(self) -> None:
        """
        Drop the arena, names and gradient map; start a fresh empty arena.

        Handles issued before the reset are rejected afterwards.
        """
        with self._lock:
            log.debug("reset arena %d (%d nodes)", self._arena.arena_id, len(self._arena))
            self._arena = GraphArena()
            self._tape = TapeBuilder(self._arena, self._config, self._registry)
            self._names = {}
            self._gradients = None
