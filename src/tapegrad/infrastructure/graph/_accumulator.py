"""
Backward-pass state: gradient accumulation over a graph arena.

A `GradientAccumulator` performs exactly one backward pass and moves through
three phases:

- SEEDING: the gradient slot of each output is initialised from the caller's
  seed (ones for single-element outputs when no seed is given).
- PROPAGATING: nodes are visited in decreasing identifier order within the
  reachable set. A node without an accumulated gradient is skipped;
  otherwise its backward evaluator receives the accumulated gradient and each
  returned contribution is added into the corresponding input's slot
  (initialising the slot on first contribution).
- DONE: the gradient map is frozen and returned.

Contributions to the same node are summed in the order their consumers are
visited (decreasing identifier order), so floating-point results are
reproducible for identical graphs. Any failure propagates immediately and
the partially built map is discarded with the accumulator.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Sequence

import numpy as np

from ...domain._errors import GraphIntegrityError, NumericalDomainError, ShapeMismatch
from ...domain._node import NodeHandle
from .._config import EngineConfig
from .._debug import dbg
from ..ops._registry import OperationRegistry, get_registry
from ..tensor._tensor_value import TensorValue
from ._arena import GraphArena
from ._scheduler import TopologicalScheduler

log = dbg("backward")


class BackwardPhase(Enum):
    IDLE = "idle"
    SEEDING = "seeding"
    PROPAGATING = "propagating"
    DONE = "done"


class GradientMap:
    """
    Read-only result of one backward pass.

    Parameters
    ----------
    arena_id : int
        Identifier of the arena the gradients refer to.
    grads : Mapping[int, TensorValue]
        Node identifier to accumulated gradient.
    """

    def __init__(self, arena_id: int, grads: Mapping[int, TensorValue]) -> None:
        self._arena_id = arena_id
        self._grads = MappingProxyType(dict(grads))

    def __repr__(self) -> str:
        return f"GradientMap(arena={self._arena_id}, nodes={sorted(self._grads)})"

    @property
    def arena_id(self) -> int:
        return self._arena_id

    def gradient_of(self, handle: NodeHandle) -> Optional[TensorValue]:
        """
        Return the gradient for `handle`, or None if no gradient reached it.

        Raises
        ------
        GraphIntegrityError
            If `handle` belongs to a different arena.
        """
        if not isinstance(handle, NodeHandle) or handle.arena_id != self._arena_id:
            raise GraphIntegrityError(
                f"{handle!r} does not belong to arena {self._arena_id}"
            )
        return self._grads.get(handle.node_id)

    def __contains__(self, handle: object) -> bool:
        return (
            isinstance(handle, NodeHandle)
            and handle.arena_id == self._arena_id
            and handle.node_id in self._grads
        )

    def __len__(self) -> int:
        return len(self._grads)

    def handles(self) -> Iterator[NodeHandle]:
        """Iterate handles that received a gradient, in identifier order."""
        for node_id in sorted(self._grads):
            yield NodeHandle(self._arena_id, node_id)


def _all_finite(*arrays: np.ndarray) -> bool:
    return all(bool(np.all(np.isfinite(a))) for a in arrays)


class GradientAccumulator:
    """
    Single-use backward pass over `arena`.

    Parameters
    ----------
    arena : GraphArena
        Arena holding the recorded graph.
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
        self._grads: dict[int, np.ndarray] = {}
        self._phase = BackwardPhase.IDLE

    @property
    def phase(self) -> BackwardPhase:
        return self._phase

    def _enter(self, phase: BackwardPhase) -> None:
        log.debug("arena %d: %s -> %s", self._arena.arena_id, self._phase.value, phase.value)
        self._phase = phase

    def _seed_array(self, node_shape: tuple[int, ...], seed: Any) -> np.ndarray:
        """
        Resolve the seed for an output of `node_shape`.

        Raises
        ------
        ShapeMismatch
            If `seed` is None for a multi-element output, or its shape differs
            from the output's shape.
        """
        if seed is None:
            numel = 1
            for d in node_shape:
                numel *= d
            if numel != 1:
                raise ShapeMismatch(
                    "seed",
                    (node_shape,),
                    detail="a seed is required for outputs with more than one element",
                )
            return np.ones(node_shape, dtype=self._config.dtype)

        arr = TensorValue.from_data(seed, dtype=self._config.dtype).to_numpy()
        if arr.shape != node_shape:
            raise ShapeMismatch(
                "seed", (node_shape, arr.shape), detail="seed must match output shape"
            )
        return arr

    def _accumulate(self, node_id: int, contribution: np.ndarray) -> None:
        slot = self._grads.get(node_id)
        if slot is None:
            self._grads[node_id] = np.array(contribution, dtype=self._config.dtype)
        else:
            slot += contribution

    def run(
        self,
        outputs: Sequence[NodeHandle],
        seeds: Optional[Sequence[Any]] = None,
    ) -> GradientMap:
        """
        Run the backward pass from `outputs`.

        Parameters
        ----------
        outputs : Sequence[NodeHandle]
            Output handles to differentiate.
        seeds : Optional[Sequence[Any]], optional
            One seed per output (None entries use the scalar default).

        Returns
        -------
        GradientMap
            Gradients of every reached node that requires grad.

        Raises
        ------
        RuntimeError
            If this accumulator has already run.
        ShapeMismatch, GraphIntegrityError, NumericalDomainError
            On invalid seeds, handles, backward results or domain violations.
        """
        if self._phase is not BackwardPhase.IDLE:
            raise RuntimeError("GradientAccumulator instances are single-use.")

        seeds_ = list(seeds) if seeds is not None else [None] * len(outputs)
        if len(seeds_) != len(outputs):
            raise ValueError(
                f"Got {len(seeds_)} seeds for {len(outputs)} outputs."
            )

        self._enter(BackwardPhase.SEEDING)
        roots: list[int] = []
        for handle, seed in zip(outputs, seeds_):
            node = self._arena.resolve(handle)
            arr = self._seed_array(node.shape, seed)
            if node.requires_grad:
                self._accumulate(node.node_id, arr)
                roots.append(node.node_id)

        self._enter(BackwardPhase.PROPAGATING)
        order = TopologicalScheduler(self._arena).backward_order(roots)
        for node_id in order:
            grad_out = self._grads.get(node_id)
            if grad_out is None:
                continue
            node = self._arena.node(node_id)
            if node.is_leaf:
                continue
            self._propagate(node_id, grad_out)

        self._enter(BackwardPhase.DONE)
        return GradientMap(
            self._arena.arena_id,
            {nid: TensorValue(g) for nid, g in self._grads.items()},
        )

    def _propagate(self, node_id: int, grad_out: np.ndarray) -> None:
        node = self._arena.node(node_id)
        descriptor = self._registry.lookup(node.op_kind)
        inputs = [self._arena.node(i) for i in node.inputs]
        arrays = [n.value.data for n in inputs]

        contributions = descriptor.backward(arrays, node.value.data, grad_out, node.attrs)
        if len(contributions) != len(inputs):
            raise GraphIntegrityError(
                f"{node.op_kind}: backward returned {len(contributions)} gradients "
                f"for {len(inputs)} inputs"
            )

        check = self._config.check_finite and _all_finite(grad_out, *arrays)
        for inp, g in zip(inputs, contributions):
            if not inp.requires_grad or g is None:
                continue
            g = np.asarray(g)
            if g.shape != inp.shape:
                raise ShapeMismatch(
                    node.op_kind,
                    (inp.shape, g.shape),
                    detail=f"gradient for input {inp.node_id} has the wrong shape",
                )
            if check and not _all_finite(g):
                raise NumericalDomainError(
                    node.op_kind, "backward produced non-finite gradients"
                )
            self._accumulate(inp.node_id, g)
