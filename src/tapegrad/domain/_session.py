"""
Session interface definitions.

This module defines the boundary surface that collaborating numeric modules
(linear algebra, statistics, neural-network layers, ...) use to drive the
engine. Collaborators type against `ISession` and exchange only
`NodeHandle` values and tensor values, never nodes.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from ._node import NodeHandle
from ._tensor import ITensorValue


@runtime_checkable
class IGradientMap(Protocol):
    """
    Read-only result of one backward pass.
    """

    def gradient_of(self, handle: NodeHandle) -> Optional[ITensorValue]:
        """
        Return the accumulated gradient for `handle`, or None when no
        gradient reached that node.
        """
        ...


@runtime_checkable
class ISession(Protocol):
    """
    Scope owning one live graph arena.

    Notes
    -----
    - `apply` is the sole way new graph structure is introduced.
    - Calls on one session are serialised; distinct sessions are fully
      independent.
    """

    def new_variable(
        self, value: Any, requires_grad: bool = False, name: Optional[str] = None
    ) -> NodeHandle:
        """
        Create a leaf node holding `value`.
        """
        ...

    def apply(
        self, op_kind: str, inputs: Sequence[NodeHandle], **attrs: Any
    ) -> NodeHandle:
        """
        Record operation `op_kind` on `inputs` and return the new node's handle.
        """
        ...

    def backward(
        self, output: NodeHandle, seed: Optional[Any] = None
    ) -> IGradientMap:
        """
        Run a backward pass from `output` and return the gradient map.
        """
        ...

    def gradient_of(
        self, grads: IGradientMap, handle: NodeHandle
    ) -> Optional[ITensorValue]:
        """
        Read the gradient of `handle` out of `grads`.
        """
        ...

    def value_of(self, handle: NodeHandle) -> ITensorValue:
        """
        Return the forward value of `handle`.
        """
        ...

    def evaluate(
        self,
        target: NodeHandle,
        feeds: Optional[Mapping[NodeHandle, Any]] = None,
    ) -> ITensorValue:
        """
        Recompute `target` with some leaf values replaced by `feeds`.
        """
        ...

    def reset(self) -> None:
        """
        Drop the arena and any gradient map, returning the session to empty.
        """
        ...
