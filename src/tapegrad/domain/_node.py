"""
Graph node records and handles.

A `Node` is the immutable record stored in a graph arena for each recorded
operation (or leaf variable). Collaborators never hold nodes directly; they
hold a `NodeHandle`, a small value object made of the owning arena's
identifier and the node's index in that arena.

Invariants
----------
- `Node.node_id` is unique within its arena and assigned in strictly
  increasing order.
- Every entry of `Node.inputs` is strictly smaller than `Node.node_id`, which
  makes the arena acyclic by construction and turns identifier order into a
  valid topological order.
- Nodes are frozen; nothing mutates a node's inputs, attributes or value
  after it has been appended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ._tensor import ITensorValue

LEAF = "leaf"
"""Operation kind recorded for user-created variables."""


@dataclass(frozen=True)
class NodeHandle:
    """
    Lightweight reference to a node inside a specific arena.

    Attributes
    ----------
    arena_id : int
        Identifier of the arena that owns the node. Arenas receive a fresh
        identifier on creation, so handles from a dropped or reset arena can
        be detected.
    node_id : int
        Index of the node within its arena.
    """

    arena_id: int
    node_id: int

    def __repr__(self) -> str:
        return f"NodeHandle(arena={self.arena_id}, node={self.node_id})"


@dataclass(frozen=True)
class Node:
    """
    Immutable record of one recorded operation or leaf variable.

    Attributes
    ----------
    node_id : int
        Identifier within the owning arena.
    op_kind : str
        Registry tag of the producing operation, or ``LEAF`` for variables.
    inputs : tuple[int, ...]
        Identifiers of the input nodes, in operand order. Empty for leaves.
    value : ITensorValue
        Cached forward value.
    requires_grad : bool
        Whether gradients flow to this node during backward.
    attrs : Mapping[str, Any]
        Read-only operation attributes (e.g. ``axis`` for reductions).
    name : Optional[str]
        Optional user-facing name (leaves only).
    """

    node_id: int
    op_kind: str
    inputs: tuple[int, ...]
    value: ITensorValue
    requires_grad: bool
    attrs: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    name: Optional[str] = None

    @property
    def shape(self) -> tuple[int, ...]:
        """Shape of the cached forward value."""
        return self.value.shape

    @property
    def is_leaf(self) -> bool:
        """True for user-created variables."""
        return self.op_kind == LEAF
