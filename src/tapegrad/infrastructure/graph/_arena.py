"""
Graph arena: exclusive owner of the nodes of one computation.

The arena assigns node identifiers in strictly increasing order and only
accepts nodes whose inputs were created earlier in the same arena, which
makes the graph acyclic by construction. Collaborators address nodes through
`NodeHandle` values; `resolve` is the single place where a handle is turned
back into a node, and it rejects handles from any other arena.

There is no per-node destruction: dropping the arena frees every node at
once.
"""

from __future__ import annotations

import itertools
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Sequence

from ...domain._errors import GraphIntegrityError
from ...domain._node import Node, NodeHandle
from ...domain._tensor import ITensorValue

_arena_ids = itertools.count(1)


class GraphArena:
    """
    Append-only table of immutable nodes.

    Attributes
    ----------
    arena_id : int
        Process-unique identifier stamped into every handle this arena
        issues.
    """

    def __init__(self) -> None:
        self.arena_id: int = next(_arena_ids)
        self._nodes: list[Node] = []

    def __repr__(self) -> str:
        return f"GraphArena(id={self.arena_id}, nodes={len(self._nodes)})"

    def __len__(self) -> int:
        return len(self._nodes)

    def append(
        self,
        op_kind: str,
        inputs: Sequence[int],
        value: ITensorValue,
        requires_grad: bool,
        attrs: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> NodeHandle:
        """
        Append a new node and return its handle.

        Parameters
        ----------
        op_kind : str
            Producing operation kind (or ``LEAF``).
        inputs : Sequence[int]
            Input node identifiers.
        value : ITensorValue
            Forward value to cache on the node.
        requires_grad : bool
            Whether the node participates in gradient propagation.
        attrs : Optional[Mapping[str, Any]], optional
            Operation attributes; stored behind a read-only proxy.
        name : Optional[str], optional
            Optional user-facing name.

        Returns
        -------
        NodeHandle
            Handle of the new node.

        Raises
        ------
        GraphIntegrityError
            If any input identifier is not strictly smaller than the new
            node's identifier.
        """
        node_id = len(self._nodes)
        inputs_ = tuple(int(i) for i in inputs)
        for i in inputs_:
            if not 0 <= i < node_id:
                raise GraphIntegrityError(
                    f"Node {node_id} cannot reference input {i}: inputs must be "
                    f"existing nodes with smaller identifiers."
                )
        node = Node(
            node_id=node_id,
            op_kind=op_kind,
            inputs=inputs_,
            value=value,
            requires_grad=bool(requires_grad),
            attrs=MappingProxyType(dict(attrs or {})),
            name=name,
        )
        self._nodes.append(node)
        return NodeHandle(self.arena_id, node_id)

    def owns(self, handle: NodeHandle) -> bool:
        """Return True if `handle` addresses an existing node of this arena."""
        return (
            isinstance(handle, NodeHandle)
            and handle.arena_id == self.arena_id
            and 0 <= handle.node_id < len(self._nodes)
        )

    def resolve(self, handle: NodeHandle) -> Node:
        """
        Return the node addressed by `handle`.

        Raises
        ------
        GraphIntegrityError
            If `handle` is not a handle, belongs to a different (or dropped)
            arena, or addresses a node that does not exist.
        """
        if not isinstance(handle, NodeHandle):
            raise GraphIntegrityError(
                f"Expected a NodeHandle, got {type(handle).__name__}"
            )
        if handle.arena_id != self.arena_id:
            raise GraphIntegrityError(
                f"{handle!r} does not belong to arena {self.arena_id}"
            )
        if not 0 <= handle.node_id < len(self._nodes):
            raise GraphIntegrityError(
                f"{handle!r} addresses a node that does not exist"
            )
        return self._nodes[handle.node_id]

    def node(self, node_id: int) -> Node:
        """Return the node with identifier `node_id`."""
        return self._nodes[node_id]

    def handle(self, node_id: int) -> NodeHandle:
        return NodeHandle(self.arena_id, node_id)

    def nodes(self) -> Iterator[Node]:
        """Iterate nodes in identifier (forward) order."""
        return iter(self._nodes)
