"""
Topological scheduling over a graph arena.

Node identifiers already form a valid topological order, so scheduling
reduces to filtering:

- forward order: ancestors of the targets, in increasing identifier order;
- backward order: nodes reachable backward from the targets that require
  grad, in decreasing identifier order.

Both are computed with a single reverse sweep over identifiers, marking the
inputs of every marked node. No recursion is involved, so deep graphs do not
hit the interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Iterable

from ._arena import GraphArena


class TopologicalScheduler:
    """
    Stateless traversal-order computations for one arena.
    """

    def __init__(self, arena: GraphArena) -> None:
        self._arena = arena

    def ancestors(self, targets: Iterable[int], *, grad_only: bool = False) -> set[int]:
        """
        Return `targets` plus every node they transitively depend on.

        Parameters
        ----------
        targets : Iterable[int]
            Identifiers to start from.
        grad_only : bool, optional
            When True, only follow (and report) nodes with
            ``requires_grad=True``.
        """
        marked = set()
        for t in targets:
            if not grad_only or self._arena.node(t).requires_grad:
                marked.add(int(t))
        if not marked:
            return marked

        for node_id in range(max(marked), -1, -1):
            if node_id not in marked:
                continue
            for i in self._arena.node(node_id).inputs:
                if not grad_only or self._arena.node(i).requires_grad:
                    marked.add(i)
        return marked

    def forward_order(self, targets: Iterable[int]) -> list[int]:
        """Ancestors of `targets` in increasing identifier order."""
        return sorted(self.ancestors(targets))

    def backward_order(self, targets: Iterable[int]) -> list[int]:
        """
        Grad-requiring nodes reachable backward from `targets`, in decreasing
        identifier order. Nodes outside this list receive no gradient.
        """
        return sorted(self.ancestors(targets, grad_only=True), reverse=True)
