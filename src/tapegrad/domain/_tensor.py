"""
Tensor value interface definitions.

This module defines the domain-level interface for the dense numeric values
stored on graph nodes. The interface uses structural typing so that the
engine logic (arena, scheduler, accumulator) can be typed against the
protocol while the concrete NumPy-backed implementation lives in the
infrastructure layer.

Notes
-----
Values satisfying this protocol are immutable from the engine's point of
view: once a value is attached to a node it is never written to again.
Operations needing an updated value create a new node instead.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ITensorValue(Protocol):
    """
    Dense, immutable numeric array owned by exactly one graph node.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the shape of the value.

        Returns
        -------
        tuple[int, ...]
            The value's shape. Scalars have shape ``()``.
        """
        ...

    @property
    def strides(self) -> tuple[int, ...]:
        """
        Return the byte strides of the underlying buffer.
        """
        ...

    @property
    def dtype(self) -> Any:
        """
        Return the element type of the value.
        """
        ...

    def numel(self) -> int:
        """
        Return the total number of elements.
        """
        ...

    def to_numpy(self) -> Any:
        """
        Return a writable copy of the value as a NumPy array.

        Returns
        -------
        numpy.ndarray
            A fresh array; mutating it never affects the stored value.
        """
        ...
