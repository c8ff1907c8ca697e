"""
Engine-level exceptions for tapegrad.

This module defines the error kinds surfaced by the autograd engine. All of
them derive from `EngineError`, so collaborators can catch engine failures
as a family while still being able to distinguish the four cases:

- `ShapeMismatch`: operand or seed shapes are incompatible with an operation
  or with each other (also raised for malformed initial values).
- `UnsupportedOp`: an operation tag is not present in the registry.
- `NumericalDomainError`: an input lies outside the mathematical domain of
  the requested function (e.g. log of a non-positive value).
- `GraphIntegrityError`: a handle does not belong to the current arena, or
  the increasing-identifier invariant is violated. This indicates a
  programming error in a collaborator rather than bad user input.

None of these errors is ever downgraded to a warning or retried internally.
"""

from typing import Sequence


class EngineError(RuntimeError):
    """
    Base class for every error raised by the autograd engine.
    """


class ShapeMismatch(EngineError, ValueError):
    """
    Raised when operand shapes are incompatible with an operation.

    Attributes
    ----------
    op : str
        Name of the operation (or pseudo-operation such as "seed" or
        "new_variable") that rejected the shapes.
    shapes : tuple[tuple[int, ...], ...]
        The offending shapes, in operand order.
    """

    def __init__(
        self,
        op: str,
        shapes: Sequence[tuple[int, ...]] = (),
        detail: str = "",
    ) -> None:
        """
        Initialize the ShapeMismatch error.

        Parameters
        ----------
        op : str
            Operation name that rejected the shapes.
        shapes : Sequence[tuple[int, ...]], optional
            Shapes involved in the failure.
        detail : str, optional
            Extra human-readable context appended to the message.
        """
        self.op = op
        self.shapes = tuple(tuple(int(d) for d in s) for s in shapes)
        msg = f"{op}: incompatible shapes {list(self.shapes)}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class UnsupportedOp(EngineError, LookupError):
    """
    Raised when an operation kind is not present in the registry.

    Attributes
    ----------
    op : str
        The unknown operation tag.
    """

    def __init__(self, op: str) -> None:
        self.op = op
        super().__init__(f"Unsupported operation kind {op!r}.")


class NumericalDomainError(EngineError, ArithmeticError):
    """
    Raised when an input falls outside a function's mathematical domain.

    Attributes
    ----------
    op : str
        The operation that rejected its input.
    reason : str
        Short description of the violated domain condition.
    """

    def __init__(self, op: str, reason: str) -> None:
        self.op = op
        self.reason = reason
        super().__init__(f"{op}: {reason}")


class GraphIntegrityError(EngineError):
    """
    Raised when a handle or node violates the arena's structural invariants.
    """
