"""
Decorator-based construction of the operation catalogue.

This module provides a small mechanism for assembling `OperationDescriptor`
entries from separately decorated forward and backward functions:

    builder = create_registry_builder()

    @builder.register_forward("exp", arity=1, infer_shape=same_shape)
    def exp_forward(inputs, attrs): ...

    @builder.register_backward("exp")
    def exp_backward(inputs, output, grad_output, attrs): ...

    catalogue = builder.freeze()

Core idea
---------
- Halves are stored in closure-local mappings owned by one builder.
  Different builders do not share mappings.
- `freeze()` pairs every forward with its backward, produces a read-only
  mapping of descriptors, and closes the builder. Any later registration
  fails.

Important notes
---------------
- A kind may be registered at most once per half.
- A kind with only one registered half cannot be frozen.
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, NamedTuple
from typing_extensions import TypeVar

from .._operation import BackwardFn, ForwardFn, OperationDescriptor, ShapeFn

F = TypeVar("F", bound=Callable[..., Any])


class RegistryBuilder(NamedTuple):
    """
    The three entry points returned by `create_registry_builder`.
    """

    register_forward: Callable[..., Callable[[F], F]]
    register_backward: Callable[[str], Callable[[F], F]]
    freeze: Callable[[], Mapping[str, OperationDescriptor]]


def create_registry_builder() -> RegistryBuilder:
    """
    Create a builder used to register operation halves and freeze them.

    Returns
    -------
    RegistryBuilder
        Named tuple of ``(register_forward, register_backward, freeze)``.
    """

    forwards: Dict[str, tuple[int, ForwardFn, ShapeFn]] = {}
    """Mapping from kind to (arity, forward, infer_shape)."""

    backwards: Dict[str, BackwardFn] = {}
    """Mapping from kind to backward evaluator."""

    state = {"frozen": None}

    def _check_open(kind: object) -> None:
        if not isinstance(kind, str) or not kind:
            raise TypeError(
                f"Operation kind must be a non-empty str. Got {kind!r}"
            )
        if state["frozen"] is not None:
            raise RuntimeError(
                f"Cannot register {kind!r}: the operation registry is frozen."
            )

    def register_forward(
        kind: str, *, arity: int, infer_shape: ShapeFn
    ) -> Callable[[F], F]:
        """
        Build a decorator that registers the forward half of `kind`.

        Parameters
        ----------
        kind : str
            Operation tag.
        arity : int
            Number of tensor operands.
        infer_shape : ShapeFn
            Shape-inference rule validated before every forward call.

        Returns
        -------
        Callable[[F], F]
            Decorator returning the forward function unchanged.

        Raises
        ------
        TypeError
            If `kind` is not a non-empty string.
        RuntimeError
            If the builder is frozen or `kind` already has a forward.
        """
        _check_open(kind)
        if kind in forwards:
            raise RuntimeError(f"Forward for {kind!r} is already registered.")

        def decorator(fn: F) -> F:
            forwards[kind] = (int(arity), fn, infer_shape)
            return fn

        return decorator

    def register_backward(kind: str) -> Callable[[F], F]:
        """
        Build a decorator that registers the backward half of `kind`.
        """
        _check_open(kind)
        if kind in backwards:
            raise RuntimeError(f"Backward for {kind!r} is already registered.")

        def decorator(fn: F) -> F:
            backwards[kind] = fn
            return fn

        return decorator

    def freeze() -> Mapping[str, OperationDescriptor]:
        """
        Pair registered halves into descriptors and close the builder.

        Calling `freeze` again returns the same read-only mapping.

        Raises
        ------
        RuntimeError
            If any kind is missing its forward or backward half.
        """
        if state["frozen"] is not None:
            return state["frozen"]

        unpaired = sorted(set(forwards).symmetric_difference(backwards))
        if unpaired:
            raise RuntimeError(
                f"Operations registered without both halves: {unpaired}"
            )

        catalogue = {
            kind: OperationDescriptor(
                name=kind,
                arity=arity,
                forward=fwd,
                backward=backwards[kind],
                infer_shape=infer,
            )
            for kind, (arity, fwd, infer) in forwards.items()
        }
        state["frozen"] = MappingProxyType(catalogue)
        return state["frozen"]

    return RegistryBuilder(register_forward, register_backward, freeze)
