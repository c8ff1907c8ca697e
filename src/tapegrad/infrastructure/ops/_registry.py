"""
Process-wide operation registry.

Built-in operation modules register their forward and backward halves with
the module-level builder below at import time. The first call to
`get_registry()` imports those modules, freezes the builder and returns the
resulting `OperationRegistry`; every later call returns the same object.

After the freeze the catalogue is read-only, so any number of sessions and
threads can look operations up without synchronisation.
"""

from __future__ import annotations

import threading
from typing import Iterator, Mapping, Optional

from ...domain._errors import UnsupportedOp
from ...domain._operation import OperationDescriptor
from ...domain.utils._registry_builder import create_registry_builder

_builder = create_registry_builder()

register_forward = _builder.register_forward
register_backward = _builder.register_backward


class OperationRegistry:
    """
    Immutable catalogue of operation descriptors keyed by kind.

    Parameters
    ----------
    descriptors : Mapping[str, OperationDescriptor]
        Read-only mapping produced by the registry builder.
    """

    def __init__(self, descriptors: Mapping[str, OperationDescriptor]) -> None:
        self._descriptors = descriptors

    def lookup(self, op_kind: str) -> OperationDescriptor:
        """
        Return the descriptor registered under `op_kind`.

        Raises
        ------
        UnsupportedOp
            If no operation is registered under `op_kind`.
        """
        try:
            return self._descriptors[op_kind]
        except (KeyError, TypeError):
            raise UnsupportedOp(str(op_kind)) from None

    def kinds(self) -> tuple[str, ...]:
        """Return every registered kind in sorted order."""
        return tuple(sorted(self._descriptors))

    def __contains__(self, op_kind: object) -> bool:
        try:
            return op_kind in self._descriptors
        except TypeError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(self.kinds())

    def __len__(self) -> int:
        return len(self._descriptors)


_registry: Optional[OperationRegistry] = None
_lock = threading.Lock()


def get_registry() -> OperationRegistry:
    """
    Return the process-wide registry, building it on first use.
    """
    global _registry
    if _registry is not None:
        return _registry
    with _lock:
        if _registry is None:
            from . import _arithmetic, _matmul, _memory, _reduction, _unary  # noqa: F401

            _registry = OperationRegistry(_builder.freeze())
    return _registry
