"""
Engine configuration.

`EngineConfig` collects the few knobs that influence how a session records
values. A session captures its configuration at construction time and never
mutates it.

Environment variables
---------------------
TAPEGRAD_DTYPE
    Floating element type used for new values (``float64`` or ``float32``).
TAPEGRAD_CHECK_FINITE
    ``0``, ``false``, ``no`` or ``off`` (any case) disables the non-finite
    result check.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import numpy as np

_SUPPORTED_DTYPES = {
    "float64": np.float64,
    "float32": np.float32,
}


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable engine settings.

    Attributes
    ----------
    dtype : np.dtype
        Floating element type for every value created by the session.
        Defaults to float64 so that finite-difference gradient checks are
        well conditioned.
    check_finite : bool
        When True, a forward result containing NaN/Inf computed from
        all-finite inputs raises `NumericalDomainError` instead of
        propagating.
    """

    dtype: np.dtype = field(default_factory=lambda: np.dtype(np.float64))
    check_finite: bool = True

    def __post_init__(self) -> None:
        dt = np.dtype(self.dtype)
        if dt.kind != "f":
            raise TypeError(f"EngineConfig.dtype must be floating, got {dt}")
        object.__setattr__(self, "dtype", dt)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build a configuration from ``TAPEGRAD_*`` environment variables.

        Raises
        ------
        ValueError
            If ``TAPEGRAD_DTYPE`` names an unsupported element type.
        """
        name = os.getenv("TAPEGRAD_DTYPE", "float64").strip().lower()
        if name not in _SUPPORTED_DTYPES:
            raise ValueError(
                f"TAPEGRAD_DTYPE must be one of {sorted(_SUPPORTED_DTYPES)}, got {name!r}"
            )
        check = os.getenv("TAPEGRAD_CHECK_FINITE", "1").strip().lower() not in (
            "0",
            "false",
            "no",
            "off",
        )
        return cls(dtype=np.dtype(_SUPPORTED_DTYPES[name]), check_finite=check)
