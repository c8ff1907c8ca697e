"""Namespaced debug logging for the engine.

Use `enable(True)` (or set env TAPEGRAD_DEBUG=1) to trace node recording,
backward phases and session resets.

Helpers:
- dbg(name): namespaced logger under "tapegrad.<name>"
- enable(flag): turn logging on/off globally
- is_enabled(): check global flag

Logging is quiet by default; enabling it configures one stream handler on
the root "tapegrad" logger.
"""

from __future__ import annotations

import logging
import os
import threading

_ROOT = "tapegrad"
_TRUTHY = ("1", "true", "yes", "on")
_LOCK = threading.Lock()


def env_flag(name: str) -> bool:
    """Read a boolean environment variable; unset or unrecognised means False."""
    return os.getenv(name, "").strip().lower() in _TRUTHY


_ENABLED = env_flag("TAPEGRAD_DEBUG")


def enable(flag: bool = True, *, level: int = logging.DEBUG) -> None:
    """Enable or disable engine debug logging."""
    global _ENABLED
    with _LOCK:
        _ENABLED = bool(flag)
        lg = logging.getLogger(_ROOT)
        if _ENABLED:
            # Idempotent handler setup
            if not any(isinstance(h, logging.StreamHandler) for h in lg.handlers):
                h = logging.StreamHandler()
                fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                h.setFormatter(logging.Formatter(fmt=fmt, datefmt="%H:%M:%S"))
                lg.addHandler(h)
            lg.setLevel(level)
        else:
            lg.setLevel(logging.WARNING)


def is_enabled() -> bool:
    return _ENABLED


def dbg(name: str) -> logging.Logger:
    """Return a child logger under the tapegrad namespace."""
    if _ENABLED and not logging.getLogger(_ROOT).handlers:
        enable(True)
    return logging.getLogger(f"{_ROOT}.{name}")
