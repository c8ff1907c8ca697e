"""
Finite-difference gradient checking.

`gradcheck` verifies an operation's backward evaluator against centered
finite differences:

    d<w, f(x)>/dx_i  ~=  (<w, f(x + eps e_i)> - <w, f(x - eps e_i)>) / (2 eps)

where `w` is a random projection used as the backward seed. The analytic side
runs through `Session.backward`; the numeric side replays the graph through
`Session.evaluate`, so both go through the same recorded operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

import numpy as np

from .._config import EngineConfig
from .._session import Session
from ..ops._registry import OperationRegistry


@dataclass
class GradcheckResult:
    """
    Outcome of a gradient check.

    Attributes
    ----------
    ok : bool
        True when every analytic entry matches its numeric estimate within
        tolerance.
    max_abs_error : float
        Largest absolute difference over all inputs.
    analytic : list[np.ndarray]
        Analytic gradients, one per input.
    numeric : list[np.ndarray]
        Finite-difference gradients, one per input.
    """

    ok: bool
    max_abs_error: float
    analytic: list[np.ndarray] = field(default_factory=list)
    numeric: list[np.ndarray] = field(default_factory=list)


def numerical_gradient(
    fn: Callable[[np.ndarray], float], x: np.ndarray, eps: float = 1e-6
) -> np.ndarray:
    """
    Centered finite-difference gradient of scalar function `fn` at `x`.

    Parameters
    ----------
    fn : Callable[[np.ndarray], float]
        Scalar function of one array.
    x : np.ndarray
        Evaluation point (not modified).
    eps : float, optional
        Step size.

    Returns
    -------
    np.ndarray
        Array of the same shape as `x`.
    """
    x = np.array(x, dtype=np.float64)
    grad = np.zeros_like(x)
    it = np.nditer(x, flags=["multi_index"])
    for _ in it:
        idx = it.multi_index
        orig = x[idx]
        x[idx] = orig + eps
        f_plus = fn(x)
        x[idx] = orig - eps
        f_minus = fn(x)
        x[idx] = orig
        grad[idx] = (f_plus - f_minus) / (2 * eps)
    return grad


def gradcheck(
    op_kind: str,
    inputs: Sequence[Any],
    attrs: Optional[Mapping[str, Any]] = None,
    *,
    eps: float = 1e-6,
    atol: float = 1e-5,
    rtol: float = 1e-4,
    seed: int = 0,
    registry: Optional[OperationRegistry] = None,
) -> GradcheckResult:
    """
    Compare analytic and numeric gradients of `op_kind` at `inputs`.

    Parameters
    ----------
    op_kind : str
        Registered operation kind.
    inputs : Sequence[Any]
        Operand values; each becomes a grad-requiring variable.
    attrs : Optional[Mapping[str, Any]], optional
        Operation attributes.
    eps, atol, rtol : float, optional
        Step size and tolerances (``|a - n| <= atol + rtol * |n|``).
    seed : int, optional
        Seed of the random projection.
    registry : Optional[OperationRegistry], optional
        Catalogue holding `op_kind`. Defaults to the process-wide registry.

    Returns
    -------
    GradcheckResult
    """
    sess = Session(EngineConfig(dtype=np.float64), registry)
    handles = [sess.new_variable(v, requires_grad=True) for v in inputs]
    out = sess.apply(op_kind, handles, **dict(attrs or {}))

    rng = np.random.default_rng(seed)
    w = rng.standard_normal(sess.shape_of(out))
    grads = sess.backward(out, seed=w)

    analytic: list[np.ndarray] = []
    numeric: list[np.ndarray] = []
    max_err = 0.0
    ok = True
    for h in handles:
        g = sess.gradient_of(grads, h)
        a = np.zeros(sess.shape_of(h)) if g is None else g.to_numpy()

        def projected(x: np.ndarray, h=h) -> float:
            return float(np.sum(w * sess.evaluate(out, {h: x}).data))

        n = numerical_gradient(projected, sess.value_of(h).to_numpy(), eps)
        analytic.append(a)
        numeric.append(n)
        if a.size:
            err = np.abs(a - n)
            max_err = max(max_err, float(err.max()))
            ok = ok and bool(np.all(err <= atol + rtol * np.abs(n)))
    return GradcheckResult(ok=ok, max_abs_error=max_err, analytic=analytic, numeric=numeric)
