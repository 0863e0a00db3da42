from __future__ import annotations

from typing import Sequence

import numpy as np

from ._control import SolverControl
from ._linalg import MACHEP
from ._result import IterationBehavior, SolveResult, SolverProgress, StopReason
from .typing import Context, ScalarFunction

__all__ = ["brent_solve"]


def brent_solve(
    fun: ScalarFunction,
    bracket: Sequence[float],
    args: Context = (),
    control: SolverControl | None = None,
) -> SolveResult:
    """
    Find a root of a function of one variable with Brent's method.

    The root must be bracketed: ``fun`` has to change sign over
    ``bracket``.  Each iteration takes an inverse quadratic interpolation or
    secant step when it stays inside the bracket and shrinks it fast enough,
    and a bisection step otherwise, so the bracket always contains a root.

    Parameters
    ----------
    fun : callable
        Scalar function ``fun(x, *args) -> float``
    bracket : tuple of float
        Interval ``(a, b)`` with ``fun(a)`` and ``fun(b)`` of opposite sign
    args : tuple, optional
        Extra arguments passed to ``fun``
    control : SolverControl, optional
        ``max_evaluations``, ``function_tolerance`` and
        ``variable_tolerance`` are used.

    Returns
    -------
    result : SolveResult
        ``x`` and ``fun`` are one-element arrays.

    Raises
    ------
    ValueError
        If the function does not change sign over the bracket.

    Examples
    --------
    >>> result = brent_solve(lambda x: np.sin(x) / x, (2.0, 4.0))
    >>> round(float(result.x[0]), 6)
    3.141593
    """
    if control is None:
        control = SolverControl()

    a, b = (float(v) for v in bracket)
    progress = SolverProgress(control.print_status, "Brent")

    nfev = 0
    nit = 0
    history = []

    def _f(x):
        nonlocal nfev
        nfev += 1
        return float(fun(x, *args))

    def _result(x, fx, status):
        progress.finish(status)
        behavior = IterationBehavior(
            iter_count=nit,
            fcn_count=nfev,
            jacobian_count=0,
            converged=status.converged,
            reason=status,
        )
        return SolveResult(
            x=np.array([x]), fun=np.array([fx]), behavior=behavior, history=history
        )

    if control.max_evaluations < 2:
        return _result(a, np.nan, StopReason.MAX_EVALUATIONS)

    fa = _f(a)
    fb = _f(b)
    for x, fx in ((a, fa), (b, fb)):
        if not np.isfinite(fx):
            return _result(x, fx, StopReason.NON_FINITE)
        if abs(fx) <= control.function_tolerance:
            return _result(x, fx, StopReason.FUNCTION_TOLERANCE)

    if np.sign(fa) == np.sign(fb):
        raise ValueError(
            f"The function must change sign over the bracket, but "
            f"f({a}) = {fa} and f({b}) = {fb}"
        )

    c, fc = a, fa
    d = e = b - a

    while True:
        # Keep b the best estimate and [b, c] the bracket
        if np.sign(fb) == np.sign(fc):
            c, fc = a, fa
            d = e = b - a
        if abs(fc) < abs(fb):
            a, b, c = b, c, b
            fa, fb, fc = fb, fc, fb

        tol = 2.0 * MACHEP * abs(b) + 0.5 * control.variable_tolerance
        m = 0.5 * (c - b)

        if abs(fb) <= control.function_tolerance:
            status = StopReason.FUNCTION_TOLERANCE
            break
        if abs(m) <= tol:
            status = StopReason.VARIABLE_TOLERANCE
            break
        if nfev >= control.max_evaluations:
            status = StopReason.MAX_EVALUATIONS
            break

        if abs(e) >= tol and abs(fa) > abs(fb):
            s = fb / fa
            if a == c:
                # Secant
                p = 2.0 * m * s
                q = 1.0 - s
            else:
                # Inverse quadratic interpolation
                q = fa / fc
                r = fb / fc
                p = s * (2.0 * m * q * (q - r) - (b - a) * (r - 1.0))
                q = (q - 1.0) * (r - 1.0) * (s - 1.0)
            if p > 0.0:
                q = -q
            else:
                p = -p
            if 2.0 * p < min(3.0 * m * q - abs(tol * q), abs(e * q)):
                e, d = d, p / q
            else:
                d = e = m
        else:
            # Bisection
            d = e = m

        a, fa = b, fb
        b += d if abs(d) > tol else np.copysign(tol, m)
        fb = _f(b)
        nit += 1

        history.append({"iter": nit, "x": b, "fun": fb, "width": abs(c - b)})
        progress.report(nit, nfev, 0, abs(d), abs(fb))

        if not np.isfinite(fb):
            return _result(b, fb, StopReason.NON_FINITE)

    return _result(b, fb, status)
