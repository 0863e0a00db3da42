from __future__ import annotations

from typing import NamedTuple

import numpy as np

from ._control import LineSearchControl
from ._convergence import relative_change

__all__ = ["line_search", "LineSearchResult"]


class LineSearchResult(NamedTuple):
    """Result of a backtracking line search.

    Attributes
    ----------
    step_length : float
        Multiplier applied to the search direction
    x : ndarray
        Accepted point ``x + step_length * direction``
    fun : ndarray
        Residual at the accepted point
    merit : float
        ``0.5 * ||fun||^2``
    nfev : int
        Number of residual evaluations used
    satisfied : bool
        Whether the sufficient-decrease condition holds at ``x``.  False
        means the search ran out of sub-iterations or evaluations, or the
        step became negligible, and returned the best point it found.  The
        merit never exceeds that of the starting point.
    """

    step_length: float
    x: np.ndarray
    fun: np.ndarray
    merit: float
    nfev: int
    satisfied: bool


def _backtrack(lam, merit, merit0, slope, lam2, merit2):
    """Minimizer of the quadratic (first backtrack) or cubic merit model."""
    if lam2 is None:
        return -slope / (2.0 * (merit - merit0 - slope))

    rhs1 = merit - merit0 - lam * slope
    rhs2 = merit2 - merit0 - lam2 * slope
    a = (rhs1 / lam**2 - rhs2 / lam2**2) / (lam - lam2)
    b = (-lam2 * rhs1 / lam**2 + lam * rhs2 / lam2**2) / (lam - lam2)

    if a == 0.0:
        return -slope / (2.0 * b)

    disc = b * b - 3.0 * a * slope
    if disc < 0.0:
        return 0.5 * lam
    if b <= 0.0:
        return (-b + np.sqrt(disc)) / (3.0 * a)
    return -slope / (b + np.sqrt(disc))


def line_search(
    fun,
    x,
    fvec,
    direction,
    grad,
    control=None,
    args=(),
    max_evaluations=None,
) -> LineSearchResult:
    """
    Backtracking line search on the merit function ``0.5 * ||F(x)||^2``.

    Starting from the full step, the step length is reduced until the
    sufficient-decrease (Armijo) condition

        merit(x + lam * p) <= merit(x) + alpha * lam * grad^T p

    holds.  Each reduction minimizes a quadratic (first backtrack) or cubic
    model of the merit function along the direction, safeguarded to the
    interval ``[min_backtrack * lam, 0.5 * lam]``.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args) -> (m,)``
    x : ndarray, shape (n,)
        Current point
    fvec : ndarray, shape (m,)
        Residual at ``x``
    direction : ndarray, shape (n,)
        Search direction, for instance the Newton step
    grad : ndarray, shape (n,)
        Gradient of the merit function at ``x``, i.e. ``J^T F``
    control : LineSearchControl, optional
        Search parameters.  Defaults to ``LineSearchControl()``.
    args : tuple, optional
        Extra arguments passed to ``fun``
    max_evaluations : int, optional
        Number of residual evaluations the search may spend.  Defaults to
        ``control.max_iterations``.

    Returns
    -------
    result : LineSearchResult
        The accepted point.  If the sub-iteration or evaluation budget runs
        out first, the best point seen is returned with ``satisfied=False``.
        When no trial point improves on the merit at ``x`` (or no evaluation
        was allowed at all), that is the starting point itself, with
        ``step_length=0.0``.

    Raises
    ------
    ValueError
        If ``direction`` is not a descent direction for the merit function.
    """
    if control is None:
        control = LineSearchControl()

    x = np.asarray(x, dtype=float)
    fvec = np.asarray(fvec, dtype=float)
    p = np.array(direction, dtype=float)
    merit0 = 0.5 * np.dot(fvec, fvec)

    max_iter = control.max_iterations
    if max_evaluations is not None:
        max_iter = min(max_iter, max_evaluations)

    # Scale back overly long steps
    stpmax = control.max_step_factor * max(np.linalg.norm(x), x.size)
    pnorm = np.linalg.norm(p)
    if pnorm > stpmax:
        p *= stpmax / pnorm

    slope = np.dot(grad, p)
    if slope >= 0.0:
        raise ValueError(
            f"Search direction is not a descent direction (slope {slope:.3e})"
        )

    alpha = control.sufficient_decrease
    pchange = relative_change(p, x)
    lam = 1.0
    lam2 = merit2 = None
    best = None
    nfev = 0

    while nfev < max_iter:
        x_new = x + lam * p
        f_new = np.asarray(fun(x_new, *args), dtype=float)
        nfev += 1
        merit = 0.5 * np.dot(f_new, f_new)

        if merit <= merit0 + alpha * lam * slope:
            return LineSearchResult(lam, x_new, f_new, merit, nfev, True)

        if best is None or merit < best.merit:
            best = LineSearchResult(lam, x_new, f_new, merit, nfev, False)

        tmplam = _backtrack(lam, merit, merit0, slope, lam2, merit2)
        if not np.isfinite(tmplam):
            tmplam = 0.5 * lam
        lam2, merit2 = lam, merit
        lam = max(min(tmplam, 0.5 * lam), control.min_backtrack * lam)

        # Further backtracking would leave x unchanged to working precision
        if lam * pchange <= control.step_tolerance:
            break

    # No trial improved on the starting point
    if best is None or best.merit >= merit0:
        return LineSearchResult(0.0, x.copy(), fvec.copy(), merit0, nfev, False)

    return best._replace(nfev=nfev)
