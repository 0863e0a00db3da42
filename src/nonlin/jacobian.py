"""Alternate Jacobian providers.

Both providers follow the Jacobian callback contract of the solvers: they
return an ``(m, n)`` array whose element ``(i, j)`` is ``dF_i/dx_j``.

https://web.casadi.org/docs/#calculus-algorithmic-differentiation
"""

from __future__ import annotations

from typing import Callable

import casadi as cs
import numpy as np

from .typing import ArrayLike, Context, JacobianFunction, ResidualFunction

__all__ = ["finite_difference_jacobian", "symbolic_jacobian"]


def finite_difference_jacobian(
    fun: ResidualFunction,
    x: ArrayLike,
    fvec: ArrayLike | None = None,
    args: Context = (),
) -> np.ndarray:
    """Approximate the Jacobian with forward differences.

    The step for column ``j`` is ``sqrt(eps) * |x_j|``, or ``sqrt(eps)`` when
    ``x_j`` is zero.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args) -> (m,)``.
    x : array_like, shape (n,)
        Point at which to differentiate.  Not modified.
    fvec : array_like, shape (m,), optional
        ``fun(x, *args)`` if already known, which saves one evaluation.
    args : tuple, optional
        Extra arguments passed to ``fun``.

    Returns
    -------
    jac : ndarray, shape (m, n)
    """
    x = np.array(x, dtype=float)
    if fvec is None:
        fvec = fun(x, *args)
    fvec = np.asarray(fvec, dtype=float)

    eps = np.sqrt(np.finfo(float).eps)
    jac = np.empty((fvec.size, x.size))
    xh = x.copy()
    for j in range(x.size):
        h = eps * abs(x[j])
        if h == 0.0:
            h = eps
        xh[j] = x[j] + h
        jac[:, j] = (np.asarray(fun(xh, *args), dtype=float) - fvec) / h
        xh[j] = x[j]
    return jac


def symbolic_jacobian(
    fun: Callable,
    n: int,
    args: Context = (),
) -> JacobianFunction:
    """Construct an exact Jacobian function by algorithmic differentiation.

    The residual function is traced once with a symbolic CasADi vector of
    length ``n``, differentiated, and compiled into a numeric function.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args)``.  When traced it must return a
        CasADi expression or a sequence of scalar expressions, so it should
        only index into ``x`` and use arithmetic supported by CasADi.
    n : int
        Number of variables.
    args : tuple, optional
        Extra arguments passed to ``fun`` while tracing.  They are fixed at
        construction time.

    Returns
    -------
    jac : callable
        Function ``jac(x, *args) -> ndarray (m, n)``.  Trailing arguments are
        accepted for compatibility with the solver callback contract and
        ignored, since ``args`` were already baked in.

    Examples
    --------
    >>> def f(x):
    ...     return [x[0] ** 2 + x[1] ** 2 - 34.0, x[0] ** 2 - 2.0 * x[1] ** 2 - 7.0]
    >>> jac = symbolic_jacobian(f, 2)
    >>> jac([5.0, 3.0])
    array([[ 10.,   6.],
           [ 10., -12.]])
    """
    x = cs.SX.sym("x", n)
    y = fun(x, *args)

    if isinstance(y, np.ndarray):
        y = list(y.ravel())
    if isinstance(y, (list, tuple)):
        y = cs.vertcat(*y)

    J = cs.Function(
        "residual_jacobian", [x], [cs.jacobian(y, x)], ["x"], ["J"]
    )

    def _jac(x, *_args):
        x = np.asarray(x, dtype=float).ravel()
        return np.asarray(J(x).full(), dtype=float)

    name = getattr(fun, "__name__", "fun")
    _jac.__name__ = f"{name}_jac"
    return _jac
