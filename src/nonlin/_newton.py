from __future__ import annotations

import numpy as np

from ._control import LineSearchControl, SolverControl
from ._convergence import assess, relative_change
from ._line_search import line_search as _line_search
from ._linalg import solve_linear_system
from ._problem import System, _as_vector
from ._result import IterationBehavior, SolveResult, SolverProgress, StopReason
from .error import EvaluationBudgetExhausted, NonFiniteValueError, SingularMatrixError
from .typing import ArrayLike, Context, JacobianFunction, ResidualFunction

__all__ = ["newton_solve"]


def newton_solve(
    fun: ResidualFunction,
    x0: ArrayLike,
    jac: JacobianFunction | None = None,
    args: Context = (),
    control: SolverControl | None = None,
    line_search: LineSearchControl | None = None,
    use_line_search: bool = True,
) -> SolveResult:
    """
    Solve a square system of nonlinear equations with Newton's method.

    Each iteration solves ``J(x) @ dx = -F(x)`` and then searches along
    ``dx`` for a point that sufficiently decreases ``0.5 * ||F||^2``.  The
    line search globalizes the method, so that a poor initial guess does not
    make the iteration overshoot or diverge.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args) -> (n,)``
    x0 : array_like, shape (n,)
        Initial guess.  Not modified.
    jac : callable, optional
        Jacobian function ``jac(x, *args) -> (n, n)``.  If None, a forward
        finite-difference approximation is used.
    args : tuple, optional
        Extra arguments passed to ``fun`` and ``jac`` unchanged
    control : SolverControl, optional
        Evaluation budget and convergence tolerances
    line_search : LineSearchControl, optional
        Line search parameters
    use_line_search : bool, optional
        If False, always take the full Newton step.  Default is True.

    Returns
    -------
    result : SolveResult
        The final iterate and residual together with the iteration behavior.
        If the Jacobian turns out to be singular, the solve stops with
        ``StopReason.SINGULAR_STEP`` and ``x`` is the last valid iterate.

    Examples
    --------
    >>> def f(x):
    ...     return np.array([x[0]**2 + x[1]**2 - 34.0, x[0]**2 - 2.0*x[1]**2 - 7.0])
    >>> result = newton_solve(f, [1.0, 1.0])
    >>> np.round(result.x, 6)
    array([5., 3.])
    """
    if control is None:
        control = SolverControl()
    if line_search is None:
        line_search = LineSearchControl()

    x = _as_vector(x0)
    system = System(fun, jac, args, max_evaluations=control.max_evaluations)
    progress = SolverProgress(control.print_status, "Newton")

    history = []
    fvec = None
    nit = 0
    status = None

    try:
        fvec = system.residual(x)
        system.require_square()
        status = assess(fvec, x, control)

        while status is None:
            J = system.jacobian(x, fvec)
            grad = J.T @ fvec

            status = assess(fvec, x, control, grad=grad)
            if status is not None:
                break

            try:
                dx = solve_linear_system(J, -fvec)
            except SingularMatrixError:
                status = StopReason.SINGULAR_STEP
                break

            record = {"iter": nit, "fnorm": float(np.linalg.norm(fvec))}
            if use_line_search:
                ls = _line_search(
                    system.residual,
                    x,
                    fvec,
                    dx,
                    grad,
                    line_search,
                    max_evaluations=system.remaining,
                )
                if ls.nfev == 0:
                    status = StopReason.MAX_EVALUATIONS
                    break
                if ls.step_length == 0.0:
                    # No point along the Newton step improves on x
                    if relative_change(dx, x) <= line_search.step_tolerance:
                        status = StopReason.VARIABLE_TOLERANCE
                    else:
                        status = StopReason.SINGULAR_STEP
                    break
                step = ls.x - x
                x, fvec = ls.x, ls.fun
                record.update(step_length=ls.step_length, line_search=ls.satisfied)
            else:
                step = dx
                x_new = x + dx
                fvec = system.residual(x_new)
                x = x_new

            nit += 1
            step_norm = float(np.linalg.norm(step))
            record.update(step_norm=step_norm, x=x.copy())
            history.append(record)
            progress.report(
                nit,
                system.fcn_count,
                system.jacobian_count,
                step_norm,
                np.linalg.norm(fvec),
            )

            status = assess(fvec, x, control, step=step)
            if status is None and system.remaining <= 0:
                status = StopReason.MAX_EVALUATIONS

    except EvaluationBudgetExhausted:
        status = StopReason.MAX_EVALUATIONS
    except NonFiniteValueError as e:
        status = StopReason.NON_FINITE
        if fvec is None:
            fvec = e.values

    progress.finish(status)

    behavior = IterationBehavior(
        iter_count=nit,
        fcn_count=system.fcn_count,
        jacobian_count=system.jacobian_count,
        converged=status.converged,
        reason=status,
    )
    return SolveResult(x=x, fun=fvec, behavior=behavior, history=history)
