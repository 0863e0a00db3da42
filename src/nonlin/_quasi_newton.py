from __future__ import annotations

import numpy as np

from ._control import LineSearchControl, SolverControl
from ._convergence import assess, relative_change
from ._line_search import line_search as _line_search
from ._linalg import MACHEP, solve_linear_system
from ._problem import System, _as_vector
from ._result import IterationBehavior, SolveResult, SolverProgress, StopReason
from .error import EvaluationBudgetExhausted, NonFiniteValueError, SingularMatrixError
from .typing import ArrayLike, Context, JacobianFunction, ResidualFunction

__all__ = ["quasi_newton_solve", "broyden_update"]


SEEDS = ("jacobian", "identity")


def broyden_update(b, s, y, tol=MACHEP):
    """
    Broyden rank-one secant update of an approximate Jacobian.

    Returns ``B + (y - B @ s) s^T / (s^T s)``, which satisfies the secant
    equation ``B_new @ s = y`` and differs from ``B`` only along ``s``.

    Parameters
    ----------
    b : ndarray, shape (m, n)
        Current Jacobian approximation
    s : ndarray, shape (n,)
        Step taken, ``x_new - x``
    y : ndarray, shape (m,)
        Change in the residual, ``F(x_new) - F(x)``
    tol : float, optional
        If ``||s||`` is at most ``tol`` the update is skipped and ``b`` is
        returned unchanged.

    Returns
    -------
    b_new : ndarray, shape (m, n)
    """
    ss = np.dot(s, s)
    if np.sqrt(ss) <= tol:
        return b
    return b + np.outer(y - b @ s, s) / ss


def quasi_newton_solve(
    fun: ResidualFunction,
    x0: ArrayLike,
    jac: JacobianFunction | None = None,
    args: Context = (),
    control: SolverControl | None = None,
    line_search: LineSearchControl | None = None,
    use_line_search: bool = True,
    seed: str = "jacobian",
) -> SolveResult:
    """
    Solve a square system of nonlinear equations with Broyden's method.

    The Jacobian is replaced by an approximation ``B`` that is corrected
    after every step by :py:func:`broyden_update`, so the (often expensive)
    Jacobian is rarely evaluated.  Convergence is superlinear rather than
    quadratic.

    ``B`` is seeded from the Jacobian function (or its finite-difference
    approximation), or from the identity if ``seed="identity"``.  The true
    Jacobian is evaluated again only when the secant approximation breaks
    down: when ``B`` is singular, or when the line search cannot find
    sufficient decrease along the secant direction.  If the breakdown occurs
    with a freshly evaluated Jacobian, a singular matrix ends the solve with
    ``StopReason.SINGULAR_STEP`` and a failed line search is accepted as a
    reduced-confidence step.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args) -> (n,)``
    x0 : array_like, shape (n,)
        Initial guess.  Not modified.
    jac : callable, optional
        Jacobian function ``jac(x, *args) -> (n, n)``.  If None, a forward
        finite-difference approximation is used whenever a true Jacobian is
        needed.
    args : tuple, optional
        Extra arguments passed to ``fun`` and ``jac`` unchanged
    control : SolverControl, optional
        Evaluation budget and convergence tolerances
    line_search : LineSearchControl, optional
        Line search parameters
    use_line_search : bool, optional
        If False, always take the full secant step.  Default is True.
    seed : {"jacobian", "identity"}, optional
        Initial Jacobian approximation.  Default is "jacobian".

    Returns
    -------
    result : SolveResult
    """
    if seed not in SEEDS:
        raise ValueError(
            f"Seed '{seed}' is not supported. Supported seeds are: "
            f"{', '.join(SEEDS)}."
        )
    if control is None:
        control = SolverControl()
    if line_search is None:
        line_search = LineSearchControl()

    x = _as_vector(x0)
    system = System(fun, jac, args, max_evaluations=control.max_evaluations)
    progress = SolverProgress(control.print_status, "Quasi-Newton")

    history = []
    fvec = None
    nit = 0
    status = None

    try:
        fvec = system.residual(x)
        system.require_square()
        status = assess(fvec, x, control)

        # B is None whenever a true Jacobian is needed
        B = np.eye(x.size) if seed == "identity" else None
        fresh = False

        while status is None:
            if B is None:
                B = system.jacobian(x, fvec)
                fresh = True

            grad = B.T @ fvec

            # Only trust the gradient test with a true Jacobian
            if fresh:
                status = assess(fvec, x, control, grad=grad)
                if status is not None:
                    break

            try:
                dx = solve_linear_system(B, -fvec)
            except SingularMatrixError:
                if fresh:
                    status = StopReason.SINGULAR_STEP
                    break
                B = None
                continue

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
                if not ls.satisfied and not fresh:
                    # Secant direction is poor; restart from a true Jacobian
                    B = None
                    if system.remaining <= 0:
                        status = StopReason.MAX_EVALUATIONS
                    continue
                if ls.step_length == 0.0:
                    # No point along the Newton step improves on x
                    if relative_change(dx, x) <= line_search.step_tolerance:
                        status = StopReason.VARIABLE_TOLERANCE
                    else:
                        status = StopReason.SINGULAR_STEP
                    break
                x_new, f_new = ls.x, ls.fun
                record.update(step_length=ls.step_length, line_search=ls.satisfied)
            else:
                x_new = x + dx
                f_new = system.residual(x_new)

            s = x_new - x
            B = broyden_update(B, s, f_new - fvec)
            x, fvec = x_new, f_new
            fresh = False

            nit += 1
            step_norm = float(np.linalg.norm(s))
            record.update(step_norm=step_norm, x=x.copy())
            history.append(record)
            progress.report(
                nit,
                system.fcn_count,
                system.jacobian_count,
                step_norm,
                np.linalg.norm(fvec),
            )

            status = assess(fvec, x, control, step=s)
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
