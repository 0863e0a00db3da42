import numpy as np

from ._control import DampingControl, SolverControl
from ._convergence import assess, relative_change
from ._linalg import damped_least_squares
from ._problem import System, _as_vector
from ._result import IterationBehavior, SolveResult, SolverProgress, StopReason
from .error import EvaluationBudgetExhausted, NonFiniteValueError, SingularMatrixError

__all__ = ["lm_solve"]


# Smallest ratio of actual to predicted reduction for accepting a step
ACCEPT_RATIO = 1.0e-4


def _compute_predicted_reduction(grad, step, jac):
    """
    Predicted reduction of ``0.5 * ||F||^2`` under the linear model of F.

    For the quadratic model q(p) = f + g^T·p + 0.5·||J·p||²,
    the predicted reduction is: pred_red = -(g^T·p + 0.5·||J·p||²)

    Parameters
    ----------
    grad : ndarray, shape (n,)
        Gradient ``J^T F`` at the current point
    step : ndarray, shape (n,)
        Proposed step
    jac : ndarray, shape (m, n)
        Jacobian at the current point

    Returns
    -------
    pred_red : float
    """
    jp = jac @ step
    return -(np.dot(grad, step) + 0.5 * np.dot(jp, jp))


def _damping_scale(J, scale):
    """Largest squared column norm of J, never below the previous scale."""
    scale = max(scale, float(np.max(np.sum(J * J, axis=0), initial=0.0)))
    return scale if scale > 0.0 else 1.0


def lm_solve(
    fun,
    x0,
    jac=None,
    args=(),
    control=None,
    damping=None,
) -> SolveResult:
    """
    Solve a nonlinear least-squares problem with Levenberg-Marquardt.

    Minimizes ``0.5 * ||F(x)||^2`` for a residual with at least as many
    equations as unknowns.  Each trial step solves the damped system
    ``(J^T J + lambda * I) @ step = -J^T F``.  Small ``lambda`` gives the
    Gauss-Newton step, large ``lambda`` a short step along the steepest
    descent direction.  The damping is decreased after every accepted step
    and increased after every rejected one.  ``lambda`` is relative to the
    largest squared column norm of the Jacobians seen so far, so scaling the
    residual by a constant leaves every trial step unchanged.

    Parameters
    ----------
    fun : callable
        Residual function ``fun(x, *args) -> (m,)``
    x0 : array_like, shape (n,)
        Initial guess.  Not modified.
    jac : callable, optional
        Jacobian function ``jac(x, *args) -> (m, n)``.  If None, a forward
        finite-difference approximation is used.
    args : tuple, optional
        Extra arguments passed to ``fun`` and ``jac`` unchanged
    control : SolverControl, optional
        Evaluation budget and convergence tolerances
    damping : DampingControl, optional
        Initial damping and its update factors

    Returns
    -------
    result : SolveResult
        The final iterate together with the iteration behavior.  Each
        ``history`` record holds the damping used and the ratio of actual to
        predicted reduction of the accepted step.
    """
    if control is None:
        control = SolverControl()
    if damping is None:
        damping = DampingControl()

    x = _as_vector(x0)
    system = System(fun, jac, args, max_evaluations=control.max_evaluations)
    progress = SolverProgress(control.print_status, "Levenberg-Marquardt")

    history = []
    fvec = None
    nit = 0
    status = None

    # Initialize the Levenberg-Marquardt parameter
    lambda_val = damping.initial_damping
    scale = 0.0

    try:
        # Initial evaluation
        fvec = system.residual(x)
        system.require_overdetermined()
        status = assess(fvec, x, control)

        if status is None:
            J = system.jacobian(x, fvec)
            scale = _damping_scale(J, scale)
            grad = J.T @ fvec
            cost = 0.5 * np.dot(fvec, fvec)
            status = assess(fvec, x, control, grad=grad)

        # Main iteration loop
        while status is None:
            # Inner loop - compute step and try it
            while True:
                try:
                    step = damped_least_squares(J, fvec, lambda_val * scale)
                except SingularMatrixError:
                    if lambda_val >= damping.max_damping:
                        status = StopReason.SINGULAR_STEP
                        break
                    lambda_val = min(
                        lambda_val * damping.increase_factor, damping.max_damping
                    )
                    continue

                x_new = x + step
                f_new = system.residual(x_new)
                cost_new = 0.5 * np.dot(f_new, f_new)

                actred = cost - cost_new
                prered = _compute_predicted_reduction(grad, step, J)
                ratio = actred / prered if prered > 0.0 else 0.0

                if ratio > ACCEPT_RATIO:
                    break

                # A negligible step is kept unless it increases the cost
                if (
                    relative_change(step, x) <= control.variable_tolerance
                    and cost_new <= cost
                ):
                    break

                # Reject: move toward gradient descent
                if lambda_val >= damping.max_damping:
                    status = StopReason.SINGULAR_STEP
                    break
                lambda_val = min(
                    lambda_val * damping.increase_factor, damping.max_damping
                )
                if system.remaining <= 0:
                    status = StopReason.MAX_EVALUATIONS
                    break

            if status is not None:
                break

            # Accept: move toward Gauss-Newton
            history.append(
                {
                    "iter": nit,
                    "cost": float(cost_new),
                    "lambda": float(lambda_val),
                    "ratio": float(ratio),
                    "step_norm": float(np.linalg.norm(step)),
                    "x": x_new.copy(),
                }
            )
            lambda_val = max(lambda_val * damping.decrease_factor, damping.min_damping)
            x, fvec, cost = x_new, f_new, cost_new
            nit += 1

            progress.report(
                nit,
                system.fcn_count,
                system.jacobian_count,
                np.linalg.norm(step),
                np.linalg.norm(fvec),
            )

            status = assess(fvec, x, control, step=step)
            if status is not None:
                break

            J = system.jacobian(x, fvec)
            scale = _damping_scale(J, scale)
            grad = J.T @ fvec
            status = assess(fvec, x, control, grad=grad)

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
