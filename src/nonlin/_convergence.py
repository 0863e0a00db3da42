import numpy as np

from ._result import StopReason

__all__ = ["assess", "relative_change"]


def relative_change(step, x):
    """Largest change in a variable relative to its magnitude (at least one)."""
    step = np.asarray(step, dtype=float)
    if step.size == 0:
        return 0.0
    scale = np.maximum(np.abs(np.asarray(x, dtype=float)), 1.0)
    return float(np.max(np.abs(step) / scale))


def assess(fvec, x, control, step=None, grad=None):
    """
    Test an iterate against the convergence criteria.

    The tests are independent and any one of them is sufficient:

    1. ``||F||_inf <= function_tolerance``
    2. the relative change ``max |step_i| / max(|x_i|, 1)`` is at most
       ``variable_tolerance`` (only when ``step`` is given)
    3. ``||J^T F||_inf <= gradient_tolerance`` (only when ``grad`` is given)

    Parameters
    ----------
    fvec : ndarray, shape (m,)
        Residual at the iterate
    x : ndarray, shape (n,)
        The iterate
    control : SolverControl
        Tolerances
    step : ndarray, shape (n,), optional
        Step that produced ``x``
    grad : ndarray, shape (n,), optional
        Gradient of the merit function ``0.5 * ||F||^2`` at ``x``

    Returns
    -------
    reason : StopReason or None
        The satisfied criterion, or None to continue iterating.
    """
    if fvec.size == 0 or np.max(np.abs(fvec)) <= control.function_tolerance:
        return StopReason.FUNCTION_TOLERANCE

    if step is not None and relative_change(step, x) <= control.variable_tolerance:
        return StopReason.VARIABLE_TOLERANCE

    if grad is not None:
        gnorm = np.max(np.abs(grad)) if grad.size > 0 else 0.0
        if gnorm <= control.gradient_tolerance:
            return StopReason.GRADIENT_TOLERANCE

    return None
