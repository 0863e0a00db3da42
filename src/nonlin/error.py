"""Exceptions raised by the nonlinear solvers."""

__all__ = [
    "NonlinError",
    "SingularMatrixError",
    "InvalidControlError",
    "ShapeError",
    "NonFiniteValueError",
    "EvaluationBudgetExhausted",
]


class NonlinError(Exception):
    """Base class for all errors raised by this package."""


class SingularMatrixError(NonlinError, ArithmeticError):
    """A matrix could not be factored to working precision.

    Parameters
    ----------
    message : str
        Description of the failure.
    index : int, optional
        Index of the offending pivot (or diagonal entry of ``R``), if known.
    """

    def __init__(self, message, index=None):
        super().__init__(message)
        self.index = index


class InvalidControlError(NonlinError, ValueError):
    """A solver control record holds an out-of-range value."""


class ShapeError(NonlinError, ValueError):
    """An array or callback output has inconsistent dimensions."""


class NonFiniteValueError(NonlinError, FloatingPointError):
    """A residual or Jacobian callback returned NaN or Inf.

    The offending values are kept in ``values`` so that a solver can hand them
    back to the caller.
    """

    def __init__(self, message, values=None):
        super().__init__(message)
        self.values = values


class EvaluationBudgetExhausted(NonlinError):
    """No further function evaluations are allowed.

    Solvers catch this internally and report it through
    :py:attr:`StopReason.MAX_EVALUATIONS`; it never escapes a solve call.
    """
