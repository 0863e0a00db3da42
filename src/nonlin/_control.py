"""Control records configuring the iterative solvers.

Each control is an immutable pydantic model.  Values are validated when the
record is constructed, so an invalid tolerance or budget is rejected before
any solver iteration can begin.  Use :py:meth:`replace` to derive a modified
copy; the copy is validated as well.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .error import InvalidControlError

__all__ = [
    "SolverControl",
    "LineSearchControl",
    "DampingControl",
    "default_solver_control",
    "default_line_search_control",
    "default_damping_control",
]


class _Control(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidControlError(
                f"Invalid {type(self).__name__}: {e}"
            ) from e

    def replace(self, **updates):
        """Return a validated copy with some fields replaced."""
        return type(self)(**{**self.model_dump(), **updates})


class SolverControl(_Control):
    """Configuration shared by every solver.

    Attributes
    ----------
    max_evaluations : int
        Hard cap on residual evaluations per solve, including those spent on
        finite-difference Jacobians.  Default is 100.
    function_tolerance : float
        Convergence threshold on the infinity norm of the residual.
        Default is 1e-8.
    variable_tolerance : float
        Convergence threshold on the relative change in the variables
        between iterations.  Default is 1e-12.
    gradient_tolerance : float
        Convergence threshold on the infinity norm of ``J^T F``, which
        detects stationary points of the merit function.  Default is 1e-12.
    print_status : bool
        Print a line of iteration status after every iteration.
    """

    max_evaluations: int = Field(default=100, gt=0)
    function_tolerance: float = Field(default=1e-8, gt=0.0)
    variable_tolerance: float = Field(default=1e-12, gt=0.0)
    gradient_tolerance: float = Field(default=1e-12, gt=0.0)
    print_status: bool = False


class LineSearchControl(_Control):
    """Configuration of the backtracking line search.

    Attributes
    ----------
    max_iterations : int
        Maximum number of trial step lengths per search.  Default is 100.
    sufficient_decrease : float
        Armijo coefficient in the sufficient-decrease condition.  Must lie in
        ``(0, 0.5)``.  Default is 1e-4.
    max_step_factor : float
        Longest allowed trial step, as a multiple of ``max(||x||, n)``.
        Default is 100.
    min_backtrack : float
        Smallest fraction of the previous step length a single backtrack may
        shrink to.  Must lie in ``(0, 0.5)``.  Default is 0.1.
    step_tolerance : float
        The search gives up once the trial step changes no variable by more
        than ``step_tolerance`` relative to ``max(|x_i|, 1)``.  Default is
        1e-10.
    """

    max_iterations: int = Field(default=100, gt=0)
    sufficient_decrease: float = Field(default=1e-4, gt=0.0, lt=0.5)
    max_step_factor: float = Field(default=100.0, gt=0.0)
    min_backtrack: float = Field(default=0.1, gt=0.0, lt=0.5)
    step_tolerance: float = Field(default=1e-10, gt=0.0)


class DampingControl(_Control):
    """Configuration of the Levenberg-Marquardt damping parameter.

    All values are relative to the largest squared column norm of the
    Jacobian, so the same control suits residuals of any magnitude.
    """

    initial_damping: float = Field(default=1e-3, gt=0.0)
    increase_factor: float = Field(default=10.0, gt=1.0)
    decrease_factor: float = Field(default=0.1, gt=0.0, lt=1.0)
    min_damping: float = Field(default=1e-12, gt=0.0)
    max_damping: float = Field(default=1e12, gt=0.0)

    @model_validator(mode="after")
    def _check_range(self):
        if self.min_damping >= self.max_damping:
            raise ValueError("min_damping must be smaller than max_damping")
        if not self.min_damping <= self.initial_damping <= self.max_damping:
            raise ValueError(
                "initial_damping must lie between min_damping and max_damping"
            )
        return self


def default_solver_control() -> SolverControl:
    """Solver control with the standard defaults.

    100 evaluations, residual tolerance 1e-8, variable and gradient
    tolerances 1e-12, no status printing.
    """
    return SolverControl()


def default_line_search_control() -> LineSearchControl:
    """Line search control with the standard defaults.

    100 sub-iterations, Armijo coefficient 1e-4, step cap of 100 times
    ``max(||x||, n)``, backtracks of at least 0.1, relative step tolerance
    1e-10.
    """
    return LineSearchControl()


def default_damping_control() -> DampingControl:
    return DampingControl()
