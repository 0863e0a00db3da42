from . import error
from ._brent import brent_solve
from ._control import (
    DampingControl,
    LineSearchControl,
    SolverControl,
    default_damping_control,
    default_line_search_control,
    default_solver_control,
)
from ._convergence import assess, relative_change
from ._line_search import LineSearchResult, line_search
from ._linalg import damped_least_squares, solve_linear_system
from ._lm import lm_solve
from ._newton import newton_solve
from ._quasi_newton import broyden_update, quasi_newton_solve
from ._result import IterationBehavior, SolveResult, SolverProgress, StopReason
from .jacobian import finite_difference_jacobian, symbolic_jacobian
from .polynomial import Polynomial

__version__ = "0.1.0"

__all__ = [
    "error",
    "newton_solve",
    "quasi_newton_solve",
    "broyden_update",
    "lm_solve",
    "brent_solve",
    "SolverControl",
    "LineSearchControl",
    "DampingControl",
    "default_solver_control",
    "default_line_search_control",
    "default_damping_control",
    "StopReason",
    "IterationBehavior",
    "SolveResult",
    "SolverProgress",
    "solve_linear_system",
    "damped_least_squares",
    "line_search",
    "LineSearchResult",
    "assess",
    "relative_change",
    "finite_difference_jacobian",
    "symbolic_jacobian",
    "Polynomial",
]
