from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, List, NamedTuple

import numpy as np

__all__ = [
    "StopReason",
    "IterationBehavior",
    "SolveResult",
    "SolverProgress",
]


class StopReason(IntEnum):
    """Reason codes for the termination of a solve."""

    # Success codes (convergence achieved)
    FUNCTION_TOLERANCE = 1  # Residual norm below tolerance
    VARIABLE_TOLERANCE = 2  # Change in variables below tolerance
    GRADIENT_TOLERANCE = 3  # Stationary point of the merit function

    # Failure codes
    MAX_EVALUATIONS = 4  # Evaluation budget exhausted
    SINGULAR_STEP = 5  # No valid step could be computed
    NON_FINITE = 6  # NaN or Inf returned by a callback

    @property
    def message(self) -> str:
        """Get descriptive message for this reason code."""
        messages = {
            self.FUNCTION_TOLERANCE: "The residual norm is at most function_tolerance",
            self.VARIABLE_TOLERANCE: "The relative change in the variables is at most variable_tolerance",
            self.GRADIENT_TOLERANCE: "The gradient of the merit function is at most gradient_tolerance; the solution may be a local minimum rather than a root",
            self.MAX_EVALUATIONS: "Number of function evaluations has reached max_evaluations",
            self.SINGULAR_STEP: "No acceptable step could be computed; the Jacobian (or its approximation) is singular to working precision or no point along the step reduces the residual",
            self.NON_FINITE: "The residual or Jacobian function returned a non-finite value",
        }
        return messages.get(self, "Unknown reason")

    @property
    def converged(self) -> bool:
        """Check if this reason code indicates convergence."""
        return self in (
            self.FUNCTION_TOLERANCE,
            self.VARIABLE_TOLERANCE,
            self.GRADIENT_TOLERANCE,
        )


class IterationBehavior(NamedTuple):
    """Iteration statistics of a single solve.

    Attributes
    ----------
    iter_count : int
        Number of iterations performed
    fcn_count : int
        Number of residual evaluations, including those spent on
        finite-difference Jacobians
    jacobian_count : int
        Number of Jacobian evaluations (analytic or finite difference)
    converged : bool
        Whether any convergence criterion was met
    reason : StopReason
        Reason the solve terminated
    """

    iter_count: int
    fcn_count: int
    jacobian_count: int
    converged: bool
    reason: StopReason


class SolveResult(NamedTuple):
    """Result of a nonlinear solve.

    Attributes
    ----------
    x : ndarray
        Final iterate.  On failure, the last valid iterate.
    fun : ndarray
        Residual evaluated at ``x``.
    behavior : IterationBehavior
        Iteration statistics and termination reason.
    history : List[Dict[str, Any]]
        One record per iteration.
    """

    x: np.ndarray
    fun: np.ndarray
    behavior: IterationBehavior
    history: List[Dict[str, Any]]

    @property
    def success(self) -> bool:
        return self.behavior.converged

    @property
    def status(self) -> StopReason:
        return self.behavior.reason

    @property
    def message(self) -> str:
        return self.behavior.reason.message

    @property
    def nit(self) -> int:
        return self.behavior.iter_count

    @property
    def nfev(self) -> int:
        return self.behavior.fcn_count

    @property
    def njev(self) -> int:
        return self.behavior.jacobian_count


class SolverProgress:
    """Handle status reporting for the iterative solvers."""

    def __init__(self, print_status=False, name="Solver"):
        self.print_status = print_status
        self.name = name
        self.header_printed = False

    def report(self, iteration, nfev, njev, step_norm, fnorm):
        """Report the status of one iteration."""
        if not self.print_status:
            return

        if not self.header_printed:
            self._print_header()
            self.header_printed = True

        step_str = f"{step_norm:.3e}" if step_norm is not None else ""
        print(
            f"{iteration:^10} {nfev:^12} {njev:^12} "
            f"{step_str:^16} {fnorm:^14.4e}"
        )

    def finish(self, reason):
        if self.print_status:
            print(f"{self.name}: {reason.message}")

    def _print_header(self):
        print(
            f"{'Iteration':^10} {'Total nfev':^12} {'Total njev':^12} "
            f"{'Change in x':^16} {'Residual':^14}"
        )
