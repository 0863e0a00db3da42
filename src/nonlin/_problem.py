"""Counting wrapper around the user residual and Jacobian callbacks."""

from __future__ import annotations

import numpy as np

from .error import EvaluationBudgetExhausted, NonFiniteValueError, ShapeError
from .jacobian import finite_difference_jacobian

__all__ = ["System"]


def _as_vector(x0):
    x = np.array(x0, dtype=float)
    if x.ndim == 0:
        x = x.reshape(1)
    if x.ndim != 1:
        raise ShapeError(
            "Only scalar and vector decision variables are supported. "
            f"Got shape {x.shape}"
        )
    return x


class System:
    """Residual and Jacobian of a nonlinear system, with evaluation counts.

    Every evaluation goes through this object so that the evaluation budget,
    the output shapes, and the finiteness of the outputs are checked in one
    place.  ``args`` are passed through to the callbacks unchanged.

    When no Jacobian function is given, the Jacobian is approximated by
    forward differences, which costs ``n`` residual evaluations.
    """

    def __init__(self, fun, jac=None, args=(), max_evaluations=100):
        self.fun = fun
        self.jac = jac
        self.args = tuple(args)
        self.max_evaluations = max_evaluations
        self.fcn_count = 0
        self.jacobian_count = 0
        self.n = None
        self.m = None

    @property
    def remaining(self):
        return self.max_evaluations - self.fcn_count

    def _call_fun(self, x):
        f = np.asarray(self.fun(x, *self.args), dtype=float)
        if f.ndim == 0:
            f = f.reshape(1)
        return f

    def residual(self, x):
        """Evaluate the residual at ``x``, counting against the budget."""
        if self.remaining <= 0:
            raise EvaluationBudgetExhausted(
                f"Residual evaluation budget of {self.max_evaluations} reached"
            )
        self.fcn_count += 1
        f = self._call_fun(x)

        if f.ndim != 1:
            raise ShapeError(
                f"Residual function must return a vector, got shape {f.shape}"
            )
        if self.m is None:
            self.n = x.size
            self.m = f.size
        elif f.size != self.m:
            raise ShapeError(
                f"Residual function returned {f.size} values, expected {self.m}"
            )
        if not np.all(np.isfinite(f)):
            raise NonFiniteValueError(
                "Residual function returned a non-finite value", values=f
            )
        return f

    def jacobian(self, x, fvec):
        """Evaluate the Jacobian at ``x``, where ``fvec`` is the residual there."""
        if self.jac is None:
            if self.remaining < x.size:
                raise EvaluationBudgetExhausted(
                    "Not enough evaluations left for a finite-difference Jacobian"
                )
            self.fcn_count += x.size
            jac = finite_difference_jacobian(self._call_fun, x, fvec=fvec)
        else:
            jac = np.asarray(self.jac(x, *self.args), dtype=float)
            # Scalar or flat output is allowed when it has the right size
            if jac.ndim < 2 and jac.size == self.m * x.size:
                jac = jac.reshape(self.m, x.size)
        self.jacobian_count += 1

        if jac.shape != (self.m, x.size):
            raise ShapeError(
                f"Jacobian function must return shape {(self.m, x.size)}, "
                f"got {jac.shape}"
            )
        if not np.all(np.isfinite(jac)):
            raise NonFiniteValueError(
                "Jacobian function returned a non-finite value", values=jac
            )
        return jac

    def require_square(self):
        if self.m != self.n:
            raise ShapeError(
                f"Expected a square system but got {self.m} equations in "
                f"{self.n} unknowns"
            )

    def require_overdetermined(self):
        if self.m < self.n:
            raise ShapeError(
                f"Least-squares problems need at least as many equations as "
                f"unknowns, got {self.m} equations in {self.n} unknowns"
            )
