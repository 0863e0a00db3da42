# ruff: noqa: N802, N803, N806

import numpy as np
import pytest

from nonlin import (
    DampingControl,
    SolverControl,
    StopReason,
    lm_solve,
)
from nonlin._lm import _compute_predicted_reduction
from nonlin.error import ShapeError


def circle_hyperbola(x):
    # Roots at (+/-5, +/-3)
    return np.array([x[0] ** 2 + x[1] ** 2 - 34.0, x[0] ** 2 - 2.0 * x[1] ** 2 - 7.0])


def circle_hyperbola_jac(x):
    return np.array([[2.0 * x[0], 2.0 * x[1]], [2.0 * x[0], -4.0 * x[1]]])


class TestLM:
    """Test suite for the Levenberg-Marquardt solver."""

    @pytest.mark.parametrize("jac", [None, circle_hyperbola_jac])
    def test_square_system(self, jac):
        """On a square system with a root LM matches Newton's accuracy."""
        result = lm_solve(circle_hyperbola, [1.0, 1.0], jac=jac)

        assert result.success, f"Solve failed: {result.message}"
        assert result.status is StopReason.FUNCTION_TOLERANCE
        np.testing.assert_allclose(np.abs(result.x), [5.0, 3.0], atol=1e-6)
        assert result.nfev <= 100

    def test_residual_non_increasing(self):
        """The cost never increases across accepted steps."""
        x0 = np.array([1.0, 1.0])
        result = lm_solve(circle_hyperbola, x0, jac=circle_hyperbola_jac)

        f0 = circle_hyperbola(x0)
        costs = [0.5 * np.dot(f0, f0)] + [rec["cost"] for rec in result.history]
        assert np.all(np.diff(costs) <= 0.0)

        for rec in result.history:
            assert rec["ratio"] > 1e-4
            f = circle_hyperbola(rec["x"])
            assert rec["cost"] == pytest.approx(0.5 * np.dot(f, f))

    def test_exponential_fit(self):
        """Overdetermined fit of y = a * exp(b * t) to exact data."""
        t = np.linspace(0.0, 1.0, 10)
        y = 2.0 * np.exp(-1.0 * t)

        def residual(p, t, y):
            return p[0] * np.exp(p[1] * t) - y

        def jac(p, t, y):
            e = np.exp(p[1] * t)
            return np.column_stack([e, p[0] * t * e])

        result = lm_solve(residual, [1.0, 0.0], jac=jac, args=(t, y))
        assert result.success
        np.testing.assert_allclose(result.x, [2.0, -1.0], atol=1e-6)

        # Same fit with a finite-difference Jacobian
        result_fd = lm_solve(residual, [1.0, 0.0], args=(t, y))
        assert result_fd.success
        np.testing.assert_allclose(result_fd.x, [2.0, -1.0], atol=1e-6)
        assert result_fd.nfev > result.nfev

    def test_cubic_fit(self):
        """Linear least squares with a nonzero residual at the optimum."""
        x = np.linspace(-1.0, 1.0, 21)
        y = 1.0 + 2.0 * x - x**2 + 0.5 * x**3 + 0.01 * np.sin(7.0 * x)
        A = x[:, None] ** np.arange(4)

        def residual(c):
            return A @ c - y

        def jac(c):
            return A

        result = lm_solve(residual, np.zeros(4), jac=jac)
        assert result.success, f"Solve failed: {result.message}"
        assert result.status in (
            StopReason.VARIABLE_TOLERANCE,
            StopReason.GRADIENT_TOLERANCE,
        )

        expected = np.polyfit(x, y, 3)[::-1]
        np.testing.assert_allclose(result.x, expected, atol=1e-8)
        assert np.linalg.norm(result.fun) > 1e-3

    def test_rank_deficient(self):
        """A Jacobian with a zero column does not stop the solve."""

        def f(x):
            return np.array([x[0] - 1.0, 2.0 * (x[0] - 1.0)])

        def jac(x):
            return np.array([[1.0, 0.0], [2.0, 0.0]])

        result = lm_solve(f, [3.0, 7.0], jac=jac)
        assert result.success
        assert result.x[0] == pytest.approx(1.0, abs=1e-8)
        assert result.x[1] == pytest.approx(7.0, abs=1e-12)

    def test_idempotent(self):
        result = lm_solve(circle_hyperbola, [1.0, 1.0], jac=circle_hyperbola_jac)
        again = lm_solve(circle_hyperbola, result.x, jac=circle_hyperbola_jac)

        assert again.success
        assert again.nit == 0
        assert again.nfev == 1
        np.testing.assert_array_equal(again.x, result.x)

    @pytest.mark.parametrize("max_evaluations", [1, 2, 3, 5, 10])
    def test_budget_never_exceeded(self, max_evaluations):
        calls = []

        def f(x):
            calls.append(x.copy())
            return circle_hyperbola(x)

        control = SolverControl(max_evaluations=max_evaluations)
        result = lm_solve(f, [1.0, 1.0], control=control)

        assert len(calls) <= max_evaluations
        assert result.nfev == len(calls)
        assert result.status is StopReason.MAX_EVALUATIONS
        np.testing.assert_allclose(result.fun, circle_hyperbola(result.x))

    def test_damping_control(self):
        """Heavy initial damping still converges, starting with short steps."""
        damping = DampingControl(initial_damping=1e4)
        control = SolverControl(max_evaluations=500)

        heavy = lm_solve(
            circle_hyperbola,
            [1.0, 1.0],
            jac=circle_hyperbola_jac,
            control=control,
            damping=damping,
        )
        assert heavy.success
        np.testing.assert_allclose(np.abs(heavy.x), [5.0, 3.0], atol=1e-6)
        assert heavy.history[0]["lambda"] == 1e4
        assert heavy.history[1]["lambda"] == pytest.approx(1e3)
        assert heavy.history[0]["step_norm"] < 0.1

    @pytest.mark.parametrize("factor", [1e-2, 1e3, 1e6])
    def test_scaling_invariance(self, factor):
        """Scaling the residual leaves the damped steps unchanged."""

        def scaled(x):
            return factor * circle_hyperbola(x)

        def scaled_jac(x):
            return factor * circle_hyperbola_jac(x)

        result = lm_solve(circle_hyperbola, [1.0, 1.0], jac=circle_hyperbola_jac)
        result_scaled = lm_solve(scaled, [1.0, 1.0], jac=scaled_jac)

        assert result.success and result_scaled.success
        np.testing.assert_allclose(result_scaled.x, result.x, atol=1e-6)

        first, first_scaled = result.history[0], result_scaled.history[0]
        assert first_scaled["lambda"] == first["lambda"]
        np.testing.assert_allclose(first_scaled["x"], first["x"], rtol=1e-10)

    def test_rejected_at_max_damping(self):
        """Rejection at the damping cap stops instead of repeating the trial."""
        calls = []

        def f(x):
            calls.append(x[0])
            return x - 1.0

        def wrong_jac(x):
            # Points away from the root, so every step increases the cost
            return -np.eye(1)

        damping = DampingControl(max_damping=1e3)
        result = lm_solve(f, [0.0], jac=wrong_jac, damping=damping)

        assert result.status is StopReason.SINGULAR_STEP
        assert not result.success
        assert result.nit == 0
        assert result.nfev < 20
        assert len(set(calls)) == len(calls)
        np.testing.assert_array_equal(result.x, [0.0])

    def test_variable_tolerance_on_accepted_point(self):
        """The step test only stops the solve after the step is accepted."""

        def f(x):
            return x - 1.0

        control = SolverControl(variable_tolerance=10.0)
        result = lm_solve(f, [0.0], jac=lambda x: np.eye(1), control=control)

        assert result.status is StopReason.VARIABLE_TOLERANCE
        assert result.nit == 1
        assert result.nfev == 2
        np.testing.assert_array_equal(result.history[-1]["x"], result.x)
        assert result.x[0] == pytest.approx(1.0 / 1.001)

    def test_underdetermined(self):
        def f(x):
            return np.array([x[0] + x[1] + x[2]])

        with pytest.raises(ShapeError):
            lm_solve(f, np.zeros(3))

    def test_non_finite(self):
        def f(x):
            return np.array([x[0], np.nan])

        result = lm_solve(f, [1.0, 2.0])
        assert result.status is StopReason.NON_FINITE
        assert not result.success
        np.testing.assert_array_equal(result.x, [1.0, 2.0])

    def test_predicted_reduction(self):
        """Predicted reduction equals the decrease of the linear model."""
        J = np.array([[2.0, 1.0], [1.0, 3.0], [0.5, -1.0]])
        F = np.array([1.0, -2.0, 0.5])
        step = np.array([0.1, 0.4])

        pred = _compute_predicted_reduction(J.T @ F, step, J)
        model = F + J @ step
        expected = 0.5 * np.dot(F, F) - 0.5 * np.dot(model, model)
        assert pred == pytest.approx(expected)

    def test_print_status(self, capsys):
        control = SolverControl(print_status=True)
        lm_solve(circle_hyperbola, [1.0, 1.0], control=control)

        out = capsys.readouterr().out
        assert "Levenberg-Marquardt" in out
        assert "Residual" in out
