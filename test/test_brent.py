import numpy as np
import pytest

from nonlin import SolverControl, StopReason, brent_solve


class TestBrent:
    def test_sinc(self):
        result = brent_solve(lambda x: np.sin(x) / x, (2.0, 4.0))

        assert result.success
        assert result.x.shape == (1,)
        assert result.x[0] == pytest.approx(np.pi, abs=1e-6)
        assert abs(result.fun[0]) <= 1e-8
        assert result.njev == 0
        assert result.nit == len(result.history)

    def test_reversed_bracket(self):
        result = brent_solve(lambda x: np.sin(x) / x, (4.0, 2.0))
        assert result.success
        assert result.x[0] == pytest.approx(np.pi, abs=1e-6)

    def test_cubic(self):
        def f(x):
            return (x - 1.0) * (x - 2.0) * (x - 3.0)

        result = brent_solve(f, (1.5, 2.5))
        assert result.success
        assert result.x[0] == pytest.approx(2.0, abs=1e-8)

    def test_bracket_shrinks_to_variable_tolerance(self):
        """A step function has no zero, but the sign change is located."""
        control = SolverControl(variable_tolerance=1e-6, max_evaluations=200)
        result = brent_solve(lambda x: np.sign(x - 0.3), (0.0, 1.0), control=control)

        assert result.status is StopReason.VARIABLE_TOLERANCE
        assert result.x[0] == pytest.approx(0.3, abs=2e-6)

    def test_root_at_endpoint(self):
        result = brent_solve(lambda x: x - 2.0, (2.0, 3.0))
        assert result.status is StopReason.FUNCTION_TOLERANCE
        assert result.x[0] == 2.0
        assert result.nfev == 2
        assert result.nit == 0

    def test_no_sign_change(self):
        with pytest.raises(ValueError, match="change sign"):
            brent_solve(lambda x: x**2 + 1.0, (-1.0, 1.0))

    def test_args(self):
        result = brent_solve(lambda x, a: x**2 - a, (0.0, 3.0), args=(2.0,))
        assert result.x[0] == pytest.approx(np.sqrt(2.0), abs=1e-8)

    @pytest.mark.parametrize("max_evaluations", [2, 3, 4])
    def test_budget_never_exceeded(self, max_evaluations):
        calls = []

        def f(x):
            calls.append(x)
            return np.sin(x) / x

        control = SolverControl(max_evaluations=max_evaluations)
        result = brent_solve(f, (2.0, 4.0), control=control)

        assert len(calls) <= max_evaluations
        assert result.nfev == len(calls)
        assert result.status is StopReason.MAX_EVALUATIONS
        assert 2.0 <= result.x[0] <= 4.0

    def test_non_finite(self):
        def f(x):
            return np.inf if x > 3.0 else x - 2.5

        result = brent_solve(f, (2.0, 4.0))
        assert result.status is StopReason.NON_FINITE
        assert not result.success
