# ruff: noqa: N802, N803, N806

import casadi as cs
import numpy as np
import pytest

from nonlin import finite_difference_jacobian, symbolic_jacobian


def circle_hyperbola(x):
    return [x[0] ** 2 + x[1] ** 2 - 34.0, x[0] ** 2 - 2.0 * x[1] ** 2 - 7.0]


class TestFiniteDifference:
    def test_accuracy(self):
        J = finite_difference_jacobian(circle_hyperbola, np.array([5.0, 3.0]))
        np.testing.assert_allclose(J, [[10.0, 6.0], [10.0, -12.0]], rtol=1e-6)

    def test_zero_component(self):
        J = finite_difference_jacobian(circle_hyperbola, np.array([0.0, 1.0]))
        np.testing.assert_allclose(J, [[0.0, 2.0], [0.0, -4.0]], atol=1e-6)

    def test_evaluation_count(self):
        calls = []

        def f(x):
            calls.append(x.copy())
            return np.array(circle_hyperbola(x))

        x = np.array([5.0, 3.0])
        finite_difference_jacobian(f, x)
        assert len(calls) == 3

        calls.clear()
        finite_difference_jacobian(f, x, fvec=f(x))
        assert len(calls) == 3  # Including the explicit call above

        # The point itself is never modified
        np.testing.assert_array_equal(x, [5.0, 3.0])

    def test_rectangular(self):
        def f(x, a):
            return np.array([a * x[0], x[0] * x[1], x[1] ** 3])

        J = finite_difference_jacobian(f, np.array([1.0, 2.0]), args=(3.0,))
        assert J.shape == (3, 2)
        np.testing.assert_allclose(
            J, [[3.0, 0.0], [2.0, 1.0], [0.0, 12.0]], rtol=1e-6, atol=1e-7
        )


class TestSymbolicJacobian:
    def test_list_output(self):
        jac = symbolic_jacobian(circle_hyperbola, 2)
        J = jac(np.array([5.0, 3.0]))

        assert isinstance(J, np.ndarray)
        np.testing.assert_allclose(J, [[10.0, 6.0], [10.0, -12.0]])
        assert jac.__name__ == "circle_hyperbola_jac"

    def test_lambda_residual(self):
        jac = symbolic_jacobian(lambda x: [x[0] * x[1], x[1] ** 2], 2)
        np.testing.assert_allclose(jac([2.0, 3.0]), [[3.0, 2.0], [0.0, 6.0]])
        assert jac.__name__ == "<lambda>_jac"

    def test_casadi_output(self):
        def f(x):
            return cs.vertcat(cs.sin(x[0]) * x[1], cs.exp(x[1]))

        jac = symbolic_jacobian(f, 2)
        x = np.array([0.5, 2.0])
        expected = [
            [np.cos(0.5) * 2.0, np.sin(0.5)],
            [0.0, np.exp(2.0)],
        ]
        np.testing.assert_allclose(jac(x), expected, rtol=1e-14)

    def test_args_fixed_at_construction(self):
        def f(x, a):
            return [a * x[0] ** 2, x[0] * x[1]]

        jac = symbolic_jacobian(f, 2, args=(3.0,))

        # Trailing arguments from the solver callback contract are ignored
        J = jac(np.array([1.0, 2.0]), 100.0)
        np.testing.assert_allclose(J, [[6.0, 0.0], [2.0, 1.0]])

    @pytest.mark.parametrize("x", [[1.0, 1.0], [-2.0, 0.5], [4.0, -3.0]])
    def test_matches_finite_difference(self, x):
        x = np.array(x)
        J_sym = symbolic_jacobian(circle_hyperbola, 2)(x)
        J_fd = finite_difference_jacobian(circle_hyperbola, x)
        np.testing.assert_allclose(J_sym, J_fd, rtol=1e-6, atol=1e-6)
