"""Dense linear algebra kernels used by the nonlinear solvers."""

import warnings

import numpy as np
from scipy.linalg import LinAlgWarning, lu_factor, lu_solve, solve_triangular
from scipy.linalg import qr as scipy_qr

from .error import ShapeError, SingularMatrixError

__all__ = [
    "solve_linear_system",
    "damped_least_squares",
]


MACHEP = np.finfo(float).eps  # Machine precision


def solve_linear_system(a, b):
    """
    Solve the square linear system ``a @ x = b``.

    Uses an LU factorization with partial pivoting.

    Parameters
    ----------
    a : array_like, shape (n, n)
        Coefficient matrix
    b : array_like, shape (n,)
        Right-hand side

    Returns
    -------
    x : ndarray, shape (n,)
        Solution vector

    Raises
    ------
    SingularMatrixError
        If a pivot of the factorization is at most ``n * eps * ||a||_inf``.
    ShapeError
        If ``a`` is not square or ``b`` does not match it.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)

    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ShapeError(f"Expected a square matrix, got shape {a.shape}")
    n = a.shape[0]
    if b.shape != (n,):
        raise ShapeError(
            f"Right-hand side must have shape ({n},) but got {b.shape}"
        )
    if n == 0:
        return np.zeros(0)

    anorm = np.linalg.norm(a, np.inf)
    if anorm == 0.0:
        raise SingularMatrixError("Matrix is identically zero", index=0)

    with warnings.catch_warnings():
        # An exactly zero pivot is detected below
        warnings.simplefilter("ignore", LinAlgWarning)
        lu, piv = lu_factor(a, check_finite=False)

    pivots = np.abs(np.diag(lu))
    k = int(np.argmin(pivots))
    if pivots[k] <= n * MACHEP * anorm:
        raise SingularMatrixError(
            f"Matrix is singular to working precision (pivot {k} is "
            f"{pivots[k]:.3e})",
            index=k,
        )

    return lu_solve((lu, piv), b, check_finite=False)


def damped_least_squares(jac, fvec, damping):
    """
    Compute the damped least-squares (Levenberg-Marquardt) step.

    Solves ``(J^T J + damping * I) @ step = -J^T F`` without forming
    ``J^T J``.  The step is the least-squares solution of the augmented system

        | J              |          | -F |
        | sqrt(damping)I | @ step = |  0 |

    computed from a column-pivoted QR factorization.

    Parameters
    ----------
    jac : array_like, shape (m, n)
        Jacobian matrix
    fvec : array_like, shape (m,)
        Residual vector
    damping : float
        Non-negative damping parameter.  With ``damping=0`` this is the
        ordinary linear least-squares (Gauss-Newton) step.

    Returns
    -------
    step : ndarray, shape (n,)
        Step direction

    Raises
    ------
    SingularMatrixError
        If the (augmented) matrix is rank deficient to working precision.
    """
    jac = np.asarray(jac, dtype=float)
    fvec = np.asarray(fvec, dtype=float)

    if jac.ndim != 2:
        raise ShapeError(f"Expected a 2-D Jacobian, got shape {jac.shape}")
    m, n = jac.shape
    if fvec.shape != (m,):
        raise ShapeError(
            f"Residual must have shape ({m},) but got {fvec.shape}"
        )
    if damping < 0.0:
        raise ValueError(f"Damping must be non-negative, got {damping}")
    if n == 0:
        return np.zeros(0)

    if damping > 0.0:
        a = np.vstack([jac, np.sqrt(damping) * np.eye(n)])
        rhs = np.concatenate([-fvec, np.zeros(n)])
    else:
        a = jac
        rhs = -fvec

    if a.shape[0] < n:
        raise SingularMatrixError(
            f"Undamped system with {m} equations and {n} unknowns is rank "
            "deficient",
            index=a.shape[0],
        )

    q, r, p = scipy_qr(a, mode="economic", pivoting=True, check_finite=False)

    # Pivoting sorts |R_kk| in decreasing order
    rdiag = np.abs(np.diag(r))
    tol = max(a.shape) * MACHEP * rdiag[0]
    if rdiag[0] == 0.0 or rdiag[-1] <= tol:
        k = int(np.argmax(rdiag <= tol))
        raise SingularMatrixError(
            f"Matrix is rank deficient to working precision (rank {k} < {n})",
            index=k,
        )

    z = solve_triangular(r, q.T @ rhs, check_finite=False)

    step = np.empty(n)
    step[p] = z
    return step
