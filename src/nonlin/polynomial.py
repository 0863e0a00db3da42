"""Polynomials with least-squares fitting and root finding."""

from __future__ import annotations

import numpy as np
from scipy.linalg import eigvals

from ._linalg import damped_least_squares

__all__ = ["Polynomial"]


class Polynomial:
    """A polynomial ``c[0] + c[1] x + ... + c[n] x^n``.

    Parameters
    ----------
    coefficients : array_like
        Coefficients in ascending order of power.  A polynomial of order
        ``n`` has ``n + 1`` coefficients.

    Examples
    --------
    >>> p = Polynomial([-6.0, 11.0, -6.0, 1.0])  # (x - 1)(x - 2)(x - 3)
    >>> p(2.0)
    0.0
    >>> np.sort(p.roots().real)
    array([1., 2., 3.])
    """

    def __init__(self, coefficients):
        c = np.atleast_1d(np.array(coefficients))
        if c.ndim != 1 or c.size == 0:
            raise ValueError("Coefficients must be a non-empty 1-D array")
        if not np.iscomplexobj(c):
            c = c.astype(float)
        self._coeffs = c

    @classmethod
    def zeros(cls, order):
        """Polynomial of the given order with all coefficients zero."""
        if order < 0:
            raise ValueError(f"Order must be non-negative, got {order}")
        return cls(np.zeros(order + 1))

    @property
    def order(self):
        return self._coeffs.size - 1

    @property
    def coefficients(self):
        return self._coeffs.copy()

    def __getitem__(self, index):
        return self._coeffs[index]

    def __setitem__(self, index, value):
        self._coeffs[index] = value

    def __len__(self):
        return self._coeffs.size

    def __repr__(self):
        return f"Polynomial({self._coeffs!r})"

    def __eq__(self, other):
        if not isinstance(other, Polynomial):
            return NotImplemented
        return np.array_equal(self._coeffs, other._coeffs)

    def __call__(self, x):
        """Evaluate at real or complex points with Horner's scheme."""
        x = np.asarray(x)
        y = np.zeros_like(x, dtype=np.result_type(x, self._coeffs, float))
        for c in self._coeffs[::-1]:
            y = y * x + c
        return y.item() if y.ndim == 0 else y

    @classmethod
    def fit(cls, x, y, order):
        """Least-squares fit of a polynomial of the given order to data.

        Parameters
        ----------
        x, y : array_like, shape (npts,)
            Data points
        order : int
            Polynomial order; needs at least ``order + 1`` points.
        """
        return cls._fit(x, y, order, through_zero=False)

    @classmethod
    def fit_through_zero(cls, x, y, order):
        """Least-squares fit of a polynomial with zero constant term."""
        return cls._fit(x, y, order, through_zero=True)

    @classmethod
    def _fit(cls, x, y, order, through_zero):
        x = np.asarray(x, dtype=float).ravel()
        y = np.asarray(y, dtype=float).ravel()
        if x.shape != y.shape:
            raise ValueError(
                f"x and y must have the same length, got {x.size} and {y.size}"
            )
        start = 1 if through_zero else 0
        if order < start:
            raise ValueError(f"Invalid polynomial order {order}")
        if x.size < order + 1 - start:
            raise ValueError(
                f"A fit of order {order} needs at least {order + 1 - start} "
                f"points, got {x.size}"
            )

        # Vandermonde matrix in ascending powers
        A = x[:, None] ** np.arange(start, order + 1)

        # min ||A c - y|| is the undamped step for the residual -y
        c = damped_least_squares(A, -y, 0.0)

        coeffs = np.zeros(order + 1)
        coeffs[start:] = c
        return cls(coeffs)

    def companion_matrix(self):
        """Companion matrix whose eigenvalues are the roots."""
        c = self._trimmed()
        n = c.size - 1
        if n < 1:
            raise ValueError("A constant polynomial has no companion matrix")
        C = np.zeros((n, n), dtype=np.result_type(c, float))
        C[1:, :-1] = np.eye(n - 1)
        C[:, -1] = -c[:-1] / c[-1]
        return C

    def roots(self):
        """All (complex) roots of the polynomial."""
        c = self._trimmed()
        if c.size < 2:
            return np.zeros(0, dtype=complex)
        return eigvals(self.companion_matrix())

    def _trimmed(self):
        # Drop zero leading coefficients
        nz = np.nonzero(self._coeffs)[0]
        if nz.size == 0:
            return self._coeffs[:1]
        return self._coeffs[: nz[-1] + 1]

    def _binary(self, other, op):
        if not isinstance(other, Polynomial):
            other = Polynomial(other)
        n = max(len(self), len(other))
        a = np.zeros(n, dtype=np.result_type(self._coeffs, other._coeffs))
        b = np.zeros_like(a)
        a[: len(self)] = self._coeffs
        b[: len(other)] = other._coeffs
        return Polynomial(op(a, b))

    def __add__(self, other):
        return self._binary(other, np.add)

    __radd__ = __add__

    def __sub__(self, other):
        return self._binary(other, np.subtract)

    def __rsub__(self, other):
        return Polynomial(other)._binary(self, np.subtract)

    def __mul__(self, other):
        if np.isscalar(other):
            return Polynomial(self._coeffs * other)
        if not isinstance(other, Polynomial):
            other = Polynomial(other)
        return Polynomial(np.convolve(self._coeffs, other._coeffs))

    __rmul__ = __mul__

    def __neg__(self):
        return Polynomial(-self._coeffs)
