"""B-spline basis evaluation (Cox-de Boor) and tensor-product assembly.

All univariate routines return only the ``p + 1`` basis functions that
can be non-zero at the query coordinate, together with the span index
``k``; the values belong to basis functions ``k - p, ..., k``.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import scipy.sparse as sp

from .knots import num_basis


def find_span(knots: np.ndarray, degree: int, t: float) -> int:
    """Index k with knots[k] <= t < knots[k+1].

    At the right end of the domain the last non-empty span is returned,
    so the domain is closed on both sides. Coordinates outside the domain
    map to the first or last span.
    """
    n = num_basis(knots, degree)
    k = int(np.searchsorted(knots, t, side='right')) - 1
    return min(max(k, degree), n - 1)


def basis_at_span(knots: np.ndarray, degree: int, span: int, t: float) -> np.ndarray:
    """Non-zero basis values of the given degree on a known span.

    Triangular Cox-de Boor recurrence; a zero-width knot span contributes
    zero instead of dividing by zero.
    """
    N = np.zeros(degree + 1)
    left = np.zeros(degree + 1)
    right = np.zeros(degree + 1)
    N[0] = 1.0
    for j in range(1, degree + 1):
        left[j] = t - knots[span + 1 - j]
        right[j] = knots[span + j] - t
        saved = 0.0
        for r in range(j):
            denom = right[r + 1] + left[j - r]
            temp = N[r] / denom if denom != 0.0 else 0.0
            N[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        N[j] = saved
    return N


def basis_functions(knots: np.ndarray, degree: int, t: float) -> tuple[int, np.ndarray]:
    """Span index and the p + 1 non-zero basis values at t."""
    span = find_span(knots, degree, t)
    return span, basis_at_span(knots, degree, span, t)


def basis_derivatives(
    knots: np.ndarray, degree: int, t: float
) -> tuple[int, np.ndarray, np.ndarray]:
    """Span index, basis values and first derivatives at t.

    Uses dN_{i,p}/dt = p * (N_{i,p-1} / (t_{i+p} - t_i)
    - N_{i+1,p-1} / (t_{i+p+1} - t_{i+1})), with zero-width spans
    contributing zero.
    """
    span = find_span(knots, degree, t)
    values = basis_at_span(knots, degree, span, t)
    deriv = np.zeros(degree + 1)
    if degree == 0:
        return span, values, deriv

    # Degree p-1 functions span-p+1 .. span on the same span
    lower = basis_at_span(knots, degree - 1, span, t)
    for r in range(degree + 1):
        i = span - degree + r
        d = 0.0
        if r >= 1:
            denom = knots[i + degree] - knots[i]
            if denom != 0.0:
                d += lower[r - 1] / denom
        if r <= degree - 1:
            denom = knots[i + degree + 1] - knots[i + 1]
            if denom != 0.0:
                d -= lower[r] / denom
        deriv[r] = degree * d
    return span, values, deriv


def collocation_matrix(
    knots: np.ndarray, degree: int, points: np.ndarray
) -> sp.csr_matrix:
    """Univariate basis values at points, shape (len(points), n_basis)."""
    points = np.asarray(points, dtype=float).ravel()
    n = num_basis(knots, degree)
    rows, cols, vals = [], [], []
    for row, t in enumerate(points):
        span, values = basis_functions(knots, degree, t)
        rows.extend([row] * (degree + 1))
        cols.extend(range(span - degree, span + 1))
        vals.extend(values)
    return sp.csr_matrix((vals, (rows, cols)), shape=(len(points), n))


def tensor_basis(
    knots: Sequence[np.ndarray],
    degrees: Sequence[int],
    x: np.ndarray,
    derivative_dim: int | None = None,
) -> tuple[tuple[int, ...], np.ndarray]:
    """Local tensor-product basis at x.

    Args:
        knots: Knot vector per dimension.
        degrees: Degree per dimension.
        x: Query point, shape (n_dims,).
        derivative_dim: If given, the basis is differentiated once with
            respect to this dimension (product rule, the other dimensions
            use plain basis values).

    Returns:
        (starts, weights): starts[i] is the first control-point index of
        the local window in dimension i, weights has shape
        (p_0 + 1, ..., p_{d-1} + 1).
    """
    starts = []
    weights = np.ones(())
    for dim, (t, p) in enumerate(zip(knots, degrees)):
        if dim == derivative_dim:
            span, _, values = basis_derivatives(t, p, x[dim])
        else:
            span, values = basis_functions(t, p, x[dim])
        starts.append(span - p)
        weights = np.multiply.outer(weights, values)
    return tuple(starts), weights


def design_matrix(
    knots: Sequence[np.ndarray],
    degrees: Sequence[int],
    points: np.ndarray,
) -> sp.csr_matrix:
    """Tensor-product design matrix.

    Rows are samples, columns are control points in row-major (C) order
    of the coefficient tensor.

    Returns:
        Sparse matrix of shape (n_points, prod(n_basis)).
    """
    points = np.atleast_2d(np.asarray(points, dtype=float))
    shape = tuple(num_basis(t, p) for t, p in zip(knots, degrees))
    local = [np.arange(p + 1) for p in degrees]

    rows, cols, vals = [], [], []
    for row, x in enumerate(points):
        starts, weights = tensor_basis(knots, degrees, x)
        idx = np.meshgrid(*[s + r for s, r in zip(starts, local)], indexing='ij')
        flat = np.ravel_multi_index(tuple(i.ravel() for i in idx), shape)
        rows.append(np.full(flat.size, row))
        cols.append(flat)
        vals.append(weights.ravel())

    return sp.csr_matrix(
        (np.concatenate(vals), (np.concatenate(rows), np.concatenate(cols))),
        shape=(len(points), int(np.prod(shape))),
    )
