"""Knot vector construction and exact knot insertion.

Both knot policies clamp the ends (first and last coordinate repeated
``p + 1`` times) and place ``n - p - 1`` interior knots for ``n`` distinct
coordinates, so a complete grid of samples always yields a square
collocation system.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from ..config import KnotPolicy
from ..errors import ConstructionError


def _clamped_interior(coords: np.ndarray, degree: int) -> np.ndarray:
    """Interior knots on sample coordinates (not-a-knot rule).

    Of the n - 2 interior coordinates, the p - 1 closest to the ends are
    dropped: ceil((p-1)/2) at the start and floor((p-1)/2) at the end.
    """
    n = len(coords)
    start = 1 + degree // 2
    stop = n - 1 - (degree - 1) // 2
    return coords[start:stop].copy()


def _free_interior(coords: np.ndarray, degree: int) -> np.ndarray:
    """Interior knots as moving averages of max(p-1, 1) consecutive coordinates."""
    n = len(coords)
    window = max(degree - 1, 1)
    n_interior = n - degree - 1
    return np.array([
        coords[i + 1:i + 1 + window].mean() for i in range(n_interior)
    ], dtype=float)


_INTERIOR_RULES: dict[KnotPolicy, Callable[[np.ndarray, int], np.ndarray]] = {
    KnotPolicy.CLAMPED: _clamped_interior,
    KnotPolicy.FREE: _free_interior,
}


def build_knot_vector(
    coordinates: np.ndarray,
    degree: int,
    policy: KnotPolicy = KnotPolicy.FREE,
    dim: int = 0,
) -> np.ndarray:
    """Derive a knot vector from the sample coordinates of one dimension.

    Args:
        coordinates: Sample coordinates (need not be sorted or unique).
        degree: Spline degree p >= 1.
        policy: Interior knot placement rule.
        dim: Dimension index, used in error messages.

    Returns:
        Non-decreasing knot vector with len(unique(coordinates)) + p + 1
        entries.

    Raises:
        ConstructionError: If the degree is invalid or there are fewer
            than p + 1 distinct coordinates.
    """
    if int(degree) != degree or degree < 1:
        raise ConstructionError(
            f"Dimension {dim}: degree must be an integer >= 1, got {degree}"
        )
    degree = int(degree)
    coords = np.unique(np.asarray(coordinates, dtype=float))
    if len(coords) < degree + 1:
        raise ConstructionError(
            f"Dimension {dim}: degree {degree} requires at least {degree + 1} "
            f"distinct coordinates, got {len(coords)}"
        )

    rule = _INTERIOR_RULES[KnotPolicy(policy)]
    interior = rule(coords, degree)
    knots = np.concatenate([
        np.full(degree + 1, coords[0]),
        interior,
        np.full(degree + 1, coords[-1]),
    ])

    assert len(knots) - degree - 1 == len(coords)
    return knots


def num_basis(knots: np.ndarray, degree: int) -> int:
    """Number of basis functions (control points) of a knot vector."""
    return len(knots) - degree - 1


def knot_multiplicity(knots: np.ndarray, value: float) -> int:
    """Number of knots exactly equal to value."""
    return int(np.count_nonzero(np.asarray(knots) == value))


def insert_knot(
    knots: np.ndarray,
    degree: int,
    coefs: np.ndarray,
    u: float,
    axis: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Insert one knot with Boehm's algorithm.

    The spline represented by (knots, coefs) is unchanged; only its
    representation is refined. For tensor-product coefficients the
    insertion acts along ``axis``.

    Args:
        knots: Knot vector of the dimension being refined.
        degree: Degree of that dimension.
        coefs: Coefficient tensor.
        u: Knot value, must lie in [knots[p], knots[n]].
        axis: Tensor axis that corresponds to this knot vector.

    Returns:
        (new_knots, new_coefs), with one more knot and one more
        coefficient along ``axis``.
    """
    knots = np.asarray(knots, dtype=float)
    n = num_basis(knots, degree)
    if not knots[degree] <= u <= knots[n]:
        raise ValueError(
            f"Cannot insert knot {u} outside [{knots[degree]}, {knots[n]}]"
        )

    # Span k with knots[k] <= u < knots[k+1]; the right end uses the last span
    k = int(np.searchsorted(knots, u, side='right')) - 1
    k = min(max(k, degree), n - 1)

    P = np.moveaxis(np.asarray(coefs, dtype=float), axis, 0)
    Q = np.empty((P.shape[0] + 1,) + P.shape[1:], dtype=float)

    Q[:k - degree + 1] = P[:k - degree + 1]
    for i in range(k - degree + 1, k + 1):
        alpha = (u - knots[i]) / (knots[i + degree] - knots[i])
        Q[i] = alpha * P[i] + (1.0 - alpha) * P[i - 1]
    Q[k + 1:] = P[k:]

    new_knots = np.insert(knots, k + 1, u)
    return new_knots, np.moveaxis(Q, 0, axis)


def refine_to_multiplicity(
    knots: np.ndarray,
    degree: int,
    coefs: np.ndarray,
    u: float,
    multiplicity: int,
    axis: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Insert u until it appears ``multiplicity`` times in the knot vector."""
    knots = np.asarray(knots, dtype=float)
    for _ in range(multiplicity - knot_multiplicity(knots, u)):
        knots, coefs = insert_knot(knots, degree, coefs, u, axis=axis)
    return knots, coefs


def restrict_knot_vector(
    knots: np.ndarray,
    degree: int,
    coefs: np.ndarray,
    lower: float,
    upper: float,
    axis: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Restrict one dimension of a spline to [lower, upper] exactly.

    Both bounds are raised to full multiplicity p + 1 by knot insertion,
    after which the knots and coefficients outside the interval no longer
    influence it and are dropped.

    Returns:
        (knots, coefs) of the restricted spline, as new arrays.
    """
    knots, coefs = refine_to_multiplicity(knots, degree, coefs, lower, degree + 1, axis)
    knots, coefs = refine_to_multiplicity(knots, degree, coefs, upper, degree + 1, axis)

    a = int(np.searchsorted(knots, lower, side='left'))
    b = int(np.searchsorted(knots, upper, side='left'))

    new_knots = knots[a:b + degree + 1].copy()
    index = [slice(None)] * np.ndim(coefs)
    index[axis] = slice(a, b)
    new_coefs = np.array(coefs[tuple(index)], dtype=float, copy=True)
    return new_knots, new_coefs
