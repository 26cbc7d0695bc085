"""Tensor-product B-spline interpolation with exact domain reduction.

A :class:`BSplineModel` holds one knot vector and degree per dimension and
a coefficient tensor with one entry per control point. Models are built
from a complete grid of samples so that the spline interpolates every
sample, and they can be restricted to any sub-box of their domain without
changing their values there (Boehm knot insertion).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Sequence

import numpy as np

from ..config import KnotPolicy, OutOfDomainPolicy
from ..data.sample_store import SampleStore
from ..errors import ConstructionError, DimensionMismatchError, DomainError
from ..geometry.box import Box
from ..linalg import DEFAULT_CONDITION_LIMIT, solve_dense
from .basis import collocation_matrix, design_matrix, tensor_basis
from .knots import build_knot_vector, num_basis, restrict_knot_vector
from .multivariate import DOMAIN_RTOL, SurrogateModel

logger = logging.getLogger(__name__)


def _expand_degrees(degree: int | Sequence[int], n_dims: int) -> tuple[int, ...]:
    if isinstance(degree, (int, np.integer)):
        return (int(degree),) * n_dims
    degrees = tuple(int(p) for p in degree)
    if len(degrees) != n_dims:
        raise DimensionMismatchError(n_dims, len(degrees), what="degree")
    return degrees


def _readonly(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=float, copy=True)
    a.setflags(write=False)
    return a


@dataclass(frozen=True, eq=False)
class BSplineModel(SurrogateModel):
    """Tensor-product B-spline.

    Attributes:
        knots: Knot vector per dimension. End knots have multiplicity p + 1.
        degrees: Degree per dimension.
        coefficients: Control-point tensor, shape (n_0, ..., n_{d-1}) with
            n_i = len(knots[i]) - degrees[i] - 1.
        out_of_domain: Evaluation policy for points outside the domain.
    """
    knots: tuple[np.ndarray, ...]
    degrees: tuple[int, ...]
    coefficients: np.ndarray
    out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT

    _domain: Box = field(init=False, repr=False)

    def __post_init__(self) -> None:
        knots = tuple(_readonly(t) for t in self.knots)
        degrees = tuple(int(p) for p in self.degrees)
        if len(knots) != len(degrees):
            raise DimensionMismatchError(len(knots), len(degrees), what="degrees")

        for dim, (t, p) in enumerate(zip(knots, degrees)):
            if p < 1:
                raise ConstructionError(f"Dimension {dim}: degree must be >= 1, got {p}")
            if t.ndim != 1 or len(t) < 2 * (p + 1):
                raise ConstructionError(
                    f"Dimension {dim}: knot vector needs at least {2 * (p + 1)} knots"
                )
            if np.any(np.diff(t) < 0):
                raise ConstructionError(f"Dimension {dim}: knots must be non-decreasing")
            if np.any(t[:p + 1] != t[0]) or np.any(t[-p - 1:] != t[-1]):
                raise ConstructionError(
                    f"Dimension {dim}: end knots must have multiplicity {p + 1}"
                )
            if t[0] == t[-1]:
                raise ConstructionError(f"Dimension {dim}: domain has zero width")

        shape = tuple(num_basis(t, p) for t, p in zip(knots, degrees))
        coefs = _readonly(self.coefficients)
        if coefs.size != int(np.prod(shape)):
            raise ConstructionError(
                f"Coefficient tensor has {coefs.size} entries, "
                f"knot vectors require shape {shape}"
            )
        coefs = _readonly(coefs.reshape(shape))

        object.__setattr__(self, "knots", knots)
        object.__setattr__(self, "degrees", degrees)
        object.__setattr__(self, "coefficients", coefs)
        object.__setattr__(self, "out_of_domain", OutOfDomainPolicy(self.out_of_domain))
        object.__setattr__(self, "_domain", Box(
            [t[p] for t, p in zip(knots, degrees)],
            [t[num_basis(t, p)] for t, p in zip(knots, degrees)],
        ))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def fit(
        cls,
        store: SampleStore,
        degree: int | Sequence[int] = 3,
        knot_policy: KnotPolicy = KnotPolicy.FREE,
        out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT,
        condition_limit: float = DEFAULT_CONDITION_LIMIT,
    ) -> BSplineModel:
        """Build a B-spline that interpolates every sample in the store.

        The samples must form a complete grid: one control point per grid
        node, so the collocation system is square. It factors into one
        univariate system per dimension, which are solved in turn.

        Args:
            store: Samples to interpolate. The store is frozen.
            degree: Degree for all dimensions, or one per dimension.
            knot_policy: Interior knot placement rule.
            out_of_domain: Evaluation policy for the fitted model.
            condition_limit: Largest accepted condition number of the
                univariate collocation matrices.

        Returns:
            Fitted model.

        Raises:
            ConstructionError: On inconsistent samples, an incomplete grid,
                too few coordinates for the degree, or a singular system.
        """
        store.freeze()
        store.check_consistency()
        n_dims = store.n_dims
        degrees = _expand_degrees(degree, n_dims)
        knot_policy = KnotPolicy(knot_policy)

        if not store.is_grid_complete():
            axes = store.grid_axes()
            n_grid = int(np.prod([len(a) for a in axes]))
            raise ConstructionError(
                f"B-spline interpolation requires a complete grid of samples: "
                f"got {store.n_samples} samples, grid has {n_grid} nodes"
            )

        knots = [
            build_knot_vector(store.coordinates(dim), degrees[dim], knot_policy, dim=dim)
            for dim in range(n_dims)
        ]
        coefs = solve_tensor_collocation(
            knots, degrees, store.grid_axes(), store.values(), condition_limit
        )

        logger.info(
            "Built %dD B-spline: degrees=%s, policy=%s, control points=%s",
            n_dims, degrees, knot_policy.value, coefs.shape
        )
        return cls(tuple(knots), degrees, coefs, out_of_domain)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def n_dims(self) -> int:
        return len(self.degrees)

    @property
    def domain(self) -> Box:
        return self._domain

    @property
    def n_basis(self) -> tuple[int, ...]:
        """Number of control points per dimension."""
        return self.coefficients.shape

    def get_knot_vectors(self) -> list[np.ndarray]:
        return [t.copy() for t in self.knots]

    def get_coefficients(self) -> np.ndarray:
        return self.coefficients.copy()

    def get_basis_degrees(self) -> list[int]:
        return list(self.degrees)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def _window(self, starts: tuple[int, ...]) -> np.ndarray:
        return self.coefficients[tuple(
            slice(s, s + p + 1) for s, p in zip(starts, self.degrees)
        )]

    def _eval(self, x: np.ndarray) -> float:
        starts, weights = tensor_basis(self.knots, self.degrees, x)
        return float(np.sum(self._window(starts) * weights))

    def _eval_jacobian(self, x: np.ndarray) -> np.ndarray:
        grad = np.empty(self.n_dims)
        for dim in range(self.n_dims):
            starts, weights = tensor_basis(self.knots, self.degrees, x, derivative_dim=dim)
            grad[dim] = np.sum(self._window(starts) * weights)
        return grad

    def basis_matrix(self, points: np.ndarray):
        """Sparse tensor-product design matrix of this model at points."""
        return design_matrix(self.knots, self.degrees, points)

    # ------------------------------------------------------------------
    # Domain reduction
    # ------------------------------------------------------------------

    def reduce_domain(self, lower: np.ndarray, upper: np.ndarray) -> BSplineModel:
        """Restrict the spline to the box [lower, upper].

        Each bound is inserted as a knot of multiplicity p + 1, after which
        the knots and control points outside the box are discarded. The
        returned model evaluates identically (up to rounding) to this one
        everywhere in the new box. This model is not modified and the new
        one shares no arrays with it.

        Every interval must have positive width. A box is otherwise valid
        with lower == upper, but a spline restricted to a single point has
        no knot vector, so a zero-width dimension raises DomainError.

        Args:
            lower: New lower bounds, shape (n_dims,).
            upper: New upper bounds, shape (n_dims,).

        Returns:
            New model on [lower, upper].

        Raises:
            DimensionMismatchError: If the bounds have the wrong length.
            DomainError: If lower > upper, the box has zero width in some
                dimension, or it is not contained in the current domain.
        """
        lower = np.atleast_1d(np.asarray(lower, dtype=float)).ravel()
        upper = np.atleast_1d(np.asarray(upper, dtype=float)).ravel()
        if len(lower) != self.n_dims:
            raise DimensionMismatchError(self.n_dims, len(lower), what="lower bound")
        if len(upper) != self.n_dims:
            raise DimensionMismatchError(self.n_dims, len(upper), what="upper bound")

        for dim in range(self.n_dims):
            if lower[dim] > upper[dim]:
                raise DomainError(
                    f"Dimension {dim}: lower bound {lower[dim]} > upper bound {upper[dim]}"
                )
            if lower[dim] == upper[dim]:
                raise DomainError(
                    f"Dimension {dim}: cannot reduce to a zero-width interval at {lower[dim]}"
                )

        domain = self.domain
        new_box = Box(lower, upper)
        if not domain.contains_box(new_box, rtol=DOMAIN_RTOL):
            raise DomainError(
                f"Box [{lower.tolist()}, {upper.tolist()}] is not contained in the "
                f"domain [{domain.lower.tolist()}, {domain.upper.tolist()}]"
            )
        lower = domain.clip(lower)
        upper = domain.clip(upper)

        knots = [t.copy() for t in self.knots]
        coefs = self.coefficients.copy()
        for dim, p in enumerate(self.degrees):
            if lower[dim] == domain.lower[dim] and upper[dim] == domain.upper[dim]:
                continue
            knots[dim], coefs = restrict_knot_vector(
                knots[dim], p, coefs, lower[dim], upper[dim], axis=dim
            )

        logger.debug(
            "Reduced domain to [%s, %s]: control points %s -> %s",
            lower.tolist(), upper.tolist(), self.n_basis, coefs.shape
        )
        return replace(self, knots=tuple(knots), coefficients=coefs)

    def copy(self) -> BSplineModel:
        """Independent copy; no arrays are shared with this model."""
        return replace(self)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "type": "bspline",
            "degrees": list(self.degrees),
            "knots": [t.tolist() for t in self.knots],
            "shape": list(self.coefficients.shape),
            "coefficients": self.coefficients.ravel().tolist(),
            "out_of_domain": self.out_of_domain.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> BSplineModel:
        coefs = np.asarray(data["coefficients"], dtype=float).reshape(data["shape"])
        return cls(
            knots=tuple(np.asarray(t, dtype=float) for t in data["knots"]),
            degrees=tuple(data["degrees"]),
            coefficients=coefs,
            out_of_domain=OutOfDomainPolicy(data.get("out_of_domain", "reject")),
        )

    def save(self, path: str | Path) -> None:
        """Write knot vectors and coefficients to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict()))

    @classmethod
    def load(cls, path: str | Path) -> BSplineModel:
        return cls.from_dict(json.loads(Path(path).read_text()))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(n_dims={self.n_dims}, degrees={list(self.degrees)}, "
            f"n_basis={list(self.n_basis)}, domain={self.domain})"
        )


def solve_tensor_collocation(
    knots: Sequence[np.ndarray],
    degrees: Sequence[int],
    axes: Sequence[np.ndarray],
    values: np.ndarray,
    condition_limit: float = DEFAULT_CONDITION_LIMIT,
) -> np.ndarray:
    """Coefficients of the tensor-product spline through gridded values.

    The collocation matrix of a full grid is the Kronecker product of the
    univariate collocation matrices, so the system is solved one dimension
    at a time.

    Args:
        knots: Knot vector per dimension.
        degrees: Degree per dimension.
        axes: Sorted grid coordinates per dimension.
        values: Sample values in row-major grid order.

    Returns:
        Coefficient tensor of shape (len(axes[0]), ..., len(axes[-1])).
    """
    shape = tuple(len(a) for a in axes)
    coefs = np.asarray(values, dtype=float).reshape(shape)
    for dim, (t, p, axis) in enumerate(zip(knots, degrees, axes)):
        A = collocation_matrix(t, p, axis).toarray()
        moved = np.moveaxis(coefs, dim, 0)
        solved = solve_dense(
            A, moved.reshape(shape[dim], -1),
            context=f"B-spline collocation system in dimension {dim}",
            condition_limit=condition_limit,
        )
        coefs = np.moveaxis(solved.reshape(moved.shape), 0, dim)
    return coefs
