"""Penalized smoothing B-splines (P-splines).

Uses the same tensor-product basis as :class:`BSplineModel` but solves the
regularized normal equations

    (B^T B + lambda * D^T D) c = B^T y

where D stacks the second-difference operators of the control-point grid
along each dimension. lambda = 0 gives the ordinary least-squares fit
(exact interpolation on a complete grid); larger lambda trades residual
for smoothness.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np
import scipy.sparse as sp

from ..config import KnotPolicy, OutOfDomainPolicy
from ..data.sample_store import SampleStore
from ..errors import ConstructionError
from ..linalg import DEFAULT_CONDITION_LIMIT, solve_spd
from .basis import design_matrix
from .bspline import BSplineModel, _expand_degrees
from .knots import build_knot_vector

logger = logging.getLogger(__name__)


def second_difference_matrix(n: int) -> sp.csr_matrix:
    """Rows c[i] - 2 c[i+1] + c[i+2], shape (max(n - 2, 0), n)."""
    m = max(n - 2, 0)
    if m == 0:
        return sp.csr_matrix((0, n))
    return sp.diags([1.0, -2.0, 1.0], [0, 1, 2], shape=(m, n), format='csr')


def penalty_operator(shape: Sequence[int]) -> sp.csr_matrix:
    """Second differences along every dimension of a control-point tensor.

    The operators for each dimension act on the row-major flattened
    tensor and are stacked, so ||D c||^2 is the sum of the squared second
    differences along all dimensions.
    """
    shape = tuple(int(n) for n in shape)
    blocks = []
    for dim, n in enumerate(shape):
        before = int(np.prod(shape[:dim]))
        after = int(np.prod(shape[dim + 1:]))
        op = sp.kron(
            sp.identity(before, format='csr'),
            sp.kron(second_difference_matrix(n), sp.identity(after, format='csr')),
        )
        blocks.append(op)
    return sp.vstack(blocks, format='csr')


@dataclass(frozen=True, eq=False, repr=False)
class PenalizedModel(BSplineModel):
    """B-spline fitted by penalized least squares.

    Attributes:
        smoothing: Smoothing parameter lambda used for the fit.
        fit_residual_norm: ||B c - y|| on the training samples at fit time.
    """
    smoothing: float = 0.0
    fit_residual_norm: float = 0.0

    def roughness(self) -> float:
        """Norm of the second differences of the control points, ||D c||."""
        D = penalty_operator(self.n_basis)
        return float(np.linalg.norm(D @ self.coefficients.ravel()))

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(type="pspline", smoothing=self.smoothing,
                    fit_residual_norm=self.fit_residual_norm)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> PenalizedModel:
        base = BSplineModel.from_dict(data)
        return cls(
            knots=base.knots,
            degrees=base.degrees,
            coefficients=base.coefficients,
            out_of_domain=base.out_of_domain,
            smoothing=float(data.get("smoothing", 0.0)),
            fit_residual_norm=float(data.get("fit_residual_norm", 0.0)),
        )


@dataclass
class PenalizedFitter:
    """Builder for :class:`PenalizedModel`.

    Unlike the interpolating B-spline, scattered samples are accepted:
    the penalty keeps the system well-posed as long as lambda > 0 and the
    samples pin down the linear trend. On a complete grid every sample
    coordinate is a knot site; on scattered data each dimension gets at
    most ``max_control_points`` control points, placed by quantiles.

    Attributes:
        degree: Spline degree (int, or one per dimension).
        knot_policy: Interior knot placement rule.
        smoothing: Smoothing parameter lambda >= 0.
        out_of_domain: Evaluation policy for the fitted model.
        condition_limit: Largest accepted condition number of the
            regularized normal equations.
        max_control_points: Cap on control points per dimension for
            scattered samples.
    """
    degree: int | tuple[int, ...] = 3
    knot_policy: KnotPolicy = KnotPolicy.FREE
    smoothing: float = 0.03
    out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT
    condition_limit: float = DEFAULT_CONDITION_LIMIT
    max_control_points: int = 20

    def fit(self, store: SampleStore) -> PenalizedModel:
        """Fit a P-spline to the samples in the store.

        Args:
            store: Training samples. The store is frozen.

        Returns:
            Fitted model.

        Raises:
            ConstructionError: If lambda is negative or not finite, the
                samples are inconsistent, a dimension has too few distinct
                coordinates, or the regularized system is singular.
        """
        lam = float(self.smoothing)
        if not np.isfinite(lam) or lam < 0:
            raise ConstructionError(
                f"Smoothing parameter must be a finite value >= 0, got {self.smoothing}"
            )

        store.freeze()
        store.check_consistency()
        n_dims = store.n_dims
        degrees = _expand_degrees(self.degree, n_dims)
        policy = KnotPolicy(self.knot_policy)
        points = store.points()
        y = store.values()

        if store.is_grid_complete():
            coords = [store.coordinates(dim) for dim in range(n_dims)]
        else:
            coords = [
                self._scattered_coordinates(points[:, dim], degrees[dim], dim)
                for dim in range(n_dims)
            ]
        knots = [
            build_knot_vector(coords[dim], degrees[dim], policy, dim=dim)
            for dim in range(n_dims)
        ]
        shape = tuple(len(t) - p - 1 for t, p in zip(knots, degrees))

        B = design_matrix(knots, degrees, points)
        D = penalty_operator(shape)

        lhs = (B.T @ B + lam * (D.T @ D)).toarray()
        rhs = B.T @ y
        coefs = solve_spd(
            lhs, rhs,
            context=f"P-spline normal equations (lambda={lam})",
            condition_limit=self.condition_limit,
        )
        residual = float(np.linalg.norm(B @ coefs - y))

        logger.info(
            "Built %dD P-spline: degrees=%s, lambda=%g, control points=%s, residual=%.3e",
            n_dims, degrees, lam, shape, residual
        )
        return PenalizedModel(
            knots=tuple(knots),
            degrees=degrees,
            coefficients=coefs.reshape(shape),
            out_of_domain=self.out_of_domain,
            smoothing=lam,
            fit_residual_norm=residual,
        )

    def _scattered_coordinates(self, column: np.ndarray, degree: int, dim: int) -> np.ndarray:
        """Knot sites for one dimension of scattered data.

        At most ``max_control_points`` sites are taken from evenly spaced
        quantiles of the sample coordinates.
        """
        limit = int(self.max_control_points)
        if limit < degree + 1:
            raise ConstructionError(
                f"Dimension {dim}: max_control_points={limit} is below "
                f"degree + 1 = {degree + 1}"
            )
        sites = np.unique(column)
        if len(sites) > limit:
            sites = np.unique(np.quantile(column, np.linspace(0.0, 1.0, limit)))
        return sites
