"""Radial basis function interpolation of scattered data.

The interpolant is

    s(x) = sum_j w_j * phi(||x - x_j||) + p(x)

with one center x_j per sample and an optional constant or linear
polynomial tail p. Kernels are a closed set of pure functions looked up
by :class:`RBFKernel`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

import numpy as np
from scipy.spatial.distance import cdist

from ..config import OutOfDomainPolicy
from ..data.sample_store import SampleStore
from ..errors import ConstructionError
from ..geometry.box import Box
from ..linalg import solve_dense
from .multivariate import SurrogateModel

logger = logging.getLogger(__name__)

# RBF Gram matrices are routinely worse conditioned than spline systems
RBF_CONDITION_LIMIT = 1e14


class RBFKernel(Enum):
    """Supported radial kernels phi(r); c is the shape parameter."""
    LINEAR = "linear"                              # r
    CUBIC = "cubic"                                # r^3
    THIN_PLATE_SPLINE = "thin_plate_spline"        # r^2 log(r), 0 at r = 0
    MULTIQUADRIC = "multiquadric"                  # sqrt(r^2 + c^2)
    INVERSE_MULTIQUADRIC = "inverse_multiquadric"  # 1 / sqrt(r^2 + c^2)
    INVERSE_QUADRATIC = "inverse_quadratic"        # 1 / (1 + r^2 / c^2)
    GAUSSIAN = "gaussian"                          # exp(-r^2 / c^2)

    @classmethod
    def parse(cls, kernel: RBFKernel | str) -> RBFKernel:
        if isinstance(kernel, cls):
            return kernel
        try:
            return cls(str(kernel).lower())
        except ValueError:
            options = ", ".join(k.value for k in cls)
            raise ConstructionError(
                f"Unsupported RBF kernel '{kernel}'. Use one of: {options}"
            ) from None


def _thin_plate(r: np.ndarray, c: float) -> np.ndarray:
    out = np.zeros_like(r)
    nz = r > 0
    out[nz] = r[nz] ** 2 * np.log(r[nz])
    return out


def _thin_plate_dr(r: np.ndarray, c: float) -> np.ndarray:
    out = np.zeros_like(r)
    nz = r > 0
    out[nz] = r[nz] * (2.0 * np.log(r[nz]) + 1.0)
    return out


_KERNELS: dict[RBFKernel, Callable[[np.ndarray, float], np.ndarray]] = {
    RBFKernel.LINEAR: lambda r, c: r,
    RBFKernel.CUBIC: lambda r, c: r ** 3,
    RBFKernel.THIN_PLATE_SPLINE: _thin_plate,
    RBFKernel.MULTIQUADRIC: lambda r, c: np.sqrt(r ** 2 + c ** 2),
    RBFKernel.INVERSE_MULTIQUADRIC: lambda r, c: 1.0 / np.sqrt(r ** 2 + c ** 2),
    RBFKernel.INVERSE_QUADRATIC: lambda r, c: 1.0 / (1.0 + (r / c) ** 2),
    RBFKernel.GAUSSIAN: lambda r, c: np.exp(-(r / c) ** 2),
}

# Radial derivatives dphi/dr
_KERNEL_DERIVATIVES: dict[RBFKernel, Callable[[np.ndarray, float], np.ndarray]] = {
    RBFKernel.LINEAR: lambda r, c: np.ones_like(r),
    RBFKernel.CUBIC: lambda r, c: 3.0 * r ** 2,
    RBFKernel.THIN_PLATE_SPLINE: _thin_plate_dr,
    RBFKernel.MULTIQUADRIC: lambda r, c: r / np.sqrt(r ** 2 + c ** 2),
    RBFKernel.INVERSE_MULTIQUADRIC: lambda r, c: -r / (r ** 2 + c ** 2) ** 1.5,
    RBFKernel.INVERSE_QUADRATIC: lambda r, c: -2.0 * r / c ** 2 / (1.0 + (r / c) ** 2) ** 2,
    RBFKernel.GAUSSIAN: lambda r, c: -2.0 * r / c ** 2 * np.exp(-(r / c) ** 2),
}


def evaluate_kernel(kernel: RBFKernel | str, r: np.ndarray, shape: float = 1.0) -> np.ndarray:
    """Kernel values phi(r) for an array of distances."""
    return _KERNELS[RBFKernel.parse(kernel)](np.asarray(r, dtype=float), shape)


def _polynomial_basis(points: np.ndarray, degree: int | None) -> np.ndarray:
    """Monomials up to the tail degree: [] , [1] or [1, x_0, ..., x_{d-1}]."""
    n = len(points)
    if degree is None:
        return np.zeros((n, 0))
    if degree == 0:
        return np.ones((n, 1))
    return np.hstack([np.ones((n, 1)), points])


@dataclass(frozen=True, eq=False)
class RBFModel(SurrogateModel):
    """Radial basis function interpolant.

    Attributes:
        kernel: Radial kernel.
        shape: Shape parameter c (ignored by linear, cubic and thin-plate).
        centers: Kernel centers (the training inputs), shape (N, n_dims).
        weights: Kernel weights, shape (N,).
        polynomial_degree: Degree of the polynomial tail (None, 0 or 1).
        polynomial_coefficients: Tail coefficients, constant term first.
        out_of_domain: Evaluation policy outside the sample bounding box.
    """
    kernel: RBFKernel
    shape: float
    centers: np.ndarray
    weights: np.ndarray
    polynomial_degree: int | None = None
    polynomial_coefficients: np.ndarray = field(default_factory=lambda: np.zeros(0))
    out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT

    _domain: Box = field(init=False, repr=False)

    def __post_init__(self) -> None:
        centers = np.array(self.centers, dtype=float, copy=True)
        if centers.ndim == 1:
            centers = centers.reshape(-1, 1)
        weights = np.array(self.weights, dtype=float, copy=True).ravel()
        poly = np.array(self.polynomial_coefficients, dtype=float, copy=True).ravel()
        for a in (centers, weights, poly):
            a.setflags(write=False)

        object.__setattr__(self, "kernel", RBFKernel.parse(self.kernel))
        object.__setattr__(self, "centers", centers)
        object.__setattr__(self, "weights", weights)
        object.__setattr__(self, "polynomial_coefficients", poly)
        object.__setattr__(self, "out_of_domain", OutOfDomainPolicy(self.out_of_domain))
        object.__setattr__(self, "_domain", Box(centers.min(axis=0), centers.max(axis=0)))

    @classmethod
    def fit(
        cls,
        store: SampleStore,
        kernel: RBFKernel | str = RBFKernel.THIN_PLATE_SPLINE,
        shape: float = 1.0,
        polynomial_degree: int | None = None,
        out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT,
        condition_limit: float = RBF_CONDITION_LIMIT,
    ) -> RBFModel:
        """Build an RBF interpolant through every sample in the store.

        Args:
            store: Training samples (scattered or gridded). The store is frozen.
            kernel: Radial kernel, as enum member or name.
            shape: Shape parameter c > 0.
            polynomial_degree: Optional polynomial tail, None, 0 or 1. The
                tail adds orthogonality constraints sum_j w_j q(x_j) = 0 for
                every tail monomial q.
            out_of_domain: Evaluation policy for the fitted model.
            condition_limit: Largest accepted condition number.

        Returns:
            Fitted model.

        Raises:
            ConstructionError: On an unknown kernel, a non-positive shape
                parameter, an unsupported tail degree, inconsistent samples
                or a singular (augmented) Gram matrix.
        """
        kernel = RBFKernel.parse(kernel)
        if not np.isfinite(shape) or shape <= 0:
            raise ConstructionError(f"RBF shape parameter must be > 0, got {shape}")
        if polynomial_degree not in (None, 0, 1):
            raise ConstructionError(
                f"Polynomial tail degree must be None, 0 or 1, got {polynomial_degree}"
            )

        store.freeze()
        store.check_consistency()
        points = store.points()
        y = store.values()

        gram = _KERNELS[kernel](cdist(points, points), shape)
        P = _polynomial_basis(points, polynomial_degree)
        m = P.shape[1]
        if m:
            A = np.block([[gram, P], [P.T, np.zeros((m, m))]])
            rhs = np.concatenate([y, np.zeros(m)])
        else:
            A, rhs = gram, y

        solution = solve_dense(
            A, rhs,
            context=f"RBF {kernel.value} Gram system ({len(points)} centers)",
            condition_limit=condition_limit,
        )

        logger.info(
            "Built %dD RBF interpolant: kernel=%s, centers=%d, tail=%s",
            store.n_dims, kernel.value, len(points), polynomial_degree
        )
        return cls(
            kernel=kernel,
            shape=float(shape),
            centers=points,
            weights=solution[:len(points)],
            polynomial_degree=polynomial_degree,
            polynomial_coefficients=solution[len(points):],
            out_of_domain=out_of_domain,
        )

    @property
    def n_dims(self) -> int:
        return self.centers.shape[1]

    @property
    def n_centers(self) -> int:
        return len(self.centers)

    @property
    def domain(self) -> Box:
        return self._domain

    def _eval(self, x: np.ndarray) -> float:
        r = np.linalg.norm(self.centers - x, axis=1)
        value = float(np.dot(self.weights, _KERNELS[self.kernel](r, self.shape)))
        if self.polynomial_coefficients.size:
            value += float(np.dot(
                _polynomial_basis(x.reshape(1, -1), self.polynomial_degree)[0],
                self.polynomial_coefficients,
            ))
        return value

    def _eval_jacobian(self, x: np.ndarray) -> np.ndarray:
        diff = x - self.centers
        r = np.linalg.norm(diff, axis=1)
        dphi = _KERNEL_DERIVATIVES[self.kernel](r, self.shape)

        # d/dx phi(||x - x_j||) = phi'(r) (x - x_j) / r, taken as 0 at a center
        scale = np.zeros_like(r)
        nz = r > 0
        scale[nz] = self.weights[nz] * dphi[nz] / r[nz]
        grad = scale @ diff

        if self.polynomial_degree == 1:
            grad = grad + self.polynomial_coefficients[1:]
        return grad

    def to_dict(self) -> dict:
        return {
            "type": "rbf",
            "kernel": self.kernel.value,
            "shape": self.shape,
            "centers": self.centers.tolist(),
            "weights": self.weights.tolist(),
            "polynomial_degree": self.polynomial_degree,
            "polynomial_coefficients": self.polynomial_coefficients.tolist(),
            "out_of_domain": self.out_of_domain.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> RBFModel:
        return cls(
            kernel=RBFKernel.parse(data["kernel"]),
            shape=float(data["shape"]),
            centers=np.asarray(data["centers"], dtype=float),
            weights=np.asarray(data["weights"], dtype=float),
            polynomial_degree=data.get("polynomial_degree"),
            polynomial_coefficients=np.asarray(
                data.get("polynomial_coefficients", []), dtype=float
            ),
            out_of_domain=OutOfDomainPolicy(data.get("out_of_domain", "reject")),
        )

    def save(self, path: str | Path) -> None:
        Path(path).write_text(json.dumps(self.to_dict()))

    @classmethod
    def load(cls, path: str | Path) -> RBFModel:
        return cls.from_dict(json.loads(Path(path).read_text()))

    def __repr__(self) -> str:
        return (
            f"RBFModel(kernel='{self.kernel.value}', n_centers={self.n_centers}, "
            f"n_dims={self.n_dims}, tail={self.polynomial_degree})"
        )
