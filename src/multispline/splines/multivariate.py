"""Common interface of all fitted surrogate models."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from ..config import OutOfDomainPolicy
from ..errors import DimensionMismatchError, DomainError
from ..geometry.box import Box

# Relative slack (in units of the domain width) accepted as inside the domain
DOMAIN_RTOL = 1e-12


class SurrogateModel(ABC):
    """Abstract base class for fitted multivariate surrogates.

    Models are born fully solved and are read-only afterwards, so
    evaluation is safe to call from several threads at once.
    """

    out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT

    @property
    @abstractmethod
    def n_dims(self) -> int:
        """Dimension of the domain."""
        ...

    @property
    @abstractmethod
    def domain(self) -> Box:
        """Box on which the model is defined."""
        ...

    @abstractmethod
    def _eval(self, x: np.ndarray) -> float:
        """Evaluate at a validated point inside the domain."""
        ...

    @abstractmethod
    def _eval_jacobian(self, x: np.ndarray) -> np.ndarray:
        """Gradient at a validated point inside the domain."""
        ...

    def eval(self, x: np.ndarray) -> float:
        """Evaluate the model at a point.

        Args:
            x: Point, shape (n_dims,).

        Returns:
            Model value.

        Raises:
            DimensionMismatchError: If len(x) != n_dims.
            DomainError: If x is outside the domain and the policy is REJECT.
        """
        return float(self._eval(self._prepare_point(x)))

    def eval_jacobian(self, x: np.ndarray) -> np.ndarray:
        """Gradient of the model at a point, shape (n_dims,)."""
        return np.asarray(self._eval_jacobian(self._prepare_point(x)), dtype=float)

    def eval_batch(self, points: np.ndarray) -> np.ndarray:
        """Evaluate at multiple points.

        Args:
            points: Points, shape (n_points, n_dims).

        Returns:
            Values, shape (n_points,).
        """
        points = np.asarray(points, dtype=float)
        if points.ndim == 1:
            points = points.reshape(1, -1)
        return np.array([self.eval(x) for x in points])

    def __call__(self, x: np.ndarray) -> float:
        return self.eval(x)

    def get_num_variables(self) -> int:
        return self.n_dims

    def get_domain_lower_bound(self) -> np.ndarray:
        return self.domain.lower.copy()

    def get_domain_upper_bound(self) -> np.ndarray:
        return self.domain.upper.copy()

    def _prepare_point(self, x: np.ndarray) -> np.ndarray:
        """Validate the dimension and apply the out-of-domain policy."""
        x = np.atleast_1d(np.asarray(x, dtype=float)).ravel()
        if len(x) != self.n_dims:
            raise DimensionMismatchError(self.n_dims, len(x))

        domain = self.domain
        if self.out_of_domain == OutOfDomainPolicy.CLAMP:
            return domain.clip(x)

        if not domain.contains(x, rtol=DOMAIN_RTOL):
            raise DomainError(
                f"Point {x.tolist()} is outside the domain "
                f"[{domain.lower.tolist()}, {domain.upper.tolist()}]"
            )
        # Points within the tolerance band are snapped onto the boundary
        return domain.clip(x)
