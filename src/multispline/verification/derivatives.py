"""Finite-difference consistency checks for model gradients."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..splines.multivariate import SurrogateModel


@dataclass
class JacobianCheckResult:
    """Result of comparing eval_jacobian with finite differences.

    Attributes:
        passed: True if every component agreed within the tolerance.
        max_error: Largest absolute difference observed.
        worst_point: Point where max_error occurred.
        n_points: Number of points checked.
    """
    passed: bool
    max_error: float
    worst_point: np.ndarray | None
    n_points: int

    def __repr__(self) -> str:
        return (
            f"JacobianCheckResult(passed={self.passed}, "
            f"max_error={self.max_error:.3e}, n_points={self.n_points})"
        )


def finite_difference_gradient(
    model: SurrogateModel,
    x: np.ndarray,
    h: float = 1e-8
) -> np.ndarray:
    """Gradient by finite differences that never leave the domain.

    Central differences with step h are used in the interior; where the
    step would cross the boundary a one-sided difference is used instead.

    Args:
        model: Model to differentiate.
        x: Point, shape (n_dims,).
        h: Finite difference step length.

    Returns:
        Gradient estimate, shape (n_dims,).
    """
    x = np.asarray(x, dtype=float)
    lower = model.get_domain_lower_bound()
    upper = model.get_domain_upper_bound()
    grad = np.zeros(len(x))

    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()
        if x[i] + h / 2 > upper[i]:
            # Backward difference
            x_minus[i] = x[i] - h
        elif x[i] - h / 2 < lower[i]:
            # Forward difference
            x_plus[i] = x[i] + h
        else:
            x_plus[i] = x[i] + h / 2
            x_minus[i] = x[i] - h / 2

        grad[i] = (model.eval(x_plus) - model.eval(x_minus)) / h

    return grad


def check_jacobian(
    model: SurrogateModel,
    points: np.ndarray,
    h: float = 1e-8,
    tol: float = 1e-4
) -> JacobianCheckResult:
    """Compare analytic gradients with finite differences at many points.

    Args:
        model: Model to check.
        points: Points inside the domain, shape (n_points, n_dims).
        h: Finite difference step length.
        tol: Absolute tolerance per gradient component.

    Returns:
        JacobianCheckResult summarizing the comparison.
    """
    points = np.atleast_2d(np.asarray(points, dtype=float))
    max_error = 0.0
    worst = None

    for x in points:
        analytic = model.eval_jacobian(x)
        numeric = finite_difference_gradient(model, x, h)
        error = float(np.max(np.abs(analytic - numeric)))
        if error > max_error or worst is None:
            max_error = max(error, max_error)
            worst = x.copy()

    return JacobianCheckResult(
        passed=max_error <= tol,
        max_error=max_error,
        worst_point=worst,
        n_points=len(points),
    )
