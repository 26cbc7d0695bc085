"""Analytic test functions with known values and gradients."""

from __future__ import annotations

import numpy as np


def six_hump_camel_back(x: np.ndarray) -> float:
    """Six-hump camel back function of two variables.

    f(x0, x1) = (4 - 2.1 x0^2 + x0^4 / 3) x0^2 + x0 x1 + (-4 + 4 x1^2) x1^2
    """
    x0, x1 = float(x[0]), float(x[1])
    return (4 - 2.1 * x0**2 + x0**4 / 3) * x0**2 + x0 * x1 + (-4 + 4 * x1**2) * x1**2


def six_hump_camel_back_gradient(x: np.ndarray) -> np.ndarray:
    x0, x1 = float(x[0]), float(x[1])
    return np.array([
        8 * x0 - 8.4 * x0**3 + 2 * x0**5 + x1,
        x0 - 8 * x1 + 16 * x1**3,
    ])


def franke(x: np.ndarray) -> float:
    """Franke's bivariate test function on [0, 1]^2."""
    x0, x1 = float(x[0]), float(x[1])
    return (
        0.75 * np.exp(-((9 * x0 - 2) ** 2 + (9 * x1 - 2) ** 2) / 4)
        + 0.75 * np.exp(-((9 * x0 + 1) ** 2) / 49 - (9 * x1 + 1) / 10)
        + 0.5 * np.exp(-((9 * x0 - 7) ** 2 + (9 * x1 - 3) ** 2) / 4)
        - 0.2 * np.exp(-((9 * x0 - 4) ** 2) - (9 * x1 - 7) ** 2)
    )


def rosenbrock(x: np.ndarray) -> float:
    """N-dimensional Rosenbrock function."""
    x = np.asarray(x, dtype=float)
    return float(np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1 - x[:-1]) ** 2))


def polynomial(x: np.ndarray, degree: int = 3) -> float:
    """Separable polynomial sum_i (x_i^degree + x_i), reproduced exactly
    by splines of at least that degree."""
    x = np.asarray(x, dtype=float)
    return float(np.sum(x**degree + x))
