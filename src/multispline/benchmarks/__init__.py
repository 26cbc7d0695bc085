"""Benchmark module: analytic test functions."""

from .functions import (
    six_hump_camel_back,
    six_hump_camel_back_gradient,
    franke,
    rosenbrock,
    polynomial,
)

__all__ = [
    "six_hump_camel_back",
    "six_hump_camel_back_gradient",
    "franke",
    "rosenbrock",
    "polynomial",
]
