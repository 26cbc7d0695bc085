"""Axis-aligned boxes used as model domains."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..errors import DimensionMismatchError, DomainError


@dataclass
class Box:
    """Axis-aligned box defined by lower and upper bounds.

    The set is {x : lower[i] <= x[i] <= upper[i] for all i}.
    """
    lower: np.ndarray
    upper: np.ndarray

    def __post_init__(self) -> None:
        self.lower = np.array(self.lower, dtype=float).ravel()
        self.upper = np.array(self.upper, dtype=float).ravel()

        if self.lower.shape != self.upper.shape:
            raise DimensionMismatchError(
                len(self.lower), len(self.upper), what="upper bound"
            )

        bad = np.nonzero(self.lower > self.upper)[0]
        if bad.size:
            i = int(bad[0])
            raise DomainError(
                f"lower bound {self.lower[i]} > upper bound {self.upper[i]} "
                f"in dimension {i}"
            )

    @property
    def n_dims(self) -> int:
        return len(self.lower)

    @property
    def center(self) -> np.ndarray:
        """Center of the box."""
        return (self.lower + self.upper) / 2

    @property
    def widths(self) -> np.ndarray:
        """Width in each dimension."""
        return self.upper - self.lower

    @property
    def diameter(self) -> float:
        """Largest width over all dimensions."""
        return float(np.max(self.widths)) if self.n_dims else 0.0

    def contains(self, x: np.ndarray, rtol: float = 0.0) -> bool:
        """Check membership, allowing a tolerance relative to the widths."""
        x = np.asarray(x, dtype=float)
        slack = rtol * np.maximum(self.widths, 1.0)
        return bool(
            np.all(x >= self.lower - slack) and np.all(x <= self.upper + slack)
        )

    def contains_box(self, other: Box, rtol: float = 0.0) -> bool:
        return self.contains(other.lower, rtol) and self.contains(other.upper, rtol)

    def clip(self, x: np.ndarray) -> np.ndarray:
        """Project a point onto the box."""
        return np.clip(np.asarray(x, dtype=float), self.lower, self.upper)

    def widest_dimension(self) -> int:
        return int(np.argmax(self.widths))

    def bisect(self, dim: int | None = None) -> tuple[Box, Box]:
        """Split the box at the midpoint of one dimension (widest by default)."""
        if dim is None:
            dim = self.widest_dimension()
        split = (self.lower[dim] + self.upper[dim]) / 2

        upper_left = self.upper.copy()
        upper_left[dim] = split
        lower_right = self.lower.copy()
        lower_right[dim] = split
        return (
            Box(self.lower.copy(), upper_left),
            Box(lower_right, self.upper.copy()),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Box):
            return NotImplemented
        return bool(
            np.array_equal(self.lower, other.lower)
            and np.array_equal(self.upper, other.upper)
        )

    def __repr__(self) -> str:
        return f"Box(lower={self.lower.tolist()}, upper={self.upper.tolist()})"
