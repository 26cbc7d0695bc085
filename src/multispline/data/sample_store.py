"""Sample storage shared by all model builders."""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

import numpy as np

from ..errors import ConstructionError, DimensionMismatchError, FrozenStoreError
from ..geometry.box import Box

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    """A single training pair (x, y)."""
    x: tuple[float, ...]
    y: float

    @property
    def n_dims(self) -> int:
        return len(self.x)


class SampleStore:
    """Training set of (input vector, scalar output) pairs keyed by x.

    The store is populated by the caller and then consumed by a builder,
    which freezes it. Adding samples to a frozen store raises
    :class:`FrozenStoreError`.

    Duplicate inputs with identical outputs are collapsed. Duplicate
    inputs with conflicting outputs are remembered and reported by
    :meth:`check_consistency` (called by every builder) as a
    :class:`ConstructionError` naming the coordinate.
    """

    def __init__(self, samples: Iterable[Sample] | None = None) -> None:
        self._samples: dict[tuple[float, ...], float] = {}
        self._conflicts: dict[tuple[float, ...], list[float]] = {}
        self._n_dims: int | None = None
        self._frozen = False
        if samples is not None:
            for s in samples:
                self.add_sample(s.x, s.y)

    # ------------------------------------------------------------------
    # Population
    # ------------------------------------------------------------------

    def add_sample(self, x: Sequence[float] | np.ndarray | float, y: float) -> None:
        """Add one sample.

        Args:
            x: Input point, shape (n_dims,). A scalar is treated as 1D.
            y: Output value.

        Raises:
            FrozenStoreError: If a builder has already consumed the store.
            DimensionMismatchError: If x has a different length than the
                samples already stored.
            ConstructionError: If x or y is not finite.
        """
        if self._frozen:
            raise FrozenStoreError(
                "Cannot add samples: store has been consumed by a builder"
            )

        key = tuple(float(v) for v in np.atleast_1d(np.asarray(x, dtype=float)).ravel())
        y = float(y)
        if not all(np.isfinite(key)) or not np.isfinite(y):
            raise ConstructionError(f"Sample at x={key} contains non-finite values")

        if self._n_dims is None:
            self._n_dims = len(key)
        elif len(key) != self._n_dims:
            raise DimensionMismatchError(self._n_dims, len(key), what="sample x")

        if key in self._samples:
            existing = self._samples[key]
            if existing != y:
                self._conflicts.setdefault(key, [existing]).append(y)
            return

        self._samples[key] = y

    def add_samples(self, points: np.ndarray, values: np.ndarray) -> None:
        """Add many samples at once.

        Args:
            points: Sample points, shape (n_samples, n_dims).
            values: Function values, shape (n_samples,).
        """
        points = np.asarray(points, dtype=float)
        values = np.asarray(values, dtype=float).ravel()
        if points.ndim == 1:
            points = points.reshape(-1, 1)
        if len(points) != len(values):
            raise ValueError(
                f"points and values must have the same length: "
                f"{len(points)} vs {len(values)}"
            )
        for x, y in zip(points, values):
            self.add_sample(x, y)

    @classmethod
    def from_arrays(cls, points: np.ndarray, values: np.ndarray) -> SampleStore:
        store = cls()
        store.add_samples(points, values)
        return store

    @classmethod
    def from_function(
        cls,
        func: Callable[[np.ndarray], float],
        grid_axes: Sequence[Sequence[float]],
    ) -> SampleStore:
        """Sample a function on the full tensor grid of the given axes."""
        store = cls()
        for point in itertools.product(*grid_axes):
            x = np.array(point, dtype=float)
            store.add_sample(x, func(x))
        return store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> SampleStore:
        """Mark the store as consumed. Further additions are rejected."""
        if not self._frozen:
            logger.debug(
                "Freezing sample store with %d samples in %s dimensions",
                len(self._samples), self._n_dims
            )
        self._frozen = True
        return self

    def check_consistency(self) -> None:
        """Raise if the store cannot be used to build a model.

        Raises:
            ConstructionError: If the store is empty or contains a
                coordinate with conflicting outputs.
        """
        if not self._samples:
            raise ConstructionError("Sample store is empty")
        if self._conflicts:
            x, ys = next(iter(self._conflicts.items()))
            raise ConstructionError(
                f"Conflicting duplicate samples at x={list(x)}: "
                f"y values {ys} ({len(self._conflicts)} conflicting coordinate(s))"
            )

    @property
    def conflicts(self) -> dict[tuple[float, ...], list[float]]:
        """Coordinates seen with more than one distinct output."""
        return {k: list(v) for k, v in self._conflicts.items()}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def n_dims(self) -> int:
        return self._n_dims or 0

    def get_num_variables(self) -> int:
        return self.n_dims

    @property
    def n_samples(self) -> int:
        return len(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[Sample]:
        for x, y in self._samples.items():
            yield Sample(x, y)

    def __contains__(self, x) -> bool:
        key = tuple(float(v) for v in np.atleast_1d(np.asarray(x, dtype=float)).ravel())
        return key in self._samples

    def points(self) -> np.ndarray:
        """Sample inputs, shape (n_samples, n_dims), in sorted order."""
        keys = sorted(self._samples)
        return np.array(keys, dtype=float).reshape(len(keys), self.n_dims)

    def values(self) -> np.ndarray:
        """Sample outputs, shape (n_samples,), aligned with :meth:`points`."""
        return np.array([self._samples[k] for k in sorted(self._samples)], dtype=float)

    def coordinates(self, dim: int) -> np.ndarray:
        """Sorted unique coordinates of all samples along one dimension."""
        if not 0 <= dim < self.n_dims:
            raise IndexError(f"Dimension {dim} out of range for {self.n_dims}D store")
        return np.unique(np.array([k[dim] for k in self._samples], dtype=float))

    def grid_axes(self) -> list[np.ndarray]:
        """Per-dimension coordinate sets."""
        return [self.coordinates(d) for d in range(self.n_dims)]

    def bounds(self) -> Box:
        """Bounding box of all sample inputs."""
        pts = self.points()
        if len(pts) == 0:
            raise ConstructionError("Sample store is empty")
        return Box(pts.min(axis=0), pts.max(axis=0))

    def is_grid_complete(self) -> bool:
        """True if every combination of per-dimension coordinates is sampled."""
        if not self._samples:
            return False
        n_grid = int(np.prod([len(c) for c in self.grid_axes()]))
        return n_grid == len(self._samples)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "n_dims": self.n_dims,
            "samples": [[list(x), y] for x, y in self._samples.items()],
        }

    @classmethod
    def from_dict(cls, data: dict) -> SampleStore:
        store = cls()
        for x, y in data["samples"]:
            store.add_sample(x, y)
        return store

    def save(self, path: str | Path) -> None:
        """Write the samples to a JSON file."""
        Path(path).write_text(json.dumps(self.to_dict()))

    @classmethod
    def load(cls, path: str | Path) -> SampleStore:
        """Read samples written by :meth:`save` into a new, unfrozen store."""
        return cls.from_dict(json.loads(Path(path).read_text()))

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"SampleStore(n_samples={len(self)}, n_dims={self.n_dims}, {state})"
