"""Error taxonomy for surrogate construction, evaluation and domain reduction."""

from __future__ import annotations


class SplineError(Exception):
    """Base class for all multispline errors.

    Attributes:
        kind: Short machine-readable error category.
    """
    kind = "spline"


class ConstructionError(SplineError, ValueError):
    """A model could not be built from the given samples and parameters.

    Raised for unsupported degrees, singular design/Gram/regularized
    systems, negative smoothing parameters, unknown kernels and
    conflicting duplicate samples.
    """
    kind = "construction"


class FrozenStoreError(ConstructionError):
    """A sample store was modified after a builder consumed it."""
    kind = "frozen_store"


class DomainError(SplineError, ValueError):
    """Bounds or query points fall outside the valid domain of a model."""
    kind = "domain"


class DimensionMismatchError(SplineError, ValueError):
    """A vector has a different length than the model dimension."""
    kind = "dimension_mismatch"

    def __init__(self, expected: int, got: int, what: str = "x") -> None:
        self.expected = expected
        self.got = got
        super().__init__(
            f"Dimension mismatch for {what}: expected {expected}, got {got}"
        )
