"""Fitting policies and default build parameters."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace as _replace
from enum import Enum

from .errors import ConstructionError


class KnotPolicy(Enum):
    """How interior knots are derived from sample coordinates."""
    CLAMPED = "clamped"  # Not-a-knot: interior knots sit on sample coordinates
    FREE = "free"        # Moving average of consecutive coordinates


class OutOfDomainPolicy(Enum):
    """What happens when a query point lies outside the model domain."""
    REJECT = "reject"  # Raise DomainError
    CLAMP = "clamp"    # Project the query onto the domain box


def _as_enum(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        options = ", ".join(m.value for m in enum_cls)
        raise ConstructionError(
            f"Unknown {enum_cls.__name__} '{value}'. Use one of: {options}"
        ) from None


@dataclass(frozen=True)
class FitConfig:
    """Default parameters shared by the model builders.

    Attributes:
        degree: Spline degree (int, or one per dimension).
        knot_policy: Knot placement rule for B-spline bases.
        out_of_domain: Evaluation policy for points outside the domain.
        smoothing: P-spline smoothing parameter lambda (>= 0).
        kernel: RBF kernel name.
        shape: RBF shape parameter c (> 0).
        polynomial_degree: Degree of the RBF polynomial tail (None, 0 or 1).
        condition_limit: Reciprocal condition numbers below 1/condition_limit
            are treated as singular by the linear solver.
        rbf_condition_limit: The same limit for the RBF saddle-point system.
        max_control_points: P-spline control points per dimension on
            scattered samples.
    """
    degree: int | tuple[int, ...] = 3
    knot_policy: KnotPolicy = KnotPolicy.FREE
    out_of_domain: OutOfDomainPolicy = OutOfDomainPolicy.REJECT
    smoothing: float = 0.03
    kernel: str = "thin_plate_spline"
    shape: float = 1.0
    polynomial_degree: int | None = None
    condition_limit: float = 1e12
    rbf_condition_limit: float = 1e14
    max_control_points: int = 20

    def __post_init__(self) -> None:
        object.__setattr__(self, "knot_policy", _as_enum(KnotPolicy, self.knot_policy))
        object.__setattr__(
            self, "out_of_domain", _as_enum(OutOfDomainPolicy, self.out_of_domain)
        )
        if isinstance(self.degree, list):
            object.__setattr__(self, "degree", tuple(self.degree))

    @classmethod
    def from_dict(cls, params: dict) -> FitConfig:
        """Create a config from a plain dict, ignoring unknown keys."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in params.items() if k in names})

    def replace(self, **overrides) -> FitConfig:
        """Return a copy with the given fields overridden."""
        names = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - names)
        if unknown:
            raise ConstructionError(
                f"Unknown build parameter(s): {', '.join(unknown)}. "
                f"Use any of: {', '.join(sorted(names))}"
            )
        return _replace(self, **overrides)


DEFAULT_CONFIG = FitConfig()
