"""Verification module: gradient and domain-reduction consistency checks."""

from .derivatives import check_jacobian, finite_difference_gradient, JacobianCheckResult
from .decomposition import check_domain_reduction, max_deviation, DecompositionResult

__all__ = [
    "check_jacobian",
    "finite_difference_gradient",
    "JacobianCheckResult",
    "check_domain_reduction",
    "max_deviation",
    "DecompositionResult",
]
