"""Splines module: knot vectors, basis evaluation and surrogate models."""

from .multivariate import SurrogateModel
from .knots import build_knot_vector, insert_knot, restrict_knot_vector
from .basis import basis_functions, basis_derivatives, design_matrix, find_span
from .bspline import BSplineModel
from .pspline import PenalizedFitter, PenalizedModel
from .rbf import RBFKernel, RBFModel
from .factory import BSplineType, BuildResult, build, try_build

__all__ = [
    # Common interface
    "SurrogateModel",
    # Knot vectors and basis
    "build_knot_vector",
    "insert_knot",
    "restrict_knot_vector",
    "basis_functions",
    "basis_derivatives",
    "design_matrix",
    "find_span",
    # Models
    "BSplineModel",
    "PenalizedFitter",
    "PenalizedModel",
    "RBFKernel",
    "RBFModel",
    # Construction
    "BSplineType",
    "BuildResult",
    "build",
    "try_build",
]
