"""multispline: multivariate spline and RBF surrogate models.

Fit interpolating tensor-product B-splines, penalized smoothing
B-splines (P-splines) and radial basis function interpolants to samples
held in a :class:`SampleStore`, then evaluate values and gradients of the
frozen models. B-spline models can be restricted exactly to any sub-box
of their domain with :meth:`BSplineModel.reduce_domain`.

Example:
    >>> import numpy as np
    >>> from multispline import SampleStore, build
    >>> axis = np.linspace(0, 1, 6)
    >>> store = SampleStore.from_function(lambda x: x[0] + x[1], [axis, axis])
    >>> model = build(store, "bspline", degree=3)
    >>> round(model.eval([0.5, 0.25]), 10)
    0.75
"""

from . import logging_config
from .config import FitConfig, KnotPolicy, OutOfDomainPolicy
from .data import Sample, SampleStore
from .errors import (
    ConstructionError,
    DimensionMismatchError,
    DomainError,
    FrozenStoreError,
    SplineError,
)
from .geometry import Box
from .logging_config import setup_logging
from .splines import (
    BSplineModel,
    BSplineType,
    BuildResult,
    PenalizedFitter,
    PenalizedModel,
    RBFKernel,
    RBFModel,
    SurrogateModel,
    build,
    try_build,
)

__version__ = "0.1.0"

__all__ = [
    "FitConfig",
    "KnotPolicy",
    "OutOfDomainPolicy",
    "Sample",
    "SampleStore",
    "ConstructionError",
    "DimensionMismatchError",
    "DomainError",
    "FrozenStoreError",
    "SplineError",
    "Box",
    "setup_logging",
    "BSplineModel",
    "BSplineType",
    "BuildResult",
    "PenalizedFitter",
    "PenalizedModel",
    "RBFKernel",
    "RBFModel",
    "SurrogateModel",
    "build",
    "try_build",
    "__version__",
]
