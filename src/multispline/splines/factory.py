"""Single entry point for building any surrogate model from a sample store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..config import DEFAULT_CONFIG, FitConfig, KnotPolicy
from ..data.sample_store import SampleStore
from ..errors import ConstructionError, SplineError
from .bspline import BSplineModel
from .multivariate import SurrogateModel
from .pspline import PenalizedFitter
from .rbf import RBFModel

logger = logging.getLogger(__name__)


class BSplineType(Enum):
    """Common (degree, knot policy) presets for B-splines."""
    LINEAR = (1, KnotPolicy.CLAMPED)
    QUADRATIC = (2, KnotPolicy.CLAMPED)
    QUADRATIC_FREE = (2, KnotPolicy.FREE)
    CUBIC = (3, KnotPolicy.CLAMPED)
    CUBIC_FREE = (3, KnotPolicy.FREE)

    @property
    def degree(self) -> int:
        return self.value[0]

    @property
    def knot_policy(self) -> KnotPolicy:
        return self.value[1]


@dataclass
class BuildResult:
    """Outcome of :func:`try_build`: either a model or the error that
    prevented building one.

    Attributes:
        model: The fitted model, or None on failure.
        error: The construction error, or None on success.
    """
    model: SurrogateModel | None = None
    error: SplineError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> str | None:
        """Error category ("construction", "domain", ...) or None."""
        return None if self.error is None else self.error.kind

    def unwrap(self) -> SurrogateModel:
        """Return the model, re-raising the captured error on failure."""
        if self.error is not None:
            raise self.error
        return self.model

    def __repr__(self) -> str:
        if self.ok:
            return f"BuildResult(ok, model={self.model!r})"
        return f"BuildResult(error={self.kind}: {self.error})"


def build(
    store: SampleStore,
    model_type: str | BSplineType = "bspline",
    config: FitConfig | None = None,
    **params
) -> SurrogateModel:
    """Build a surrogate model from samples.

    Args:
        store: Training samples. The store is frozen by the builder.
        model_type: 'bspline', 'pspline', 'rbf', or a :class:`BSplineType`
            preset (which fixes degree and knot policy).
        config: Default parameters; keyword arguments override them.
        **params: Parameter overrides, any field of :class:`FitConfig`.

    Returns:
        Fitted model.

    Raises:
        ConstructionError: If the model cannot be built.
    """
    cfg = config or DEFAULT_CONFIG
    if params:
        cfg = cfg.replace(**params)

    if isinstance(model_type, BSplineType):
        cfg = cfg.replace(degree=model_type.degree, knot_policy=model_type.knot_policy)
        model_type = "bspline"

    kind = str(model_type).lower()
    logger.debug("Building %s model from %r", kind, store)

    if kind == "bspline":
        return BSplineModel.fit(
            store,
            degree=cfg.degree,
            knot_policy=cfg.knot_policy,
            out_of_domain=cfg.out_of_domain,
            condition_limit=cfg.condition_limit,
        )
    elif kind == "pspline":
        fitter = PenalizedFitter(
            degree=cfg.degree,
            knot_policy=cfg.knot_policy,
            smoothing=cfg.smoothing,
            out_of_domain=cfg.out_of_domain,
            condition_limit=cfg.condition_limit,
            max_control_points=cfg.max_control_points,
        )
        return fitter.fit(store)
    elif kind == "rbf":
        return RBFModel.fit(
            store,
            kernel=cfg.kernel,
            shape=cfg.shape,
            polynomial_degree=cfg.polynomial_degree,
            out_of_domain=cfg.out_of_domain,
            condition_limit=cfg.rbf_condition_limit,
        )
    else:
        raise ConstructionError(
            f"Unknown model type: {model_type}. Use 'bspline', 'pspline' or 'rbf'."
        )


def try_build(
    store: SampleStore,
    model_type: str | BSplineType = "bspline",
    config: FitConfig | None = None,
    **params
) -> BuildResult:
    """Like :func:`build`, but report failures as a value instead of raising."""
    try:
        return BuildResult(model=build(store, model_type, config, **params))
    except SplineError as exc:
        logger.warning("Building %s model failed: %s", model_type, exc)
        return BuildResult(error=exc)
