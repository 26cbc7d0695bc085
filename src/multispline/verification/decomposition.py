"""Recursive domain-decomposition check for B-spline domain reduction.

Starting from a model, the domain is bisected along its widest dimension
and each half is obtained with :meth:`BSplineModel.reduce_domain` from its
parent. Every box is compared against the root model on a probe grid.
The boxes are kept in an explicit frontier of independent model copies,
so each level can be processed in a thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from ..geometry.box import Box
from ..geometry.sampling import grid_points
from ..splines.bspline import BSplineModel

logger = logging.getLogger(__name__)


@dataclass
class DecompositionResult:
    """Result of the recursive domain-reduction check.

    Attributes:
        passed: True if every box matched the root model within tolerance.
        n_boxes: Total number of boxes visited.
        n_leaves: Boxes that were not split further.
        max_error: Largest absolute deviation from the root model.
        failures: Boxes whose deviation exceeded the tolerance.
    """
    passed: bool
    n_boxes: int
    n_leaves: int
    max_error: float
    failures: list[Box] = field(default_factory=list)

    def summary(self) -> str:
        status = "PASSED" if self.passed else "FAILED"
        lines = [
            f"Domain reduction check: {status}",
            "=" * 40,
            f"Boxes visited:   {self.n_boxes}",
            f"Leaf boxes:      {self.n_leaves}",
            f"Max deviation:   {self.max_error:.3e}",
        ]
        if self.failures:
            lines.append(f"Failing boxes:   {len(self.failures)}")
        return "\n".join(lines)


def max_deviation(model: BSplineModel, reference: BSplineModel, n_probe: int = 5) -> float:
    """Largest |model - reference| on a probe grid over the model's domain."""
    points = grid_points(model.domain, n_probe)
    return float(np.max(np.abs(model.eval_batch(points) - reference.eval_batch(points))))


def check_domain_reduction(
    model: BSplineModel,
    min_width: float = 0.1,
    n_probe: int = 5,
    tol: float = 1e-9,
    max_workers: int | None = None,
) -> DecompositionResult:
    """Bisect the domain until every box is at most min_width wide.

    Args:
        model: Root model; it is not modified.
        min_width: Boxes whose widest side is larger than this are split.
        n_probe: Probe points per dimension on each box.
        tol: Allowed absolute deviation, scaled by max(1, |reference|).
        max_workers: If given, each level of the frontier is processed
            in a thread pool of this size.

    Returns:
        DecompositionResult with counts, worst deviation and failing boxes.
    """
    if min_width <= 0:
        raise ValueError(f"min_width must be positive, got {min_width}")

    reference = model
    scale = max(1.0, float(np.max(np.abs(reference.coefficients))))

    def visit(node: BSplineModel):
        error = max_deviation(node, reference, n_probe)
        children = []
        if node.domain.diameter > min_width:
            for half in node.domain.bisect():
                children.append(node.reduce_domain(half.lower, half.upper))
        return node.domain, error, children

    frontier = [model.copy()]
    n_boxes = n_leaves = 0
    max_error = 0.0
    failures: list[Box] = []

    pool = ThreadPoolExecutor(max_workers=max_workers) if max_workers else None
    try:
        while frontier:
            mapper = pool.map if pool is not None else map
            next_frontier = []
            for box, error, children in mapper(visit, frontier):
                n_boxes += 1
                max_error = max(max_error, error)
                if error > tol * scale:
                    failures.append(box)
                if children:
                    next_frontier.extend(children)
                else:
                    n_leaves += 1
            logger.debug(
                "Domain reduction level: %d boxes, max deviation %.3e",
                len(frontier), max_error
            )
            frontier = next_frontier
    finally:
        if pool is not None:
            pool.shutdown()

    result = DecompositionResult(
        passed=not failures,
        n_boxes=n_boxes,
        n_leaves=n_leaves,
        max_error=max_error,
        failures=failures,
    )
    logger.info(
        "Domain reduction check %s: %d boxes, max deviation %.3e",
        "passed" if result.passed else "failed", n_boxes, max_error
    )
    return result
