"""Dense linear solves shared by the model builders.

Every solver raises :class:`ConstructionError` instead of returning a
non-finite or meaningless solution, so callers never see a partial model.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
import scipy.linalg

from .errors import ConstructionError

logger = logging.getLogger(__name__)

DEFAULT_CONDITION_LIMIT = 1e12


def _check_solution(x: np.ndarray, context: str) -> np.ndarray:
    if not np.all(np.isfinite(x)):
        raise ConstructionError(f"{context}: solution contains non-finite values")
    return x


def solve_dense(
    A: np.ndarray,
    b: np.ndarray,
    context: str = "linear system",
    condition_limit: float = DEFAULT_CONDITION_LIMIT,
) -> np.ndarray:
    """Solve a square dense system with LU factorization.

    Args:
        A: Square matrix, shape (n, n).
        b: Right-hand side, shape (n,) or (n, k).
        context: Description used in error messages.
        condition_limit: Systems whose estimated condition number exceeds
            this value are rejected as singular.

    Returns:
        Solution x with A x = b.

    Raises:
        ConstructionError: If A is not square, singular or ill-conditioned.
    """
    A = np.asarray(A, dtype=float)
    b = np.asarray(b, dtype=float)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ConstructionError(f"{context}: matrix must be square, got shape {A.shape}")

    with warnings.catch_warnings():
        warnings.simplefilter("error", scipy.linalg.LinAlgWarning)
        try:
            lu, piv = scipy.linalg.lu_factor(A, check_finite=True)
        except (np.linalg.LinAlgError, ValueError, scipy.linalg.LinAlgWarning) as exc:
            raise ConstructionError(f"{context}: matrix is singular ({exc})") from exc

    if np.any(np.abs(np.diag(lu)) == 0.0):
        raise ConstructionError(f"{context}: matrix is singular")

    rcond = _reciprocal_condition(A)
    logger.debug("%s: n=%d, rcond=%.3e", context, A.shape[0], rcond)
    if rcond < 1.0 / condition_limit:
        raise ConstructionError(
            f"{context}: matrix is singular to working precision "
            f"(rcond={rcond:.3e})"
        )

    x = scipy.linalg.lu_solve((lu, piv), b)
    return _check_solution(x, context)


def solve_spd(
    A: np.ndarray,
    b: np.ndarray,
    context: str = "normal equations",
    condition_limit: float = DEFAULT_CONDITION_LIMIT,
) -> np.ndarray:
    """Solve a symmetric positive (semi-)definite system.

    Tries a Cholesky factorization first and falls back to LU when the
    matrix is only semi-definite.
    """
    A = np.asarray(A, dtype=float)
    try:
        c, lower = scipy.linalg.cho_factor(A, check_finite=True)
    except np.linalg.LinAlgError:
        logger.debug("%s: Cholesky failed, falling back to LU", context)
        return solve_dense(A, b, context=context, condition_limit=condition_limit)

    # LAPACK 1-norm estimate from the Cholesky factor
    pocon = scipy.linalg.get_lapack_funcs('pocon', (c,))
    rcond, info = pocon(c, np.linalg.norm(A, 1), uplo='L' if lower else 'U')
    rcond = float(rcond) if info == 0 else 0.0
    logger.debug("%s: n=%d, rcond estimate=%.3e", context, A.shape[0], rcond)
    if rcond < 1.0 / condition_limit:
        raise ConstructionError(
            f"{context}: matrix is singular to working precision "
            f"(rcond={rcond:.3e})"
        )
    x = scipy.linalg.cho_solve((c, lower), np.asarray(b, dtype=float))
    return _check_solution(x, context)


def _reciprocal_condition(A: np.ndarray) -> float:
    """Reciprocal 2-norm condition number (0 for singular matrices)."""
    s = scipy.linalg.svdvals(A)
    if s.size == 0 or s[0] == 0.0:
        return 0.0
    return float(s[-1] / s[0])
