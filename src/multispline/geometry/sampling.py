"""Tensor grids over a box."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from .box import Box


def grid_points(box: Box, n_per_dim: int | Sequence[int]) -> np.ndarray:
    """Complete tensor grid over a box.

    Args:
        box: Domain to cover.
        n_per_dim: Points per dimension (int or one per dimension).

    Returns:
        Array of grid points, shape (prod(n_per_dim), n_dims), with the
        last dimension varying fastest.
    """
    if isinstance(n_per_dim, (int, np.integer)):
        n_per_dim = [int(n_per_dim)] * box.n_dims
    axes = [
        np.linspace(box.lower[i], box.upper[i], n_per_dim[i])
        for i in range(box.n_dims)
    ]
    mesh = np.meshgrid(*axes, indexing='ij')
    return np.column_stack([m.ravel() for m in mesh])
