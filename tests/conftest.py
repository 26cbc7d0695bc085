"""Shared fixtures: the six-hump camel back function sampled on a grid."""

import numpy as np
import pytest

from multispline import BSplineModel, KnotPolicy, SampleStore
from multispline.benchmarks import six_hump_camel_back


def _camel_store(n: int = 20) -> SampleStore:
    """n x n grid samples of the six-hump camel back function on [0, 2]^2."""
    axis = np.linspace(0, 2, n)
    return SampleStore.from_function(six_hump_camel_back, [axis, axis])


@pytest.fixture
def make_camel_store():
    """Factory for fresh (unfrozen) camel back stores of a given resolution."""
    return _camel_store


@pytest.fixture
def camel_samples():
    return _camel_store()


@pytest.fixture(scope="session")
def camel_cubic():
    """Cubic B-spline with free knots through the 20 x 20 camel grid."""
    return BSplineModel.fit(_camel_store(), degree=3, knot_policy=KnotPolicy.FREE)
