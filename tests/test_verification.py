"""Tests for gradient and domain-reduction checks."""

import numpy as np
import pytest

from multispline import BSplineModel, SampleStore, SurrogateModel
from multispline.benchmarks import six_hump_camel_back
from multispline.geometry import Box, grid_points
from multispline.verification import (
    check_domain_reduction,
    check_jacobian,
    finite_difference_gradient,
    max_deviation,
)


class WrongGradientModel(SurrogateModel):
    """f(x) = x^2 on [0, 1] with a deliberately wrong gradient."""

    n_dims = 1
    domain = Box([0.0], [1.0])

    def _eval(self, x):
        return float(x[0] ** 2)

    def _eval_jacobian(self, x):
        return np.array([3.0 * x[0]])


class TestFiniteDifferences:
    """Tests for the finite difference gradient."""

    def test_interior(self):
        grad = finite_difference_gradient(WrongGradientModel(), np.array([0.5]), h=1e-6)
        assert abs(grad[0] - 1.0) < 1e-6

    def test_stays_inside_domain(self):
        """Test one-sided differences at both ends of the domain."""
        model = WrongGradientModel()
        assert abs(finite_difference_gradient(model, np.array([1.0]), h=1e-6)[0] - 2.0) < 1e-5
        assert abs(finite_difference_gradient(model, np.array([0.0]), h=1e-6)[0]) < 1e-5


class TestJacobianCheck:
    """Tests for check_jacobian."""

    def test_bspline_gradient(self, camel_cubic):
        """Test the analytic gradient on a 50 x 50 grid including the boundary."""
        points = grid_points(camel_cubic.domain, 50)
        result = check_jacobian(camel_cubic, points)

        assert result.passed, result
        assert result.n_points == 2500
        assert result.max_error < 1e-4

    def test_detects_wrong_gradient(self):
        result = check_jacobian(WrongGradientModel(), np.linspace(0.1, 0.9, 5).reshape(-1, 1))

        assert not result.passed
        assert abs(result.max_error - 0.9) < 1e-5
        np.testing.assert_allclose(result.worst_point, [0.9])


class TestDomainReductionCheck:
    """Tests for the recursive decomposition check."""

    def test_decomposition(self, camel_cubic):
        result = check_domain_reduction(camel_cubic, min_width=0.5)

        assert result.passed, result.summary()
        assert result.n_leaves == 16
        assert result.n_boxes == 31
        assert result.max_error < 1e-9
        assert "PASSED" in result.summary()

    def test_decomposition_in_thread_pool(self, camel_cubic):
        """Test that a parallel traversal gives the same result."""
        serial = check_domain_reduction(camel_cubic, min_width=0.5)
        parallel = check_domain_reduction(camel_cubic, min_width=0.5, max_workers=4)

        assert parallel.passed
        assert parallel.n_boxes == serial.n_boxes
        assert parallel.n_leaves == serial.n_leaves
        assert parallel.max_error == serial.max_error

    def test_decomposition_3d(self):
        axis = np.linspace(-1, 1, 6)
        store = SampleStore.from_function(lambda x: np.sin(x[0]) * x[1] + x[2] ** 2, [axis] * 3)
        model = BSplineModel.fit(store, degree=2)
        result = check_domain_reduction(model, min_width=1.0, n_probe=3)

        assert result.passed
        assert result.n_leaves == 8

    def test_root_model_unchanged(self, camel_cubic):
        before = camel_cubic.get_coefficients()
        check_domain_reduction(camel_cubic, min_width=1.0)
        np.testing.assert_array_equal(camel_cubic.coefficients, before)

    def test_invalid_min_width(self, camel_cubic):
        with pytest.raises(ValueError):
            check_domain_reduction(camel_cubic, min_width=0.0)

    def test_max_deviation(self, camel_cubic):
        reduced = camel_cubic.reduce_domain([0.2, 0.2], [0.8, 0.6])
        assert max_deviation(reduced, camel_cubic) < 1e-9

        axis = np.linspace(0, 2, 8)
        other = BSplineModel.fit(
            SampleStore.from_function(six_hump_camel_back, [axis, axis]), degree=1
        )
        assert max_deviation(other, camel_cubic) > 1e-6
