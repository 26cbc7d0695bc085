"""Tests for penalized smoothing B-splines."""

import numpy as np
import pytest

from multispline import ConstructionError, PenalizedFitter, PenalizedModel, SampleStore
from multispline.benchmarks import franke, six_hump_camel_back
from multispline.splines.pspline import penalty_operator, second_difference_matrix


class TestPenaltyOperator:
    """Tests for the difference penalty."""

    def test_second_differences(self):
        D = second_difference_matrix(4).toarray()
        np.testing.assert_array_equal(D, [[1, -2, 1, 0], [0, 1, -2, 1]])

    def test_short_dimension(self):
        assert second_difference_matrix(2).shape == (0, 2)

    def test_bilinear_null_space(self):
        """Test that bilinear coefficient grids are not penalized."""
        i, j = np.meshgrid(np.arange(5.0), np.arange(4.0), indexing='ij')
        c = 1 + 2 * i - j + 0.5 * i * j
        D = penalty_operator((5, 4))

        assert D.shape == (3 * 4 + 5 * 2, 20)
        np.testing.assert_allclose(D @ c.ravel(), 0.0, atol=1e-12)

        c[2, 2] += 1.0
        assert np.linalg.norm(D @ c.ravel()) > 0


class TestPenalizedFitter:
    """Tests for P-spline fitting."""

    def test_zero_smoothing_interpolates(self, make_camel_store):
        """Test that lambda = 0 on a complete grid interpolates."""
        store = make_camel_store(12)
        model = PenalizedFitter(smoothing=0.0).fit(store)

        assert isinstance(model, PenalizedModel)
        for sample in store:
            assert abs(model.eval(np.array(sample.x)) - sample.y) < 1e-6
        assert model.fit_residual_norm < 1e-6

    def test_smoothing_monotonicity(self, make_camel_store):
        """Test that larger lambda gives larger residual and smaller roughness."""
        store = make_camel_store(12)
        models = [
            PenalizedFitter(degree=3, smoothing=lam).fit(store)
            for lam in [0.0, 0.01, 0.1, 1.0]
        ]
        residuals = [m.fit_residual_norm for m in models]
        roughness = [m.roughness() for m in models]

        for a, b in zip(residuals, residuals[1:]):
            assert b >= a - 1e-9
        for a, b in zip(roughness, roughness[1:]):
            assert b <= a + 1e-9
        assert residuals[-1] > residuals[0]
        assert roughness[-1] < roughness[0]

    def test_default_smoothing_is_accurate(self, make_camel_store):
        model = PenalizedFitter().fit(make_camel_store(20))

        assert model.smoothing == 0.03
        expected = six_hump_camel_back(np.array([1.0, 1.0]))
        assert abs(model.eval([1.0, 1.0]) - expected) < 1.0
        assert abs(model.eval([0.0, 0.0])) < 1.0

    def test_scattered_samples(self):
        """Test that scattered data is accepted when lambda > 0."""
        points = np.random.default_rng(0).uniform(0.0, 1.0, size=(20, 2))
        store = SampleStore.from_arrays(points, np.array([franke(x) for x in points]))
        model = PenalizedFitter(degree=3, smoothing=0.1).fit(store)

        assert not store.is_grid_complete()
        assert np.isfinite(model.eval(model.domain.center))

    def test_scattered_control_points_capped(self):
        """Test that the control-point count does not follow the sample count."""
        points = np.random.default_rng(1).uniform(-1.0, 2.0, size=(150, 2))
        store = SampleStore.from_arrays(points, np.array([franke(x) for x in points]))
        model = PenalizedFitter(degree=3, smoothing=0.1).fit(store)

        assert model.n_basis == (20, 20)
        np.testing.assert_allclose(model.domain.lower, points.min(axis=0))
        np.testing.assert_allclose(model.domain.upper, points.max(axis=0))

        small = PenalizedFitter(degree=2, smoothing=0.1, max_control_points=8).fit(store)
        assert small.n_basis == (8, 8)

    def test_cap_does_not_apply_to_grids(self, make_camel_store):
        model = PenalizedFitter(smoothing=0.1, max_control_points=5).fit(make_camel_store(12))
        assert model.n_basis == (12, 12)

    def test_cap_below_degree(self):
        points = np.random.default_rng(2).uniform(0.0, 1.0, size=(30, 2))
        store = SampleStore.from_arrays(points, np.zeros(30))
        with pytest.raises(ConstructionError, match="max_control_points"):
            PenalizedFitter(degree=3, max_control_points=3).fit(store)

    def test_linear_trend_not_penalized(self):
        """Test that a linear function on a uniform grid is fitted exactly."""
        axis = np.linspace(0, 1, 6)
        store = SampleStore.from_function(lambda x: 1 + x[0] - 2 * x[1], [axis, axis])
        model = PenalizedFitter(degree=1, smoothing=10.0).fit(store)

        assert model.fit_residual_norm < 1e-8
        assert abs(model.eval([0.45, 0.3]) - (1 + 0.45 - 0.6)) < 1e-8
        np.testing.assert_allclose(model.eval_jacobian([0.45, 0.3]), [1.0, -2.0], atol=1e-8)

    @pytest.mark.parametrize("smoothing", [-0.1, np.inf, np.nan])
    def test_invalid_smoothing(self, smoothing, make_camel_store):
        with pytest.raises(ConstructionError):
            PenalizedFitter(smoothing=smoothing).fit(make_camel_store(6))

    def test_invalid_smoothing_leaves_store_open(self, make_camel_store):
        store = make_camel_store(6)
        with pytest.raises(ConstructionError):
            PenalizedFitter(smoothing=-1.0).fit(store)
        assert not store.is_frozen


class TestPenalizedModel:
    """Tests for fitted P-spline models."""

    def test_reduce_domain_keeps_type(self, make_camel_store):
        model = PenalizedFitter(smoothing=0.1).fit(make_camel_store(10))
        reduced = model.reduce_domain([0.5, 0.5], [1.5, 1.0])

        assert isinstance(reduced, PenalizedModel)
        assert reduced.smoothing == 0.1
        for x in [[0.5, 0.5], [1.2, 0.7], [1.5, 1.0]]:
            assert abs(reduced.eval(x) - model.eval(x)) < 1e-9

    def test_save_load(self, tmp_path, make_camel_store):
        model = PenalizedFitter(smoothing=0.5).fit(make_camel_store(8))
        path = tmp_path / "pspline.json"
        model.save(path)
        loaded = PenalizedModel.load(path)

        assert isinstance(loaded, PenalizedModel)
        assert loaded.smoothing == 0.5
        assert loaded.to_dict()["type"] == "pspline"
        assert abs(loaded.eval([1.1, 0.4]) - model.eval([1.1, 0.4])) < 1e-12

    def test_repr(self, make_camel_store):
        model = PenalizedFitter().fit(make_camel_store(6))
        assert repr(model).startswith("PenalizedModel(")
