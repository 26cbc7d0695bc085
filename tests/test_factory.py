"""Tests for the model factory and build configuration."""

import logging

import numpy as np
import pytest

from multispline import (
    BSplineModel,
    BSplineType,
    BuildResult,
    ConstructionError,
    FitConfig,
    KnotPolicy,
    OutOfDomainPolicy,
    PenalizedModel,
    RBFModel,
    SampleStore,
    build,
    try_build,
)
from multispline.benchmarks import six_hump_camel_back


class TestFitConfig:
    """Tests for FitConfig."""

    def test_defaults(self):
        config = FitConfig()
        assert config.degree == 3
        assert config.knot_policy is KnotPolicy.FREE
        assert config.out_of_domain is OutOfDomainPolicy.REJECT
        assert config.smoothing == 0.03
        assert config.kernel == "thin_plate_spline"
        assert config.condition_limit == 1e12
        assert config.rbf_condition_limit == 1e14
        assert config.max_control_points == 20

    def test_string_enums(self):
        config = FitConfig(knot_policy="Clamped", out_of_domain="clamp", degree=[1, 2])
        assert config.knot_policy is KnotPolicy.CLAMPED
        assert config.out_of_domain is OutOfDomainPolicy.CLAMP
        assert config.degree == (1, 2)

    def test_invalid_enum(self):
        with pytest.raises(ConstructionError):
            FitConfig(knot_policy="uniform")

    def test_from_dict_ignores_unknown_keys(self):
        config = FitConfig.from_dict({"degree": 2, "smoothing": 0.5, "colour": "red"})
        assert config.degree == 2
        assert config.smoothing == 0.5

    def test_replace(self):
        config = FitConfig()
        changed = config.replace(degree=1)
        assert changed.degree == 1
        assert config.degree == 3

    def test_replace_unknown_parameter(self):
        with pytest.raises(ConstructionError, match="degre"):
            FitConfig().replace(degre=2)


class TestBuild:
    """Tests for build()."""

    def test_default_is_cubic_bspline(self, camel_samples):
        model = build(camel_samples)
        assert isinstance(model, BSplineModel)
        assert model.degrees == (3, 3)
        assert camel_samples.is_frozen

    @pytest.mark.parametrize("preset", list(BSplineType))
    def test_presets(self, preset, camel_samples):
        """Test every preset against the six-hump camel back function."""
        model = build(camel_samples, preset)

        assert model.degrees == (preset.degree, preset.degree)
        assert abs(model.eval([0.0, 0.0])) < 1.0
        expected = six_hump_camel_back(np.array([1.0, 1.0]))
        assert abs(model.eval([1.0, 1.0]) - expected) < 1.0

    def test_pspline(self, camel_samples):
        model = build(camel_samples, "pspline", smoothing=0.1)
        assert isinstance(model, PenalizedModel)
        assert model.smoothing == 0.1

    def test_rbf_default_kernel(self, camel_samples):
        model = build(camel_samples, "rbf")

        assert isinstance(model, RBFModel)
        assert model.kernel.value == "thin_plate_spline"
        expected = six_hump_camel_back(np.array([1.0, 1.0]))
        assert abs(model.eval([1.0, 1.0]) - expected) < 1.0

    def test_config_and_overrides(self, camel_samples):
        config = FitConfig(degree=2, out_of_domain="clamp")
        model = build(camel_samples, "bspline", config=config, knot_policy="clamped")

        assert model.degrees == (2, 2)
        assert model.out_of_domain is OutOfDomainPolicy.CLAMP

    def test_rbf_condition_limit_passed_through(self, camel_samples):
        """Test that the RBF builder honours the configured condition limit."""
        with pytest.raises(ConstructionError, match="singular"):
            build(camel_samples, "rbf", rbf_condition_limit=10.0)

    def test_pspline_control_point_cap_passed_through(self):
        points = np.random.default_rng(5).uniform(0.0, 2.0, size=(50, 2))
        store = SampleStore.from_arrays(
            points, np.array([six_hump_camel_back(x) for x in points])
        )
        model = build(store, "pspline", smoothing=0.1, max_control_points=6)
        assert model.n_basis == (6, 6)

    def test_unknown_type(self, camel_samples):
        with pytest.raises(ConstructionError, match="Unknown model type"):
            build(camel_samples, "kriging")


class TestTryBuild:
    """Tests for result-style building."""

    def test_success(self, camel_samples):
        result = try_build(camel_samples, BSplineType.CUBIC)

        assert result.ok
        assert result.kind is None
        assert isinstance(result.unwrap(), BSplineModel)

    def test_conflicting_samples(self, camel_samples):
        camel_samples.add_sample([1.0, 1.0], 1e3)
        result = try_build(camel_samples)

        assert not result.ok
        assert result.model is None
        assert result.kind == "construction"
        assert "x=[1.0, 1.0]" in str(result.error)
        with pytest.raises(ConstructionError):
            result.unwrap()

    def test_incomplete_grid(self):
        store = SampleStore()
        for x in [[0, 0], [1, 0], [0, 1]]:
            store.add_sample(x, 0.0)
        assert try_build(store, degree=1).kind == "construction"

    def test_bad_parameters(self, camel_samples):
        assert try_build(camel_samples, "pspline", smoothing=-1.0).kind == "construction"
        assert try_build(camel_samples, knot_policy="bogus").kind == "construction"
        assert try_build(camel_samples, "rbf", kernel="bogus").kind == "construction"

    def test_misspelled_parameter(self, camel_samples):
        result = try_build(camel_samples, degre=2)

        assert result.kind == "construction"
        assert "degre" in str(result.error)
        assert not camel_samples.is_frozen

    def test_failure_is_logged(self, camel_samples, caplog):
        with caplog.at_level(logging.WARNING, logger="multispline"):
            try_build(camel_samples, "kriging")
        assert any("kriging" in r.getMessage() for r in caplog.records)

    def test_repr(self):
        assert "construction" in repr(BuildResult(error=ConstructionError("boom")))
