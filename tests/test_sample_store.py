"""Tests for sample storage."""

import numpy as np
import pytest

from multispline import (
    BSplineModel,
    ConstructionError,
    DimensionMismatchError,
    FrozenStoreError,
    Sample,
    SampleStore,
)


class TestSampleStore:
    """Tests for population and queries."""

    def test_basic_queries(self):
        """Test counts, bounds and per-dimension coordinates."""
        store = SampleStore()
        store.add_sample([0.0, 1.0], 1.0)
        store.add_sample([2.0, 1.0], 3.0)
        store.add_sample([1.0, -1.0], 0.0)

        assert store.n_dims == 2
        assert store.get_num_variables() == 2
        assert store.n_samples == 3
        assert len(store) == 3

        box = store.bounds()
        np.testing.assert_array_equal(box.lower, [0.0, -1.0])
        np.testing.assert_array_equal(box.upper, [2.0, 1.0])
        np.testing.assert_array_equal(store.coordinates(0), [0.0, 1.0, 2.0])
        np.testing.assert_array_equal(store.coordinates(1), [-1.0, 1.0])

    def test_points_and_values_aligned(self):
        """Test that points() and values() are in the same order."""
        store = SampleStore()
        store.add_sample([1.0], 10.0)
        store.add_sample([0.0], 5.0)

        np.testing.assert_array_equal(store.points(), [[0.0], [1.0]])
        np.testing.assert_array_equal(store.values(), [5.0, 10.0])

    def test_scalar_input_is_1d(self):
        """Test that scalar x is stored as a 1D point."""
        store = SampleStore()
        store.add_sample(0.5, 1.0)
        assert store.n_dims == 1
        assert 0.5 in store

    def test_dimension_mismatch(self):
        """Test that mixed dimensions are rejected."""
        store = SampleStore()
        store.add_sample([0.0, 0.0], 1.0)
        with pytest.raises(DimensionMismatchError):
            store.add_sample([0.0, 0.0, 0.0], 1.0)

    def test_non_finite_rejected(self):
        store = SampleStore()
        with pytest.raises(ConstructionError):
            store.add_sample([np.nan, 0.0], 1.0)
        with pytest.raises(ConstructionError):
            store.add_sample([0.0, 0.0], np.inf)

    def test_identical_duplicates_collapse(self):
        """Test that exact duplicates are stored once."""
        store = SampleStore()
        store.add_sample([1.0, 1.0], 2.0)
        store.add_sample([1.0, 1.0], 2.0)

        assert store.n_samples == 1
        store.check_consistency()

    def test_conflicting_duplicates(self):
        """Test that conflicting duplicates are reported with the coordinate."""
        store = SampleStore()
        store.add_sample([1.0, 1.0], 2.0)
        store.add_sample([1.0, 1.0], 3.0)

        assert store.conflicts == {(1.0, 1.0): [2.0, 3.0]}
        with pytest.raises(ConstructionError, match=r"x=\[1\.0, 1\.0\]"):
            store.check_consistency()

    def test_conflicting_duplicates_fail_build(self):
        """Test that builders refuse a store with conflicting samples."""
        axis = np.linspace(0, 1, 5)
        store = SampleStore.from_function(lambda x: x[0] * x[1], [axis, axis])
        store.add_sample([0.5, 0.5], 99.0)

        with pytest.raises(ConstructionError, match="Conflicting"):
            BSplineModel.fit(store, degree=3)

    def test_empty_store(self):
        with pytest.raises(ConstructionError):
            SampleStore().check_consistency()

    def test_grid_completeness(self):
        """Test detection of complete and incomplete grids."""
        axis = np.linspace(0, 1, 4)
        store = SampleStore.from_function(lambda x: 1.0, [axis, axis])
        assert store.is_grid_complete()

        store = SampleStore()
        store.add_sample([0.0, 0.0], 1.0)
        store.add_sample([1.0, 1.0], 1.0)
        assert not store.is_grid_complete()
        assert not SampleStore().is_grid_complete()

    def test_iteration(self):
        store = SampleStore([Sample((0.0,), 1.0), Sample((1.0,), 2.0)])
        samples = sorted(store, key=lambda s: s.x)
        assert samples == [Sample((0.0,), 1.0), Sample((1.0,), 2.0)]

    def test_from_arrays(self):
        points = np.array([[0.0, 0.0], [1.0, 0.0]])
        store = SampleStore.from_arrays(points, np.array([1.0, 2.0]))
        assert store.n_samples == 2

        with pytest.raises(ValueError):
            SampleStore.from_arrays(points, np.array([1.0]))


class TestSampleStoreLifecycle:
    """Tests for the build-then-freeze lifecycle."""

    def test_builder_freezes_store(self):
        """Test that a consumed store rejects further samples."""
        axis = np.linspace(0, 1, 5)
        store = SampleStore.from_function(lambda x: x[0] + x[1], [axis, axis])
        assert not store.is_frozen

        BSplineModel.fit(store, degree=3)

        assert store.is_frozen
        with pytest.raises(FrozenStoreError):
            store.add_sample([0.3, 0.3], 0.6)

    def test_frozen_error_is_construction_error(self):
        store = SampleStore()
        store.add_sample([0.0], 0.0)
        store.freeze()
        with pytest.raises(ConstructionError):
            store.add_sample([1.0], 1.0)

    def test_frozen_store_can_build_again(self):
        """Test that several builders can consume the same store."""
        axis = np.linspace(0, 1, 5)
        store = SampleStore.from_function(lambda x: x[0] ** 2, [axis])
        first = BSplineModel.fit(store, degree=3)
        second = BSplineModel.fit(store, degree=2)
        assert abs(first.eval([0.5]) - second.eval([0.5])) < 1e-10


class TestSampleStorePersistence:
    """Tests for JSON persistence."""

    def test_save_load(self, tmp_path):
        store = SampleStore()
        store.add_sample([0.0, 1.0], 1.5)
        store.add_sample([2.0, 3.0], -0.5)
        store.freeze()

        path = tmp_path / "samples.json"
        store.save(path)
        loaded = SampleStore.load(path)

        assert not loaded.is_frozen
        np.testing.assert_array_equal(loaded.points(), store.points())
        np.testing.assert_array_equal(loaded.values(), store.values())
