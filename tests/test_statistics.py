"""
Tests for map quality statistics
"""

import pytest
import numpy as np
from numpy.testing import assert_array_equal, assert_almost_equal

from kohonen import SOM, SOMConfig, Dataset, DimensionMismatchError, compute_statistics


def line_som(values):
    """width x 1 map with one scalar prototype per cell"""
    prototypes = np.array(values, dtype=float).reshape(1, len(values), 1)
    return SOM(SOMConfig(width=len(values), height=1, n_features=1), prototypes=prototypes)


@pytest.mark.unit
class TestComputeStatistics:
    def test_ordered_map(self):
        som = line_som([0.0, 1.0, 2.0])
        stats = compute_statistics(som, np.array([[0.0], [1.1], [2.0]]))

        assert stats.n_samples == 3
        assert_almost_equal(stats.quantization_error, 0.1 / 3)
        assert_almost_equal(stats.mean_squared_error, 0.01 / 3)
        assert stats.topographic_error == 0.0
        assert_array_equal(stats.hit_count, [[1, 1, 1]])
        assert stats.empty_cells == 0

    def test_twisted_map(self):
        # Second BMU of 0.1 is the cell holding 1.0, two cells away
        som = line_som([0.0, 2.0, 1.0])
        stats = compute_statistics(som, np.array([[0.1]]))
        assert stats.topographic_error == 1.0
        assert_array_equal(stats.hit_count, [[1, 0, 0]])
        assert stats.empty_cells == 2

    def test_single_cell_map(self):
        som = line_som([0.5])
        stats = compute_statistics(som, np.array([[0.0], [1.0]]))
        assert stats.topographic_error == 0.0
        assert_almost_equal(stats.quantization_error, 0.5)

    def test_dataset_input(self, trained_som, sample_data):
        from_array = compute_statistics(trained_som, sample_data)
        from_dataset = compute_statistics(trained_som, Dataset(sample_data))
        assert from_array.quantization_error == from_dataset.quantization_error
        assert from_array.hit_count.sum() == len(sample_data)
        assert from_array.hit_count.shape == (5, 5)

    def test_dimension_mismatch(self, trained_som):
        with pytest.raises(DimensionMismatchError):
            compute_statistics(trained_som, np.zeros((4, 2)))

    def test_str(self, trained_som, sample_data):
        text = str(compute_statistics(trained_som, sample_data))
        assert text.startswith("SOM statistics")
        assert "quantization error" in text
        assert "topographic error" in text
