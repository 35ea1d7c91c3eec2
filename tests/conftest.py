"""
Pytest configuration and fixtures for SOM tests
"""

import pytest
import numpy as np
from kohonen import (
    SOM,
    SOMConfig,
    OfflineConfig,
    OfflineTrainer,
    DistanceMetric,
)


@pytest.fixture
def sample_data():
    """Generate sample 3D data for testing"""
    np.random.seed(42)
    return np.random.random((50, 3))


@pytest.fixture
def small_data():
    """Generate small dataset for quick tests"""
    np.random.seed(42)
    return np.random.random((10, 2))


@pytest.fixture
def basic_config():
    """Basic SOM configuration for testing"""
    return SOMConfig(width=5, height=5, n_features=3, seed=42)


@pytest.fixture
def minimal_config():
    """Minimal SOM configuration for quick tests"""
    return SOMConfig(width=3, height=3, n_features=2, seed=42)


@pytest.fixture
def fast_offline_config():
    """Short two-phase schedule"""
    return OfflineConfig(order_epochs=4, fine_tune_epochs=2)


@pytest.fixture
def trained_som(basic_config, sample_data, fast_offline_config):
    """Pre-trained SOM for testing"""
    som = SOM(basic_config)
    OfflineTrainer(som, fast_offline_config).fit(sample_data)
    return som


@pytest.fixture
def two_by_two_som():
    """2x2 grid holding [0, 0] everywhere except [10, 10] at (1, 0)"""
    prototypes = np.zeros((2, 2, 2))
    prototypes[0, 1] = [10.0, 10.0]
    config = SOMConfig(width=2, height=2, n_features=2)
    return SOM(config, prototypes=prototypes)


@pytest.fixture
def all_distance_metrics():
    """All distance metrics for testing"""
    return [
        DistanceMetric.EUCLIDEAN,
        DistanceMetric.MANHATTAN,
        DistanceMetric.COSINE,
        DistanceMetric.CHEBYSHEV,
    ]
