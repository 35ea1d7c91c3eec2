"""Distance calculation utilities for SOM."""

from typing import Callable

import numpy as np

from .config import DistanceMetric
from .vector import check_dimensions


class DistanceCalculator:
    """
    Calculate distances between an input vector and prototypes.

    Every metric works on the last axis, so ``metric(x, grid)`` with ``x`` of
    shape ``(D,)`` and ``grid`` of shape ``(height, width, D)`` returns a
    ``(height, width)`` array. Operands must share the trailing dimension.
    """

    @staticmethod
    def euclidean(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Calculate Euclidean distance."""
        check_dimensions(a, b)
        return np.linalg.norm(a - b, axis=-1)

    @staticmethod
    def manhattan(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Calculate Manhattan distance."""
        check_dimensions(a, b)
        return np.sum(np.abs(a - b), axis=-1)

    @staticmethod
    def cosine(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Calculate cosine distance; 1.0 where either vector is zero."""
        check_dimensions(a, b)
        dot_product = np.sum(a * b, axis=-1)
        norms = np.linalg.norm(a, axis=-1) * np.linalg.norm(b, axis=-1)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarity = np.where(norms > 0, dot_product / norms, 0.0)
        return 1 - np.clip(similarity, -1.0, 1.0)

    @staticmethod
    def chebyshev(a: np.ndarray, b: np.ndarray) -> np.ndarray:
        """Calculate Chebyshev distance."""
        check_dimensions(a, b)
        return np.max(np.abs(a - b), axis=-1)


_METRICS = {
    DistanceMetric.EUCLIDEAN: DistanceCalculator.euclidean,
    DistanceMetric.MANHATTAN: DistanceCalculator.manhattan,
    DistanceMetric.COSINE: DistanceCalculator.cosine,
    DistanceMetric.CHEBYSHEV: DistanceCalculator.chebyshev,
}


def get_distance_function(
    metric: DistanceMetric,
) -> Callable[[np.ndarray, np.ndarray], np.ndarray]:
    """Get the distance function for a metric"""
    return _METRICS[metric]
