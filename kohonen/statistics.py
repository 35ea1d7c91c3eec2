"""
Model fitting statistics computed from a trained map and a dataset
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .core import SOM, validate_data
from .dataset import Dataset


@dataclass
class SOMStatistics:
    """Quality measures of a map over one dataset"""

    n_samples: int
    quantization_error: float
    mean_squared_error: float
    topographic_error: float
    hit_count: np.ndarray = field(repr=False)

    @property
    def empty_cells(self) -> int:
        return int(np.sum(self.hit_count == 0))

    def __str__(self) -> str:
        return (
            "SOM statistics\n"
            f"  samples:            {self.n_samples}\n"
            f"  quantization error: {self.quantization_error:.6f}\n"
            f"  mean squared error: {self.mean_squared_error:.6f}\n"
            f"  topographic error:  {self.topographic_error:.6f}\n"
            f"  empty cells:        {self.empty_cells}/{self.hit_count.size}"
        )


def compute_statistics(som: SOM, data: Any) -> SOMStatistics:
    """
    Quantization error is the mean BMU distance; topographic error is the
    fraction of samples whose first and second BMU are not lattice neighbors.
    ``hit_count`` is a (height, width) map of how many samples each cell won.
    """
    if isinstance(data, Dataset):
        data = data.data
    data = validate_data(data, som.n_features)

    distances = np.zeros(len(data))
    hit_count = np.zeros((som.height, som.width), dtype=int)
    topographic_errors = 0

    for i, sample in enumerate(data):
        bmu, distances[i] = som.find_bmu_with_distance(sample)
        hit_count[bmu[1], bmu[0]] += 1

        if som.n_neurons > 1:
            first, second = som.best_matching_units(sample, k=2)
            if not som.lattice.are_neighbors(first, second):
                topographic_errors += 1

    return SOMStatistics(
        n_samples=len(data),
        quantization_error=float(np.mean(distances)),
        mean_squared_error=float(np.mean(distances**2)),
        topographic_error=topographic_errors / len(data),
        hit_count=hit_count,
    )
