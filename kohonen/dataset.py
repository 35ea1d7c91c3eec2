"""
In-memory dataset of fixed-dimensionality input vectors
"""

import json
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import numpy as np
import pandas as pd

from .core import validate_data
from .exceptions import ConfigurationError


class Dataset:
    """
    Samples as rows of a 2D float array plus one name per dimension.

    Iteration is restartable and walks the current row order. ``shuffle``
    only reorders rows; ``normalize_minmax`` rescales values in place.
    """

    def __init__(self, data, names: Optional[Sequence[str]] = None):
        data = np.asarray(data, dtype=np.float64)
        n_features = data.shape[1] if data.ndim == 2 else 0
        if data.ndim == 2 and n_features == 0:
            raise ConfigurationError("Input data has no features")
        self.data = validate_data(data, n_features)

        if names is None:
            names = [f"x{i}" for i in range(self.input_dimensionality)]
        names = [str(name) for name in names]
        if len(names) != self.input_dimensionality:
            raise ConfigurationError(
                f"Expected {self.input_dimensionality} names, got {len(names)}"
            )
        self.names: List[str] = names

    @classmethod
    def from_csv(cls, path: str) -> "Dataset":
        """Numeric columns of a CSV file, header row as names"""
        df = pd.read_csv(path).select_dtypes(include=[np.number])
        if df.shape[1] == 0:
            raise ConfigurationError(f"No numeric columns in {path}")
        return cls(df.values, names=list(df.columns))

    @classmethod
    def from_file(cls, path: str, format: str = "auto") -> "Dataset":
        """Load csv, json, npy or npz data"""
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Data file not found: {path}")

        if format == "auto":
            format = file_path.suffix.lower().lstrip(".")

        if format == "csv":
            return cls.from_csv(path)
        elif format == "json":
            with open(path, "r") as f:
                return cls(json.load(f))
        elif format == "npy":
            return cls(np.load(path))
        elif format == "npz":
            loaded = np.load(path)
            # First array of the archive
            return cls(loaded[list(loaded.keys())[0]])
        raise ConfigurationError(f"Unsupported format: {format}")

    @property
    def input_dimensionality(self) -> int:
        return self.data.shape[1]

    def __len__(self) -> int:
        return self.data.shape[0]

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter(self.data)

    def __getitem__(self, index: int) -> np.ndarray:
        return self.data[index]

    def shuffle(self, seed: Optional[int] = None) -> "Dataset":
        """Reorder rows in place"""
        rng = np.random.RandomState(seed)
        self.data = self.data[rng.permutation(len(self))]
        return self

    def normalize_minmax(self) -> "Dataset":
        """Rescale each column to [0, 1]; constant columns become 0.5"""
        data_min = self.data.min(axis=0)
        data_range = self.data.max(axis=0) - data_min

        constant_mask = data_range == 0
        safe_range = np.where(constant_mask, 1.0, data_range)
        normalized = (self.data - data_min) / safe_range
        normalized[:, constant_mask] = 0.5

        self.data = normalized
        return self

    def __repr__(self) -> str:
        return f"Dataset(samples={len(self)}, names={self.names})"
