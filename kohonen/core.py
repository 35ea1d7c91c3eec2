"""
Core SOM implementation: the prototype grid and the model around it
"""

import pickle
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Union

import numpy as np
import structlog

from .config import SOMConfig, InitStrategy, NeighborhoodFunction
from .distance import get_distance_function
from .exceptions import ConfigurationError, DimensionMismatchError, ModelNotFoundError
from .lattice import Coordinate, Lattice, create_lattice
from .observability import log_model_fallback
from .vector import as_vector

logger = structlog.get_logger(__name__)

PathLike = Union[str, Path]

# Prevent exp() underflow in the Gaussian kernel
UNDERFLOW_PROTECTION = -50


def validate_data(data: Any, n_features: int) -> np.ndarray:
    """Validate a (n_samples, n_features) array of finite values"""
    data = np.asarray(data, dtype=np.float64)

    if data.ndim != 2:
        raise ConfigurationError(f"Input data must be 2D array, got {data.ndim}D")

    if data.shape[0] == 0:
        raise ConfigurationError("Input data is empty")

    if data.shape[1] != n_features:
        raise DimensionMismatchError(n_features, data.shape[1])

    if not np.all(np.isfinite(data)):
        raise ConfigurationError("Input data contains NaN or infinite values")

    return data


def neighborhood_influence(
    distances: np.ndarray,
    radius: float,
    kind: NeighborhoodFunction = NeighborhoodFunction.GAUSSIAN,
) -> np.ndarray:
    """
    Influence of the BMU on cells at the given topological distances.

    Monotonically decreasing, 1 at distance 0 and 0 beyond ``radius``.
    A radius of 0 restricts the update to the BMU itself.
    """
    distances = np.asarray(distances, dtype=np.float64)
    if radius < 0:
        raise ConfigurationError(f"Neighborhood radius must be >= 0, got {radius}")
    if radius == 0:
        return (distances == 0).astype(np.float64)

    if kind == NeighborhoodFunction.BUBBLE:
        influence = np.ones_like(distances)
    else:
        exponent = -(distances**2) / (2 * radius**2)
        influence = np.exp(np.maximum(exponent, UNDERFLOW_PROTECTION))

    influence[distances > radius] = 0.0
    return influence


class PrototypeGrid:
    """
    ``width x height`` array of prototype vectors.

    Stored as a ``(height, width, n_features)`` array so that cell ``(x, y)``
    lives at ``[y, x]`` and flattening walks the grid row by row.
    """

    def __init__(
        self,
        width: int,
        height: int,
        n_features: int,
        values: Optional[np.ndarray] = None,
    ):
        if width < 1 or height < 1:
            raise ConfigurationError(
                f"Grid dimensions must be positive, got {width}x{height}"
            )
        if n_features < 1:
            raise ConfigurationError(f"n_features must be positive, got {n_features}")

        self.width = width
        self.height = height
        self.n_features = n_features

        if values is None:
            self._weights = np.zeros((height, width, n_features), dtype=np.float64)
        else:
            self._weights = self._check_shape(values).copy()

    def _check_shape(self, values: np.ndarray) -> np.ndarray:
        values = np.asarray(values, dtype=np.float64)
        expected = (self.height, self.width, self.n_features)
        if values.shape != expected:
            raise ConfigurationError(
                f"Prototype array must have shape {expected}, got {values.shape}"
            )
        return values

    @property
    def weights(self) -> np.ndarray:
        """Live (height, width, n_features) array, mutated by adaptation"""
        return self._weights

    @property
    def n_neurons(self) -> int:
        return self.width * self.height

    def _index(self, coord: Coordinate) -> Tuple[int, int]:
        x, y = int(coord[0]), int(coord[1])
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise ConfigurationError(
                f"Coordinate {(x, y)} outside {self.width}x{self.height} grid"
            )
        return y, x

    def get(self, coord: Coordinate) -> np.ndarray:
        """Copy of the prototype at (x, y)"""
        return self._weights[self._index(coord)].copy()

    def set(self, coord: Coordinate, vector: Any) -> None:
        self._weights[self._index(coord)] = as_vector(vector, self.n_features)

    def assign(self, values: np.ndarray) -> None:
        """Overwrite every prototype in place"""
        self._weights[...] = self._check_shape(values)

    def flatten(self) -> np.ndarray:
        """(n_neurons, n_features) copy in row-major cell order"""
        return self._weights.reshape(self.n_neurons, self.n_features).copy()

    def copy(self) -> "PrototypeGrid":
        return PrototypeGrid(self.width, self.height, self.n_features, self._weights)


class SOM:
    """
    Self-Organizing Map: a prototype grid, its lattice and an input metric.

    The model only knows how to find best-matching units and how to pull
    prototypes towards a sample; the learning-rate and radius schedules live
    in the trainers (``kohonen.training``).
    """

    def __init__(self, config: SOMConfig, prototypes: Optional[np.ndarray] = None):
        """
        Initialize SOM with configuration

        Args:
            config: SOMConfig object with all parameters
            prototypes: optional (height, width, n_features) initial grid;
                the configured init strategy is used when omitted
        """
        self.config = config

        # Local RNG for reproducible initialization
        self.rng = np.random.RandomState(config.seed)

        self.lattice: Lattice = create_lattice(
            config.lattice, config.width, config.height
        )
        self.distance_func = get_distance_function(config.distance_metric)
        self.grid = PrototypeGrid(config.width, config.height, config.n_features)

        self.metadata: Dict[str, Any] = {
            "creation_time": datetime.now().isoformat(),
            "training_history": [],
            "total_epochs": 0,
            "total_samples_seen": 0,
            "config": config.to_dict(),
        }

        if prototypes is not None:
            self.grid.assign(prototypes)
            self._data_initialized = True
        else:
            self.initialize()

    # ------------------------------------------------------------------
    # Grid accessors
    # ------------------------------------------------------------------
    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def n_features(self) -> int:
        return self.config.n_features

    @property
    def n_neurons(self) -> int:
        return self.grid.n_neurons

    def get_weights(self) -> np.ndarray:
        """Copy of the prototypes, shape (height, width, n_features)"""
        return self.grid.weights.copy()

    def get_prototype(self, coord: Coordinate) -> np.ndarray:
        return self.grid.get(coord)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    @property
    def needs_data_initialization(self) -> bool:
        """True until a data-dependent strategy has seen training data"""
        return not self._data_initialized

    def initialize(self, data: Optional[np.ndarray] = None) -> None:
        """
        Initialize prototypes with the configured strategy.

        PCA and SAMPLE need data; without it they fall back to RANDOM and
        stay pending until the first call that provides data.
        """
        strategy = self.config.init_strategy
        data_dependent = strategy in (InitStrategy.PCA, InitStrategy.SAMPLE)

        if data is not None:
            data = validate_data(data, self.n_features)

        if strategy == InitStrategy.LINEAR:
            weights = self._linear_weights()
        elif strategy == InitStrategy.PCA and data is not None:
            weights = self._pca_weights(data)
        elif strategy == InitStrategy.SAMPLE and data is not None:
            indices = self.rng.choice(len(data), self.n_neurons, replace=True)
            weights = data[indices].reshape(self.height, self.width, self.n_features)
        else:
            low, high = self.config.weight_bounds
            weights = self.rng.uniform(
                low, high, (self.height, self.width, self.n_features)
            )

        self.grid.assign(weights)
        self._data_initialized = not data_dependent or data is not None

    def _linear_weights(self) -> np.ndarray:
        """Gradients across the grid, valid for any number of features"""
        weights = np.zeros((self.height, self.width, self.n_features))
        for x, y in self.lattice.coordinates():
            # Middle value for a single column or row
            x_val = x / (self.width - 1) if self.width > 1 else 0.5
            y_val = y / (self.height - 1) if self.height > 1 else 0.5

            for f in range(self.n_features):
                if f == 0:
                    weights[y, x, f] = x_val
                elif f == 1:
                    weights[y, x, f] = y_val
                else:
                    weights[y, x, f] = (x_val + y_val + f * 0.1) / (2 + f * 0.1)
        return weights

    def _pca_weights(self, data: np.ndarray) -> np.ndarray:
        """Span the grid over the two leading principal components"""
        from sklearn.decomposition import PCA

        if len(data) < 2:
            return np.broadcast_to(
                data[0], (self.height, self.width, self.n_features)
            ).copy()

        n_components = min(2, data.shape[1], len(data))
        pca = PCA(n_components=n_components)
        pca.fit(data)
        spread = np.sqrt(pca.explained_variance_)

        x_range = np.linspace(-1, 1, self.width) if self.width > 1 else np.zeros(1)
        y_range = np.linspace(-1, 1, self.height) if self.height > 1 else np.zeros(1)

        scores = np.zeros((self.height, self.width, n_components))
        scores[:, :, 0] = x_range[np.newaxis, :] * spread[0]
        if n_components > 1:
            scores[:, :, 1] = y_range[:, np.newaxis] * spread[1]

        flat = pca.inverse_transform(scores.reshape(-1, n_components))
        return flat.reshape(self.height, self.width, self.n_features)

    # ------------------------------------------------------------------
    # BMU search and adaptation
    # ------------------------------------------------------------------
    def _as_input(self, sample: Any) -> np.ndarray:
        sample = as_vector(sample, self.n_features)
        if not np.all(np.isfinite(sample)):
            raise ConfigurationError("Input vector contains NaN or infinite values")
        return sample

    def distances_to(self, sample: Any) -> np.ndarray:
        """Input-space distance from sample to every prototype, (height, width)"""
        return self.distance_func(self._as_input(sample), self.grid.weights)

    def find_bmu(self, sample: Any) -> Coordinate:
        """Coordinate of the closest prototype; ties go to the first cell in row-major order"""
        return self.find_bmu_with_distance(sample)[0]

    def find_bmu_with_distance(self, sample: Any) -> Tuple[Coordinate, float]:
        distances = self.distances_to(sample)
        index = int(np.argmin(distances))
        y, x = divmod(index, self.width)
        return (x, y), float(distances[y, x])

    def best_matching_units(self, sample: Any, k: int = 2) -> List[Coordinate]:
        """The k closest cells, closest first, ties in row-major order"""
        distances = self.distances_to(sample).ravel()
        order = np.argsort(distances, kind="stable")[:k]
        return [(int(i % self.width), int(i // self.width)) for i in order]

    def neighborhood_influence(
        self, distances: np.ndarray, radius: float
    ) -> np.ndarray:
        return neighborhood_influence(distances, radius, self.config.neighborhood)

    def adapt_towards(
        self,
        sample: Any,
        bmu: Coordinate,
        learning_rate: float,
        radius: float,
    ) -> None:
        """
        Pull every prototype towards sample:
        ``p += learning_rate * h(d(bmu, cell), radius) * (sample - p)``
        """
        if not 0 <= learning_rate <= 1:
            raise ConfigurationError(
                f"Learning rate must be in [0, 1], got {learning_rate}"
            )
        sample = self._as_input(sample)
        influence = self.neighborhood_influence(
            self.lattice.distances_from(bmu), radius
        )
        weights = self.grid.weights
        weights += (learning_rate * influence)[..., np.newaxis] * (sample - weights)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    @staticmethod
    def model_path(directory: PathLike, name: str, suffix: str = ".pkl") -> Path:
        return Path(directory) / f"{name}{suffix}"

    def save(self, directory: PathLike = "models", name: str = "som") -> Path:
        """Save model (config, prototypes, metadata) to directory/name.pkl"""
        full_path = self.model_path(directory, name)

        save_data = {
            "config": self.config.to_dict(),
            "weights": self.grid.weights.copy(),
            "metadata": self.metadata,
        }

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, "wb") as f:
                pickle.dump(save_data, f)
        except (IOError, OSError) as e:
            raise IOError(f"Failed to save model to {full_path}: {e}")

        logger.info("Model saved", path=str(full_path))
        return full_path

    @classmethod
    def load(cls, directory: PathLike = "models", name: str = "som") -> "SOM":
        """Load model from directory/name.pkl"""
        full_path = cls.model_path(directory, name)

        if not full_path.is_file():
            raise ModelNotFoundError(f"No model found at {full_path}")

        try:
            with open(full_path, "rb") as f:
                save_data = pickle.load(f)
        except (IOError, OSError, pickle.UnpicklingError, EOFError) as e:
            raise IOError(f"Failed to load model from {full_path}: {e}")

        config = SOMConfig.from_dict(save_data["config"])
        som = cls(config, prototypes=save_data["weights"])
        som.metadata = save_data["metadata"]

        logger.info("Model loaded", path=str(full_path))
        return som

    @classmethod
    def load_or_create(
        cls, config: SOMConfig, directory: PathLike = "models", name: str = "som"
    ) -> "SOM":
        """
        Resume a persisted model, or start from a fresh initialization if
        none exists. The persisted model must match config's grid shape,
        lattice and distance metric.
        """
        try:
            som = cls.load(directory, name)
        except ModelNotFoundError:
            logger.warning(
                "No persisted model, starting from fresh initialization",
                path=str(cls.model_path(directory, name)),
            )
            log_model_fallback()
            return cls(config)

        loaded = (som.width, som.height, som.n_features)
        expected = (config.width, config.height, config.n_features)
        if loaded != expected:
            raise ConfigurationError(
                f"Persisted model has shape {loaded}, expected {expected}"
            )
        for field in ("lattice", "distance_metric"):
            loaded_value = getattr(som.config, field)
            expected_value = getattr(config, field)
            if loaded_value != expected_value:
                raise ConfigurationError(
                    f"Persisted model has {field} {loaded_value.value}, "
                    f"expected {expected_value.value}"
                )
        return som

    def print_model(self, directory: PathLike = "models", name: str = "som") -> Path:
        """Write a human-readable dump of the prototypes to directory/name.txt"""
        full_path = self.model_path(directory, name, ".txt")

        lines = [
            f"# width={self.width} height={self.height} "
            f"dimensionality={self.n_features} "
            f"lattice={self.config.lattice.value} "
            f"metric={self.config.distance_metric.value}",
            "# x y prototype",
        ]
        for x, y in self.lattice.coordinates():
            values = " ".join(f"{v:.6f}" for v in self.grid.weights[y, x])
            lines.append(f"{x} {y} {values}")

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            full_path.write_text("\n".join(lines) + "\n")
        except (IOError, OSError) as e:
            raise IOError(f"Failed to write model dump to {full_path}: {e}")

        return full_path

    def get_info(self) -> Dict:
        """Get comprehensive information about the SOM"""
        return {
            "config": self.config.to_dict(),
            "metadata": self.metadata,
            "shape": (self.width, self.height),
            "n_neurons": self.n_neurons,
            "n_features": self.n_features,
            "total_epochs": self.metadata["total_epochs"],
            "total_samples": self.metadata["total_samples_seen"],
        }

    def __repr__(self) -> str:
        return (
            f"SOM({self.width}x{self.height}, n_features={self.n_features}, "
            f"lattice={self.config.lattice.value}, "
            f"metric={self.config.distance_metric.value})"
        )
