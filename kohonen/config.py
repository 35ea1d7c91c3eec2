"""
Configuration classes and enums for SOM
"""

from enum import Enum
from dataclasses import dataclass, asdict
from typing import Optional, Tuple, Dict

from .exceptions import ConfigurationError


class LatticeType(Enum):
    """Grid topologies"""

    RECTANGULAR = "rectangular"
    HEXAGONAL = "hexagonal"


class DistanceMetric(Enum):
    """Input-space distance between a sample and a prototype"""

    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    COSINE = "cosine"
    CHEBYSHEV = "chebyshev"


class NeighborhoodFunction(Enum):
    """Shape of the neighborhood kernel around the BMU"""

    GAUSSIAN = "gaussian"
    BUBBLE = "bubble"


class DecaySchedule(Enum):
    """Decay schedules for learning rate and radius during ordering"""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    INVERSE = "inverse"
    COSINE = "cosine"


class InitStrategy(Enum):
    """Prototype initialization strategies"""

    RANDOM = "random"
    PCA = "pca"
    SAMPLE = "sample"
    LINEAR = "linear"


class FeatureDistance(Enum):
    """Distance between two component planes"""

    PEARSON = "pearson"
    EUCLIDEAN = "euclidean"
    COSINE = "cosine"


class _SerializableConfig:
    """Mixin giving dataclass configs a dict round trip"""

    _enum_fields: Dict[str, type] = {}

    def to_dict(self) -> Dict:
        """Convert config to dictionary for serialization"""
        config_dict = asdict(self)
        # Convert enums to strings
        for key, value in config_dict.items():
            if isinstance(value, Enum):
                config_dict[key] = value.value
        return config_dict

    @classmethod
    def from_dict(cls, config_dict: Dict):
        """Create config from dictionary"""
        config_dict = dict(config_dict)
        for field_name, enum_class in cls._enum_fields.items():
            if field_name in config_dict and isinstance(config_dict[field_name], str):
                config_dict[field_name] = enum_class(config_dict[field_name])
        if isinstance(config_dict.get("weight_bounds"), list):
            config_dict["weight_bounds"] = tuple(config_dict["weight_bounds"])
        return cls(**config_dict)


@dataclass
class SOMConfig(_SerializableConfig):
    """Model structure: grid size, input dimensionality, topology and metric"""

    width: int
    height: int
    n_features: int = 3

    lattice: LatticeType = LatticeType.RECTANGULAR
    distance_metric: DistanceMetric = DistanceMetric.EUCLIDEAN
    neighborhood: NeighborhoodFunction = NeighborhoodFunction.GAUSSIAN

    init_strategy: InitStrategy = InitStrategy.RANDOM
    # Range of uniformly random initial prototypes
    weight_bounds: Tuple[float, float] = (0.0, 1.0)

    seed: Optional[int] = None

    _enum_fields = {
        "lattice": LatticeType,
        "distance_metric": DistanceMetric,
        "neighborhood": NeighborhoodFunction,
        "init_strategy": InitStrategy,
    }

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ConfigurationError(
                f"Grid dimensions must be positive, got {self.width}x{self.height}"
            )
        if self.n_features < 1:
            raise ConfigurationError(
                f"n_features must be positive, got {self.n_features}"
            )
        if self.weight_bounds[0] > self.weight_bounds[1]:
            raise ConfigurationError(f"Invalid weight bounds {self.weight_bounds}")


@dataclass
class StreamingConfig(_SerializableConfig):
    """
    Hyperparameters of the one-pass streaming trainer.

    Radii are fractions of the lattice diameter. Both values decay
    exponentially from their initial to their final value with time
    constant ``horizon`` (in samples) and never go below the final value.
    """

    initial_learning_rate: float = 0.1
    final_learning_rate: float = 0.08
    initial_radius: float = 0.6
    final_radius: float = 0.2
    horizon: int = 2000

    def __post_init__(self):
        for name in ("initial_learning_rate", "final_learning_rate"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ConfigurationError(f"{name} must be in (0, 1], got {value}")
        for name in ("initial_radius", "final_radius"):
            value = getattr(self, name)
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")
        if self.horizon < 1:
            raise ConfigurationError(f"horizon must be positive, got {self.horizon}")


@dataclass
class OfflineConfig(_SerializableConfig):
    """Two-phase (ordering + fine-tuning) epoch schedule"""

    order_epochs: int = 100
    fine_tune_epochs: int = 50

    # Ordering phase
    initial_learning_rate: float = 0.5
    order_final_learning_rate: float = 0.05
    initial_radius: Optional[float] = None  # Auto-calculated from the lattice if None
    order_final_radius: float = 1.0
    decay: DecaySchedule = DecaySchedule.LINEAR

    # Fine-tuning phase
    fine_tune_learning_rate: float = 0.02
    fine_tune_radius: float = 1.0

    # Persistence
    checkpoint_interval: Optional[int] = None
    checkpoint_dir: str = "checkpoints"

    verbose: bool = False

    _enum_fields = {"decay": DecaySchedule}

    def __post_init__(self):
        if self.order_epochs < 0 or self.fine_tune_epochs < 0:
            raise ConfigurationError("Epoch counts must be non-negative")
        for name in (
            "initial_learning_rate",
            "order_final_learning_rate",
            "fine_tune_learning_rate",
        ):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise ConfigurationError(f"{name} must be in (0, 1], got {value}")
        radii = [self.order_final_radius, self.fine_tune_radius]
        if self.initial_radius is not None:
            radii.append(self.initial_radius)
        if any(r < 0 for r in radii):
            raise ConfigurationError("Neighborhood radii must be non-negative")

    @property
    def total_epochs(self) -> int:
        return self.order_epochs + self.fine_tune_epochs
