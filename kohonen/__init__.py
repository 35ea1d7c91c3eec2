"""
Kohonen Self-Organizing Map engine

Rectangular and hexagonal lattices, pluggable input metrics, streaming and
offline (ordering + fine-tuning) training, and component-plane feature
clustering.
"""

from .core import SOM, PrototypeGrid, neighborhood_influence
from .config import (
    SOMConfig,
    StreamingConfig,
    OfflineConfig,
    LatticeType,
    DistanceMetric,
    NeighborhoodFunction,
    DecaySchedule,
    InitStrategy,
    FeatureDistance,
)
from .exceptions import (
    SOMError,
    ConfigurationError,
    DimensionMismatchError,
    ModelNotFoundError,
)
from .lattice import Lattice, RectangularLattice, HexagonalLattice, create_lattice
from .training import (
    TrainingAlgorithm,
    TrainingState,
    StreamingTrainer,
    OfflineTrainer,
)
from .features import (
    ComponentPlane,
    FeatureClusterer,
    FeatureClusteringResult,
    extract_component_plane,
    extract_component_planes,
    pearson_distance,
    euclidean_distance,
    cosine_distance,
)
from .dataset import Dataset
from .statistics import SOMStatistics, compute_statistics
from .callbacks import Callback, CheckpointCallback, EarlyStoppingCallback
from .observability import (
    setup_logging,
    trace_operation,
    get_metrics,
    log_training_metrics,
)

__version__ = "0.1.0"

__all__ = [
    "SOM",
    "PrototypeGrid",
    "neighborhood_influence",
    "SOMConfig",
    "StreamingConfig",
    "OfflineConfig",
    "LatticeType",
    "DistanceMetric",
    "NeighborhoodFunction",
    "DecaySchedule",
    "InitStrategy",
    "FeatureDistance",
    "SOMError",
    "ConfigurationError",
    "DimensionMismatchError",
    "ModelNotFoundError",
    "Lattice",
    "RectangularLattice",
    "HexagonalLattice",
    "create_lattice",
    "TrainingAlgorithm",
    "TrainingState",
    "StreamingTrainer",
    "OfflineTrainer",
    "ComponentPlane",
    "FeatureClusterer",
    "FeatureClusteringResult",
    "extract_component_plane",
    "extract_component_planes",
    "pearson_distance",
    "euclidean_distance",
    "cosine_distance",
    "Dataset",
    "SOMStatistics",
    "compute_statistics",
    "Callback",
    "CheckpointCallback",
    "EarlyStoppingCallback",
    "setup_logging",
    "trace_operation",
    "get_metrics",
    "log_training_metrics",
]
