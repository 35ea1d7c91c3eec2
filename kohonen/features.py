"""
Component planes and feature clustering.

A component plane is one input dimension read across every prototype of a
trained map. Planes that look alike belong to correlated features; grouping
them is delegated to SciPy's hierarchical clustering with one of three plane
distances.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import structlog
from scipy.cluster.hierarchy import dendrogram, fcluster, linkage

from .config import FeatureDistance
from .core import SOM
from .exceptions import ConfigurationError
from .vector import as_vector, check_dimensions

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, eq=False)
class ComponentPlane:
    """One dimension of every prototype, shape (height, width)"""

    name: str
    dimension: int
    values: np.ndarray = field(repr=False)

    @property
    def width(self) -> int:
        return self.values.shape[1]

    @property
    def height(self) -> int:
        return self.values.shape[0]

    def flatten(self) -> np.ndarray:
        """Row-major 1D copy of length width * height"""
        return self.values.ravel().copy()


def extract_component_plane(som: SOM, dimension: int, name: str = "") -> ComponentPlane:
    """Copy dimension ``dimension`` of every prototype into a plane"""
    if not 0 <= dimension < som.n_features:
        raise ConfigurationError(
            f"Dimension index {dimension} outside [0, {som.n_features})"
        )
    values = som.grid.weights[:, :, dimension].copy()
    return ComponentPlane(name=name or f"x{dimension}", dimension=dimension, values=values)


def extract_component_planes(
    som: SOM, names: Optional[Sequence[str]] = None
) -> List[ComponentPlane]:
    """One plane per input dimension"""
    if names is None:
        names = [f"x{d}" for d in range(som.n_features)]
    if len(names) != som.n_features:
        raise ConfigurationError(
            f"Expected {som.n_features} names, got {len(names)}"
        )
    return [extract_component_plane(som, d, names[d]) for d in range(som.n_features)]


PlaneLike = Union[ComponentPlane, np.ndarray, Sequence[float]]


def _flat(plane: PlaneLike) -> np.ndarray:
    if isinstance(plane, ComponentPlane):
        return plane.flatten()
    return as_vector(np.ravel(plane))


def _flat_pair(a: PlaneLike, b: PlaneLike):
    a, b = _flat(a), _flat(b)
    check_dimensions(a, b)
    return a, b


def pearson_distance(a: PlaneLike, b: PlaneLike) -> float:
    """
    1 - Pearson correlation of the flattened planes, in [0, 2].

    A constant plane has no correlation with anything; the distance is then
    1.0 rather than NaN. So is a plane whose spread underflows to a zero
    standard deviation.
    """
    a, b = _flat_pair(a, b)
    std_a, std_b = np.std(a), np.std(b)
    if not (np.isfinite(std_a) and np.isfinite(std_b) and std_a > 0 and std_b > 0):
        return 1.0
    za = (a - np.mean(a)) / std_a
    zb = (b - np.mean(b)) / std_b
    similarity = np.dot(za, zb) / len(za)
    if not np.isfinite(similarity):
        return 1.0
    return float(1 - np.clip(similarity, -1.0, 1.0))


def euclidean_distance(a: PlaneLike, b: PlaneLike) -> float:
    """Plain distance between flattened planes; not scale invariant"""
    a, b = _flat_pair(a, b)
    return float(np.linalg.norm(a - b))


def cosine_distance(a: PlaneLike, b: PlaneLike) -> float:
    """1 - cosine similarity, 1.0 when either plane is all zeros"""
    a, b = _flat_pair(a, b)
    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 1.0
    similarity = np.clip(np.dot(a, b) / magnitude, -1.0, 1.0)
    return float(1 - similarity)


PLANE_DISTANCES: Dict[FeatureDistance, Callable[[PlaneLike, PlaneLike], float]] = {
    FeatureDistance.PEARSON: pearson_distance,
    FeatureDistance.EUCLIDEAN: euclidean_distance,
    FeatureDistance.COSINE: cosine_distance,
}


@dataclass
class FeatureClusteringResult:
    """Dendrogram-like grouping of component planes"""

    labels: List[str]
    linkage_matrix: np.ndarray = field(repr=False)
    distance_matrix: np.ndarray = field(repr=False)
    leaf_order: List[str]
    clusters: Optional[Dict[str, int]] = None

    def groups(self) -> Dict[int, List[str]]:
        """Cluster id -> feature names, empty unless a cut was requested"""
        grouped: Dict[int, List[str]] = {}
        for label, cluster_id in (self.clusters or {}).items():
            grouped.setdefault(cluster_id, []).append(label)
        return grouped


class FeatureClusterer:
    """
    Hierarchical clustering of component planes.

    Args:
        metric: which plane distance to use (Pearson by default)
        method: SciPy linkage method ("complete", "average", "single", ...)
    """

    def __init__(
        self,
        metric: FeatureDistance = FeatureDistance.PEARSON,
        method: str = "complete",
    ):
        self.metric = metric
        self.method = method
        self.distance = PLANE_DISTANCES[metric]

    def distance_matrix(self, planes: Sequence[ComponentPlane]) -> np.ndarray:
        n = len(planes)
        matrix = np.zeros((n, n))
        for i in range(n):
            for j in range(i + 1, n):
                matrix[i, j] = matrix[j, i] = self.distance(planes[i], planes[j])
        return matrix

    def cluster(
        self, planes: Sequence[ComponentPlane], n_clusters: Optional[int] = None
    ) -> FeatureClusteringResult:
        if len(planes) < 2:
            raise ConfigurationError("Feature clustering needs at least two planes")

        labels = [plane.name for plane in planes]
        matrix = self.distance_matrix(planes)
        condensed = matrix[np.triu_indices(len(planes), k=1)]

        linkage_matrix = linkage(condensed, method=self.method)
        tree = dendrogram(linkage_matrix, labels=labels, no_plot=True)

        clusters = None
        if n_clusters is not None:
            assignment = fcluster(linkage_matrix, t=n_clusters, criterion="maxclust")
            clusters = {label: int(c) for label, c in zip(labels, assignment)}

        logger.info(
            "Feature clustering completed",
            metric=self.metric.value,
            method=self.method,
            n_features=len(planes),
        )
        return FeatureClusteringResult(
            labels=labels,
            linkage_matrix=linkage_matrix,
            distance_matrix=matrix,
            leaf_order=list(tree["ivl"]),
            clusters=clusters,
        )
