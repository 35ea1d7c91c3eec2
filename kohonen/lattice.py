"""
Grid topologies.

A lattice maps pairs of ``(x, y)`` cell coordinates to a topological
distance and tells whether two cells are direct neighbors. Both variants
implement the ``Lattice`` protocol; the rest of the engine only talks to the
protocol, so grid code never branches on topology.
"""

from typing import List, Protocol, Tuple

import numpy as np

from .config import LatticeType
from .exceptions import ConfigurationError

Coordinate = Tuple[int, int]


class Lattice(Protocol):
    """Topology of a ``width x height`` grid"""

    width: int
    height: int

    def distance_between(self, a: Coordinate, b: Coordinate) -> float:
        ...

    def are_neighbors(self, a: Coordinate, b: Coordinate) -> bool:
        ...

    def distances_from(self, origin: Coordinate) -> np.ndarray:
        ...

    def neighbors(self, origin: Coordinate) -> List[Coordinate]:
        ...

    def coordinates(self) -> List[Coordinate]:
        ...

    @property
    def diameter(self) -> float:
        ...


def _validate_size(width: int, height: int) -> None:
    if width < 1 or height < 1:
        raise ConfigurationError(
            f"Grid dimensions must be positive, got {width}x{height}"
        )


def _check_coordinate(coord: Coordinate, width: int, height: int) -> Coordinate:
    x, y = int(coord[0]), int(coord[1])
    if not (0 <= x < width and 0 <= y < height):
        raise ConfigurationError(
            f"Coordinate {(x, y)} outside {width}x{height} grid"
        )
    return x, y


def _row_major(width: int, height: int) -> List[Coordinate]:
    return [(x, y) for y in range(height) for x in range(width)]


def _corners(width: int, height: int) -> List[Coordinate]:
    return [(0, 0), (width - 1, 0), (0, height - 1), (width - 1, height - 1)]


class RectangularLattice:
    """
    Square grid with Euclidean distance between cell coordinates.

    Neighbors are the 4-connected cells, the only cells at distance 1.
    """

    def __init__(self, width: int, height: int):
        _validate_size(width, height)
        self.width = width
        self.height = height
        # (height, width) index arrays
        self._ys, self._xs = np.indices((height, width))

    def distance_between(self, a: Coordinate, b: Coordinate) -> float:
        ax, ay = _check_coordinate(a, self.width, self.height)
        bx, by = _check_coordinate(b, self.width, self.height)
        return float(np.hypot(bx - ax, by - ay))

    def are_neighbors(self, a: Coordinate, b: Coordinate) -> bool:
        return self.distance_between(a, b) == 1.0

    def distances_from(self, origin: Coordinate) -> np.ndarray:
        """Distances from origin to every cell, shape (height, width)"""
        ox, oy = _check_coordinate(origin, self.width, self.height)
        return np.hypot(self._xs - ox, self._ys - oy)

    def neighbors(self, origin: Coordinate) -> List[Coordinate]:
        ox, oy = _check_coordinate(origin, self.width, self.height)
        candidates = [(ox, oy - 1), (ox - 1, oy), (ox + 1, oy), (ox, oy + 1)]
        return [
            (x, y)
            for x, y in candidates
            if 0 <= x < self.width and 0 <= y < self.height
        ]

    def coordinates(self) -> List[Coordinate]:
        return _row_major(self.width, self.height)

    @property
    def diameter(self) -> float:
        return float(np.hypot(self.width - 1, self.height - 1))

    def __repr__(self) -> str:
        return f"RectangularLattice({self.width}x{self.height})"


class HexagonalLattice:
    """
    Hexagonal grid in "even-r" offset layout: even rows are shifted half a
    cell to the right. Opposite edges are not wrapped.

    Distances are hex steps, computed by converting offset coordinates to
    axial ``(q, r)``. Every interior cell has exactly 6 neighbors.
    """

    def __init__(self, width: int, height: int):
        _validate_size(width, height)
        self.width = width
        self.height = height
        ys, xs = np.indices((height, width))
        self._q, self._r = self._axial(xs, ys)
        # The longest hex path always starts at a corner
        self._diameter = max(
            float(self.distances_from(corner).max())
            for corner in _corners(width, height)
        )

    @staticmethod
    def _axial(x, y):
        return x - (y + (y & 1)) // 2, y

    @staticmethod
    def _hex_distance(dq, dr):
        return (np.abs(dq) + np.abs(dr) + np.abs(dq + dr)) // 2

    def distance_between(self, a: Coordinate, b: Coordinate) -> float:
        aq, ar = self._axial(*_check_coordinate(a, self.width, self.height))
        bq, br = self._axial(*_check_coordinate(b, self.width, self.height))
        return float(self._hex_distance(bq - aq, br - ar))

    def are_neighbors(self, a: Coordinate, b: Coordinate) -> bool:
        return self.distance_between(a, b) == 1.0

    def distances_from(self, origin: Coordinate) -> np.ndarray:
        """Distances from origin to every cell, shape (height, width)"""
        oq, or_ = self._axial(*_check_coordinate(origin, self.width, self.height))
        return self._hex_distance(self._q - oq, self._r - or_).astype(np.float64)

    def neighbors(self, origin: Coordinate) -> List[Coordinate]:
        distances = self.distances_from(origin)
        ys, xs = np.nonzero(distances == 1)
        return [(int(x), int(y)) for y, x in zip(ys, xs)]

    def coordinates(self) -> List[Coordinate]:
        return _row_major(self.width, self.height)

    @property
    def diameter(self) -> float:
        return self._diameter

    def __repr__(self) -> str:
        return f"HexagonalLattice({self.width}x{self.height})"


_LATTICES = {
    LatticeType.RECTANGULAR: RectangularLattice,
    LatticeType.HEXAGONAL: HexagonalLattice,
}


def create_lattice(lattice_type: LatticeType, width: int, height: int) -> Lattice:
    """Instantiate the lattice variant for lattice_type"""
    return _LATTICES[lattice_type](width, height)
