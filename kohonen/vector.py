"""
Fixed-size vector arithmetic.

Thin checked wrappers over numpy: every binary operation verifies that both
operands share the same dimensionality and raises DimensionMismatchError
otherwise.
"""

from typing import Iterable, Optional, Union

import numpy as np

from .exceptions import ConfigurationError, DimensionMismatchError

VectorLike = Union[np.ndarray, Iterable[float]]


def as_vector(values: VectorLike, n_dims: Optional[int] = None) -> np.ndarray:
    """Convert values to a 1D float64 vector, optionally checking its size"""
    vector = np.asarray(values, dtype=np.float64)
    if vector.ndim != 1:
        raise ConfigurationError(f"Expected a 1D vector, got {vector.ndim}D")
    if n_dims is not None and vector.shape[0] != n_dims:
        raise DimensionMismatchError(n_dims, vector.shape[0])
    return vector


def check_dimensions(a: np.ndarray, b: np.ndarray) -> None:
    """Raise if the trailing dimensions of a and b differ"""
    if a.shape[-1] != b.shape[-1]:
        raise DimensionMismatchError(a.shape[-1], b.shape[-1])


def add(a: VectorLike, b: VectorLike) -> np.ndarray:
    a, b = as_vector(a), as_vector(b)
    check_dimensions(a, b)
    return a + b


def subtract(a: VectorLike, b: VectorLike) -> np.ndarray:
    a, b = as_vector(a), as_vector(b)
    check_dimensions(a, b)
    return a - b


def divide(a: VectorLike, divisor: float) -> np.ndarray:
    """Divide every element by a scalar"""
    if divisor == 0:
        raise ZeroDivisionError("Vector division by zero")
    return as_vector(a) / divisor


def dot(a: VectorLike, b: VectorLike) -> float:
    a, b = as_vector(a), as_vector(b)
    check_dimensions(a, b)
    return float(np.dot(a, b))


def magnitude(a: VectorLike) -> float:
    return float(np.linalg.norm(as_vector(a)))


def distance(a: VectorLike, b: VectorLike) -> float:
    """Euclidean distance"""
    return magnitude(subtract(a, b))


def mean(a: VectorLike) -> float:
    return float(np.mean(as_vector(a)))


def std(a: VectorLike) -> float:
    """Population standard deviation (ddof=0)"""
    return float(np.std(as_vector(a)))
