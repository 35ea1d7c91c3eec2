"""
Exception types raised by the SOM engine
"""


class SOMError(Exception):
    """Base class for all SOM engine errors"""


class ConfigurationError(SOMError, ValueError):
    """Invalid construction parameters, indices or input arrays"""


class DimensionMismatchError(ConfigurationError):
    """Two vectors that must share a dimensionality do not"""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Dimension mismatch: expected {expected}, got {actual}")


class ModelNotFoundError(SOMError, FileNotFoundError):
    """No persisted model exists at the requested location"""
