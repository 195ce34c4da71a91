"""
yakf - Error Taxonomy
=====================

Every failure the filter can report derives from YakfError. The concrete
classes also inherit the closest builtin exception, so callers that already
catch ValueError/ArithmeticError keep working.

License: MIT
"""


class YakfError(Exception):
    """Base class for all yakf errors."""


class InvalidSamplingParameterError(ValueError, YakfError):
    """
    Raised when a sampling method is built with unusable parameters
    (w0 outside (0, 1), n + lambda <= 0, non-positive dimension).
    """


class NumericalError(ArithmeticError, YakfError):
    """
    Raised when a decomposition fails on a covariance that is not positive
    definite, or when a filter phase produces non-finite numbers.

    Attributes:
        phase: Where it happened ("sampling", "predict" or "update")
    """

    def __init__(self, message: str, phase: str = "sampling"):
        super().__init__(message)
        self.phase = phase


class DimensionMismatchError(ValueError, YakfError):
    """
    Raised when vector or matrix sizes disagree with the filter dimensions.
    """


class OutOfOrderMeasurementError(ValueError, YakfError):
    """
    Raised when a measurement epoch is not strictly after the current estimate.
    """
