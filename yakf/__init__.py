"""
yakf - Yet Another Kalman Filter
================================

Unscented Kalman Filter with pluggable sigma point sampling.

Modules:
    state: State contract and a ready-made TimedState
    sigma_points: Symmetric (2n+1) and minimal skew simplex (n+2) sampling
    ukf: UKF predict/update engine
    errors: Error taxonomy

Example:
    >>> from yakf import UKF, MinimalSkewSimplexSampling, TimedState
    >>> f = lambda x, u, dt: np.array([x[0] + x[1]*dt, x[1]])
    >>> h = lambda x: x
    >>> ukf = UKF(f, h, MinimalSkewSimplexSampling(2, w0=0.6), TimedState.zeros(2),
    ...           P0=10*np.eye(2), Q=np.diag([1.0, 1e-3]), R=np.eye(2))
    >>> ukf.feed_and_update(np.array([0.5, 1.0]), epoch=1.0)
    >>> ukf.current_estimate().state()

License: MIT
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .errors import (
    YakfError,
    InvalidSamplingParameterError,
    NumericalError,
    DimensionMismatchError,
    OutOfOrderMeasurementError,
)
from .state import State, TimedState, duration_seconds
from .sigma_points import (
    SigmaPointSet,
    SamplingMethod,
    ScalingParams,
    SymmetricallyDistributedSampling,
    MinimalSkewSimplexSampling,
    matrix_sqrt,
    unscented_transform,
    cross_covariance,
)
from .ukf import UKF, Belief

__all__ = [
    # Errors
    "YakfError",
    "InvalidSamplingParameterError",
    "NumericalError",
    "DimensionMismatchError",
    "OutOfOrderMeasurementError",
    # State
    "State",
    "TimedState",
    "duration_seconds",
    # Sampling
    "SigmaPointSet",
    "SamplingMethod",
    "ScalingParams",
    "SymmetricallyDistributedSampling",
    "MinimalSkewSimplexSampling",
    "matrix_sqrt",
    "unscented_transform",
    "cross_covariance",
    # Filter
    "UKF",
    "Belief",
]
