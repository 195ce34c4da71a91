"""
yakf - Unscented Kalman Filter (UKF)
====================================

Theory:
    Each measurement triggers one predict/update cycle.

    Predict: sample sigma points from (x, P), push them through the
    dynamics f(x, u, dt) and recombine:
        x- = sum Wm_i X_i
        P- = sum Wc_i (X_i - x-)(X_i - x-)^T + Q

    Update: re-sample from (x-, P-), map through h(x) and recombine:
        y^  = sum Wm_i Y_i
        Pyy = sum Wc_i (Y_i - y^)(Y_i - y^)^T + R
        Pxy = sum Wc_i (X_i - x-)(Y_i - y^)^T
        K Pyy = Pxy            (Cholesky solve, no explicit inverse)
        x = x- + K (y - y^)
        P = P- - K Pyy K^T

    A cycle is all-or-nothing: if any decomposition fails the filter keeps
    its previous estimate and the error propagates to the caller.

License: MIT
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from .errors import DimensionMismatchError, NumericalError, OutOfOrderMeasurementError
from .sigma_points import SamplingMethod, SigmaPointSet, cross_covariance, unscented_transform
from .state import Duration, DynamicsFn, State, duration_seconds

logger = logging.getLogger(__name__)

MeasurementFn = Callable[[np.ndarray], np.ndarray]


@dataclass
class Belief:
    """Gaussian belief N(x, P)"""
    x: np.ndarray  # Mean [n]
    P: np.ndarray  # Covariance [n, n]

    def __post_init__(self):
        self.x = np.asarray(self.x, dtype=np.float64).reshape(-1)
        self.P = np.asarray(self.P, dtype=np.float64)
        # Keep P symmetric
        self.P = 0.5 * (self.P + self.P.T)


def _check_finite(phase: str, *arrays: np.ndarray):
    for a in arrays:
        if not np.all(np.isfinite(a)):
            raise NumericalError(f"non-finite values produced during {phase}", phase=phase)


def _as_square(name: str, M: np.ndarray, size: Optional[int] = None) -> np.ndarray:
    M = np.array(M, dtype=np.float64, ndmin=2)
    if M.ndim != 2 or M.shape[0] != M.shape[1]:
        raise DimensionMismatchError(f"{name} must be a square matrix, got shape {M.shape}")
    if size is not None and M.shape[0] != size:
        raise DimensionMismatchError(f"{name} must be {size}x{size}, got {M.shape}")
    return M


class UKF:
    """
    Unscented Kalman Filter over a user-defined State.

    The filter owns its sampling method, the dynamics/measurement functions,
    a private copy of the state and the P, Q, R matrices. It is not
    thread-safe; use one instance per tracked object.

    Example:
        >>> f = lambda x, u, dt: np.array([x[0] + x[1]*dt, x[1]])
        >>> h = lambda x: x
        >>> ukf = UKF(f, h, MinimalSkewSimplexSampling(2, 0.6),
        ...           TimedState.zeros(2), 10*np.eye(2), np.eye(2), np.diag([1.0, 1e-3]))
        >>> ukf.feed_and_update(np.array([1.0, 1.0]), 1.0)
    """

    def __init__(
        self,
        dynamics: DynamicsFn,
        measurement: MeasurementFn,
        sampling: SamplingMethod,
        initial_state: State,
        P0: np.ndarray,
        Q: np.ndarray,
        R: np.ndarray
    ):
        """
        Args:
            dynamics: State transition f(x, u, dt_seconds) -> x_next
            measurement: Measurement function h(x) -> y
            sampling: Sigma point sampling method, same dimension as the state
            initial_state: Initial estimate (copied, never mutated)
            P0: Initial covariance [n, n]
            Q: Process noise covariance [n, n]
            R: Measurement noise covariance [m, m]

        Raises:
            DimensionMismatchError: Sizes of the inputs disagree
        """
        self.f = dynamics
        self.h = measurement
        self.sampling = sampling

        self._state = copy.deepcopy(initial_state)
        x0 = np.asarray(self._state.state(), dtype=np.float64).reshape(-1)
        self.n = len(x0)
        if sampling.dim != self.n:
            raise DimensionMismatchError(
                f"sampling method is {sampling.dim}-dimensional, state has {self.n} elements")

        self._belief = Belief(x=x0, P=_as_square("P0", P0, self.n))
        self.Q = _as_square("Q", Q, self.n)
        self.R = _as_square("R", R)
        self.m = self.R.shape[0]

        self._innovation: Optional[np.ndarray] = None
        self._Pyy: Optional[np.ndarray] = None

        logger.info("UKF initialized: n=%d, m=%d, sampling=%r", self.n, self.m, sampling)

    @classmethod
    def build(cls, dynamics, measurement, sampling, initial_state, P0, Q, R) -> "UKF":
        """Same as UKF(...)"""
        return cls(dynamics, measurement, sampling, initial_state, P0, Q, R)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def current_estimate(self) -> State:
        """Snapshot of the current estimate (vector + epoch)"""
        return copy.deepcopy(self._state)

    @property
    def covariance(self) -> np.ndarray:
        return self._belief.P.copy()

    @property
    def belief(self) -> Belief:
        return Belief(x=self._belief.x.copy(), P=self._belief.P.copy())

    @property
    def state_dim(self) -> int:
        return self.n

    @property
    def measurement_dim(self) -> int:
        return self.m

    @property
    def last_innovation(self) -> Optional[np.ndarray]:
        """y - y^ of the last accepted measurement"""
        return None if self._innovation is None else self._innovation.copy()

    @property
    def innovation_covariance(self) -> Optional[np.ndarray]:
        """Pyy of the last accepted measurement"""
        return None if self._Pyy is None else self._Pyy.copy()

    # ------------------------------------------------------------------
    # Filter phases
    # ------------------------------------------------------------------

    def _sample(self, belief: Belief, phase: str) -> SigmaPointSet:
        try:
            return self.sampling.sample(belief.x, belief.P)
        except NumericalError as exc:
            raise NumericalError(f"{phase}: {exc}", phase=phase) from exc

    def predict(self, belief: Belief, exogenous: Any = None, dt: Duration = 1.0) -> Belief:
        """
        Time update: propagate sigma points through the dynamics.

        Does not modify the filter.

        Args:
            belief: Belief to predict from
            exogenous: Exogenous input passed through to the dynamics
            dt: Elapsed time (timedelta or seconds)

        Returns:
            Prior belief (x-, P-)
        """
        sigmas = self._sample(belief, "predict")
        dt_s = duration_seconds(dt)

        X = sigmas.transform(lambda s: self.f(s, exogenous, dt_s))
        if X.shape != (len(sigmas), self.n):
            raise DimensionMismatchError(
                f"dynamics returned shape {X.shape[1:]}, expected ({self.n},)")

        x_pred, P_pred = unscented_transform(X, sigmas.mean_weights, sigmas.cov_weights, self.Q)
        _check_finite("predict", x_pred, P_pred)

        return Belief(x=x_pred, P=P_pred)

    def update(self, prior: Belief, y: np.ndarray) -> Tuple[Belief, np.ndarray, np.ndarray]:
        """
        Measurement update: correct the prior with measurement y.

        Does not modify the filter.

        Args:
            prior: Predicted belief (x-, P-)
            y: Measurement vector [m]

        Returns:
            Tuple of (posterior, innovation, innovation covariance Pyy)
        """
        y = np.asarray(y, dtype=np.float64).reshape(-1)
        if y.shape != (self.m,):
            raise DimensionMismatchError(
                f"Measurement dimension mismatch: expected {self.m}, got {y.shape[0]}")

        sigmas = self._sample(prior, "update")

        Y = sigmas.transform(self.h)
        if Y.shape != (len(sigmas), self.m):
            raise DimensionMismatchError(
                f"measurement function returned shape {Y.shape[1:]}, expected ({self.m},)")

        y_pred, Pyy = unscented_transform(Y, sigmas.mean_weights, sigmas.cov_weights, self.R)
        Pxy = cross_covariance(sigmas.points, prior.x, Y, y_pred, sigmas.cov_weights)
        _check_finite("update", y_pred, Pyy, Pxy)

        # K Pyy = Pxy  <=>  Pyy K^T = Pxy^T
        try:
            c_and_lower = cho_factor(Pyy, lower=True)
        except LinAlgError as exc:
            raise NumericalError(
                f"innovation covariance is not positive definite: {exc}", phase="update") from exc
        K = cho_solve(c_and_lower, Pxy.T).T

        innovation = y - y_pred
        x_upd = prior.x + K @ innovation
        P_upd = prior.P - K @ Pyy @ K.T
        _check_finite("update", x_upd, P_upd)

        return Belief(x=x_upd, P=P_upd), innovation, Pyy

    def feed_and_update(self, y: np.ndarray, epoch: Any, exogenous: Any = None) -> np.ndarray:
        """
        Run one predict/update cycle for a measurement taken at epoch.

        Args:
            y: Measurement vector [m]
            epoch: Measurement epoch, strictly after the current estimate
            exogenous: Exogenous input for the dynamics

        Returns:
            Updated state vector [n]

        Raises:
            OutOfOrderMeasurementError: epoch is not after the current estimate, or
                its type cannot be compared with the current epoch
            NumericalError: A decomposition failed; the filter is unchanged
            DimensionMismatchError: Measurement or model output has the wrong size
        """
        current_epoch = self._state.epoch()
        try:
            is_later = epoch > current_epoch
        except TypeError as exc:
            raise OutOfOrderMeasurementError(
                f"measurement epoch {epoch!r} cannot be compared with current epoch {current_epoch!r}") from exc
        if not is_later:
            raise OutOfOrderMeasurementError(
                f"measurement epoch {epoch!r} is not after current epoch {current_epoch!r}")
        dt = epoch - current_epoch

        try:
            prior = self.predict(self._belief, exogenous, dt)
            posterior, innovation, Pyy = self.update(prior, y)
        except NumericalError as exc:
            logger.warning("Cycle at epoch %r rejected: %s", epoch, exc)
            raise

        # Commit; the State owns the mean, so re-read it after set_state
        self._state.set_state(posterior.x.copy())
        self._state.set_epoch(epoch)
        self._belief = Belief(x=np.asarray(self._state.state(), dtype=np.float64).copy(), P=posterior.P)
        self._innovation = innovation
        self._Pyy = Pyy

        logger.debug("Epoch %r: dt=%gs, innovation=%s, trace(P)=%g",
                     epoch, duration_seconds(dt), innovation, np.trace(posterior.P))

        return self._belief.x.copy()
