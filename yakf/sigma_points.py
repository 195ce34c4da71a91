"""
yakf - Sigma Point Sampling
===========================

Theory:
    A sampling method turns a Gaussian belief (mean, covariance) into a small
    deterministic set of weighted points. Pushing the points through a
    nonlinear function and recombining them approximates the transformed
    mean and covariance without any Jacobian.

Available methods:
    - SymmetricallyDistributedSampling: 2n+1 points, scaled unscented
      transform (Van der Merwe, 2004)
    - MinimalSkewSimplexSampling: n+2 points, minimal skew simplex set
      (Julier, 2002)

Both are exact to second order for linear maps: identity reconstruction
gives back the input mean and covariance.

License: MIT
"""

import logging
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, cholesky

from .errors import DimensionMismatchError, InvalidSamplingParameterError, NumericalError

logger = logging.getLogger(__name__)


def matrix_sqrt(A: np.ndarray) -> np.ndarray:
    """
    Lower triangular square root L of a positive definite matrix, A = L @ L.T

    Raises:
        NumericalError: A is not positive definite or holds non-finite values
    """
    try:
        return cholesky(A, lower=True)
    except (LinAlgError, ValueError) as exc:
        raise NumericalError(f"Cholesky decomposition failed: {exc}", phase="sampling") from exc


def unscented_transform(
    values: np.ndarray,
    mean_weights: np.ndarray,
    cov_weights: np.ndarray,
    noise_cov: Optional[np.ndarray] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Recombine transformed sigma points into a mean and covariance.

    Args:
        values: Transformed points [N, m]
        mean_weights: Weights for the mean [N]
        cov_weights: Weights for the covariance [N]
        noise_cov: Additive noise covariance [m, m]

    Returns:
        mean: [m]
        cov: [m, m], symmetrised
    """
    mean = mean_weights @ values
    diff = values - mean
    cov = (cov_weights[:, np.newaxis] * diff).T @ diff
    if noise_cov is not None:
        cov = cov + noise_cov
    return mean, 0.5 * (cov + cov.T)


def cross_covariance(
    x_points: np.ndarray,
    x_mean: np.ndarray,
    y_points: np.ndarray,
    y_mean: np.ndarray,
    cov_weights: np.ndarray
) -> np.ndarray:
    """Weighted cross covariance sum Wc_i (x_i - x_mean)(y_i - y_mean)^T"""
    dx = x_points - x_mean
    dy = y_points - y_mean
    return (cov_weights[:, np.newaxis] * dx).T @ dy


@dataclass
class SigmaPointSet:
    """
    Weighted sigma points.

    Row i of points goes with mean_weights[i] and cov_weights[i]. Iterating
    yields (weight_mean, weight_cov, point) triples in order.
    """
    points: np.ndarray        # [N, n]
    mean_weights: np.ndarray  # [N]
    cov_weights: np.ndarray   # [N]

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Tuple[float, float, np.ndarray]]:
        return iter(zip(self.mean_weights, self.cov_weights, self.points))

    @property
    def dim(self) -> int:
        return self.points.shape[1]

    def transform(self, fn: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
        """Apply fn to every point, in order. Returns [N, m]."""
        return np.array([np.asarray(fn(p), dtype=np.float64).reshape(-1) for p in self.points])

    def reconstruct(self, noise_cov: Optional[np.ndarray] = None) -> Tuple[np.ndarray, np.ndarray]:
        """Mean and covariance represented by the points themselves"""
        return unscented_transform(self.points, self.mean_weights, self.cov_weights, noise_cov)


class SamplingMethod(ABC):
    """
    Common interface of sigma point sampling methods.

    Subclasses are fixed to one dimension at construction and produce
    num_points points per call to sample().
    """

    def __init__(self, dim: int):
        if isinstance(dim, bool) or not isinstance(dim, (int, np.integer)) or dim < 1:
            raise InvalidSamplingParameterError(f"dimension must be a positive integer, got {dim!r}")
        self.dim = int(dim)

    @property
    @abstractmethod
    def num_points(self) -> int:
        """Number of sigma points per sample"""

    @abstractmethod
    def weights(self) -> Tuple[np.ndarray, np.ndarray]:
        """(mean_weights, cov_weights)"""

    @abstractmethod
    def sample(self, mean: np.ndarray, covariance: np.ndarray) -> SigmaPointSet:
        """Build the sigma point set of N(mean, covariance)"""

    def _check_inputs(self, mean: np.ndarray, covariance: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        mean = np.asarray(mean, dtype=np.float64).reshape(-1)
        covariance = np.asarray(covariance, dtype=np.float64)
        if mean.shape != (self.dim,):
            raise DimensionMismatchError(
                f"mean has {mean.shape[0]} elements, sampler expects {self.dim}")
        if covariance.shape != (self.dim, self.dim):
            raise DimensionMismatchError(
                f"covariance has shape {covariance.shape}, sampler expects {(self.dim, self.dim)}")
        return mean, covariance


@dataclass
class ScalingParams:
    """Scaled unscented transform parameters (Van der Merwe formulation)"""
    alpha: float = 1e-3  # Spread of sigma points (1e-4 to 1)
    beta: float = 2.0    # Prior knowledge (2 optimal for Gaussian)
    kappa: float = 0.0   # Secondary scaling (usually 0 or 3-n)

    def lambda_(self, n: int) -> float:
        return self.alpha**2 * (n + self.kappa) - n


class SymmetricallyDistributedSampling(SamplingMethod):
    """
    Symmetric 2n+1 sigma points.

    Points: x, x + S[:, i], x - S[:, i] with S S^T = (n + lambda) P and
    lambda = alpha^2 (n + kappa) - n.

    Example:
        >>> sds = SymmetricallyDistributedSampling(2, alpha=1e-3)
        >>> sigmas = sds.sample(np.zeros(2), np.eye(2))
        >>> len(sigmas)
        5
    """

    def __init__(
        self,
        dim: int,
        alpha: float = 1e-3,
        beta: Optional[float] = None,
        kappa: Optional[float] = None
    ):
        """
        Args:
            dim: State dimension n
            alpha: Spread of sigma points around the mean
            beta: Prior knowledge of the distribution, default 2.0
            kappa: Secondary scaling parameter, default 0.0

        Raises:
            InvalidSamplingParameterError: n + lambda <= 0 or a parameter is not finite
        """
        super().__init__(dim)
        self.params = ScalingParams(
            alpha=float(alpha),
            beta=2.0 if beta is None else float(beta),
            kappa=0.0 if kappa is None else float(kappa),
        )
        if not np.all(np.isfinite([self.params.alpha, self.params.beta, self.params.kappa])):
            raise InvalidSamplingParameterError(f"non-finite scaling parameters: {self.params}")

        n = self.dim
        self.lambda_ = self.params.lambda_(n)
        self.scale = n + self.lambda_
        if self.scale <= 0:
            raise InvalidSamplingParameterError(
                f"n + lambda = {self.scale:g} must be positive "
                f"(alpha={self.params.alpha}, kappa={self.params.kappa}, n={n})")

        if not (1e-4 <= abs(self.params.alpha) <= 1.0):
            warnings.warn(f"alpha {self.params.alpha} outside recommended range [1e-4, 1.0]", stacklevel=2)

        self._compute_weights()
        logger.debug("Built %r, n + lambda = %g", self, self.scale)

    def _compute_weights(self):
        """Compute sigma point weights"""
        n = self.dim
        alpha = self.params.alpha
        beta = self.params.beta

        self.Wm = np.full(2 * n + 1, 1.0 / (2 * self.scale))
        self.Wc = self.Wm.copy()
        self.Wm[0] = self.lambda_ / self.scale
        self.Wc[0] = self.Wm[0] + (1 - alpha**2 + beta)

    @property
    def num_points(self) -> int:
        return 2 * self.dim + 1

    def weights(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.Wm.copy(), self.Wc.copy()

    def sample(self, mean: np.ndarray, covariance: np.ndarray) -> SigmaPointSet:
        mean, covariance = self._check_inputs(mean, covariance)
        n = self.dim
        S = matrix_sqrt(self.scale * covariance)

        sigma = np.empty((2 * n + 1, n))
        sigma[0] = mean
        sigma[1:n + 1] = mean + S.T
        sigma[n + 1:] = mean - S.T

        return SigmaPointSet(points=sigma, mean_weights=self.Wm.copy(), cov_weights=self.Wc.copy())

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(dim={self.dim}, alpha={self.params.alpha}, "
                f"beta={self.params.beta}, kappa={self.params.kappa})")


class MinimalSkewSimplexSampling(SamplingMethod):
    """
    Minimal skew simplex sigma points (n+2 points).

    Weights:
        W_0 = w0
        W_1 = W_2 = (1 - w0) / 2^n
        W_j = 2^(j-2) W_1, j = 3..n+1

    The unit points are built one dimension at a time so that every
    dimension has zero mean and unit variance; the final points are
    x + L chi_i with L L^T = P.

    Example:
        >>> msss = MinimalSkewSimplexSampling(2, w0=0.6)
        >>> len(msss.sample(np.zeros(2), np.eye(2)))
        4
    """

    def __init__(self, dim: int, w0: float = 0.5):
        """
        Args:
            dim: State dimension n
            w0: Weight of the central point, 0 < w0 < 1

        Raises:
            InvalidSamplingParameterError: w0 outside (0, 1)
        """
        super().__init__(dim)
        w0 = float(w0)
        if not (0.0 < w0 < 1.0):
            raise InvalidSamplingParameterError(f"w0 must lie in (0, 1), got {w0}")
        self.w0 = w0

        self._compute_weights()
        self._compute_unit_points()
        logger.debug("Built %r", self)

    def _compute_weights(self):
        n = self.dim
        W = np.empty(n + 2)
        W[0] = self.w0
        W[1] = W[2] = (1.0 - self.w0) / 2**n
        for j in range(3, n + 2):
            W[j] = 2**(j - 2) * W[1]
        self.W = W

    def _compute_unit_points(self):
        """Unit simplex points chi [n+2, n], zero mean and identity covariance"""
        n = self.dim
        W = self.W
        chi = np.zeros((n + 2, n))

        chi[1, 0] = -1.0 / np.sqrt(2 * W[1])
        chi[2, 0] = 1.0 / np.sqrt(2 * W[1])

        for j in range(2, n + 1):
            c = 1.0 / np.sqrt(2 * W[j + 1])
            chi[1:j + 1, j - 1] = -c
            chi[j + 1, j - 1] = c

        self.chi = chi

    @property
    def num_points(self) -> int:
        return self.dim + 2

    def weights(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.W.copy(), self.W.copy()

    def sample(self, mean: np.ndarray, covariance: np.ndarray) -> SigmaPointSet:
        mean, covariance = self._check_inputs(mean, covariance)
        L = matrix_sqrt(covariance)
        sigma = mean + self.chi @ L.T
        return SigmaPointSet(points=sigma, mean_weights=self.W.copy(), cov_weights=self.W.copy())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dim={self.dim}, w0={self.w0})"
