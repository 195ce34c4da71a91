"""
Sigma point sampling tests
"""

import warnings

import numpy as np
import pytest

from conftest import random_spd
from yakf import (
    DimensionMismatchError,
    InvalidSamplingParameterError,
    MinimalSkewSimplexSampling,
    NumericalError,
    SigmaPointSet,
    SymmetricallyDistributedSampling,
    matrix_sqrt,
    unscented_transform,
)


def sampler_configs():
    configs = []
    for n in range(1, 7):
        configs += [
            ("sds", n, dict(alpha=1e-3)),
            ("sds", n, dict(alpha=0.5, beta=2.0, kappa=1.0)),
            ("sds", n, dict(alpha=1.0, kappa=3.0 - n if n < 3 else 0.0)),
            ("msss", n, dict(w0=0.6)),
            ("msss", n, dict(w0=0.05)),
            ("msss", n, dict(w0=0.95)),
        ]
    return configs


def make_sampler(kind, n, kwargs):
    if kind == "sds":
        return SymmetricallyDistributedSampling(n, **kwargs)
    return MinimalSkewSimplexSampling(n, **kwargs)


class TestReconstruction:
    """Weights sum to one and identity reconstruction is exact"""

    @pytest.mark.parametrize("kind,n,kwargs", sampler_configs())
    def test_mean_weights_sum_to_one(self, kind, n, kwargs):
        Wm, _ = make_sampler(kind, n, kwargs).weights()
        assert np.sum(Wm) == pytest.approx(1.0, abs=1e-9)

    @pytest.mark.parametrize("kind,n,kwargs", sampler_configs())
    def test_identity_reconstruction(self, kind, n, kwargs, rng):
        sampler = make_sampler(kind, n, kwargs)
        mean = rng.normal(size=n)
        P = random_spd(rng, n)

        sigmas = sampler.sample(mean, P)
        x_rec, P_rec = sigmas.reconstruct()

        np.testing.assert_allclose(x_rec, mean, atol=1e-6)
        np.testing.assert_allclose(P_rec, P, atol=1e-5 * np.max(np.abs(P)))

    @pytest.mark.parametrize("kind,n,kwargs", sampler_configs())
    def test_linear_map_is_exact(self, kind, n, kwargs, rng):
        sampler = make_sampler(kind, n, kwargs)
        mean = rng.normal(size=n)
        P = random_spd(rng, n)
        A = rng.normal(size=(2, n))

        sigmas = sampler.sample(mean, P)
        y, Pyy = unscented_transform(sigmas.transform(lambda x: A @ x),
                                     sigmas.mean_weights, sigmas.cov_weights)

        np.testing.assert_allclose(y, A @ mean, atol=1e-6)
        np.testing.assert_allclose(Pyy, A @ P @ A.T, atol=1e-4 * np.max(np.abs(A @ P @ A.T)))


class TestSymmetricallyDistributedSampling:

    def test_point_count(self):
        sds = SymmetricallyDistributedSampling(3, 1e-3)
        assert sds.num_points == 7
        assert len(sds.sample(np.zeros(3), np.eye(3))) == 7

    def test_defaults(self):
        sds = SymmetricallyDistributedSampling(2, 1e-3, None, None)
        assert sds.params.beta == 2.0
        assert sds.params.kappa == 0.0
        assert sds.lambda_ == pytest.approx(1e-6 * 2 - 2)

    def test_weights_van_der_merwe(self):
        n, alpha, beta, kappa = 2, 0.5, 2.0, 1.0
        sds = SymmetricallyDistributedSampling(n, alpha, beta, kappa)
        lam = alpha**2 * (n + kappa) - n
        Wm, Wc = sds.weights()
        assert Wm[0] == pytest.approx(lam / (n + lam))
        assert Wc[0] == pytest.approx(lam / (n + lam) + 1 - alpha**2 + beta)
        np.testing.assert_allclose(Wm[1:], 1 / (2 * (n + lam)))
        np.testing.assert_allclose(Wc[1:], Wm[1:])

    def test_points_are_symmetric_about_mean(self, rng):
        n = 3
        sds = SymmetricallyDistributedSampling(n, 0.5)
        mean = rng.normal(size=n)
        sigmas = sds.sample(mean, random_spd(rng, n))
        np.testing.assert_array_equal(sigmas.points[0], mean)
        np.testing.assert_allclose(sigmas.points[1:n + 1] + sigmas.points[n + 1:], 2 * mean[None, :].repeat(n, 0))

    def test_nonpositive_scale_rejected(self):
        # n + lambda = alpha^2 (n + kappa)
        with pytest.raises(InvalidSamplingParameterError):
            SymmetricallyDistributedSampling(2, 1e-3, None, -2.0)
        with pytest.raises(InvalidSamplingParameterError):
            SymmetricallyDistributedSampling(2, 1e-3, None, -5.0)
        with pytest.raises(InvalidSamplingParameterError):
            SymmetricallyDistributedSampling(2, 0.0)

    def test_non_finite_rejected(self):
        with pytest.raises(InvalidSamplingParameterError):
            SymmetricallyDistributedSampling(2, float("nan"))

    def test_invalid_dimension_rejected(self):
        with pytest.raises(InvalidSamplingParameterError):
            SymmetricallyDistributedSampling(0, 1e-3)

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            SymmetricallyDistributedSampling(2, 1e-3, kappa=-2.0)

    def test_alpha_outside_recommended_range_warns(self):
        with pytest.warns(UserWarning) as record:
            SymmetricallyDistributedSampling(2, 2.0)
        assert record[0].filename == __file__

    def test_alpha_in_range_does_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            SymmetricallyDistributedSampling(2, 1e-3)


class TestMinimalSkewSimplexSampling:

    def test_point_count(self):
        msss = MinimalSkewSimplexSampling(4, 0.5)
        assert msss.num_points == 6
        assert len(msss.sample(np.zeros(4), np.eye(4))) == 6

    def test_weights(self):
        msss = MinimalSkewSimplexSampling(3, 0.2)
        W, Wc = msss.weights()
        w1 = 0.8 / 8
        np.testing.assert_allclose(W, [0.2, w1, w1, 2 * w1, 4 * w1])
        np.testing.assert_array_equal(W, Wc)

    def test_first_point_is_mean(self, rng):
        mean = rng.normal(size=3)
        sigmas = MinimalSkewSimplexSampling(3, 0.6).sample(mean, random_spd(rng, 3))
        np.testing.assert_array_equal(sigmas.points[0], mean)

    def test_unit_points_zero_mean_identity_covariance(self):
        msss = MinimalSkewSimplexSampling(5, 0.3)
        chi, W = msss.chi, msss.W
        np.testing.assert_allclose(W @ chi, np.zeros(5), atol=1e-12)
        np.testing.assert_allclose((W[:, None] * chi).T @ chi, np.eye(5), atol=1e-12)

    @pytest.mark.parametrize("w0", [0.0, 1.0, -0.1, 1.5])
    def test_w0_outside_open_interval_rejected(self, w0):
        with pytest.raises(InvalidSamplingParameterError):
            MinimalSkewSimplexSampling(2, w0)


class TestSampleInputs:

    def test_non_positive_definite_covariance(self):
        sds = SymmetricallyDistributedSampling(2, 0.5)
        with pytest.raises(NumericalError) as exc_info:
            sds.sample(np.zeros(2), np.array([[1.0, 2.0], [2.0, 1.0]]))
        assert exc_info.value.phase == "sampling"

    def test_wrong_mean_dimension(self):
        msss = MinimalSkewSimplexSampling(2, 0.5)
        with pytest.raises(DimensionMismatchError):
            msss.sample(np.zeros(3), np.eye(2))

    def test_wrong_covariance_dimension(self):
        msss = MinimalSkewSimplexSampling(2, 0.5)
        with pytest.raises(DimensionMismatchError):
            msss.sample(np.zeros(2), np.eye(3))


class TestSigmaPointSet:

    def test_iterates_triples_in_order(self):
        sigmas = MinimalSkewSimplexSampling(2, 0.6).sample(np.array([1.0, 2.0]), np.eye(2))
        triples = list(sigmas)
        assert len(triples) == 4
        wm, wc, p = triples[0]
        assert wm == pytest.approx(0.6)
        assert wc == pytest.approx(0.6)
        np.testing.assert_array_equal(p, [1.0, 2.0])

    def test_transform_calls_function_once_per_point(self):
        calls = []
        sigmas = SymmetricallyDistributedSampling(3, 0.5).sample(np.zeros(3), np.eye(3))
        out = sigmas.transform(lambda x: calls.append(1) or x[:1])
        assert len(calls) == 7
        assert out.shape == (7, 1)

    def test_reconstruct_adds_noise(self):
        sigmas = SigmaPointSet(points=np.array([[0.0], [1.0], [-1.0]]),
                               mean_weights=np.array([0.0, 0.5, 0.5]),
                               cov_weights=np.array([0.0, 0.5, 0.5]))
        mean, cov = sigmas.reconstruct(noise_cov=np.array([[2.0]]))
        np.testing.assert_allclose(mean, [0.0])
        np.testing.assert_allclose(cov, [[3.0]])


class TestMatrixSqrt:

    def test_lower_factor(self, rng):
        P = random_spd(rng, 4)
        L = matrix_sqrt(P)
        np.testing.assert_allclose(L @ L.T, P, atol=1e-10)
        np.testing.assert_allclose(L, np.tril(L))

    def test_singular_matrix_raises(self):
        with pytest.raises(NumericalError):
            matrix_sqrt(np.zeros((2, 2)))

    def test_non_finite_raises(self):
        with pytest.raises(NumericalError):
            matrix_sqrt(np.array([[np.nan, 0.0], [0.0, 1.0]]))
