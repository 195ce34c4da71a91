"""
Shared fixtures for the yakf test suite.

Run: pytest tests/ -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Allow running the suite from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent))


def random_spd(rng, n, jitter=1.0):
    """Random symmetric positive definite matrix"""
    A = rng.normal(size=(n, n))
    return A @ A.T + jitter * np.eye(n)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def cv_dynamics():
    """Constant velocity model on [position, velocity]"""
    def f(x, u, dt):
        return np.array([x[0] + x[1] * dt, x[1]])
    return f


@pytest.fixture
def identity_measurement():
    def h(x):
        return np.array(x, copy=True)
    return h
