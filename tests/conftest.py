import os
import sys

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

# корінь репозиторію в sys.path, щоб тести працювали і без встановлення пакета
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def make_sine(n_points, period=12.0, amplitude=1.0, noise=0.0, seed=0):
    rng = np.random.default_rng(seed)
    t = np.arange(n_points)
    return amplitude * np.sin(2 * np.pi * t / period) + rng.normal(0.0, noise, n_points)


@pytest.fixture
def sine_series():
    return make_sine(400, noise=0.05, seed=7)


@pytest.fixture
def constant_series():
    return np.full(60, 5.0)


@pytest.fixture
def sine_factory():
    return make_sine
