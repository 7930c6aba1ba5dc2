# basis/conftest.py
"""Fixtures for testing the basis submodule."""

import pytest
import numpy as np


@pytest.fixture
def set_up_basis_data():
    """Complex full-order solutions with random real and imaginary parts."""
    n = 200
    k = 20
    rng = np.random.default_rng(42)
    return rng.standard_normal((n, k)) + 1j * rng.standard_normal((n, k))
