# operators/__init__.py
"""Helper routines for setting up operators tests."""

import numpy as np


def _symmetric(n, rng, shift=0.0):
    """Random real symmetric matrix, optionally shifted to be definite."""
    A = rng.standard_normal((n, n))
    return (A + A.T) / 2 + shift * np.eye(n)


def _get_hdm_operators(n=8, seed=0):
    """Construct fake full-order operators K, M, C and excitation b1."""
    rng = np.random.default_rng(seed)
    K = _symmetric(n, rng, shift=2 * n)
    M = _symmetric(n, rng, shift=2 * n)
    C = 0.1 * _symmetric(n, rng)
    b1 = rng.standard_normal(n)
    return K, M, C, b1
