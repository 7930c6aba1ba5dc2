# roms/__init__.py
"""Helper routines for setting up roms tests."""

import numpy as np

import promsweep


def _get_hdm(n=6, damping=True, seed=0, **kwargs):
    """Construct a small full-order model with symmetric operators."""
    rng = np.random.default_rng(seed)

    def symmetric(shift):
        A = rng.standard_normal((n, n))
        return (A + A.T) / 2 + shift * np.eye(n)

    K = symmetric(2 * n)
    M = symmetric(2 * n) / n
    C = 0.1 * symmetric(0) if damping else None
    b1 = rng.standard_normal(n)
    return promsweep.operators.MatrixHDMOperator(K, M, C=C, RHS1=b1, **kwargs)


def _hdm_solve(hdm, omega):
    """Full-order solution by a dense solve."""
    return np.linalg.solve(hdm.system_matrix(omega), hdm.excitation(omega))
