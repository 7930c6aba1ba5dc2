# nep/__init__.py
"""Helper routines for setting up nonlinear eigenvalue tests."""

import numpy as np

import promsweep


def _linear_operator(eigenvalues):
    r"""T(lambda) = lambda I - diag(eigenvalues)."""
    d = np.asarray(eigenvalues, dtype=complex)
    return promsweep.nep.PolynomialOperator(
        [-np.diag(d), np.eye(d.size)]
    )


def _quadratic_operator(stiffness):
    r"""T(lambda) = diag(stiffness) + lambda^2 I, eigenvalues +-i sqrt(k)."""
    k = np.asarray(stiffness, dtype=float)
    return promsweep.nep.PolynomialOperator(
        [np.diag(k), None, np.eye(k.size)]
    )
