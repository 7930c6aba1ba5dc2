# nep/_deflation.py
"""Projective deflation of already computed eigenpairs."""

__all__ = [
    "DEFLATION_POLE_TOL",
    "DeflatedOperator",
]

import numpy as np

from .. import errors
from ._base import NonlinearOperatorTemplate


DEFLATION_POLE_TOL = np.sqrt(np.finfo(float).eps)


class DeflatedOperator(NonlinearOperatorTemplate):
    r"""Nonlinear operator with known eigenpairs removed from its spectrum.

    For each accepted eigenpair :math:`(\lambda_i, \x_i)` the operator is
    multiplied from the right by the rank-one modification

    .. math::
       \P_i(\lambda)
       = \I - \frac{\lambda - \lambda_i - 1}{\lambda - \lambda_i}
       \x_i\x_i\hrm,

    which acts as :math:`1 / (\lambda - \lambda_i)` along :math:`\x_i` and as
    the identity on its orthogonal complement. The factor cancels the zero
    of :math:`\T(\lambda)\x_i` at :math:`\lambda_i`, so an iterative solver
    applied to :math:`\T(\lambda)\prod_i\P_i(\lambda)` is pushed away from
    the known eigenvalues while the operator keeps its dimension.

    The factor has a pole at :math:`\lambda = \lambda_i`. Whenever
    :math:`|\lambda - \lambda_i|` falls below
    ``DEFLATION_POLE_TOL * max(1, |lambda_i|)`` it is clamped to that
    distance (keeping its phase), so evaluations stay finite.

    Parameters
    ----------
    operator : :class:`NonlinearOperatorTemplate`
        Operator to deflate.
    eigenvalues : (k,) array-like
        Eigenvalues to deflate.
    eigenvectors : (n, k) array-like or list of (n,) ndarrays
        Corresponding eigenvectors (normalized internally).
    """

    def __init__(self, operator, eigenvalues=(), eigenvectors=()):
        self.__operator = operator
        lambdas = np.atleast_1d(np.asarray(eigenvalues, dtype=complex))
        n = operator.size
        if len(lambdas) == 0:
            X = np.zeros((n, 0), dtype=complex)
        elif isinstance(eigenvectors, np.ndarray):
            X = np.array(eigenvectors, dtype=complex).reshape((n, -1))
        else:
            X = np.column_stack(eigenvectors).astype(complex)
        if X.shape != (n, lambdas.size):
            raise errors.DimensionalityError(
                f"expected eigenvectors of shape ({n}, {lambdas.size}), "
                f"got {X.shape}"
            )
        norms = np.linalg.norm(X, axis=0)
        if np.any(norms == 0):
            raise ValueError("cannot deflate a zero eigenvector")
        self.__lambdas = lambdas
        self.__X = X / norms

    @property
    def size(self) -> int:
        return self.__operator.size

    @property
    def operator(self):
        """Operator being deflated."""
        return self.__operator

    @property
    def num_deflated(self) -> int:
        """Number of deflated eigenpairs."""
        return self.__lambdas.size

    def _distance(self, lam: complex, i: int) -> complex:
        """Regularized :math:`\\lambda - \\lambda_i`."""
        d = lam - self.__lambdas[i]
        floor = DEFLATION_POLE_TOL * max(1.0, abs(self.__lambdas[i]))
        if abs(d) < floor:
            d = floor if d == 0 else floor * d / abs(d)
        return d

    def _factors(self, lam: complex, i: int, jacobian: bool) -> tuple:
        r"""Factor :math:`\P_i(\lambda)` and, optionally, its derivative
        :math:`\P_i'(\lambda) = -(\lambda - \lambda_i)^{-2}\x_i\x_i\hrm`.
        """
        d = self._distance(lam, i)
        x = self.__X[:, i]
        xxH = np.outer(x, x.conj())
        P = np.eye(self.size, dtype=complex) - ((d - 1) / d) * xxH
        dP = -xxH / d**2 if jacobian else None
        return P, dP

    def evaluate(self, lam: complex, jacobian: bool = True) -> tuple:
        r"""Evaluate :math:`\T(\lambda)\prod_i\P_i(\lambda)` and its
        derivative by the product rule.
        """
        T, dT = self.__operator.evaluate(lam, jacobian)
        for i in range(self.num_deflated):
            P, dP = self._factors(lam, i, jacobian)
            if jacobian:
                dT = dT @ P + T @ dP
            T = T @ P
        return T, dT

    def undeflate(self, lam: complex, y: np.ndarray) -> np.ndarray:
        r"""Map an eigenvector :math:`\y` of the deflated problem to the
        eigenvector :math:`\x = \prod_i\P_i(\lambda)\y` of the original
        problem, normalized to unit length.
        """
        x = np.array(y, dtype=complex)
        for i in reversed(range(self.num_deflated)):
            x = self._factors(lam, i, jacobian=False)[0] @ x
        norm = np.linalg.norm(x)
        if norm == 0:
            raise ValueError("undeflated eigenvector is zero")
        return x / norm
