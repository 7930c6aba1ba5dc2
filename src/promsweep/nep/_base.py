# nep/_base.py
"""Nonlinear operator interface and eigensolver results."""

__all__ = [
    "NonlinearOperatorTemplate",
    "PolynomialOperator",
    "NEPResult",
]

import abc
import numpy as np
import scipy.linalg as la

from .. import errors, utils


class NonlinearOperatorTemplate(abc.ABC):
    r"""Template for matrix-valued functions :math:`\T(\lambda)` defining a
    nonlinear eigenvalue problem :math:`\T(\lambda)\x = \0`.

    Classes that inherit from this template must implement :attr:`size` and
    :meth:`evaluate`.
    """

    @property
    @abc.abstractmethod
    def size(self) -> int:
        """Dimension of the (square) operator."""
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def evaluate(self, lam: complex, jacobian: bool = True) -> tuple:
        r"""Evaluate :math:`\T(\lambda)` and, optionally, its derivative.

        Parameters
        ----------
        lam : complex
            Evaluation point.
        jacobian : bool
            If ``True``, also compute :math:`\T'(\lambda)`.

        Returns
        -------
        T : (n, n) ndarray
            Operator at ``lam``.
        dT : (n, n) ndarray or None
            Derivative at ``lam``, or ``None`` if ``jacobian=False``.
        """
        raise NotImplementedError  # pragma: no cover

    def residual(self, lam: complex, x: np.ndarray, T=None) -> float:
        r"""Relative residual
        :math:`\|\T(\lambda)\x\| / (\|\T(\lambda)\|_F\|\x\|)`.
        """
        if T is None:
            T = self.evaluate(lam, jacobian=False)[0]
        scale = la.norm(T) * la.norm(x)
        if scale == 0:
            return 0.0
        return float(la.norm(T @ x) / scale)

    def __str__(self):
        return f"{self.__class__.__name__} of size {self.size}"

    def __repr__(self):
        return utils.str2repr(self)


class PolynomialOperator(NonlinearOperatorTemplate):
    r"""Matrix polynomial
    :math:`\T(\lambda) = \sum_{p=0}^{d} \lambda^p \A_p`.

    Parameters
    ----------
    coefficients : list of (n, n) ndarrays or None
        Coefficient matrices :math:`\A_0, \ldots, \A_d`. ``None`` entries are
        treated as zero.
    """

    def __init__(self, coefficients):
        coefficients = list(coefficients)
        known = [A for A in coefficients if A is not None]
        if not known:
            raise ValueError("at least one coefficient matrix required")
        n = known[0].shape[0]
        for A in known:
            if np.shape(A) != (n, n):
                raise errors.DimensionalityError(
                    "coefficient matrices must all be square and of equal size"
                )
        self.__n = n
        self.__coefficients = [
            None if A is None else np.asarray(A, dtype=complex)
            for A in coefficients
        ]

    @property
    def size(self) -> int:
        return self.__n

    @property
    def coefficients(self) -> list:
        """Coefficient matrices, lowest degree first."""
        return self.__coefficients

    @property
    def degree(self) -> int:
        return len(self.__coefficients) - 1

    def evaluate(self, lam: complex, jacobian: bool = True) -> tuple:
        T = np.zeros((self.__n, self.__n), dtype=complex)
        dT = np.zeros_like(T) if jacobian else None
        for p, A in enumerate(self.__coefficients):
            if A is None:
                continue
            T += lam**p * A
            if jacobian and p > 0:
                dT += p * lam ** (p - 1) * A
        return T, dT


class NEPResult:
    """Eigenpairs computed by :func:`promsweep.nep.solve_nep`.

    Attributes
    ----------
    eigenvalues : (k,) ndarray
        Eigenvalue estimates :math:`\\lambda_j`, in the order found.
    eigenvectors : (n, k) ndarray
        Unit-norm eigenvector estimates.
    converged : (k,) ndarray of bools
        Whether each pair met the tolerance before the iteration cap.
    iterations : (k,) ndarray of ints
        Outer iterations spent on each pair.
    residuals : (k,) ndarray
        Relative residual of each pair at termination.
    """

    def __init__(
        self,
        eigenvalues,
        eigenvectors,
        converged,
        iterations,
        residuals,
    ):
        self.eigenvalues = np.asarray(eigenvalues, dtype=complex)
        self.eigenvectors = np.asarray(eigenvectors, dtype=complex)
        self.converged = np.asarray(converged, dtype=bool)
        self.iterations = np.asarray(iterations, dtype=int)
        self.residuals = np.asarray(residuals, dtype=float)

    @property
    def frequencies(self) -> np.ndarray:
        r"""Eigenvalues converted to frequencies,
        :math:`\omega_j = \lambda_j / i`.
        """
        return self.eigenvalues / 1j

    @property
    def all_converged(self) -> bool:
        return bool(np.all(self.converged))

    def __len__(self):
        return self.eigenvalues.size

    def __iter__(self):
        """Iterate through (eigenvalue, eigenvector) pairs."""
        for j in range(len(self)):
            yield self.eigenvalues[j], self.eigenvectors[:, j]

    def __str__(self):
        out = [f"{self.__class__.__name__} with {len(self)} eigenpairs"]
        for j, lam in enumerate(self.eigenvalues):
            flag = "" if self.converged[j] else " (not converged)"
            out.append(
                f"lambda[{j}] = {lam.real:.6e}{lam.imag:+.6e}i, "
                f"residual {self.residuals[j]:.3e}{flag}"
            )
        return "\n  ".join(out)

    def __repr__(self):
        return utils.str2repr(self)
