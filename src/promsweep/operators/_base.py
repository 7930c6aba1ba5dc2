# operators/_base.py
"""Interface to the full-order (HDM) operators of a frequency sweep."""

__all__ = [
    "HDMOperatorTemplate",
    "MatrixHDMOperator",
]

import abc
import numpy as np

from .. import errors, utils


class HDMOperatorTemplate(abc.ABC):
    r"""Template for the high-dimensional model of a frequency-domain problem

    .. math::
       (\K + i\omega\C - \omega^2\M + \A_2(\omega))\u
       = i\omega\b_1 + \b_2(\omega).

    Operators may be anything supporting ``A @ v`` for a real vector ``v``:
    NumPy arrays, :mod:`scipy.sparse` arrays, or
    :class:`scipy.sparse.linalg.LinearOperator` objects. On a distributed
    problem each process returns its local rows and :attr:`comm` sums the
    local inner products.

    Classes that inherit from this template must implement
    :meth:`stiffness_matrix` and :meth:`mass_matrix`; the remaining terms
    default to absent (``None``).

    Parameters
    ----------
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for global reductions (serial by default).
    """

    def __init__(self, comm=None):
        self.__comm = utils.SerialCommunicator() if comm is None else comm

    @property
    def comm(self):
        """Communicator for global reductions."""
        return self.__comm

    @property
    def full_state_dimension(self) -> int:
        """Local number of rows of the full-order operators."""
        return self.stiffness_matrix().shape[0]

    @abc.abstractmethod
    def stiffness_matrix(self):
        r"""Frequency-independent operator :math:`\K`."""
        raise NotImplementedError  # pragma: no cover

    def damping_matrix(self):
        r"""Operator :math:`\C` multiplying :math:`i\omega`, or ``None``."""
        return None

    @abc.abstractmethod
    def mass_matrix(self):
        r"""Operator :math:`\M` multiplying :math:`-\omega^2`."""
        raise NotImplementedError  # pragma: no cover

    def extra_system_matrix(self, omega: float):
        r"""Frequency-dependent port operator :math:`\A_2(\omega)`, or
        ``None`` if the problem has no such term.
        """
        return None

    def excitation_vector1(self):
        r"""Frequency-independent excitation :math:`\b_1`, or ``None``."""
        return None

    def excitation_vector2(self, omega: float):
        r"""Frequency-dependent excitation :math:`\b_2(\omega)`, or
        ``None``.
        """
        return None


class MatrixHDMOperator(HDMOperatorTemplate):
    """High-dimensional model defined by explicit operators.

    Parameters
    ----------
    K : (n, n) array or operator
        Stiffness operator.
    M : (n, n) array or operator
        Mass operator.
    C : (n, n) array or operator or None
        Damping operator.
    A2 : callable or None
        Function ``omega -> (n, n)`` operator for the port term.
    RHS1 : (n,) ndarray or None
        Frequency-independent excitation.
    RHS2 : callable or None
        Function ``omega -> (n,)`` ndarray for the frequency-dependent
        excitation.
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for global reductions (serial by default).
    """

    def __init__(
        self,
        K,
        M,
        C=None,
        A2=None,
        RHS1=None,
        RHS2=None,
        comm=None,
    ):
        HDMOperatorTemplate.__init__(self, comm=comm)
        if K is None or M is None:
            raise errors.EmptyModelError(
                "stiffness and mass operators are required"
            )
        n = K.shape[0]
        for label, op in (("K", K), ("M", M), ("C", C)):
            if op is not None and op.shape[0] != n:
                raise errors.DimensionalityError(
                    f"{label}.shape[0] = {op.shape[0]} != {n}"
                )
        if RHS1 is not None:
            RHS1 = np.asarray(RHS1)
            if RHS1.shape != (n,):
                raise errors.DimensionalityError(
                    f"RHS1.shape = {RHS1.shape} != ({n},)"
                )
        for label, func in (("A2", A2), ("RHS2", RHS2)):
            if func is not None and not callable(func):
                raise TypeError(f"{label} must be callable or None")

        self.__K, self.__M, self.__C = K, M, C
        self.__A2, self.__RHS2 = A2, RHS2
        self.__RHS1 = RHS1

    def stiffness_matrix(self):
        return self.__K

    def damping_matrix(self):
        return self.__C

    def mass_matrix(self):
        return self.__M

    def extra_system_matrix(self, omega: float):
        return None if self.__A2 is None else self.__A2(omega)

    def excitation_vector1(self):
        return self.__RHS1

    def excitation_vector2(self, omega: float):
        return None if self.__RHS2 is None else self.__RHS2(omega)

    def system_matrix(self, omega: float):
        r"""Full-order system matrix
        :math:`\K + i\omega\C - \omega^2\M + \A_2(\omega)`.

        Only available when the operators support addition, for example
        dense or :mod:`scipy.sparse` arrays.
        """
        A = self.__K - omega**2 * self.__M
        if self.__C is not None:
            A = A + 1j * omega * self.__C
        if (A2 := self.extra_system_matrix(omega)) is not None:
            A = A + A2
        return A

    def excitation(self, omega: float) -> np.ndarray:
        r"""Full-order excitation :math:`i\omega\b_1 + \b_2(\omega)`."""
        rhs = np.zeros(self.full_state_dimension, dtype=complex)
        if self.__RHS1 is not None:
            rhs += 1j * omega * self.__RHS1
        if (rhs2 := self.excitation_vector2(omega)) is not None:
            rhs += rhs2
        return rhs
