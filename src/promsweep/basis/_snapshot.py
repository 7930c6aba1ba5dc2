# basis/_snapshot.py
"""Complex snapshot basis stored as an incremental QR factorization."""

__all__ = [
    "SnapshotBasis",
]

import numpy as np

from .. import errors
from ._base import IncrementalBasisTemplate


class SnapshotBasis(IncrementalBasisTemplate):
    r"""Orthonormal factor :math:`\Q` and triangular factor :math:`\R` of the
    snapshot matrix :math:`\U = [~\u(z_1)~~\cdots~~\u(z_S)~] = \Q\R`.

    One complex column is appended per sampled frequency :math:`z_s`; column
    :math:`s` of :math:`\R` holds the Gram-Schmidt coefficients of
    :math:`\u(z_s)` and its orthogonalized norm on the diagonal.

    Parameters
    ----------
    full_state_dimension : int
        Local length of the full-order solution vectors.
    max_size : int
        Maximum number of snapshots.
    orthog_type : str
        Gram-Schmidt variant, ``"mgs"`` (default), ``"cgs"``, or ``"cgs2"``.
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for global inner products (serial by default).
    """

    def __init__(
        self,
        full_state_dimension: int,
        max_size: int,
        orthog_type: str = "mgs",
        comm=None,
    ):
        """Allocate storage for ``max_size`` complex snapshots."""
        IncrementalBasisTemplate.__init__(
            self,
            full_state_dimension,
            max_size,
            orthog_type=orthog_type,
            comm=comm,
            dtype=complex,
        )
        self.__R = np.zeros((self.capacity, self.capacity), dtype=complex)
        self.__z = np.zeros(self.capacity)

    @property
    def factor(self) -> np.ndarray:
        r"""Upper-triangular factor :math:`\R` (``dim x dim``)."""
        S = self.reduced_state_dimension
        view = self.__R[:S, :S]
        view.flags.writeable = False
        return view

    @property
    def sample_points(self) -> np.ndarray:
        """Sampled frequencies, one per snapshot, in acceptance order."""
        return self.__z[: self.reduced_state_dimension].copy()

    def extend(self, u, omega: float) -> int:
        """Orthonormalize the snapshot ``u`` sampled at ``omega`` against the
        basis and append it, growing :math:`\\R` by one row and column.

        Returns
        -------
        S : int
            Number of snapshots after the update.
        """
        u = self._check_vector(u)
        self._check_room(1)
        S = self.reduced_state_dimension
        self._append(np.array(u, dtype=complex), self.__R[:, S])
        self.__z[S] = float(omega)
        return self.reduced_state_dimension

    def _truncate(self, dim: int):
        IncrementalBasisTemplate._truncate(self, dim)
        self.__R[:, dim:] = 0
        self.__R[dim:, :] = 0
        self.__z[dim:] = 0

    def _set_state(self, entries, factor, sample_points):
        """Restore Q, R, and the sample points (used when loading)."""
        factor = np.asarray(factor)
        sample_points = np.asarray(sample_points, dtype=float)
        S = np.shape(entries)[1]
        if factor.shape != (S, S) or sample_points.shape != (S,):
            raise errors.DimensionalityError(
                "snapshot factor and sample points not aligned with basis"
            )
        self._set_entries(entries)
        self.__R[:] = 0
        self.__R[:S, :S] = factor
        self.__z[:] = 0
        self.__z[:S] = sample_points
