# operators/_projection.py
"""Incremental Galerkin projection of the full-order operators."""

__all__ = [
    "project_matrix",
    "project_vector",
    "ProjectionEngine",
]

import numpy as np

from .. import errors, utils


def project_matrix(V, A, Ar_old=None, n0: int = 0, comm=None) -> np.ndarray:
    r"""Update :math:`\A_r = \V\trp\A\V` after the basis grows from ``n0`` to
    ``n`` columns.

    Only the new columns :math:`j \ge n_0` are computed: one operator
    application per new column, local inner products against all ``n``
    columns, and a single global sum-reduction of the ``(n - n0) x n`` block.
    Because :math:`\V` is real and :math:`\A` is assumed complex symmetric,
    the new rows below the old block are the transpose (not the conjugate
    transpose) of the new columns.

    Parameters
    ----------
    V : (n_local, n) ndarray
        Real basis; the leading ``n0`` columns are unchanged since the last
        projection.
    A : (n_local, n_local) array or operator
        Full-order operator (local rows).
    Ar_old : (>=n0, >=n0) ndarray or None
        Previous reduced operator, whose leading ``n0 x n0`` block is reused.
    n0 : int
        Basis dimension at the previous projection (``0`` to project from
        scratch).
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for the global reduction.

    Returns
    -------
    Ar : (n, n) ndarray
        Complex reduced operator.
    """
    if comm is None:
        comm = utils.SerialCommunicator()
    n = V.shape[1]
    if not 0 <= n0 < n:
        raise ValueError(
            f"invalid dimensions in reduced matrix projection ({n0} -> {n})"
        )
    Ar = np.zeros((n, n), dtype=complex)
    if n0 > 0:
        if Ar_old is None or min(np.shape(Ar_old)) < n0:
            raise errors.DimensionalityError(
                f"previous reduced matrix must be at least {n0} x {n0}"
            )
        Ar[:n0, :n0] = Ar_old[:n0, :n0]

    # Row k of the block holds column n0 + k of Ar.
    block = np.empty((n - n0, n), dtype=complex)
    for k, j in enumerate(range(n0, n)):
        block[k] = V.T @ np.asarray(A @ V[:, j])
    comm.allreduce(block)
    Ar[:, n0:] = block.T

    # Mirror into the lower-left block.
    Ar[n0:, :n0] = Ar[:n0, n0:].T
    return Ar


def project_vector(V, b, br_old=None, n0: int = 0, comm=None) -> np.ndarray:
    r"""Update :math:`\b_r = \V\trp\b` after the basis grows from ``n0`` to
    ``n`` columns, with one global reduction of the ``n - n0`` new entries.
    """
    if comm is None:
        comm = utils.SerialCommunicator()
    n = V.shape[1]
    if not 0 <= n0 < n:
        raise ValueError(
            f"invalid dimensions in reduced vector projection ({n0} -> {n})"
        )
    br = np.zeros(n, dtype=complex)
    if n0 > 0:
        if br_old is None or np.shape(br_old)[0] < n0:
            raise errors.DimensionalityError(
                f"previous reduced vector must have at least {n0} entries"
            )
        br[:n0] = br_old[:n0]
    new = np.ascontiguousarray(V[:, n0:].T @ np.asarray(b), dtype=complex)
    br[n0:] = comm.allreduce(new)
    return br


class ProjectionEngine:
    r"""Reduced operators :math:`\K_r, \C_r, \M_r` and source
    :math:`\b_{1,r}` of a high-dimensional model, kept equal to the exact
    projection onto a growing :class:`promsweep.basis.ReducedBasis`.

    The frequency-dependent terms :math:`\A_2(\omega)` and
    :math:`\b_2(\omega)` are not cached; :meth:`project_frequency_operator`
    and :meth:`project_frequency_source` reproject them from scratch for each
    query frequency.

    Parameters
    ----------
    hdm : :class:`HDMOperatorTemplate`
        Full-order operators.
    basis : :class:`promsweep.basis.ReducedBasis`
        Basis to project onto.
    """

    def __init__(self, hdm, basis):
        self.__hdm = hdm
        self.__basis = basis
        self.__K = hdm.stiffness_matrix()
        self.__C = hdm.damping_matrix()
        self.__M = hdm.mass_matrix()
        if self.__K is None or self.__M is None:
            raise errors.EmptyModelError(
                "invalid empty HDM matrices when constructing reduced model"
            )
        n = basis.full_state_dimension
        for label, op in (("K", self.__K), ("C", self.__C), ("M", self.__M)):
            if op is not None and tuple(op.shape) != (n, n):
                raise errors.DimensionalityError(
                    f"{label}.shape = {tuple(op.shape)} not aligned with "
                    f"basis dimension {n}"
                )
        self.__RHS1 = hdm.excitation_vector1()
        if self.__RHS1 is not None and np.shape(self.__RHS1) != (n,):
            raise errors.DimensionalityError(
                f"RHS1.shape = {np.shape(self.__RHS1)} != ({n},)"
            )

        empty = np.zeros((0, 0), dtype=complex)
        self.Kr = empty.copy()
        self.Cr = None if self.__C is None else empty.copy()
        self.Mr = empty.copy()
        self.RHS1r = None if self.__RHS1 is None else np.zeros(0, complex)
        self.has_A2 = True
        self.has_RHS2 = True

    @property
    def hdm(self):
        """Full-order operators."""
        return self.__hdm

    @property
    def comm(self):
        return self.__basis.comm

    @property
    def dimension(self) -> int:
        """Current size of the reduced operators."""
        return self.Kr.shape[0]

    def update(self, n0: int):
        """Extend the reduced operators after the basis grew from ``n0``
        columns to its current size. Nothing happens if it did not grow.
        """
        if n0 != self.dimension:
            raise errors.DimensionalityError(
                f"reduced operators have dimension {self.dimension}, "
                f"basis update starts from {n0}"
            )
        V = self.__basis.entries
        if V.shape[1] == n0:
            return
        comm = self.comm
        with utils.TimedBlock(f"projecting operators ({n0} -> {V.shape[1]})"):
            Kr = project_matrix(V, self.__K, self.Kr, n0, comm)
            Cr = self.Cr
            if self.__C is not None:
                Cr = project_matrix(V, self.__C, self.Cr, n0, comm)
            Mr = project_matrix(V, self.__M, self.Mr, n0, comm)
            RHS1r = self.RHS1r
            if self.__RHS1 is not None:
                RHS1r = project_vector(V, self.__RHS1, self.RHS1r, n0, comm)
        self.Kr, self.Cr, self.Mr, self.RHS1r = Kr, Cr, Mr, RHS1r

    def _truncate(self, n: int):
        """Restrict the reduced operators to their leading ``n`` rows and
        columns (used to undo a failed update).
        """
        self.Kr = self.Kr[:n, :n]
        if self.Cr is not None:
            self.Cr = self.Cr[:n, :n]
        self.Mr = self.Mr[:n, :n]
        if self.RHS1r is not None:
            self.RHS1r = self.RHS1r[:n]

    def project_frequency_operator(self, omega: float):
        r"""Projection :math:`\V\trp\A_2(\omega)\V` of the port operator, or
        ``None`` if the model has no port operator.
        """
        if not self.has_A2:
            return None
        A2 = self.__hdm.extra_system_matrix(omega)
        if A2 is None:
            self.has_A2 = False
            return None
        return project_matrix(self.__basis.entries, A2, None, 0, self.comm)

    def project_frequency_source(self, omega: float):
        r"""Projection :math:`\V\trp\b_2(\omega)` of the frequency-dependent
        excitation, or ``None`` if the model has no such excitation.
        """
        if not self.has_RHS2:
            return None
        b2 = self.__hdm.excitation_vector2(omega)
        if b2 is None:
            self.has_RHS2 = False
            return None
        return project_vector(self.__basis.entries, b2, None, 0, self.comm)

    def _set_state(self, Kr, Cr, Mr, RHS1r):
        """Restore previously projected operators (used when loading)."""
        n = self.__basis.reduced_state_dimension
        if (self.__C is None) != (Cr is None):
            raise errors.DimensionalityError(
                "saved damping operator does not match the HDM"
            )
        if (self.__RHS1 is None) != (RHS1r is None):
            raise errors.DimensionalityError(
                "saved excitation does not match the HDM"
            )
        for label, Ar in (("Kr", Kr), ("Cr", Cr), ("Mr", Mr)):
            if Ar is not None and np.shape(Ar) != (n, n):
                raise errors.DimensionalityError(
                    f"{label}.shape = {np.shape(Ar)} != ({n}, {n})"
                )
        if RHS1r is not None and np.shape(RHS1r) != (n,):
            raise errors.DimensionalityError(
                f"RHS1r.shape = {np.shape(RHS1r)} != ({n},)"
            )
        self.Kr = np.array(Kr, dtype=complex)
        self.Cr = None if Cr is None else np.array(Cr, dtype=complex)
        self.Mr = np.array(Mr, dtype=complex)
        self.RHS1r = None if RHS1r is None else np.array(RHS1r, complex)
