# basis/_reduced.py
"""Real orthonormal basis used to reduce the full-order operators."""

__all__ = [
    "ReducedBasis",
]

import numpy as np

from ._base import IncrementalBasisTemplate
from ._orthogonalize import ORTHOG_TOL, append_column, global_norm


class ReducedBasis(IncrementalBasisTemplate):
    r"""Real-valued orthonormal basis :math:`\V\in\RR^{n \times r}` grown one
    full-order solution at a time.

    Each complex solution :math:`\u = \u' + i\u''` contributes up to two
    columns: its real part and its imaginary part, each appended only if its
    norm exceeds ``ORTHOG_TOL`` times :math:`\|\u\|`. The basis therefore holds
    at most ``2 * max_size`` vectors.

    Parameters
    ----------
    full_state_dimension : int
        Local length of the full-order solution vectors.
    max_size : int
        Maximum number of solutions (samples) the basis can absorb.
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
        """Allocate storage for ``2 * max_size`` real vectors."""
        if max_size <= 0:
            raise ValueError("reduced basis storage must have > 0 columns")
        IncrementalBasisTemplate.__init__(
            self,
            full_state_dimension,
            2 * int(max_size),
            orthog_type=orthog_type,
            comm=comm,
            dtype=float,
        )

    def significant_parts(self, u) -> tuple:
        """Decide which of the real and imaginary parts of ``u`` are large
        enough to become basis directions.

        Returns
        -------
        has_real, has_imag : bool
        """
        u = self._check_vector(u)
        normr = global_norm(u.real, self.comm)
        normi = global_norm(np.imag(u), self.comm)
        cutoff = ORTHOG_TOL * np.sqrt(normr**2 + normi**2)
        return bool(normr > cutoff), bool(normi > cutoff)

    def extend(self, u) -> tuple:
        """Orthonormalize the real and imaginary parts of a full-order
        solution against the basis and append them.

        A significant part that already lies in the span of the basis (its
        orthogonalized norm is at most ``ORTHOG_TOL`` times its original
        norm) is dropped. The new columns are written past the active ones
        and only become part of the basis once both parts are processed.

        Parameters
        ----------
        u : (n,) ndarray
            Full-order (complex) solution vector.

        Returns
        -------
        n0, n : int
            Basis dimension before and after the update.
        """
        u = self._check_vector(u)
        has_real, has_imag = self.significant_parts(u)
        self._check_room(has_real + has_imag)

        n0 = self.reduced_state_dimension
        j = n0
        for part, keep in ((u.real, has_real), (np.imag(u), has_imag)):
            if not keep:
                continue
            norm = append_column(
                self._storage,
                np.array(part, dtype=float),
                np.zeros(j + 1),
                j,
                self.orthog_type,
                self.comm,
                tol=ORTHOG_TOL,
            )
            if norm > 0:
                j += 1
        self._dim = j
        return n0, j

    # Dimension reduction -----------------------------------------------------
    def compress(self, state: np.ndarray) -> np.ndarray:
        r"""Map a full-order state to reduced coordinates,
        :math:`\u \mapsto \V\trp\u` (globally reduced).
        """
        V = self._storage[:, : self.reduced_state_dimension]
        out = np.ascontiguousarray(V.T @ state)
        return self.comm.allreduce(out)

    def decompress(self, coeffs: np.ndarray) -> np.ndarray:
        r"""Expand reduced coordinates into the local part of a full-order
        state, :math:`\hat{\u} \mapsto \V\hat{\u}`.

        Real and imaginary parts are expanded separately so the real basis
        is never promoted to complex.
        """
        V = self._storage[:, : self.reduced_state_dimension]
        coeffs = np.asarray(coeffs)
        if coeffs.shape[0] != V.shape[1]:
            raise ValueError(
                f"expected {V.shape[1]} reduced coordinates, "
                f"got {coeffs.shape[0]}"
            )
        if np.iscomplexobj(coeffs):
            return V @ coeffs.real + 1j * (V @ coeffs.imag)
        return V @ coeffs

    def projection_error(self, state, relative: bool = True) -> float:
        r"""Error :math:`\|\u - \V\V\trp\u\|` of representing ``state`` in
        the basis, relative to :math:`\|\u\|` if ``relative=True``.
        """
        diff = global_norm(
            state - self.decompress(self.compress(state)), self.comm
        )
        if relative:
            diff /= global_norm(state, self.comm)
        return diff
