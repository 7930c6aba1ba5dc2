# basis/_base.py
"""Base class for incrementally grown orthonormal bases."""

__all__ = [
    "IncrementalBasisTemplate",
]

import abc
import numpy as np

from .. import errors, utils
from ._orthogonalize import _check_orthog_type, append_column


class IncrementalBasisTemplate(abc.ABC):
    """Template class for orthonormal bases with preallocated storage.

    Columns live in an ``(n, capacity)`` array allocated once at
    construction; only the logical size grows. Appending beyond the capacity
    raises :class:`promsweep.errors.CapacityError` instead of reallocating,
    so views of existing columns stay valid while the basis grows.

    Classes that inherit from this template must implement :meth:`extend`.

    Parameters
    ----------
    full_state_dimension : int
        Local length :math:`n` of each basis vector on this process.
    capacity : int
        Maximum number of columns.
    orthog_type : str
        Gram-Schmidt variant, ``"mgs"``, ``"cgs"``, or ``"cgs2"``.
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for global inner products (serial by default).
    dtype : type
        Data type of the basis entries.
    """

    def __init__(
        self,
        full_state_dimension: int,
        capacity: int,
        orthog_type: str = "mgs",
        comm=None,
        dtype=float,
    ):
        """Allocate storage."""
        if capacity <= 0:
            raise ValueError("basis storage must have > 0 columns")
        self.__orthog_type = _check_orthog_type(orthog_type)
        self.__comm = utils.SerialCommunicator() if comm is None else comm
        self._storage = np.zeros(
            (int(full_state_dimension), int(capacity)),
            dtype=dtype,
        )
        self._dim = 0

    # Properties --------------------------------------------------------------
    @property
    def full_state_dimension(self) -> int:
        r"""Local dimension :math:`n` of the basis vectors."""
        return self._storage.shape[0]

    @property
    def capacity(self) -> int:
        """Maximum number of basis vectors."""
        return self._storage.shape[1]

    @property
    def reduced_state_dimension(self) -> int:
        """Current number of basis vectors."""
        return self._dim

    @property
    def shape(self) -> tuple:
        """Dimensions of the active part of the basis."""
        return (self.full_state_dimension, self.reduced_state_dimension)

    @property
    def orthog_type(self) -> str:
        """Gram-Schmidt variant used to grow the basis."""
        return self.__orthog_type

    @property
    def comm(self):
        """Communicator for global inner products."""
        return self.__comm

    @property
    def entries(self) -> np.ndarray:
        """Read-only view of the active basis columns."""
        view = self._storage[:, : self._dim]
        view.flags.writeable = False
        return view

    def __getitem__(self, key):
        """self[:] --> self.entries."""
        return self.entries[key]

    def __len__(self):
        return self._dim

    def __str__(self):
        """String representation: class and dimensions."""
        out = [self.__class__.__name__]
        n = self.full_state_dimension
        out.append(f"Full state dimension    n = {n:d}")
        out.append(
            f"Reduced state dimension r = {self.reduced_state_dimension:d}"
            f" (capacity {self.capacity:d})"
        )
        out.append(f"Orthogonalization: {self.orthog_type.upper()}")
        return "\n  ".join(out)

    def __repr__(self):
        """Unique ID + string representation."""
        return utils.str2repr(self)

    # Growth ------------------------------------------------------------------
    def _check_room(self, num_new: int):
        """Raise CapacityError if ``num_new`` columns do not fit."""
        if self._dim + num_new > self.capacity:
            raise errors.CapacityError(
                "unable to increase basis storage size "
                f"({self._dim} + {num_new} > {self.capacity}), "
                "increase the maximum number of vectors"
            )

    def _check_vector(self, u) -> np.ndarray:
        """Ensure ``u`` is a vector of the full state dimension."""
        u = np.asarray(u)
        if u.shape != (self.full_state_dimension,):
            raise errors.DimensionalityError(
                f"expected vector of shape ({self.full_state_dimension},), "
                f"got {u.shape}"
            )
        return u

    def _append(self, w: np.ndarray, h: np.ndarray) -> float:
        """Orthonormalize ``w`` against the current basis and append it."""
        self._check_room(1)
        norm = append_column(
            self._storage,
            w,
            h,
            self._dim,
            self.orthog_type,
            self.comm,
        )
        self._dim += 1
        return norm

    def _truncate(self, dim: int):
        """Discard the columns past ``dim`` (used to undo a failed update)."""
        self._storage[:, dim:] = 0
        self._dim = dim

    def _set_entries(self, entries: np.ndarray):
        """Overwrite the active columns (used when loading from a file)."""
        entries = np.asarray(entries)
        if entries.ndim != 2 or entries.shape[0] != self.full_state_dimension:
            raise errors.DimensionalityError(
                "basis entries not aligned with full state dimension"
            )
        self._dim = 0
        self._check_room(entries.shape[1])
        self._storage[:, : entries.shape[1]] = entries
        self._dim = entries.shape[1]

    @abc.abstractmethod
    def extend(self, *args, **kwargs):
        """Grow the basis with a new full-order solution."""
        raise NotImplementedError  # pragma: no cover

    # Verification ------------------------------------------------------------
    def orthogonality_error(self) -> float:
        r"""Largest entry of :math:`|\V\hrm\V - \I|` over the active columns,
        computed with global inner products.
        """
        V = self._storage[:, : self._dim]
        gram = np.ascontiguousarray(V.conj().T @ V)
        self.comm.allreduce(gram)
        return float(np.max(np.abs(gram - np.eye(self._dim)), initial=0))
