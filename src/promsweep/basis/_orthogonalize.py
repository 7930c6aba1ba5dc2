# basis/_orthogonalize.py
"""Incremental Gram-Schmidt orthogonalization against distributed columns."""

__all__ = [
    "ORTHOG_TOL",
    "REORTHOG_FACTOR",
    "ORTHOG_TYPES",
    "global_dot",
    "global_norm",
    "orthogonalize_column",
    "append_column",
]

import numpy as np

from .. import utils


ORTHOG_TOL = 1e-12
REORTHOG_FACTOR = 1 / np.sqrt(2)
ORTHOG_TYPES = ("mgs", "cgs", "cgs2")


def _check_orthog_type(orthog_type: str) -> str:
    """Normalize and validate the name of an orthogonalization scheme."""
    key = str(orthog_type).lower()
    if key not in ORTHOG_TYPES:
        raise ValueError(
            f"invalid orthog_type '{orthog_type}', "
            f"options are {', '.join(ORTHOG_TYPES)}"
        )
    return key


def global_dot(x: np.ndarray, y: np.ndarray, comm=None):
    """Global inner product x^H y of two distributed vectors."""
    if comm is None:
        comm = utils.SerialCommunicator()
    buffer = np.array([np.vdot(x, y)])
    return comm.allreduce(buffer)[0]


def global_norm(x: np.ndarray, comm=None) -> float:
    """Global 2-norm of a distributed vector."""
    if comm is None:
        comm = utils.SerialCommunicator()
    buffer = np.array([np.vdot(x, x).real])
    return float(np.sqrt(comm.allreduce(buffer)[0]))


def _cgs_pass(V, w, comm):
    """One classical Gram-Schmidt pass with a single reduction."""
    coeffs = np.ascontiguousarray(V.conj().T @ w)
    comm.allreduce(coeffs)
    w -= V @ coeffs
    return coeffs


def orthogonalize_column(
    V: np.ndarray,
    w: np.ndarray,
    h: np.ndarray,
    j: int,
    orthog_type: str = "mgs",
    comm=None,
):
    """Orthogonalize ``w`` in place against the leading ``j`` columns of
    ``V``, storing the projection coefficients in ``h[:j]``.

    Parameters
    ----------
    V : (n, k) ndarray
        Basis storage whose leading ``j`` columns are orthonormal.
    w : (n,) ndarray
        Vector to orthogonalize (overwritten).
    h : (>=j,) ndarray
        Coefficient buffer, for example a column of an upper-triangular
        factor.
    j : int
        Number of columns of ``V`` to orthogonalize against.
    orthog_type : str
        * ``"mgs"``: modified Gram-Schmidt, one reduction per column.
        * ``"cgs"``: classical Gram-Schmidt, one reduction in total.
        * ``"cgs2"``: classical Gram-Schmidt with one reorthogonalization.
    comm : :class:`promsweep.utils.CommunicatorTemplate` or None
        Communicator for the global inner products (serial by default).
    """
    orthog_type = _check_orthog_type(orthog_type)
    if comm is None:
        comm = utils.SerialCommunicator()
    if j == 0:
        return

    if orthog_type == "mgs":
        for i in range(j):
            h[i] = global_dot(V[:, i], w, comm)
            w -= h[i] * V[:, i]
        return

    h[:j] = _cgs_pass(V[:, :j], w, comm)
    if orthog_type == "cgs2":
        h[:j] += _cgs_pass(V[:, :j], w, comm)


def append_column(
    V: np.ndarray,
    w: np.ndarray,
    h: np.ndarray,
    j: int,
    orthog_type: str = "mgs",
    comm=None,
    tol: float = 0.0,
) -> float:
    """Orthogonalize ``w`` against ``V[:, :j]``, normalize it, and store it
    as ``V[:, j]``.

    The projection coefficients are written to ``h[:j]`` and the norm of the
    orthogonalized vector to ``h[j]``, so ``h`` is column ``j`` of the
    triangular factor of an incremental QR factorization.

    If orthogonalization removes more than a fraction ``1 - REORTHOG_FACTOR``
    of the norm of ``w``, a second pass is made and its coefficients are
    added to ``h[:j]``.

    Parameters
    ----------
    tol : float
        Relative dependence tolerance. If ``tol > 0`` and the orthogonalized
        norm is at most ``tol`` times the original norm, ``w`` is considered
        to lie in the span of ``V[:, :j]``: nothing is written to ``V`` or
        ``h[j]`` and zero is returned.

    Returns
    -------
    norm : float
        Norm of ``w`` after orthogonalization (zero if ``w`` was dropped).
    """
    if j >= V.shape[1]:
        raise IndexError(f"column {j} out of range for {V.shape[1]} columns")
    if comm is None:
        comm = utils.SerialCommunicator()
    norm0 = global_norm(w, comm)
    orthogonalize_column(V, w, h, j, orthog_type, comm)
    norm = global_norm(w, comm)
    if j > 0 and norm < REORTHOG_FACTOR * norm0:
        h2 = np.zeros(j, dtype=h.dtype)
        orthogonalize_column(V, w, h2, j, orthog_type, comm)
        h[:j] += h2
        norm = global_norm(w, comm)
    if tol > 0 and norm <= tol * norm0:
        return 0.0
    if norm == 0:
        raise ValueError("cannot normalize a vector with zero norm")
    h[j] = norm
    V[:, j] = w / norm
    return norm
