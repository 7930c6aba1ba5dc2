# roms/_prom.py
"""Projection-based reduced-order model for adaptive frequency sweeps."""

__all__ = [
    "ReducedNonlinearOperator",
    "FrequencyPROM",
]

import logging
import numpy as np
import scipy.linalg as la

from .. import errors, utils
from ..basis import ReducedBasis, SnapshotBasis
from ..estimate import MRIErrorEstimator
from ..nep import NEP_MAXITER, NEP_TOL, NonlinearOperatorTemplate, solve_nep
from ..operators import ProjectionEngine


class ReducedNonlinearOperator(NonlinearOperatorTemplate):
    r"""Reduced resonance operator

    .. math::
       \T(\lambda) = \K_r + \lambda\C_r + \lambda^2\M_r
       + \V\trp\A_2(|\Im\lambda|)\V,

    whose zeros :math:`\lambda = i\omega` are the resonances of the
    reduced-order model.

    The derivative of the port term is approximated by a one-sided finite
    difference in the frequency,

    .. math::
       \frac{d}{d\lambda}\V\trp\A_2(\omega)\V
       \approx -i\,\mathrm{sign}(\Im\lambda)\,
       \frac{\V\trp(\A_2(\omega + h) - \A_2(\omega))\V}{h},
       \qquad \omega = |\Im\lambda|,\quad h = \sqrt{\epsilon}\,\omega,

    reusing the projection at :math:`\omega` from the evaluation of
    :math:`\T`.

    Parameters
    ----------
    prom : :class:`FrequencyPROM`
        Reduced-order model providing the projected operators.
    """

    def __init__(self, prom):
        self.__engine = prom.engine
        self.__Kr = prom.Kr
        self.__Cr = prom.Cr
        self.__Mr = prom.Mr

    @property
    def size(self) -> int:
        return self.__Kr.shape[0]

    def evaluate(self, lam: complex, jacobian: bool = True) -> tuple:
        lam = complex(lam)
        T = self.__Kr + lam**2 * self.__Mr
        dT = 2 * lam * self.__Mr if jacobian else None
        if self.__Cr is not None:
            T = T + lam * self.__Cr
            if jacobian:
                dT = dT + self.__Cr

        omega = abs(lam.imag)
        A2r = self.__engine.project_frequency_operator(omega)
        if A2r is not None:
            T = T + A2r
            if jacobian:
                eps = np.sqrt(np.finfo(float).eps)
                h = eps * omega if omega > 0 else eps
                A2r_h = self.__engine.project_frequency_operator(omega + h)
                sign = -1.0 if lam.imag < 0 else 1.0
                dT = dT + (-1j * sign) * (A2r_h - A2r) / h
        return T, dT


class FrequencyPROM:
    r"""Projection-based reduced-order model (PROM) of a frequency-domain
    problem

    .. math::
       (\K + i\omega\C - \omega^2\M + \A_2(\omega))\u(\omega)
       = i\omega\b_1 + \b_2(\omega),

    built greedily from full-order solutions at selected frequencies.

    Each accepted sample :math:`(\u, \omega)` extends

    * a real reduced basis :math:`\V` with the real and imaginary parts of
      :math:`\u` (see :class:`promsweep.basis.ReducedBasis`), updating the
      projected operators :math:`\K_r, \C_r, \M_r, \b_{1,r}` incrementally
      (see :class:`promsweep.operators.ProjectionEngine`), and
    * a complex snapshot factorization :math:`\U = \Q\R`
      (see :class:`promsweep.basis.SnapshotBasis`), from which the minimal
      rational interpolation error surrogate is recomputed
      (see :class:`promsweep.estimate.MRIErrorEstimator`).

    The model then provides cheap solves at any frequency, the location of
    the next sample, and eigenvalue estimates of the resonances.

    Parameters
    ----------
    hdm : :class:`promsweep.operators.HDMOperatorTemplate`
        Full-order operators. Its communicator is used for all global
        reductions.
    max_size : int
        Maximum number of samples the model can absorb.
    orthog_type : str
        Gram-Schmidt variant, ``"mgs"`` (default), ``"cgs"``, or ``"cgs2"``.
    """

    def __init__(self, hdm, max_size: int, orthog_type: str = "mgs"):
        """Allocate the bases and project the (empty) operators."""
        n = hdm.full_state_dimension
        comm = hdm.comm
        self.__hdm = hdm
        self.__basis = ReducedBasis(n, max_size, orthog_type, comm)
        self.__snapshots = SnapshotBasis(n, max_size, orthog_type, comm)
        self.__engine = ProjectionEngine(hdm, self.__basis)
        self.__estimator = MRIErrorEstimator()

    # Properties --------------------------------------------------------------
    @property
    def hdm(self):
        """Full-order operators."""
        return self.__hdm

    @property
    def basis(self) -> ReducedBasis:
        r"""Real reduced basis :math:`\V`."""
        return self.__basis

    @property
    def snapshots(self) -> SnapshotBasis:
        r"""Snapshot factorization :math:`\U = \Q\R`."""
        return self.__snapshots

    @property
    def engine(self) -> ProjectionEngine:
        """Projected operators."""
        return self.__engine

    @property
    def estimator(self) -> MRIErrorEstimator:
        """Error surrogate for choosing the next sample."""
        return self.__estimator

    @property
    def max_size(self) -> int:
        """Maximum number of samples."""
        return self.__snapshots.capacity

    @property
    def orthog_type(self) -> str:
        return self.__basis.orthog_type

    @property
    def dim_V(self) -> int:
        r"""Dimension of the reduced basis :math:`\V`."""
        return self.__basis.reduced_state_dimension

    @property
    def dim_Q(self) -> int:
        r"""Number of snapshots (columns of :math:`\Q`)."""
        return self.__snapshots.reduced_state_dimension

    @property
    def sample_points(self) -> np.ndarray:
        """Sampled frequencies in acceptance order."""
        return self.__snapshots.sample_points

    @property
    def Kr(self) -> np.ndarray:
        r"""Reduced stiffness :math:`\V\trp\K\V`."""
        return self.__engine.Kr

    @property
    def Cr(self):
        r"""Reduced damping :math:`\V\trp\C\V`, or ``None``."""
        return self.__engine.Cr

    @property
    def Mr(self) -> np.ndarray:
        r"""Reduced mass :math:`\V\trp\M\V`."""
        return self.__engine.Mr

    @property
    def RHS1r(self):
        r"""Reduced excitation :math:`\V\trp\b_1`, or ``None``."""
        return self.__engine.RHS1r

    def __str__(self):
        """String representation: dimensions and samples."""
        out = [self.__class__.__name__]
        out.append(
            f"Full state dimension {self.__basis.full_state_dimension:d}"
        )
        out.append(
            f"Reduced basis dimension {self.dim_V:d} "
            f"(capacity {self.__basis.capacity:d})"
        )
        out.append(f"Snapshots {self.dim_Q:d} (capacity {self.max_size:d})")
        out.append(f"Orthogonalization: {self.orthog_type.upper()}")
        if self.dim_Q:
            samples = ", ".join(f"{z:.6g}" for z in self.sample_points)
            out.append(f"Sample frequencies: [{samples}]")
        return "\n  ".join(out)

    def __repr__(self):
        """Unique ID + string representation."""
        return utils.str2repr(self)

    # Model construction ------------------------------------------------------
    def extend(self, u, omega: float):
        """Add a full-order solution to the model.

        The real and imaginary parts of ``u`` extend the reduced basis, the
        projected operators are updated for the new basis dimension, ``u`` is
        appended to the snapshot factorization, and the error surrogate is
        recomputed. Capacity is checked before anything is modified, and if
        any step fails the model is restored to its previous state before
        the exception propagates.

        Parameters
        ----------
        u : (n,) ndarray
            Full-order (complex) solution at ``omega`` (local rows).
        omega : float
            Frequency at which ``u`` was computed.

        Returns
        -------
        self
        """
        u = self.__basis._check_vector(u)
        has_real, has_imag = self.__basis.significant_parts(u)
        self.__basis._check_room(has_real + has_imag)
        self.__snapshots._check_room(1)

        n0, S0 = self.dim_V, self.dim_Q
        with utils.TimedBlock(f"extending PROM at omega = {omega:.6e}"):
            try:
                n = self.__basis.extend(u)[1]
                self.__engine.update(n0)
                self.__snapshots.extend(u, omega)
                self.__estimator.fit(
                    self.__snapshots.sample_points,
                    self.__snapshots.factor,
                )
            except Exception:
                self.__basis._truncate(n0)
                self.__engine._truncate(n0)
                self.__snapshots._truncate(S0)
                raise
        logging.info(
            f"PROM extended at omega = {omega:e}: dim(V) = {n0} -> {n}, "
            f"dim(Q) = {self.dim_Q}"
        )
        return self

    # Reduced solves ----------------------------------------------------------
    def _assemble(self, omega: float) -> tuple:
        """Reduced system matrix and right-hand side at ``omega``."""
        engine = self.__engine
        Ar = engine.Kr - omega**2 * engine.Mr
        if engine.Cr is not None:
            Ar = Ar + 1j * omega * engine.Cr
        if (A2r := engine.project_frequency_operator(omega)) is not None:
            Ar = Ar + A2r

        rhs = np.zeros(self.dim_V, dtype=complex)
        if engine.RHS1r is not None:
            rhs += 1j * omega * engine.RHS1r
        if (RHS2r := engine.project_frequency_source(omega)) is not None:
            rhs += RHS2r
        return Ar, rhs

    @utils.requires_nonempty(
        "dim_V",
        "reduced solve requires a nonempty reduced basis",
    )
    def solve_reduced(self, omega: float) -> np.ndarray:
        r"""Solve the reduced system
        :math:`(\K_r + i\omega\C_r - \omega^2\M_r + \A_{2,r}(\omega))\hat{\u}
        = i\omega\b_{1,r} + \b_{2,r}(\omega)`
        by LU factorization with partial pivoting.

        Parameters
        ----------
        omega : float
            Query frequency.

        Returns
        -------
        u_ : (r,) ndarray
            Reduced (complex) coordinates.
        """
        Ar, rhs = self._assemble(omega)
        return la.lu_solve(la.lu_factor(Ar), rhs)

    def solve(self, omega: float) -> np.ndarray:
        r"""Approximate the full-order solution at ``omega``,
        :math:`\u(\omega) \approx \V\hat{\u}(\omega)`.

        Parameters
        ----------
        omega : float
            Query frequency.

        Returns
        -------
        u : (n,) ndarray
            Local rows of the complex full-order approximation.
        """
        return self.__basis.decompress(self.solve_reduced(omega))

    # Sampling ----------------------------------------------------------------
    @utils.requires_nonempty(
        "dim_Q",
        "error estimate requires at least one snapshot",
    )
    def find_max_error(self, start: float, step: float, count: int) -> float:
        """Frequency of maximum estimated reduced-order error on the grid
        ``start + k * step``, ``k = 0, ..., count - 1``.

        See :meth:`promsweep.estimate.MRIErrorEstimator.find_max_error`.
        """
        return self.__estimator.find_max_error(start, step, count)

    # Resonances --------------------------------------------------------------
    @utils.requires_nonempty(
        "dim_V",
        "eigenvalue estimates require a nonempty reduced basis",
    )
    def compute_eigenvalue_estimates(
        self,
        omega: float,
        num_eig: int = None,
        method: str = "mslp",
        tol: float = NEP_TOL,
        maxiter: int = NEP_MAXITER,
        rng=None,
    ):
        r"""Estimate resonances of the reduced model near ``omega``.

        Solves :math:`\T(\lambda)\x = \0` for the
        :class:`ReducedNonlinearOperator` with initial guess
        :math:`\sigma = i\omega`, deflating each eigenpair once found.

        Parameters
        ----------
        omega : float
            Target frequency.
        num_eig : int or None
            Number of eigenpairs; defaults to the reduced basis dimension.
        method : str
            Inner solver, ``"mslp"`` (default) or ``"rii"``.
        tol : float
            Convergence tolerance for each pair.
        maxiter : int
            Iteration cap for each pair.
        rng : numpy.random.Generator, int, or None
            Source of the random initial eigenvectors.

        Returns
        -------
        :class:`promsweep.nep.NEPResult`
            Eigenvalues :math:`\lambda_k` (frequencies
            :math:`\omega_k = \lambda_k / i`) and reduced eigenvectors.
        """
        if num_eig is None:
            num_eig = self.dim_V
        operator = ReducedNonlinearOperator(self)
        with utils.TimedBlock(
            f"computing {num_eig} eigenvalue estimates near omega = {omega:e}"
        ):
            return solve_nep(
                operator,
                num_eig,
                1j * omega,
                method=method,
                tol=tol,
                maxiter=maxiter,
                rng=rng,
            )

    # Model persistence -------------------------------------------------------
    def save(self, savefile, overwrite: bool = False):
        """Save the bases, sample points, and reduced operators in HDF5
        format. The model can later be loaded with :meth:`load`.

        Parameters
        ----------
        savefile : str
            File to save to, with extension ``.h5`` (HDF5).
        overwrite : bool
            If ``True`` and the specified ``savefile`` already exists,
            overwrite the file. If ``False`` (default) and the specified
            ``savefile`` already exists, raise an error.
        """
        with utils.hdf5_savehandle(savefile, overwrite=overwrite) as hf:
            meta = hf.create_dataset("meta", shape=(0,))
            meta.attrs["max_size"] = self.max_size
            meta.attrs["orthog_type"] = self.orthog_type
            meta.attrs["full_state_dimension"] = (
                self.__basis.full_state_dimension
            )

            hf.create_dataset("V", data=self.__basis.entries)
            hf.create_dataset("Q", data=self.__snapshots.entries)
            hf.create_dataset("R", data=self.__snapshots.factor)
            hf.create_dataset("sample_points", data=self.sample_points)

            hf.create_dataset("Kr", data=self.Kr)
            hf.create_dataset("Mr", data=self.Mr)
            if self.Cr is not None:
                hf.create_dataset("Cr", data=self.Cr)
            if self.RHS1r is not None:
                hf.create_dataset("RHS1r", data=self.RHS1r)

    @classmethod
    def load(cls, loadfile, hdm):
        """Load a reduced-order model from an HDF5 file created by
        :meth:`save`.

        Parameters
        ----------
        loadfile : str
            File to load from, which should end in ``.h5``.
        hdm : :class:`promsweep.operators.HDMOperatorTemplate`
            Full-order operators the model was built from.

        Returns
        -------
        prom : FrequencyPROM
            Reduced-order model, ready to be extended further.
        """
        with utils.hdf5_loadhandle(loadfile) as hf:
            meta = hf["meta"].attrs
            n = int(meta["full_state_dimension"])
            if n != hdm.full_state_dimension:
                raise errors.LoadfileFormatError(
                    f"saved full state dimension {n} does not match "
                    f"HDM dimension {hdm.full_state_dimension}"
                )
            prom = cls(hdm, int(meta["max_size"]), str(meta["orthog_type"]))

            prom.basis._set_entries(hf["V"][:])
            prom.snapshots._set_state(
                hf["Q"][:],
                hf["R"][:],
                hf["sample_points"][:],
            )
            prom.engine._set_state(
                hf["Kr"][:],
                hf["Cr"][:] if "Cr" in hf else None,
                hf["Mr"][:],
                hf["RHS1r"][:] if "RHS1r" in hf else None,
            )
        if prom.dim_Q:
            prom.estimator.fit(prom.sample_points, prom.snapshots.factor)
        return prom
