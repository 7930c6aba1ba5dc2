# estimate/_mri.py
"""Minimal rational interpolation (MRI) error surrogate."""

__all__ = [
    "MRI_RANK_TOL",
    "compute_mri",
    "MRIErrorEstimator",
]

import warnings
import numpy as np
import scipy.linalg as la
import matplotlib.pyplot as plt

from .. import errors, utils


MRI_RANK_TOL = 1e-12


def compute_mri(R: np.ndarray) -> np.ndarray:
    r"""Coefficients of the minimal rational interpolant of the snapshots.

    With the snapshot matrix factored as :math:`\U = \Q\R`, the barycentric
    interpolant

    .. math::
       \u(z) \approx \frac{\sum_s \u_s q_s / (z - z_s)}
       {\sum_s q_s / (z - z_s)}

    minimizes :math:`\|\U\q\| = \|\R\q\|` over unit vectors :math:`\q`, so
    :math:`\q` is the right singular vector of :math:`\R` for the smallest
    singular value. Singular values below ``MRI_RANK_TOL`` times the largest
    one indicate linearly dependent snapshots; they are skipped with a
    :class:`promsweep.errors.RankDeficiencyWarning`.

    Parameters
    ----------
    R : (S, S) ndarray
        Upper-triangular snapshot factor.

    Returns
    -------
    q : (S,) ndarray
        Complex MRI coefficients.
    """
    R = np.asarray(R)
    if R.ndim != 2 or R.shape[0] != R.shape[1]:
        raise errors.DimensionalityError("snapshot factor must be square")
    if (S := R.shape[0]) == 0:
        raise ValueError("at least one snapshot required")

    _, sigma, Vh = la.svd(R)
    m = S - 1
    while m > 0 and sigma[m] < MRI_RANK_TOL * sigma[0]:
        warnings.warn(
            "minimal rational interpolation encountered rank-deficient "
            f"matrix: sigma[{m:d}] = {sigma[m]:.3e} "
            f"(sigma[0] = {sigma[0]:.3e})",
            errors.RankDeficiencyWarning,
        )
        m -= 1
    return Vh[m].conj()


class MRIErrorEstimator:
    r"""Error surrogate for a reduced-order frequency sweep.

    The denominator of the minimal rational interpolant,

    .. math::
       Q(z) = \sum_{s=1}^{S} \frac{q_s}{z - z_s},

    has a pole at every sampled frequency :math:`z_s` and is smallest where
    the sampled solutions constrain the interpolant least. The frequency
    minimizing :math:`|Q(z)|` over a scan is the estimated location of the
    largest reduced-order error, i.e., the next frequency to sample.

    Every process holds the same samples and coefficients, so the scan
    requires no communication.
    """

    def __init__(self):
        self.__z = None
        self.__q = None

    # Properties --------------------------------------------------------------
    @property
    def sample_points(self) -> np.ndarray:
        """Sampled frequencies :math:`z_s`."""
        return self.__z

    @property
    def coefficients(self) -> np.ndarray:
        r"""MRI coefficients :math:`q_s`."""
        return self.__q

    @property
    def num_samples(self) -> int:
        """Number of samples the surrogate was built from."""
        return 0 if self.__z is None else self.__z.size

    def __str__(self):
        out = [self.__class__.__name__]
        if self.num_samples:
            z = self.__z
            out.append(f"{self.num_samples} samples in [{z.min()}, {z.max()}]")
        else:
            out.append("no samples")
        return "\n  ".join(out)

    def __repr__(self):
        return utils.str2repr(self)

    # Main routines -----------------------------------------------------------
    def fit(self, sample_points, R):
        """Recompute the MRI coefficients from the snapshot factor.

        Parameters
        ----------
        sample_points : (S,) ndarray
            Sampled frequencies, aligned with the columns of ``R``.
        R : (S, S) ndarray
            Upper-triangular snapshot factor.

        Returns
        -------
        self
        """
        z = np.array(sample_points, dtype=float)
        if z.shape != (np.shape(R)[0],):
            raise errors.DimensionalityError(
                "sample points not aligned with snapshot factor"
            )
        self.__q = compute_mri(R)
        self.__z = z
        return self

    @utils.requires_nonempty(
        "num_samples",
        "error estimate requires at least one snapshot",
    )
    def evaluate(self, omega):
        r"""Evaluate :math:`Q(z)` at one or more frequencies.

        Frequencies that coincide with a sample point return ``inf``.

        Parameters
        ----------
        omega : float or (k,) ndarray
            Evaluation frequencies.

        Returns
        -------
        Q : complex or (k,) ndarray
        """
        scalar = np.ndim(omega) == 0
        omega = np.atleast_1d(np.asarray(omega, dtype=float))
        diff = omega[:, np.newaxis] - self.__z[np.newaxis, :]
        at_pole = np.any(diff == 0, axis=1)
        diff[at_pole] = 1
        Q = np.sum(self.__q / diff, axis=1)
        Q[at_pole] = np.inf
        return Q[0] if scalar else Q

    @utils.requires_nonempty(
        "num_samples",
        "error estimate requires at least one snapshot",
    )
    def find_max_error(self, start: float, step: float, count: int) -> float:
        """Scan ``count`` equally spaced frequencies and return the one with
        the smallest :math:`|Q|`, i.e., the largest estimated error.

        Parameters
        ----------
        start : float
            First frequency of the scan.
        step : float
            Spacing between frequencies; may be negative, in which case the
            scan is reversed to run upward from its lowest point.
        count : int
            Number of frequencies to scan.

        Returns
        -------
        omega_star : float
            Frequency of maximum estimated error (ties go to the lowest).
        """
        count = int(count)
        if count <= 0:
            raise ValueError("count must be a positive integer")
        if step < 0:
            start = start + (count - 1) * step
            step = -step
        omegas = start + step * np.arange(count)
        values = np.abs(self.evaluate(omegas))

        i = int(np.argmin(values))
        if not np.isfinite(values[i]) or omegas[i] <= 0:
            raise errors.EstimationError(
                "unable to find location for maximum error"
            )
        return float(omegas[i])

    # Visualization -----------------------------------------------------------
    @utils.requires_nonempty(
        "num_samples",
        "error estimate requires at least one snapshot",
    )
    def plot(
        self,
        start: float,
        stop: float,
        num: int = 500,
        ax=None,
        **kwargs,
    ):
        r"""Plot the error indicator :math:`1/|Q(z)|` over a frequency range,
        marking the sample points.

        Parameters
        ----------
        start, stop : float
            Frequency range to plot.
        num : int
            Number of evaluation points.
        ax : plt.Axes or None
            Matplotlib Axes to plot on.
            If ``None`` (default), a new figure is created.
        kwargs : dict
            Other keyword arguments to pass to ``ax.semilogy()``.

        Returns
        -------
        ax : plt.Axes
            Matplotlib Axes for the plot.
        """
        if ax is None:
            ax = plt.figure().add_subplot(111)
        omegas = np.linspace(start, stop, num)
        with np.errstate(divide="ignore"):
            indicator = 1 / np.abs(self.evaluate(omegas))
        ax.semilogy(omegas, indicator, **kwargs)
        for z in self.__z:
            if start <= z <= stop:
                ax.axvline(z, color="gray", linewidth=0.5)
        ax.set_xlim(start, stop)
        ax.set_xlabel(r"frequency $\omega$")
        ax.set_ylabel(r"error indicator $1/|Q(\omega)|$")
        return ax
