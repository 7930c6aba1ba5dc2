# nep/_solvers.py
"""Iterative solvers for nonlinear eigenvalue problems."""

__all__ = [
    "NEP_TOL",
    "NEP_MAXITER",
    "mslp",
    "rii",
    "solve_nep",
]

import logging
import warnings
import numpy as np
import scipy.linalg as la

from .. import errors, utils
from ._base import NEPResult
from ._deflation import DeflatedOperator


NEP_TOL = 1e-9
NEP_MAXITER = 100


def _random_unit_vector(n: int, rng) -> np.ndarray:
    x = rng.uniform(-1, 1, n) + 1j * rng.uniform(-1, 1, n)
    return x / la.norm(x)


def _warn_not_converged(method: str, maxiter: int, lam, res: float):
    warnings.warn(
        f"{method} did not converge in {maxiter} iterations "
        f"(lambda = {lam.real:.6e}{lam.imag:+.6e}i, residual = {res:.3e}), "
        "returning best estimate",
        errors.ConvergenceWarning,
    )


def mslp(
    operator,
    sigma: complex,
    tol: float = NEP_TOL,
    maxiter: int = NEP_MAXITER,
    rng=None,
) -> tuple:
    r"""Method of successive linear problems for :math:`\T(\lambda)\x = \0`.

    Starting from :math:`\lambda = \sigma` and a random unit vector, each
    iteration solves the linear generalized eigenvalue problem

    .. math::
       \T(\lambda)\v = \mu\T'(\lambda)\v,

    selects the finite :math:`\mu` of smallest modulus, and updates
    :math:`\lambda \leftarrow \lambda - \mu`, :math:`\x \leftarrow \v`.
    The iteration stops when the relative residual
    :math:`\|\T\x\| / (\|\T\|_F\|\x\|)` drops below ``tol`` or the correction
    satisfies :math:`|\mu| \le \text{tol}\,|\lambda|`.

    Parameters
    ----------
    operator : :class:`promsweep.nep.NonlinearOperatorTemplate`
        Nonlinear operator (possibly deflated).
    sigma : complex
        Initial eigenvalue guess.
    tol : float
        Convergence tolerance.
    maxiter : int
        Maximum number of outer iterations.
    rng : numpy.random.Generator, int, or None
        Source of the random initial eigenvector.

    Returns
    -------
    lam : complex
        Eigenvalue estimate.
    x : (n,) ndarray
        Unit eigenvector estimate.
    converged : bool
        ``False`` if the iteration cap was hit; the best iterate found is
        returned in that case and a
        :class:`promsweep.errors.ConvergenceWarning` is issued.
    iterations : int
        Number of outer iterations performed.
    residual : float
        Relative residual of the returned pair.
    """
    rng = np.random.default_rng(rng)
    lam = complex(sigma)
    x = _random_unit_vector(operator.size, rng)
    best = (np.inf, lam, x)

    for it in range(maxiter + 1):
        T, dT = operator.evaluate(lam, jacobian=True)
        res = operator.residual(lam, x, T)
        logging.debug(
            f"MSLP iteration {it:d}, lambda = {lam.real:e}{lam.imag:+e}i, "
            f"residual = {res:e}"
        )
        if res < best[0]:
            best = (res, lam, x)
        if res < tol:
            return lam, x, True, it, res
        if it == maxiter:
            break

        mu, vecs = la.eig(T, dT)
        finite = np.flatnonzero(np.isfinite(mu))
        if finite.size == 0:
            logging.warning(
                "MSLP linearization has no finite eigenvalues at "
                f"lambda = {lam.real:e}{lam.imag:+e}i"
            )
            break
        i = finite[np.argmin(np.abs(mu[finite]))]
        lam = lam - mu[i]
        x = vecs[:, i] / la.norm(vecs[:, i])

        if abs(mu[i]) <= tol * abs(lam):
            res = operator.residual(lam, x)
            return lam, x, True, it + 1, res

    res, lam, x = best
    _warn_not_converged("MSLP", maxiter, lam, res)
    return lam, x, False, maxiter, res


def rii(
    operator,
    sigma: complex,
    tol: float = NEP_TOL,
    maxiter: int = NEP_MAXITER,
    rng=None,
) -> tuple:
    r"""Residual inverse iteration for :math:`\T(\lambda)\x = \0`.

    The shift operator :math:`\T(\sigma)` is factored once. Each outer
    iteration first updates :math:`\lambda` by Newton steps on the Rayleigh
    functional :math:`\x\hrm\T(\sigma)^{-1}\T(\lambda)\x = 0`, then corrects
    the eigenvector by :math:`\x \leftarrow \x - \T(\sigma)^{-1}\T(\lambda)\x`.

    Parameters and return values are the same as for :func:`mslp`.
    """
    rng = np.random.default_rng(rng)
    lam = complex(sigma)
    T = operator.evaluate(lam, jacobian=False)[0]
    lu = la.lu_factor(T)
    x = la.lu_solve(lu, _random_unit_vector(operator.size, rng))
    x /= la.norm(x)
    best = (np.inf, lam, x)
    step_tol = np.sqrt(np.finfo(float).eps)

    for it in range(maxiter + 1):
        # Update the eigenvalue with the nonlinear Rayleigh functional.
        inner = 0
        for inner in range(maxiter):
            T, dT = operator.evaluate(lam, jacobian=True)
            num = np.vdot(x, la.lu_solve(lu, T @ x))
            den = np.vdot(x, la.lu_solve(lu, dT @ x))
            if den == 0:
                break
            mu = num / den
            if abs(mu) < step_tol * max(1.0, abs(lam)):
                break
            lam -= mu

        T = operator.evaluate(lam, jacobian=False)[0]
        r = T @ x
        res = operator.residual(lam, x, T)
        logging.debug(
            f"RII iteration {it:d} ({inner:d} inner), "
            f"lambda = {lam.real:e}{lam.imag:+e}i, residual = {res:e}"
        )
        if res < best[0]:
            best = (res, lam, x)
        if res < tol:
            return lam, x, True, it, res
        if it == maxiter:
            break

        x = x - la.lu_solve(lu, r)
        x /= la.norm(x)

    res, lam, x = best
    _warn_not_converged("RII", maxiter, lam, res)
    return lam, x, False, maxiter, res


_SOLVERS = {
    "mslp": mslp,
    "rii": rii,
}


def solve_nep(
    operator,
    num_eig: int,
    sigma: complex,
    method: str = "mslp",
    tol: float = NEP_TOL,
    maxiter: int = NEP_MAXITER,
    rng=None,
) -> NEPResult:
    r"""Compute several eigenpairs of :math:`\T(\lambda)\x = \0` near
    ``sigma``, deflating each pair once it is found.

    For :math:`k = 0, 1, \ldots`, the problem deflated by all previously
    computed pairs (see :class:`DeflatedOperator`) is solved from the
    initial guess ``sigma``, and the resulting eigenvector is mapped back to
    the original problem and normalized. Pairs that hit the iteration cap are
    still returned and deflated, flagged in ``NEPResult.converged``.

    Parameters
    ----------
    operator : :class:`promsweep.nep.NonlinearOperatorTemplate`
        Nonlinear operator.
    num_eig : int
        Number of eigenpairs to compute.
    sigma : complex
        Initial guess for every eigenvalue.
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
    :class:`NEPResult`
    """
    if (key := str(method).lower()) not in _SOLVERS:
        raise ValueError(
            f"invalid method '{method}', options are "
            f"{', '.join(_SOLVERS)}"
        )
    if (num_eig := int(num_eig)) < 1:
        raise ValueError("num_eig must be a positive integer")
    solver = _SOLVERS[key]
    rng = np.random.default_rng(rng)

    lambdas, vectors, converged, iterations, residuals = [], [], [], [], []
    for k in range(num_eig):
        deflated = DeflatedOperator(operator, lambdas, vectors)
        with utils.TimedBlock(f"eigenvalue {k + 1:d}/{num_eig:d}"):
            lam, y, conv, its, res = solver(
                deflated, sigma, tol=tol, maxiter=maxiter, rng=rng
            )
        x = deflated.undeflate(lam, y)
        logging.info(
            f"Eigenvalue {k + 1:d}/{num_eig:d}, "
            f"lambda = {lam.real:e}{lam.imag:+e}i"
        )
        lambdas.append(lam)
        vectors.append(x)
        converged.append(conv)
        iterations.append(its)
        residuals.append(res)

    X = np.column_stack(vectors)
    return NEPResult(lambdas, X, converged, iterations, residuals)
