# errors.py
"""Custom exception and warning classes."""


class DimensionalityError(ValueError):  # pragma: no cover
    """Dimension of data not aligned with previous model information."""

    pass


class CapacityError(RuntimeError):  # pragma: no cover
    """Preallocated basis storage cannot hold another column."""

    pass


class EmptyModelError(RuntimeError):  # pragma: no cover
    """Query requires a reduced-order model with nonzero dimension."""

    pass


class EstimationError(RuntimeError):  # pragma: no cover
    """Error estimator could not locate a valid frequency."""

    pass


class LoadfileFormatError(Exception):  # pragma: no cover
    """File format inconsistent with a loading routine."""

    pass


class PROMWarning(UserWarning):  # pragma: no cover
    """Generic warning for package usage."""

    pass


class RankDeficiencyWarning(PROMWarning):  # pragma: no cover
    """Snapshot factor is numerically rank deficient."""

    pass


class ConvergenceWarning(PROMWarning):  # pragma: no cover
    """Iterative eigensolver hit its iteration cap."""

    pass
