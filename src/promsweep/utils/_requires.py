# utils/_requires.py
"""Wrapper for methods that require a nonempty model."""

__all__ = [
    "requires_nonempty",
]

import functools

from .. import errors


def requires_nonempty(attr: str, message: str) -> callable:
    """Wrapper for methods that require a positive dimension attribute.

    Raises :class:`promsweep.errors.EmptyModelError` if ``self.<attr>`` is
    missing, ``None``, or zero.

    Parameters
    ----------
    attr : str
        Name of the integer attribute that must be positive.
    message : str
        Message in the error.
    """

    def _wrapper(func):
        @functools.wraps(func)
        def _decorator(self, *args, **kwargs):
            if not getattr(self, attr, None):
                raise errors.EmptyModelError(message)
            return func(self, *args, **kwargs)

        return _decorator

    return _wrapper
