# utils/_repr.py
"""Canonical string representation for objects with a ``__str__()`` method."""

__all__ = [
    "str2repr",
]


def str2repr(obj) -> str:
    """Prefix the ``str()`` of an object with its class name and memory
    address, as in ``<FrequencyPROM object at 0x...>``.
    """
    header = f"<{type(obj).__name__} object at {hex(id(obj))}>"
    return "\n".join([header, str(obj)])
