# utils/_hdf5.py
"""Utilities for HDF5 file interaction."""

__all__ = [
    "hdf5_savehandle",
    "hdf5_loadhandle",
]

import os
import h5py
import warnings

from .. import errors


class _hdf5_filehandle:
    """Get a handle to an open HDF5 file to read or write to.

    Parameters
    ----------
    filename : str or h5py File/Group handle
        * str : Name of the file to interact with.
        * h5py File/Group handle : handle to part of an already open HDF5 file.
    mode : str
        Type of interaction for the HDF5 file.
        * "save" : Open the file for writing only.
        * "load" : Open the file for reading only.
    overwrite : bool
        If True, overwrite the file if it already exists. If False,
        raise a FileExistsError if the file already exists.
        Only applies when ``mode = "save"``.
    """

    def __init__(self, filename, mode, overwrite=False):
        """Open the file handle."""
        if isinstance(filename, h5py.HLObject):
            self.file_handle = filename
            self.close_when_done = False
        elif mode == "save":
            if not filename.endswith(".h5"):
                warnings.warn(
                    "expected file with extension '.h5'",
                    errors.PROMWarning,
                )
            if os.path.isfile(filename) and not overwrite:
                raise FileExistsError(f"{filename} (overwrite=True to ignore)")
            self.file_handle = h5py.File(filename, "w")
            self.close_when_done = True
        elif mode == "load":
            if not os.path.isfile(filename):
                raise FileNotFoundError(filename)
            self.file_handle = h5py.File(filename, "r")
            self.close_when_done = True
        else:
            raise ValueError(f"invalid mode '{mode}'")

    def __enter__(self):
        """Return the handle to the open HDF5 file."""
        return self.file_handle

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Close the file if needed."""
        if self.close_when_done:
            self.file_handle.close()
        return False


class hdf5_savehandle(_hdf5_filehandle):
    """Get a handle to an open HDF5 file to write a reduced-order model to.

    Parameters
    ----------
    savefile : str or h5py File/Group handle
        Name of the file to save to, or a handle to part of an already open
        HDF5 file.
    overwrite : bool
        If ``True``, overwrite the file if it already exists.
        If ``False``, raise a ``FileExistsError`` if the file already exists.

    Examples
    --------
    >>> with hdf5_savehandle("prom.h5", overwrite=True) as hf:
    ...     hf.create_dataset("Kr", data=prom.Kr)
    """

    def __init__(self, savefile, overwrite):
        _hdf5_filehandle.__init__(self, savefile, "save", overwrite)


class hdf5_loadhandle(_hdf5_filehandle):
    """Get a handle to an open HDF5 file to read a reduced-order model from.

    Any exception raised while reading (a missing dataset, for example) is
    converted to a :class:`promsweep.errors.LoadfileFormatError`.

    Examples
    --------
    >>> with hdf5_loadhandle("prom.h5") as hf:
    ...    Kr = hf["Kr"][:]
    """

    def __init__(self, loadfile):
        _hdf5_filehandle.__init__(self, loadfile, "load")

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Close the file if needed. Raise a LoadfileFormatError if needed."""
        _hdf5_filehandle.__exit__(self, exc_type, exc_value, exc_traceback)
        if exc_type is None or issubclass(
            exc_type, errors.LoadfileFormatError
        ):
            return False
        raise errors.LoadfileFormatError(
            exc_value.args[0] if exc_value.args else str(exc_value)
        ) from exc_value
