# utils/_timer.py
"""Context manager for timing and logging blocks of code."""

__all__ = [
    "TimedBlock",
]

import os
import time
import logging


class TimedBlock:
    r"""Context manager for timing a block of code and reporting the timing.

    Every block is logged (level ``INFO``) to the root logger. Messages are
    also printed to the screen if :attr:`TimedBlock.verbose` is ``True``.

    Parameters
    ----------
    message : str
        Message to log / print.

    Examples
    --------
    >>> import promsweep
    >>> with promsweep.utils.TimedBlock("Projecting operators"):
    ...     # Code to be timed
    ...     prom.extend(u, omega)
    Projecting operators...done in 0.02 s.

    Set up a logfile to record messages to.

    >>> promsweep.utils.TimedBlock.add_logfile("sweep.log")
    Logging to '/path/to/current/folder/sweep.log'

    Turn off print statements (but keep logging).

    >>> promsweep.utils.TimedBlock.verbose = False

    Capture the time elapsed for later use.

    >>> with promsweep.utils.TimedBlock("how long?") as timer:
    ...     prom.solve(omega)
    >>> timer.elapsed
    0.0013
    """

    verbose = False
    formatter = logging.Formatter(
        fmt="%(asctime)s  %(levelname)s:\t%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    def __init__(self, message: str = "Running code block"):
        """Store print/log message."""
        self.message = message.rstrip()
        self.__elapsed = None

    @property
    def elapsed(self):
        """Actual time (in seconds) the block took to complete."""
        return self.__elapsed

    def __enter__(self):
        """Print the message and record the current time."""
        if self.verbose:
            print(f"{self.message}...", end="", flush=True)
        self._tic = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_value, exc_traceback):
        """Calculate and report the elapsed time."""
        elapsed = time.perf_counter() - self._tic
        self.__elapsed = elapsed
        if exc_type:
            if self.verbose:
                print(f"{exc_type.__name__}: {exc_value}", flush=True)
            logging.error(
                f"{self.message}...({exc_type.__name__}) {exc_value} "
                f"(raised after {elapsed:.6f} s)"
            )
            return False
        if self.verbose:
            print(f"done in {elapsed:.2f} s.", flush=True)
        logging.info(f"{self.message}...done in {elapsed:.6f} s.")
        return False

    @classmethod
    def add_logfile(cls, logfile: str = "promsweep.log") -> None:
        """Instruct :class:`TimedBlock` to log messages to the ``logfile``.

        Parameters
        ----------
        logfile : str
            File to log to.
        """
        logger = logging.getLogger()
        logpath = os.path.abspath(logfile)

        # Check that we aren't already logging to this file.
        for handler in logger.handlers:
            if (
                isinstance(handler, logging.FileHandler)
                and os.path.abspath(handler.baseFilename) == logpath
            ):
                if cls.verbose:
                    print(f"Already logging to {logpath}")
                return

        newhandler = logging.FileHandler(logpath, "a")
        newhandler.setFormatter(cls.formatter)
        newhandler.setLevel(logging.INFO)
        logger.setLevel(logging.INFO)
        logger.addHandler(newhandler)
        if cls.verbose:
            print(f"Logging to '{logpath}'")
