# utils/_comm.py
"""Global sum-reduction over the processes that share a distributed vector.

The basis and projection routines never call a parallel library directly.
They receive a communicator object and call :meth:`allreduce` on contiguous
buffers of local inner products, so the same code runs serially, under MPI,
or with in-process simulated ranks.
"""

__all__ = [
    "CommunicatorTemplate",
    "SerialCommunicator",
    "MPICommunicator",
    "ThreadCommunicator",
]

import abc
import threading
import numpy as np


class CommunicatorTemplate(abc.ABC):
    """Template for global sum-reductions.

    Classes that inherit from this template must implement
    :meth:`allreduce` and the :attr:`rank` / :attr:`size` properties.
    """

    @property
    @abc.abstractmethod
    def rank(self) -> int:
        """Index of the calling process."""
        raise NotImplementedError  # pragma: no cover

    @property
    @abc.abstractmethod
    def size(self) -> int:
        """Number of participating processes."""
        raise NotImplementedError  # pragma: no cover

    @abc.abstractmethod
    def allreduce(self, buffer: np.ndarray) -> np.ndarray:
        """Sum ``buffer`` over all processes, in place.

        Parameters
        ----------
        buffer : ndarray
            Contiguous array of local contributions (real or complex).

        Returns
        -------
        buffer : ndarray
            The same array, now holding the global sum on every process.
        """
        raise NotImplementedError  # pragma: no cover

    def __str__(self):
        return f"{self.__class__.__name__} (rank {self.rank} of {self.size})"


class SerialCommunicator(CommunicatorTemplate):
    """Single-process communicator: every reduction is the identity."""

    @property
    def rank(self) -> int:
        return 0

    @property
    def size(self) -> int:
        return 1

    def allreduce(self, buffer: np.ndarray) -> np.ndarray:
        return buffer


class MPICommunicator(CommunicatorTemplate):
    """Sum-reductions through an :mod:`mpi4py` communicator.

    Parameters
    ----------
    comm : mpi4py.MPI.Comm or None
        Communicator to reduce over. Defaults to ``MPI.COMM_WORLD``.
        Objects with a ``tompi4py()`` method (petsc4py communicators)
        are converted first.
    """

    def __init__(self, comm=None):
        from mpi4py import MPI

        self._MPI = MPI
        if comm is None:
            comm = MPI.COMM_WORLD
        if hasattr(comm, "tompi4py"):
            comm = comm.tompi4py()
        self.comm = comm

    @property
    def rank(self) -> int:
        return self.comm.Get_rank()

    @property
    def size(self) -> int:
        return self.comm.Get_size()

    def allreduce(self, buffer: np.ndarray) -> np.ndarray:
        if not buffer.flags.c_contiguous:
            raise ValueError("allreduce() requires a contiguous buffer")
        self.comm.Allreduce(self._MPI.IN_PLACE, buffer, op=self._MPI.SUM)
        return buffer


class _ThreadRank(CommunicatorTemplate):
    """View of a :class:`ThreadCommunicator` from one simulated rank."""

    def __init__(self, group, rank: int):
        self.__group = group
        self.__rank = rank

    @property
    def rank(self) -> int:
        return self.__rank

    @property
    def size(self) -> int:
        return self.__group.size

    def allreduce(self, buffer: np.ndarray) -> np.ndarray:
        return self.__group._reduce(self.__rank, buffer)


class ThreadCommunicator:
    """Group of in-process simulated ranks, each running on its own thread.

    Every rank deposits its contribution, waits for the others, then sums
    all contributions in rank order, so each rank obtains a bit-identical
    result (the property a redundant reduced solve relies on).

    Parameters
    ----------
    size : int
        Number of simulated ranks.

    Examples
    --------
    >>> group = ThreadCommunicator(4)
    >>> def work(comm):
    ...     return comm.allreduce(np.array([comm.rank + 1.0]))[0]
    >>> group.run(work)
    [10.0, 10.0, 10.0, 10.0]
    """

    def __init__(self, size: int):
        if size < 1:
            raise ValueError("size must be a positive integer")
        self.size = int(size)
        self._barrier = threading.Barrier(self.size)
        self._slots = [None] * self.size

    def rank(self, r: int) -> CommunicatorTemplate:
        """Communicator seen by rank ``r``."""
        if not 0 <= r < self.size:
            raise ValueError(f"rank must be in [0, {self.size})")
        return _ThreadRank(self, r)

    def _reduce(self, rank: int, buffer: np.ndarray) -> np.ndarray:
        self._slots[rank] = np.array(buffer, copy=True)
        self._barrier.wait()
        total = self._slots[0].copy()
        for contribution in self._slots[1:]:
            total += contribution
        # All ranks must finish reading before any slot is reused.
        self._barrier.wait()
        buffer[...] = total
        return buffer

    def run(self, func, *args, **kwargs) -> list:
        """Call ``func(comm, *args, **kwargs)`` on every rank concurrently.

        Returns
        -------
        results : list
            Return value of ``func`` on each rank, in rank order.
        """
        results = [None] * self.size
        failures = [None] * self.size

        def _target(r):
            try:
                results[r] = func(self.rank(r), *args, **kwargs)
            except BaseException as ex:
                failures[r] = ex
                self._barrier.abort()

        threads = [
            threading.Thread(target=_target, args=(r,))
            for r in range(self.size)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self._barrier.reset()
        for ex in failures:
            if ex is not None and not isinstance(
                ex, threading.BrokenBarrierError
            ):
                raise ex
        for ex in failures:
            if ex is not None:
                raise ex
        return results
