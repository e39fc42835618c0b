# -*- coding: utf-8 -*-
"""
Collective execution contexts.

Every storage call made by the driver is collective: each member of the
team must issue it in the same order with consistent arguments. The
contexts here only describe the team (size, rank) and provide the
broadcast and barrier the storage adapter uses to keep members in
lockstep. They never detect divergence between members.
"""

import logging
logger = logging.getLogger(__name__)


IO_RANK = 0


class SerialContext(object):
    """A team of one: the calling process."""

    parallel = False
    comm = None

    @property
    def size(self):
        return 1

    @property
    def rank(self):
        return 0

    def bcast(self, obj, root=IO_RANK):
        return obj

    def barrier(self):
        pass

    def __repr__(self):
        return "SerialContext()"


class MPIContext(object):
    """
    Team backed by an MPI communicator (``MPI.COMM_WORLD`` by default).

    mpi4py is imported here rather than at module level so that serial
    runs never initialize MPI.
    """

    parallel = True

    def __init__(self, comm=None):
        from mpi4py import MPI
        self.MPI = MPI
        self.comm = comm if comm is not None else MPI.COMM_WORLD
        logger.debug(f"MPI team of {self.comm.Get_size()} tasks, this is rank {self.comm.Get_rank()}.")

    @property
    def size(self):
        return self.comm.Get_size()

    @property
    def rank(self):
        return self.comm.Get_rank()

    def bcast(self, obj, root=IO_RANK):
        return self.comm.bcast(obj, root=root)

    def barrier(self):
        self.comm.Barrier()

    def __repr__(self):
        return "MPIContext(size=%d, rank=%d)" % (self.size, self.rank)


def get_context(use_mpi=False):
    """
    Return the execution context for this run.

    Args:
        use_mpi (bool): run as a member of ``MPI.COMM_WORLD`` (requires mpi4py)

    Return:
        SerialContext or MPIContext
    """
    if use_mpi:
        return MPIContext()
    return SerialContext()
