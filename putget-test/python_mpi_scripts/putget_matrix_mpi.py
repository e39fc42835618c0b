import os
import sys

from mpi4py import MPI

from putget.backend.netcdf_backend import available_flavors
from putget.collective import MPIContext
from putget.driver import run_matrix


def putget_matrix_mpi():
    context = MPIContext(MPI.COMM_WORLD)
    flavors = available_flavors(context)
    requested = os.environ.get("PUTGET_FLAVORS")
    if requested:
        flavors = [f for f in requested.split(",") if f in flavors]

    # every rank runs the same cells in the same order
    report = run_matrix(flavors=flavors, context=context, output_dir=".")

    statuses = context.comm.allgather(report.status)
    assert len(set(statuses)) == 1, statuses
    assert report.status == 0, report.first_failure()
    assert len(report) == 8 * len(flavors)
    if context.rank == 0:
        print(f"{context.size} tasks passed {len(report)} cells: {', '.join(flavors)}")


if __name__ == "__main__":
    putget_matrix_mpi()
    sys.exit(0)
