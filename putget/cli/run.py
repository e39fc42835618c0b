"""The `run` subcommand executes the conformance matrix and reports the
first failing cell. The exit status is that cell's status, 0 when every
cell passed.
"""
import os
import sys
import argparse
from typing import Any, Union

import logging
logger = logging.getLogger(__name__)

from putget.backend.netcdf_backend import FLAVORS
from putget.collective import get_context
from putget.driver import run_matrix
from putget.error import TeamSizeError


def setup_parser(parser: argparse.ArgumentParser):
    """
    Configures the command line arguments.

    Parameters
    ----------
    parser : command line argument parser.

    """
    parser.description = "Run the put/get conformance matrix"

    parser.add_argument(
        "--flavor", "-f",
        action="append",
        choices=list(FLAVORS),
        help="flavor to test, may be repeated (default: $PUTGET_FLAVORS or every available flavor)"
    )
    parser.add_argument(
        "--output-dir", "-o",
        dest="output_dir",
        type=str,
        help="directory for test datasets (default: $PUTGET_OUTPUT_DIR or the current directory)"
    )
    parser.add_argument(
        "--csv", "-c",
        action="store_true",
        help="print cell results in CSV format"
    )
    parser.add_argument(
        "--summary", "-s",
        action="store_true",
        help="print a short run summary instead of the cell table"
    )
    parser.add_argument(
        "--fail-fast", "-x",
        dest="fail_fast",
        action="store_true",
        help="stop after the first failing cell"
    )
    parser.add_argument(
        "--keep-files",
        dest="keep_files",
        action="store_true",
        help="keep the datasets of passing cells"
    )
    parser.add_argument(
        "--mpi",
        action="store_true",
        help="run as a member of MPI_COMM_WORLD (requires mpi4py)"
    )
    parser.add_argument(
        "--min-tasks",
        dest="min_tasks",
        type=int,
        default=1,
        help="minimum number of tasks the run requires (default: %(default)s)"
    )


def resolve_flavors(args, environ=None):
    """Flavors from --flavor, then $PUTGET_FLAVORS, else None (all available)."""
    if environ is None:
        environ = os.environ
    if args.flavor:
        return args.flavor
    value = environ.get("PUTGET_FLAVORS", "").strip()
    if not value:
        return None
    flavors = [f.strip() for f in value.split(",") if f.strip()]
    for flavor in flavors:
        if flavor not in FLAVORS:
            raise ValueError(f"PUTGET_FLAVORS names unknown flavor {flavor!r}")
    return flavors


def resolve_output_dir(args, environ=None):
    if environ is None:
        environ = os.environ
    return args.output_dir or environ.get("PUTGET_OUTPUT_DIR") or None


def main(args: Union[Any, None] = None):
    """
    Runs the conformance matrix.

    Parameters
    ----------
    args: command line arguments.

    """
    if args is None:
        parser = argparse.ArgumentParser(description="")
        setup_parser(parser)
        args = parser.parse_args()

    context = get_context(args.mpi)
    try:
        report = run_matrix(flavors=resolve_flavors(args),
                            context=context,
                            output_dir=resolve_output_dir(args),
                            keep_files=args.keep_files,
                            fail_fast=args.fail_fast,
                            min_tasks=args.min_tasks)
    except TeamSizeError as e:
        if context.rank == 0:
            print(f"putget: {e}", file=sys.stderr)
        return e.code

    if context.rank == 0:
        if args.csv:
            print(report.to_csv(), end="")
        elif args.summary:
            report.info()
        else:
            report.rich_print()
        first = report.first_failure()
        if first is not None:
            print(f"putget: first failing cell: {first.error}", file=sys.stderr)
    return report.status


if __name__ == "__main__":
    sys.exit(main())
