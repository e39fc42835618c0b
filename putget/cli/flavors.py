"""The `flavors` subcommand lists the storage flavors and whether the
installed netCDF4 build can run them.
"""
import argparse
from typing import Any, Union

import netCDF4

from putget.backend.netcdf_backend import FLAVORS, flavor_support
from putget.collective import get_context


def setup_parser(parser: argparse.ArgumentParser):
    parser.description = "List storage flavors and their availability"

    parser.add_argument('--mpi', help='check availability for an MPI team', action='store_true')


def main(args: Union[Any, None] = None):
    if args is None:
        parser = argparse.ArgumentParser(description="")
        setup_parser(parser)
        args = parser.parse_args()

    context = get_context(args.mpi)

    print(f"netCDF4 {netCDF4.__version__} (netcdf-c {netCDF4.__netcdf4libversion__})")
    for name, flavor in FLAVORS.items():
        supported, reason = flavor_support(flavor, context)
        types = "extended" if flavor.extended_types else "baseline"
        line = f"  {name:10} {flavor.format:20} {types:9} "
        line += "available" if supported else f"unavailable ({reason})"
        print(line)
    return 0


if __name__ == "__main__":
    main()
