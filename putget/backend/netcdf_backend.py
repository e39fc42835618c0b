# -*- coding: utf-8 -*-
"""The netcdf_backend module adapts the netCDF4 library to the storage
service interface the conformance matrix drives: create/open/close,
dimension and variable definition, the four access patterns for writing
and reading, and sync.

Every call here is collective. For serial flavors only the I/O rank
touches the file; the outcome (data or error) is broadcast so that each
team member returns or raises identically. Parallel flavors hand the
team communicator to netCDF4 and switch variables to collective access.
"""

import os
from collections import namedtuple, OrderedDict

import numpy as np
import netCDF4

import logging
logger = logging.getLogger(__name__)


from putget.collective import IO_RANK
from putget.error import IoError, UNKNOWN_STORAGE_CODE
from putget.kinds import ElementKind, kind_from_type_tag


FILE_EXTENSION = ".nc"

UNLIMITED = None

NC_NOERR = 0
NC_EBADID = -33
NC_ENOTINDEFINE = -38
NC_EINDEFINE = -39

# netCDF status codes recognized in library error messages
_nc_strerror = [
    ("Not a valid ID", NC_EBADID),
    ("Write to read only", -37),
    ("Operation not allowed in data mode", NC_ENOTINDEFINE),
    ("Operation not allowed in define mode", NC_EINDEFINE),
    ("Index exceeds dimension bound", -40),
    ("String match to name in use", -42),
    ("Not a valid data type", -45),
    ("Invalid dimension ID or name", -46),
    ("NC_UNLIMITED in the wrong index", -47),
    ("Variable not found", -49),
    ("Unknown file format", -51),
    ("Start+count exceeds dimension bound", -57),
    ("Illegal stride", -58),
    ("Numeric conversion not representable", -60),
    ("HDF error", -101),
    ("Attempting netcdf-4 operation on strict nc3 netcdf-4 file", -112),
]

# exceptions the netCDF4 library raises for failed storage calls
_storage_errors = (RuntimeError, OSError, ValueError, IndexError)


Flavor = namedtuple("Flavor", ["name", "iotype", "format", "parallel", "extended_types"])

FLAVORS = OrderedDict([
    ("pnetcdf",  Flavor("pnetcdf",  1, "NETCDF3_64BIT_DATA", True,  False)),
    ("netcdf",   Flavor("netcdf",   2, "NETCDF3_CLASSIC",    False, False)),
    ("netcdf4c", Flavor("netcdf4c", 3, "NETCDF4",            False, True)),
    ("netcdf4p", Flavor("netcdf4p", 4, "NETCDF4",            True,  True)),
])


def get_flavor(name):
    """Look up a flavor by name (``netcdf``, ``netcdf4c``, ...)."""
    if isinstance(name, Flavor):
        return name
    try:
        return FLAVORS[name]
    except KeyError:
        raise ValueError(f"Unknown flavor {name!r}, expected one of {', '.join(FLAVORS)}") from None


def flavor_support(flavor, context=None):
    """
    Check whether the installed netCDF4 build can run ``flavor``.

    Return:
        (bool, str) availability and a short reason when unavailable
    """
    flavor = get_flavor(flavor)
    if flavor.format == "NETCDF3_64BIT_DATA" and not getattr(netCDF4, "__has_cdf5_format__", False):
        return False, "netCDF4 built without CDF-5 support"
    if flavor.parallel:
        if context is None or not context.parallel:
            return False, "requires an MPI team (--mpi)"
        if flavor.format == "NETCDF4" and not getattr(netCDF4, "__has_parallel4_support__", False):
            return False, "netCDF4 built without parallel HDF5 support"
        if flavor.format != "NETCDF4" and not getattr(netCDF4, "__has_pnetcdf_support__", False):
            return False, "netCDF4 built without PnetCDF support"
    return True, ""


def available_flavors(context=None):
    """Names of the flavors the installed storage library supports."""
    return [name for name in FLAVORS if flavor_support(name, context)[0]]


def storage_code(exc):
    """Best effort netCDF status code for an exception raised by netCDF4."""
    errno = getattr(exc, "errno", None)
    if isinstance(errno, int) and errno != 0:
        return errno
    msg = str(exc)
    for text, code in _nc_strerror:
        if text in msg:
            return code
    return UNKNOWN_STORAGE_CODE


class DatasetHandle(object):
    """
    An open dataset as seen by one team member.

    ``dataset`` is the netCDF4.Dataset on members that touch the file and
    None on the other members of a serial flavor. Dimension and variable
    ids are positions in ``dimensions`` and ``variables``.
    """

    def __init__(self, path, flavor, mode, dataset=None):
        self.path = path
        self.flavor = flavor
        self.mode = mode
        self.dataset = dataset
        self.dimensions = []
        self.variables = []
        self.defining = mode == "w"
        self.closed = False

    def __repr__(self):
        state = "closed" if self.closed else ("define" if self.defining else "data")
        return f"DatasetHandle({self.path!r}, flavor={self.flavor.name}, mode={self.mode}, {state})"


class StorageService(object):
    """
    netCDF4-backed storage service.

    Args:
        context: collective execution context (SerialContext or MPIContext)

    All members of ``context`` must call the same methods in the same
    order with consistent arguments.
    """

    def __init__(self, context):
        self.context = context

    #
    # lockstep helpers
    #

    def _collective(self, flavor, operation, func):
        if flavor.parallel or self.context.size == 1:
            try:
                return func()
            except _storage_errors as e:
                raise IoError(operation, str(e), code=storage_code(e)) from e

        outcome = None
        if self.context.rank == IO_RANK:
            try:
                outcome = (NC_NOERR, func())
            except _storage_errors as e:
                logger.debug(f"{operation} failed on I/O rank: {e!r}")
                outcome = (storage_code(e), str(e))
        code, payload = self.context.bcast(outcome, root=IO_RANK)
        if code != NC_NOERR:
            raise IoError(operation, payload, code=code)
        return payload

    def _check_open(self, handle, operation):
        if handle.closed:
            raise IoError(operation, "NetCDF: Not a valid ID", code=NC_EBADID)

    def _check_data_mode(self, handle, operation):
        self._check_open(handle, operation)
        if handle.defining:
            raise IoError(operation, "NetCDF: Operation not allowed in define mode", code=NC_EINDEFINE)

    def _variable(self, handle, varid):
        # raised inside the I/O rank call, so it must be a library-style error
        if not 0 <= varid < len(handle.variables):
            raise IndexError(f"NetCDF: Variable not found (varid {varid})")
        return handle.dataset.variables[handle.variables[varid]]

    def _dataset_kwargs(self, flavor):
        kwargs = {}
        if flavor.parallel:
            kwargs["parallel"] = True
            kwargs["comm"] = self.context.comm
            kwargs["info"] = self.context.MPI.Info()
        return kwargs

    #
    # file level
    #

    def create(self, flavor, path):
        """Create (clobber) a dataset in define mode."""
        flavor = get_flavor(flavor)
        supported, reason = flavor_support(flavor, self.context)
        if not supported:
            raise IoError("create", f"flavor {flavor.name} unavailable: {reason}")
        logger.debug(f"create {path} format={flavor.format} parallel={flavor.parallel}")

        created = {}

        def func():
            ds = netCDF4.Dataset(path, mode="w", clobber=True, format=flavor.format,
                                 **self._dataset_kwargs(flavor))
            ds.set_auto_mask(False)
            created["dataset"] = ds

        self._collective(flavor, "create", func)
        return DatasetHandle(path, flavor, "w", created.get("dataset"))

    def open(self, flavor, path, mode="r"):
        """Open an existing dataset; ``mode`` is ``r`` (no write) or ``a``."""
        flavor = get_flavor(flavor)
        logger.debug(f"open {path} mode={mode} flavor={flavor.name}")
        opened = {}

        def func():
            ds = netCDF4.Dataset(path, mode=mode, **self._dataset_kwargs(flavor))
            ds.set_auto_mask(False)
            opened["dataset"] = ds
            return list(ds.dimensions), list(ds.variables)

        dimensions, variables = self._collective(flavor, "open", func)
        handle = DatasetHandle(path, flavor, mode, opened.get("dataset"))
        handle.dimensions = dimensions
        handle.variables = variables
        handle.defining = False
        if flavor.parallel:
            for name in variables:
                handle.dataset.variables[name].set_collective(True)
        return handle

    def sync(self, handle):
        self._check_data_mode(handle, "sync")
        logger.debug(f"sync {handle.path}")
        self._collective(handle.flavor, "sync", lambda: handle.dataset.sync())

    def close(self, handle):
        self._check_open(handle, "close")
        logger.debug(f"close {handle.path}")
        try:
            self._collective(handle.flavor, "close", lambda: handle.dataset.close())
        finally:
            handle.closed = True
            handle.dataset = None

    def remove(self, path):
        """Delete a dataset file; only the I/O rank removes it."""
        if self.context.rank == IO_RANK and os.path.exists(path):
            os.remove(path)
        self.context.barrier()

    #
    # definitions
    #

    def define_dimension(self, handle, name, length):
        """Define a dimension; ``length`` None (UNLIMITED) makes it unbounded."""
        self._check_open(handle, "define_dimension")
        if not handle.defining:
            raise IoError("define_dimension", "NetCDF: Operation not allowed in data mode",
                          code=NC_ENOTINDEFINE)

        def func():
            handle.dataset.createDimension(name, length)

        self._collective(handle.flavor, "define_dimension", func)
        handle.dimensions.append(name)
        return len(handle.dimensions) - 1

    def define_variable(self, handle, name, type_tag, dimids):
        """Define a variable of storage type ``type_tag`` over ``dimids``."""
        self._check_open(handle, "define_variable")
        if not handle.defining:
            raise IoError("define_variable", "NetCDF: Operation not allowed in data mode",
                          code=NC_ENOTINDEFINE)
        try:
            kind = kind_from_type_tag(type_tag)
        except KeyError:
            raise IoError("define_variable", "NetCDF: Not a valid data type", code=-45) from None
        try:
            dimnames = tuple(handle.dimensions[d] for d in dimids)
        except IndexError:
            raise IoError("define_variable", "NetCDF: Invalid dimension ID or name", code=-46) from None

        def func():
            var = handle.dataset.createVariable(name, _storage_datatype(kind), dimnames)
            if handle.flavor.parallel:
                var.set_collective(True)

        self._collective(handle.flavor, "define_variable", func)
        handle.variables.append(name)
        return len(handle.variables) - 1

    def end_definition(self, handle):
        """
        Leave define mode. netCDF4 switches modes implicitly around each
        definition, so this only closes the definition phase of the handle.
        """
        self._check_open(handle, "end_definition")
        if not handle.defining:
            raise IoError("end_definition", "NetCDF: Operation not allowed in data mode",
                          code=NC_ENOTINDEFINE)
        handle.defining = False

    #
    # data access
    #

    def _write(self, handle, varid, operation, key_func, data):
        self._check_data_mode(handle, operation)

        def func():
            var = self._variable(handle, varid)
            key = key_func(var)
            if key is None:
                return
            if callable(data):
                var[key] = np.array(data(var))
            else:
                var[key] = np.array(data)

        self._collective(handle.flavor, operation, func)

    def _read(self, handle, varid, operation, key_func):
        self._check_data_mode(handle, operation)

        def func():
            var = self._variable(handle, varid)
            values = np.asarray(var[key_func(var)])
            if not values.dtype.isnative:
                values = values.astype(values.dtype.newbyteorder("="))
            return values

        return self._collective(handle.flavor, operation, func)

    def write_whole(self, handle, varid, data):
        """Write the variable's current extent; nothing when it has no elements."""
        logger.debug(f"write_whole varid={varid}")

        def key(var):
            if 0 in var.shape:
                return None
            return slice(None)

        self._write(handle, varid, "write_whole", key,
                    lambda var: np.broadcast_to(data, var.shape))

    def write_one(self, handle, varid, index, value):
        logger.debug(f"write_one varid={varid} index={tuple(index)}")
        self._write(handle, varid, "write_one", lambda var: _index_key(index), value)

    def write_region(self, handle, varid, start, count, data):
        logger.debug(f"write_region varid={varid} start={tuple(start)} count={tuple(count)}")
        self._write(handle, varid, "write_region", lambda var: _region_key(var, start, count, grow=True), data)

    def write_strided(self, handle, varid, start, count, stride, data):
        logger.debug(f"write_strided varid={varid} start={tuple(start)} count={tuple(count)} stride={tuple(stride)}")
        self._write(handle, varid, "write_strided",
                    lambda var: _region_key(var, start, count, stride, grow=True), data)

    def read_whole(self, handle, varid):
        logger.debug(f"read_whole varid={varid}")
        return self._read(handle, varid, "read_whole", lambda var: slice(None))

    def read_one(self, handle, varid, index):
        logger.debug(f"read_one varid={varid} index={tuple(index)}")
        return self._read(handle, varid, "read_one", lambda var: _index_key(index))

    def read_region(self, handle, varid, start, count):
        logger.debug(f"read_region varid={varid} start={tuple(start)} count={tuple(count)}")
        return self._read(handle, varid, "read_region", lambda var: _region_key(var, start, count))

    def read_strided(self, handle, varid, start, count, stride):
        logger.debug(f"read_strided varid={varid} start={tuple(start)} count={tuple(count)} stride={tuple(stride)}")
        return self._read(handle, varid, "read_strided",
                          lambda var: _region_key(var, start, count, stride))

    def dimension_length(self, handle, dimid):
        """Current length of a dimension (grows for unlimited dimensions)."""
        self._check_open(handle, "dimension_length")

        def func():
            return len(handle.dataset.dimensions[handle.dimensions[dimid]])

        return self._collective(handle.flavor, "dimension_length", func)


def _storage_datatype(kind):
    if kind is ElementKind.STRING:
        return str
    return kind.dtype


def _index_key(index):
    return tuple(int(i) for i in index)


def _region_key(var, start, count, stride=None, grow=False):
    """
    Slice key for a start/count/stride region of ``var``.

    netCDF4 clips slices that run past a dimension, so the bounds are
    checked here. Writes (``grow=True``) may extend unlimited dimensions.
    """
    if stride is None:
        stride = (1,) * len(start)
    key = []
    for dim, length, s, c, st in zip(var.get_dims(), var.shape, start, count, stride):
        s, c, st = int(s), int(c), int(st)
        if c < 0 or st < 1:
            raise ValueError("NetCDF: Illegal stride")
        end = s + (c - 1) * st + 1 if c else s
        if end > length and not (grow and dim.isunlimited()):
            raise IndexError("NetCDF: Start+count exceeds dimension bound")
        key.append(slice(s, end, st))
    return tuple(key)
