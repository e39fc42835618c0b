"""
Defines the three dimensional test dataset: dimensions {timestep, x, y}
and one variable per element kind the flavor supports.
"""

import os
from collections import OrderedDict

import logging
logger = logging.getLogger(__name__)


from putget.backend.netcdf_backend import FILE_EXTENSION, UNLIMITED, get_flavor
from putget.error import IoError, SchemaError, UnsupportedKindError
from putget.fixtures import X_DIM_LEN, Y_DIM_LEN
from putget.kinds import defined_kinds


TEST_NAME = "test_pioc_putget"
VAR_NAME = "foo"

NDIM = 3
DIM_NAMES = ("timestep", "x", "y")
NUM_TIMESTEPS = 1


def putget_filename(access, unlimited, flavor, test_name=TEST_NAME, output_dir=None):
    """
    Deterministic dataset filename for a matrix cell.

    Args:
        access (int): access pattern number (0 whole ... 3 strided)
        unlimited (bool): whether the timestep dimension is unlimited
        flavor (str or Flavor): storage flavor
        test_name (str): prefix shared by all files of one test
        output_dir (str): directory to place the file in (default: cwd)

    Return:
        filename (str)
    """
    flavor = get_flavor(flavor)
    filename = "%s_putget_access_%d_unlim_%d_%s%s" % (
        test_name, int(access), int(bool(unlimited)), flavor.name, FILE_EXTENSION)
    if output_dir:
        filename = os.path.join(output_dir, filename)
    return filename


def variable_name(kind):
    return "%s_%d" % (VAR_NAME, kind.type_tag)


def dimension_lengths(unlimited):
    """Dimension lengths in definition order; None marks an unlimited dimension."""
    return (UNLIMITED if unlimited else NUM_TIMESTEPS, X_DIM_LEN, Y_DIM_LEN)


class DatasetSchema(object):
    """
    Identifiers of an open test dataset.

    Dimension and variable ids are assigned at definition time and stay
    valid for a reopened handle of the same file.
    """

    def __init__(self, handle, flavor, unlimited, path, dimids, varids):
        self.handle = handle
        self.flavor = flavor
        self.unlimited = unlimited
        self.path = path
        self.dimids = tuple(dimids)
        self.varids = OrderedDict(varids)

    def __repr__(self):
        return "DatasetSchema(%r, flavor=%s, unlimited=%s, nvars=%d)" % (
            self.path, self.flavor.name, self.unlimited, len(self.varids))

    @property
    def kinds(self):
        """Kinds that are written and read back, in definition order."""
        return [k for k in self.varids if k.exercised]

    def varid(self, kind):
        try:
            return self.varids[kind]
        except KeyError:
            raise UnsupportedKindError(kind, self.flavor.name) from None

    def rebind(self, handle):
        """Same identifiers, bound to another handle of the same file."""
        return DatasetSchema(handle, self.flavor, self.unlimited, self.path,
                             self.dimids, self.varids)


def build(storage, flavor, unlimited, path):
    """
    Create a dataset at ``path`` and define its dimensions and variables.

    Args:
        storage: StorageService the calls are issued to
        flavor (str or Flavor): storage flavor
        unlimited (bool): declare the timestep dimension unlimited
        path (str): dataset filename

    Return:
        DatasetSchema for the new dataset, in data mode

    Raises:
        SchemaError: carrying the storage code when creating the dataset
        or defining a dimension or variable fails.
    """
    flavor = get_flavor(flavor)

    try:
        handle = storage.create(flavor, path)
    except IoError as e:
        raise SchemaError("creating %s failed: %s" % (path, e.msg), code=e.code) from e

    try:
        dimids = []
        for name, length in zip(DIM_NAMES, dimension_lengths(unlimited)):
            dimids.append(storage.define_dimension(handle, name, length))

        varids = OrderedDict()
        for kind in defined_kinds(flavor.extended_types):
            varids[kind] = storage.define_variable(handle, variable_name(kind), kind.type_tag, dimids)

        storage.end_definition(handle)
    except IoError as e:
        # the dataset is abandoned; a failing close must not hide the definition error
        try:
            storage.close(handle)
        except IoError:
            logger.debug(f"close after failed definition of {path} also failed")
        raise SchemaError("defining %s failed: %s" % (path, e.msg), code=e.code) from e

    logger.debug(f"defined {len(varids)} variables in {path}")
    return DatasetSchema(handle, flavor, unlimited, path, dimids, varids)


def reopen(storage, schema, mode="r"):
    """
    Reopen the dataset described by ``schema`` and check its variables
    kept their ids.

    Raises:
        IoError: when opening fails.
        SchemaError: when a variable is missing or moved.
    """
    handle = storage.open(schema.flavor, schema.path, mode=mode)
    for kind, varid in schema.varids.items():
        name = variable_name(kind)
        if varid >= len(handle.variables) or handle.variables[varid] != name:
            storage.close(handle)
            raise SchemaError("variable %s is not varid %d in reopened %s" % (name, varid, schema.path),
                              code=-49)
    return schema.rebind(handle)

