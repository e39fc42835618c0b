# -*- coding: utf-8 -*-
"""
The four access patterns the conformance matrix writes and reads with:
whole variable, single element, rectangular region and strided region.

Writers and readers work on one kind at a time and are looked up from
tables keyed by AccessPattern, then iterated over the kinds the dataset
exercises. Storage failures surface as IoError with the storage code
unchanged; values that read back differently raise DataMismatch.
"""

import enum
from collections import namedtuple

import numpy as np

import logging
logger = logging.getLogger(__name__)


from putget.error import DataMismatch, PutGetBaseError
from putget.fixtures import X_DIM_LEN, Y_DIM_LEN
from putget.schema import NDIM, NUM_TIMESTEPS


class AccessPattern(enum.IntEnum):
    WHOLE = 0
    SINGLE = 1
    REGION = 2
    STRIDED = 3

    def __str__(self):
        return self.name.lower()


AccessDescriptor = namedtuple("AccessDescriptor", ["index", "start", "count", "stride"])


def default_access():
    """
    Descriptors used by every matrix cell: the origin for single
    elements, and one full timestep of the 40x40 extent with unit
    strides for regions.
    """
    return AccessDescriptor(index=(0,) * NDIM,
                            start=(0,) * NDIM,
                            count=(NUM_TIMESTEPS, X_DIM_LEN, Y_DIM_LEN),
                            stride=(1,) * NDIM)


#
# writers
#

def write_whole(storage, schema, fixtures, kind, access):
    storage.write_whole(schema.handle, schema.varid(kind), fixtures.array(kind))


def write_single(storage, schema, fixtures, kind, access):
    storage.write_one(schema.handle, schema.varid(kind), access.index, fixtures.scalar(kind))


def write_region(storage, schema, fixtures, kind, access):
    storage.write_region(schema.handle, schema.varid(kind), access.start, access.count,
                         fixtures.block(kind, access.count))


def write_strided(storage, schema, fixtures, kind, access):
    storage.write_strided(schema.handle, schema.varid(kind), access.start, access.count,
                          access.stride, fixtures.block(kind, access.count))


#
# readers, each returns the number of bytes compared
#

def _compare(kind, expected, actual):
    if not kind.equal(expected, actual):
        raise DataMismatch(kind, expected, actual)
    return int(np.asarray(expected).nbytes)


def read_whole(storage, schema, fixtures, kind, access):
    """
    Read the whole variable. With an unlimited timestep dimension the
    whole-variable writer has nothing to write into, so the variable
    must read back empty along that dimension.
    """
    data = storage.read_whole(schema.handle, schema.varid(kind))
    if schema.unlimited:
        if data.ndim != NDIM or data.shape[0] != 0:
            raise DataMismatch(kind, (0, X_DIM_LEN, Y_DIM_LEN), data.shape,
                               msg="expected an empty unlimited dimension, read shape %s" % (data.shape,))
        return 0
    expected = fixtures.block(kind, (NUM_TIMESTEPS, X_DIM_LEN, Y_DIM_LEN))
    return _compare(kind, expected, data)


def read_single(storage, schema, fixtures, kind, access):
    data = storage.read_one(schema.handle, schema.varid(kind), access.index)
    return _compare(kind, fixtures.scalar(kind), data)


def read_region(storage, schema, fixtures, kind, access):
    data = storage.read_region(schema.handle, schema.varid(kind), access.start, access.count)
    return _compare(kind, fixtures.block(kind, access.count), data)


def read_strided(storage, schema, fixtures, kind, access):
    data = storage.read_strided(schema.handle, schema.varid(kind), access.start, access.count,
                                access.stride)
    return _compare(kind, fixtures.block(kind, access.count), data)


_writers = {
    AccessPattern.WHOLE: write_whole,
    AccessPattern.SINGLE: write_single,
    AccessPattern.REGION: write_region,
    AccessPattern.STRIDED: write_strided,
}

_readers = {
    AccessPattern.WHOLE: read_whole,
    AccessPattern.SINGLE: read_single,
    AccessPattern.REGION: read_region,
    AccessPattern.STRIDED: read_strided,
}


def write(pattern, storage, schema, fixtures, access=None):
    """
    Write the fixture of every exercised kind with ``pattern``.

    The first failing kind aborts the pattern; the error is labelled with
    that kind and re-raised.
    """
    pattern = AccessPattern(pattern)
    if access is None:
        access = default_access()
    writer = _writers[pattern]
    for kind in schema.kinds:
        try:
            writer(storage, schema, fixtures, kind, access)
        except PutGetBaseError as e:
            raise e.label(kind=kind)


def verify(pattern, storage, schema, fixtures, access=None, phase=None):
    """
    Read every exercised kind back with ``pattern`` and compare it with
    its fixture.

    Args:
        phase (str): label attached to a raised error (``same-handle`` or
            ``fresh-handle``)

    Return:
        nbytes (int): number of bytes compared
    """
    pattern = AccessPattern(pattern)
    if access is None:
        access = default_access()
    reader = _readers[pattern]
    nbytes = 0
    for kind in schema.kinds:
        try:
            nbytes += reader(storage, schema, fixtures, kind, access)
        except PutGetBaseError as e:
            raise e.label(kind=kind, phase=phase)
        logger.debug(f"{pattern!s} {kind.name} verified ({phase})")
    return nbytes
