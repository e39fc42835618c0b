# -*- coding: utf-8 -*-
"""
Registry of the scalar element kinds the storage API supports.

Each kind maps to its storage type tag (the netCDF external type
number), its in-memory numpy dtype, whether it belongs to the
extended type set, whether the conformance matrix exercises it, and the
comparator used to check values read back.
"""

import enum
from collections import namedtuple

import numpy as np


def _exact_equal(expected, actual):
    expected = np.asarray(expected)
    actual = np.asarray(actual)
    if expected.shape != actual.shape or expected.dtype != actual.dtype:
        return False
    return bool(np.array_equal(expected, actual))


def _bitwise_equal(expected, actual):
    # floats compare by bit pattern so -0.0 != 0.0 and NaN payloads count
    expected = np.ascontiguousarray(expected)
    actual = np.ascontiguousarray(actual)
    if expected.shape != actual.shape or expected.dtype != actual.dtype:
        return False
    return expected.tobytes() == actual.tobytes()


KindInfo = namedtuple("KindInfo", ["type_tag", "dtype", "extended", "exercised", "comparator"])


class ElementKind(enum.Enum):
    # member order is the variable definition order
    BYTE = "byte"
    CHAR = "char"
    SHORT = "short"
    INT = "int"
    FLOAT = "float"
    DOUBLE = "double"
    UBYTE = "ubyte"
    USHORT = "ushort"
    UINT = "uint"
    INT64 = "int64"
    UINT64 = "uint64"
    STRING = "string"

    @property
    def info(self):
        return _registry[self]

    @property
    def type_tag(self):
        return _registry[self].type_tag

    @property
    def dtype(self):
        return _registry[self].dtype

    @property
    def extended(self):
        return _registry[self].extended

    @property
    def exercised(self):
        return _registry[self].exercised

    def equal(self, expected, actual):
        """Compare a fixture against a value read back, without tolerance."""
        return _registry[self].comparator(expected, actual)


_registry = {
    ElementKind.BYTE:   KindInfo(1,  np.dtype("i1"), False, True,  _exact_equal),
    ElementKind.CHAR:   KindInfo(2,  np.dtype("S1"), False, False, _exact_equal),
    ElementKind.SHORT:  KindInfo(3,  np.dtype("i2"), False, True,  _exact_equal),
    ElementKind.INT:    KindInfo(4,  np.dtype("i4"), False, True,  _exact_equal),
    ElementKind.FLOAT:  KindInfo(5,  np.dtype("f4"), False, True,  _bitwise_equal),
    ElementKind.DOUBLE: KindInfo(6,  np.dtype("f8"), False, True,  _bitwise_equal),
    ElementKind.UBYTE:  KindInfo(7,  np.dtype("u1"), True,  True,  _exact_equal),
    ElementKind.USHORT: KindInfo(8,  np.dtype("u2"), True,  True,  _exact_equal),
    ElementKind.UINT:   KindInfo(9,  np.dtype("u4"), True,  True,  _exact_equal),
    ElementKind.INT64:  KindInfo(10, np.dtype("i8"), True,  True,  _exact_equal),
    ElementKind.UINT64: KindInfo(11, np.dtype("u8"), True,  True,  _exact_equal),
    ElementKind.STRING: KindInfo(12, np.dtype("O"),  True,  False, _exact_equal),
}

NUM_CLASSIC_TYPES = 6
NUM_NETCDF4_TYPES = 12


def defined_kinds(extended_types):
    """
    Return the kinds a dataset defines as variables, in definition order.

    Args:
        extended_types (bool): whether the flavor supports the extended types

    Return:
        list of ElementKind (6 baseline kinds or all 12)
    """
    return [k for k in ElementKind if extended_types or not k.extended]


def exercised_kinds(extended_types):
    """Return the defined kinds that are written and read back."""
    return [k for k in defined_kinds(extended_types) if k.exercised]


def kind_from_type_tag(type_tag):
    for kind, info in _registry.items():
        if info.type_tag == type_tag:
            return kind
    raise KeyError("Unknown type tag: %r" % type_tag)
