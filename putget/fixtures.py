"""
Deterministic sample data: one scalar and one 40x40 array per exercised
element kind. Built once per process and never mutated, the same values
are the write payload and the read oracle.
"""

import numpy as np

from putget.kinds import ElementKind


X_DIM_LEN = 40
Y_DIM_LEN = 40

# a negative value wherever the kind is signed
SAMPLE_VALUES = {
    ElementKind.BYTE: -42,
    ElementKind.SHORT: -300,
    ElementKind.INT: -10000,
    ElementKind.FLOAT: -42.42,
    ElementKind.DOUBLE: -420000000000.5,
    ElementKind.UBYTE: 43,
    ElementKind.USHORT: 666,
    ElementKind.UINT: 666666,
    ElementKind.INT64: -99999999999,
    ElementKind.UINT64: 99999999999,
}


class Fixtures(object):
    """
    Immutable scalar and array fixtures, keyed by ElementKind.

    Arrays are flagged read-only, so an accidental in-place write raises
    instead of silently changing the oracle.
    """

    def __init__(self, shape=(X_DIM_LEN, Y_DIM_LEN)):
        self.shape = tuple(shape)
        self._scalars = {}
        self._arrays = {}
        for kind, value in SAMPLE_VALUES.items():
            scalar = np.array(value, dtype=kind.dtype)
            scalar.setflags(write=False)
            array = np.full(self.shape, value, dtype=kind.dtype)
            array.setflags(write=False)
            self._scalars[kind] = scalar
            self._arrays[kind] = array

    def __contains__(self, kind):
        return kind in self._scalars

    def __repr__(self):
        return "Fixtures(kinds=%d, shape=%s)" % (len(self._scalars), self.shape)

    @property
    def kinds(self):
        return list(self._scalars)

    def scalar(self, kind):
        """0-d read-only array holding the sample value of ``kind``."""
        try:
            return self._scalars[kind]
        except KeyError:
            raise KeyError("No fixture for kind %s" % kind.name) from None

    def array(self, kind):
        """Read-only 40x40 array filled with the sample value of ``kind``."""
        try:
            return self._arrays[kind]
        except KeyError:
            raise KeyError("No fixture for kind %s" % kind.name) from None

    def block(self, kind, count):
        """
        The array fixture laid out as a block of shape ``count``.

        The leading (timestep) extent repeats the 2D fixture; the
        trailing extents must match the fixture shape.
        """
        count = tuple(int(c) for c in count)
        if count[1:] != self.shape:
            raise ValueError("block shape %s does not match fixture shape %s" % (count, self.shape))
        return np.broadcast_to(self.array(kind), count)
