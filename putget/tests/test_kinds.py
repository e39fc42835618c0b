import numpy as np
import pytest

from putget.kinds import (ElementKind, defined_kinds, exercised_kinds, kind_from_type_tag,
                          NUM_CLASSIC_TYPES, NUM_NETCDF4_TYPES)


def test_type_tags_follow_storage_numbering():
    tags = [k.type_tag for k in ElementKind]
    assert tags == list(range(1, 13))


@pytest.mark.parametrize("extended, expected", [
    (False, NUM_CLASSIC_TYPES),
    (True, NUM_NETCDF4_TYPES),
])
def test_defined_kinds_count(extended, expected):
    assert len(defined_kinds(extended)) == expected


def test_baseline_kinds_never_include_extended():
    for kind in defined_kinds(False):
        assert not kind.extended
    assert ElementKind.UBYTE not in defined_kinds(False)
    assert ElementKind.UINT64 not in defined_kinds(False)


def test_exercised_kinds_skip_text():
    baseline = exercised_kinds(False)
    extended = exercised_kinds(True)
    assert baseline == [ElementKind.BYTE, ElementKind.SHORT, ElementKind.INT,
                        ElementKind.FLOAT, ElementKind.DOUBLE]
    assert len(extended) == 10
    assert ElementKind.CHAR not in extended
    assert ElementKind.STRING not in extended


def test_definition_order():
    assert defined_kinds(True)[0] is ElementKind.BYTE
    assert defined_kinds(True)[1] is ElementKind.CHAR
    assert defined_kinds(True)[-1] is ElementKind.STRING


@pytest.mark.parametrize("kind, dtype", [
    (ElementKind.BYTE, "int8"),
    (ElementKind.SHORT, "int16"),
    (ElementKind.INT, "int32"),
    (ElementKind.FLOAT, "float32"),
    (ElementKind.DOUBLE, "float64"),
    (ElementKind.UBYTE, "uint8"),
    (ElementKind.USHORT, "uint16"),
    (ElementKind.UINT, "uint32"),
    (ElementKind.INT64, "int64"),
    (ElementKind.UINT64, "uint64"),
])
def test_dtypes(kind, dtype):
    assert kind.dtype == np.dtype(dtype)


def test_float_comparison_is_bitwise():
    kind = ElementKind.DOUBLE
    assert kind.equal(np.array([0.0]), np.array([0.0]))
    # equal under ==, different bits
    assert not kind.equal(np.array([0.0]), np.array([-0.0]))
    # one ulp away
    a = np.array([-42.42], dtype=np.float32)
    b = np.nextafter(a, np.float32(0))
    assert not ElementKind.FLOAT.equal(a, b)
    nan = np.array([np.nan])
    assert kind.equal(nan, nan.copy())


def test_comparison_rejects_dtype_and_shape_differences():
    expected = np.full((2, 2), -300, dtype=np.int16)
    assert ElementKind.SHORT.equal(expected, expected.copy())
    assert not ElementKind.SHORT.equal(expected, expected.astype(np.int32))
    assert not ElementKind.SHORT.equal(expected, expected.reshape(4))
    assert not ElementKind.SHORT.equal(expected, np.full((2, 2), -301, dtype=np.int16))


def test_kind_from_type_tag():
    assert kind_from_type_tag(11) is ElementKind.UINT64
    with pytest.raises(KeyError):
        kind_from_type_tag(99)
