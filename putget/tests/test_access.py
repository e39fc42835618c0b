import numpy as np
import pytest
from numpy.testing import assert_array_equal

from putget import access, schema
from putget.access import AccessPattern, AccessDescriptor, default_access
from putget.backend.netcdf_backend import StorageService
from putget.collective import SerialContext
from putget.error import DataMismatch, IoError
from putget.kinds import ElementKind


def _roundtrip(storage, fixtures, pattern, flavor, unlimited=False, path="cell.nc"):
    ds_schema = schema.build(storage, flavor, unlimited, path)
    access.write(pattern, storage, ds_schema, fixtures)
    storage.sync(ds_schema.handle)
    access.verify(pattern, storage, ds_schema, fixtures, phase="same-handle")
    storage.close(ds_schema.handle)
    return schema.reopen(storage, ds_schema)


def test_default_access():
    desc = default_access()
    assert desc.index == (0, 0, 0)
    assert desc.start == (0, 0, 0)
    assert desc.count == (1, 40, 40)
    assert desc.stride == (1, 1, 1)


def test_access_pattern_numbers():
    assert [int(p) for p in AccessPattern] == [0, 1, 2, 3]
    assert str(AccessPattern.STRIDED) == "strided"


@pytest.mark.parametrize("flavor", ["netcdf", "netcdf4c"])
@pytest.mark.parametrize("pattern", list(AccessPattern))
@pytest.mark.parametrize("unlimited", [False, True])
def test_roundtrip_identity(storage, fixtures, workdir, flavor, pattern, unlimited):
    fresh = _roundtrip(storage, fixtures, pattern, flavor, unlimited)
    nbytes = access.verify(pattern, storage, fresh, fixtures, phase="fresh-handle")
    if pattern is AccessPattern.WHOLE and unlimited:
        assert nbytes == 0
    else:
        assert nbytes > 0
    storage.close(fresh.handle)


def test_scenario_a_region_int32(storage, fixtures, workdir):
    fresh = _roundtrip(storage, fixtures, AccessPattern.REGION, "netcdf")
    data = storage.read_region(fresh.handle, fresh.varid(ElementKind.INT), (0, 0, 0), (1, 40, 40))
    storage.close(fresh.handle)
    assert data.shape == (1, 40, 40)
    assert data.dtype == np.int32
    assert (data == -10000).all()


def test_scenario_b_single_uint64(storage, fixtures, workdir):
    fresh = _roundtrip(storage, fixtures, AccessPattern.SINGLE, "netcdf4c")
    value = storage.read_one(fresh.handle, fresh.varid(ElementKind.UINT64), (0, 0, 0))
    storage.close(fresh.handle)
    assert value.dtype == np.uint64
    assert int(value) == 99999999999


def test_scenario_c_unit_stride_matches_region(storage, fixtures, workdir):
    region = _roundtrip(storage, fixtures, AccessPattern.REGION, "netcdf", path="region.nc")
    strided = _roundtrip(storage, fixtures, AccessPattern.STRIDED, "netcdf", path="strided.nc")
    desc = default_access()
    for kind in region.kinds:
        a = storage.read_region(region.handle, region.varid(kind), desc.start, desc.count)
        b = storage.read_strided(strided.handle, strided.varid(kind), desc.start, desc.count,
                                 desc.stride)
        assert a.dtype == b.dtype
        assert a.tobytes() == b.tobytes()
    storage.close(region.handle)
    storage.close(strided.handle)


def test_scenario_d_whole_unlimited_is_empty(storage, fixtures, workdir):
    fresh = _roundtrip(storage, fixtures, AccessPattern.WHOLE, "netcdf4c", unlimited=True)
    assert storage.dimension_length(fresh.handle, fresh.dimids[0]) == 0
    data = storage.read_whole(fresh.handle, fresh.varid(ElementKind.DOUBLE))
    assert data.shape == (0, 40, 40)
    storage.close(fresh.handle)


def test_single_element_leaves_rest_unwritten(storage, fixtures, workdir):
    fresh = _roundtrip(storage, fixtures, AccessPattern.SINGLE, "netcdf")
    data = storage.read_region(fresh.handle, fresh.varid(ElementKind.SHORT), (0, 0, 0), (1, 40, 40))
    storage.close(fresh.handle)
    assert data[0, 0, 0] == -300
    assert (data.ravel()[1:] != -300).all()


class CorruptingStorage(StorageService):
    """Flips a bit in every float32 value read back."""

    def read_region(self, handle, varid, start, count):
        data = super(CorruptingStorage, self).read_region(handle, varid, start, count)
        if data.dtype == np.float32:
            data = (data.view(np.uint32) ^ np.uint32(1)).view(np.float32)
        return data


def test_mismatch_detected(fixtures, workdir):
    storage = CorruptingStorage(SerialContext())
    ds_schema = schema.build(storage, "netcdf4c", False, "corrupt.nc")
    access.write(AccessPattern.REGION, storage, ds_schema, fixtures)
    with pytest.raises(DataMismatch) as excinfo:
        access.verify(AccessPattern.REGION, storage, ds_schema, fixtures, phase="same-handle")
    storage.close(ds_schema.handle)
    err = excinfo.value
    assert err.kind is ElementKind.FLOAT
    assert err.phase == "same-handle"
    assert not isinstance(err, IoError)


class FailingWrites(StorageService):
    def write_one(self, handle, varid, index, value):
        if varid == 3:
            raise IoError("write_one", "NetCDF: HDF error", code=-101)
        super(FailingWrites, self).write_one(handle, varid, index, value)


def test_write_failure_aborts_with_storage_code(fixtures, workdir):
    storage = FailingWrites(SerialContext())
    ds_schema = schema.build(storage, "netcdf4c", False, "failing.nc")
    with pytest.raises(IoError) as excinfo:
        access.write(AccessPattern.SINGLE, storage, ds_schema, fixtures)
    storage.close(ds_schema.handle)
    assert excinfo.value.code == -101
    assert excinfo.value.kind is ElementKind.INT


@pytest.mark.parametrize("pattern, desc", [
    (AccessPattern.REGION,
     AccessDescriptor(index=(0, 0, 0), start=(0, 0, 0), count=(2, 40, 40), stride=(1, 1, 1))),
    (AccessPattern.STRIDED,
     AccessDescriptor(index=(0, 0, 0), start=(0, 0, 0), count=(1, 40, 40), stride=(1, 2, 2))),
])
def test_out_of_range_descriptor_is_io_error(storage, fixtures, workdir, pattern, desc):
    ds_schema = schema.build(storage, "netcdf", False, "range.nc")
    with pytest.raises(IoError) as excinfo:
        access.write(pattern, storage, ds_schema, fixtures, access=desc)
    assert excinfo.value.code == -57
    assert excinfo.value.kind is ElementKind.BYTE

    access.write(pattern, storage, ds_schema, fixtures)
    with pytest.raises(IoError) as excinfo:
        access.verify(pattern, storage, ds_schema, fixtures, access=desc)
    storage.close(ds_schema.handle)
    assert excinfo.value.code == -57
    assert not isinstance(excinfo.value, DataMismatch)


def test_region_read_past_unwritten_timestep(storage, fixtures, workdir):
    ds_schema = schema.build(storage, "netcdf", True, "unwritten.nc")
    varid = ds_schema.varid(ElementKind.INT)
    with pytest.raises(IoError) as excinfo:
        storage.read_region(ds_schema.handle, varid, (0, 0, 0), (1, 40, 40))
    storage.write_region(ds_schema.handle, varid, (0, 0, 0), (1, 40, 40),
                         fixtures.block(ElementKind.INT, (1, 40, 40)))
    assert storage.dimension_length(ds_schema.handle, ds_schema.dimids[0]) == 1
    storage.close(ds_schema.handle)
    assert excinfo.value.code == -57
