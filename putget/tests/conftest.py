import pytest

import netCDF4

from putget.backend.netcdf_backend import StorageService
from putget.collective import SerialContext
from putget.fixtures import Fixtures

try:
    import mpi4py
    has_mpi4py = True
except ImportError:
    has_mpi4py = False


def pytest_configure():
    pytest.has_mpi4py = has_mpi4py
    pytest.has_parallel = (getattr(netCDF4, "__has_parallel4_support__", False)
                           or getattr(netCDF4, "__has_pnetcdf_support__", False))


@pytest.fixture
def storage():
    # serial team of one; the flavors netcdf and netcdf4c need nothing else
    return StorageService(SerialContext())


@pytest.fixture(scope="session")
def fixtures():
    return Fixtures()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path
