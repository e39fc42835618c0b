import sys
import glob
import subprocess
import os
import shutil

import pytest

mpi4py = pytest.importorskip("mpi4py")

mpirun = shutil.which("mpirun")
pytestmark = pytest.mark.skipif(mpirun is None, reason="mpirun not available")

script_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), "python_mpi_scripts")


def _mpirun(n_ranks, args, env=None):
    myenv = os.environ.copy()
    if env:
        myenv.update(env)
    return subprocess.check_output([mpirun,
                                    "--allow-run-as-root",
                                    "--oversubscribe",
                                    "-n",
                                    f"{n_ranks}",
                                    *args],
                                   env=myenv,
                                   stderr=subprocess.STDOUT)


@pytest.mark.parametrize("n_ranks", [1, 4])
def test_putget_matrix_team(tmpdir, n_ranks):
    # serial flavors route I/O through rank 0, parallel flavors
    # (when netCDF4 supports them) use the whole team
    test_script_path = os.path.join(script_dir, "putget_matrix_mpi.py")

    with tmpdir.as_cwd():
        out = _mpirun(n_ranks, [sys.executable, test_script_path])
        assert f"{n_ranks} tasks passed" in out.decode()
        # passing cells leave no datasets behind
        assert glob.glob("*.nc") == []


def test_putget_cli_under_mpirun(tmpdir):
    # the original test targets four tasks
    n_ranks = 4
    with tmpdir.as_cwd():
        cwd = os.getcwd()
        _mpirun(n_ranks, [sys.executable, "-m", "putget.cli", "run",
                          "--mpi", "--min-tasks", f"{n_ranks}",
                          "--csv", "--keep-files", "--output-dir", cwd],
                env={"PUTGET_FLAVORS": "netcdf,netcdf4c"})
        # one dataset per cell, written once by the I/O rank
        assert len(glob.glob("test_pioc_putget_putget_access_*_unlim_*_netcdf*.nc")) == 16


def test_min_tasks_guard(tmpdir):
    with tmpdir.as_cwd():
        with pytest.raises(subprocess.CalledProcessError):
            _mpirun(1, [sys.executable, "-m", "putget.cli", "run",
                        "--mpi", "--min-tasks", "4", "--flavor", "netcdf"])
