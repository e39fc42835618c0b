# -*- coding: utf-8 -*-
"""
The conformance matrix driver.

Every cell of {unlimited off/on} x {whole, single, region, strided} x
{requested flavors} runs the same sequence on a fresh dataset:

    create -> write -> sync -> verify (same handle) -> close
           -> reopen read-only -> verify (fresh handle) -> close

A failure aborts its cell only; cells are independent and run strictly
one after another. The matrix status is the status of the first failing
cell, 0 when every cell passed.
"""

import os
import time
from collections import namedtuple

import logging
logger = logging.getLogger(__name__)


from putget import access as putget_access
from putget.access import AccessPattern, default_access
from putget.backend.netcdf_backend import StorageService, available_flavors, get_flavor
from putget.collective import get_context
from putget.error import IoError, PutGetBaseError, TeamSizeError, PIO_NOERR
from putget.fixtures import Fixtures
from putget.report import CellResult, MatrixReport
from putget.schema import TEST_NAME, build, putget_filename, reopen


SAME_HANDLE = "same-handle"
FRESH_HANDLE = "fresh-handle"


class CellCoordinates(namedtuple("CellCoordinates", ["unlimited", "access", "flavor"])):
    __slots__ = ()

    def __str__(self):
        return "unlim=%d access=%s flavor=%s" % (int(self.unlimited), self.access, self.flavor)


def matrix_cells(flavors):
    """Cells in execution order: unlimited, then access pattern, then flavor."""
    for unlimited in (False, True):
        for pattern in AccessPattern:
            for flavor in flavors:
                yield CellCoordinates(unlimited, pattern, get_flavor(flavor).name)


class ConformanceDriver(object):
    """
    Runs matrix cells against a storage service.

    Args:
        storage: StorageService every call is issued to
        fixtures (Fixtures): write payload and read oracle
        output_dir (str): directory for the cell datasets (default: cwd)
        keep_files (bool): keep datasets of passing cells
        test_name (str): filename prefix

    Every team member must construct the driver with the same arguments
    and run the same cells; divergence is not detected here.
    """

    def __init__(self, storage, fixtures, output_dir=None, keep_files=False, test_name=TEST_NAME):
        self.storage = storage
        self.fixtures = fixtures
        self.output_dir = output_dir
        self.keep_files = keep_files
        self.test_name = test_name
        self.access = default_access()

    @property
    def rank(self):
        return self.storage.context.rank

    def run_cell(self, cell):
        """
        Run one cell end to end.

        Return:
            CellResult, failed when any step raised a putget error
        """
        path = putget_filename(cell.access, cell.unlimited, cell.flavor,
                               test_name=self.test_name, output_dir=self.output_dir)
        pattern = AccessPattern(cell.access)
        handles = []
        nbytes = 0
        phase = "create"
        t0 = time.perf_counter()

        try:
            logger.info(f"{self.rank} Access {int(pattern)} creating test file for flavor = {cell.flavor}...")
            schema = build(self.storage, cell.flavor, cell.unlimited, path)
            handles.append(schema.handle)

            phase = "write"
            logger.info(f"{self.rank} Access {int(pattern)} writing data with {pattern!s} functions for flavor = {cell.flavor}...")
            putget_access.write(pattern, self.storage, schema, self.fixtures, self.access)

            # some flavors defer materialization until an explicit sync
            phase = "sync"
            self.storage.sync(schema.handle)

            phase = SAME_HANDLE
            nbytes += putget_access.verify(pattern, self.storage, schema, self.fixtures,
                                           self.access, phase=SAME_HANDLE)

            phase = "close"
            self.storage.close(schema.handle)

            phase = "reopen"
            fresh = reopen(self.storage, schema)
            handles.append(fresh.handle)

            phase = FRESH_HANDLE
            nbytes += putget_access.verify(pattern, self.storage, fresh, self.fixtures,
                                           self.access, phase=FRESH_HANDLE)

            phase = "close"
            self.storage.close(fresh.handle)
        except PutGetBaseError as e:
            e.label(cell=cell, phase=phase)
            logger.error(f"{self.rank} cell failed: {e}")
            self._abandon(handles)
            return CellResult(cell, e.code, path=path, phase=e.phase, kind=e.kind, error=e,
                              nbytes=nbytes, elapsed=time.perf_counter() - t0)

        if not self.keep_files:
            self.storage.remove(path)
        logger.info(f"{self.rank} Access {int(pattern)} flavor = {cell.flavor} unlim = {int(cell.unlimited)} passed.")
        return CellResult(cell, PIO_NOERR, path=path, nbytes=nbytes,
                          elapsed=time.perf_counter() - t0)

    def _abandon(self, handles):
        # the cell already failed; close what is still open and keep the file
        for handle in handles:
            if handle.closed:
                continue
            try:
                self.storage.close(handle)
            except IoError as e:
                logger.debug(f"closing abandoned {handle.path} failed: {e}")

    def run(self, flavors, fail_fast=False):
        """
        Run every cell for ``flavors``.

        Args:
            flavors (list): flavor names to test
            fail_fast (bool): stop after the first failing cell

        Return:
            MatrixReport
        """
        report = MatrixReport(flavors=[get_flavor(f).name for f in flavors],
                              team_size=self.storage.context.size)
        for cell in matrix_cells(flavors):
            result = self.run_cell(cell)
            report.append(result)
            if fail_fast and not result.passed:
                logger.warning(f"{self.rank} stopping after first failing cell ({cell})")
                break
        return report


def run_matrix(flavors=None, fixtures=None, storage=None, context=None, output_dir=None,
               keep_files=False, fail_fast=False, min_tasks=1, use_mpi=False):
    """
    Run the conformance matrix.

    Args:
        flavors (list): flavor names (default: every available flavor)
        fixtures (Fixtures): sample data (default: built here)
        storage: storage service (default: netCDF4 on ``context``)
        context: collective context (default: serial, or MPI with ``use_mpi``)
        output_dir (str): directory for datasets
        keep_files (bool): keep datasets of passing cells
        fail_fast (bool): stop after the first failing cell
        min_tasks (int): minimum team size the run requires

    Return:
        MatrixReport; ``report.status`` is the first non-zero cell status or 0.

    Raises:
        TeamSizeError: when the team has fewer than ``min_tasks`` members.
    """
    if storage is None:
        if context is None:
            context = get_context(use_mpi)
        storage = StorageService(context)
    context = storage.context

    if context.size < min_tasks:
        raise TeamSizeError(context.size, min_tasks)

    if flavors is None:
        flavors = available_flavors(context)
        logger.info(f"{context.rank} testing available flavors: {', '.join(flavors)}")
    if fixtures is None:
        fixtures = Fixtures()
    if output_dir and context.rank == 0:
        os.makedirs(output_dir, exist_ok=True)
    context.barrier()

    driver = ConformanceDriver(storage, fixtures, output_dir=output_dir, keep_files=keep_files)
    return driver.run(flavors, fail_fast=fail_fast)
