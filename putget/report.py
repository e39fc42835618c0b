#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
The putget.report module collects the results of matrix cells and
offers them as a pandas DataFrame, CSV or a rich table.
"""

import pandas as pd
from humanize import naturalsize

from rich.console import Console
from rich.table import Table

import logging
logger = logging.getLogger(__name__)


from putget.error import PIO_NOERR


class CellResult(object):
    """
    Outcome of one matrix cell.

    ``status`` is 0 for a passing cell, otherwise the code of the error
    that aborted it (a storage code, or ERR_WRONG for a data mismatch).
    """

    def __init__(self, cell, status, path=None, phase=None, kind=None, error=None,
                 nbytes=0, elapsed=0.0):
        self.cell = cell
        self.status = status
        self.path = path
        self.phase = phase
        self.kind = kind
        self.error = error
        self.nbytes = nbytes
        self.elapsed = elapsed

    @property
    def passed(self):
        return self.status == PIO_NOERR

    @property
    def error_type(self):
        if self.error is None:
            return None
        return type(self.error).__name__

    def to_dict(self):
        return {
            "unlimited": int(self.cell.unlimited),
            "access": str(self.cell.access),
            "flavor": self.cell.flavor,
            "status": self.status,
            "passed": self.passed,
            "phase": self.phase,
            "kind": self.kind.name.lower() if self.kind is not None else None,
            "error_type": self.error_type,
            "error": self.error.msg if self.error is not None else None,
            "bytes_verified": self.nbytes,
            "elapsed": self.elapsed,
            "path": self.path,
        }

    def __repr__(self):
        if self.passed:
            return "CellResult(%s, passed)" % (self.cell,)
        return "CellResult(%s, status=%d, %s)" % (self.cell, self.status, self.error)


class MatrixReport(object):
    """Results of a matrix run, in execution order."""

    columns = ["unlimited", "access", "flavor", "status", "passed", "phase", "kind",
               "error_type", "error", "bytes_verified", "elapsed", "path"]

    def __init__(self, flavors=None, team_size=1):
        self.flavors = list(flavors or [])
        self.team_size = team_size
        self.results = []

    def __len__(self):
        return len(self.results)

    def __iter__(self):
        return iter(self.results)

    def __getitem__(self, key):
        return self.results[key]

    def append(self, result):
        self.results.append(result)

    @property
    def failures(self):
        return [r for r in self.results if not r.passed]

    def first_failure(self):
        """The first failing CellResult, or None when every cell passed."""
        for result in self.results:
            if not result.passed:
                return result
        return None

    @property
    def status(self):
        first = self.first_failure()
        return PIO_NOERR if first is None else first.status

    @property
    def passed(self):
        return self.status == PIO_NOERR

    def to_df(self):
        """
        One row per cell.

        Return:
            pandas.DataFrame with the columns listed in ``MatrixReport.columns``
        """
        return pd.DataFrame([r.to_dict() for r in self.results], columns=self.columns)

    def to_csv(self):
        return self.to_df().drop("path", axis=1).to_csv(index=False)

    def info(self):
        """Print a short summary of the run."""
        df = self.to_df()
        print("Flavors:      ", ", ".join(self.flavors), sep="")
        print("Tasks:        ", self.team_size, sep="")
        print("Cells:        ", len(df), sep="")
        print("Passed:       ", int(df["passed"].sum()) if len(df) else 0, sep="")
        print("Failed:       ", len(self.failures), sep="")
        print("Verified:     ", naturalsize(int(df["bytes_verified"].sum()) if len(df) else 0,
                                             binary=True, format="%.2f"), sep="")
        first = self.first_failure()
        if first is not None:
            print("First failure:", first.error, sep=" ")
        print("Status:       ", self.status, sep="")

    def rich_print(self, console=None):
        """Pretty print the cells using a rich table."""
        df = self.to_df()
        if console is None:
            console = Console()
        total_bytes = int(df["bytes_verified"].sum()) if len(df) else 0
        n_passed = int(df["passed"].sum()) if len(df) else 0
        table = Table(title="putget conformance matrix", show_lines=False, show_footer=True)
        table.add_column("unlim", f"[u i]{len(df)} cells", justify="center")
        default_kwargs = {"justify": "center", "no_wrap": True}
        table.add_column("access", "", **default_kwargs)
        table.add_column("flavor", "", **default_kwargs)
        table.add_column("result", f"[u i]{n_passed} passed", **default_kwargs)
        table.add_column("verified", f"[u i]{naturalsize(total_bytes, binary=True, format='%.2f')}",
                         **default_kwargs)
        table.add_column("time", f"[u i]{df['elapsed'].sum() if len(df) else 0.0:.2f} s", **default_kwargs)
        for _, row in df.iterrows():
            if row["passed"]:
                result = "[green]ok[/green]"
            else:
                where = row["phase"] or ""
                if row["kind"]:
                    where += f" {row['kind']}"
                result = f"[bold red]{row['error_type']} {row['status']}[/bold red]\n{where}"
            table.add_row(f"{row['unlimited']}",
                          row["access"],
                          row["flavor"],
                          result,
                          naturalsize(row["bytes_verified"], binary=True, format="%.2f"),
                          f"{row['elapsed']:.2f} s")
        console.print(table)
