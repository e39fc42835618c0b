#!/usr/bin/env python
# -*- coding: utf-8 -*-

from setuptools import setup, find_packages
import sys

if sys.version_info[:2] < (3, 7):
    raise RuntimeError("Python version >= 3.7 required.")


setup(
    name="putget",
    version="1.0.0",
    description="Conformance matrix for array-oriented storage put/get APIs",
    packages=find_packages(include=["putget", "putget.*"]),
    python_requires=">=3.7",
    install_requires=[
        "numpy",
        "pandas<3",
        "netCDF4",
        "humanize",
        "rich",
    ],
    extras_require={
        "mpi": ["mpi4py"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "putget=putget.cli:main",
        ],
    },
)
