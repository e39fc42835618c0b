"""
putget drives a conformance matrix against an array-oriented storage
API: data is written through every access pattern, element kind and
format flavor, read back, and compared bit for bit after a reopen.
"""

__version__ = '1.0.0'

import logging
logger = logging.getLogger(__name__)


from putget.error import PutGetBaseError, SchemaError, IoError, DataMismatch
from putget.kinds import ElementKind
from putget.fixtures import Fixtures
from putget.driver import run_matrix
