"""Durable FIFO queue for incoming group messages awaiting processing."""

__version__ = "0.1.0"

from .corruption import CorruptionState, is_corruption_error
from .database import (
    ReadTransaction,
    WriteTransaction,
    init_database,
    get_session_factory,
    read_transaction,
    write_transaction,
)
from .exceptions import FatalStoreError, InvalidJobError, JobStoreError
from .finder import GroupMessageJobFinder, ReadFailureMode
from .jobs import GroupMessageJob

__all__ = [
    "CorruptionState",
    "FatalStoreError",
    "GroupMessageJob",
    "GroupMessageJobFinder",
    "InvalidJobError",
    "JobStoreError",
    "ReadFailureMode",
    "ReadTransaction",
    "WriteTransaction",
    "get_session_factory",
    "init_database",
    "is_corruption_error",
    "read_transaction",
    "write_transaction",
]
