"""
Pytest configuration and shared fixtures.
"""

import sqlite3

import pytest
from pathlib import Path
from typing import Dict, Any
from sqlalchemy.exc import DatabaseError, OperationalError

from groupqueue.corruption import CorruptionState
from groupqueue.database import init_database, get_session_factory
from groupqueue.finder import GroupMessageJobFinder
from groupqueue.logger import StructuredLogger, get_logger, reset_logger

GROUP_A = b"\x01" * 32


@pytest.fixture(autouse=True)
def quiet_logger(tmp_path):
    """Keep the global logger out of the working directory."""
    reset_logger()
    logger = get_logger(log_dir=tmp_path / "logs", enable_console=False)
    yield
    _close_handlers(logger)
    reset_logger()


def _close_handlers(structured_logger: StructuredLogger) -> None:
    """Close file handlers opened by a test's logger so they do not leak."""
    for handler in list(structured_logger.logger.handlers):
        handler.close()


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "queue.db"
    init_database(path)
    return path


@pytest.fixture
def session_factory(db_path):
    return get_session_factory(db_path)


@pytest.fixture
def corruption_state(tmp_path) -> CorruptionState:
    return CorruptionState(tmp_path / "corruption_state.json")


@pytest.fixture
def test_logger(tmp_path) -> StructuredLogger:
    logger = StructuredLogger(
        name="groupqueue.test",
        log_dir=tmp_path / "logs",
        enable_console=False,
    )
    yield logger
    _close_handlers(logger)


@pytest.fixture
def finder(corruption_state, test_logger) -> GroupMessageJobFinder:
    return GroupMessageJobFinder(corruption_state, logger=test_logger)


@pytest.fixture
def job_fields() -> Dict[str, Any]:
    """Valid job payload."""
    return {
        "envelope_data": b"envelope-bytes",
        "plaintext_data": b"plaintext-bytes",
        "group_id": GROUP_A,
        "was_received_by_ud": True,
        "server_delivery_timestamp": 1_700_000_000_000,
    }


@pytest.fixture
def corruption_error() -> DatabaseError:
    """SQLAlchemy error wrapping a SQLite corruption error."""
    return DatabaseError(
        "SELECT 1",
        {},
        sqlite3.DatabaseError("database disk image is malformed"),
    )


@pytest.fixture
def io_error() -> OperationalError:
    """SQLAlchemy error wrapping a SQLite error that is not corruption."""
    return OperationalError("SELECT 1", {}, sqlite3.OperationalError("disk I/O error"))
