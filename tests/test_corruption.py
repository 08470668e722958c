"""
Tests for corruption detection and the persisted corruption flag.
"""

import json
import sqlite3

import pytest
from sqlalchemy.exc import DatabaseError, OperationalError

from groupqueue.corruption import (
    CORRUPTED,
    NOT_CORRUPTED,
    READ_CORRUPTED,
    CorruptionState,
    is_corruption_error,
)


class TestIsCorruptionError:
    """Test classification of storage errors."""

    def test_wrapped_malformed_image(self, corruption_error):
        assert is_corruption_error(corruption_error)

    def test_not_a_database(self):
        error = DatabaseError("SELECT 1", {}, sqlite3.DatabaseError("file is not a database"))
        assert is_corruption_error(error)

    def test_bare_sqlite_error(self):
        assert is_corruption_error(sqlite3.DatabaseError("database disk image is malformed"))

    def test_other_errors(self, io_error):
        assert not is_corruption_error(io_error)
        assert not is_corruption_error(
            OperationalError("SELECT 1", {}, sqlite3.OperationalError("no such table: x"))
        )
        assert not is_corruption_error(ValueError("nope"))

    @pytest.mark.parametrize("code, expected", [(11, True), (26, True), (267, True), (5, False)])
    def test_error_code_takes_precedence(self, code, expected):
        """Extended codes are reduced to their primary code."""
        orig = sqlite3.DatabaseError("some message")
        orig.sqlite_errorcode = code
        assert is_corruption_error(DatabaseError("SELECT 1", {}, orig)) is expected


class TestCorruptionState:
    """Test the persisted corruption flag."""

    def test_defaults_to_not_corrupted(self, corruption_state):
        assert corruption_state.status() == NOT_CORRUPTED
        assert not corruption_state.is_flagged()
        assert not corruption_state.path.exists()

    def test_flags_read_corruption(self, corruption_state, corruption_error):
        assert corruption_state.flag_read_corruption_if_necessary(corruption_error) is True

        details = corruption_state.details()
        assert details["status"] == READ_CORRUPTED
        assert "malformed" in details["error"]
        assert details["flagged_at"]

    def test_ignores_other_errors(self, corruption_state, io_error):
        assert corruption_state.flag_read_corruption_if_necessary(io_error) is False
        assert corruption_state.status() == NOT_CORRUPTED
        assert not corruption_state.path.exists()

    def test_does_not_downgrade_existing_flag(self, corruption_state, corruption_error):
        corruption_state.flag_corrupted("integrity check failed")

        assert corruption_state.flag_read_corruption_if_necessary(corruption_error) is True
        assert corruption_state.status() == CORRUPTED
        assert corruption_state.details()["error"] == "integrity check failed"

    def test_clear(self, corruption_state, corruption_error):
        corruption_state.flag_read_corruption_if_necessary(corruption_error)
        corruption_state.clear()
        assert corruption_state.status() == NOT_CORRUPTED

    def test_flag_survives_new_instance(self, corruption_state, corruption_error):
        corruption_state.flag_read_corruption_if_necessary(corruption_error)
        assert CorruptionState(corruption_state.path).status() == READ_CORRUPTED

    @pytest.mark.parametrize("content", ["", "not json", json.dumps({"status": "weird"}), "[]"])
    def test_unreadable_file_reads_as_not_corrupted(self, tmp_path, content):
        path = tmp_path / "state.json"
        path.write_text(content)
        assert CorruptionState(path).status() == NOT_CORRUPTED

    def test_creates_parent_directories(self, tmp_path, corruption_error):
        state = CorruptionState(tmp_path / "nested" / "state.json")
        state.flag_read_corruption_if_necessary(corruption_error)
        assert state.path.exists()
