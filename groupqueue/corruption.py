"""
Storage corruption detection and the persisted corruption flag.

The flag lives in a small JSON file next to the database so that a later
start of the application can route into its recovery flow.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

NOT_CORRUPTED = "not_corrupted"
READ_CORRUPTED = "read_corrupted"
CORRUPTED = "corrupted"

STATUSES = (NOT_CORRUPTED, READ_CORRUPTED, CORRUPTED)

# SQLite primary result codes
SQLITE_CORRUPT = 11
SQLITE_NOTADB = 26
CORRUPTION_ERROR_CODES = {SQLITE_CORRUPT, SQLITE_NOTADB}
CORRUPTION_MESSAGES = (
    "database disk image is malformed",
    "file is not a database",
)


def _unwrap(error: BaseException) -> BaseException:
    """Return the DB-API error wrapped by a SQLAlchemy error, if any."""
    orig = getattr(error, "orig", None)
    if isinstance(orig, BaseException):
        return orig
    return error


def is_corruption_error(error: BaseException) -> bool:
    """True if the error reports a corrupt or non-database SQLite file."""
    orig = _unwrap(error)

    code = getattr(orig, "sqlite_errorcode", None)
    if code is not None:
        # extended result codes keep the primary code in the low byte
        return (code & 0xFF) in CORRUPTION_ERROR_CODES

    text = str(orig).lower()
    return any(message in text for message in CORRUPTION_MESSAGES)


def load_state(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {"status": NOT_CORRUPTED}
    try:
        with path.open("r", encoding="utf-8") as f:
            content = f.read().strip()
            if not content:
                return {"status": NOT_CORRUPTED}
            state = json.loads(content)
    except (json.JSONDecodeError, IOError):
        return {"status": NOT_CORRUPTED}
    if not isinstance(state, dict) or state.get("status") not in STATUSES:
        return {"status": NOT_CORRUPTED}
    return state


def save_state(path: Path, state: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, ensure_ascii=False)


class CorruptionState:
    """
    Persisted corruption status of the database.

    Statuses:
    - not_corrupted: normal operation
    - read_corrupted: a read failed with a corruption error
    - corrupted: corruption confirmed, recovery required
    """

    def __init__(self, path: Path):
        self.path = path

    def status(self) -> str:
        return load_state(self.path)["status"]

    def details(self) -> Dict[str, Any]:
        return load_state(self.path)

    def is_flagged(self) -> bool:
        return self.status() != NOT_CORRUPTED

    def flag_read_corruption_if_necessary(self, error: BaseException) -> bool:
        """
        Flag read corruption if the error indicates it.

        An existing flag is never downgraded or overwritten.

        Args:
            error: Error raised by the storage layer

        Returns:
            True if the error indicated corruption
        """
        if not is_corruption_error(error):
            return False
        if self.status() == NOT_CORRUPTED:
            self._write(READ_CORRUPTED, str(_unwrap(error)))
        return True

    def flag_corrupted(self, reason: Optional[str] = None) -> None:
        """Mark the database as corrupted, e.g. after an integrity check failed."""
        self._write(CORRUPTED, reason)

    def clear(self) -> None:
        """Reset to not_corrupted once recovery has finished."""
        save_state(self.path, {"status": NOT_CORRUPTED})

    def _write(self, status: str, error: Optional[str]) -> None:
        save_state(
            self.path,
            {
                "status": status,
                "flagged_at": datetime.now().isoformat(),
                "error": error,
            },
        )
