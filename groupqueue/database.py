"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the incoming group message job table.
The job store itself never begins or commits transactions; the helpers at
the bottom of this module are for callers that own the transaction.
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from sqlalchemy import (
    create_engine,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

UINT64_MAX = 2 ** 64 - 1
_INT64_WRAP = 2 ** 64
_INT64_MAX = 2 ** 63 - 1


class UInt64(TypeDecorator):
    """Unsigned 64-bit integer stored in a signed BIGINT column.

    Values above INT64_MAX are stored as their two's-complement bit pattern.
    """

    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value > _INT64_MAX:
            return value - _INT64_WRAP
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value < 0:
            return value + _INT64_WRAP
        return value


class IncomingGroupMessageJobRecord(Base):
    """Row of the incoming group message job queue."""

    __tablename__ = "incoming_group_message_jobs"
    # AUTOINCREMENT keeps SQLite from reusing the id of a removed tail row
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    unique_id = Column(String, nullable=False, unique=True)
    group_id = Column(LargeBinary, nullable=False, index=True)
    envelope_data = Column(LargeBinary, nullable=False)
    plaintext_data = Column(LargeBinary, nullable=True)
    was_received_by_ud = Column(Boolean, nullable=False)
    server_delivery_timestamp = Column(UInt64, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


def get_engine(db_path: Path) -> Engine:
    """
    Create an engine for a SQLite database file.

    Args:
        db_path: Path to SQLite database file
    """
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(db_path: Path) -> sessionmaker:
    """Return a session factory bound to the database file."""
    return sessionmaker(bind=get_engine(db_path))


def get_session(db_path: Path) -> Session:
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return get_session_factory(db_path)()


class ReadTransaction:
    """Handle for an open transaction that may only be read from."""

    def __init__(self, session: Session):
        self.session = session


class WriteTransaction(ReadTransaction):
    """Handle for an open transaction that may be read from and written to."""
    pass


@contextmanager
def read_transaction(session_factory: sessionmaker) -> Iterator[ReadTransaction]:
    """Open a session, yield a read handle, and discard the transaction on exit."""
    session = session_factory()
    try:
        yield ReadTransaction(session)
    finally:
        session.rollback()
        session.close()


@contextmanager
def write_transaction(session_factory: sessionmaker) -> Iterator[WriteTransaction]:
    """Open a session, yield a write handle, and commit on clean exit.

    Any exception rolls the transaction back and propagates.
    """
    session = session_factory()
    try:
        with session.begin():
            yield WriteTransaction(session)
    finally:
        session.close()
