"""
Durable FIFO queue of incoming group message jobs.

Every operation runs inside a transaction supplied by the caller; the
finder never begins, commits or rolls back. Reading a batch and removing it
atomically is up to the caller: do both inside one write transaction.

Read failures are handled in one of two ways and the two must not be
merged:
- DEGRADE: log and return an empty result (listing enqueued group ids)
- FATAL: flag corruption if the error shows it, then raise FatalStoreError
"""

from enum import Enum
from typing import List, Optional, Sequence

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings
from .corruption import CorruptionState
from .database import IncomingGroupMessageJobRecord, ReadTransaction, WriteTransaction
from .exceptions import FatalStoreError
from .jobs import GroupMessageJob
from .logger import StructuredLogger, configure_logger, get_logger

Record = IncomingGroupMessageJobRecord


class ReadFailureMode(Enum):
    DEGRADE = "degrade"
    FATAL = "fatal"


def _require_write(transaction: ReadTransaction) -> None:
    if not isinstance(transaction, WriteTransaction):
        raise TypeError("This operation requires a WriteTransaction")


def _check_batch_size(batch_size: int) -> None:
    if not isinstance(batch_size, int) or isinstance(batch_size, bool):
        raise ValueError("batch_size must be an int")
    if batch_size < 0:
        raise ValueError("batch_size must be >= 0")


class GroupMessageJobFinder:
    """
    Table-backed queue of GroupMessageJob records.

    Args:
        corruption_state: Where corruption is flagged on fatal read failures
        logger: Logger for diagnostics (default: global logger)
    """

    def __init__(
        self,
        corruption_state: CorruptionState,
        logger: Optional[StructuredLogger] = None,
    ):
        self.corruption_state = corruption_state
        self.logger = logger or get_logger()

    @classmethod
    def from_settings(cls, settings: Settings) -> "GroupMessageJobFinder":
        return cls(
            CorruptionState(settings.corruption_state_path),
            logger=configure_logger(settings),
        )

    # Writes

    def add_job(
        self,
        envelope_data: bytes,
        plaintext_data: Optional[bytes],
        group_id: bytes,
        was_received_by_ud: bool,
        server_delivery_timestamp: int,
        transaction: WriteTransaction,
    ) -> GroupMessageJob:
        """
        Create a job with a fresh unique id and enqueue it.

        Raises:
            InvalidJobError: If a field has the wrong type or range
            SQLAlchemyError: If the write fails
        """
        job = GroupMessageJob.create(
            envelope_data=envelope_data,
            plaintext_data=plaintext_data,
            group_id=group_id,
            was_received_by_ud=was_received_by_ud,
            server_delivery_timestamp=server_delivery_timestamp,
        )
        return self.insert_job(job, transaction)

    def insert_job(self, job: GroupMessageJob, transaction: WriteTransaction) -> GroupMessageJob:
        """
        Persist a job built with GroupMessageJob.create().

        The flush makes storage assign the id inside the caller's transaction;
        the job becomes visible to others when that transaction commits.

        Returns:
            Detached copy of the stored job, with id set
        """
        _require_write(transaction)
        if job.is_persisted:
            raise ValueError(f"Job {job.unique_id} already has id {job.id}")

        record = job.to_record()
        try:
            transaction.session.add(record)
            transaction.session.flush()
        except SQLAlchemyError as e:
            self.logger.critical(
                "Failed to insert job",
                unique_id=job.unique_id,
                group_id=job.group_id.hex(),
                error=str(e),
            )
            raise

        self.logger.record_enqueue()
        self.logger.debug("Job enqueued", id=record.id, group_id=job.group_id.hex())
        return GroupMessageJob.from_record(record)

    def remove_jobs(self, unique_ids: Sequence[str], transaction: WriteTransaction) -> None:
        """
        Delete every job whose unique id is listed. Unknown ids are ignored.
        """
        _require_write(transaction)
        if isinstance(unique_ids, (str, bytes)):
            raise TypeError("unique_ids must be a sequence of ids, not a single string")
        # An empty IN () is a syntax error on some engines and matches
        # everything on others; never send it.
        if len(unique_ids) == 0:
            return

        stmt = (
            delete(Record)
            .where(Record.unique_id.in_(list(unique_ids)))
            .execution_options(synchronize_session=False)
        )
        try:
            result = transaction.session.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.critical(
                "Failed to remove jobs",
                requested=len(unique_ids),
                error=str(e),
            )
            raise

        self.logger.record_removal(result.rowcount)
        self.logger.debug("Jobs removed", requested=len(unique_ids), removed=result.rowcount)

    # Reads

    def all_enqueued_group_ids(self, transaction: ReadTransaction) -> List[bytes]:
        """
        Distinct group ids that have at least one job.

        Sorted for determinism; callers should not depend on the order.
        Returns an empty list if the query fails.
        """
        stmt = select(Record.group_id).distinct().order_by(Record.group_id)
        try:
            return [bytes(group_id) for group_id in transaction.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            self._handle_read_failure("all_enqueued_group_ids", e, ReadFailureMode.DEGRADE)
            return []

    def next_jobs(self, batch_size: int, transaction: ReadTransaction) -> List[GroupMessageJob]:
        """Oldest jobs first, across all groups, at most batch_size of them."""
        _check_batch_size(batch_size)
        stmt = select(Record).order_by(Record.id).limit(batch_size)
        return self._fetch_jobs("next_jobs", stmt, transaction)

    def next_jobs_for_group(
        self,
        group_id: bytes,
        batch_size: int,
        transaction: ReadTransaction,
    ) -> List[GroupMessageJob]:
        """Oldest jobs first for one group, at most batch_size of them."""
        _check_batch_size(batch_size)
        stmt = (
            select(Record)
            .where(Record.group_id == bytes(group_id))
            .order_by(Record.id)
            .limit(batch_size)
        )
        return self._fetch_jobs("next_jobs_for_group", stmt, transaction)

    def fetch_job(self, unique_id: str, transaction: ReadTransaction) -> Optional[GroupMessageJob]:
        stmt = select(Record).where(Record.unique_id == unique_id)
        jobs = self._fetch_jobs("fetch_job", stmt, transaction)
        return jobs[0] if jobs else None

    def exists_job_for_group(self, group_id: bytes, transaction: ReadTransaction) -> bool:
        stmt = select(exists().where(Record.group_id == bytes(group_id)))
        try:
            return bool(transaction.session.execute(stmt).scalar())
        except SQLAlchemyError as e:
            self._handle_read_failure("exists_job_for_group", e, ReadFailureMode.FATAL)

    def job_count_for_group(self, group_id: bytes, transaction: ReadTransaction) -> int:
        stmt = select(func.count()).select_from(Record).where(Record.group_id == bytes(group_id))
        try:
            return transaction.session.execute(stmt).scalar() or 0
        except SQLAlchemyError as e:
            self._handle_read_failure("job_count_for_group", e, ReadFailureMode.FATAL)

    def job_count(self, transaction: ReadTransaction) -> int:
        """Total number of enqueued jobs."""
        stmt = select(func.count()).select_from(Record)
        try:
            return transaction.session.execute(stmt).scalar() or 0
        except SQLAlchemyError as e:
            self._handle_read_failure("job_count", e, ReadFailureMode.FATAL)

    # Internals

    def _fetch_jobs(self, operation: str, stmt, transaction: ReadTransaction) -> List[GroupMessageJob]:
        try:
            records = transaction.session.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self._handle_read_failure(operation, e, ReadFailureMode.FATAL)
        return [GroupMessageJob.from_record(record) for record in records]

    def _handle_read_failure(self, operation: str, error: SQLAlchemyError, mode: ReadFailureMode) -> None:
        """Log a failed read; raise FatalStoreError in FATAL mode."""
        fatal = mode is ReadFailureMode.FATAL
        self.logger.record_read_failure(operation, type(error).__name__, fatal=fatal)

        if not fatal:
            self.logger.error(
                f"Query failed in {operation}, returning empty result",
                error=str(error),
            )
            return

        corruption_suspected = self.corruption_state.flag_read_corruption_if_necessary(error)
        if corruption_suspected:
            self.logger.record_corruption_flag()
        self.logger.critical(
            f"Unrecoverable read failure in {operation}",
            error=str(error),
            corruption_suspected=corruption_suspected,
        )
        raise FatalStoreError(operation, corruption_suspected=corruption_suspected) from error
