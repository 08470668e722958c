"""
Detached job values handed to and returned from the job store.

A GroupMessageJob never references a database session: reads copy each row
into a new frozen instance, so callers own what they receive.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .database import IncomingGroupMessageJobRecord
from .exceptions import InvalidJobError
from .schema import validate_job


def _to_bytes(value):
    if value is None:
        return None
    return bytes(value)


@dataclass(frozen=True)
class GroupMessageJob:
    """One received group message awaiting processing."""

    unique_id: str
    group_id: bytes
    envelope_data: bytes
    plaintext_data: Optional[bytes]
    was_received_by_ud: bool
    server_delivery_timestamp: int
    id: Optional[int] = None  # assigned by storage on insert
    created_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        envelope_data: bytes,
        plaintext_data: Optional[bytes],
        group_id: bytes,
        was_received_by_ud: bool,
        server_delivery_timestamp: int,
    ) -> "GroupMessageJob":
        """
        Build a new, not yet persisted job with a fresh unique id.

        Raises:
            InvalidJobError: If any field has the wrong type or range
        """
        fields = {
            "envelope_data": envelope_data,
            "plaintext_data": plaintext_data,
            "group_id": group_id,
            "was_received_by_ud": was_received_by_ud,
            "server_delivery_timestamp": server_delivery_timestamp,
        }
        errors = validate_job(fields)
        if errors:
            raise InvalidJobError(errors)

        return cls(
            unique_id=str(uuid.uuid4()),
            group_id=_to_bytes(group_id),
            envelope_data=_to_bytes(envelope_data),
            plaintext_data=_to_bytes(plaintext_data),
            was_received_by_ud=was_received_by_ud,
            server_delivery_timestamp=server_delivery_timestamp,
        )

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @classmethod
    def from_record(cls, record: IncomingGroupMessageJobRecord) -> "GroupMessageJob":
        return cls(
            unique_id=record.unique_id,
            group_id=bytes(record.group_id),
            envelope_data=bytes(record.envelope_data),
            plaintext_data=_to_bytes(record.plaintext_data),
            was_received_by_ud=bool(record.was_received_by_ud),
            server_delivery_timestamp=record.server_delivery_timestamp,
            id=record.id,
            created_at=record.created_at,
        )

    def to_record(self) -> IncomingGroupMessageJobRecord:
        return IncomingGroupMessageJobRecord(
            unique_id=self.unique_id,
            group_id=self.group_id,
            envelope_data=self.envelope_data,
            plaintext_data=self.plaintext_data,
            was_received_by_ud=self.was_received_by_ud,
            server_delivery_timestamp=self.server_delivery_timestamp,
            created_at=self.created_at or datetime.now(),
        )
