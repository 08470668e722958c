from typing import Any, Dict, List

from .database import UINT64_MAX

REQUIRED_BYTES_FIELDS = ["group_id", "envelope_data"]
OPTIONAL_BYTES_FIELDS = ["plaintext_data"]
NON_EMPTY_BYTES_FIELDS = ["group_id"]


def _is_bytes(v: Any) -> bool:
    return isinstance(v, (bytes, bytearray, memoryview))


def validate_job(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Payloads are opaque: only types and ranges are checked, never contents.
    """
    errors: List[str] = []

    # Required byte fields
    for f in REQUIRED_BYTES_FIELDS:
        if f not in data or data[f] is None:
            errors.append(f"Missing required field: {f}")
        elif not _is_bytes(data[f]):
            errors.append(f"Field '{f}' must be bytes")
        elif f in NON_EMPTY_BYTES_FIELDS and len(data[f]) == 0:
            errors.append(f"Field '{f}' must not be empty")

    # Optional bytes: absent and None are both valid
    for f in OPTIONAL_BYTES_FIELDS:
        if data.get(f) is not None and not _is_bytes(data[f]):
            errors.append(f"Field '{f}' must be bytes or None")

    if not isinstance(data.get("was_received_by_ud"), bool):
        errors.append("Field 'was_received_by_ud' must be a bool")

    # bool is an int subclass; reject it here too
    ts = data.get("server_delivery_timestamp")
    if not isinstance(ts, int) or isinstance(ts, bool):
        errors.append("Field 'server_delivery_timestamp' must be an int")
    elif not 0 <= ts <= UINT64_MAX:
        errors.append("Field 'server_delivery_timestamp' must be within unsigned 64-bit range")

    return errors
