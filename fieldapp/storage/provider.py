from datetime import date, datetime
from typing import Any, Dict, List, Optional


_DATETIME_TAG = "__datetime__"
_DATE_TAG = "__date__"


def encode_value(value: Any) -> Any:
    """Convert a value into JSON-safe form, tagging dates and datetimes so they round-trip."""
    if isinstance(value, datetime):
        return {_DATETIME_TAG: value.isoformat()}
    if isinstance(value, date):
        return {_DATE_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    raise TypeError(f"Unsupported value type for local store: {type(value).__name__}")


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value.keys()) == {_DATETIME_TAG}:
            return datetime.fromisoformat(value[_DATETIME_TAG])
        if set(value.keys()) == {_DATE_TAG}:
            return date.fromisoformat(value[_DATE_TAG])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


class RecordStore:
    """
    Durable key/value and append-only list persistence for one namespace.

    Every put/append is its own atomic unit and is durable when the call returns.
    A write that cannot be committed raises StorageFailure and leaves the prior
    value (or list) unchanged. A missing key reads as None; a read the database
    cannot answer raises StorageFailure rather than looking like a missing key.
    """

    namespace: str

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def put(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def append_to_list(self, list_name: str, record: Dict[str, Any]) -> int:
        raise NotImplementedError

    def read_list(self, list_name: str) -> List[Dict[str, Any]]:
        raise NotImplementedError
