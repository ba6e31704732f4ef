import copy
import threading
from typing import Any, Dict, List, Optional

from .provider import RecordStore, encode_value, decode_value


class InMemoryRecordStore(RecordStore):
    """Process-local store with the same semantics as the SQL store. Used by tests."""

    def __init__(self, namespace: str, shared: Optional[Dict[str, Any]] = None):
        self.namespace = namespace
        # Several namespaces may share one backing dict, like tables in one file
        self._data = shared if shared is not None else {}
        self._lock = threading.Lock()
        self._data.setdefault(("values", namespace), {})
        self._data.setdefault(("lists", namespace), {})

    @property
    def _values(self) -> Dict[str, Any]:
        return self._data[("values", self.namespace)]

    @property
    def _lists(self) -> Dict[str, List[Any]]:
        return self._data[("lists", self.namespace)]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            if key not in self._values:
                return None
            return decode_value(copy.deepcopy(self._values[key]))

    def put(self, key: str, value: Any) -> None:
        encoded = encode_value(value)
        with self._lock:
            self._values[key] = encoded

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def append_to_list(self, list_name: str, record: Dict[str, Any]) -> int:
        payload = encode_value(record)
        with self._lock:
            items = self._lists.setdefault(list_name, [])
            items.append(payload)
            return len(items) - 1

    def read_list(self, list_name: str) -> List[Dict[str, Any]]:
        with self._lock:
            items = copy.deepcopy(self._lists.get(list_name, []))
        return [decode_value(i) for i in items]
