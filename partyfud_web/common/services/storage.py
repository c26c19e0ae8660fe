"""Key-value backends with local-storage semantics.

Values are opaque strings; callers serialize with :func:`load_json` and
:func:`save_json`. Read faults are logged and surface as an absent key, write
faults (``set_item``, ``remove_item``) are logged and reported as ``False``;
neither is raised.
"""

import json
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..models.storage_entry import StorageEntry
from .logging import log_event


class MemoryStorage:
    """Process-local storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def remove_item(self, key: str) -> bool:
        self._data.pop(key, None)
        return True


class SqlStorage:
    """Storage backed by the ``storage_entry`` table."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        try:
            with self._session_factory() as session:
                row = session.get(StorageEntry, key)
                return row.value if row else None
        except SQLAlchemyError as exc:
            log_event("error", "storage.read_failed", key=key, error=str(exc))
            return None

    def set_item(self, key: str, value: str) -> bool:
        try:
            with self._session_factory() as session:
                row = session.get(StorageEntry, key)
                if row:
                    row.value = value
                else:
                    session.add(StorageEntry(key=key, value=value))
                session.flush()
            return True
        except SQLAlchemyError as exc:
            log_event("error", "storage.write_failed", key=key, error=str(exc))
            return False

    def remove_item(self, key: str) -> bool:
        try:
            with self._session_factory() as session:
                row = session.get(StorageEntry, key)
                if row:
                    session.delete(row)
                    session.flush()
            return True
        except SQLAlchemyError as exc:
            log_event("error", "storage.write_failed", key=key, error=str(exc))
            return False


def load_json(storage, key: str) -> Any:
    raw = storage.get_item(key)
    if raw is None or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError as exc:
        log_event("warning", "storage.corrupt", key=key, error=str(exc))
        return None


def save_json(storage, key: str, value: Any) -> bool:
    return storage.set_item(key, json.dumps(value, ensure_ascii=False))
