"""
SQLAlchemy-backed record store over the device-local SQLite file.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import StorageFailure
from ..models.models import StoredValue, StoredListRecord
from .provider import RecordStore, encode_value, decode_value


logger = structlog.get_logger(__name__)


class SqlRecordStore(RecordStore):
    def __init__(self, session_factory: sessionmaker, namespace: str):
        self._session_factory = session_factory
        self.namespace = namespace

    @contextmanager
    def _writing(self, operation: str, **context):
        """One transaction per write; on any database error nothing is committed."""
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(
                "storage_write_failed",
                namespace=self.namespace,
                operation=operation,
                error=str(e),
                **context,
            )
            raise StorageFailure(f"Could not persist {operation} in '{self.namespace}'") from e
        finally:
            session.close()

    @contextmanager
    def _reading(self, operation: str, **context):
        """A missing key is absent; a database error is a StorageFailure, never absent."""
        session: Session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(
                "storage_read_failed",
                namespace=self.namespace,
                operation=operation,
                error=str(e),
                **context,
            )
            raise StorageFailure(f"Could not read {operation} in '{self.namespace}'") from e
        finally:
            session.close()

    def get(self, key: str) -> Optional[Any]:
        with self._reading("get", key=key) as session:
            row = session.execute(
                select(StoredValue.value)
                .where(StoredValue.namespace == self.namespace)
                .where(StoredValue.key == key)
            ).first()
        if row is None:
            return None
        return decode_value(row[0])

    def put(self, key: str, value: Any) -> None:
        encoded = encode_value(value)
        with self._writing("put", key=key) as session:
            existing = session.execute(
                select(StoredValue)
                .where(StoredValue.namespace == self.namespace)
                .where(StoredValue.key == key)
            ).scalar_one_or_none()
            if existing is None:
                session.add(StoredValue(namespace=self.namespace, key=key, value=encoded))
            else:
                existing.value = encoded
                existing.updated_at = datetime.now(timezone.utc)

    def remove(self, key: str) -> None:
        with self._writing("remove", key=key) as session:
            session.execute(
                delete(StoredValue)
                .where(StoredValue.namespace == self.namespace)
                .where(StoredValue.key == key)
            )

    def clear(self) -> None:
        with self._writing("clear") as session:
            session.execute(delete(StoredValue).where(StoredValue.namespace == self.namespace))

    def append_to_list(self, list_name: str, record: Dict[str, Any]) -> int:
        payload = encode_value(record)
        with self._writing("append", list_name=list_name) as session:
            position = session.execute(
                select(func.count(StoredListRecord.id))
                .where(StoredListRecord.namespace == self.namespace)
                .where(StoredListRecord.list_name == list_name)
            ).scalar_one()
            # Two racing appends collide on the unique position; the loser fails cleanly
            session.add(StoredListRecord(
                namespace=self.namespace,
                list_name=list_name,
                position=position,
                payload=payload,
            ))
        return position

    def read_list(self, list_name: str) -> List[Dict[str, Any]]:
        with self._reading("read_list", list_name=list_name) as session:
            rows = session.execute(
                select(StoredListRecord.payload)
                .where(StoredListRecord.namespace == self.namespace)
                .where(StoredListRecord.list_name == list_name)
                .order_by(StoredListRecord.position)
            ).all()
        return [decode_value(r[0]) for r in rows]
