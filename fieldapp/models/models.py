from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    String,
    DateTime,
    Integer,
    JSON,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base


class StoredValue(Base):
    """One key/value pair of a LocalRecordStore namespace"""
    __tablename__ = "stored_values"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), nullable=False)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("namespace", "key", name="uq_stored_value_key"),
    )


class StoredListRecord(Base):
    """Append-only list entry; rows are inserted once and never updated"""
    __tablename__ = "stored_list_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    namespace: Mapped[str] = mapped_column(String(64), nullable=False)
    list_name: Mapped[str] = mapped_column(String(128), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[Optional[dict]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("namespace", "list_name", "position", name="uq_stored_list_position"),
        Index("idx_stored_list", "namespace", "list_name"),
    )
