"""
Local record store on SQLite with SQLAlchemy.

Implements the same CRUD surface as the HTTP client so the dashboard and
CLI can run offline against a file database.
"""

import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, List, Mapping

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .errors import StorageError
from .logger import get_logger
from .models import COLLECTIONS, Record

logger = get_logger()

Base = declarative_base()


class StoredRecord(Base):
    """One record of any collection."""

    __tablename__ = "records"
    __table_args__ = (UniqueConstraint("collection", "record_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)  # insertion order
    collection = Column(String, nullable=False, index=True)
    record_id = Column(String(24), nullable=False)
    fields = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=True)

    def to_record(self) -> Record:
        return Record(
            record_id=self.record_id,
            fields=self.fields or {},
            createdat=self.created_at.isoformat() if self.created_at else None,
            updatedat=self.updated_at.isoformat() if self.updated_at else None,
        )


def new_record_id() -> str:
    """24 hex characters, the id shape applookup references expect."""
    return uuid.uuid4().hex[:24]


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    engine.dispose()


class SqlRecordStore:
    """RecordBackend backed by a SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)
        self.engine = create_engine(f"sqlite:///{self.db_path}")
        self.Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise StorageError(collection, "unknown collection")

    def _find(self, session, collection: str, record_id: str) -> StoredRecord:
        row = session.query(StoredRecord).filter_by(collection=collection, record_id=record_id).first()
        if row is None:
            raise StorageError(collection, f"record not found: {record_id}", status=404)
        return row

    def get_records(self, collection: str) -> List[Record]:
        self._check_collection(collection)
        try:
            with self.Session() as session:
                rows = (
                    session.query(StoredRecord)
                    .filter_by(collection=collection)
                    .order_by(StoredRecord.id)
                    .all()
                )
                return [row.to_record() for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to load records", collection=collection, error=str(e))
            raise StorageError(collection, f"database error: {e}") from e

    def create_record(self, collection: str, fields: Mapping[str, Any]) -> Record:
        self._check_collection(collection)
        row = StoredRecord(
            collection=collection,
            record_id=new_record_id(),
            fields=dict(fields),
            created_at=datetime.now(),
        )
        try:
            with self.Session() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            logger.error("Failed to create record", collection=collection, error=str(e))
            raise StorageError(collection, f"database error: {e}") from e
        logger.info("Created record", collection=collection, record_id=row.record_id)
        return row.to_record()

    def update_record(self, collection: str, record_id: str, fields: Mapping[str, Any]) -> Record:
        self._check_collection(collection)
        try:
            with self.Session() as session, session.begin():
                row = self._find(session, collection, record_id)
                # JSON columns only notice reassignment
                row.fields = {**(row.fields or {}), **dict(fields)}
                row.updated_at = datetime.now()
                record = row.to_record()
        except SQLAlchemyError as e:
            logger.error("Failed to update record", collection=collection, record_id=record_id, error=str(e))
            raise StorageError(collection, f"database error: {e}") from e
        logger.info("Updated record", collection=collection, record_id=record_id)
        return record

    def delete_record(self, collection: str, record_id: str) -> None:
        self._check_collection(collection)
        try:
            with self.Session() as session, session.begin():
                session.delete(self._find(session, collection, record_id))
        except SQLAlchemyError as e:
            logger.error("Failed to delete record", collection=collection, record_id=record_id, error=str(e))
            raise StorageError(collection, f"database error: {e}") from e
        logger.info("Deleted record", collection=collection, record_id=record_id)
