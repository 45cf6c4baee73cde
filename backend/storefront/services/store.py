"""Single-key blob stores used to persist estimate ledgers."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional
import logging
import threading

from sqlmodel import SQLModel

from storefront.db.session import get_engine, get_session
from storefront.models.estimate import StoredEstimate

logger = logging.getLogger(__name__)


class BlobStore(ABC):
    """A string-keyed store holding one text blob per key."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Overwrite the whole blob stored under `key`."""
        ...


class MemoryBlobStore(BlobStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._blobs: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._blobs.get(key)

    def write(self, key: str, value: str) -> None:
        with self._lock:
            self._blobs[key] = value


class SQLBlobStore(BlobStore):
    """Blob store backed by the `stored_estimate` table."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url

    def create_schema(self) -> None:
        engine = get_engine(self.database_url)
        SQLModel.metadata.create_all(engine)
        logger.debug("Ensured stored_estimate table url=%s", engine.url)

    def read(self, key: str) -> Optional[str]:
        session = get_session(self.database_url)
        try:
            row = session.get(StoredEstimate, key)
            return row.payload if row is not None else None
        finally:
            session.close()

    def write(self, key: str, value: str) -> None:
        session = get_session(self.database_url)
        try:
            row = session.get(StoredEstimate, key)
            if row is None:
                row = StoredEstimate(key=key, payload=value)
            else:
                row.payload = value
                row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
        finally:
            session.close()


def open_store(database_url: Optional[str] = None) -> BlobStore:
    """Return a SQL-backed store, or an in-memory one if the database is unusable."""
    store = SQLBlobStore(database_url)
    try:
        store.create_schema()
    except Exception as e:
        logger.exception("Database unavailable, estimates will not survive a restart: %s", e)
        return MemoryBlobStore()
    return store
