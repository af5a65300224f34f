"""
Record store backends.

Provides:
- RecordStore / Subscription: abstract interfaces
- SqlRecordStore: SQLAlchemy backend with a polling change feed
- FirestoreRecordStore: Firestore backend with a query listener
"""

from typing import Optional

from vidqa.core.config import Settings, get_settings
from vidqa.core.exceptions import ConfigurationError
from vidqa.core.store.base import RecordStore, Subscription
from vidqa.core.store.sql import SqlRecordStore


def build_record_store(settings: Optional[Settings] = None) -> RecordStore:
    """Create the record store selected by RECORD_STORE."""
    settings = settings or get_settings()

    if settings.record_store == "sql":
        from vidqa.core.database import engine_from_settings, init_db

        engine = engine_from_settings(settings)
        init_db(engine)
        return SqlRecordStore(engine, poll_interval=settings.poll_interval)

    if settings.record_store == "firestore":
        from vidqa.core.firebase import get_firestore_client
        from vidqa.core.store.firestore import FirestoreRecordStore

        return FirestoreRecordStore(
            get_firestore_client(settings),
            collection_name=settings.collection_name,
        )

    raise ConfigurationError(f"Unknown record store: {settings.record_store}")


__all__ = [
    "RecordStore",
    "Subscription",
    "SqlRecordStore",
    "build_record_store",
]
