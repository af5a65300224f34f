"""
Record store interfaces.

A record store provides:
- a filtered change subscription keyed on an equality predicate over status
- a partial-field update keyed by record id, conditioned on the current status
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional

from vidqa.core.records import Change, VideoRecord
from vidqa.core.status import VideoStatus


class Subscription(ABC):
    """
    Live subscription to records matching a status.

    Iterating yields batches of raw changes until the subscription is
    closed. Backend failures raise SubscriptionError; a failed
    subscription cannot be restarted.
    """

    def __init__(self, status: VideoStatus):
        self.status = status
        self._closed = False
        self._close_lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    def __iter__(self) -> Iterator[List[Change]]:
        pass

    def close(self):
        """Release the subscription. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._release()

    @abstractmethod
    def _release(self):
        """Backend-specific teardown."""
        pass

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class RecordStore(ABC):
    """Abstract video record store."""

    @abstractmethod
    def subscribe(self, status: VideoStatus) -> Subscription:
        """Open a change subscription for records with the given status."""
        pass

    @abstractmethod
    def list_by_status(self, status: VideoStatus) -> List[VideoRecord]:
        """One-shot scan of records with the given status, in delivery order."""
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[VideoRecord]:
        """Read the current snapshot of a record, or None if missing."""
        pass

    @abstractmethod
    def update(self, record_id: str, fields: Dict[str, Any], expected_status: VideoStatus) -> bool:
        """
        Atomically update the given fields if the record still has expected_status.

        Fields use record attribute names: status, transcript, questions.

        Returns:
            True if the update was applied, False if the precondition failed.

        Raises:
            CommitError: record missing or store unavailable
        """
        pass

    @abstractmethod
    def count_by_status(self) -> Dict[str, int]:
        """Number of records per status value."""
        pass

    def close(self):
        """Release store-level resources."""
        pass
