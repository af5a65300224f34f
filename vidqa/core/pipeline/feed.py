"""
Change feed - newly eligible records for one status.

Wraps a record store subscription and turns its raw changes into
de-duplicated RecordAdded batches:
- only ADDED changes (a record newly matching the status) are emitted
- an id is emitted at most once while it keeps matching
- a REMOVED change forgets the id
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set

from vidqa.core.records import ChangeType, VideoRecord
from vidqa.core.status import VideoStatus
from vidqa.core.store.base import RecordStore, Subscription

logger = logging.getLogger(__name__)


@dataclass
class RecordAdded:
    """A record that newly matches the feed's status, as of the change."""
    record: VideoRecord

    @property
    def record_id(self) -> str:
        return self.record.id


class ChangeFeed:
    """
    Watch a record store for records entering a status.

    Usage:
        feed = ChangeFeed(store, VideoStatus.UPLOADED)
        with feed.watch() as batches:
            for events in batches:
                ...

    Iteration raises SubscriptionError if the subscription fails. A
    failed feed is not restarted; call watch() again for a fresh
    subscription.
    """

    def __init__(self, store: RecordStore, status: VideoStatus):
        self.store = store
        self.status = VideoStatus(status)
        self._subscription: Optional[Subscription] = None
        self._closed = False

    @contextmanager
    def watch(self) -> Iterator[Iterator[List[RecordAdded]]]:
        subscription = self.store.subscribe(self.status)
        self._subscription = subscription
        if self._closed:
            subscription.close()
        logger.info(f"Watching for {self.status} records")
        try:
            yield self._events(subscription)
        finally:
            subscription.close()
            logger.info(f"Released {self.status} subscription")

    def close(self):
        """Release the live subscription, if any (thread-safe, idempotent)."""
        self._closed = True
        if self._subscription is not None:
            self._subscription.close()

    def _events(self, subscription: Subscription) -> Iterator[List[RecordAdded]]:
        seen: Set[str] = set()

        for changes in subscription:
            batch = []
            for change in changes:
                record_id = change.record.id

                if change.type == ChangeType.REMOVED:
                    seen.discard(record_id)
                    continue
                if change.type != ChangeType.ADDED:
                    continue
                if record_id in seen:
                    logger.debug(f"Dropping duplicate delivery of {record_id}")
                    continue
                if change.record.status != self.status:
                    continue

                seen.add(record_id)
                batch.append(RecordAdded(change.record))

            if batch:
                logger.debug(f"{len(batch)} new {self.status} records")
                yield batch
