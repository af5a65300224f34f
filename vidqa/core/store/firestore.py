"""
Firestore record store.

Subscriptions use a query listener (on_snapshot). The listener runs on
a Firestore background thread and hands each snapshot's changes to the
consuming thread through a queue.

Updates run in a transaction that re-reads the status before writing,
so a stale or duplicate delivery never overwrites a later state.
"""

import logging
import queue
from typing import Any, Dict, Iterator, List, Optional

from vidqa.core.exceptions import CommitError, SubscriptionError
from vidqa.core.records import Change, ChangeType, Question, VideoRecord, parse_status
from vidqa.core.status import VideoStatus
from vidqa.core.store.base import RecordStore, Subscription

logger = logging.getLogger(__name__)

# Record attribute -> document field
FIELD_NAMES = {
    "status": "status",
    "media_ref": "mediaRef",
    "title": "title",
    "transcript": "transcript",
    "questions": "questions",
}

_CLOSED = object()


def snapshot_to_record(snapshot) -> VideoRecord:
    """Convert a Firestore DocumentSnapshot into a VideoRecord."""
    data = snapshot.to_dict() or {}
    return VideoRecord(
        id=snapshot.id,
        status=parse_status(data.get(FIELD_NAMES["status"]), snapshot.id),
        media_ref=data.get(FIELD_NAMES["media_ref"]),
        title=data.get(FIELD_NAMES["title"]) or "",
        transcript=data.get(FIELD_NAMES["transcript"]),
        questions=[Question.from_dict(q) for q in data.get(FIELD_NAMES["questions"]) or []],
    )


class FirestoreSubscription(Subscription):
    """Query listener on a status predicate."""

    def __init__(self, query, status: VideoStatus, poll_interval: float = 1.0):
        super().__init__(status)
        self.poll_interval = poll_interval
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._watch = query.on_snapshot(self._on_snapshot)

    def _on_snapshot(self, docs, changes, read_time):
        try:
            batch = [
                Change(ChangeType(change.type.name.lower()), snapshot_to_record(change.document))
                for change in changes
            ]
        except Exception as e:
            # Surfaced to the consumer as SubscriptionError
            self._queue.put(e)
            return
        self._queue.put(batch)

    def __iter__(self) -> Iterator[List[Change]]:
        while not self._closed:
            try:
                item = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                if not self._watch.is_active and not self._closed:
                    raise SubscriptionError(f"Firestore listener for {self.status} stopped")
                continue

            if item is _CLOSED:
                return
            if isinstance(item, Exception):
                raise SubscriptionError(f"Firestore listener for {self.status} failed: {item}") from item
            if item:
                yield item

    def _release(self):
        self._watch.unsubscribe()
        self._queue.put(_CLOSED)


class FirestoreRecordStore(RecordStore):
    """Record store on a Firestore collection."""

    def __init__(self, client, collection_name: str = "videos", poll_interval: float = 1.0):
        self.client = client
        self.collection_name = collection_name
        self.poll_interval = poll_interval

    @property
    def collection(self):
        return self.client.collection(self.collection_name)

    def _status_query(self, status: VideoStatus):
        from google.cloud.firestore_v1.base_query import FieldFilter

        return self.collection.where(filter=FieldFilter(FIELD_NAMES["status"], "==", VideoStatus(status).value))

    def subscribe(self, status: VideoStatus) -> FirestoreSubscription:
        status = VideoStatus(status)
        query = self._status_query(status)
        logger.debug(f"Listening on {self.collection_name} where status == {status}")
        return FirestoreSubscription(query, status, self.poll_interval)

    def list_by_status(self, status: VideoStatus) -> List[VideoRecord]:
        query = self._status_query(status)
        return [snapshot_to_record(snapshot) for snapshot in query.stream()]

    def get(self, record_id: str) -> Optional[VideoRecord]:
        snapshot = self.collection.document(record_id).get()
        if not snapshot.exists:
            return None
        return snapshot_to_record(snapshot)

    def update(self, record_id: str, fields: Dict[str, Any], expected_status: VideoStatus) -> bool:
        from google.api_core.exceptions import GoogleAPICallError
        from google.cloud import firestore

        doc_ref = self.collection.document(record_id)
        payload = self._to_document(fields)
        expected = VideoStatus(expected_status).value

        @firestore.transactional
        def apply(transaction) -> bool:
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise CommitError(f"Video {record_id} not found", record_id)
            if snapshot.get(FIELD_NAMES["status"]) != expected:
                return False
            transaction.update(doc_ref, payload)
            return True

        try:
            return apply(self.client.transaction())
        except GoogleAPICallError as e:
            raise CommitError(f"Update of video {record_id} failed: {e}", record_id) from e

    def count_by_status(self) -> Dict[str, int]:
        counts = {}
        for status in VideoStatus:
            result = self._status_query(status).count().get()
            counts[status.value] = int(result[0][0].value)
        return {k: v for k, v in counts.items() if v}

    def close(self):
        self.client.close()

    @staticmethod
    def _to_document(fields: Dict[str, Any]) -> Dict[str, Any]:
        payload = {}
        for name, value in fields.items():
            if name == "status":
                payload[FIELD_NAMES["status"]] = VideoStatus(value).value
            elif name == "transcript":
                payload[FIELD_NAMES["transcript"]] = value
            elif name == "questions":
                payload[FIELD_NAMES["questions"]] = [q.to_dict() for q in value]
            else:
                raise ValueError(f"Field not writable by the pipeline: {name}")
        return payload
