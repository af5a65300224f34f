"""
SQL record store backed by SQLAlchemy.

The change feed polls the videos table for a status and diffs the
matching ids against the previous poll:
- ids that appear become ADDED changes
- ids that disappear become REMOVED changes

Updates are a single conditional UPDATE ... WHERE id = :id AND status = :expected.
"""

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Set

from sqlalchemy import select, update, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from vidqa.core.database import create_session_factory, get_db_session
from vidqa.core.exceptions import CommitError, SubscriptionError
from vidqa.core.models.video import Video
from vidqa.core.records import Change, ChangeType, Question, VideoRecord
from vidqa.core.status import VideoStatus
from vidqa.core.store.base import RecordStore, Subscription

logger = logging.getLogger(__name__)


class SqlSubscription(Subscription):
    """Polling subscription over the videos table."""

    def __init__(self, store: "SqlRecordStore", status: VideoStatus, poll_interval: float):
        super().__init__(status)
        self._store = store
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._matching: Set[str] = set()

    def __iter__(self) -> Iterator[List[Change]]:
        while not self._stop.is_set():
            try:
                records = self._store.list_by_status(self.status)
            except SQLAlchemyError as e:
                raise SubscriptionError(f"Polling {self.status} failed: {e}") from e

            changes = self._diff(records)
            if changes:
                yield changes
            self._stop.wait(self.poll_interval)

    def _diff(self, records: List[VideoRecord]) -> List[Change]:
        current = {r.id for r in records}
        changes = [
            Change(ChangeType.ADDED, r) for r in records if r.id not in self._matching
        ]
        for record_id in self._matching - current:
            # Removed records are only known by id at this point
            changes.append(Change(ChangeType.REMOVED, VideoRecord(id=record_id, status=self.status)))
        self._matching = current
        return changes

    def _release(self):
        self._stop.set()


class SqlRecordStore(RecordStore):
    """
    Record store on a SQL database.

    Usage:
        store = SqlRecordStore(engine, poll_interval=5)
        with store.subscribe(VideoStatus.UPLOADED) as subscription:
            for changes in subscription:
                ...
    """

    def __init__(self, engine: Engine, poll_interval: float = 5.0):
        self.engine = engine
        self.poll_interval = poll_interval
        self.SessionLocal = create_session_factory(engine)

    def subscribe(self, status: VideoStatus) -> SqlSubscription:
        logger.debug(f"Subscribing to videos with status={status}")
        return SqlSubscription(self, VideoStatus(status), self.poll_interval)

    def list_by_status(self, status: VideoStatus) -> List[VideoRecord]:
        """Records with the given status, oldest first."""
        with get_db_session(self.SessionLocal) as db:
            rows = db.execute(
                select(Video)
                .where(Video.status == VideoStatus(status).value)
                .order_by(Video.created_at.asc(), Video.id.asc())
            ).scalars().all()
            return [row.to_record() for row in rows]

    def get(self, record_id: str) -> Optional[VideoRecord]:
        video_id = _parse_id(record_id)
        if video_id is None:
            return None
        with get_db_session(self.SessionLocal) as db:
            video = db.get(Video, video_id)
            return video.to_record() if video else None

    def update(self, record_id: str, fields: Dict[str, Any], expected_status: VideoStatus) -> bool:
        video_id = _parse_id(record_id)
        if video_id is None:
            raise CommitError(f"Invalid video id: {record_id}", record_id)

        values = self._to_columns(fields)
        values["updated_at"] = datetime.now(timezone.utc)

        try:
            with get_db_session(self.SessionLocal) as db:
                result = db.execute(
                    update(Video)
                    .where(Video.id == video_id, Video.status == VideoStatus(expected_status).value)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 1:
                    return True

                if db.get(Video, video_id) is None:
                    raise CommitError(f"Video {record_id} not found", record_id)
                return False
        except SQLAlchemyError as e:
            raise CommitError(f"Update of video {record_id} failed: {e}", record_id) from e

    def count_by_status(self) -> Dict[str, int]:
        with get_db_session(self.SessionLocal) as db:
            result = db.execute(
                select(Video.status, func.count(Video.id)).group_by(Video.status)
            )
            return dict(result.fetchall())

    def create_video(
        self,
        title: str,
        media_ref: Optional[str] = None,
        questions: Optional[List[str]] = None,
    ) -> VideoRecord:
        """Insert a new uploaded video (upload flow, seeding and tests)."""
        with get_db_session(self.SessionLocal) as db:
            video = Video(
                status=VideoStatus.UPLOADED.value,
                title=title,
                media_ref=media_ref,
                questions=[Question(text=q).to_dict() for q in (questions or [])],
            )
            db.add(video)
            db.flush()
            return video.to_record()

    def close(self):
        self.engine.dispose()

    @staticmethod
    def _to_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
        values = {}
        for name, value in fields.items():
            if name == "status":
                values["status"] = VideoStatus(value).value
            elif name == "transcript":
                values["transcript"] = value
            elif name == "questions":
                values["questions"] = [q.to_dict() for q in value]
            else:
                raise ValueError(f"Field not writable by the pipeline: {name}")
        return values


def _parse_id(record_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        return None
