"""
Tests for the SQL record store.
"""

import uuid

import pytest
from sqlalchemy.exc import OperationalError

from vidqa.core.exceptions import CommitError, SubscriptionError
from vidqa.core.records import ChangeType, Question
from vidqa.core.status import VideoStatus


class TestRecords:
    """Test creating and reading records."""

    def test_create_video(self, store):
        record = store.create_video("Lesson 1", media_ref="r1.mp4", questions=["What?", "Why?"])

        assert record.status == VideoStatus.UPLOADED
        assert record.media_ref == "r1.mp4"
        assert [q.text for q in record.questions] == ["What?", "Why?"]
        assert all(q.answer is None for q in record.questions)
        assert record.transcript is None

    def test_get(self, store):
        record = store.create_video("Lesson 1")
        fetched = store.get(record.id)

        assert fetched == record

    def test_get_missing(self, store):
        assert store.get(str(uuid.uuid4())) is None

    def test_get_invalid_id(self, store):
        assert store.get("not-a-uuid") is None

    def test_list_by_status_oldest_first(self, store):
        first = store.create_video("First")
        second = store.create_video("Second")

        records = store.list_by_status(VideoStatus.UPLOADED)

        assert [r.id for r in records] == [first.id, second.id]
        assert store.list_by_status(VideoStatus.TRANSCRIBED) == []

    def test_count_by_status(self, store):
        store.create_video("A")
        record = store.create_video("B")
        store.update(record.id, {"status": VideoStatus.ERROR_TRANSCRIBED}, VideoStatus.UPLOADED)

        assert store.count_by_status() == {"uploaded": 1, "error_transcribed": 1}


class TestConditionalUpdate:
    """Test updates guarded by the expected status."""

    def test_applied(self, store):
        record = store.create_video("Lesson 1", questions=["What?"])

        applied = store.update(
            record.id,
            {"status": VideoStatus.TRANSCRIBED, "transcript": "hello world"},
            VideoStatus.UPLOADED,
        )

        assert applied is True
        updated = store.get(record.id)
        assert updated.status == VideoStatus.TRANSCRIBED
        assert updated.transcript == "hello world"
        assert updated.title == "Lesson 1"
        assert [q.text for q in updated.questions] == ["What?"]

    def test_stale_expected_status(self, store):
        record = store.create_video("Lesson 1")
        store.update(record.id, {"status": VideoStatus.TRANSCRIBED, "transcript": "first"}, VideoStatus.UPLOADED)

        applied = store.update(
            record.id,
            {"status": VideoStatus.TRANSCRIBED, "transcript": "second"},
            VideoStatus.UPLOADED,
        )

        assert applied is False
        assert store.get(record.id).transcript == "first"

    def test_questions_written_in_order(self, store):
        record = store.create_video("Lesson 1", questions=["q1", "q2"])
        store.update(record.id, {"status": VideoStatus.TRANSCRIBED, "transcript": "x"}, VideoStatus.UPLOADED)

        store.update(
            record.id,
            {
                "status": VideoStatus.COMPLETED,
                "questions": [Question("q1", "a1"), Question("q2", "a2")],
            },
            VideoStatus.TRANSCRIBED,
        )

        assert store.get(record.id).questions == [Question("q1", "a1"), Question("q2", "a2")]

    def test_missing_record(self, store):
        with pytest.raises(CommitError):
            store.update(str(uuid.uuid4()), {"status": VideoStatus.TRANSCRIBED}, VideoStatus.UPLOADED)

    def test_invalid_id(self, store):
        with pytest.raises(CommitError):
            store.update("nope", {"status": VideoStatus.TRANSCRIBED}, VideoStatus.UPLOADED)

    def test_unknown_field(self, store):
        record = store.create_video("Lesson 1")
        with pytest.raises(ValueError):
            store.update(record.id, {"title": "Renamed"}, VideoStatus.UPLOADED)

    def test_database_error(self, store, monkeypatch):
        record = store.create_video("Lesson 1")

        def broken_session():
            raise OperationalError("UPDATE", {}, Exception("disk I/O error"))

        monkeypatch.setattr(store, "SessionLocal", broken_session)

        with pytest.raises(CommitError) as exc_info:
            store.update(record.id, {"status": VideoStatus.TRANSCRIBED}, VideoStatus.UPLOADED)
        assert exc_info.value.record_id == record.id


class TestSubscription:
    """Test the polling subscription."""

    def test_initial_scan_reports_matching_records(self, store):
        first = store.create_video("First")
        second = store.create_video("Second")

        with store.subscribe(VideoStatus.UPLOADED) as subscription:
            changes = next(iter(subscription))

        assert [c.type for c in changes] == [ChangeType.ADDED, ChangeType.ADDED]
        assert [c.record.id for c in changes] == [first.id, second.id]

    def test_reports_new_and_removed_records(self, store):
        first = store.create_video("First")

        with store.subscribe(VideoStatus.UPLOADED) as subscription:
            batches = iter(subscription)
            next(batches)

            second = store.create_video("Second")
            store.update(first.id, {"status": VideoStatus.ERROR_TRANSCRIBED}, VideoStatus.UPLOADED)
            changes = next(batches)

        by_type = {c.type: c.record.id for c in changes}
        assert by_type == {ChangeType.ADDED: second.id, ChangeType.REMOVED: first.id}

    def test_close_ends_iteration(self, store):
        subscription = store.subscribe(VideoStatus.UPLOADED)
        subscription.close()

        assert list(subscription) == []
        assert subscription.closed

    def test_close_is_idempotent(self, store):
        subscription = store.subscribe(VideoStatus.UPLOADED)
        subscription.close()
        subscription.close()

        assert subscription.closed

    def test_polling_failure(self, store, monkeypatch):
        def broken_list(status):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(store, "list_by_status", broken_list)

        with pytest.raises(SubscriptionError):
            with store.subscribe(VideoStatus.UPLOADED) as subscription:
                next(iter(subscription))
