"""
Pytest configuration and fixtures.
"""

import os
import pytest

# Keep tests off real services and local .env values
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RECORD_STORE"] = "sql"
os.environ["STORAGE_TYPE"] = "local"
os.environ.pop("TRANSCRIPTION_API_KEY", None)
os.environ.pop("COMPLETION_API_KEY", None)

from vidqa.core.database import create_db_engine, init_db
from vidqa.core.pipeline.answer import AnswerStage
from vidqa.core.pipeline.orchestrator import PipelineOrchestrator
from vidqa.core.pipeline.transcribe import TranscribeStage
from vidqa.core.pipeline.writer import StatusWriter
from vidqa.core.records import VideoRecord
from vidqa.core.services.storage import LocalStorageBackend, StorageService
from vidqa.core.status import VideoStatus
from vidqa.core.store.sql import SqlRecordStore

from fakes import FakeLLM, FakeTranscriber


@pytest.fixture
def db_engine():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(db_engine):
    return SqlRecordStore(db_engine, poll_interval=0.05)


@pytest.fixture
def media_dir(tmp_path):
    path = tmp_path / "media"
    path.mkdir()
    return path


@pytest.fixture
def storage(media_dir):
    return StorageService(LocalStorageBackend(str(media_dir)))


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def transcribe_stage(storage, transcriber):
    return TranscribeStage(storage, transcriber, language="en")


@pytest.fixture
def answer_stage(llm):
    return AnswerStage(llm, model="gpt-3.5-turbo")


@pytest.fixture
def orchestrator(store, transcribe_stage, answer_stage):
    return PipelineOrchestrator(
        store,
        [transcribe_stage, answer_stage],
        resubscribe=True,
        resubscribe_delay=0.05,
    )


@pytest.fixture
def uploaded_video(store, media_dir) -> VideoRecord:
    """An uploaded video whose media exists in local storage."""
    (media_dir / "r1.mp4").write_bytes(b"fake video bytes")
    return store.create_video("Lesson 1", media_ref="r1.mp4", questions=["What?", "Why?"])


@pytest.fixture
def make_transcribed(store):
    """Factory inserting a video already moved to transcribed."""

    def _make(title: str = "T", transcript: str = "X", questions=("What?",)) -> VideoRecord:
        record = store.create_video(title, media_ref="r.mp4", questions=list(questions))
        StatusWriter(store).commit(
            record.id, VideoStatus.UPLOADED, VideoStatus.TRANSCRIBED, {"transcript": transcript}
        )
        return store.get(record.id)

    return _make


@pytest.fixture
def file_store(tmp_path):
    """Store on a SQLite file, for tests with worker threads."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'pipeline.db'}")
    init_db(engine)
    yield SqlRecordStore(engine, poll_interval=0.05)
    engine.dispose()
