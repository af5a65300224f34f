"""
Pipeline orchestrator - watches the record store and runs stages.

Architecture:
- One change feed and one worker thread per stage
- Records of a batch are processed one at a time, in delivery order
- The record store is the source of truth for state
- A record's failure never stops the rest of its batch

State machine:
    uploaded -> transcribed -> completed
    uploaded -> error_transcribed
    transcribed -> error_openai

Usage:
    orchestrator = build_orchestrator(settings)
    orchestrator.run()              # blocks until request_stop()
    orchestrator.run_once("answer") # process what is eligible now
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from vidqa.core.config import Settings, get_settings
from vidqa.core.exceptions import CommitError, StageProcessingError, SubscriptionError
from vidqa.core.pipeline.base import BatchResult, PipelineStage, StageResult
from vidqa.core.pipeline.feed import ChangeFeed, RecordAdded
from vidqa.core.pipeline.writer import StatusWriter
from vidqa.core.records import VideoRecord
from vidqa.core.store.base import RecordStore

logger = logging.getLogger(__name__)

# Stage names in pipeline order
STAGE_NAMES = ["transcribe", "answer"]


class PipelineOrchestrator:
    """
    Wires a change feed, a stage and the status writer for each stage.

    Collaborators are passed in explicitly; the orchestrator owns the
    feed subscriptions and releases them on stop().
    """

    def __init__(
        self,
        store: RecordStore,
        stages: List[PipelineStage],
        writer: Optional[StatusWriter] = None,
        resubscribe: bool = True,
        resubscribe_delay: float = 10.0,
    ):
        self.store = store
        self.stages: Dict[str, PipelineStage] = {stage.name: stage for stage in stages}
        self.writer = writer or StatusWriter(store)
        self.resubscribe = resubscribe
        self.resubscribe_delay = resubscribe_delay

        self._stop_requested = threading.Event()
        self._lock = threading.Lock()
        self._threads: Dict[str, threading.Thread] = {}
        self._feeds: Dict[str, ChangeFeed] = {}
        self._totals: Dict[str, BatchResult] = {name: BatchResult() for name in self.stages}
        self._started_at: Optional[datetime] = None

    def get_stage(self, name: str) -> PipelineStage:
        if name not in self.stages:
            raise KeyError(f"Unknown stage: {name}")
        return self.stages[name]

    # -------------------------------------------------------------------------
    # Per-record execution
    # -------------------------------------------------------------------------

    def process_record(self, stage: PipelineStage, record: VideoRecord) -> StageResult:
        """
        Run one stage on one record and commit the outcome.

        The record is re-read first: a delivery for a record that has
        already left the stage's source status is a no-op.
        """
        current = self.store.get(record.id)
        if current is None:
            logger.warning(f"{stage.name}: video {record.id} no longer exists, skipping")
            return StageResult(success=True, record_id=record.id, skipped=True, error="Not found")

        if current.status != stage.source_status:
            logger.info(
                f"{stage.name}: video {record.id} is {current.status}, not {stage.source_status}, skipping"
            )
            return StageResult(
                success=True, record_id=record.id, skipped=True,
                error=f"Status is {current.status}",
            )

        logger.info(f"Running {stage.name} on video {record.id}")

        try:
            fields = stage.process(current)
        except StageProcessingError as e:
            logger.error(f"{stage.name} failed for video {record.id}: {e}")
            return self._fail(stage, record.id, str(e))
        except Exception as e:
            logger.exception(f"{stage.name} error for video {record.id}")
            return self._fail(stage, record.id, str(e))

        try:
            applied = self.writer.commit(record.id, stage.source_status, stage.success_status, fields)
        except CommitError as e:
            # The stage result is lost; no reconciliation is attempted
            logger.error(f"Could not commit {stage.name} result for video {record.id}: {e}")
            return self._fail(stage, record.id, str(e))
        except Exception as e:
            logger.exception(f"{stage.name} commit error for video {record.id}")
            return self._fail(stage, record.id, str(e))

        if not applied:
            return StageResult(
                success=True, record_id=record.id, skipped=True,
                error="Status changed during processing",
            )

        logger.info(f"{stage.name} completed for video {record.id}")
        return StageResult(success=True, record_id=record.id, status=stage.success_status, data=fields)

    def _fail(self, stage: PipelineStage, record_id: str, error: str) -> StageResult:
        """Best-effort move to the stage's error status."""
        status = None
        try:
            if self.writer.commit(record_id, stage.source_status, stage.error_status):
                status = stage.error_status
        except Exception as e:
            logger.error(f"Could not mark video {record_id} as {stage.error_status}: {e}")

        return StageResult(success=False, record_id=record_id, status=status, error=error)

    def handle_batch(self, stage: PipelineStage, events: List[RecordAdded]) -> BatchResult:
        """Process a feed batch, one record at a time, in delivery order."""
        batch_result = BatchResult()

        logger.info(f"Running {stage.name} on {len(events)} videos")

        for event in events:
            try:
                result = self.process_record(stage, event.record)
            except Exception as e:
                logger.exception(f"{stage.name} error for video {event.record_id}")
                result = StageResult(success=False, record_id=event.record_id, error=str(e))
            batch_result.add_result(event.record_id, result)

        logger.info(
            f"{stage.name} batch complete: "
            f"{batch_result.successful} successful, "
            f"{batch_result.failed} failed, "
            f"{batch_result.skipped} skipped"
        )

        with self._lock:
            self._totals[stage.name].merge(batch_result)

        return batch_result

    def run_once(self, stage_name: str) -> BatchResult:
        """Process every record currently eligible for a stage, then return."""
        stage = self.get_stage(stage_name)
        records = self.store.list_by_status(stage.source_status)
        if not records:
            logger.info(f"No {stage.source_status} videos for {stage.name}")
            return BatchResult()
        return self.handle_batch(stage, [RecordAdded(r) for r in records])

    # -------------------------------------------------------------------------
    # Watch loops
    # -------------------------------------------------------------------------

    def _watch_stage(self, stage: PipelineStage):
        """Worker thread: feed -> stage -> writer until stop is requested."""
        while not self._stop_requested.is_set():
            feed = ChangeFeed(self.store, stage.source_status)
            with self._lock:
                self._feeds[stage.name] = feed
            if self._stop_requested.is_set():
                break

            try:
                with feed.watch() as batches:
                    for events in batches:
                        self.handle_batch(stage, events)
                        if self._stop_requested.is_set():
                            break
            except SubscriptionError as e:
                logger.error(f"{stage.name} subscription failed: {e}")
                if not self.resubscribe:
                    break
                logger.info(f"Re-subscribing {stage.name} in {self.resubscribe_delay}s")
                self._stop_requested.wait(self.resubscribe_delay)
            except Exception as e:
                logger.exception(f"{stage.name} watch error: {e}")
                if not self.resubscribe:
                    break
                self._stop_requested.wait(self.resubscribe_delay)
            finally:
                with self._lock:
                    self._feeds.pop(stage.name, None)

        logger.info(f"{stage.name} watch stopped")

    def start(self):
        """Start one watch thread per stage."""
        if any(t.is_alive() for t in self._threads.values()):
            raise RuntimeError("Orchestrator already running")

        self._stop_requested.clear()
        self._started_at = datetime.now(timezone.utc)

        for stage in self.stages.values():
            thread = threading.Thread(
                target=self._watch_stage,
                args=(stage,),
                name=f"watch-{stage.name}",
                daemon=True,
            )
            self._threads[stage.name] = thread
            thread.start()

        logger.info(f"Pipeline started (stages={list(self.stages)})")

    def request_stop(self):
        """Ask all watches to stop and release their subscriptions."""
        self._stop_requested.set()
        with self._lock:
            feeds = list(self._feeds.values())
        for feed in feeds:
            feed.close()
        logger.info("Stop requested - releasing subscriptions")

    def stop(self, timeout: Optional[float] = None):
        """Stop watching and wait for the worker threads."""
        self.request_stop()
        for thread in self._threads.values():
            thread.join(timeout)
        self._threads.clear()

    def run(self):
        """Start the watches and block until request_stop() is called."""
        self.start()
        try:
            self._stop_requested.wait()
        finally:
            self.stop()

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads.values())

    def get_status(self) -> Dict[str, Any]:
        """Current running state, per-stage totals and record counts."""
        with self._lock:
            totals = {
                name: {
                    "processed": result.total,
                    "successful": result.successful,
                    "failed": result.failed,
                    "skipped": result.skipped,
                }
                for name, result in self._totals.items()
            }

        return {
            "running": self.is_running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "stages": totals,
            "status_counts": self.store.count_by_status(),
        }


def build_orchestrator(
    settings: Optional[Settings] = None,
    stage_names: Optional[List[str]] = None,
) -> PipelineOrchestrator:
    """
    Build the orchestrator and its collaborators from settings.

    Only the services of the selected stages are constructed, so an
    answer-only worker needs no transcription credentials.
    """
    from vidqa.core.pipeline.answer import AnswerStage
    from vidqa.core.pipeline.transcribe import TranscribeStage
    from vidqa.core.services.llm import build_llm_service
    from vidqa.core.services.storage import build_storage_service
    from vidqa.core.services.transcription import build_transcription_service
    from vidqa.core.store import build_record_store

    settings = settings or get_settings()

    stage_names = stage_names or STAGE_NAMES
    unknown = set(stage_names) - set(STAGE_NAMES)
    if unknown:
        raise KeyError(f"Unknown stage: {sorted(unknown)[0]}")

    stages: List[PipelineStage] = []
    if "transcribe" in stage_names:
        stages.append(TranscribeStage(
            build_storage_service(settings),
            build_transcription_service(settings),
            language=settings.target_language,
        ))
    if "answer" in stage_names:
        stages.append(AnswerStage(build_llm_service(settings), model=settings.model_id))

    store = build_record_store(settings)

    return PipelineOrchestrator(
        store,
        stages,
        resubscribe=settings.resubscribe,
        resubscribe_delay=settings.resubscribe_delay,
    )
