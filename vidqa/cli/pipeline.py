"""Pipeline CLI commands."""

import logging
import signal
from typing import Optional

import click

from vidqa.core.config import get_settings
from vidqa.core.pipeline.base import BatchResult
from vidqa.core.pipeline.answer import AnswerStage
from vidqa.core.pipeline.orchestrator import STAGE_NAMES, build_orchestrator
from vidqa.core.pipeline.transcribe import TranscribeStage
from vidqa.core.status import VideoStatus
from vidqa.core.store import build_record_store

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

STAGE_CLASSES = {cls.name: cls for cls in (TranscribeStage, AnswerStage)}


def configure_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _echo_batch(stage_name: str, result: BatchResult):
    click.echo(
        f"{stage_name}: {result.successful}/{result.total} successful, "
        f"{result.failed} failed, {result.skipped} skipped"
    )
    for error in result.errors:
        click.echo(f"  {error['id']}: {error['error']}")


@click.group()
def pipeline():
    """Pipeline commands for processing videos."""
    pass


@pipeline.command("run")
@click.option("--once", is_flag=True, help="Process eligible videos once and exit")
@click.option(
    "--stage", "-s",
    type=click.Choice(STAGE_NAMES),
    multiple=True,
    help="Stage to run (default: all)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def run(once: bool, stage: tuple, verbose: bool):
    """Watch the record store and run stages as videos change status."""
    configure_logging(verbose)

    stage_names = [name for name in STAGE_NAMES if name in stage] or STAGE_NAMES
    orchestrator = build_orchestrator(get_settings(), stage_names=stage_names)

    try:
        if once:
            for name in stage_names:
                _echo_batch(name, orchestrator.run_once(name))
            return

        def handle_signal(signum, frame):
            click.echo(f"\nReceived signal {signum}, stopping...")
            orchestrator.request_stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        click.echo(f"Watching for videos (stages: {', '.join(stage_names)})")
        orchestrator.run()
        click.echo("Pipeline stopped")
    finally:
        orchestrator.store.close()


@pipeline.command("status")
def show_status():
    """Show video counts by status."""
    store = build_record_store(get_settings())
    try:
        counts = store.count_by_status()
    finally:
        store.close()

    total = sum(counts.values())

    click.echo("\nPipeline Status:")
    click.echo(f"  Total videos: {total}")
    click.echo("\n  By status:")

    for status in VideoStatus:
        count = counts.get(status.value, 0)
        if count > 0:
            pct = (count / total * 100) if total > 0 else 0
            click.echo(f"    {status}: {count} ({pct:.1f}%)")


def _run_single_stage(stage_name: str, video_id: Optional[str], dry_run: bool, verbose: bool):
    configure_logging(verbose)
    settings = get_settings()

    if dry_run:
        store = build_record_store(settings)
        try:
            source = STAGE_CLASSES[stage_name].source_status
            records = [store.get(video_id)] if video_id else store.list_by_status(source)
            records = [r for r in records if r is not None and r.status == source]
        finally:
            store.close()

        if not records:
            click.echo(f"No {source} videos found.")
            return
        click.echo(f"\n[DRY RUN] Would {stage_name}:")
        for record in records:
            click.echo(f"  - {record.title or record.id}")
        return

    orchestrator = build_orchestrator(settings, stage_names=[stage_name])
    try:
        if not video_id:
            _echo_batch(stage_name, orchestrator.run_once(stage_name))
            return

        click.echo(f"Running {stage_name} on video: {video_id}")
        stage = orchestrator.get_stage(stage_name)
        record = orchestrator.store.get(video_id)
        if record is None:
            click.echo(f"Video not found: {video_id}")
            return

        result = orchestrator.process_record(stage, record)
        if result.skipped:
            click.echo(f"Skipped: {result.error}")
        else:
            click.echo(f"Result: {result.status or 'not committed'}")
            if result.error:
                click.echo(f"Error: {result.error}")
    finally:
        orchestrator.store.close()


@pipeline.command("transcribe")
@click.option("--video-id", "-i", help="Specific video ID to transcribe")
@click.option("--dry-run", is_flag=True, help="Show what would be transcribed")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def transcribe(video_id: Optional[str], dry_run: bool, verbose: bool):
    """Transcribe uploaded videos."""
    _run_single_stage("transcribe", video_id, dry_run, verbose)


@pipeline.command("answer")
@click.option("--video-id", "-i", help="Specific video ID to answer")
@click.option("--dry-run", is_flag=True, help="Show what would be answered")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def answer(video_id: Optional[str], dry_run: bool, verbose: bool):
    """Answer questions on transcribed videos."""
    _run_single_stage("answer", video_id, dry_run, verbose)
