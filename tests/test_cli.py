"""
Tests for the CLI commands.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vidqa import __version__
from vidqa.cli.main import cli
from vidqa.core.config import Settings
from vidqa.core.status import VideoStatus


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def sql_settings(tmp_path):
    return Settings(
        _env_file=None,
        record_store="sql",
        database_url=f"sqlite:///{tmp_path / 'cli.db'}",
        media_dir=str(tmp_path / "media"),
    )


@pytest.fixture
def cli_settings(sql_settings):
    with patch("vidqa.cli.db.get_settings", return_value=sql_settings), \
            patch("vidqa.cli.pipeline.get_settings", return_value=sql_settings):
        yield sql_settings


class TestMain:
    """Test the command group."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_groups(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert "pipeline" in result.output
        assert "db" in result.output


class TestDbCommands:
    """Test database commands on a SQLite file."""

    def test_init_and_seed(self, runner, cli_settings):
        result = runner.invoke(cli, ["db", "init"])
        assert result.exit_code == 0, result.output
        assert "Database initialized." in result.output

        result = runner.invoke(cli, [
            "db", "seed", "--title", "Lesson 1", "--media", "r1.mp4",
            "-q", "What?", "-q", "Why?",
        ])
        assert result.exit_code == 0, result.output
        assert "(uploaded) with 2 questions" in result.output

        result = runner.invoke(cli, ["pipeline", "status"])
        assert result.exit_code == 0, result.output
        assert "Total videos: 1" in result.output
        assert "uploaded: 1 (100.0%)" in result.output

    def test_info_masks_password(self, runner):
        settings = Settings(_env_file=None, database_url="postgresql://vidqa:secret@db:5432/vidqa")

        with patch("vidqa.cli.db.get_settings", return_value=settings):
            result = runner.invoke(cli, ["db", "info"])

        assert "secret" not in result.output
        assert "postgresql://vidqa:****@db:5432/vidqa" in result.output

    def test_seed_requires_sql_store(self, runner):
        settings = Settings(_env_file=None, record_store="firestore")

        with patch("vidqa.cli.db.get_settings", return_value=settings):
            result = runner.invoke(cli, ["db", "seed", "--title", "Lesson 1"])

        assert result.exit_code != 0
        assert "database commands need 'sql'" in result.output


class TestPipelineCommands:
    """Test pipeline commands against a prepared orchestrator."""

    @pytest.fixture
    def patched_orchestrator(self, orchestrator, store):
        with patch("vidqa.cli.pipeline.build_orchestrator", return_value=orchestrator) as build, \
                patch.object(store, "close"):
            yield build

    def test_run_once(self, runner, cli_settings, patched_orchestrator, store, uploaded_video):
        result = runner.invoke(cli, ["pipeline", "run", "--once"])

        assert result.exit_code == 0, result.output
        assert "transcribe: 1/1 successful" in result.output
        assert "answer: 1/1 successful" in result.output
        assert store.get(uploaded_video.id).status == VideoStatus.COMPLETED

    def test_run_once_single_stage(self, runner, cli_settings, patched_orchestrator, store, uploaded_video):
        result = runner.invoke(cli, ["pipeline", "run", "--once", "--stage", "transcribe"])

        assert result.exit_code == 0, result.output
        patched_orchestrator.assert_called_once_with(cli_settings, stage_names=["transcribe"])
        assert store.get(uploaded_video.id).status == VideoStatus.TRANSCRIBED

    def test_run_rejects_unknown_stage(self, runner, cli_settings):
        result = runner.invoke(cli, ["pipeline", "run", "--once", "--stage", "summarize"])

        assert result.exit_code != 0

    def test_transcribe_reports_failures(self, runner, cli_settings, patched_orchestrator, store):
        record = store.create_video("Lesson 1", media_ref="missing.mp4")

        result = runner.invoke(cli, ["pipeline", "transcribe"])

        assert result.exit_code == 0, result.output
        assert "1 failed" in result.output
        assert record.id in result.output
        assert store.get(record.id).status == VideoStatus.ERROR_TRANSCRIBED

    def test_answer_single_video(self, runner, cli_settings, patched_orchestrator, store, make_transcribed):
        record = make_transcribed()

        result = runner.invoke(cli, ["pipeline", "answer", "--video-id", record.id])

        assert result.exit_code == 0, result.output
        assert "Result: completed" in result.output

    def test_answer_unknown_video(self, runner, cli_settings, patched_orchestrator):
        result = runner.invoke(
            cli, ["pipeline", "answer", "--video-id", "6f1c1f7e-8f43-4bd1-9c55-4f4f4c1f0a11"]
        )

        assert "Video not found" in result.output

    def test_transcribe_dry_run(self, runner, cli_settings, store, uploaded_video):
        with patch("vidqa.cli.pipeline.build_record_store", return_value=store), \
                patch.object(store, "close"):
            result = runner.invoke(cli, ["pipeline", "transcribe", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "[DRY RUN] Would transcribe:" in result.output
        assert "Lesson 1" in result.output
        assert store.get(uploaded_video.id).status == VideoStatus.UPLOADED

    def test_answer_dry_run_lists_transcribed_videos(self, runner, cli_settings, store,
                                                     uploaded_video, make_transcribed):
        record = make_transcribed(title="Ready for answers")

        with patch("vidqa.cli.pipeline.build_record_store", return_value=store), \
                patch.object(store, "close"):
            result = runner.invoke(cli, ["pipeline", "answer", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Ready for answers" in result.output
        assert "Lesson 1" not in result.output
        assert store.get(record.id).status == VideoStatus.TRANSCRIBED

    def test_stage_commands_match_stage_names(self):
        from vidqa.cli.pipeline import STAGE_CLASSES
        from vidqa.core.pipeline.orchestrator import STAGE_NAMES

        assert sorted(STAGE_CLASSES) == sorted(STAGE_NAMES)
        assert STAGE_CLASSES["transcribe"].source_status == VideoStatus.UPLOADED
        assert STAGE_CLASSES["answer"].source_status == VideoStatus.TRANSCRIBED
