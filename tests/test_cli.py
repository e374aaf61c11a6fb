"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from typer.testing import CliRunner

from docrag.cli import _ensure_db_parent, _setup_logging, app
from docrag.errors import ProviderUnavailable
from docrag.index.snapshot import SQLiteSnapshot
from docrag.index.storage import DocumentStore
from docrag.models import Answer, Chunk, IngestStats, ScoredChunk

runner = CliRunner()


def _write_snapshot(db_path: Path) -> DocumentStore:
    store = DocumentStore()
    store.insert(Chunk.create("guide.md", 0, "Install with pip."), np.array([1.0, 0.0]))
    store.insert(Chunk.create("guide.md", 1, "Run the server."), np.array([0.0, 1.0]))
    snapshot = SQLiteSnapshot(db_path)
    try:
        snapshot.save(store)
    finally:
        snapshot.close()
    return store


@pytest.fixture
def mock_service():
    """Patch RagService.from_config to hand out a mock with a real store."""
    with patch("docrag.cli.RagService") as service_class:
        service = MagicMock()
        service.store = DocumentStore()
        service_class.from_config.return_value = service
        yield service


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("docrag.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        with patch("docrag.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestEnsureDbParent:
    """Tests for _ensure_db_parent helper."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "subdir" / "test.db"
        _ensure_db_parent(db_path)
        assert db_path.parent.exists()


class TestIngestCommand:
    """Tests for the ingest command."""

    def test_no_documents_found(self, mock_service, tmp_path: Path) -> None:
        mock_service.ingest_paths.return_value = IngestStats()
        db_path = tmp_path / "test.db"

        result = runner.invoke(app, ["ingest", str(tmp_path), "--db", str(db_path)])

        assert result.exit_code == 0
        assert "No supported documents found" in result.stdout
        assert not db_path.exists()
        mock_service.close.assert_called_once()

    def test_ingest_saves_snapshot(self, mock_service, tmp_path: Path) -> None:
        doc = tmp_path / "notes.txt"
        doc.write_text("hello")
        db_path = tmp_path / "out" / "test.db"

        def ingest_paths(paths):
            mock_service.store.insert(Chunk.create(str(doc), 0, "hello"), np.array([1.0, 2.0]))
            stats = IngestStats()
            stats.increment("ingested", doc, chunks=1)
            return stats

        mock_service.ingest_paths.side_effect = ingest_paths

        result = runner.invoke(app, ["ingest", str(doc), "--db", str(db_path)])

        assert result.exit_code == 0, result.stdout
        assert "Ingested: 1, partial: 0, skipped: 0, failed: 0, chunks: 1" in result.stdout
        snapshot = SQLiteSnapshot(db_path)
        try:
            assert len(snapshot.load()) == 1
        finally:
            snapshot.close()

    def test_invalid_chunking(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["ingest", str(tmp_path), "--db", str(tmp_path / "t.db"), "--chunk-chars", "10", "--overlap", "10"],
        )

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestSearchCommand:
    """Tests for the search command."""

    def test_database_not_found(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["search", "query", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code != 0

    def test_search_prints_results(self, mock_service, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        _write_snapshot(db_path)
        mock_service.search.return_value = [
            ScoredChunk(chunk=Chunk.create("guide.md", 0, "Install with pip."), score=0.9123)
        ]

        result = runner.invoke(app, ["search", "install", "--db", str(db_path)])

        assert result.exit_code == 0, result.stdout
        assert "0.9123" in result.stdout
        assert "guide.md" in result.stdout
        assert len(mock_service.store) == 2
        mock_service.search.assert_called_once_with("install")

    def test_search_no_results(self, mock_service, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        _write_snapshot(db_path)
        mock_service.search.return_value = []

        result = runner.invoke(app, ["search", "nothing", "--db", str(db_path)])

        assert result.exit_code == 0
        assert "No matches found" in result.stdout

    def test_search_provider_failure(self, mock_service, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        _write_snapshot(db_path)
        mock_service.search.side_effect = ProviderUnavailable("embedding service down")

        result = runner.invoke(app, ["search", "q", "--db", str(db_path)])

        assert result.exit_code == 1
        assert "embedding service down" in result.stdout
        mock_service.close.assert_called_once()


class TestAskCommand:
    """Tests for the ask command."""

    def test_ask_prints_answer_and_sources(self, mock_service, tmp_path: Path) -> None:
        source = ScoredChunk(chunk=Chunk.create("guide.md", 1, "Run the server."), score=0.5)
        mock_service.ask.return_value = Answer(text="Run the server.", prompt="p", sources=[source])

        result = runner.invoke(app, ["ask", "How to start?", "--db", str(tmp_path / "test.db")])

        assert result.exit_code == 0, result.stdout
        assert "Run the server." in result.stdout
        assert "guide.md #1" in result.stdout

    def test_ask_without_database(self, mock_service, tmp_path: Path) -> None:
        """Asking with nothing ingested still produces an answer."""
        mock_service.ask.return_value = Answer(text="I don't know.", prompt="p")

        result = runner.invoke(app, ["ask", "Anything?", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code == 0
        assert "I don't know." in result.stdout
        assert "Sources" not in result.stdout

    def test_ask_failure(self, mock_service, tmp_path: Path) -> None:
        mock_service.ask.side_effect = ProviderUnavailable("ollama down")

        result = runner.invoke(app, ["ask", "q", "--db", str(tmp_path / "test.db")])

        assert result.exit_code == 1
        assert "ollama down" in result.stdout


class TestStatsCommand:
    """Tests for the stats command."""

    def test_stats_missing_database(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["stats", "--db", str(tmp_path / "missing.db")])

        assert result.exit_code == 0
        assert "nothing ingested yet" in result.stdout

    def test_stats(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        _write_snapshot(db_path)

        result = runner.invoke(app, ["stats", "--db", str(db_path)])

        assert result.exit_code == 0
        assert "Documents: 1, chunks: 2, dimension: 2" in result.stdout


class TestWebCommand:
    """Tests for the web command."""

    @patch("uvicorn.run")
    def test_web_starts_server(self, mock_run: MagicMock, mock_service, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["web", "--port", "9000", "--db", str(tmp_path / "test.db")]
        )

        assert result.exit_code == 0, result.stdout
        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 9000
        assert mock_run.call_args.args[0].state.rag is mock_service
        mock_service.close.assert_called_once()
