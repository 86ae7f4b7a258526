"""Integration tests for the agentic-rag CLI commands."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from agentic_rag.agent.snapshot import read_session
from agentic_rag.cli.main import app
from agentic_rag.models.enums import WorkflowPhase
from agentic_rag.models.generation import GenerationResult
from agentic_rag.oracle.scripted import ScriptedOracle

runner = CliRunner()


@pytest.fixture
def api_env(monkeypatch):
    monkeypatch.setenv("AGENTIC_RAG_LLM_PROVIDER", "google")
    monkeypatch.setenv("GOOGLE_API_KEY", "test-key")


class TestIngestCommand:

    def test_indexes_files_into_session(self, tmp_path):
        doc = tmp_path / "notes.txt"
        doc.write_text("x" * 2500, encoding="utf-8")
        session = tmp_path / "session.json"

        result = runner.invoke(app, ["ingest", str(doc), "--session", str(session)])

        assert result.exit_code == 0, result.output
        assert "Chunks stored: 3" in result.output
        snapshot = read_session(session)
        assert [c.id for c in snapshot.chunks] == ["notes.txt-0", "notes.txt-1", "notes.txt-2"]

    def test_failed_file_exits_nonzero(self, tmp_path):
        bad = tmp_path / "bad.txt"
        bad.write_bytes(b"\xff\xfe\xfa")
        session = tmp_path / "session.json"

        result = runner.invoke(app, ["ingest", str(bad), "--session", str(session)])

        assert result.exit_code == 1
        assert "Ingestion failed" in result.output
        assert read_session(session).chunks == ()


class TestAskCommand:

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.setenv("AGENTIC_RAG_LLM_PROVIDER", "google")
        monkeypatch.setenv("GOOGLE_API_KEY", "")
        result = runner.invoke(app, ["ask", "hello"])
        assert result.exit_code == 1
        assert "GOOGLE_API_KEY not set" in result.output

    def test_confident_answer(self, api_env):
        oracle = ScriptedOracle(answers=[GenerationResult("Forty-two.")], evaluations=[95])
        with patch("agentic_rag.cli.session.LangChainOracle", return_value=oracle):
            result = runner.invoke(app, ["ask", "What is the answer?"])

        assert result.exit_code == 0, result.output
        assert "Forty-two." in result.output

    def test_low_confidence_accept_and_save(self, api_env, tmp_path):
        session = tmp_path / "session.json"
        oracle = ScriptedOracle(answers=[GenerationResult("Maybe forty-two.")], evaluations=[50])
        with patch("agentic_rag.cli.session.LangChainOracle", return_value=oracle):
            # 4 = accept the current answer
            result = runner.invoke(
                app, ["ask", "What is the answer?", "--session", str(session)], input="4\n"
            )

        assert result.exit_code == 0, result.output
        assert "Maybe forty-two." in result.output
        assert oracle.call_count("evaluate_sufficiency") == 1
        assert read_session(session).phase == WorkflowPhase.COMPLETED

    def test_dismissed_draft(self, api_env, tmp_path):
        session = tmp_path / "session.json"
        oracle = ScriptedOracle(evaluations=[50])
        with patch("agentic_rag.cli.session.LangChainOracle", return_value=oracle):
            result = runner.invoke(
                app, ["ask", "What is the answer?", "--session", str(session)], input="6\n"
            )

        assert result.exit_code == 0, result.output
        assert "Draft dismissed" in result.output
        assert read_session(session).phase == WorkflowPhase.IDLE
