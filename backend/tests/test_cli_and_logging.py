"""
Tests for the analyze_codelines CLI and the logging helpers
===========================================================
"""

import json
import logging
import os
import sys

# Ensure backend and its scripts are importable
BACKEND_DIR = os.path.join(os.path.dirname(__file__), '..')
sys.path.insert(0, BACKEND_DIR)
sys.path.insert(0, os.path.join(BACKEND_DIR, 'scripts'))

import analyze_codelines
from sqlalchemy.orm import Session

from database.models import get_db
from utils.logger import JsonLogFormatter, log_debug, log_info, log_warning, setup_logger


class TestAnalyzeCodelinesCli:

    def test_analyze_file(self, tmp_path, capsys):
        path = tmp_path / "calc.js"
        path.write_text("const a = 1;\nconst b = a + 1;\n", encoding="utf-8")

        exit_code = analyze_codelines.main([str(path), "--init-db", "--scope", "global", "--stats"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Lines processed:      2" in out
        assert "Dependency graph" in out

    def test_missing_file_exit_code(self, tmp_path, capsys):
        exit_code = analyze_codelines.main([str(tmp_path / "nope.vue"), "--init-db"])

        assert exit_code == 1
        assert "Source file not found" in capsys.readouterr().err


class TestLogger:

    def test_json_formatter(self):
        record = logging.LogRecord("services.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        payload = json.loads(JsonLogFormatter().format(record))

        assert payload["message"] == "hello world"
        assert payload["level"] == "INFO"
        assert payload["module"] == "services.test"

    def test_setup_logger_configures_once(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        logger = setup_logger("codeline-test-logger")
        again = setup_logger("codeline-test-logger")

        assert logger is again
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JsonLogFormatter)
        assert logger.propagate is False

    def test_helpers_append_context(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "text")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        log_info("codeline-helpers", "File analyzed", file="App.vue", lines=42)
        log_warning("codeline-helpers", "Graph skipped")
        log_debug("codeline-helpers", "Rebuild", scope="scoped")

        out = capsys.readouterr().out
        assert "[INFO] [codeline-helpers] File analyzed file=App.vue lines=42" in out
        assert "[WARNING] [codeline-helpers] Graph skipped" in out
        assert "[DEBUG] [codeline-helpers] Rebuild scope=scoped" in out


class TestGetDb:

    def test_yields_session_and_closes(self):
        sessions = get_db()
        session = next(sessions)

        assert isinstance(session, Session)
        sessions.close()
