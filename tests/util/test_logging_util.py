"""Tests for logging helpers."""

import logging

from util.logging_util import log_run_summary, setup_logger


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_handler_added_once(self):
        """Test that repeated setup does not duplicate handlers."""
        first = setup_logger("tests.logging_util.once")
        second = setup_logger("tests.logging_util.once")
        assert first is second
        assert len(second.handlers) == 1


class TestLogRunSummary:
    """Tests for log_run_summary."""

    def test_success_logged_at_info(self, caplog):
        """Test that a clean run is logged with its counts."""
        logger = setup_logger("tests.logging_util.summary")
        with caplog.at_level(logging.INFO, logger="tests.logging_util.summary"):
            log_run_summary(logger, "ingest", {"pages": 2, "facts": 5})

        assert caplog.records[-1].levelno == logging.INFO
        assert "Run 'ingest' complete (pages=2, facts=5)" in caplog.text

    def test_error_logged_as_warning(self, caplog):
        """Test that a stopped run is logged as a warning with the error."""
        logger = setup_logger("tests.logging_util.error")
        with caplog.at_level(logging.INFO, logger="tests.logging_util.error"):
            log_run_summary(logger, "ingest", {"pages": 1}, error="503 Server Error")

        assert caplog.records[-1].levelno == logging.WARNING
        assert "503 Server Error" in caplog.text
