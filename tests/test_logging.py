# tests/test_logging.py
"""Tests for structured compose logging."""

import json
import logging


def test_compose_events_are_json(caplog):
    from cardsmith.utils.logging import ComposeLogger

    events = ComposeLogger()
    with caplog.at_level(logging.INFO, logger="cardsmith.compose"):
        events.compose_started("n-1", "technicalSpec", 5)
        events.compose_complete("n-1", 82, "fresh", 1.23456)

    started, complete = (json.loads(record.getMessage()) for record in caplog.records)
    assert started["event"] == "compose_started"
    assert started["template_id"] == "technicalSpec"
    assert started["section_count"] == 5
    assert "timestamp" in started
    assert complete["duration_seconds"] == 1.235


def test_fallback_logged_as_warning(caplog):
    from cardsmith.utils.logging import ComposeLogger

    with caplog.at_level(logging.INFO, logger="cardsmith.compose"):
        ComposeLogger().generation_fallback("n-1", "generation timed out")

    assert caplog.records[0].levelno == logging.WARNING
    assert "generation timed out" in caplog.text


def test_setup_logging_single_handler(monkeypatch):
    from cardsmith.config import Settings
    from cardsmith.utils.logging import setup_logging

    monkeypatch.setattr(Settings, "ENABLE_LOGGING", True)
    logger = setup_logging("cardsmith.test_setup")
    setup_logging("cardsmith.test_setup")
    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO


def test_setup_logging_disabled(monkeypatch):
    from cardsmith.config import Settings
    from cardsmith.utils.logging import setup_logging

    monkeypatch.setattr(Settings, "ENABLE_LOGGING", False)
    assert setup_logging("cardsmith.test_disabled").level == logging.CRITICAL
