# cardsmith/utils/logging.py
"""Logging setup and structured compose events."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from cardsmith.config import Settings


def setup_logging(name: Optional[str] = None) -> logging.Logger:
    """
    Setup logging for the engine

    Args:
        name: Logger name (default: package logger)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name or "cardsmith")

    if not Settings.ENABLE_LOGGING:
        logger.setLevel(logging.CRITICAL)
        return logger

    level = logging.DEBUG if Settings.DEBUG else logging.INFO
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    # stderr keeps stdout clean for the MCP stdio transport
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        fmt="[%(asctime)s] %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(handler)

    return logger


class ComposeLogger:
    """Structured JSON logger for compose events."""

    def __init__(self, name: str = "cardsmith.compose"):
        self.logger = logging.getLogger(name)

    def _log(self, level: int, event: str, **kwargs):
        """Log a structured event."""
        data = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs
        }
        self.logger.log(level, json.dumps(data, default=str))

    def compose_started(self, node_id: str, template_id: Optional[str], section_count: int):
        """Log the start of a compose call."""
        self._log(
            logging.INFO,
            "compose_started",
            node_id=node_id,
            template_id=template_id,
            section_count=section_count
        )

    def retrieval_complete(self, node_id: str, match_stage: str, prds: int, fragments: int):
        """Log retrieval results."""
        self._log(
            logging.INFO,
            "retrieval_complete",
            node_id=node_id,
            match_stage=match_stage,
            prds=prds,
            fragments=fragments
        )

    def generation_fallback(self, node_id: str, reason: str):
        """Log that the deterministic draft replaced generated content."""
        self._log(
            logging.WARNING,
            "generation_fallback",
            node_id=node_id,
            reason=reason
        )

    def compose_complete(self, node_id: str, score: int, status: str, duration_seconds: float):
        """Log compose completion."""
        self._log(
            logging.INFO,
            "compose_complete",
            node_id=node_id,
            score=score,
            status=status,
            duration_seconds=round(duration_seconds, 3)
        )

    def error(self, node_id: str, error_type: str, message: str):
        """Log an error."""
        self._log(
            logging.ERROR,
            "error",
            node_id=node_id,
            error_type=error_type,
            message=message
        )
