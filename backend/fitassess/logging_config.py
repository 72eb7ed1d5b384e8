"""
Logging configuration.

- Human-readable text for development
- Single-line JSON records for production (LOG_FORMAT=json)
"""

from __future__ import annotations

import json
import logging

from .settings import Settings


class JSONFormatter(logging.Formatter):
	"""Emit log records as single-line JSON."""

	def format(self, record: logging.LogRecord) -> str:
		entry = {
			"timestamp": self.formatTime(record, self.datefmt),
			"level": record.levelname,
			"logger": record.name,
			"message": record.getMessage(),
		}
		for key in ("student_id", "assessment_id", "session_id"):
			if hasattr(record, key):
				entry[key] = getattr(record, key)
		if record.exc_info and record.exc_info[0]:
			entry["exception"] = self.formatException(record.exc_info)
		return json.dumps(entry, default=str)


def init_logging(cfg: Settings) -> None:
	"""Configure the root logger from settings."""
	root = logging.getLogger()
	root.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))

	root.handlers.clear()

	handler = logging.StreamHandler()
	if cfg.log_format == "json":
		handler.setFormatter(JSONFormatter())
	else:
		handler.setFormatter(logging.Formatter(
			"%(asctime)s [%(levelname)s] %(name)s: %(message)s",
			datefmt="%Y-%m-%d %H:%M:%S",
		))
	root.addHandler(handler)

	# Quiet noisy libraries
	logging.getLogger("httpx").setLevel(logging.WARNING)
