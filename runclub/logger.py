#!/usr/bin/env python3
"""
Structured logging for the club back office.

Every message carries keyword fields, plus whatever the current request has
bound (acting user, role, route), so a line always says who did what:

    [WARN] Remove ignored: unknown workout [user=c1 | role=COACH | id=w9]

Two output modes:
- Human-readable (default)
- JSON, one object per line, for hosted deployments

Set HRC_LOG_FORMAT=json for structured output.
"""

import json
import logging
import os
import sys
import threading
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = 'runclub'

# Fields bound for the duration of one request
_context: ContextVar[Dict] = ContextVar('runclub_log_context', default={})


def bind_context(**fields):
    """Attach fields to every message logged until `clear_context()`."""
    _context.set({**_context.get(), **fields})


def clear_context():
    _context.set({})


def _record_fields(record: logging.LogRecord) -> Dict:
    fields = dict(getattr(record, 'context_fields', None) or {})
    fields.update(getattr(record, 'extra_fields', None) or {})
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc)
                                 .isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        fields = _record_fields(record)
        if fields:
            payload['fields'] = fields
        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class HumanFormatter(logging.Formatter):
    """Single line with a level tag and the fields in brackets."""

    LEVEL_TAGS = {
        logging.DEBUG: '[DEBUG]',
        logging.WARNING: '[WARN]',
        logging.ERROR: '[ERROR]',
        logging.CRITICAL: '[CRITICAL]',
    }

    def format(self, record: logging.LogRecord) -> str:
        parts = []
        tag = self.LEVEL_TAGS.get(record.levelno)
        if tag:
            parts.append(tag)
        parts.append(record.getMessage())

        fields = _record_fields(record)
        if fields:
            parts.append('[' + ' | '.join(f"{k}={v}" for k, v in fields.items()) + ']')

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


class ClubLogger:
    """Process-wide logger; use `get_logger()` or the module functions."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._setup()
                    cls._instance = instance
        return cls._instance

    def _setup(self):
        self._logger = logging.getLogger(LOGGER_NAME)
        self._logger.setLevel(logging.DEBUG)
        self._handler = None
        self.json_mode = os.environ.get('HRC_LOG_FORMAT', '').lower() == 'json'

        # A host application may have configured the logger already
        if self._logger.handlers:
            return
        self._handler = logging.StreamHandler(sys.stdout)
        self._handler.setLevel(logging.INFO)
        self._handler.setFormatter(StructuredFormatter() if self.json_mode else HumanFormatter())
        self._logger.addHandler(self._handler)

    @property
    def name(self) -> str:
        return self._logger.name

    def configure(self, level: Optional[str] = None, json_mode: Optional[bool] = None):
        """
        Adjust console output.

        Args:
            level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names mean INFO)
            json_mode: Switch between JSON and human-readable lines
        """
        if self._handler is None:
            return
        if level is not None:
            resolved = logging.getLevelName(str(level).upper())
            self._handler.setLevel(resolved if isinstance(resolved, int) else logging.INFO)
        if json_mode is not None:
            self.json_mode = json_mode
            self._handler.setFormatter(StructuredFormatter() if json_mode else HumanFormatter())

    def log(self, level: int, msg: str, exc_info=None, **fields):
        record = self._logger.makeRecord(
            self._logger.name, level, "(unknown file)", 0, msg, (), exc_info,
        )
        record.context_fields = _context.get()
        if fields:
            record.extra_fields = fields
        self._logger.handle(record)

    def debug(self, msg: str, **fields):
        self.log(logging.DEBUG, msg, **fields)

    def info(self, msg: str, **fields):
        self.log(logging.INFO, msg, **fields)

    def warning(self, msg: str, **fields):
        self.log(logging.WARNING, msg, **fields)

    def error(self, msg: str, **fields):
        self.log(logging.ERROR, msg, **fields)

    def exception(self, msg: str, **fields):
        """Error with the traceback of the exception being handled."""
        self.log(logging.ERROR, msg, exc_info=sys.exc_info(), **fields)


def get_logger() -> ClubLogger:
    return ClubLogger()


# Convenience functions
def debug(msg: str, **fields):
    get_logger().debug(msg, **fields)


def info(msg: str, **fields):
    get_logger().info(msg, **fields)


def warning(msg: str, **fields):
    get_logger().warning(msg, **fields)


def error(msg: str, **fields):
    get_logger().error(msg, **fields)


def exception(msg: str, **fields):
    get_logger().exception(msg, **fields)
