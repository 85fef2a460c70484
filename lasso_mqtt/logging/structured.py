"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

One JSON object per log line, keyed by a typed LogEvent.

Design:
- Thin layer over the stdlib logging module (handlers, levels, threads)
- Bound context: bind(service_id="denver") returns a logger whose lines
  all carry that context, so one broker can serve several services
- Exceptions are flattened into the entry; tracebacks only at ERROR

Example:
    >>> events = create_logger("search").bind(service_id="denver")
    >>> events.info(
    ...     LogEvent.SEARCH_COMPLETED,
    ...     "Search matched 12 listings",
    ...     metadata={'match_count': 12, 'vertex_count': 48}
    ... )

Output:
    {"timestamp": "2026-10-19T15:30:45.123456+00:00", "level": "INFO",
     "component": "search", "event": "search.completed",
     "message": "Search matched 12 listings",
     "context": {"service_id": "denver"},
     "metadata": {"match_count": 12, "vertex_count": 48}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .events import LogEvent


class JSONLineFormatter(logging.Formatter):
    """Entries are serialized before they reach the handler; emit as-is."""

    def format(self, record: logging.LogRecord) -> str:
        line = record.getMessage()
        if record.exc_info:
            # Keep the traceback on the following lines, JSON line stays parseable
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class StructuredLogger:
    """
    JSON lines logger for one component.

    Attributes:
        component: Component name ("search", "mqtt_publisher", ...)
        context: Fields bound into every entry
        logger: Underlying stdlib logger (lasso.<component>)
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        context: Optional[Mapping[str, Any]] = None,
    ):
        self.component = component
        self.context = dict(context or {})
        self.logger = logging.getLogger(f"lasso.{component}")
        self.logger.setLevel(level)

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONLineFormatter())
            self.logger.addHandler(handler)
            # Root handlers would re-format the JSON as plain text
            self.logger.propagate = False

    def bind(self, **context: Any) -> "StructuredLogger":
        """New logger for the same component with extra bound context."""
        return StructuredLogger(
            self.component,
            level=self.logger.level,
            context={**self.context, **context},
        )

    def entry(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> Dict[str, Any]:
        """The dict that will be serialized for one log call."""
        data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': LogEvent(event).value,
            'message': message,
        }
        if self.context:
            data['context'] = dict(self.context)
        if metadata:
            data['metadata'] = metadata
        if exc_info is not None:
            data['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info),
            }
        return data

    def log(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        line = json.dumps(self.entry(level, event, message, metadata, exc_info), default=str)
        traceback = exc_info if exc_info is not None and level >= logging.ERROR else None
        self.logger.log(level, line, exc_info=traceback)

    def debug(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.log(logging.INFO, event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        """
        Example:
            >>> events.warning(
            ...     LogEvent.SEARCH_REJECTED,
            ...     "Drawn ring has fewer than 3 vertices",
            ...     metadata={'vertex_count': 2}
            ... )
        """
        self.log(logging.WARNING, event, message, metadata, exc_info)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None,
    ) -> None:
        self.log(logging.ERROR, event, message, metadata, exc_info)


def create_logger(component: str, level: int = logging.INFO, **context: Any) -> StructuredLogger:
    """StructuredLogger for `component`, optionally with bound context."""
    return StructuredLogger(component=component, level=level, context=context)
