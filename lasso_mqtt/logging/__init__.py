"""
Structured logging for the lasso service: JSON lines keyed by LogEvent.

    >>> from lasso_mqtt.logging import LogEvent, create_logger
    >>> events = create_logger("search", service_id="denver")
    >>> events.info(LogEvent.STORE_LOADED, "Loaded 8 listings", metadata={'feature_count': 8})
"""

from .events import LogEvent
from .structured import JSONLineFormatter, StructuredLogger, create_logger

__all__ = [
    'JSONLineFormatter',
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
