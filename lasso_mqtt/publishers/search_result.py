"""
Search Result Publisher
======================

Publishes SearchResultMessage snapshots (one per search, selection or
title change) to lasso/data/results/{service_id}.

Message Flow:
    SearchController → SearchSession → SessionMessageBuilder
        → SearchResultMessage → SearchResultPublisher → MQTT (retained)

Example:
    >>> publisher = SearchResultPublisher(
    ...     broker_host="localhost",
    ...     topic="lasso/data/results/denver",
    ...     logger=create_logger("mqtt_publisher", service_id="denver"),
    ... )
    >>> publisher.connect()
    >>> publisher.publish_result(message)
"""

from typing import Any, Dict, Optional, Tuple

from .base import BasePublisher
from ..logging import LogEvent, StructuredLogger
from ..schemas import SearchResultMessage


class SearchResultPublisher(BasePublisher):
    serialized_event = LogEvent.SEARCH_RESULT_SERIALIZED
    published_event = LogEvent.SEARCH_RESULT_PUBLISHED

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "lasso_result_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        retain: bool = True,
    ):
        super().__init__(
            broker_host, broker_port, topic, client_id, logger,
            username=username, password=password, qos=qos, retain=retain,
        )

    def format_message(self, msg: SearchResultMessage) -> Dict[str, Any]:
        try:
            return msg.to_dict()
        except (AttributeError, TypeError) as e:
            raise ValueError(f"Malformed search result message: {e}") from e

    def describe(self, msg: SearchResultMessage) -> Tuple[str, Dict[str, Any]]:
        if msg.error is not None:
            text = f"Published rejected search ({msg.error})"
        else:
            text = f"Published search result: {msg.status.value}, {msg.match_count} listings"
        return text, {
            'revision': msg.revision,
            'status': msg.status.value,
            'match_count': msg.match_count,
        }

    def publish_result(self, msg: SearchResultMessage) -> bool:
        return self.publish_snapshot(msg)
