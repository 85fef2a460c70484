"""
Overlay Publisher
================

Publishes OverlayMessage snapshots (starting point, route, selection,
drawing mode, map style) to lasso/data/overlay/{service_id}.
"""

from typing import Any, Dict, Optional, Tuple

from .base import BasePublisher
from ..logging import LogEvent, StructuredLogger
from ..schemas import OverlayMessage


class OverlayPublisher(BasePublisher):
    serialized_event = LogEvent.OVERLAY_SERIALIZED
    published_event = LogEvent.OVERLAY_PUBLISHED

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "lasso_overlay_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        retain: bool = True,
    ):
        super().__init__(
            broker_host, broker_port, topic, client_id, logger,
            username=username, password=password, qos=qos, retain=retain,
        )

    def format_message(self, msg: OverlayMessage) -> Dict[str, Any]:
        try:
            return msg.to_dict()
        except (AttributeError, TypeError) as e:
            raise ValueError(f"Malformed overlay message: {e}") from e

    def describe(self, msg: OverlayMessage) -> Tuple[str, Dict[str, Any]]:
        return f"Published overlay ({msg.state})", {
            'revision': msg.revision,
            'state': msg.state,
            'route_points': len(msg.route),
            'drawing': msg.drawing,
        }

    def publish_overlay(self, msg: OverlayMessage) -> bool:
        return self.publish_snapshot(msg)
