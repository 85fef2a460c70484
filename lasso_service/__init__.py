"""
lasso_service - Long-running lasso search service

Wires the listing store and SearchController to the MQTT control plane
(commands in) and the result/overlay publishers (messages out).
"""

from .config import MQTTConfig, SearchConfig, ServiceConfig, StyleConfig
from .messages import SessionMessageBuilder
from .service import SearchService

__all__ = [
    "MQTTConfig",
    "SearchConfig",
    "ServiceConfig",
    "StyleConfig",
    "SessionMessageBuilder",
    "SearchService",
]
