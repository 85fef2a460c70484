"""
MQTT publishers for the two retained data topics.

    SearchResultPublisher  lasso/data/results/{service_id}
    OverlayPublisher       lasso/data/overlay/{service_id}
    BasePublisher          snapshot publishing (revision order, reconnect)
"""

from .base import BasePublisher
from .overlay import OverlayPublisher
from .search_result import SearchResultPublisher

__all__ = [
    'BasePublisher',
    'OverlayPublisher',
    'SearchResultPublisher',
]
