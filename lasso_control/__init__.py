"""
lasso_control - the search service's MQTT command channel

CommandRegistry maps command names to handlers; MQTTControlPlane receives
commands (QoS 1) and answers each one on the retained status topic.
"""

from .plane import MQTTControlPlane
from .registry import (
    CommandNotAvailableError,
    CommandRegistry,
    CommandValidationError,
    RegisteredCommand,
)

__all__ = [
    "MQTTControlPlane",
    "CommandRegistry",
    "RegisteredCommand",
    "CommandNotAvailableError",
    "CommandValidationError",
]
