"""
CommandRegistry - the service's command table

Bounded Context: Command lookup and payload checks
Responsibilities:
  - Map a command name to its handler, help text and required fields
  - Reject unknown commands and payloads missing a required field
  - Introspection for status replies and CLI help

Registration normally happens once at service start; lookups happen on the
MQTT network thread.
"""

import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set, Tuple


CommandHandler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """No handler is registered under this name."""


class CommandValidationError(ValueError):
    """The payload lacks one or more required fields."""

    def __init__(self, command: str, missing: Tuple[str, ...]):
        self.command = command
        self.missing = missing
        super().__init__(
            f"Command '{command}' missing required field(s): {', '.join(missing)}"
        )


@dataclass(frozen=True)
class RegisteredCommand:
    handler: CommandHandler
    description: str
    required: Tuple[str, ...] = ()

    def missing_fields(self, payload: Dict[str, Any]) -> Tuple[str, ...]:
        return tuple(name for name in self.required if name not in payload)


class CommandRegistry:
    """
    Name -> RegisteredCommand table.

    Handlers take the whole decoded payload (an empty dict when the
    command carried nothing else) and may return a (status, details)
    reply for the control plane.

    Example:
        registry = CommandRegistry()
        registry.register('select_listing', service.select_listing,
                          "Select a listing", required=('feature_id',))
        registry.execute('select_listing', {'command': 'select_listing', 'feature_id': '17'})
    """

    def __init__(self):
        self._entries: Dict[str, RegisteredCommand] = {}
        self._lock = threading.Lock()

    def register(
        self,
        command: str,
        handler: CommandHandler,
        description: str,
        required: Tuple[str, ...] = (),
    ) -> None:
        """
        Add a command.

        Raises:
            ValueError: Name is empty, not lowercase, contains spaces, or
                is already taken
        """
        if not command or command != command.lower() or " " in command:
            raise ValueError(f"Invalid command name: '{command}'")

        entry = RegisteredCommand(handler, description, tuple(required))
        with self._lock:
            if command in self._entries:
                raise ValueError(f"Command '{command}' already registered")
            self._entries[command] = entry

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run the handler registered as `command` and return its result.

        Raises:
            CommandNotAvailableError: Unknown command
            CommandValidationError: Required payload fields are missing
        """
        entry = self._entries.get(command)
        if entry is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self._entries))}"
            )

        payload = command_data or {}
        missing = entry.missing_fields(payload)
        if missing:
            raise CommandValidationError(command, missing)

        return entry.handler(payload)

    def is_available(self, command: str) -> bool:
        return command in self._entries

    @property
    def available_commands(self) -> Set[str]:
        return set(self._entries)

    def get_help(self) -> Dict[str, str]:
        return {name: entry.description for name, entry in self._entries.items()}

    def required_fields(self, command: str) -> Tuple[str, ...]:
        entry = self._entries.get(command)
        return entry.required if entry else ()

    def count(self) -> int:
        return len(self._entries)
