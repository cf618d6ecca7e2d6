"""
CommandRegistry - Explicit command registration pattern

Bounded Context: Command registration and validation
Responsibilities:
  - Register commands with handlers and their required payload fields
  - Validate command existence and payload before execution
  - Provide introspection (available_commands, get_help)

Threading: Thread-safe (uses lock for write operations)
"""

from typing import Callable, Dict, Iterable, Optional, Set, Tuple
import threading


class CommandNotAvailableError(Exception):
    """Raised when attempting to execute an unregistered command"""
    pass


class CommandValidationError(ValueError):
    """Raised when a command payload lacks a required field"""
    pass


class CommandRegistry:
    """
    Registry for MQTT commands with explicit registration.

    Key Features:
      - Fail-fast: Unknown commands and incomplete payloads rejected
      - Introspection: Can query available commands at runtime
      - Self-Documenting: Each command has description

    Example:
        registry = CommandRegistry()
        registry.register(
            'analyze_image', service.handle_analyze_image,
            "Analyze an uploaded image", required_fields=('place_id', 'image_ref')
        )

        try:
            registry.execute('analyze_image', {'place_id': 'p1', 'image_ref': '/uploads/a.jpg'})
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, Callable] = {}
        self._descriptions: Dict[str, str] = {}
        self._required: Dict[str, Tuple[str, ...]] = {}
        self._lock = threading.Lock()

    def register(
        self,
        command: str,
        handler: Callable,
        description: str,
        required_fields: Iterable[str] = (),
    ) -> None:
        """
        Register a command with its handler function.

        Args:
            command: Command name (lowercase, no spaces)
            handler: Callable that executes the command
            description: Human-readable description for help text
            required_fields: Payload keys that must be present

        Raises:
            ValueError: If command already registered
        """
        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description
            self._required[command] = tuple(required_fields)

    def validate(self, command: str, command_data: Optional[dict]) -> None:
        """
        Check the command exists and its payload carries the required fields.

        Raises:
            CommandNotAvailableError: If command not registered
            CommandValidationError: If a required field is missing or empty
        """
        if command not in self._commands:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )

        data = command_data or {}
        missing = [
            name for name in self._required[command]
            if data.get(name) in (None, "")
        ]
        if missing:
            raise CommandValidationError(
                f"Command '{command}' missing required field(s): {', '.join(missing)}"
            )

    def execute(self, command: str, command_data: Optional[dict] = None):
        """
        Execute a registered command and return the handler's result.

        Raises:
            CommandNotAvailableError: If command not registered
            CommandValidationError: If payload is incomplete
        """
        self.validate(command, command_data)
        handler = self._commands[command]

        if command_data is not None:
            return handler(command_data)
        return handler()

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of all registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Snapshot of commands with descriptions."""
        return dict(self._descriptions)

    def required_fields(self, command: str) -> Tuple[str, ...]:
        return self._required.get(command, ())

    def count(self) -> int:
        return len(self._commands)
