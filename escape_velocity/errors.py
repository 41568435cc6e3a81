"""Errors raised by the simulation engine. All are raised before any state is touched."""
from typing import Optional


class EngineError(Exception):
    """Base class for engine validation failures"""


class InvalidActionError(EngineError):
    """Unknown, locked, duplicated or malformed action"""


class CapacityExceededError(EngineError):
    """Submitted actions cost more focus than the team has"""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Actions need {required} focus slots but only {available} are available")


class ChoiceNotFoundError(EngineError):
    """Event choice id does not exist on the event"""

    def __init__(self, event_id: str, choice_id: str, message: Optional[str] = None):
        self.event_id = event_id
        self.choice_id = choice_id
        super().__init__(message or f"Event '{event_id}' has no choice '{choice_id}'")


class InvalidStateError(EngineError):
    """Snapshot is malformed or cannot be advanced"""
