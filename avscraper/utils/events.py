"""Typed listener lists for component state transitions."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


@dataclass(frozen=True)
class Event:
    """A state transition reported by a component."""

    name: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


Listener = Callable[[Event], None]


class EventListeners:
    """
    Zero-or-more listeners notified of state transitions.

    Emitters do not know who listens; a failing listener is logged and does
    not affect the emitter or the other listeners.
    """

    def __init__(self, owner: str = ""):
        self.owner = owner
        self._listeners: List[Listener] = []
        self.logger = logging.getLogger(__name__)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Callable receiving each Event

        Returns:
            Function that unregisters the listener
        """
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, name: str, **payload: Any) -> Event:
        event = Event(name=name, payload=payload)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.error(f"Error in {self.owner or 'event'} listener for '{name}': {e}")
        return event

    def __len__(self) -> int:
        return len(self._listeners)
