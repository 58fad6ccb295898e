"""
Application events and the in-process event publisher.

Services publish events at well-defined points of an entity's lifecycle
(e.g. right before a project is removed). Listeners are invoked
synchronously on the publishing thread, in subscription order. Exceptions
raised by a listener propagate to the publisher and abort the operation
that published the event.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


@dataclass
class BeforeProjectRemovedEvent:
    """Published before a project and its data are removed."""
    project: Any


@dataclass
class BeforeDocumentRemovedEvent:
    """Published before a source document and its annotation documents are removed."""
    document: Any


@dataclass
class DocumentStateChangedEvent:
    """Published after a source document changed state."""
    document: Any
    previous_state: Optional[str]
    new_state: str


@dataclass
class AnnotationStateChangedEvent:
    """Published after an annotation document changed state."""
    annotation_document: Any
    previous_state: Optional[str]
    new_state: str


class EventPublisher:
    """Synchronous publish/subscribe dispatcher keyed by event type."""

    def __init__(self):
        self._listeners: Dict[Type, List[Listener]] = defaultdict(list)

    def subscribe(self, event_type: Type, listener: Listener) -> None:
        self._listeners[event_type].append(listener)
        logger.debug(f"Subscribed {getattr(listener, '__qualname__', listener)} to {event_type.__name__}")

    def unsubscribe(self, event_type: Type, listener: Listener) -> None:
        if listener in self._listeners.get(event_type, []):
            self._listeners[event_type].remove(listener)

    def listeners(self, event_type: Type) -> List[Listener]:
        return list(self._listeners.get(event_type, []))

    def publish(self, event: Any) -> None:
        """Deliver event to every listener subscribed to its type."""
        for listener in self.listeners(type(event)):
            listener(event)
