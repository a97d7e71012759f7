"""Event system for the guitar tuner."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

import numpy as np

from ..logging_config import get_logger
from ..note_types import Note

logger = get_logger(__name__)


class TunerEventType(Enum):
    """Event types emitted once per detection cycle."""

    PITCH_DETECTED = auto()
    NO_PITCH_DETECTED = auto()
    AUDIO_RECORDED = auto()


class EventEmitter:
    """Minimal synchronous event emitter."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        listeners = self._listeners.setdefault(event_type, [])
        if callback not in listeners:
            listeners.append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event to every registered listener.

        A failing listener is logged and does not prevent the remaining
        listeners from running.

        Args:
            event_type: Event type to emit
            *args: Positional arguments to pass to listeners
            **kwargs: Keyword arguments to pass to listeners
        """
        for callback in list(self._listeners.get(event_type, ())):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TunerEvents:
    """Event emitter for the tuner's detection events."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_pitch_detected(self, callback: Callable[[Note, float], None]) -> None:
        """Register ``callback(note, frequency)`` for successful detections."""
        self._emitter.on(TunerEventType.PITCH_DETECTED, callback)

    def on_no_pitch_detected(self, callback: Callable[[], None]) -> None:
        """Register ``callback()`` for cycles that matched no tuning note."""
        self._emitter.on(TunerEventType.NO_PITCH_DETECTED, callback)

    def on_audio_recorded(self, callback: Callable[[np.ndarray], None]) -> None:
        """Register ``callback(samples)`` receiving each analysed snapshot."""
        self._emitter.on(TunerEventType.AUDIO_RECORDED, callback)

    def emit_pitch_detected(self, note: Note, frequency: float) -> None:
        self._emitter.emit(TunerEventType.PITCH_DETECTED, note, frequency)

    def emit_no_pitch_detected(self) -> None:
        self._emitter.emit(TunerEventType.NO_PITCH_DETECTED)

    def emit_audio_recorded(self, samples: np.ndarray) -> None:
        self._emitter.emit(TunerEventType.AUDIO_RECORDED, samples)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
