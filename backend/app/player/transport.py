"""
Abstract audio deck.

A Transport is one live decode/playback handle bound to a single audio URL.
Consumers subscribe to its events with on(), which returns a disposer that
removes the handler again.

Events and their payloads:
    ready       duration in seconds
    play        (none)
    pause       (none)
    timeupdate  current time in seconds
    finish      (none)
    click       relative position 0..1
    error       the exception
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence
import logging

logger = logging.getLogger(__name__)

EVENTS = ("ready", "play", "pause", "timeupdate", "finish", "click", "error")

Disposer = Callable[[], None]


class Transport(ABC):
    """Playback handle with an event emitter"""

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {event: [] for event in EVENTS}
        self.destroyed = False

    def on(self, event: str, handler: Callable) -> Disposer:
        """
        Register an event handler

        Args:
            event: One of EVENTS
            handler: Called with the event payload, if any

        Returns:
            Disposer that unregisters the handler; calling it twice is harmless
        """
        if event not in self._handlers:
            raise ValueError(f"Unknown transport event: {event}")
        self._handlers[event].append(handler)

        def dispose() -> None:
            try:
                self._handlers[event].remove(handler)
            except ValueError:
                pass

        return dispose

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._handlers[event])
        return sum(len(handlers) for handlers in self._handlers.values())

    def emit(self, event: str, *args) -> None:
        """Call every handler for an event; a failing handler does not stop the others"""
        for handler in list(self._handlers[event]):
            try:
                handler(*args)
            except Exception as e:
                logger.exception(f"Error in transport '{event}' handler: {e}")

    def play_pause(self) -> None:
        if self.is_playing():
            self.pause()
        else:
            self.play()

    def export_peaks(self) -> Optional[List[List[float]]]:
        """Decoded peaks, when the backend can produce them"""
        return None

    def destroy(self) -> None:
        """Release the handle; no events are delivered afterwards"""
        self.destroyed = True
        for handlers in self._handlers.values():
            handlers.clear()

    @abstractmethod
    def load(self, url: str, peaks: Optional[Sequence[Sequence[float]]] = None) -> None:
        """Bind the deck to an audio URL, optionally with precomputed peaks"""

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def seek_to(self, ratio: float) -> None:
        """Seek to a position relative to the duration (0..1)"""

    @abstractmethod
    def set_time(self, seconds: float) -> None:
        """Seek to an absolute time"""

    @abstractmethod
    def get_current_time(self) -> float:
        pass

    @abstractmethod
    def get_duration(self) -> float:
        pass

    @abstractmethod
    def is_playing(self) -> bool:
        pass

    @abstractmethod
    def set_volume(self, level: float) -> None:
        """Set output volume, 0 (muted) to 1"""


TransportFactory = Callable[[], Transport]
