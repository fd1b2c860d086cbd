"""Ownership of the single audible deck"""
from typing import Callable, Optional, Sequence
import logging

from app.player.transport import Transport, TransportFactory

logger = logging.getLogger(__name__)


class TransportEngine:
    """
    Owns at most one Transport at a time

    Switching to a new URL pauses and destroys the current deck before the
    replacement is constructed, so two decks never coexist.
    """

    def __init__(self, factory: TransportFactory):
        """
        Initialize transport engine

        Args:
            factory: Callable returning a fresh, unloaded Transport
        """
        self.factory = factory
        self.transport: Optional[Transport] = None

    def switch(self, url: str, peaks: Optional[Sequence[Sequence[float]]] = None,
               on_created: Optional[Callable[[Transport], None]] = None) -> Transport:
        """
        Replace the current deck with one bound to url

        Args:
            url: Audio URL for the new deck
            peaks: Cached peaks to seed the deck with
            on_created: Called with the new deck before it loads, so handlers
                can attach before the deck starts emitting

        Returns:
            The new Transport

        Raises:
            Exception: Whatever the factory, on_created or load raised; the engine is left empty
        """
        self.teardown()
        transport = self.factory()
        try:
            if on_created is not None:
                on_created(transport)
            transport.load(url, peaks)
        except Exception:
            transport.destroy()
            raise
        self.transport = transport
        logger.debug(f"Transport bound to {url}")
        return transport

    def teardown(self) -> None:
        """Pause and destroy the current deck, if any"""
        transport = self.transport
        if transport is None:
            return
        self.transport = None
        if transport.is_playing():
            transport.pause()
        transport.destroy()
