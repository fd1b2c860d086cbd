"""Global transport bar: keeps the store in step with the live deck"""
from typing import List, Optional
import logging

from app.player.store import PlayerStore
from app.player.timeline import format_time
from app.player.transport import Disposer, Transport

logger = logging.getLogger(__name__)


class GlobalPlayer:
    """
    Binds a PlayerStore to whichever transport it currently holds

    Deck events flow into the store (ready, play/pause, time updates) and
    the bar's controls act on the deck. Bindings move with every version
    switch.
    """

    def __init__(self, store: PlayerStore):
        self.store = store
        self._bound: Optional[Transport] = None
        self._disposers: List[Disposer] = []
        self._unsubscribe = store.subscribe(self._on_store_change)
        self._bind(store.transport)

    def _on_store_change(self, store: PlayerStore) -> None:
        if store.transport is not self._bound:
            self._bind(store.transport)

    def _release(self) -> None:
        for dispose in self._disposers:
            dispose()
        self._disposers = []
        self._bound = None

    def _bind(self, transport: Optional[Transport]) -> None:
        self._release()
        if transport is None:
            return
        self._bound = transport
        self._disposers = [
            transport.on("ready", self._handle_ready),
            transport.on("play", self._handle_play),
            transport.on("pause", self._handle_pause),
            transport.on("timeupdate", self._handle_timeupdate),
            transport.on("finish", self._handle_pause),
            transport.on("error", self._handle_error),
        ]

    def _handle_ready(self, duration: Optional[float] = None) -> None:
        transport = self._bound
        if transport is None:
            return
        self.store.set_is_loading(False)
        self.store.set_duration(duration if duration is not None else transport.get_duration())
        if self.store.should_auto_play:
            # Clear the one-shot flag before playing so it fires once
            self.store.set_should_auto_play(False)
            transport.play()

    def _handle_play(self) -> None:
        self.store.set_is_playing(True)

    def _handle_pause(self) -> None:
        self.store.set_is_playing(False)

    def _handle_timeupdate(self, current_time: Optional[float] = None) -> None:
        if current_time is None and self._bound is not None:
            current_time = self._bound.get_current_time()
        self.store.set_current_time(current_time or 0.0)

    def _handle_error(self, error: Exception) -> None:
        logger.error(f"Playback error for version {self.store.active_version_id}: {error}")

    @property
    def is_visible(self) -> bool:
        """The bar shows once something has been played"""
        store = self.store
        return store.track is not None and store.version is not None and store.has_ever_played

    def play_pause(self) -> None:
        if self.store.transport is not None:
            self.store.transport.play_pause()

    def seek(self, percent: float) -> None:
        """Seek the deck to a percentage (0..100) of the duration"""
        if self.store.transport is not None:
            self.store.transport.seek_to(max(0.0, min(100.0, percent)) / 100)

    @property
    def progress_percent(self) -> float:
        duration = self.store.duration
        if not duration or duration <= 0:
            return 0.0
        return (self.store.current_time / duration) * 100

    def status_line(self) -> str:
        """e.g. "Demo v2 0:45 / 3:20"; empty while hidden"""
        if not self.is_visible:
            return ""
        store = self.store
        return (
            f"{store.track.name} v{store.version.version_number} "
            f"{format_time(store.current_time)} / {format_time(store.duration)}"
        )

    def close(self) -> None:
        self._unsubscribe()
        self._release()
