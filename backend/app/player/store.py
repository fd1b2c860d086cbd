"""
Global player state.

One PlayerStore is created per session and handed to every consumer. It is
the only record of what is audible: the current track and version, the live
transport, and playback position and flags. Fields are read freely but
written only through the operations below. Transport backends emit events
from their own threads, so mutations hold a re-entrant lock.
"""
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence
import logging
import threading

from app.player.engine import TransportEngine
from app.player.peak_cache import PeakCache
from app.player.transport import Disposer, Transport, TransportFactory

logger = logging.getLogger(__name__)

Listener = Callable[["PlayerStore"], None]


def default_transport_factory() -> Transport:
    # Imported here so the core works without libmpv installed
    from app.player.mpv_transport import MpvTransport
    return MpvTransport()


@dataclass(frozen=True)
class PlayerSnapshot:
    track: Any
    version: Any
    transport: Optional[Transport]
    url: Optional[str]
    duration: float
    current_time: float
    is_playing: bool
    is_loading: bool
    should_auto_play: bool
    has_ever_played: bool


class PlayerStore:
    """Single source of truth for the audible version"""

    def __init__(self, transport_factory: Optional[TransportFactory] = None,
                 peaks: Optional[PeakCache] = None):
        """
        Initialize player store

        Args:
            transport_factory: Builds the deck for each loaded version (mpv by default)
            peaks: Peak cache shared with the waveform views
        """
        self._lock = threading.RLock()
        # Serializes deck switches; held while listeners run
        self._switch_lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._engine = TransportEngine(transport_factory or default_transport_factory)
        self.peaks = peaks if peaks is not None else PeakCache()
        self._reset()

    def _reset(self) -> None:
        self.track = None
        self.version = None
        self.transport: Optional[Transport] = None
        self.url: Optional[str] = None
        self.duration = 0.0
        self.current_time = 0.0
        self.is_playing = False
        self.is_loading = True
        self.should_auto_play = False
        self.has_ever_played = False

    @property
    def active_version_id(self) -> Optional[str]:
        return self.version.id if self.version is not None else None

    def subscribe(self, listener: Listener) -> Disposer:
        """
        Call listener with the store after every mutation

        Returns:
            Disposer that removes the listener; calling it twice is harmless
        """
        with self._lock:
            self._listeners.append(listener)

        def dispose() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return dispose

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                logger.exception(f"Error in player listener: {e}")

    def _set(self, field: str, value: Any) -> None:
        with self._lock:
            if getattr(self, field) == value:
                return
            setattr(self, field, value)
        self._notify()

    def load_version(self, track, version, auto_play: bool = False) -> None:
        """
        Make a version the audible one

        The current deck is paused and destroyed before a new one is built
        for version.audio_url. The new deck is published and listeners are
        notified before it starts loading, so nothing it emits is missed.
        If construction or loading fails the error is logged, no transport
        is set, and is_loading stays True.

        Args:
            track: Track the version belongs to
            version: Version to load; needs `id` and `audio_url`
            auto_play: Start playing once the new deck is ready
        """
        with self._switch_lock:
            with self._lock:
                self.transport = None
                self.track = track
                self.version = version
                self.url = version.audio_url
                self.current_time = 0.0
                self.is_loading = True
                self.is_playing = False
                self.should_auto_play = auto_play
                self.has_ever_played = True
                peaks = self.peaks.get(version.id)
            # Outside the state lock: the old deck may emit while it is paused
            try:
                self._engine.switch(version.audio_url, peaks, on_created=self._publish_transport)
            except Exception as e:
                logger.error(f"Failed to create transport for version {version.id}: {e}")
                with self._lock:
                    self.transport = None
                self._notify()

    def _publish_transport(self, transport: Transport) -> None:
        with self._lock:
            self.transport = transport
        self._notify()

    def set_duration(self, duration: float) -> None:
        self._set("duration", duration)

    def set_current_time(self, current_time: float) -> None:
        self._set("current_time", current_time)

    def set_is_playing(self, is_playing: bool) -> None:
        self._set("is_playing", is_playing)

    def set_is_loading(self, is_loading: bool) -> None:
        self._set("is_loading", is_loading)

    def set_should_auto_play(self, should_auto_play: bool) -> None:
        self._set("should_auto_play", should_auto_play)

    def set_peaks(self, version_id: str, peaks: Sequence[Sequence[float]]) -> bool:
        """
        Cache peaks for a version unless some are cached already

        Returns:
            True if the peaks were stored
        """
        with self._lock:
            stored = self.peaks.put(version_id, peaks)
        if stored:
            self._notify()
        return stored

    def clear_player(self) -> None:
        """Reset every field, then pause and destroy the deck; cached peaks are kept"""
        with self._switch_lock:
            with self._lock:
                self._reset()
            self._engine.teardown()
            self._notify()

    def snapshot(self) -> PlayerSnapshot:
        with self._lock:
            return PlayerSnapshot(
                track=self.track,
                version=self.version,
                transport=self.transport,
                url=self.url,
                duration=self.duration,
                current_time=self.current_time,
                is_playing=self.is_playing,
                is_loading=self.is_loading,
                should_auto_play=self.should_auto_play,
                has_ever_played=self.has_ever_played,
            )
