"""
Per-version waveform view model.

Each rendered version gets a WaveformView with its own muted local
transport. While the view's version is the store's active one, the local
deck mirrors the global deck (time and play state) without producing
sound. Every listener the view attaches is released on unmount.
"""
from typing import Callable, List, Optional, Sequence
import logging

from app.player.store import PlayerStore, default_transport_factory
from app.player.timeline import Marker, format_time, place_markers, position_to_time
from app.player.transport import Disposer, Transport, TransportFactory

logger = logging.getLogger(__name__)


class WaveformView:
    """Waveform, comment markers and play button for one version"""

    def __init__(self, store: PlayerStore, track, version, comments: Optional[Sequence] = None,
                 on_time_click: Optional[Callable[[float], None]] = None,
                 on_comment_click: Optional[Callable[[str], None]] = None,
                 transport_factory: Optional[TransportFactory] = None):
        """
        Initialize waveform view

        Args:
            store: Shared player store
            track: Track owning the version
            version: Version to render; needs `id` and `audio_url`
            comments: Comment thread for the version
            on_time_click: Receives the absolute time of a waveform click
            on_comment_click: Receives the id of a clicked marker
            transport_factory: Builds the local deck
        """
        self.store = store
        self.track = track
        self.version = version
        self.comments = list(comments or [])
        self.on_time_click = on_time_click
        self.on_comment_click = on_comment_click
        self.transport_factory = transport_factory or default_transport_factory

        self.transport: Optional[Transport] = None
        self.is_loading = True
        self.is_playing = False

        self._local_disposers: List[Disposer] = []
        self._global_disposers: List[Disposer] = []
        self._synced_transport: Optional[Transport] = None
        self._unsubscribe_store: Optional[Disposer] = None

    @property
    def is_active(self) -> bool:
        return self.store.active_version_id == self.version.id

    @property
    def is_mounted(self) -> bool:
        return self.transport is not None

    def mount(self) -> None:
        """Build the muted local deck and start following the store"""
        if self.transport is not None:
            return
        transport = self.transport_factory()
        transport.set_volume(0)
        self._local_disposers = [
            transport.on("ready", self._handle_local_ready),
            transport.on("click", self.click),
            transport.on("play", self._handle_local_play),
            transport.on("pause", self._handle_local_pause),
        ]
        self.transport = transport
        transport.load(self.version.audio_url, self.store.peaks.get(self.version.id))
        self._unsubscribe_store = self.store.subscribe(self._on_store_change)
        self._sync()

    def set_comments(self, comments: Sequence) -> None:
        self.comments = list(comments or [])

    # Local deck

    def _handle_local_ready(self, duration: Optional[float] = None) -> None:
        self.is_loading = False
        if self.version.id in self.store.peaks:
            return
        try:
            peaks = self.transport.export_peaks()
        except Exception as e:
            logger.error(f"Failed to export peaks for version {self.version.id}: {e}")
            return
        if peaks:
            self.store.set_peaks(self.version.id, peaks)

    def _handle_local_play(self) -> None:
        if not self.is_active:
            self.store.load_version(self.track, self.version, auto_play=True)
        self.is_playing = True

    def _handle_local_pause(self) -> None:
        self.is_playing = False

    # Mirroring the global deck

    def _on_store_change(self, store: PlayerStore) -> None:
        self._sync()

    def _sync(self) -> None:
        global_transport = self.store.transport
        should_mirror = self.is_active and self.transport is not None and global_transport is not None

        if not should_mirror:
            if self._synced_transport is not None:
                self._release_global()
                self.is_playing = False
            return
        if global_transport is self._synced_transport:
            return

        self._release_global()
        self._global_disposers = [
            global_transport.on("play", self._handle_global_play),
            global_transport.on("pause", self._handle_global_pause),
            global_transport.on("timeupdate", self._handle_global_timeupdate),
        ]
        self._synced_transport = global_transport
        if self.store.is_playing:
            self._handle_global_play()

    def _release_global(self) -> None:
        for dispose in self._global_disposers:
            dispose()
        self._global_disposers = []
        self._synced_transport = None

    def _handle_global_play(self) -> None:
        self.is_playing = True
        if self.transport is not None and self._synced_transport is not None:
            self.transport.set_time(self._synced_transport.get_current_time())

    def _handle_global_pause(self) -> None:
        self.is_playing = False
        if self.transport is not None:
            self.transport.pause()

    def _handle_global_timeupdate(self, current_time: Optional[float] = None) -> None:
        if self.transport is not None and self._synced_transport is not None:
            self.transport.set_time(self._synced_transport.get_current_time())

    # User actions

    def click(self, relative: float) -> float:
        """
        Handle a click on the waveform

        Seeks the global deck when this version is the audible one. The
        absolute time is always reported through on_time_click.

        Args:
            relative: Click position 0..1

        Returns:
            Absolute time in seconds
        """
        duration = self.transport.get_duration() if self.transport is not None else 0.0
        absolute = position_to_time(relative, duration)
        if self.is_active and self.store.transport is not None:
            self.store.transport.set_time(absolute)
        if self.on_time_click:
            self.on_time_click(absolute)
        return absolute

    def play_pause(self) -> None:
        """Switch the store to this version and play, or toggle it if already audible"""
        global_transport = self.store.transport
        if global_transport is None or not self.is_active:
            self.store.load_version(self.track, self.version, auto_play=True)
            return
        if self.store.is_playing:
            global_transport.pause()
            self.store.set_is_playing(False)
        else:
            global_transport.play()
            self.store.set_is_playing(True)

    def markers(self) -> List[Marker]:
        """Comment markers; empty until the local deck knows its duration"""
        if self.is_loading or self.transport is None:
            return []
        return place_markers(self.comments, self.transport.get_duration())

    def click_marker(self, comment_id: str) -> None:
        if self.on_comment_click:
            self.on_comment_click(comment_id)

    @property
    def button_label(self) -> str:
        return "Pause" if self.is_playing and self.is_active else "Play"

    @property
    def button_disabled(self) -> bool:
        return self.store.is_loading and self.is_active

    @property
    def time_label(self) -> Optional[str]:
        """Local deck time as m:ss / m:ss, None before its duration is known"""
        if self.transport is None:
            return None
        duration = self.transport.get_duration()
        if not duration or duration <= 0:
            return None
        return f"{format_time(self.transport.get_current_time())} / {format_time(duration)}"

    def unmount(self) -> None:
        """Release every listener and destroy the local deck"""
        self._release_global()
        if self._unsubscribe_store is not None:
            self._unsubscribe_store()
            self._unsubscribe_store = None
        for dispose in self._local_disposers:
            dispose()
        self._local_disposers = []
        if self.transport is not None:
            self.transport.destroy()
            self.transport = None
        self.is_loading = True
        self.is_playing = False
