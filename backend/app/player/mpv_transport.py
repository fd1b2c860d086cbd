"""
Transport backed by python-mpv.

mpv reports property changes from its own event thread, so handlers
registered on this deck run off the caller's thread.
"""
from typing import Callable, List, Optional, Sequence
import logging
import time

import mpv

from app.player.peak_extractor import extract_peaks
from app.player.transport import Transport

logger = logging.getLogger(__name__)

# Throttle to ~4 time updates per second
TIME_UPDATE_INTERVAL = 0.25


class MpvTransport(Transport):
    """Audio-only mpv deck"""

    def __init__(self, player: Optional[mpv.MPV] = None,
                 peak_extractor: Optional[Callable[[str], List[List[float]]]] = None):
        """
        Initialize mpv transport

        Args:
            player: Preconfigured mpv.MPV instance (an audio-only one is created when omitted)
            peak_extractor: Decodes peaks for a URL when none were seeded
        """
        super().__init__()
        # vo='null' because we are audio-only
        self.player = player or mpv.MPV(vo="null", ytdl=False, keep_open=True)
        self.peak_extractor = peak_extractor or extract_peaks
        self._url: Optional[str] = None
        self._peaks: Optional[List[List[float]]] = None
        self._peaks_attempted = False
        self._ready = False
        self._last_time_update = 0.0

        self.player.observe_property("duration", self._handle_duration)
        self.player.observe_property("time-pos", self._handle_time_update)
        self.player.observe_property("pause", self._handle_pause_change)
        self.player.observe_property("eof-reached", self._handle_eof)

    def load(self, url: str, peaks: Optional[Sequence[Sequence[float]]] = None) -> None:
        self._url = url
        self._peaks = [list(channel) for channel in peaks] if peaks is not None else None
        self._peaks_attempted = False
        self._ready = False
        # Load paused; playback starts on an explicit play()
        self.player.pause = True
        self.player.play(url)

    def play(self) -> None:
        self.player.pause = False

    def pause(self) -> None:
        self.player.pause = True

    def seek_to(self, ratio: float) -> None:
        duration = self.get_duration()
        if duration > 0:
            self.set_time(max(0.0, min(1.0, ratio)) * duration)

    def set_time(self, seconds: float) -> None:
        try:
            self.player.seek(max(0.0, seconds), reference="absolute")
        except Exception as e:
            logger.error(f"Error seeking to {seconds}: {e}")
            self.emit("error", e)

    def get_current_time(self) -> float:
        return self.player.time_pos or 0.0

    def get_duration(self) -> float:
        return self.player.duration or 0.0

    def is_playing(self) -> bool:
        return self._ready and not self.player.pause

    def set_volume(self, level: float) -> None:
        """Set volume 0..1 (mpv uses 0..100)"""
        self.player.volume = max(0, min(100, level * 100))

    def export_peaks(self) -> Optional[List[List[float]]]:
        """
        Seeded peaks, or peaks decoded from the loaded URL

        mpv does not expose its decoded samples, so the first call without
        seeded peaks decodes the file separately. A failed decode is not
        retried for the same load.
        """
        if self._peaks is None and self._url and not self._peaks_attempted:
            self._peaks_attempted = True
            self._peaks = self.peak_extractor(self._url)
        return self._peaks

    def destroy(self) -> None:
        super().destroy()
        try:
            self.player.terminate()
        except Exception as e:
            logger.warning(f"Error terminating mpv: {e}")

    # Event handlers

    def _handle_duration(self, name, value):
        if value and not self._ready:
            self._ready = True
            self.emit("ready", float(value))

    def _handle_time_update(self, name, value):
        if value is None:
            return
        now = time.time()
        if now - self._last_time_update >= TIME_UPDATE_INTERVAL:
            self._last_time_update = now
            self.emit("timeupdate", float(value))

    def _handle_pause_change(self, name, value):
        # Ignore None values (mpv initialization) and changes before the file is ready
        if value is None or not self._ready:
            return
        self.emit("pause" if value else "play")

    def _handle_eof(self, name, value):
        if value:
            self.emit("finish")


def mpv_transport_factory() -> Transport:
    return MpvTransport()
