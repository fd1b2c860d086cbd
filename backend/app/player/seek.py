"""Seeking to a time in a version that may not be loaded yet"""
from typing import Optional
import asyncio
import logging

from app.config import settings
from app.player.store import PlayerStore

logger = logging.getLogger(__name__)


class SeekCoordinator:
    """
    Seek after switch

    When the target version is not the audible one, the store is switched
    to it and the coordinator waits for the new deck to become ready before
    seeking. The wait polls the store and gives up after a deadline. A new
    request cancels the one in flight.
    """

    def __init__(self, store: PlayerStore, poll_interval: Optional[float] = None,
                 timeout: Optional[float] = None):
        """
        Initialize seek coordinator

        Args:
            store: Shared player store
            poll_interval: Seconds between readiness checks (defaults to settings.seek_poll_interval)
            timeout: Seconds to wait for the deck (defaults to settings.seek_timeout)
        """
        self.store = store
        self.poll_interval = poll_interval if poll_interval is not None else settings.seek_poll_interval
        self.timeout = timeout if timeout is not None else settings.seek_timeout
        self._task: Optional[asyncio.Task] = None

    def _is_ready(self, version_id: str) -> bool:
        store = self.store
        return (
            store.active_version_id == version_id
            and store.transport is not None
            and not store.is_loading
        )

    async def _wait_until_ready(self, version_id: str) -> None:
        while not self._is_ready(version_id):
            await asyncio.sleep(self.poll_interval)

    def _apply(self, seconds: float) -> None:
        self.store.transport.set_time(seconds)
        self.store.set_current_time(seconds)

    async def seek(self, track, version, seconds: float) -> bool:
        """
        Seek to `seconds` in `version`, loading it first if needed

        Returns:
            True once seeked, False if the deck was not ready before the timeout
        """
        if self._is_ready(version.id):
            self._apply(seconds)
            return True

        if self.store.active_version_id != version.id:
            self.store.load_version(track, version, auto_play=True)

        try:
            await asyncio.wait_for(self._wait_until_ready(version.id), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {self.timeout}s waiting for version {version.id} to load")
            return False

        self._apply(seconds)
        return True

    def request(self, track, version, seconds: float) -> asyncio.Task:
        """
        Schedule a seek on the running event loop, superseding any pending one

        Returns:
            Task resolving to the result of seek()
        """
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self.seek(track, version, seconds))
        return self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
