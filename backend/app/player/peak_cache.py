"""Waveform peak data memoized per version"""
from typing import Dict, List, Optional, Sequence

Peaks = List[List[float]]  # One list of amplitudes per channel


class PeakCache:
    """
    Peaks keyed by version id

    The first stored value for a version wins; later puts for the same id
    are dropped. Decoding is deterministic, so a duplicate is only wasted
    work. There is no eviction.
    """

    def __init__(self):
        self._peaks: Dict[str, Peaks] = {}

    def get(self, version_id: str) -> Optional[Peaks]:
        return self._peaks.get(version_id)

    def put(self, version_id: str, peaks: Sequence[Sequence[float]]) -> bool:
        """
        Store peaks for a version if none are cached yet

        Returns:
            True if the peaks were stored
        """
        if version_id in self._peaks:
            return False
        self._peaks[version_id] = [list(channel) for channel in peaks]
        return True

    def __contains__(self, version_id: object) -> bool:
        return version_id in self._peaks

    def __len__(self) -> int:
        return len(self._peaks)
