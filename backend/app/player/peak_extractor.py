"""Waveform peak extraction for versions that have no cached peaks"""
from pathlib import PurePosixPath
from typing import List, Optional
from urllib.parse import urlparse
import io
import logging

import numpy as np
import requests
from pydub import AudioSegment

from app.config import settings

logger = logging.getLogger(__name__)

# Peaks per channel, enough for a full-width waveform
DEFAULT_PEAK_LENGTH = 1000
MAX_AUDIO_SIZE_MB = 100  # Prevent OOM


class PeakExtractionError(Exception):
    """Audio could not be fetched or decoded"""


def compute_peaks(audio: AudioSegment, max_length: int = DEFAULT_PEAK_LENGTH) -> List[List[float]]:
    """
    Reduce decoded audio to per-channel peaks

    Each peak is the sample with the largest magnitude in its window,
    scaled to -1..1 and rounded to 4 decimals.

    Args:
        audio: Decoded audio
        max_length: Upper bound on peaks per channel

    Returns:
        One list of peaks per channel
    """
    channels = audio.channels
    samples = np.array(audio.get_array_of_samples(), dtype=np.float64)
    # Samples are interleaved; one row per channel
    samples = samples.reshape(-1, channels).T

    frame_count = samples.shape[1]
    if frame_count == 0:
        return [[] for _ in range(channels)]

    chunk_size = max(1, -(-frame_count // max_length))
    num_chunks = frame_count // chunk_size
    chunks = samples[:, : num_chunks * chunk_size].reshape(channels, num_chunks, chunk_size)

    loudest = np.abs(chunks).argmax(axis=2)
    peaks = np.take_along_axis(chunks, loudest[..., np.newaxis], axis=2)[..., 0]
    full_scale = float(1 << (8 * audio.sample_width - 1))
    return np.round(peaks / full_scale, 4).tolist()


def _guess_format(url: str) -> Optional[str]:
    suffix = PurePosixPath(urlparse(url).path).suffix
    return suffix[1:].lower() if suffix else None


def extract_peaks(url: str, max_length: int = DEFAULT_PEAK_LENGTH,
                  session: Optional[requests.Session] = None) -> List[List[float]]:
    """
    Download and decode a version's audio, then compute its peaks

    Args:
        url: Audio URL (typically a presigned GET)
        max_length: Upper bound on peaks per channel
        session: HTTP session to download with

    Returns:
        One list of peaks per channel

    Raises:
        PeakExtractionError: If the download fails, the file is too large,
            or the audio cannot be decoded
    """
    http = session or requests
    try:
        response = http.get(url, timeout=settings.request_timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise PeakExtractionError(f"Failed to download audio: {e}") from e

    size_mb = len(response.content) / (1024 * 1024)
    if size_mb > MAX_AUDIO_SIZE_MB:
        raise PeakExtractionError(f"File too large: {size_mb:.1f}MB > {MAX_AUDIO_SIZE_MB}MB")

    try:
        audio = AudioSegment.from_file(io.BytesIO(response.content), format=_guess_format(url))
    except Exception as e:
        raise PeakExtractionError(f"Failed to decode audio: {type(e).__name__}") from e

    peaks = compute_peaks(audio, max_length)
    logger.debug(f"Extracted {len(peaks[0]) if peaks else 0} peaks from {url}")
    return peaks
