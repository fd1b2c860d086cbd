"""Mapping between audio time and the normalized 0..1 waveform axis"""
from dataclasses import dataclass
from typing import Iterable, List, Optional
import math

from app.schemas import DELETED_USER_NAME


@dataclass(frozen=True)
class Marker:
    comment_id: str
    position: float  # 0..1 along the waveform
    timestamp: float
    author: str
    content: str


def time_to_position(seconds: float, duration: float) -> Optional[float]:
    """Relative position of a time, or None when the duration is not known yet"""
    if not duration or duration <= 0:
        return None
    return seconds / duration


def position_to_time(position: float, duration: float) -> float:
    """Absolute time of a relative position; positions outside 0..1 are clamped"""
    return max(0.0, min(1.0, position)) * max(0.0, duration or 0.0)


def timestamped_comments(comments: Iterable) -> List:
    """Top-level comments anchored to a time; replies and general comments are dropped"""
    return [
        c for c in comments or []
        if getattr(c, "parent_id", None) is None and getattr(c, "timestamp", None) is not None
    ]


def author_name(comment) -> str:
    user = getattr(comment, "user", None)
    return user.name if user is not None else DELETED_USER_NAME


def place_markers(comments: Iterable, duration: float) -> List[Marker]:
    """
    Markers for the timestamped top-level comments

    Nothing is placed until the duration is known.
    """
    if not duration or duration <= 0:
        return []
    return [
        Marker(
            comment_id=c.id,
            position=time_to_position(c.timestamp, duration),
            timestamp=c.timestamp,
            author=author_name(c),
            content=c.content,
        )
        for c in timestamped_comments(comments)
    ]


def format_time(seconds: float) -> str:
    """Render seconds as m:ss"""
    if seconds is None or math.isnan(seconds) or seconds < 0:
        seconds = 0
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
