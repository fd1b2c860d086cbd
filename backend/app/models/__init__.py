"""Database models"""
from app.models.user import User
from app.models.project import Project
from app.models.track import Track
from app.models.track_version import TrackVersion
from app.models.comment import Comment

__all__ = [
    "User",
    "Project",
    "Track",
    "TrackVersion",
    "Comment",
]
