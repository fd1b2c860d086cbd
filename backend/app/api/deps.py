"""Shared router dependencies"""
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional

from app.database import get_db
from app.models.user import User
from app.models.track import Track
from app.models.track_version import TrackVersion


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the acting user

    Authentication happens upstream; the gateway forwards the
    authenticated user's id in the X-User-Id header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    user = db.query(User).filter(User.id == x_user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def get_track_or_404(track_id: str, db: Session) -> Track:
    track = db.query(Track).filter(Track.id == track_id).first()
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")
    return track


def get_version_or_404(track_id: str, version_id: str, db: Session) -> TrackVersion:
    version = db.query(TrackVersion).filter(
        TrackVersion.id == version_id,
        TrackVersion.track_id == track_id
    ).first()
    if not version:
        raise HTTPException(status_code=404, detail="Version not found")
    return version
