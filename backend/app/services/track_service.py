"""Track service for managing track operations"""
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional, Tuple
import logging

from app.models.track import Track
from app.models.track_version import TrackVersion
from app.services.storage_service import StorageService, delete_object_best_effort
from app.services.version_service import VersionService

logger = logging.getLogger(__name__)

SORT_FIELDS = ("name", "created_at", "updated_at", "last_version_at")


class TrackService:
    """Service for track-related operations"""

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        """
        Initialize track service

        Args:
            db: Database session
            storage: Storage holding version audio
        """
        self.db = db
        self.storage = storage
        self.version_service = VersionService(db, storage)

    def get_track_by_id(self, track_id: str) -> Optional[Track]:
        """
        Get track by ID

        Args:
            track_id: Track UUID

        Returns:
            Track instance or None
        """
        return self.db.query(Track).filter(Track.id == track_id).first()

    def get_track_stats(self, track_id: str) -> Tuple[int, Any]:
        """Return (version count, creation time of the newest version)"""
        count, last_version_at = self.db.query(
            func.count(TrackVersion.id),
            func.max(TrackVersion.created_at)
        ).filter(TrackVersion.track_id == track_id).one()
        return count or 0, last_version_at

    def summarize(self, track: Track) -> Dict[str, Any]:
        """Track fields plus version statistics"""
        version_count, last_version_at = self.get_track_stats(track.id)
        return {
            "id": track.id,
            "name": track.name,
            "project_id": track.project_id,
            "created_at": track.created_at,
            "updated_at": track.updated_at,
            "version_count": version_count,
            "last_version_at": last_version_at,
        }

    def list_tracks(self, project_id: str, page: int = 1, limit: int = 20,
                    sort_by: str = "last_version_at", sort_order: str = "desc") -> Tuple[List[Dict[str, Any]], int]:
        """
        Get a page of tracks for a project with version statistics

        Args:
            project_id: Project UUID
            page: 1-based page number
            limit: Page size
            sort_by: One of SORT_FIELDS
            sort_order: "asc" or "desc"

        Returns:
            (track summaries, total track count)
        """
        stats = self.db.query(
            TrackVersion.track_id.label("track_id"),
            func.count(TrackVersion.id).label("version_count"),
            func.max(TrackVersion.created_at).label("last_version_at"),
        ).group_by(TrackVersion.track_id).subquery()

        query = self.db.query(
            Track, stats.c.version_count, stats.c.last_version_at
        ).outerjoin(stats, stats.c.track_id == Track.id).filter(Track.project_id == project_id)

        if sort_by not in SORT_FIELDS:
            sort_by = "last_version_at"
        column = stats.c.last_version_at if sort_by == "last_version_at" else getattr(Track, sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        total = self.db.query(func.count(Track.id)).filter(Track.project_id == project_id).scalar()
        rows = query.order_by(ordering, Track.id).offset((page - 1) * limit).limit(limit).all()

        items = []
        for track, version_count, last_version_at in rows:
            items.append({
                "id": track.id,
                "name": track.name,
                "project_id": track.project_id,
                "created_at": track.created_at,
                "updated_at": track.updated_at,
                "version_count": version_count or 0,
                "last_version_at": last_version_at,
            })
        return items, total

    def create_track(self, project_id: str, name: str, audio_key: str,
                     notes: Optional[str] = None, uploaded_by_id: Optional[str] = None) -> Track:
        """
        Create a track together with its first (master) version

        Args:
            project_id: Project UUID
            name: Display name
            audio_key: Storage key of the first upload
            notes: Notes for version 1
            uploaded_by_id: Uploader user UUID

        Returns:
            New Track instance
        """
        track = Track(project_id=project_id, name=name)
        self.db.add(track)
        self.db.flush()
        self.version_service.create_version(
            track.id, audio_key, notes=notes, uploaded_by_id=uploaded_by_id, commit=False
        )
        self.db.commit()
        self.db.refresh(track)
        logger.info(f"Created track {track.id} ({name}) in project {project_id}")
        return track

    def rename_track(self, track_id: str, name: str) -> Optional[Track]:
        track = self.get_track_by_id(track_id)
        if not track:
            return None
        track.name = name
        self.db.commit()
        self.db.refresh(track)
        return track

    def delete_track(self, track_id: str) -> bool:
        """
        Delete a track, its versions and their stored audio

        Object deletion is best-effort and never blocks the row deletion.

        Args:
            track_id: Track UUID

        Returns:
            False if the track does not exist
        """
        track = self.get_track_by_id(track_id)
        if not track:
            return False

        if self.storage is not None:
            for version in track.versions:
                delete_object_best_effort(self.storage, version.audio_key)

        self.db.delete(track)
        self.db.commit()
        logger.info(f"Deleted track {track_id}")
        return True
