"""Version service for managing track versions"""
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.models.track_version import TrackVersion
from app.services.errors import VersionError
from app.services.storage_service import StorageService, delete_object_best_effort
from app.utils.audio_validator import HEADER_BYTES, validate_audio_header

logger = logging.getLogger(__name__)

# Retries when two uploads for the same track race for a version number
MAX_NUMBERING_ATTEMPTS = 3


class VersionService:
    """Service for track version operations"""

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        """
        Initialize version service

        Args:
            db: Database session
            storage: Storage holding the version audio
        """
        self.db = db
        self.storage = storage

    def get_versions(self, track_id: str) -> List[TrackVersion]:
        """
        Get all versions for a track, newest first

        Args:
            track_id: Track UUID

        Returns:
            List of TrackVersion instances
        """
        return self.db.query(TrackVersion).filter(
            TrackVersion.track_id == track_id
        ).order_by(TrackVersion.version_number.desc()).all()

    def get_version(self, track_id: str, version_id: str) -> Optional[TrackVersion]:
        return self.db.query(TrackVersion).filter(
            TrackVersion.id == version_id,
            TrackVersion.track_id == track_id
        ).first()

    def get_master(self, track_id: str) -> Optional[TrackVersion]:
        return self.db.query(TrackVersion).filter(
            TrackVersion.track_id == track_id,
            TrackVersion.is_master == True
        ).first()

    def next_version_number(self, track_id: str) -> int:
        """Highest existing version number plus one, starting at 1"""
        current = self.db.query(func.max(TrackVersion.version_number)).filter(
            TrackVersion.track_id == track_id
        ).scalar()
        return (current or 0) + 1

    def validate_audio(self, audio_key: str) -> str:
        """
        Sniff the uploaded object's leading bytes

        An object that is not audio is deleted from storage before the
        error is raised.

        Returns:
            Detected format name

        Raises:
            VersionError: If the object is unreadable or not audio
        """
        if self.storage is None:
            raise VersionError("Storage is not configured")
        try:
            header = self.storage.read_header(audio_key, HEADER_BYTES)
        except Exception as e:
            logger.error(f"Error validating file content for {audio_key}: {e}")
            delete_object_best_effort(self.storage, audio_key)
            raise VersionError(
                "Failed to validate uploaded file. The file may be corrupted or not a valid audio format."
            ) from e

        is_valid, detail = validate_audio_header(header)
        if not is_valid:
            delete_object_best_effort(self.storage, audio_key)
            raise VersionError(detail)
        logger.info(f"Validated audio file: {audio_key} - Format: {detail}")
        return detail

    def create_version(self, track_id: str, audio_key: str, notes: Optional[str] = None,
                       uploaded_by_id: Optional[str] = None, commit: bool = True) -> TrackVersion:
        """
        Add a version to a track and make it the master

        Args:
            track_id: Track UUID
            audio_key: Storage object key of the uploaded audio
            notes: Free-text notes
            uploaded_by_id: Uploader user UUID
            commit: Commit the transaction (False when the caller commits)

        Returns:
            New TrackVersion instance
        """
        for attempt in range(1, MAX_NUMBERING_ATTEMPTS + 1):
            version_number = self.next_version_number(track_id)
            self.db.query(TrackVersion).filter(
                TrackVersion.track_id == track_id
            ).update({TrackVersion.is_master: False}, synchronize_session="fetch")

            version = TrackVersion(
                track_id=track_id,
                version_number=version_number,
                audio_key=audio_key,
                notes=notes,
                is_master=True,
                uploaded_by_id=uploaded_by_id,
            )
            self.db.add(version)
            try:
                if commit:
                    self.db.commit()
                    self.db.refresh(version)
                else:
                    self.db.flush()
            except IntegrityError:
                self.db.rollback()
                if attempt == MAX_NUMBERING_ATTEMPTS:
                    raise
                logger.warning(f"Version number {version_number} taken for track {track_id}, retrying")
                continue

            logger.info(f"Created version {version_number} for track {track_id}")
            return version

    def update_notes(self, track_id: str, version_id: str, notes: Optional[str]) -> Optional[TrackVersion]:
        version = self.get_version(track_id, version_id)
        if not version:
            return None
        version.notes = notes
        self.db.commit()
        self.db.refresh(version)
        return version

    def set_master(self, track_id: str, version_id: str) -> Optional[TrackVersion]:
        """
        Make a version the track's master, unsetting the previous one in the same transaction

        Args:
            track_id: Track UUID
            version_id: Version UUID

        Returns:
            Updated TrackVersion or None if not found
        """
        version = self.get_version(track_id, version_id)
        if not version:
            return None

        self.db.query(TrackVersion).filter(
            TrackVersion.track_id == track_id,
            TrackVersion.id != version_id
        ).update({TrackVersion.is_master: False}, synchronize_session="fetch")
        version.is_master = True
        self.db.commit()
        self.db.refresh(version)
        logger.info(f"Version {version.version_number} is now master of track {track_id}")
        return version

    def delete_version(self, track_id: str, version_id: str) -> bool:
        """
        Delete a version and its stored audio

        Args:
            track_id: Track UUID
            version_id: Version UUID

        Returns:
            False if the version does not exist

        Raises:
            VersionError: If it is the track's only version
        """
        version = self.get_version(track_id, version_id)
        if not version:
            return False

        count = self.db.query(func.count(TrackVersion.id)).filter(
            TrackVersion.track_id == track_id
        ).scalar()
        if count <= 1:
            raise VersionError("Cannot delete the only version of a track")

        if self.storage is not None:
            delete_object_best_effort(self.storage, version.audio_key)

        was_master = version.is_master
        self.db.delete(version)
        self.db.flush()

        if was_master:
            latest = self.db.query(TrackVersion).filter(
                TrackVersion.track_id == track_id
            ).order_by(TrackVersion.version_number.desc()).first()
            if latest:
                latest.is_master = True
                logger.info(f"Promoted version {latest.version_number} to master of track {track_id}")

        self.db.commit()
        return True
