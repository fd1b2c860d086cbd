"""Project service for managing project operations"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.models.project import Project
from app.models.track import Track
from app.models.track_version import TrackVersion
from app.services.storage_service import StorageService, delete_object_best_effort

logger = logging.getLogger(__name__)


class ProjectService:
    """Service for project-related operations"""

    def __init__(self, db: Session, storage: Optional[StorageService] = None):
        """
        Initialize project service

        Args:
            db: Database session
            storage: Storage used to discard audio objects on delete
        """
        self.db = db
        self.storage = storage

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def list_projects(self, owner_id: str) -> List[Project]:
        return self.db.query(Project).filter(
            Project.owner_id == owner_id
        ).order_by(Project.updated_at.desc()).all()

    def create_project(self, owner_id: str, name: str, description: Optional[str] = None) -> Project:
        project = Project(owner_id=owner_id, name=name, description=description)
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info(f"Created project {project.id} ({name})")
        return project

    def update_project(self, project_id: str, name: Optional[str] = None,
                       description: Optional[str] = None) -> Optional[Project]:
        project = self.get_project(project_id)
        if not project:
            return None
        if name is not None:
            project.name = name
        if description is not None:
            project.description = description
        self.db.commit()
        self.db.refresh(project)
        return project

    def delete_project(self, project_id: str) -> bool:
        """
        Delete a project with its tracks, versions and comments

        Stored audio objects are removed best-effort; a storage failure is
        logged and never blocks the row deletion.
        """
        project = self.get_project(project_id)
        if not project:
            return False

        audio_keys = [
            key for (key,) in self.db.query(TrackVersion.audio_key)
            .join(Track, TrackVersion.track_id == Track.id)
            .filter(Track.project_id == project_id)
            .all()
        ]
        if self.storage is not None:
            for key in audio_keys:
                delete_object_best_effort(self.storage, key)

        self.db.delete(project)
        self.db.commit()
        logger.info(f"Deleted project {project_id} ({len(audio_keys)} audio objects)")
        return True
