"""Track version API endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, Field
import logging

from app.api.deps import get_current_user, get_track_or_404
from app.database import get_db
from app.models.track_version import TrackVersion
from app.models.user import User
from app.schemas import VersionInfo
from app.services.errors import VersionError
from app.services.storage_service import StorageService, get_storage
from app.services.version_service import VersionService

router = APIRouter(prefix="/api/tracks/{track_id}/versions", tags=["versions"])
logger = logging.getLogger(__name__)


class CreateVersionRequest(BaseModel):
    audio_key: str = Field(min_length=1)
    notes: Optional[str] = None


class UpdateVersionRequest(BaseModel):
    notes: Optional[str] = None
    is_master: Optional[bool] = None


def to_version_info(version: TrackVersion, storage: StorageService) -> VersionInfo:
    """Serialize a version with a fresh presigned audio URL"""
    info = VersionInfo.model_validate(version)
    info.audio_url = storage.issue_get_url(version.audio_key)
    return info


@router.get("", response_model=List[VersionInfo])
def list_versions(track_id: str, db: Session = Depends(get_db),
                  storage: StorageService = Depends(get_storage),
                  user: User = Depends(get_current_user)):
    """Get all versions of a track, newest first"""
    get_track_or_404(track_id, db)
    versions = VersionService(db, storage).get_versions(track_id)
    return [to_version_info(v, storage) for v in versions]


@router.post("", response_model=VersionInfo, status_code=201)
def create_version(track_id: str, request: CreateVersionRequest, db: Session = Depends(get_db),
                   storage: StorageService = Depends(get_storage),
                   user: User = Depends(get_current_user)):
    """Register an uploaded file as the track's next version; it becomes master"""
    get_track_or_404(track_id, db)
    version_service = VersionService(db, storage)
    try:
        version_service.validate_audio(request.audio_key)
    except VersionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    version = version_service.create_version(
        track_id, request.audio_key, notes=request.notes, uploaded_by_id=user.id
    )
    return to_version_info(version, storage)


@router.patch("/{version_id}", response_model=VersionInfo)
def update_version(track_id: str, version_id: str, request: UpdateVersionRequest,
                   db: Session = Depends(get_db),
                   storage: StorageService = Depends(get_storage),
                   user: User = Depends(get_current_user)):
    """Update version notes, or make the version master with {"is_master": true}"""
    get_track_or_404(track_id, db)
    version_service = VersionService(db, storage)

    if request.is_master:
        version = version_service.set_master(track_id, version_id)
    elif request.is_master is False:
        raise HTTPException(
            status_code=400,
            detail="A master can only be replaced by setting another version as master",
        )
    else:
        version = version_service.update_notes(track_id, version_id, request.notes)

    if not version:
        raise HTTPException(status_code=404, detail="Version not found")
    return to_version_info(version, storage)


@router.delete("/{version_id}")
def delete_version(track_id: str, version_id: str, db: Session = Depends(get_db),
                   storage: StorageService = Depends(get_storage),
                   user: User = Depends(get_current_user)):
    """Delete a version and its audio; the newest remaining version takes over as master"""
    get_track_or_404(track_id, db)
    try:
        deleted = VersionService(db, storage).delete_version(track_id, version_id)
    except VersionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Version not found")
    return {"success": True}
