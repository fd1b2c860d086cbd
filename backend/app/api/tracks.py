"""Track API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Literal, Optional
from pydantic import BaseModel, Field
import math

from app.api.deps import get_current_user, get_track_or_404
from app.database import get_db
from app.models.user import User
from app.schemas import TrackInfo, TrackPage
from app.services.errors import VersionError
from app.services.project_service import ProjectService
from app.services.storage_service import StorageService, get_storage
from app.services.track_service import TrackService

router = APIRouter(tags=["tracks"])


class CreateTrackRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    audio_key: str = Field(min_length=1)  # Storage object key from the upload step
    notes: Optional[str] = None


class UpdateTrackRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


@router.get("/api/projects/{project_id}/tracks", response_model=TrackPage)
def list_tracks(
    project_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: Literal["name", "created_at", "updated_at", "last_version_at"] = "last_version_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Get a page of tracks for a project"""
    if not ProjectService(db).get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    items, total = TrackService(db).list_tracks(project_id, page, limit, sort_by, sort_order)
    return {
        "data": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": math.ceil(total / limit) if total else 0,
        },
    }


@router.post("/api/projects/{project_id}/tracks", response_model=TrackInfo, status_code=201)
def create_track(
    project_id: str,
    request: CreateTrackRequest,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    """Create a track from an uploaded file; the upload becomes version 1"""
    if not ProjectService(db).get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    track_service = TrackService(db, storage)
    try:
        track_service.version_service.validate_audio(request.audio_key)
    except VersionError as e:
        raise HTTPException(status_code=400, detail=str(e))

    track = track_service.create_track(
        project_id, request.name, request.audio_key, notes=request.notes, uploaded_by_id=user.id
    )
    return track_service.summarize(track)


@router.get("/api/tracks/{track_id}", response_model=TrackInfo)
def get_track(track_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get a track with its version statistics"""
    track = get_track_or_404(track_id, db)
    return TrackService(db).summarize(track)


@router.patch("/api/tracks/{track_id}", response_model=TrackInfo)
def rename_track(track_id: str, request: UpdateTrackRequest, db: Session = Depends(get_db),
                 user: User = Depends(get_current_user)):
    """Rename a track"""
    track_service = TrackService(db)
    track = track_service.rename_track(track_id, request.name)
    if not track:
        raise HTTPException(status_code=404, detail="Track not found")
    return track_service.summarize(track)


@router.delete("/api/tracks/{track_id}")
def delete_track(track_id: str, db: Session = Depends(get_db),
                 storage: StorageService = Depends(get_storage),
                 user: User = Depends(get_current_user)):
    """Delete a track with all versions and their audio"""
    if not TrackService(db, storage).delete_track(track_id):
        raise HTTPException(status_code=404, detail="Track not found")
    return {"success": True}
