"""Upload API endpoints: presigned single-shot PUTs and multipart sessions"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from pydantic import BaseModel, Field, field_validator
import logging

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas import CompletedPart, PartUrl
from app.services.project_service import ProjectService
from app.services.storage_service import StorageService, build_object_key, get_storage
from app.utils.audio_validator import (
    ALLOWED_AUDIO_EXTENSIONS,
    ALLOWED_AUDIO_MIMETYPES,
    has_audio_extension,
    is_audio_mimetype,
)

router = APIRouter(prefix="/api/upload", tags=["upload"])
logger = logging.getLogger(__name__)


class UploadRequest(BaseModel):
    file_name: str = Field(min_length=1)
    file_type: str
    project_id: str

    @field_validator("file_name")
    @classmethod
    def check_extension(cls, value: str) -> str:
        if not has_audio_extension(value):
            raise ValueError(
                f"Invalid audio file extension. Allowed extensions: {', '.join(ALLOWED_AUDIO_EXTENSIONS)}"
            )
        return value

    @field_validator("file_type")
    @classmethod
    def check_type(cls, value: str) -> str:
        if not is_audio_mimetype(value):
            raise ValueError(
                f"Invalid audio file type. Allowed types: {', '.join(ALLOWED_AUDIO_MIMETYPES)}"
            )
        return value


class PresignedUploadResponse(BaseModel):
    upload_url: str
    object_key: str


class MultipartSessionResponse(BaseModel):
    upload_id: str
    object_key: str


class MultipartRequest(BaseModel):
    object_key: str = Field(min_length=1)
    upload_id: str = Field(min_length=1)
    project_id: str


class ChunkUrlsRequest(MultipartRequest):
    part_numbers: List[int] = Field(min_length=1)

    @field_validator("part_numbers")
    @classmethod
    def check_part_numbers(cls, value: List[int]) -> List[int]:
        if any(n < 1 for n in value):
            raise ValueError("Part numbers must be positive")
        return value


class ChunkUrlsResponse(BaseModel):
    chunk_urls: List[PartUrl]


class CompleteMultipartRequest(MultipartRequest):
    parts: List[CompletedPart] = Field(min_length=1)


def _require_project(db: Session, project_id: str) -> None:
    if not ProjectService(db).get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")


def _require_key_in_project(object_key: str, project_id: str) -> None:
    if not object_key.startswith(f"{project_id}/"):
        raise HTTPException(status_code=400, detail="Object key does not belong to project")


@router.post("/presigned", response_model=PresignedUploadResponse)
def presigned_upload(request: UploadRequest, db: Session = Depends(get_db),
                     storage: StorageService = Depends(get_storage),
                     user: User = Depends(get_current_user)):
    """Issue a single-use PUT URL for uploading a whole file"""
    _require_project(db, request.project_id)
    object_key = build_object_key(request.project_id, request.file_name)
    upload_url = storage.issue_put_url(object_key, request.file_type)
    return {"upload_url": upload_url, "object_key": object_key}


@router.post("/multipart/initiate", response_model=MultipartSessionResponse)
def initiate_multipart(request: UploadRequest, db: Session = Depends(get_db),
                       storage: StorageService = Depends(get_storage),
                       user: User = Depends(get_current_user)):
    """Open a multipart upload session"""
    _require_project(db, request.project_id)
    object_key = build_object_key(request.project_id, request.file_name)
    upload_id = storage.open_multipart_session(object_key, request.file_type)
    return {"upload_id": upload_id, "object_key": object_key}


@router.post("/multipart/chunk-urls", response_model=ChunkUrlsResponse)
def chunk_urls(request: ChunkUrlsRequest, db: Session = Depends(get_db),
               storage: StorageService = Depends(get_storage),
               user: User = Depends(get_current_user)):
    """Issue one presigned PUT URL per requested part number"""
    _require_project(db, request.project_id)
    _require_key_in_project(request.object_key, request.project_id)
    urls = storage.issue_part_urls(request.object_key, request.upload_id, request.part_numbers)
    return {"chunk_urls": urls}


@router.post("/multipart/complete")
def complete_multipart(request: CompleteMultipartRequest, db: Session = Depends(get_db),
                       storage: StorageService = Depends(get_storage),
                       user: User = Depends(get_current_user)):
    """Assemble the uploaded parts into the final object"""
    _require_project(db, request.project_id)
    _require_key_in_project(request.object_key, request.project_id)
    numbers = [p.part_number for p in request.parts]
    if len(set(numbers)) != len(numbers):
        raise HTTPException(status_code=400, detail="Duplicate part numbers")
    storage.complete_multipart_session(
        request.object_key,
        request.upload_id,
        [p.model_dump() for p in request.parts],
    )
    return {"success": True, "object_key": request.object_key}


@router.post("/multipart/abort")
def abort_multipart(request: MultipartRequest, db: Session = Depends(get_db),
                    storage: StorageService = Depends(get_storage),
                    user: User = Depends(get_current_user)):
    """Discard a multipart upload session"""
    _require_project(db, request.project_id)
    _require_key_in_project(request.object_key, request.project_id)
    storage.abort_multipart_session(request.object_key, request.upload_id)
    return {"success": True}
