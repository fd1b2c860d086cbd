"""Response and request shapes shared by the API routers and the client core"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DELETED_USER_NAME = "Deleted User"


class UserInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    image: Optional[str] = None


class ProjectInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class TrackInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    project_id: str
    created_at: datetime
    updated_at: datetime
    version_count: int = 0
    last_version_at: Optional[datetime] = None


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TrackPage(BaseModel):
    data: List[TrackInfo]
    pagination: PaginationInfo


class VersionInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    track_id: str
    version_number: int
    audio_key: str
    audio_url: Optional[str] = None  # Presigned GET URL, filled in per request
    notes: Optional[str] = None
    is_master: bool
    uploaded_by_id: Optional[str] = None
    created_at: datetime


class CommentInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    version_id: str
    user_id: Optional[str] = None
    content: str
    timestamp: Optional[float] = None
    parent_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user: Optional[UserInfo] = None
    replies: List["CommentInfo"] = Field(default_factory=list)

    @property
    def author_name(self) -> str:
        return self.user.name if self.user else DELETED_USER_NAME


class PartUrl(BaseModel):
    part_number: int
    url: str


class CompletedPart(BaseModel):
    part_number: int = Field(gt=0)
    etag: str = Field(min_length=1)
