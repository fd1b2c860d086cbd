"""Project API endpoints"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, Field

from app.api.deps import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas import ProjectInfo
from app.services.project_service import ProjectService
from app.services.storage_service import StorageService, get_storage

router = APIRouter(prefix="/api/projects", tags=["projects"])


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)


class UpdateProjectRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)


@router.get("", response_model=List[ProjectInfo])
def list_projects(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """List projects owned by the current user"""
    return ProjectService(db).list_projects(user.id)


@router.post("", response_model=ProjectInfo, status_code=201)
def create_project(request: CreateProjectRequest, db: Session = Depends(get_db),
                   user: User = Depends(get_current_user)):
    """Create a project owned by the current user"""
    return ProjectService(db).create_project(user.id, request.name, request.description)


@router.get("/{project_id}", response_model=ProjectInfo)
def get_project(project_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    """Get a project"""
    project = ProjectService(db).get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.patch("/{project_id}", response_model=ProjectInfo)
def update_project(project_id: str, request: UpdateProjectRequest, db: Session = Depends(get_db),
                   user: User = Depends(get_current_user)):
    """Rename a project or change its description"""
    project = ProjectService(db).update_project(project_id, request.name, request.description)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.delete("/{project_id}")
def delete_project(project_id: str, db: Session = Depends(get_db),
                   storage: StorageService = Depends(get_storage),
                   user: User = Depends(get_current_user)):
    """Delete a project with all tracks and their audio"""
    if not ProjectService(db, storage).delete_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return {"success": True}
