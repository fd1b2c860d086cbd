"""Comment API endpoints"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel, Field

from app.api.deps import get_current_user, get_version_or_404
from app.database import get_db
from app.models.comment import Comment
from app.models.user import User
from app.schemas import CommentInfo
from app.services.comment_service import CommentService
from app.services.errors import CommentStateError, NotFoundError

router = APIRouter(prefix="/api/tracks/{track_id}/versions/{version_id}/comments", tags=["comments"])


class CreateCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=1000)
    timestamp: Optional[float] = Field(default=None, ge=0)  # Seconds into the audio
    parent_id: Optional[str] = None


class UpdateCommentRequest(BaseModel):
    content: str = Field(min_length=1, max_length=1000)


def _get_comment_or_404(service: CommentService, version_id: str, comment_id: str) -> Comment:
    comment = service.get_comment(version_id, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.get("", response_model=List[CommentInfo])
def list_comments(track_id: str, version_id: str,
                  include_resolved: bool = Query(False),
                  db: Session = Depends(get_db),
                  user: User = Depends(get_current_user)):
    """Get comment threads for a version"""
    get_version_or_404(track_id, version_id, db)
    return CommentService(db).get_thread(version_id, include_resolved=include_resolved)


@router.post("", response_model=CommentInfo, status_code=201)
def create_comment(track_id: str, version_id: str, request: CreateCommentRequest,
                   db: Session = Depends(get_db),
                   user: User = Depends(get_current_user)):
    """Add a comment, optionally pinned to a time or replying to another comment"""
    get_version_or_404(track_id, version_id, db)
    try:
        return CommentService(db).create_comment(
            version_id, user.id, request.content,
            timestamp=request.timestamp, parent_id=request.parent_id
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CommentStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/{comment_id}", response_model=CommentInfo)
def update_comment(track_id: str, version_id: str, comment_id: str, request: UpdateCommentRequest,
                   db: Session = Depends(get_db),
                   user: User = Depends(get_current_user)):
    """Edit a comment's text; only its author may do so"""
    get_version_or_404(track_id, version_id, db)
    service = CommentService(db)
    comment = _get_comment_or_404(service, version_id, comment_id)
    if comment.user_id != user.id:
        raise HTTPException(status_code=403, detail="Only the author can edit this comment")
    return service.update_content(comment, request.content)


@router.delete("/{comment_id}")
def delete_comment(track_id: str, version_id: str, comment_id: str,
                   db: Session = Depends(get_db),
                   user: User = Depends(get_current_user)):
    """Delete a comment and its replies"""
    get_version_or_404(track_id, version_id, db)
    service = CommentService(db)
    comment = _get_comment_or_404(service, version_id, comment_id)
    if comment.user_id != user.id:
        raise HTTPException(status_code=403, detail="Only the author can delete this comment")
    service.delete_comment(comment)
    return {"success": True}


@router.post("/{comment_id}/resolve", response_model=CommentInfo)
def resolve_comment(track_id: str, version_id: str, comment_id: str,
                    db: Session = Depends(get_db),
                    user: User = Depends(get_current_user)):
    """Resolve a timestamped top-level comment"""
    get_version_or_404(track_id, version_id, db)
    service = CommentService(db)
    comment = _get_comment_or_404(service, version_id, comment_id)
    try:
        return service.resolve(comment, user.id)
    except CommentStateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete("/{comment_id}/resolve", response_model=CommentInfo)
def unresolve_comment(track_id: str, version_id: str, comment_id: str,
                      db: Session = Depends(get_db),
                      user: User = Depends(get_current_user)):
    """Reopen a resolved comment"""
    get_version_or_404(track_id, version_id, db)
    service = CommentService(db)
    comment = _get_comment_or_404(service, version_id, comment_id)
    try:
        return service.unresolve(comment)
    except CommentStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
