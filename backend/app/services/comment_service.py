"""Comment service for threaded, time-anchored feedback on versions"""
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
from datetime import datetime
import logging

from app.models.comment import Comment
from app.services.errors import CommentStateError, NotFoundError

logger = logging.getLogger(__name__)


class CommentService:
    """Service for comment-related operations"""

    def __init__(self, db: Session):
        """
        Initialize comment service

        Args:
            db: Database session
        """
        self.db = db

    def get_comment(self, version_id: str, comment_id: str) -> Optional[Comment]:
        return self.db.query(Comment).filter(
            Comment.id == comment_id,
            Comment.version_id == version_id
        ).first()

    def get_thread(self, version_id: str, include_resolved: bool = False) -> List[Comment]:
        """
        Get top-level comments for a version, newest first, with replies loaded

        Resolved top-level comments, and therefore their replies, are left
        out unless include_resolved is set.

        Args:
            version_id: Version UUID
            include_resolved: Include resolved threads

        Returns:
            Top-level Comment instances; replies hang off `.replies`
        """
        query = self.db.query(Comment).options(
            selectinload(Comment.user),
            selectinload(Comment.replies).selectinload(Comment.user),
        ).filter(
            Comment.version_id == version_id,
            Comment.parent_id.is_(None)
        )
        if not include_resolved:
            query = query.filter(Comment.resolved_at.is_(None))
        return query.order_by(Comment.created_at.desc()).all()

    def create_comment(self, version_id: str, user_id: Optional[str], content: str,
                       timestamp: Optional[float] = None, parent_id: Optional[str] = None) -> Comment:
        """
        Add a comment or a reply

        A reply to a reply is attached to the thread's top-level comment so
        threads stay one level deep.

        Raises:
            NotFoundError: If the parent does not exist
            CommentStateError: If the parent belongs to another version
        """
        if parent_id:
            parent = self.db.query(Comment).filter(Comment.id == parent_id).first()
            if not parent:
                raise NotFoundError("Parent comment not found")
            if parent.version_id != version_id:
                raise CommentStateError("Parent comment belongs to different version")
            parent_id = parent.parent_id or parent.id

        comment = Comment(
            version_id=version_id,
            user_id=user_id,
            content=content,
            timestamp=timestamp,
            parent_id=parent_id,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)
        logger.info(f"Created comment {comment.id} on version {version_id}")
        return comment

    def update_content(self, comment: Comment, content: str) -> Comment:
        comment.content = content
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(self, comment: Comment) -> None:
        """Delete a comment; its replies go with it"""
        self.db.delete(comment)
        self.db.commit()

    def resolve(self, comment: Comment, user_id: Optional[str]) -> Comment:
        """
        Mark a timestamped top-level comment as resolved

        Raises:
            CommentStateError: If the comment is a reply, has no timestamp,
                or is already resolved
        """
        if not comment.is_resolvable:
            raise CommentStateError("Only top-level comments with a timestamp can be resolved")
        if comment.resolved_at is not None:
            raise CommentStateError("Comment is already resolved")
        comment.resolved_at = datetime.utcnow()
        comment.resolved_by_id = user_id
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def unresolve(self, comment: Comment) -> Comment:
        """
        Reopen a resolved comment

        Raises:
            CommentStateError: If the comment cannot be resolved or is not resolved
        """
        if not comment.is_resolvable:
            raise CommentStateError("Only top-level comments with a timestamp can be unresolved")
        if comment.resolved_at is None:
            raise CommentStateError("Comment is not resolved")
        comment.resolved_at = None
        comment.resolved_by_id = None
        self.db.commit()
        self.db.refresh(comment)
        return comment
