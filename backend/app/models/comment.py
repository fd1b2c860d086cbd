"""Comment model"""
from sqlalchemy import Column, String, Float, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import uuid

from app.database import Base


class Comment(Base):
    """Comment on a track version, optionally anchored to a time in the audio"""

    __tablename__ = "comments"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    version_id = Column(String, ForeignKey("track_versions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    timestamp = Column(Float, nullable=True)  # Seconds into the audio; NULL for general comments
    parent_id = Column(String, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now())

    # Relationships
    version = relationship("TrackVersion", back_populates="comments")
    user = relationship("User", foreign_keys=[user_id])
    replies = relationship(
        "Comment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Comment.created_at",
    )

    @property
    def is_resolvable(self) -> bool:
        """Only top-level comments pinned to a time can be resolved"""
        return self.parent_id is None and self.timestamp is not None

    def __repr__(self):
        return f"<Comment(id={self.id}, version_id={self.version_id}, parent_id={self.parent_id})>"
