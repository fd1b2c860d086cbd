"""Track version model"""
from sqlalchemy import Column, String, Integer, Boolean, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import uuid

from app.database import Base


class TrackVersion(Base):
    """One immutable uploaded rendition of a track"""

    __tablename__ = "track_versions"
    __table_args__ = (
        UniqueConstraint("track_id", "version_number", name="uq_track_versions_track_number"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    track_id = Column(String, ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    audio_key = Column(String, nullable=False)  # Object key in storage, never a presigned URL
    notes = Column(Text, nullable=True)
    is_master = Column(Boolean, default=False, nullable=False)
    uploaded_by_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())

    # Relationships
    track = relationship("Track", back_populates="versions")
    comments = relationship("Comment", back_populates="version", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<TrackVersion(id={self.id}, track_id={self.track_id}, version_number={self.version_number}, is_master={self.is_master})>"
