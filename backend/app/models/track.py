"""Track model"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime
import uuid

from app.database import Base


class Track(Base):
    """Track model representing one logical song; its audio lives in versions"""

    __tablename__ = "tracks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, server_default=func.now())
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, server_default=func.now())

    # Relationships
    project = relationship("Project", back_populates="tracks")
    versions = relationship(
        "TrackVersion",
        back_populates="track",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TrackVersion.version_number",
    )

    def __repr__(self):
        return f"<Track(id={self.id}, name='{self.name}', project_id={self.project_id})>"
