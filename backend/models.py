from sqlalchemy import Column, String, Integer, Float, Text, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from database import Base


def generate_uuid():
    return str(uuid.uuid4())


class User(Base):
    """
    A tenant user.

    Organization is fixed at creation. Role is one of viewer, editor, admin
    and may only be changed by an admin of the same organization.
    """
    __tablename__ = 'users'

    id = Column(String, primary_key=True, default=generate_uuid)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    organization = Column(String, nullable=False)
    role = Column(String, nullable=False, default='viewer')
    created_at = Column(DateTime, default=datetime.utcnow)

    videos = relationship("Job", back_populates="owner")

    __table_args__ = (
        CheckConstraint("role IN ('viewer', 'editor', 'admin')"),
        CheckConstraint("organization != ''"),
        Index('idx_users_organization', 'organization'),
    )


class Job(Base):
    """
    One uploaded video moving through the processing pipeline.

    Statuses:
    - uploading: Record created, bytes staged, run not yet started
    - processing: Run in progress (sub-stages processing/analyzing/finalizing)
    - completed: All stages done, progress is 100
    - failed: Run aborted, progress frozen at the last persisted checkpoint

    processing_progress never decreases during a run and is 100 only when
    status is completed.
    """
    __tablename__ = 'video_jobs'

    id = Column(String, primary_key=True, default=generate_uuid)
    filename = Column(String, nullable=False)  # Stored name (unique per job)
    original_name = Column(String, nullable=False)  # Name supplied by the uploader
    mime_type = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False, default=0)
    duration_seconds = Column(Float, nullable=True)

    status = Column(String, nullable=False, default='uploading')
    sensitivity_status = Column(String, nullable=False, default='pending')
    processing_progress = Column(Integer, nullable=False, default=0)
    processing_stage = Column(String, nullable=True)  # Label of the last persisted checkpoint
    error_message = Column(Text, nullable=True)

    owner_id = Column(String, ForeignKey('users.id'), nullable=False)
    organization = Column(String, nullable=False)

    # Set once the upload has been handed to the storage provider
    storage_reference = Column(String, nullable=True)
    storage_url = Column(Text, nullable=True)
    staging_path = Column(Text, nullable=True)  # Local upload awaiting transfer

    # Technical metadata reported by the storage provider
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)
    codec = Column(String, nullable=True)
    bitrate = Column(Integer, nullable=True)
    container_format = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="videos")

    @property
    def technical_metadata(self) -> dict:
        return {
            'width': self.width,
            'height': self.height,
            'codec': self.codec,
            'bitrate': self.bitrate,
            'format': self.container_format,
        }

    __table_args__ = (
        CheckConstraint("status IN ('uploading', 'processing', 'completed', 'failed')"),
        CheckConstraint("sensitivity_status IN ('pending', 'safe', 'flagged')"),
        CheckConstraint("processing_progress >= 0 AND processing_progress <= 100"),
        Index('idx_video_jobs_owner', 'owner_id', 'organization'),
        Index('idx_video_jobs_status', 'status', 'sensitivity_status'),
        Index('idx_video_jobs_org_created', 'organization', 'created_at'),
    )
