from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from datetime import datetime


# Video Schemas
class VideoResponse(BaseModel):
    """A video job as returned to clients (camelCase on the wire)"""
    id: str
    filename: str
    original_name: str
    mime_type: str
    size_bytes: int
    duration_seconds: Optional[float] = None
    status: str
    sensitivity_status: str
    processing_progress: int
    processing_stage: Optional[str] = None
    error_message: Optional[str] = None
    owner_id: str
    organization: str
    storage_url: Optional[str] = None
    technical_metadata: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class VideoUploadResponse(BaseModel):
    message: str
    video: VideoResponse


class VideoDetailResponse(BaseModel):
    video: VideoResponse


class VideoListResponse(BaseModel):
    videos: List[VideoResponse]


class MessageResponse(BaseModel):
    message: str


# User Schemas
class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    organization: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class UserListResponse(BaseModel):
    users: List[UserResponse]


class UserDetailResponse(BaseModel):
    user: UserResponse


class RoleUpdateRequest(BaseModel):
    role: str


# Task Schemas
class TaskResponse(BaseModel):
    """A pipeline run in flight in this process"""
    job_id: str
    organization: str
    started_at: datetime

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class TaskListResponse(BaseModel):
    count: int
    tasks: List[TaskResponse]


class StaleJobsResponse(BaseModel):
    threshold_minutes: int
    count: int
    videos: List[VideoResponse]

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    active_tasks: int
    websocket_connections: int

    class Config:
        alias_generator = to_camel
        populate_by_name = True
