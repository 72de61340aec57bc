"""
Course topic and reading material schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class TopicCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    order: int | None = Field(default=None, ge=0)


class TopicUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    order: int | None = Field(default=None, ge=0)


class ReadingMaterialCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    file_name: str = Field(min_length=1, max_length=255)
    file_url: str = Field(min_length=1, max_length=1000)
    file_size: int | None = Field(default=None, ge=0)
    file_type: str | None = Field(default=None, max_length=100)


class ReadingMaterialResponse(BaseModel):
    id: UUID
    topic_id: UUID
    title: str
    description: str | None
    file_name: str
    file_url: str
    file_size: int | None
    file_type: str | None
    uploaded_by: UUID
    uploaded_at: datetime

    model_config = {"from_attributes": True}


class TopicResponse(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    description: str | None
    order: int
    reading_materials: list[ReadingMaterialResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TopicListResponse(BaseModel):
    topics: list[TopicResponse]
    total: int
