"""
Course topic and reading material endpoints.

Mounted under /courses next to the course router.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.database import get_db
from mindflow.core.dependencies import get_current_user, require_user_role
from mindflow.models.user import User, UserRole
from mindflow.schemas.common import ActionResponse, DataResponse
from mindflow.schemas.topic import (
    ReadingMaterialCreateRequest,
    ReadingMaterialResponse,
    TopicCreateRequest,
    TopicListResponse,
    TopicResponse,
    TopicUpdateRequest,
)
from mindflow.services.topic_service import TopicService

router = APIRouter()

require_author = require_user_role(UserRole.instructor, UserRole.admin)


def get_topic_service(db: AsyncSession = Depends(get_db)) -> TopicService:
    return TopicService(db=db)


@router.get(
    "/{course_id}/topics",
    response_model=DataResponse[TopicListResponse],
    summary="List course topics with their reading materials",
)
async def list_topics(
    course_id: UUID,
    current_user: User = Depends(get_current_user),
    service: TopicService = Depends(get_topic_service),
) -> DataResponse[TopicListResponse]:
    return DataResponse(data=await service.list_topics(course_id, current_user))


@router.post(
    "/{course_id}/topics",
    response_model=ActionResponse[TopicResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add a topic",
)
async def create_topic(
    course_id: UUID,
    data: TopicCreateRequest,
    current_user: User = Depends(require_author),
    service: TopicService = Depends(get_topic_service),
) -> ActionResponse[TopicResponse]:
    topic = await service.create_topic(course_id, data, current_user)
    return ActionResponse(message="Topic added", data=topic)


@router.patch(
    "/{course_id}/topics/{topic_id}",
    response_model=ActionResponse[TopicResponse],
    summary="Update a topic",
)
async def update_topic(
    course_id: UUID,
    topic_id: UUID,
    data: TopicUpdateRequest,
    current_user: User = Depends(require_author),
    service: TopicService = Depends(get_topic_service),
) -> ActionResponse[TopicResponse]:
    topic = await service.update_topic(course_id, topic_id, data, current_user)
    return ActionResponse(message="Topic updated", data=topic)


@router.delete(
    "/{course_id}/topics/{topic_id}",
    response_model=ActionResponse[None],
    summary="Delete a topic and its reading materials",
)
async def delete_topic(
    course_id: UUID,
    topic_id: UUID,
    current_user: User = Depends(require_author),
    service: TopicService = Depends(get_topic_service),
) -> ActionResponse[None]:
    await service.delete_topic(course_id, topic_id, current_user)
    return ActionResponse(message="Topic deleted")


@router.post(
    "/{course_id}/topics/{topic_id}/reading-materials",
    response_model=ActionResponse[ReadingMaterialResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Attach a reading material to a topic",
)
async def add_reading_material(
    course_id: UUID,
    topic_id: UUID,
    data: ReadingMaterialCreateRequest,
    current_user: User = Depends(require_author),
    service: TopicService = Depends(get_topic_service),
) -> ActionResponse[ReadingMaterialResponse]:
    material = await service.add_material(course_id, topic_id, data, current_user)
    return ActionResponse(message="Reading material added", data=material)


@router.delete(
    "/{course_id}/topics/{topic_id}/reading-materials/{material_id}",
    response_model=ActionResponse[None],
    summary="Remove a reading material",
)
async def delete_reading_material(
    course_id: UUID,
    topic_id: UUID,
    material_id: UUID,
    current_user: User = Depends(require_author),
    service: TopicService = Depends(get_topic_service),
) -> ActionResponse[None]:
    await service.delete_material(course_id, topic_id, material_id, current_user)
    return ActionResponse(message="Reading material removed")
