"""
Course topics and reading materials.

Topics group a course's reading list. Anyone who can see the course can read
them; only the course author edits them.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mindflow.core.exceptions import NotFound
from mindflow.models.course import Course, CourseStatus
from mindflow.models.topic import ReadingMaterial, Topic
from mindflow.models.user import User, UserRole
from mindflow.schemas.topic import (
    ReadingMaterialCreateRequest,
    ReadingMaterialResponse,
    TopicCreateRequest,
    TopicListResponse,
    TopicResponse,
    TopicUpdateRequest,
)
from mindflow.services.course_service import CourseService

logger = logging.getLogger(__name__)


class TopicService:

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.courses = CourseService(db)

    async def _get_visible_course(self, course_id: UUID, user: User) -> Course:
        """Drafts are visible to their author only, like the course itself."""
        course = await self.courses.get_course(course_id)
        if (
            course.status != CourseStatus.PUBLISHED
            and course.created_by != user.id
            and user.role != UserRole.admin
        ):
            raise NotFound("Course not found", code="COURSE_NOT_FOUND")
        return course

    async def _get_topic(self, course_id: UUID, topic_id: UUID) -> Topic:
        topic = await self.db.scalar(
            select(Topic).where(Topic.id == topic_id, Topic.course_id == course_id)
        )
        if topic is None:
            raise NotFound("Topic not found", code="TOPIC_NOT_FOUND")
        return topic

    async def _materials(self, topic_ids: list[UUID]) -> dict[UUID, list[ReadingMaterialResponse]]:
        by_topic: dict[UUID, list[ReadingMaterialResponse]] = {topic_id: [] for topic_id in topic_ids}
        if topic_ids:
            result = await self.db.execute(
                select(ReadingMaterial)
                .where(ReadingMaterial.topic_id.in_(topic_ids))
                .order_by(ReadingMaterial.uploaded_at.desc())
            )
            for material in result.scalars().all():
                by_topic[material.topic_id].append(ReadingMaterialResponse.model_validate(material))
        return by_topic

    @staticmethod
    def _topic_response(topic: Topic, materials: list[ReadingMaterialResponse]) -> TopicResponse:
        return TopicResponse(
            id=topic.id,
            course_id=topic.course_id,
            title=topic.title,
            description=topic.description,
            order=topic.order,
            reading_materials=materials,
        )

    # -----------------------------------------------------------------------
    # Topics
    # -----------------------------------------------------------------------

    async def list_topics(self, course_id: UUID, user: User) -> TopicListResponse:
        course = await self._get_visible_course(course_id, user)
        result = await self.db.execute(
            select(Topic).where(Topic.course_id == course.id).order_by(Topic.order, Topic.created_at)
        )
        topics = list(result.scalars().all())
        materials = await self._materials([t.id for t in topics])
        items = [self._topic_response(t, materials[t.id]) for t in topics]
        return TopicListResponse(topics=items, total=len(items))

    async def create_topic(self, course_id: UUID, data: TopicCreateRequest, user: User) -> TopicResponse:
        course = await self.courses.get_owned_course(course_id, user)
        order = data.order
        if order is None:
            order = await self.db.scalar(
                select(func.count(Topic.id)).where(Topic.course_id == course.id)
            ) or 0

        topic = Topic(course_id=course.id, title=data.title, description=data.description, order=order)
        self.db.add(topic)
        await self.db.flush()
        await self.db.refresh(topic)
        return self._topic_response(topic, [])

    async def update_topic(
        self, course_id: UUID, topic_id: UUID, data: TopicUpdateRequest, user: User
    ) -> TopicResponse:
        course = await self.courses.get_owned_course(course_id, user)
        topic = await self._get_topic(course.id, topic_id)

        if data.title is not None:
            topic.title = data.title
        if data.description is not None:
            topic.description = data.description
        if data.order is not None:
            topic.order = data.order
        await self.db.flush()
        await self.db.refresh(topic)

        materials = await self._materials([topic.id])
        return self._topic_response(topic, materials[topic.id])

    async def delete_topic(self, course_id: UUID, topic_id: UUID, user: User) -> None:
        course = await self.courses.get_owned_course(course_id, user)
        topic = await self._get_topic(course.id, topic_id)
        await self.db.execute(delete(ReadingMaterial).where(ReadingMaterial.topic_id == topic.id))
        await self.db.delete(topic)
        await self.db.flush()
        logger.info("Topic deleted: id=%s course_id=%s", topic_id, course.id)

    # -----------------------------------------------------------------------
    # Reading materials
    # -----------------------------------------------------------------------

    async def add_material(
        self, course_id: UUID, topic_id: UUID, data: ReadingMaterialCreateRequest, user: User
    ) -> ReadingMaterialResponse:
        course = await self.courses.get_owned_course(course_id, user)
        topic = await self._get_topic(course.id, topic_id)

        material = ReadingMaterial(
            topic_id=topic.id,
            title=data.title,
            description=data.description,
            file_name=data.file_name,
            file_url=data.file_url,
            file_size=data.file_size,
            file_type=data.file_type,
            uploaded_by=user.id,
        )
        self.db.add(material)
        await self.db.flush()
        await self.db.refresh(material)
        return ReadingMaterialResponse.model_validate(material)

    async def delete_material(self, course_id: UUID, topic_id: UUID, material_id: UUID, user: User) -> None:
        course = await self.courses.get_owned_course(course_id, user)
        topic = await self._get_topic(course.id, topic_id)
        material = await self.db.scalar(
            select(ReadingMaterial).where(
                ReadingMaterial.id == material_id, ReadingMaterial.topic_id == topic.id
            )
        )
        if material is None:
            raise NotFound("Reading material not found", code="MATERIAL_NOT_FOUND")
        await self.db.delete(material)
        await self.db.flush()
