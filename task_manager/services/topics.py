"""
Topic service — listing, creation and deletion of topics.

"Favourites" and "Default" are seeded by the initial migration and can never
be deleted; deleting any other topic removes its tasks through the
``ON DELETE CASCADE`` foreign key.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from task_manager.core.errors import NotFoundError, ProtectedTopicError
from task_manager.models import SPECIAL_TOPICS, Topic, now_text
from task_manager.schemas import TopicCreate

log = structlog.get_logger()


def is_special_topic(name: str) -> bool:
    return name in SPECIAL_TOPICS


async def list_topics(session: AsyncSession) -> list[Topic]:
    result = await session.execute(select(Topic).order_by(Topic.id))
    return list(result.scalars().all())


async def get_topic_or_raise(session: AsyncSession, topic_id: int) -> Topic:
    topic = await session.get(Topic, topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic


async def get_topic_by_name(session: AsyncSession, name: str) -> Optional[Topic]:
    result = await session.execute(
        select(Topic).where(Topic.name == name).order_by(Topic.id).limit(1)
    )
    return result.scalar_one_or_none()


async def create_topic(session: AsyncSession, topic_in: TopicCreate) -> Topic:
    now = now_text()
    topic = Topic(
        name=topic_in.name,
        description=topic_in.description,
        created_at=now,
        updated_at=now,
    )
    session.add(topic)
    await session.flush()
    log.info("topic.created", topic_id=topic.id, name=topic.name)
    return topic


async def delete_topic(session: AsyncSession, topic_id: int) -> int:
    """Delete a user-created topic and, by cascade, its tasks. Returns rows deleted."""
    topic = await get_topic_or_raise(session, topic_id)
    if is_special_topic(topic.name):
        log.warning("topic.delete_refused", topic_id=topic_id, name=topic.name)
        raise ProtectedTopicError(topic.name)

    result = await session.execute(delete(Topic).where(Topic.id == topic_id))
    log.info("topic.deleted", topic_id=topic_id)
    return result.rowcount
