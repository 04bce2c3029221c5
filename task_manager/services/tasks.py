"""
Task service layer: CRUD and flag toggles for tasks.

Handles:
- Listing tasks for a topic, where "Favourites" and "Default" are views
- Creating tasks under an existing topic
- Partial updates and completion/favourite toggles
"""

from __future__ import annotations

import structlog
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from task_manager.core.errors import NotFoundError
from task_manager.models import DEFAULT, FAVOURITES, Task, Topic, now_text
from task_manager.schemas import TaskCreate, TaskUpdate
from task_manager.services.topics import get_topic_or_raise

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task_or_raise(session: AsyncSession, task_id: int) -> Task:
    task = await session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_tasks(session: AsyncSession, topic: Topic) -> list[Task]:
    """Tasks shown under ``topic``.

    "Favourites" lists favourite tasks from every topic and "Default" lists
    every task; any other topic lists only its own tasks.
    """
    query = select(Task)
    if topic.name == FAVOURITES:
        query = query.where(Task.favourite == True)  # noqa: E712
    elif topic.name != DEFAULT:
        query = query.where(Task.topic_id == topic.id)
    result = await session.execute(query.order_by(Task.id))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_task(session: AsyncSession, topic_id: int, task_in: TaskCreate) -> Task:
    await get_topic_or_raise(session, topic_id)

    now = now_text()
    task = Task(
        topic_id=topic_id,
        name=task_in.name,
        description=task_in.description,
        completed=False,
        favourite=False,
        created_at=now,
        updated_at=now,
    )
    session.add(task)
    await session.flush()
    log.info("task.created", task_id=task.id, topic_id=topic_id)
    return task


async def update_task(session: AsyncSession, task_id: int, task_in: TaskUpdate) -> Task:
    task = await get_task_or_raise(session, task_id)
    data = task_in.model_dump(exclude_unset=True, exclude_none=True)

    for key, value in data.items():
        setattr(task, key, value)
    task.updated_at = now_text()

    await session.flush()
    log.info("task.updated", task_id=task_id, fields=sorted(data))
    return task


async def toggle_task_completion(session: AsyncSession, task_id: int) -> Task:
    task = await get_task_or_raise(session, task_id)
    task.completed = not task.completed
    task.updated_at = now_text()
    await session.flush()
    log.info("task.completion_toggled", task_id=task_id, completed=task.completed)
    return task


async def toggle_task_favourite(session: AsyncSession, task_id: int) -> Task:
    task = await get_task_or_raise(session, task_id)
    task.favourite = not task.favourite
    task.updated_at = now_text()
    await session.flush()
    log.info("task.favourite_toggled", task_id=task_id, favourite=task.favourite)
    return task


async def delete_task(session: AsyncSession, task_id: int) -> int:
    """Delete a task. Returns the number of rows removed (0 if it did not exist)."""
    result = await session.execute(delete(Task).where(Task.id == task_id))
    log.info("task.deleted", task_id=task_id, rows=result.rowcount)
    return result.rowcount
