"""Task-related Pydantic schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class TaskCreate(BaseModel):
    name: str
    description: str = ""


class TaskUpdate(BaseModel):
    """Partial update; fields left unset are not touched."""

    name: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    favourite: Optional[bool] = None


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    topic_id: int
    name: str
    description: str
    completed: bool
    favourite: bool
    created_at: str
    updated_at: str
