"""Pydantic schemas for topics and tasks.

Learn: Separate schemas for create/update/read keeps the API clean.
- *Create: what you POST
- *Update: what you PUT/PATCH (all optional; unsent fields untouched)
- *Read:   what the API returns (camelCase, tombstone included)

Coordinates are validated against [-100, 100] here. Out-of-range values
are a 400, never clamped.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, field_validator

from eisenhower.db.models import COORD_MAX, COORD_MIN
from eisenhower.schemas.base import ApiModel

TaskState = Literal["incomplete", "complete"]

Coordinate = Optional[float]


# ─── Topics ──────────────────────────────────────────────

class TopicCreate(ApiModel):
    name: Optional[str] = Field(None, max_length=70)
    description: Optional[str] = None


class TopicUpdate(TopicCreate):
    """Partial update — only the fields sent are applied."""


class TopicRead(ApiModel):
    id: int
    name: Optional[str]
    description: Optional[str]
    user_id: int
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


# ─── Tasks ───────────────────────────────────────────────

class TaskCreate(ApiModel):
    description: str = Field(..., min_length=1)
    state: TaskState = "incomplete"
    coord_x: Coordinate = Field(None, ge=COORD_MIN, le=COORD_MAX)
    coord_y: Coordinate = Field(None, ge=COORD_MIN, le=COORD_MAX)
    due_date: Optional[datetime] = None
    topic_id: Optional[int] = None


class TaskUpdate(ApiModel):
    """Partial update. topicId: null moves the task out of its topic."""
    description: Optional[str] = Field(None, min_length=1)
    state: Optional[TaskState] = None
    coord_x: Coordinate = Field(None, ge=COORD_MIN, le=COORD_MAX)
    coord_y: Coordinate = Field(None, ge=COORD_MIN, le=COORD_MAX)
    due_date: Optional[datetime] = None
    topic_id: Optional[int] = None

    @field_validator("description", "state")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v


class TaskRead(ApiModel):
    id: int
    description: str
    state: TaskState
    coord_x: Optional[float]
    coord_y: Optional[float]
    due_date: Optional[datetime]
    user_id: int
    topic_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
