"""Collaboration goal models."""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

GOAL_STATUS_NOT_STARTED = "not-started"
GOAL_STATUS_IN_PROGRESS = "in-progress"
GOAL_STATUS_COMPLETED = "completed"

VISIBILITY_PUBLIC = "public"
VISIBILITY_PRIVATE = "private"


class CollaborationGoal(SQLModel, table=True):
    __tablename__ = "collaboration_goals"

    id: str = Field(default_factory=lambda: f"cg_{secrets.token_hex(4)}", primary_key=True)
    title: str
    description: str = Field(default="")
    target: float = Field(default=100)
    category: str = Field(default="other")
    visibility: str = Field(default=VISIBILITY_PRIVATE, index=True)  # 'public' | 'private'
    created_by: str = Field(foreign_key="users.id", index=True)
    progress: float = Field(default=0)
    status: str = Field(default=GOAL_STATUS_NOT_STARTED)  # 'not-started' | 'in-progress' | 'completed'
    version: int = Field(default=1)
    completed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GoalParticipant(SQLModel, table=True):
    __tablename__ = "goal_participants"
    __table_args__ = (UniqueConstraint("goal_id", "user_id", name="uq_goal_participant"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    goal_id: str = Field(foreign_key="collaboration_goals.id", index=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GoalProgressLog(SQLModel, table=True):
    __tablename__ = "goal_progress_logs"

    id: str = Field(default_factory=lambda: f"plog_{secrets.token_hex(4)}", primary_key=True)
    goal_id: str = Field(foreign_key="collaboration_goals.id", index=True)
    user_id: str = Field(foreign_key="users.id")
    before: float
    after: float
    note: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
