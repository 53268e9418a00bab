"""Collaboration goal and invitation schemas."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from buddy.config import settings
from buddy.schemas.user import UserSummary


# --- Goals ---

class GoalCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    target: float = Field(default=100, ge=1, le=1_000_000)
    category: Optional[str] = None
    visibility: Literal["public", "private"] = "private"


class GoalUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    target: Optional[float] = Field(default=None, ge=1, le=1_000_000)
    category: Optional[str] = None
    visibility: Optional[Literal["public", "private"]] = None


class ProgressRequest(BaseModel):
    increment: float = Field(ge=1, le=1_000_000)
    note: Optional[str] = Field(default=None, max_length=200)


class GoalResponse(BaseModel):
    id: str
    title: str
    description: str
    target: float
    progress: float
    status: str  # 'not-started' | 'in-progress' | 'completed'
    category: str
    visibility: str
    created_by: UserSummary
    participants: list[UserSummary]
    version: int
    completed_at: Optional[str]
    created_at: str
    updated_at: str


class GoalSummary(BaseModel):
    id: str
    title: str
    description: str
    target: float
    progress: float
    status: str


class ProgressLogResponse(BaseModel):
    id: str
    goal_id: str
    user: Optional[UserSummary]
    before: float
    after: float
    note: Optional[str]
    created_at: str


# --- Invitations ---

class InvitationSendRequest(BaseModel):
    recipient_ids: list[str] = Field(min_length=1, max_length=settings.invite_batch_limit)
    message: Optional[str] = Field(default=None, max_length=500)


class InvitationResponse(BaseModel):
    id: str
    group_id: str
    goal: Optional[GoalSummary] = None
    sender: Optional[UserSummary] = None
    recipient: Optional[UserSummary] = None
    message: str
    status: str  # 'pending' | 'accepted' | 'declined'
    created_at: str
    updated_at: str
