"""Goal invitation model."""

import secrets
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel

INVITATION_PENDING = "pending"
INVITATION_ACCEPTED = "accepted"
INVITATION_DECLINED = "declined"


class GoalInvitation(SQLModel, table=True):
    __tablename__ = "goal_invitations"

    id: str = Field(default_factory=lambda: f"ginv_{secrets.token_hex(4)}", primary_key=True)
    group_id: str = Field(foreign_key="collaboration_goals.id", index=True)
    sender_id: str = Field(foreign_key="users.id")
    recipient_id: str = Field(foreign_key="users.id", index=True)
    message: str = Field(default="")
    status: str = Field(default=INVITATION_PENDING, index=True)  # 'pending' | 'accepted' | 'declined'
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
