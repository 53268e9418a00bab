"""Accountability Buddy Database Models."""

from buddy.models.user import Friendship, User
from buddy.models.goal import CollaborationGoal, GoalParticipant, GoalProgressLog
from buddy.models.invite import GoalInvitation

__all__ = [
    "User",
    "Friendship",
    "CollaborationGoal",
    "GoalParticipant",
    "GoalProgressLog",
    "GoalInvitation",
]
