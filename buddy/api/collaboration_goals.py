"""Collaboration goal API endpoints: goals, progress, invitations, participants."""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from buddy.api.deps import envelope, get_current_user
from buddy.database import get_session
from buddy.models.user import User
from buddy.schemas.goal import (
    GoalCreateRequest,
    GoalUpdateRequest,
    InvitationSendRequest,
    ProgressRequest,
)
from buddy.services import goal_service, invitation_service

router = APIRouter(prefix="/collaboration-goals", tags=["collaboration-goals"])


# --- Goal CRUD ---

@router.post("", status_code=status.HTTP_201_CREATED)
def create_goal(
    request: GoalCreateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Create a new collaboration goal."""
    goal = goal_service.create_goal(session, user.id, request.model_dump(exclude_none=True))
    return envelope("Collaboration goal created", goal=goal)


@router.get("")
def list_goals(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """All collaboration goals the current user participates in."""
    goals = goal_service.get_goals_for_user(session, user.id)
    total = goal_service.count_goals_for_user(session, user.id)
    return envelope("Collaboration goals fetched", goals=goals, total=total)


# Registered before "/{goal_id}" so "invitations" is not taken for an id.
@router.get("/invitations")
def pending_invitations(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Pending invitations addressed to the current user."""
    invitations = invitation_service.get_pending_invitations(session, user.id)
    return envelope("Invitations fetched", invitations=invitations)


@router.post("/invitations/{invitation_id}/accept")
def accept_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    invitation = invitation_service.accept_invitation(session, invitation_id, user.id)
    return envelope("Invitation accepted", invitation=invitation)


@router.post("/invitations/{invitation_id}/decline")
def decline_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    invitation = invitation_service.decline_invitation(session, invitation_id, user.id)
    return envelope("Invitation declined", invitation=invitation)


@router.delete("/invitations/{invitation_id}")
def cancel_invitation(
    invitation_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Cancel a pending invitation (sender or goal creator)."""
    invitation_service.cancel_invitation(session, invitation_id, user.id)
    return envelope("Invitation cancelled")


@router.get("/{goal_id}")
def get_goal(
    goal_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    goal = goal_service.get_goal(session, goal_id, user.id)
    return envelope("Collaboration goal fetched", goal=goal)


@router.put("/{goal_id}")
def update_goal(
    goal_id: str,
    request: GoalUpdateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update goal properties (creator only)."""
    goal = goal_service.update_goal(
        session, goal_id, user.id, request.model_dump(exclude_unset=True)
    )
    return envelope("Collaboration goal updated", goal=goal)


@router.delete("/{goal_id}")
def delete_goal(
    goal_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Delete a goal and all of its invitations (creator only)."""
    goal_service.delete_goal(session, goal_id, user.id)
    return envelope("Collaboration goal deleted")


# --- Progress ---

@router.post("/{goal_id}/progress")
def update_progress(
    goal_id: str,
    request: ProgressRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Add progress to a goal (any participant). The note shows up in the activity feed."""
    goal = goal_service.update_progress(
        session, goal_id, user.id, request.increment, request.note
    )
    return envelope("Progress updated", goal=goal)


@router.get("/{goal_id}/activity")
def goal_activity(
    goal_id: str,
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    activity = goal_service.get_goal_activity(session, goal_id, user.id, limit=limit)
    return envelope("Activity fetched", activity=activity)


# --- Invitations ---

@router.post("/{goal_id}/invitations", status_code=status.HTTP_201_CREATED)
def send_invitations(
    goal_id: str,
    request: InvitationSendRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Invite friends to a goal (creator only)."""
    invitations = invitation_service.send_invitations(
        session, goal_id, user.id, request.recipient_ids, request.message
    )
    return envelope("Invitations sent", invitations=invitations)


@router.get("/{goal_id}/invitations")
def sent_invitations(
    goal_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    invitations = invitation_service.get_sent_invitations(session, goal_id, user.id)
    return envelope("Sent invitations fetched", invitations=invitations)


# --- Participants ---

@router.post("/{goal_id}/leave")
def leave_goal(
    goal_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    goal_service.leave_goal(session, goal_id, user.id)
    return envelope("Left the collaboration goal")


@router.delete("/{goal_id}/participants/{participant_id}")
def remove_participant(
    goal_id: str,
    participant_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Remove a participant (creator only)."""
    goal = goal_service.remove_participant(session, goal_id, user.id, participant_id)
    return envelope("Participant removed", goal=goal)
