"""Goal invitation lifecycle.

An invitation starts ``pending`` and ends either ``accepted`` or ``declined``
(kept for history) or deleted by a cancel. Nothing leaves ``accepted`` or
``declined``.
"""

import logging
from datetime import datetime, timezone

from sqlmodel import Session, col, select

from buddy.config import settings
from buddy.models.goal import CollaborationGoal
from buddy.models.invite import (
    INVITATION_ACCEPTED,
    INVITATION_DECLINED,
    INVITATION_PENDING,
    GoalInvitation,
)
from buddy.models.user import User
from buddy.schemas.goal import InvitationResponse
from buddy.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from buddy.services.friend_service import get_friend_ids, get_user_summaries
from buddy.services.goal_service import (
    add_participant,
    get_goal_or_404,
    get_participant_ids,
    goal_to_summary,
)
from buddy.utils.ids import is_valid_id

logger = logging.getLogger(__name__)


def _serialize(
    session: Session,
    invitations: list[GoalInvitation],
    expand: tuple[str, ...] = (),
) -> list[InvitationResponse]:
    """Build responses, expanding any of "goal", "sender", "recipient"."""
    summaries = {}
    user_ids = []
    if "sender" in expand:
        user_ids += [inv.sender_id for inv in invitations]
    if "recipient" in expand:
        user_ids += [inv.recipient_id for inv in invitations]
    if user_ids:
        summaries = get_user_summaries(session, user_ids)

    goals = {}
    if "goal" in expand and invitations:
        rows = session.exec(
            select(CollaborationGoal).where(
                col(CollaborationGoal.id).in_(list({inv.group_id for inv in invitations}))
            )
        ).all()
        goals = {g.id: goal_to_summary(g) for g in rows}

    return [
        InvitationResponse(
            id=inv.id,
            group_id=inv.group_id,
            goal=goals.get(inv.group_id),
            sender=summaries.get(inv.sender_id) if "sender" in expand else None,
            recipient=summaries.get(inv.recipient_id) if "recipient" in expand else None,
            message=inv.message,
            status=inv.status,
            created_at=inv.created_at.isoformat() if inv.created_at else "",
            updated_at=inv.updated_at.isoformat() if inv.updated_at else "",
        )
        for inv in invitations
    ]


def _get_invitation_or_404(session: Session, invitation_id: str) -> GoalInvitation:
    invitation = (
        session.get(GoalInvitation, invitation_id)
        if is_valid_id(invitation_id, "ginv") else None
    )
    if not invitation:
        raise NotFoundError("Invitation not found")
    return invitation


def _pending_recipient_ids(session: Session, goal_id: str) -> set[str]:
    return set(session.exec(
        select(GoalInvitation.recipient_id).where(
            GoalInvitation.group_id == goal_id,
            GoalInvitation.status == INVITATION_PENDING,
        )
    ).all())


def send_invitations(
    session: Session,
    goal_id: str,
    sender_id: str,
    recipient_ids: list[str],
    message: str | None = None,
) -> list[InvitationResponse]:
    """Invite friends of the creator to a goal.

    Recipients that are not friends, already participate, or already hold a
    pending invitation are skipped. Raises ``InvalidInputError`` when nobody
    is left to invite.
    """
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by != sender_id:
        raise ForbiddenError("Only the goal creator can send invitations")

    sender = session.get(User, sender_id)
    if not sender:
        raise NotFoundError("User not found")

    if len(recipient_ids) > settings.invite_batch_limit:
        raise InvalidInputError(
            f"You can invite at most {settings.invite_batch_limit} users at once"
        )

    friend_ids = get_friend_ids(session, sender_id)
    # dict.fromkeys keeps request order and drops repeats
    valid_recipients = [rid for rid in dict.fromkeys(recipient_ids) if rid in friend_ids]
    if not valid_recipients:
        raise InvalidInputError("You can only invite your friends")

    excluded = set(get_participant_ids(session, goal.id)) | _pending_recipient_ids(session, goal.id)
    new_recipients = [rid for rid in valid_recipients if rid not in excluded]
    if not new_recipients:
        raise InvalidInputError(
            "All selected users are already participants or have pending invitations"
        )

    text = message or f'{sender.username} invited you to join the goal "{goal.title}"'
    invitations = [
        GoalInvitation(
            group_id=goal.id,
            sender_id=sender_id,
            recipient_id=rid,
            message=text,
        )
        for rid in new_recipients
    ]
    session.add_all(invitations)
    session.commit()
    for inv in invitations:
        session.refresh(inv)

    logger.info(
        "Sent %d invitation(s) for goal %s from %s (%d requested)",
        len(invitations), goal.id, sender_id, len(recipient_ids),
    )
    return _serialize(session, invitations, expand=("recipient",))


def get_pending_invitations(session: Session, user_id: str) -> list[InvitationResponse]:
    invitations = session.exec(
        select(GoalInvitation)
        .where(
            GoalInvitation.recipient_id == user_id,
            GoalInvitation.status == INVITATION_PENDING,
        )
        .order_by(col(GoalInvitation.created_at).desc())
    ).all()
    return _serialize(session, list(invitations), expand=("goal", "sender"))


def get_sent_invitations(session: Session, goal_id: str, user_id: str) -> list[InvitationResponse]:
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by != user_id:
        raise ForbiddenError("Only the goal creator can view sent invitations")

    invitations = session.exec(
        select(GoalInvitation)
        .where(GoalInvitation.group_id == goal.id)
        .order_by(col(GoalInvitation.created_at).desc())
    ).all()
    return _serialize(session, list(invitations), expand=("recipient",))


def _respond(session: Session, invitation_id: str, user_id: str, status: str) -> GoalInvitation:
    invitation = _get_invitation_or_404(session, invitation_id)
    if invitation.recipient_id != user_id:
        raise ForbiddenError("This invitation is not addressed to you")
    if invitation.status != INVITATION_PENDING:
        raise ConflictError(f"Invitation has already been {invitation.status}")

    invitation.status = status
    invitation.updated_at = datetime.now(timezone.utc)
    session.add(invitation)
    session.commit()
    session.refresh(invitation)
    return invitation


def accept_invitation(session: Session, invitation_id: str, user_id: str) -> InvitationResponse:
    """Accept an invitation and join its goal.

    If the goal was deleted meanwhile the invitation is still marked accepted
    but nobody is added.
    """
    invitation = _respond(session, invitation_id, user_id, INVITATION_ACCEPTED)

    goal = session.get(CollaborationGoal, invitation.group_id)
    if goal is None:
        logger.warning(
            "Invitation %s accepted but goal %s no longer exists",
            invitation.id, invitation.group_id,
        )
    elif add_participant(session, goal.id, user_id):
        logger.info("User %s joined goal %s via invitation %s", user_id, goal.id, invitation.id)

    return _serialize(session, [invitation], expand=("goal", "sender"))[0]


def decline_invitation(session: Session, invitation_id: str, user_id: str) -> InvitationResponse:
    invitation = _respond(session, invitation_id, user_id, INVITATION_DECLINED)
    logger.info("Invitation %s declined by %s", invitation.id, user_id)
    return _serialize(session, [invitation], expand=("goal", "sender"))[0]


def cancel_invitation(session: Session, invitation_id: str, user_id: str) -> None:
    """Delete a pending invitation. Allowed for the sender or the goal creator."""
    invitation = _get_invitation_or_404(session, invitation_id)
    goal = session.get(CollaborationGoal, invitation.group_id)
    creator_id = goal.created_by if goal else None

    if user_id not in (invitation.sender_id, creator_id):
        raise ForbiddenError("Only the sender or the goal creator can cancel this invitation")
    if invitation.status != INVITATION_PENDING:
        raise ConflictError(f"Invitation has already been {invitation.status}")

    session.delete(invitation)
    session.commit()
    logger.info("Invitation %s cancelled by %s", invitation_id, user_id)
