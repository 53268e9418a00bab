"""Collaboration goal business logic: CRUD, progress and participants.

Every function takes the acting user's id explicitly and raises a
``ServiceError`` subclass when the user may not perform the change. Goal rows
are written with a version check so two requests that read the same goal
cannot silently overwrite each other; membership lives in its own table and
is changed row by row.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from buddy.config import settings
from buddy.models.goal import (
    GOAL_STATUS_COMPLETED,
    GOAL_STATUS_IN_PROGRESS,
    GOAL_STATUS_NOT_STARTED,
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    CollaborationGoal,
    GoalParticipant,
    GoalProgressLog,
)
from buddy.models.invite import GoalInvitation
from buddy.schemas.goal import GoalResponse, GoalSummary, ProgressLogResponse
from buddy.schemas.user import UserSummary
from buddy.services.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    StaleWriteError,
)
from buddy.services.friend_service import get_user_summaries
from buddy.utils.ids import is_valid_id

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"title", "description", "target", "category", "visibility"}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def derive_status(progress: float, target: float, current: str) -> str:
    """Status as a function of progress and target.

    A goal that never moved stays ``not-started``; once it has any recorded
    progress it is ``in-progress`` until progress reaches the target.
    """
    if progress >= target:
        return GOAL_STATUS_COMPLETED
    if current == GOAL_STATUS_NOT_STARTED and progress <= 0:
        return GOAL_STATUS_NOT_STARTED
    return GOAL_STATUS_IN_PROGRESS


# --- Loading & serialization ---

def get_goal_or_404(session: Session, goal_id: str) -> CollaborationGoal:
    goal = session.get(CollaborationGoal, goal_id) if is_valid_id(goal_id, "cg") else None
    if not goal:
        raise NotFoundError("Collaboration goal not found")
    return goal


def get_participant_ids(session: Session, goal_id: str) -> list[str]:
    return list(session.exec(
        select(GoalParticipant.user_id)
        .where(GoalParticipant.goal_id == goal_id)
        .order_by(col(GoalParticipant.joined_at).asc(), col(GoalParticipant.id).asc())
    ).all())


def is_participant(session: Session, goal_id: str, user_id: str) -> bool:
    row = session.exec(
        select(GoalParticipant.id).where(
            GoalParticipant.goal_id == goal_id,
            GoalParticipant.user_id == user_id,
        )
    ).first()
    return row is not None


def add_participant(session: Session, goal_id: str, user_id: str) -> bool:
    """Add ``user_id`` to a goal. Returns False if already a member."""
    if is_participant(session, goal_id, user_id):
        return False
    session.add(GoalParticipant(goal_id=goal_id, user_id=user_id))
    try:
        session.commit()
    except IntegrityError:
        # Joined concurrently through another request
        session.rollback()
        return False
    return True


def _summary(summaries: dict[str, UserSummary], user_id: str) -> UserSummary:
    return summaries.get(user_id) or UserSummary(id=user_id, username="[deleted]")


def serialize_goals(session: Session, goals: list[CollaborationGoal]) -> list[GoalResponse]:
    """Expand creators and participants to user summaries for a batch of goals."""
    if not goals:
        return []

    goal_ids = [g.id for g in goals]
    rows = session.exec(
        select(GoalParticipant)
        .where(col(GoalParticipant.goal_id).in_(goal_ids))
        .order_by(col(GoalParticipant.joined_at).asc(), col(GoalParticipant.id).asc())
    ).all()
    members: dict[str, list[str]] = {gid: [] for gid in goal_ids}
    for row in rows:
        members[row.goal_id].append(row.user_id)

    user_ids = [g.created_by for g in goals] + [r.user_id for r in rows]
    summaries = get_user_summaries(session, user_ids)

    return [
        GoalResponse(
            id=g.id,
            title=g.title,
            description=g.description,
            target=g.target,
            progress=g.progress,
            status=g.status,
            category=g.category,
            visibility=g.visibility,
            created_by=_summary(summaries, g.created_by),
            participants=[_summary(summaries, uid) for uid in members[g.id]],
            version=g.version,
            completed_at=_iso(g.completed_at),
            created_at=_iso(g.created_at) or "",
            updated_at=_iso(g.updated_at) or "",
        )
        for g in goals
    ]


def serialize_goal(session: Session, goal: CollaborationGoal) -> GoalResponse:
    return serialize_goals(session, [goal])[0]


def goal_to_summary(goal: CollaborationGoal) -> GoalSummary:
    return GoalSummary(
        id=goal.id,
        title=goal.title,
        description=goal.description,
        target=goal.target,
        progress=goal.progress,
        status=goal.status,
    )


def _write_goal(session: Session, goal: CollaborationGoal, **values) -> None:
    """Apply ``values`` to the goal row only if nobody wrote it since it was read.

    The caller commits.
    """
    values["version"] = goal.version + 1
    values["updated_at"] = _now()
    result = session.exec(  # type: ignore[call-overload]
        update(CollaborationGoal)
        .where(
            col(CollaborationGoal.id) == goal.id,
            col(CollaborationGoal.version) == goal.version,
        )
        .values(**values)
    )
    if result.rowcount != 1:
        session.rollback()
        logger.warning("Stale write rejected for goal %s (version %s)", goal.id, goal.version)
        raise StaleWriteError(
            "Collaboration goal was modified by another request, please retry",
        )


# --- CRUD ---

def create_goal(session: Session, creator_id: str, data: dict) -> GoalResponse:
    """Create a goal owned by ``creator_id`` with the creator as first participant."""
    goal = CollaborationGoal(
        title=data["title"],
        description=data.get("description", ""),
        target=data.get("target", 100),
        category=data.get("category", "other"),
        visibility=data.get("visibility", VISIBILITY_PRIVATE),
        created_by=creator_id,
    )
    session.add(goal)
    session.flush()
    session.add(GoalParticipant(goal_id=goal.id, user_id=creator_id))
    session.commit()
    session.refresh(goal)

    logger.info("Collaboration goal %s created by %s", goal.id, creator_id)
    return serialize_goal(session, goal)


def get_goal(session: Session, goal_id: str, user_id: str) -> GoalResponse:
    goal = get_goal_or_404(session, goal_id)
    if goal.visibility != VISIBILITY_PUBLIC and not is_participant(session, goal.id, user_id):
        raise ForbiddenError("You do not have access to this goal")
    return serialize_goal(session, goal)


def _member_goals_query(user_id: str):
    return select(CollaborationGoal).join(
        GoalParticipant, GoalParticipant.goal_id == CollaborationGoal.id
    ).where(GoalParticipant.user_id == user_id)


def get_goals_for_user(session: Session, user_id: str) -> list[GoalResponse]:
    """All goals the user participates in, newest first."""
    if not is_valid_id(user_id, "usr"):
        raise InvalidInputError("Invalid user ID")

    goals = session.exec(
        _member_goals_query(user_id).order_by(col(CollaborationGoal.created_at).desc())
    ).all()
    return serialize_goals(session, list(goals))


def count_goals_for_user(session: Session, user_id: str) -> int:
    if not is_valid_id(user_id, "usr"):
        raise InvalidInputError("Invalid user ID")

    return session.exec(
        select(func.count()).select_from(GoalParticipant).where(
            GoalParticipant.user_id == user_id
        )
    ).one()


def update_goal(session: Session, goal_id: str, user_id: str, updates: dict) -> GoalResponse:
    """Shallow-merge ``updates`` onto the goal. Creator only."""
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by != user_id:
        raise ForbiddenError("Only the goal creator can update this goal")

    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise InvalidInputError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    values = {k: v for k, v in updates.items() if v is not None}
    if not values:
        return serialize_goal(session, goal)

    target = values.get("target", goal.target)
    progress = min(goal.progress, target)
    status = derive_status(progress, target, goal.status)
    values.update(
        progress=progress,
        status=status,
        completed_at=_completed_at(goal, status),
    )

    _write_goal(session, goal, **values)
    session.commit()
    session.refresh(goal)

    logger.info("Collaboration goal %s updated by %s: %s", goal.id, user_id, sorted(updates))
    return serialize_goal(session, goal)


def _completed_at(goal: CollaborationGoal, status: str) -> datetime | None:
    if status != GOAL_STATUS_COMPLETED:
        return None
    return goal.completed_at or _now()


def update_progress(
    session: Session,
    goal_id: str,
    user_id: str,
    progress_increment: float,
    note: str | None = None,
) -> GoalResponse:
    """Add ``progress_increment`` to the goal, capped at ``target``.

    Only the upper bound is enforced; negative increments are not floored.
    """
    goal = get_goal_or_404(session, goal_id)
    if not is_participant(session, goal.id, user_id):
        raise ForbiddenError("Only participants can update progress")

    before = goal.progress
    after = min(before + progress_increment, goal.target)
    status = GOAL_STATUS_COMPLETED if after >= goal.target else GOAL_STATUS_IN_PROGRESS

    _write_goal(
        session,
        goal,
        progress=after,
        status=status,
        completed_at=_completed_at(goal, status),
    )
    session.add(GoalProgressLog(
        goal_id=goal.id,
        user_id=user_id,
        before=before,
        after=after,
        note=note,
    ))
    session.commit()
    session.refresh(goal)

    logger.info(
        "Progress on goal %s by %s: %s -> %s (%s)",
        goal.id, user_id, before, after, status,
    )
    return serialize_goal(session, goal)


def delete_goal(session: Session, goal_id: str, user_id: str) -> None:
    """Delete a goal with its invitations, participants and activity. Creator only.

    Everything is removed in one transaction.
    """
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by != user_id:
        raise ForbiddenError("Only the goal creator can delete this goal")

    removed = session.exec(  # type: ignore[call-overload]
        delete(GoalInvitation).where(col(GoalInvitation.group_id) == goal.id)
    ).rowcount
    session.exec(  # type: ignore[call-overload]
        delete(GoalParticipant).where(col(GoalParticipant.goal_id) == goal.id)
    )
    session.exec(  # type: ignore[call-overload]
        delete(GoalProgressLog).where(col(GoalProgressLog.goal_id) == goal.id)
    )
    session.delete(goal)
    session.commit()

    logger.info("Collaboration goal %s deleted by %s (%d invitation(s) removed)", goal_id, user_id, removed)


# --- Participants ---

def _remove_membership(session: Session, goal_id: str, user_id: str) -> None:
    session.exec(  # type: ignore[call-overload]
        delete(GoalParticipant).where(
            col(GoalParticipant.goal_id) == goal_id,
            col(GoalParticipant.user_id) == user_id,
        )
    )
    session.commit()


def leave_goal(session: Session, goal_id: str, user_id: str) -> None:
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by == user_id:
        raise InvalidInputError("The goal creator cannot leave the goal. Delete it instead")
    if not is_participant(session, goal.id, user_id):
        raise InvalidInputError("You are not a participant of this goal")

    _remove_membership(session, goal.id, user_id)
    logger.info("User %s left goal %s", user_id, goal.id)


def remove_participant(
    session: Session,
    goal_id: str,
    creator_id: str,
    participant_id: str,
) -> GoalResponse:
    goal = get_goal_or_404(session, goal_id)
    if goal.created_by != creator_id:
        raise ForbiddenError("Only the goal creator can remove participants")
    if participant_id == creator_id:
        raise InvalidInputError("You cannot remove yourself from your own goal")
    if not is_participant(session, goal.id, participant_id):
        raise InvalidInputError("User is not a participant of this goal")

    _remove_membership(session, goal.id, participant_id)
    logger.info("Participant %s removed from goal %s by %s", participant_id, goal.id, creator_id)
    return serialize_goal(session, goal)


# --- Activity ---

def get_goal_activity(
    session: Session,
    goal_id: str,
    user_id: str,
    limit: int | None = None,
) -> list[ProgressLogResponse]:
    """Progress history of a goal, newest first. Same access rule as ``get_goal``."""
    goal = get_goal_or_404(session, goal_id)
    if goal.visibility != VISIBILITY_PUBLIC and not is_participant(session, goal.id, user_id):
        raise ForbiddenError("You do not have access to this goal")

    logs = session.exec(
        select(GoalProgressLog)
        .where(GoalProgressLog.goal_id == goal.id)
        .order_by(col(GoalProgressLog.created_at).desc())
        .limit(limit or settings.activity_page_size)
    ).all()
    summaries = get_user_summaries(session, [log.user_id for log in logs])

    return [
        ProgressLogResponse(
            id=log.id,
            goal_id=log.goal_id,
            user=summaries.get(log.user_id),
            before=log.before,
            after=log.after,
            note=log.note,
            created_at=_iso(log.created_at) or "",
        )
        for log in logs
    ]
