"""User and friend list business logic.

Friendships are stored as two directed rows so "friends of X" is a single
indexed lookup in either direction.
"""

import logging

from sqlmodel import Session, col, select

from buddy.models.user import Friendship, User
from buddy.schemas.user import UserSummary
from buddy.services.errors import InvalidInputError, NotFoundError
from buddy.utils.ids import is_valid_id

logger = logging.getLogger(__name__)


def user_to_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        username=user.username,
        name=user.name,
        profile_image=user.profile_image or "",
    )


def get_user_summaries(session: Session, user_ids: list[str]) -> dict[str, UserSummary]:
    """Load summaries for ``user_ids`` keyed by id. Missing users are skipped."""
    if not user_ids:
        return {}
    users = session.exec(
        select(User).where(col(User.id).in_(list(set(user_ids))))
    ).all()
    return {u.id: user_to_summary(u) for u in users}


def create_user(
    session: Session,
    username: str,
    name: str | None = None,
    profile_image: str = "",
) -> User:
    existing = session.exec(select(User).where(User.username == username)).first()
    if existing:
        raise InvalidInputError("Username is already taken")

    user = User(username=username, name=name, profile_image=profile_image)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created user %s (%s)", user.id, user.username)
    return user


def get_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id) if is_valid_id(user_id, "usr") else None
    if not user:
        raise NotFoundError("User not found")
    return user


def get_friend_ids(session: Session, user_id: str) -> set[str]:
    return set(session.exec(
        select(Friendship.friend_id).where(Friendship.user_id == user_id)
    ).all())


def list_friends(session: Session, user_id: str) -> list[UserSummary]:
    friends = session.exec(
        select(User)
        .join(Friendship, Friendship.friend_id == User.id)
        .where(Friendship.user_id == user_id)
        .order_by(col(User.username).asc())
    ).all()
    return [user_to_summary(f) for f in friends]


def add_friend(session: Session, user_id: str, friend_id: str) -> UserSummary:
    """Make two users friends (both directions)."""
    if user_id == friend_id:
        raise InvalidInputError("You cannot add yourself as a friend")

    get_user(session, user_id)
    friend = get_user(session, friend_id)

    if friend_id in get_friend_ids(session, user_id):
        raise InvalidInputError("Already friends")

    session.add(Friendship(user_id=user_id, friend_id=friend_id))
    session.add(Friendship(user_id=friend_id, friend_id=user_id))
    session.commit()
    logger.info("Users %s and %s are now friends", user_id, friend_id)
    return user_to_summary(friend)


def remove_friend(session: Session, user_id: str, friend_id: str) -> None:
    rows = session.exec(
        select(Friendship).where(
            ((Friendship.user_id == user_id) & (Friendship.friend_id == friend_id))
            | ((Friendship.user_id == friend_id) & (Friendship.friend_id == user_id))
        )
    ).all()
    if not rows:
        raise NotFoundError("Friend not found")

    for row in rows:
        session.delete(row)
    session.commit()
    logger.info("Users %s and %s are no longer friends", user_id, friend_id)
