"""User profile & friend list API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from buddy.api.deps import envelope, get_current_user
from buddy.database import get_session
from buddy.models.user import User
from buddy.schemas.user import FriendAddRequest, UserCreateRequest
from buddy.services.friend_service import (
    add_friend,
    create_user,
    list_friends,
    remove_friend,
    user_to_summary,
)
from buddy.utils.security import create_access_token

router = APIRouter(tags=["users"])


@router.post("/users", status_code=status.HTTP_201_CREATED)
def register_user(
    request: UserCreateRequest,
    session: Session = Depends(get_session),
):
    """Create a user profile and issue an access token for it."""
    user = create_user(
        session,
        username=request.username,
        name=request.name,
        profile_image=request.profile_image,
    )
    return envelope(
        "User created",
        user=user_to_summary(user),
        access_token=create_access_token(user.id),
    )


@router.get("/users/me")
def get_my_profile(user: User = Depends(get_current_user)):
    """Get current user's profile."""
    return envelope("User fetched", user=user_to_summary(user))


@router.get("/friends")
def get_friends(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """List the current user's friends."""
    friends = list_friends(session, user.id)
    return envelope("Friends fetched", friends=friends, total=len(friends))


@router.post("/friends", status_code=status.HTTP_201_CREATED)
def befriend(
    request: FriendAddRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Add a friend (the relationship is mutual)."""
    friend = add_friend(session, user.id, request.friend_id)
    return envelope("Friend added", friend=friend)


@router.delete("/friends/{friend_id}")
def unfriend(
    friend_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Remove a friend on both sides."""
    remove_friend(session, user.id, friend_id)
    return envelope("Friend removed")
