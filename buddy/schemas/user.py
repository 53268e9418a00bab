"""User and friend request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class UserSummary(BaseModel):
    id: str
    username: str
    name: Optional[str] = None
    profile_image: str = ""


# --- Users ---

class UserCreateRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    name: Optional[str] = Field(default=None, max_length=100)
    profile_image: str = ""


class UserCreateResponse(BaseModel):
    user: UserSummary
    access_token: str


# --- Friends ---

class FriendAddRequest(BaseModel):
    friend_id: str
