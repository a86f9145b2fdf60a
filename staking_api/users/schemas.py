from datetime import datetime
from typing import Optional

from staking_api.schemas import ApiModel
from staking_api.users.models import AuthType, User, UserRole


class UserSignupRequest(ApiModel):
    """Request model for user signup."""

    address: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    auth_type: Optional[str] = None


class UserUpdateRequest(ApiModel):
    """Request model for profile updates; ``user_id`` is the address."""

    user_id: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None


class UserResponse(ApiModel):
    """User DTO."""

    id: str
    address: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    auth_type: AuthType
    role: UserRole
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=str(user.id),
            address=user.address or None,
            email=user.email or None,
            username=user.username or None,
            auth_type=user.auth_type,
            role=user.role,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
