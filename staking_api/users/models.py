import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from staking_api.utils import utcnow


class AuthType(str, Enum):
    WALLET = "WALLET"
    EMAIL = "EMAIL"
    BOTH = "BOTH"


class UserRole(str, Enum):
    USER = "USER"
    MERCHANT = "MERCHANT"
    BOTH = "BOTH"


class User(SQLModel, table=True):
    """Dashboard user; at least one of address/email is set."""

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    address: Optional[str] = Field(default=None, unique=True, index=True)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    username: Optional[str] = Field(default=None)
    auth_type: AuthType = Field(default=AuthType.WALLET)
    role: UserRole = Field(default=UserRole.USER)
    created_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow, sa_type=DateTime(timezone=True)
    )

    @property
    def public_id(self) -> str:
        """Identifier shown to clients: the wallet address when known."""
        return self.address or str(self.id)
