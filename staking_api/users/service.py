import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from staking_api.constants import Messages
from staking_api.database import atomic
from staking_api.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    StoreErrorKind,
    ValidationError,
)
from staking_api.retry import safe_query
from staking_api.schemas import PaginationInfo, PaginationParams
from staking_api.users.models import AuthType, User, UserRole
from staking_api.users.repository import UserRepository
from staking_api.users.schemas import (
    UserResponse,
    UserSignupRequest,
    UserUpdateRequest,
)
from staking_api.utils import (
    build_pagination,
    build_pagination_info,
    parse_enum,
    parse_uuid,
    utcnow,
)


logger = logging.getLogger(__name__)


class UserService:
    """Service for user accounts and wallet-address resolution."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repository = UserRepository(session)

    async def find_by_address(self, address: str) -> Optional[User]:
        """Resolve a wallet address to its user row, or None."""
        return await safe_query(
            lambda: self.repository.get_by_address(address),
            session=self.session,
        )

    async def require_by_address(self, address: str) -> User:
        """Resolve a wallet address for a write; fail when unknown."""
        user = await self.find_by_address(address)
        if user is None:
            raise NotFoundError(Messages.USER_NOT_FOUND)
        return user

    async def signup(
        self, request: UserSignupRequest
    ) -> tuple[UserResponse, bool]:
        """
        Register a user, or log in the user owning the given address.

        Args:
            request: Signup payload

        Returns:
            Tuple of the user DTO and whether a new row was created
        """
        auth_type = _parse_auth_type(request.auth_type)

        if auth_type is AuthType.WALLET and not request.address:
            raise ValidationError(
                "Address is required for wallet authentication"
            )
        if auth_type is AuthType.EMAIL and not request.email:
            raise ValidationError(
                "Email is required for email authentication"
            )
        if auth_type is AuthType.BOTH and (
            not request.address or not request.email
        ):
            raise ValidationError(
                "Both address and email are required for BOTH authentication"
            )

        if request.address:
            existing = await self.find_by_address(request.address)
            if existing is not None:
                logger.info("Existing user %s logged in", existing.address)
                return UserResponse.from_model(existing), False

        if request.email:
            taken = await safe_query(
                lambda: self.repository.get_by_email(request.email),
                session=self.session,
            )
            if taken is not None:
                raise ConflictError("User with this email already exists")

        async def create() -> User:
            async with atomic(self.session):
                user = self.repository.add(
                    User(
                        address=request.address or None,
                        email=request.email or None,
                        username=request.username or None,
                        auth_type=auth_type,
                    )
                )
            return user

        try:
            user = await safe_query(create, session=self.session)
        except StoreError as e:
            if e.kind is StoreErrorKind.CONSTRAINT_VIOLATION:
                raise ConflictError(
                    "User with this address or email already exists"
                ) from e
            raise

        logger.info("Created user %s (%s)", user.id, auth_type.value)
        return UserResponse.from_model(user), True

    async def update_profile(self, request: UserUpdateRequest) -> UserResponse:
        """Change username and/or email of the user owning an address."""
        if not request.user_id:
            raise ValidationError("User ID is required")

        existing = await self.require_by_address(request.user_id)
        user_id = existing.id

        if request.email is not None and request.email != existing.email:
            taken = await safe_query(
                lambda: self.repository.get_by_email(request.email),
                session=self.session,
            )
            if taken is not None:
                raise ConflictError("Email is already taken by another user")

        async def update() -> User:
            async with atomic(self.session):
                user = await self.repository.get_by_id(user_id)
                if user is None:
                    raise NotFoundError(Messages.USER_NOT_FOUND)
                if request.username is not None:
                    user.username = request.username
                if request.email is not None:
                    user.email = request.email
                user.updated_at = utcnow()
            return user

        try:
            user = await safe_query(update, session=self.session)
        except StoreError as e:
            if e.kind is StoreErrorKind.CONSTRAINT_VIOLATION:
                raise ConflictError(
                    "Email is already taken by another user"
                ) from e
            raise

        return UserResponse.from_model(user)

    async def list_users(
        self, filters: dict[str, Optional[str]], params: PaginationParams
    ) -> tuple[list[UserResponse], PaginationInfo]:
        """Get a page of users matching the given filters."""
        pagination = build_pagination(params, User.model_fields)

        conditions: dict[str, Any] = {}
        if filters.get("id"):
            conditions["id"] = parse_uuid(filters["id"], "user ID")
        for name in ("email", "address", "username"):
            if filters.get(name):
                conditions[name] = filters[name]
        if filters.get("auth_type"):
            conditions["auth_type"] = _parse_auth_type(filters["auth_type"])
        if filters.get("role"):
            conditions["role"] = parse_enum(UserRole, filters["role"], "role")

        users, total = await safe_query(
            lambda: self.repository.list_users(conditions, pagination),
            session=self.session,
        )
        return (
            [UserResponse.from_model(user) for user in users],
            build_pagination_info(total, params),
        )


def _parse_auth_type(value: Optional[str]) -> AuthType:
    if not value:
        raise ValidationError("Missing required fields: authType")
    return parse_enum(AuthType, value, "authType")
