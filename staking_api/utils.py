import math
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from staking_api.constants import (
    DEFAULT_LIMIT,
    DEFAULT_ORDER,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
)
from staking_api.exceptions import ValidationError
from staking_api.schemas import (
    PaginationInfo,
    PaginationParams,
    PaginationQuery,
)


E = TypeVar("E", bound=Enum)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_response(
    status_code: int,
    message: str,
    data: Any,
    pagination: Optional[PaginationInfo] = None,
) -> dict[str, Any]:
    """Format the response envelope shared by every route."""
    response: dict[str, Any] = {
        "status_code": status_code,
        "status": 200 <= status_code < 300,
        "message": message,
    }

    if pagination is not None:
        response["pagination"] = serialize_data(pagination)

    response["data"] = serialize_data(data)
    return response


def serialize_data(data: Any) -> Any:
    """Dump DTOs with wire aliases, leaving out unset optional fields."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(data, (list, tuple)):
        return [serialize_data(item) for item in data]
    return data


def _parse_positive_int(value: Optional[str], name: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except ValueError:
        parsed = 0
    if parsed < 1:
        raise ValidationError(
            f"Invalid pagination parameter '{name}': "
            "must be a positive integer"
        )
    return parsed


def get_pagination_params(query: Mapping[str, str]) -> PaginationParams:
    """Extract pagination params from query string values."""
    order = (query.get("order") or DEFAULT_ORDER).lower()

    return PaginationParams(
        page=_parse_positive_int(query.get("page"), "page", DEFAULT_PAGE),
        limit=_parse_positive_int(query.get("limit"), "limit", DEFAULT_LIMIT),
        sort_by=query.get("sortBy") or DEFAULT_SORT_BY,
        order="asc" if order == "asc" else "desc",
    )


def build_pagination(
    params: PaginationParams, sortable_fields: Optional[Iterable[str]] = None
) -> PaginationQuery:
    """
    Build offset/limit/ordering for a list query.

    Args:
        params: Parsed pagination params
        sortable_fields: Model attribute names allowed as sort keys

    Returns:
        PaginationQuery: skip, take and a ``{attribute: order}`` mapping
    """
    field = to_snake(params.sort_by)
    if sortable_fields is not None and field not in set(sortable_fields):
        raise ValidationError(f"Invalid sortBy field: {params.sort_by}")

    return PaginationQuery(
        skip=(params.page - 1) * params.limit,
        take=params.limit,
        order_by={field: params.order},
    )


def build_pagination_info(
    total_items: int, params: PaginationParams
) -> PaginationInfo:
    return PaginationInfo(
        total_items=total_items,
        total_pages=math.ceil(total_items / params.limit),
        current_page=params.page,
    )


def reject_unknown_params(
    query: Iterable[str], allowed: Iterable[str]
) -> None:
    """Fail on the first query parameter not in ``allowed``."""
    allowed_set = set(allowed)
    for param in query:
        if param not in allowed_set:
            raise ValidationError(f"Invalid query parameter: {param}")


def require_fields(payload: BaseModel, fields: Iterable[str]) -> None:
    """
    Check that every named field of a request body is present and truthy.

    Field names are given as attribute names; the error message lists the
    missing ones by their wire alias.
    """
    missing = []
    for name in fields:
        if not getattr(payload, name, None):
            info = type(payload).model_fields[name]
            missing.append(info.alias or name)

    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}"
        )


def parse_enum(enum_class: type[E], value: str, name: str) -> E:
    """Convert a raw string to a member of ``enum_class``."""
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_class)
        raise ValidationError(
            f"Invalid {name}: {value}. Must be one of {allowed}"
        ) from None


def parse_uuid(value: str, name: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(f"Invalid {name}: {value}") from None
