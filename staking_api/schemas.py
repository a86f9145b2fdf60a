from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class ApiModel(BaseModel):
    """Base model for request and response bodies (camelCase on the wire)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationInfo(ApiModel):
    """Pagination block of a list response."""

    total_items: int
    total_pages: int
    current_page: int


class PaginationParams(BaseModel):
    """Paging and sorting options parsed from the query string."""

    page: int = 1
    limit: int = 10
    sort_by: str = "createdAt"
    order: Literal["asc", "desc"] = "desc"


class PaginationQuery(BaseModel):
    """Offset, row count and ordering derived from ``PaginationParams``."""

    skip: int
    take: int
    order_by: dict[str, Literal["asc", "desc"]]


class HandlerResult(BaseModel, Generic[T]):
    """Value returned by a route body to the dispatcher."""

    data: T
    message: Optional[str] = None
    pagination: Optional[PaginationInfo] = None


class ResponseEnvelope(BaseModel):
    """Documented shape of every response body."""

    status_code: int
    status: bool
    message: str
    pagination: Optional[PaginationInfo] = None
    data: Any = Field(default=None)
