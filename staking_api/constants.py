"""
Global constants for the application.
"""


class ErrorCode:
    """
    Error codes
    """

    AUTHENTICATION_ERROR = "authentication_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    DATABASE_UNAVAILABLE = "database_unavailable"


class Messages:
    """
    Fixed response messages
    """

    DEFAULT_SUCCESS = "Action was successful"
    UNEXPECTED_ERROR = "An unexpected error occurred"
    USER_NOT_FOUND = "User not found"
    STAKE_NOT_FOUND = "Stake not found"
    DUPLICATE_EXTERNAL_TX = (
        "Transaction with this external hash already exists"
    )


# externalService recorded on companion rows written by the staking routes
INTERNAL_STAKING_SERVICE = "INTERNAL_STAKING"

# Query parameters understood by every paginated endpoint
PAGINATION_QUERY_PARAMS = ("page", "limit", "sortBy", "order")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_BY = "createdAt"
DEFAULT_ORDER = "desc"
