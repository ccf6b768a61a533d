"""
Error taxonomy for the caching and hierarchy engine.

Every error carries a stable ``code`` used by the HTTP layer to pick a status,
and a ``message`` that is safe to show to end users. Internal details (store
keys, upstream payloads) belong in log fields, never in ``message``.
"""


class PortalError(Exception):
    """Base class for engine errors."""

    code = "internal_error"
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(PortalError):
    """Referenced team, customer or issue does not exist. Not retried."""

    code = "not_found"
    default_message = "Not found"


class ConflictError(PortalError):
    """Team is already owned by a different customer."""

    code = "conflict"
    default_message = "Team is already assigned to another customer"

    def __init__(self, message: str | None = None, *, team_id: str = "", owner_id: str = ""):
        super().__init__(message)
        self.team_id = team_id
        self.owner_id = owner_id


class UpstreamError(PortalError):
    """The issue tracker API failed."""

    code = "upstream_error"
    default_message = "Issue tracker request failed"

    def __init__(self, message: str | None = None, *, retriable: bool = True, status: int | None = None):
        super().__init__(message)
        self.retriable = retriable
        self.status = status


class UpstreamTimeoutError(UpstreamError):
    """The issue tracker API exceeded its timeout budget."""

    code = "upstream_timeout"
    default_message = "Issue tracker request timed out"

    def __init__(self, message: str | None = None):
        super().__init__(message, retriable=True)


class CacheWriteFailure(PortalError):
    """A backing-store write could not be verified by reading it back."""

    code = "cache_write_failure"
    default_message = "Write could not be verified"


class MalformedDataError(PortalError):
    """A cached or fetched record does not have its expected shape."""

    code = "malformed_data"
    default_message = "Malformed data"


__all__ = [
    "PortalError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "CacheWriteFailure",
    "MalformedDataError",
]
