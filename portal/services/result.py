"""Uniform result envelope returned by the service facade."""

from typing import Any, Optional

from pydantic import BaseModel

from portal.errors import PortalError


class ServiceResult(BaseModel):
    """
    ``{success, data?, error?}`` envelope.

    ``error`` is safe to show verbatim; ``error_code`` is for the HTTP layer.
    """

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_code: str = PortalError.code) -> "ServiceResult":
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_error(cls, exc: PortalError) -> "ServiceResult":
        return cls.fail(exc.message, exc.code)
