"""
Error types shared across the service.

HTTP-facing errors extend FastAPI's HTTPException with a machine-readable
code so the outermost boundary can reject requests consistently. Errors that
are recovered inside a component (configuration faults, carrier rejections)
are plain exceptions and never reach the client as raw messages.

Example:
    from common.utils import NotFoundException

    insight = await store.get(insight_id)
    if not insight:
        raise NotFoundException("Insight not found", code="INSIGHT_NOT_FOUND")
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class APIException(HTTPException):
    """
    Base API exception with error code support.

    The detail payload is always {"message", "code"?, "details"?}.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        detail: Dict[str, Any] = {"message": message}

        if code:
            detail["code"] = code

        if details is not None:
            detail["details"] = details

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers,
        )


class BadRequestException(APIException):
    """400 - Missing identifiers or malformed webhook payload."""

    def __init__(
        self,
        message: str = "Bad request",
        code: str = "BAD_REQUEST",
        details: Optional[Any] = None,
    ):
        super().__init__(400, message, code, details)


class UnauthorizedException(APIException):
    """401 - Request could not be authenticated (e.g. bad carrier signature)."""

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "UNAUTHORIZED",
        details: Optional[Any] = None,
    ):
        super().__init__(401, message, code, details)


class NotFoundException(APIException):
    """404 - Resource doesn't exist."""

    def __init__(
        self,
        message: str = "Not found",
        code: str = "NOT_FOUND",
        details: Optional[Any] = None,
    ):
        super().__init__(404, message, code, details)


class ValidationException(APIException):
    """422 - Request validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        details: Optional[Any] = None,
    ):
        super().__init__(422, message, code, details)


class ServiceUnavailableException(APIException):
    """503 - A required collaborator is not configured or not reachable."""

    def __init__(
        self,
        message: str = "Service unavailable",
        code: str = "SERVICE_UNAVAILABLE",
        details: Optional[Any] = None,
    ):
        super().__init__(503, message, code, details)


class ConfigurationError(Exception):
    """
    Raised when a component is constructed without usable configuration.

    Not retryable: the process environment has to be fixed.
    """

    def __init__(self, component: str, problems: list):
        self.component = component
        self.problems = list(problems)
        super().__init__(
            f"{component} is not configured: " + "; ".join(self.problems)
        )
