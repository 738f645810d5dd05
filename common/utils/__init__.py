"""
Utilities module - Response envelopes and error types.
"""

from common.utils.responses import success_response, error_response
from common.utils.exceptions import (
    APIException,
    BadRequestException,
    UnauthorizedException,
    NotFoundException,
    ValidationException,
    ServiceUnavailableException,
    ConfigurationError,
)
from common.utils.ids import to_object_id

__all__ = [
    "success_response",
    "error_response",
    "APIException",
    "BadRequestException",
    "UnauthorizedException",
    "NotFoundException",
    "ValidationException",
    "ServiceUnavailableException",
    "ConfigurationError",
    "to_object_id",
]
