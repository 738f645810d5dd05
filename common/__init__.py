"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection manager (Motor)
- ai: Pluggable AI providers (Claude, OpenAI)
- utils: Standard responses and error types
- config: Base settings class
"""

from common.database import MongoDB
from common.ai import AIProvider, ClaudeProvider, OpenAIProvider, create_ai_provider
from common.utils import (
    success_response,
    error_response,
    APIException,
    BadRequestException,
    UnauthorizedException,
    NotFoundException,
    ValidationException,
    ServiceUnavailableException,
    ConfigurationError,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # AI
    "AIProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "create_ai_provider",
    # Utils
    "success_response",
    "error_response",
    "APIException",
    "BadRequestException",
    "UnauthorizedException",
    "NotFoundException",
    "ValidationException",
    "ServiceUnavailableException",
    "ConfigurationError",
    # Config
    "BaseAppSettings",
]
