"""
Configuration module - Fixed constants for external services.
"""

from config.messaging_config import (
    MESSAGE_TEMPLATES,
    ACKNOWLEDGMENT_TEMPLATES,
    MESSAGE_TYPES,
    DEFAULT_MESSAGE_TYPE,
    DEFAULT_LANGUAGE,
)

__all__ = [
    "MESSAGE_TEMPLATES",
    "ACKNOWLEDGMENT_TEMPLATES",
    "MESSAGE_TYPES",
    "DEFAULT_MESSAGE_TYPE",
    "DEFAULT_LANGUAGE",
]
