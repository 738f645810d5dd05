"""
Configuration module - Base settings class for environment configuration.
"""

from common.config.base_settings import BaseAppSettings, is_placeholder

__all__ = ["BaseAppSettings", "is_placeholder"]
