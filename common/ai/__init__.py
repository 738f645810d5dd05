"""
AI module - Pluggable AI providers (Claude, OpenAI).
"""

from common.ai.base import AIProvider
from common.ai.claude import ClaudeProvider
from common.ai.openai import OpenAIProvider
from common.ai.factory import create_ai_provider

__all__ = ["AIProvider", "ClaudeProvider", "OpenAIProvider", "create_ai_provider"]
