"""
MoodPulse API Routers.

All routers are imported here for easy access.
"""

from moodpulse.routers.webhook import router as webhook_router
from moodpulse.routers.insights import router as insights_router
from moodpulse.routers.dispatch import router as dispatch_router

__all__ = [
    "webhook_router",
    "insights_router",
    "dispatch_router",
]
