"""
MoodPulse request schemas.
"""

from moodpulse.schemas.insights import GenerateInsightsRequest, UpdateInsightRequest
from moodpulse.schemas.dispatch import SendCheckinsRequest

__all__ = [
    "GenerateInsightsRequest",
    "UpdateInsightRequest",
    "SendCheckinsRequest",
]
