"""Check-in services."""

from moodpulse.checkin.services.signal_extractor import SignalExtractor, Signal, SentimentLabel
from moodpulse.checkin.services.checkin_service import CheckInService

__all__ = [
    "SignalExtractor",
    "Signal",
    "SentimentLabel",
    "CheckInService",
]
