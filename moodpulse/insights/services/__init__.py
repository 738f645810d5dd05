"""Insight and alert services."""

from moodpulse.insights.services.trend_detector import RiskTrendDetector, DetectionResult
from moodpulse.insights.services.insight_synthesizer import InsightSynthesizer, SynthesisResult
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.alert_store import AlertStore

__all__ = [
    "RiskTrendDetector",
    "DetectionResult",
    "InsightSynthesizer",
    "SynthesisResult",
    "InsightStore",
    "AlertStore",
]
