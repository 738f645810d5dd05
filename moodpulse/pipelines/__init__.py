"""
MoodPulse Pipelines.

Business logic orchestration functions.
"""

from moodpulse.pipelines.webhook import ingest_inbound_message, IngestResult
from moodpulse.pipelines.insights import (
    generate_insights_pipeline,
    list_insights_pipeline,
    update_insight_pipeline,
    list_alerts_pipeline,
)
from moodpulse.pipelines.dispatch import (
    send_checkins_pipeline,
    list_sent_checkins_pipeline,
    build_checkin_message,
)
