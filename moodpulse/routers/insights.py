"""
FastAPI router for Insight and Alert endpoints.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from common.utils import success_response
from moodpulse.config import Settings
from moodpulse.dependencies import (
    get_app_settings,
    get_checkin_service,
    get_trend_detector,
    get_insight_synthesizer,
    get_insight_store,
    get_alert_store,
    get_employee_directory,
)
from moodpulse.checkin.services.checkin_service import CheckInService
from moodpulse.insights.services.alert_store import AlertStore
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.insight_synthesizer import InsightSynthesizer
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.schemas.insights import GenerateInsightsRequest, UpdateInsightRequest
from moodpulse.pipelines import insights as pipelines

logger = logging.getLogger(__name__)

router = APIRouter(tags=["insights"])


@router.get("/insights")
async def list_insights(
    insight_store: Annotated[InsightStore, Depends(get_insight_store)],
    organizationId: str = Query(..., min_length=1),
    department: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
):
    """
    List stored insights for an organization, newest first.
    """
    result = await pipelines.list_insights_pipeline(
        insight_store=insight_store,
        organization_id=organizationId,
        department=department,
        limit=limit,
    )
    return success_response(result)


@router.post("/insights")
async def generate_insights(
    body: GenerateInsightsRequest,
    settings: Annotated[Settings, Depends(get_app_settings)],
    directory: Annotated[EmployeeDirectory, Depends(get_employee_directory)],
    checkin_service: Annotated[CheckInService, Depends(get_checkin_service)],
    detector: Annotated[RiskTrendDetector, Depends(get_trend_detector)],
    synthesizer: Annotated[InsightSynthesizer, Depends(get_insight_synthesizer)],
    insight_store: Annotated[InsightStore, Depends(get_insight_store)],
):
    """
    Generate insights on demand.

    Always answers with a success envelope; generated may be 0 and a
    warning explains missing or partial model output.
    """
    result = await pipelines.generate_insights_pipeline(
        directory=directory,
        checkin_service=checkin_service,
        detector=detector,
        synthesizer=synthesizer,
        insight_store=insight_store,
        organization_id=body.organizationId,
        department=body.department,
        window_days=settings.INSIGHT_LOOKBACK_DAYS,
    )

    message = result.pop("message", None)
    return success_response(result, message=message)


@router.patch("/insights")
async def update_insight(
    body: UpdateInsightRequest,
    insight_store: Annotated[InsightStore, Depends(get_insight_store)],
):
    """
    Mark an insight read and/or dismissed.
    """
    result = await pipelines.update_insight_pipeline(
        insight_store=insight_store,
        insight_id=body.insightId,
        is_read=body.isRead,
        is_dismissed=body.isDismissed,
    )
    return success_response(result)


@router.get("/alerts")
async def list_alerts(
    alert_store: Annotated[AlertStore, Depends(get_alert_store)],
    organizationId: str = Query(..., min_length=1),
    limit: int = Query(20, ge=1, le=100),
):
    """
    List burnout alerts for an organization, newest first.
    """
    result = await pipelines.list_alerts_pipeline(
        alert_store=alert_store,
        organization_id=organizationId,
        limit=limit,
    )
    return success_response(result)
