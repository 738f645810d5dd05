"""
FastAPI router for the messaging carrier webhook.

Inbound replies are signature-checked before anything else is done with
them; unverifiable requests never reach the signal extractor.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from common.utils import success_response
from common.utils.exceptions import UnauthorizedException
from config.messaging_config import TWILIO_SIGNATURE_HEADER
from moodpulse.config import Settings
from moodpulse.dependencies import (
    get_app_settings,
    get_checkin_service,
    get_signal_extractor,
    get_trend_detector,
    get_insight_store,
    get_alert_store,
    get_delivery_log,
    get_employee_directory,
    get_optional_carrier_client,
    get_followup_queue,
)
from moodpulse.checkin.services.checkin_service import CheckInService
from moodpulse.checkin.services.signal_extractor import SignalExtractor
from moodpulse.insights.services.alert_store import AlertStore
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.messaging.services.carrier_client import CarrierClient, form_to_dict
from moodpulse.messaging.services.delivery_log import DeliveryLogService
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.workers.task_queue import BackgroundTaskQueue
from moodpulse.pipelines import webhook as pipelines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def signed_url(request: Request, public_base_url: Optional[str]) -> str:
    """The URL the carrier signed; PUBLIC_BASE_URL replaces scheme and host behind a proxy."""
    if not public_base_url:
        return str(request.url)
    url = public_base_url.rstrip("/") + request.url.path
    if request.url.query:
        url += f"?{request.url.query}"
    return url


@router.post("/whatsapp")
async def receive_whatsapp_message(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    carrier: Annotated[Optional[CarrierClient], Depends(get_optional_carrier_client)],
    checkin_service: Annotated[CheckInService, Depends(get_checkin_service)],
    extractor: Annotated[SignalExtractor, Depends(get_signal_extractor)],
    detector: Annotated[RiskTrendDetector, Depends(get_trend_detector)],
    insight_store: Annotated[InsightStore, Depends(get_insight_store)],
    alert_store: Annotated[AlertStore, Depends(get_alert_store)],
    delivery_log: Annotated[DeliveryLogService, Depends(get_delivery_log)],
    directory: Annotated[EmployeeDirectory, Depends(get_employee_directory)],
    followups: Annotated[BackgroundTaskQueue, Depends(get_followup_queue)],
):
    """
    Receive an inbound WhatsApp reply.

    Form fields: From, Body, MessageSid. Returns processed/duplicate flags;
    unknown senders and inactive organizations still get a 200.
    """
    form = form_to_dict(await request.form())

    if settings.WEBHOOK_VALIDATE_SIGNATURE:
        if carrier is None:
            logger.error("Rejecting webhook: carrier auth token not configured, cannot verify signature")
            raise UnauthorizedException(message="Invalid signature", code="INVALID_SIGNATURE")

        signature = request.headers.get(TWILIO_SIGNATURE_HEADER)
        if not carrier.validate_signature(
            signed_url(request, settings.PUBLIC_BASE_URL), form, signature
        ):
            logger.warning(f"Rejected webhook with invalid signature (MessageSid={form.get('MessageSid')})")
            raise UnauthorizedException(message="Invalid signature", code="INVALID_SIGNATURE")

    result = await pipelines.ingest_inbound_message(
        checkin_service=checkin_service,
        directory=directory,
        extractor=extractor,
        detector=detector,
        insight_store=insight_store,
        alert_store=alert_store,
        delivery_log=delivery_log,
        sender=form.get("From", ""),
        body=form.get("Body", ""),
        message_sid=form.get("MessageSid", ""),
        carrier=carrier,
        followups=followups,
    )

    return success_response(result.to_dict())


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_webhook_status():
    """Liveness text for carrier console setup."""
    return "WhatsApp webhook endpoint"
