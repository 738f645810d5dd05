"""
Inbound message pipeline.

Stateless orchestration for one carrier webhook delivery: sender lookup,
signal extraction, idempotent persistence, the synchronous per-employee risk
pass, and handing the acknowledgment reply to the follow-up queue.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from common.utils.exceptions import BadRequestException
from config.messaging_config import ACKNOWLEDGMENT_TEMPLATES
from moodpulse.checkin.services.checkin_service import CheckInService, to_samples
from moodpulse.checkin.services.signal_extractor import SignalExtractor
from moodpulse.insights.services.alert_store import AlertStore
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.messaging.services.carrier_client import CarrierClient
from moodpulse.messaging.services.delivery_log import (
    DeliveryLogService,
    MESSAGE_TYPE_RESPONSE,
    MESSAGE_TYPE_ACKNOWLEDGMENT,
    DIRECTION_INBOUND,
    DIRECTION_OUTBOUND,
    STATUS_RECEIVED,
    STATUS_SENT,
    STATUS_FAILED,
)
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.workers.task_queue import BackgroundTaskQueue

logger = logging.getLogger(__name__)

# Trend and persistent-low rules look at the last 10 check-ins,
# the burnout rule at the trailing 14 days
RECENT_CHECKINS = 10
BURNOUT_LOOKBACK_DAYS = RiskTrendDetector.BURNOUT_WINDOW_DAYS

REASON_EMPLOYEE_NOT_FOUND = "employee_not_found"
REASON_ORGANIZATION_INACTIVE = "organization_inactive"


@dataclass
class IngestResult:
    """Outcome of one inbound delivery."""
    processed: bool
    duplicate: bool = False
    reason: Optional[str] = None
    checkin_id: Optional[str] = None
    mood_score: Optional[int] = None
    sentiment_label: Optional[str] = None
    insights: List[Dict[str, Any]] = field(default_factory=list)
    alerts: List[Dict[str, Any]] = field(default_factory=list)
    acknowledgment_queued: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "duplicate": self.duplicate,
            "reason": self.reason,
            "checkinId": self.checkin_id,
            "moodScore": self.mood_score,
            "sentimentLabel": self.sentiment_label,
            "insightsCreated": len(self.insights),
            "alertsCreated": len(self.alerts),
            "acknowledgmentQueued": self.acknowledgment_queued,
        }


def build_acknowledgment(employee: Dict[str, Any]) -> str:
    """Thank-you reply, anonymous when the employee asked for anonymity."""
    if employee.get("anonymityPreference"):
        return ACKNOWLEDGMENT_TEMPLATES["anonymous"]
    name = employee.get("firstName") or "there"
    return ACKNOWLEDGMENT_TEMPLATES["named"].format(name=name)


async def send_acknowledgment(
    carrier: CarrierClient,
    delivery_log: DeliveryLogService,
    employee: Dict[str, Any],
) -> None:
    """
    Send the acknowledgment reply and log it. Runs on the follow-up queue.
    """
    employee_id = str(employee["_id"])
    organization_id = str(employee["organizationId"])
    body = build_acknowledgment(employee)

    try:
        message_id = await carrier.send_message(employee.get("phone") or "", body)
    except Exception as e:
        await delivery_log.record(
            message_type=MESSAGE_TYPE_ACKNOWLEDGMENT,
            direction=DIRECTION_OUTBOUND,
            status=STATUS_FAILED,
            organization_id=organization_id,
            employee_id=employee_id,
            message_content=body,
            error_message=str(e),
        )
        return

    await delivery_log.record(
        message_type=MESSAGE_TYPE_ACKNOWLEDGMENT,
        direction=DIRECTION_OUTBOUND,
        status=STATUS_SENT,
        organization_id=organization_id,
        employee_id=employee_id,
        message_content=body,
        provider_message_id=message_id,
    )


async def _log_unmatched(
    delivery_log: DeliveryLogService,
    sender: str,
    body: str,
    message_sid: str,
    reason: str,
    organization_id: Optional[str] = None,
    employee_id: Optional[str] = None,
) -> None:
    try:
        await delivery_log.record(
            message_type=MESSAGE_TYPE_RESPONSE,
            direction=DIRECTION_INBOUND,
            status=STATUS_FAILED,
            organization_id=organization_id,
            employee_id=employee_id,
            message_content=body,
            provider_message_id=message_sid,
            error_message=reason,
            sender=sender,
        )
    except Exception as e:
        logger.error(f"Failed to log unmatched inbound message {message_sid}: {e}")


async def run_risk_pass(
    checkin_service: CheckInService,
    detector: RiskTrendDetector,
    insight_store: InsightStore,
    alert_store: AlertStore,
    organization_id: str,
    employee: Dict[str, Any],
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Evaluate the employee rules on fresh history and persist what fires.

    Returns:
        dict with stored insights and alerts (after duplicate suppression)
    """
    employee_id = str(employee["_id"])

    recent = await checkin_service.get_recent_for_employee(employee_id, limit=RECENT_CHECKINS)
    window = await checkin_service.get_for_employee_since(employee_id, days=BURNOUT_LOOKBACK_DAYS)

    by_id = {c["_id"]: c for c in window}
    by_id.update({c["_id"]: c for c in recent})
    samples = to_samples(by_id.values())

    detection = detector.evaluate_employee(organization_id, employee, samples)

    stored_insights = await insight_store.save_many(detection.insights)
    stored_alerts = []
    for alert in detection.alerts:
        stored = await alert_store.create(alert)
        if stored:
            stored_alerts.append(stored)

    return {"insights": stored_insights, "alerts": stored_alerts}


async def ingest_inbound_message(
    checkin_service: CheckInService,
    directory: EmployeeDirectory,
    extractor: SignalExtractor,
    detector: RiskTrendDetector,
    insight_store: InsightStore,
    alert_store: AlertStore,
    delivery_log: DeliveryLogService,
    sender: str,
    body: Optional[str],
    message_sid: str,
    carrier: Optional[CarrierClient] = None,
    followups: Optional[BackgroundTaskQueue] = None,
) -> IngestResult:
    """
    Orchestrates one inbound check-in reply.

    Args:
        checkin_service: For idempotent persistence
        directory: For sender lookup
        extractor: Text to mood/sentiment
        detector: Per-employee rules
        insight_store: Rule insight persistence
        alert_store: Burnout alert persistence
        delivery_log: Inbound/outbound message log
        sender: Carrier sender address ("whatsapp:+...")
        body: Reply text
        message_sid: Carrier message id (idempotency key)
        carrier: For the acknowledgment; None skips it
        followups: Queue the acknowledgment runs on; None skips it

    Returns:
        IngestResult

    Raises:
        BadRequestException: Missing sender or message id
    """
    sender = (sender or "").strip()
    message_sid = (message_sid or "").strip()
    text = (body or "").strip()

    if not sender or not message_sid:
        raise BadRequestException(
            message="From and MessageSid are required",
            code="INVALID_WEBHOOK_PAYLOAD",
        )

    employee = await directory.find_active_by_phone(sender)
    if not employee:
        logger.warning(f"Inbound message {message_sid} from unknown or inactive number")
        await _log_unmatched(delivery_log, sender, text, message_sid, "Employee not found")
        return IngestResult(processed=False, reason=REASON_EMPLOYEE_NOT_FOUND)

    employee_id = str(employee["_id"])
    organization_id = str(employee["organizationId"])

    if not await directory.is_organization_active(organization_id):
        logger.warning(
            f"Inbound message {message_sid} for organization {organization_id} "
            "without an active subscription"
        )
        await _log_unmatched(
            delivery_log, sender, text, message_sid,
            "Organization subscription inactive",
            organization_id=organization_id,
            employee_id=employee_id,
        )
        return IngestResult(processed=False, reason=REASON_ORGANIZATION_INACTIVE)

    signal = extractor.extract(text)

    checkin, created = await checkin_service.record_checkin(
        organization_id=organization_id,
        employee_id=employee_id,
        provider_message_id=message_sid,
        response_text=text,
        signal=signal,
        is_anonymous=bool(employee.get("anonymityPreference")),
    )

    result = IngestResult(
        processed=True,
        duplicate=not created,
        checkin_id=str(checkin["_id"]) if checkin else None,
        mood_score=checkin.get("moodScore") if checkin else signal.mood_score,
        sentiment_label=checkin.get("sentimentLabel") if checkin else signal.sentiment_label.value,
    )
    if not created:
        return result

    try:
        await delivery_log.record(
            message_type=MESSAGE_TYPE_RESPONSE,
            direction=DIRECTION_INBOUND,
            status=STATUS_RECEIVED,
            organization_id=organization_id,
            employee_id=employee_id,
            message_content=text,
            provider_message_id=message_sid,
        )
    except Exception as e:
        logger.error(f"Failed to log inbound message {message_sid}: {e}")

    try:
        stored = await run_risk_pass(
            checkin_service, detector, insight_store, alert_store, organization_id, employee
        )
        result.insights = stored["insights"]
        result.alerts = stored["alerts"]
    except Exception as e:
        # The check-in is already stored; the next reply re-evaluates
        logger.error(f"Risk evaluation failed for employee {employee_id}: {e}")

    if carrier and followups:
        result.acknowledgment_queued = followups.submit(
            f"acknowledgment:{message_sid}",
            lambda: send_acknowledgment(carrier, delivery_log, employee),
        )

    return result
