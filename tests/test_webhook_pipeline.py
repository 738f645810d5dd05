"""Unit tests for the inbound message pipeline."""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from common.utils.exceptions import BadRequestException
from moodpulse.checkin.services.signal_extractor import SignalExtractor
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.messaging.services.delivery_log import (
    MESSAGE_TYPE_RESPONSE,
    MESSAGE_TYPE_ACKNOWLEDGMENT,
    STATUS_RECEIVED,
    STATUS_SENT,
    STATUS_FAILED,
)
from moodpulse.pipelines.webhook import (
    ingest_inbound_message,
    build_acknowledgment,
    send_acknowledgment,
    REASON_EMPLOYEE_NOT_FOUND,
    REASON_ORGANIZATION_INACTIVE,
)


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def directory(sample_employee_doc):
    directory = AsyncMock()
    directory.find_active_by_phone.return_value = sample_employee_doc
    directory.is_organization_active.return_value = True
    return directory


@pytest.fixture
def checkin_service():
    service = AsyncMock()

    async def record(**kwargs):
        return {
            "_id": ObjectId(),
            "moodScore": kwargs["signal"].mood_score,
            "sentimentLabel": kwargs["signal"].sentiment_label.value,
        }, True

    service.record_checkin.side_effect = record
    service.get_recent_for_employee.return_value = []
    service.get_for_employee_since.return_value = []
    return service


@pytest.fixture
def insight_store():
    store = AsyncMock()
    store.save_many.side_effect = lambda insights: [{"title": i.title} for i in insights]
    return store


@pytest.fixture
def alert_store():
    store = AsyncMock()
    store.create.side_effect = lambda alert: {"severity": alert.severity.value}
    return store


@pytest.fixture
def delivery_log():
    return AsyncMock()


@pytest.fixture
def followups():
    queue = MagicMock()
    queue.submit = MagicMock(return_value=True)
    return queue


@pytest.fixture
def carrier():
    carrier = AsyncMock()
    carrier.send_message.return_value = "SM-ack"
    return carrier


@pytest.fixture
def ingest(checkin_service, directory, insight_store, alert_store, delivery_log, carrier, followups):
    async def run(sender="whatsapp:+254700000001", body="4 good week", message_sid="SM0001"):
        return await ingest_inbound_message(
            checkin_service=checkin_service,
            directory=directory,
            extractor=SignalExtractor(),
            detector=RiskTrendDetector(),
            insight_store=insight_store,
            alert_store=alert_store,
            delivery_log=delivery_log,
            sender=sender,
            body=body,
            message_sid=message_sid,
            carrier=carrier,
            followups=followups,
        )
    return run


# ─────────────────────────────────────────────────────────────────
# ingest_inbound_message
# ─────────────────────────────────────────────────────────────────


class TestIngestInboundMessage:
    @pytest.mark.asyncio
    async def test_processes_reply(self, ingest, checkin_service, delivery_log, followups):
        result = await ingest(body="  4 good week  ")

        assert result.processed is True
        assert result.duplicate is False
        assert result.mood_score == 4
        assert result.sentiment_label == "positive"
        assert result.acknowledgment_queued is True

        kwargs = checkin_service.record_checkin.await_args.kwargs
        assert kwargs["response_text"] == "4 good week"
        assert kwargs["provider_message_id"] == "SM0001"

        log_kwargs = delivery_log.record.await_args.kwargs
        assert log_kwargs["message_type"] == MESSAGE_TYPE_RESPONSE
        assert log_kwargs["status"] == STATUS_RECEIVED

        name, _ = followups.submit.call_args[0]
        assert name == "acknowledgment:SM0001"

    @pytest.mark.asyncio
    async def test_unknown_sender(self, ingest, directory, checkin_service, delivery_log):
        directory.find_active_by_phone.return_value = None

        result = await ingest()

        assert result.processed is False
        assert result.reason == REASON_EMPLOYEE_NOT_FOUND
        checkin_service.record_checkin.assert_not_awaited()
        log_kwargs = delivery_log.record.await_args.kwargs
        assert log_kwargs["status"] == STATUS_FAILED
        assert log_kwargs["sender"] == "whatsapp:+254700000001"

    @pytest.mark.asyncio
    async def test_inactive_organization(self, ingest, directory, checkin_service):
        directory.is_organization_active.return_value = False

        result = await ingest()

        assert result.processed is False
        assert result.reason == REASON_ORGANIZATION_INACTIVE
        checkin_service.record_checkin.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_delivery(self, ingest, checkin_service, insight_store, followups):
        existing = {"_id": ObjectId(), "moodScore": 4, "sentimentLabel": "positive"}
        checkin_service.record_checkin.side_effect = None
        checkin_service.record_checkin.return_value = (existing, False)

        result = await ingest()

        assert result.processed is True
        assert result.duplicate is True
        assert result.checkin_id == str(existing["_id"])
        insight_store.save_many.assert_not_awaited()
        followups.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_message_sid(self, ingest):
        with pytest.raises(BadRequestException):
            await ingest(message_sid="")

    @pytest.mark.asyncio
    async def test_missing_sender(self, ingest):
        with pytest.raises(BadRequestException):
            await ingest(sender="  ")

    @pytest.mark.asyncio
    async def test_unscorable_reply_is_still_stored(self, ingest, checkin_service):
        result = await ingest(body="see you monday")

        assert result.processed is True
        assert result.mood_score is None
        checkin_service.record_checkin.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_risk_pass_stores_findings(self, ingest, checkin_service, sample_org_id, sample_employee_id):
        # Burnout window is measured from the real clock
        now = datetime.now(timezone.utc)
        history = [
            {
                "_id": ObjectId(),
                "organizationId": ObjectId(sample_org_id),
                "employeeId": ObjectId(sample_employee_id),
                "moodScore": score,
                "createdAt": now - timedelta(hours=index),
            }
            for index, score in enumerate([1, 2, 3])
        ]
        checkin_service.get_recent_for_employee.return_value = history
        checkin_service.get_for_employee_since.return_value = history[:2]

        result = await ingest(body="1")

        # 3 -> 2 -> 1: declining trend and persistent low mood, plus a medium burnout alert
        assert result.to_dict()["insightsCreated"] == 2
        assert result.to_dict()["alertsCreated"] == 1

    @pytest.mark.asyncio
    async def test_risk_pass_failure_does_not_fail_webhook(self, ingest, checkin_service):
        checkin_service.get_recent_for_employee.side_effect = RuntimeError("mongo down")

        result = await ingest()

        assert result.processed is True
        assert result.insights == []

    @pytest.mark.asyncio
    async def test_acknowledgment_job_sends_and_logs(self, ingest, followups, carrier, delivery_log):
        await ingest()
        _, factory = followups.submit.call_args[0]

        await factory()

        carrier.send_message.assert_awaited_once()
        assert carrier.send_message.await_args[0][0] == "+254700000001"
        log_kwargs = delivery_log.record.await_args.kwargs
        assert log_kwargs["message_type"] == MESSAGE_TYPE_ACKNOWLEDGMENT
        assert log_kwargs["status"] == STATUS_SENT


# ─────────────────────────────────────────────────────────────────
# Acknowledgment
# ─────────────────────────────────────────────────────────────────


class TestAcknowledgment:
    def test_named(self, sample_employee_doc):
        assert "Amina" in build_acknowledgment(sample_employee_doc)

    def test_anonymous(self, sample_employee_doc):
        sample_employee_doc["anonymityPreference"] = True
        message = build_acknowledgment(sample_employee_doc)

        assert "anonymous" in message
        assert "Amina" not in message

    @pytest.mark.asyncio
    async def test_send_failure_is_logged(self, carrier, delivery_log, sample_employee_doc):
        carrier.send_message.side_effect = RuntimeError("carrier down")

        await send_acknowledgment(carrier, delivery_log, sample_employee_doc)

        log_kwargs = delivery_log.record.await_args.kwargs
        assert log_kwargs["status"] == STATUS_FAILED
        assert log_kwargs["error_message"] == "carrier down"
