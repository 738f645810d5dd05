"""Unit tests for BulkDispatcher (bounded fan-out, per-recipient isolation, cancellation)."""

import asyncio
import pytest
from unittest.mock import AsyncMock
from bson import ObjectId

from moodpulse.config import DispatchConfig
from moodpulse.messaging.models import Recipient
from moodpulse.messaging.services.carrier_client import CarrierError
from moodpulse.messaging.services.delivery_log import (
    MESSAGE_TYPE_CHECKIN_REQUEST,
    STATUS_SENT,
    STATUS_FAILED,
)
from moodpulse.messaging.services.dispatcher import BulkDispatcher, CANCELLED, summarize_failures


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def recipients(sample_org_id):
    return [
        Recipient(
            recipient_id=str(ObjectId()),
            organization_id=sample_org_id,
            address=f"+25470000000{i}",
            first_name=f"Employee{i}",
        )
        for i in range(1, 6)
    ]


@pytest.fixture
def mock_carrier():
    carrier = AsyncMock()
    carrier.send_message.side_effect = lambda to, body: f"SM-{to}"
    return carrier


@pytest.fixture
def mock_delivery_log():
    return AsyncMock()


@pytest.fixture
def dispatcher(mock_carrier, mock_delivery_log, dispatch_config):
    return BulkDispatcher(mock_carrier, mock_delivery_log, dispatch_config)


def greeting(recipient):
    return f"Hi {recipient.first_name}!"


def recorded_statuses(delivery_log):
    return [c.kwargs["status"] for c in delivery_log.record.await_args_list]


# ─────────────────────────────────────────────────────────────────
# dispatch_all
# ─────────────────────────────────────────────────────────────────


class TestDispatchAll:
    @pytest.mark.asyncio
    async def test_all_succeed(self, dispatcher, recipients, mock_carrier, mock_delivery_log):
        summary = await dispatcher.dispatch_all(recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.total == 5
        assert summary.successful == 5
        assert summary.failed == 0
        assert [r.message_id for r in summary.results] == [f"SM-{r.address}" for r in recipients]
        assert mock_carrier.send_message.await_count == 5
        assert recorded_statuses(mock_delivery_log) == [STATUS_SENT] * 5

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(
        self, dispatcher, recipients, mock_carrier, mock_delivery_log
    ):
        failing = recipients[2].address

        def send(to, body):
            if to == failing:
                raise CarrierError("Invalid 'To' Phone Number", status_code=400, code="21211")
            return f"SM-{to}"

        mock_carrier.send_message.side_effect = send

        summary = await dispatcher.dispatch_all(recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.total == 5
        assert summary.successful == 4
        assert summary.failed == 1
        assert [r.recipient_id for r in summary.results] == [r.recipient_id for r in recipients]
        assert summary.results[2].success is False
        assert summary.results[2].error == "Invalid 'To' Phone Number"
        assert summarize_failures(summary) == [recipients[2].recipient_id]
        assert recorded_statuses(mock_delivery_log).count(STATUS_FAILED) == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_a_failure(self, dispatcher, recipients, mock_carrier):
        mock_carrier.send_message.side_effect = ConnectionError("connection reset")

        summary = await dispatcher.dispatch_all(recipients[:2], greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.failed == 2
        assert summary.results[0].error == "connection reset"

    @pytest.mark.asyncio
    async def test_per_attempt_timeout(self, mock_carrier, mock_delivery_log, recipients):
        async def slow_send(to, body):
            await asyncio.sleep(5)
            return "SM-late"

        mock_carrier.send_message.side_effect = slow_send
        dispatcher = BulkDispatcher(
            mock_carrier, mock_delivery_log, DispatchConfig(max_concurrency=5, send_timeout_seconds=0.01)
        )

        summary = await dispatcher.dispatch_all(recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.failed == 5
        assert all("Timed out" in r.error for r in summary.results)

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, mock_carrier, mock_delivery_log, recipients):
        in_flight = 0
        peak = 0

        async def tracked_send(to, body):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return f"SM-{to}"

        mock_carrier.send_message.side_effect = tracked_send
        dispatcher = BulkDispatcher(
            mock_carrier, mock_delivery_log, DispatchConfig(max_concurrency=2, send_timeout_seconds=1.0)
        )

        summary = await dispatcher.dispatch_all(recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.successful == 5
        assert peak == 2

    @pytest.mark.asyncio
    async def test_delivery_log_failure_does_not_fail_send(
        self, dispatcher, recipients, mock_delivery_log
    ):
        mock_delivery_log.record.side_effect = RuntimeError("mongo down")

        summary = await dispatcher.dispatch_all(recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.successful == 5

    @pytest.mark.asyncio
    async def test_empty_recipient_list(self, dispatcher, mock_carrier):
        summary = await dispatcher.dispatch_all([], greeting, MESSAGE_TYPE_CHECKIN_REQUEST)

        assert summary.total == 0
        mock_carrier.send_message.assert_not_awaited()


# ─────────────────────────────────────────────────────────────────
# Cancellation
# ─────────────────────────────────────────────────────────────────


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_event_stops_unstarted_sends(
        self, mock_carrier, mock_delivery_log, recipients
    ):
        cancel = asyncio.Event()

        def send_then_cancel(to, body):
            cancel.set()
            return f"SM-{to}"

        mock_carrier.send_message.side_effect = send_then_cancel
        dispatcher = BulkDispatcher(
            mock_carrier, mock_delivery_log, DispatchConfig(max_concurrency=1, send_timeout_seconds=1.0)
        )

        summary = await dispatcher.dispatch_all(
            recipients, greeting, MESSAGE_TYPE_CHECKIN_REQUEST, cancel_event=cancel
        )

        assert summary.total == 5
        assert summary.successful == 1
        assert [r.error for r in summary.results[1:]] == [CANCELLED] * 4
        assert mock_carrier.send_message.await_count == 1
        # Cancelled recipients are still logged
        assert mock_delivery_log.record.await_count == 5

    @pytest.mark.asyncio
    async def test_outer_cancellation_finishes_in_flight_send(
        self, mock_carrier, mock_delivery_log, recipients
    ):
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking_send(to, body):
            started.set()
            await release.wait()
            return f"SM-{to}"

        mock_carrier.send_message.side_effect = blocking_send
        dispatcher = BulkDispatcher(
            mock_carrier, mock_delivery_log, DispatchConfig(max_concurrency=1, send_timeout_seconds=5.0)
        )

        task = asyncio.ensure_future(
            dispatcher.dispatch_all(recipients[:3], greeting, MESSAGE_TYPE_CHECKIN_REQUEST)
        )
        await started.wait()
        task.cancel()
        await asyncio.sleep(0)
        release.set()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert mock_carrier.send_message.await_count == 1
        assert recorded_statuses(mock_delivery_log) == [STATUS_SENT, STATUS_FAILED, STATUS_FAILED]
