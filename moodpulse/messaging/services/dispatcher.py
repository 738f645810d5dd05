"""
Bulk Dispatcher.

Fans one message out to many recipients with bounded concurrency. Each
attempt is independent and has its own timeout; one failure never stops the
others. Every outcome is written to the delivery log.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from moodpulse.config import DispatchConfig
from moodpulse.messaging.models import Recipient, DispatchResult, DispatchSummary
from moodpulse.messaging.services.carrier_client import CarrierClient, CarrierError
from moodpulse.messaging.services.delivery_log import (
    DeliveryLogService,
    DIRECTION_OUTBOUND,
    STATUS_SENT,
    STATUS_FAILED,
)

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"

MessageBuilder = Callable[[Recipient], str]


class BulkDispatcher:
    """
    Sends to many recipients through the carrier client.
    """

    def __init__(
        self,
        carrier: CarrierClient,
        delivery_log: DeliveryLogService,
        config: DispatchConfig,
    ):
        """
        Initialize BulkDispatcher.

        Args:
            carrier: Configured carrier client
            delivery_log: Where each outcome is recorded
            config: Concurrency bound and per-attempt timeout
        """
        self._carrier = carrier
        self._delivery_log = delivery_log
        self._config = config

    async def dispatch_all(
        self,
        recipients: Sequence[Recipient],
        build_message: MessageBuilder,
        message_type: str,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DispatchSummary:
        """
        Send to every recipient and collect per-recipient outcomes.

        Setting cancel_event, or cancelling the awaiting task, stops new sends.
        Attempts already in flight finish and are recorded; recipients not yet
        started fail with reason "cancelled". Outer cancellation is re-raised
        once in-flight attempts are done.

        Args:
            recipients: Who to message
            build_message: Produces the text for one recipient
            message_type: Delivery log message type
            cancel_event: Optional external stop signal

        Returns:
            DispatchSummary with results in input order
        """
        if not recipients:
            return DispatchSummary()

        stop = cancel_event or asyncio.Event()
        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def attempt(recipient: Recipient) -> DispatchResult:
            async with semaphore:
                if stop.is_set():
                    result = DispatchResult(
                        recipient_id=recipient.recipient_id,
                        success=False,
                        error=CANCELLED,
                    )
                    await self._record(recipient, None, result, message_type)
                    return result
                return await self._send_one(recipient, build_message, message_type)

        tasks = [asyncio.ensure_future(attempt(r)) for r in recipients]

        try:
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            stop.set()
            logger.warning(
                f"Dispatch cancelled; waiting for in-flight sends ({len(tasks)} recipients)"
            )
            await asyncio.wait(tasks)
            raise

        summary = DispatchSummary(results=[task.result() for task in tasks])
        logger.info(
            f"Dispatch complete ({message_type}): {summary.successful}/{summary.total} sent, "
            f"{summary.failed} failed"
        )
        return summary

    async def _send_one(
        self,
        recipient: Recipient,
        build_message: MessageBuilder,
        message_type: str,
    ) -> DispatchResult:
        body: Optional[str] = None
        try:
            body = build_message(recipient)
            message_id = await asyncio.wait_for(
                self._carrier.send_message(recipient.address, body),
                timeout=self._config.send_timeout_seconds,
            )
            result = DispatchResult(
                recipient_id=recipient.recipient_id,
                success=True,
                message_id=message_id,
            )
        except asyncio.TimeoutError:
            result = DispatchResult(
                recipient_id=recipient.recipient_id,
                success=False,
                error=f"Timed out after {self._config.send_timeout_seconds}s",
            )
        except CarrierError as e:
            result = DispatchResult(
                recipient_id=recipient.recipient_id,
                success=False,
                error=e.message,
            )
        except Exception as e:
            result = DispatchResult(
                recipient_id=recipient.recipient_id,
                success=False,
                error=str(e) or type(e).__name__,
            )

        if not result.success:
            logger.warning(f"Send to recipient {recipient.recipient_id} failed: {result.error}")

        await self._record(recipient, body, result, message_type)
        return result

    async def _record(
        self,
        recipient: Recipient,
        body: Optional[str],
        result: DispatchResult,
        message_type: str,
    ) -> None:
        try:
            await self._delivery_log.record(
                message_type=message_type,
                direction=DIRECTION_OUTBOUND,
                status=STATUS_SENT if result.success else STATUS_FAILED,
                organization_id=recipient.organization_id,
                employee_id=recipient.recipient_id,
                message_content=body,
                provider_message_id=result.message_id,
                error_message=result.error,
            )
        except Exception as e:
            logger.error(
                f"Failed to write delivery log for recipient {recipient.recipient_id}: {e}"
            )


def summarize_failures(summary: DispatchSummary) -> List[str]:
    """Recipient ids whose send failed, in input order."""
    return [r.recipient_id for r in summary.results if not r.success]
