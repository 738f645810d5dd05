"""
Scheduled check-in background job.

Sends the check-in requests that admins scheduled: one-time schedules whose
time has come, and weekly schedules on their day of the week.
This job should be run every few minutes via CRON.

Usage:
    Run via CRON:
        */5 * * * * cd /path/to/project && python -m jobs.scheduled_checkins

    Or run directly:
        python -m jobs.scheduled_checkins
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.database import MongoDB
from config.messaging_config import MESSAGE_TYPES, DEFAULT_MESSAGE_TYPE
from moodpulse.config import get_settings
from moodpulse.messaging.models import Recipient
from moodpulse.messaging.services.carrier_client import CarrierClient
from moodpulse.messaging.services.delivery_log import (
    DeliveryLogService,
    MESSAGE_TYPE_CHECKIN_REQUEST,
)
from moodpulse.messaging.services.dispatcher import BulkDispatcher, summarize_failures
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.pipelines.dispatch import build_checkin_message

logger = logging.getLogger(__name__)


RECURRENCE_ONCE = "once"
RECURRENCE_WEEKLY = "weekly"
STATUS_PENDING = "pending"
STATUS_SENT = "sent"


def day_of_week(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday, the convention stored on schedules."""
    return (moment.weekday() + 1) % 7


class ScheduledCheckinJob:
    """
    Processes due scheduled check-ins.

    Actions performed:
    1. Finds pending schedules that are due (one-time past their time, or
       weekly on today's weekday and not yet sent today)
    2. For each schedule:
       - Resolves the organization's active employees (optionally one department)
       - Sends the check-in request through the Bulk Dispatcher
       - One-time schedules are marked sent; weekly ones record lastSentAt
       - Stores the dispatch summary on the schedule
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        dispatcher: BulkDispatcher,
        directory: EmployeeDirectory,
    ):
        """
        Initialize the scheduled check-in job.

        Args:
            db: MongoDB database connection
            dispatcher: Configured bulk dispatcher
            directory: For recipient lookup
        """
        self._db = db
        self._schedules_collection = db["scheduledCheckins"]
        self._dispatcher = dispatcher
        self._directory = directory

    async def find_due(self, now: datetime) -> List[Dict[str, Any]]:
        """Pending schedules due at `now`."""
        cursor = self._schedules_collection.find({
            "status": STATUS_PENDING,
            "scheduledAt": {"$lte": now},
            "$or": [
                {"recurrence": RECURRENCE_ONCE},
                {"recurrence": RECURRENCE_WEEKLY, "dayOfWeek": day_of_week(now)},
            ],
        })
        schedules = await cursor.to_list(length=1000)

        due = []
        for schedule in schedules:
            last_sent = schedule.get("lastSentAt")
            if (
                schedule.get("recurrence") == RECURRENCE_WEEKLY
                and last_sent is not None
                and last_sent.date() == now.date()
            ):
                continue
            due.append(schedule)
        return due

    async def process_schedule(self, schedule: Dict[str, Any], now: datetime) -> Dict[str, Any]:
        """
        Send one schedule's check-ins and record the outcome.

        Returns:
            dict with total/successful/failed counts
        """
        organization_id = str(schedule["organizationId"])
        department = schedule.get("department") or None
        message_type = schedule.get("frequency") or DEFAULT_MESSAGE_TYPE
        if message_type not in MESSAGE_TYPES:
            message_type = DEFAULT_MESSAGE_TYPE

        if not await self._directory.is_organization_active(organization_id):
            logger.warning(
                f"Skipping schedule {schedule['_id']}: organization {organization_id} is not active"
            )
            stats = {"total": 0, "successful": 0, "failed": 0, "skipped": "organization_inactive"}
        else:
            employees = await self._directory.list_active(organization_id, department=department)
            recipients = [Recipient.from_employee(e) for e in employees]

            summary = await self._dispatcher.dispatch_all(
                recipients,
                lambda recipient: build_checkin_message(recipient, message_type),
                MESSAGE_TYPE_CHECKIN_REQUEST,
            )
            stats = {
                "total": summary.total,
                "successful": summary.successful,
                "failed": summary.failed,
            }
            failures = summarize_failures(summary)
            if failures:
                logger.warning(
                    f"Schedule {schedule['_id']}: {len(failures)} recipient(s) failed: {failures}"
                )

        update: Dict[str, Any] = {"lastSentAt": now, "lastSummary": stats}
        if schedule.get("recurrence") != RECURRENCE_WEEKLY:
            update["status"] = STATUS_SENT
            update["sentAt"] = now

        await self._schedules_collection.update_one({"_id": schedule["_id"]}, {"$set": update})

        logger.info(
            f"Processed schedule {schedule['_id']} for organization {organization_id}"
            f"{f' ({department})' if department else ''}: "
            f"{stats['successful']}/{stats['total']} sent"
        )
        return stats

    async def run(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Run the job.

        Returns:
            Stats dict with processed, sent, failed and errors
        """
        now = now or datetime.now(timezone.utc)
        stats = {"processed": 0, "sent": 0, "failed": 0, "errors": 0}

        schedules = await self.find_due(now)
        if not schedules:
            logger.info("No check-ins to process")
            return stats

        logger.info(f"Found {len(schedules)} due schedule(s)")

        for schedule in schedules:
            try:
                result = await self.process_schedule(schedule, now)
                stats["processed"] += 1
                stats["sent"] += result["successful"]
                stats["failed"] += result["failed"]
            except Exception as e:
                stats["errors"] += 1
                logger.error(f"Failed to process schedule {schedule.get('_id')}: {e}")

        return stats


async def main():
    """Main entry point for the scheduled check-in job."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    dispatch_config = settings.dispatch_config()
    carrier = CarrierClient(settings.carrier_config(), timeout=dispatch_config.send_timeout_seconds)

    mongo = MongoDB()
    await mongo.connect(uri=settings.MONGODB_URI, database_name=settings.MONGODB_DATABASE)

    try:
        db = mongo.db
        dispatcher = BulkDispatcher(
            carrier=carrier,
            delivery_log=DeliveryLogService(db=db),
            config=dispatch_config,
        )
        job = ScheduledCheckinJob(
            db=db,
            dispatcher=dispatcher,
            directory=EmployeeDirectory(db=db),
        )

        logger.info("Starting scheduled check-in job")
        stats = await job.run()
        logger.info(f"Scheduled check-in job complete: {stats}")
    finally:
        await carrier.aclose()
        await mongo.disconnect()


if __name__ == "__main__":
    asyncio.run(main())
