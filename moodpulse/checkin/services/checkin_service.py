"""
Mood check-in storage and retrieval.

Check-ins are append-only. Idempotency is enforced by a unique index on
(organizationId, providerMessageId) so a redelivered webhook never creates
a second row.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Dict, Any, Tuple, Iterable

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from common.utils.exceptions import ValidationException
from common.utils.ids import to_object_id
from config.messaging_config import CHECKIN_SOURCE
from moodpulse.checkin.services.signal_extractor import Signal
from moodpulse.insights.services.aggregator import ScoreSample

logger = logging.getLogger(__name__)


def to_samples(checkins: Iterable[Dict[str, Any]]) -> List[ScoreSample]:
    """Reduce check-in documents to the (score, timestamp) pairs the aggregator needs."""
    return [
        ScoreSample(
            score=c.get("moodScore"),
            created_at=c["createdAt"],
            employee_id=str(c["employeeId"]) if c.get("employeeId") else None,
        )
        for c in checkins
    ]


class CheckInService:
    """
    Handles check-in storage and retrieval.
    Pure persistence - scoring happens in SignalExtractor, rules in RiskTrendDetector.
    """

    COLLECTION = "moodCheckins"
    MAX_LIMIT = 500

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize CheckInService.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._checkins_collection = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        """Create the idempotency and query indexes (safe to call repeatedly)."""
        await self._checkins_collection.create_index(
            [("organizationId", ASCENDING), ("providerMessageId", ASCENDING)],
            unique=True,
            name="uniq_org_provider_message",
        )
        await self._checkins_collection.create_index(
            [("employeeId", ASCENDING), ("createdAt", DESCENDING)],
            name="employee_recent",
        )
        await self._checkins_collection.create_index(
            [("organizationId", ASCENDING), ("createdAt", DESCENDING)],
            name="organization_recent",
        )

    async def record_checkin(
        self,
        organization_id: str,
        employee_id: str,
        provider_message_id: str,
        response_text: str,
        signal: Signal,
        is_anonymous: bool = False,
        source: str = CHECKIN_SOURCE,
    ) -> Tuple[Dict[str, Any], bool]:
        """
        Persist one scored reply, once per provider message id.

        Args:
            organization_id: Owning organization
            employee_id: Employee who replied
            provider_message_id: Carrier message id (idempotency key)
            response_text: Trimmed reply text
            signal: Output of the signal extractor
            is_anonymous: Employee's anonymity preference at reply time
            source: Channel the reply arrived on

        Returns:
            (check-in document, created) - created is False for a redelivery

        Raises:
            ValidationException: Missing idempotency key or bad ids
        """
        if not provider_message_id:
            raise ValidationException(
                message="Provider message id is required",
                code="MISSING_MESSAGE_ID",
            )

        org_oid = to_object_id(organization_id, "organization id")
        now = datetime.now(timezone.utc)

        checkin_doc = {
            "organizationId": org_oid,
            "employeeId": to_object_id(employee_id, "employee id"),
            "moodScore": signal.mood_score,
            "responseText": response_text,
            "sentimentScore": signal.sentiment_score,
            "sentimentLabel": signal.sentiment_label.value,
            "source": source,
            "checkInType": "scheduled",
            "isAnonymous": is_anonymous,
            "providerMessageId": provider_message_id,
            "createdAt": now,
        }

        try:
            result = await self._checkins_collection.insert_one(checkin_doc)
        except DuplicateKeyError:
            existing = await self._checkins_collection.find_one({
                "organizationId": org_oid,
                "providerMessageId": provider_message_id,
            })
            logger.info(
                f"Duplicate delivery ignored for message {provider_message_id} "
                f"(organization {organization_id})"
            )
            return existing, False

        checkin_doc["_id"] = result.inserted_id
        logger.info(
            f"Check-in recorded for employee {employee_id}: "
            f"mood={signal.mood_score} sentiment={signal.sentiment_label.value}"
        )
        return checkin_doc, True

    async def get_recent_for_employee(
        self,
        employee_id: str,
        limit: int = 10
    ) -> List[Dict[str, Any]]:
        """
        Most recent check-ins for one employee, newest first.

        Args:
            employee_id: Employee ID
            limit: Max records to return

        Returns:
            List of check-in dicts sorted by createdAt descending
        """
        limit = min(limit, self.MAX_LIMIT)
        cursor = self._checkins_collection.find(
            {"employeeId": to_object_id(employee_id, "employee id")}
        )
        cursor = cursor.sort("createdAt", -1)
        cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    async def get_for_employee_since(
        self,
        employee_id: str,
        days: int,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        All check-ins for one employee within the trailing N days, newest first.
        """
        now = now or datetime.now(timezone.utc)
        cursor = self._checkins_collection.find({
            "employeeId": to_object_id(employee_id, "employee id"),
            "createdAt": {"$gte": now - timedelta(days=days)},
        })
        cursor = cursor.sort("createdAt", -1)
        return await cursor.to_list(length=self.MAX_LIMIT)

    async def get_for_organization_since(
        self,
        organization_id: str,
        days: int,
        employee_ids: Optional[List[str]] = None,
        now: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Organization check-ins within the trailing N days, newest first.

        Args:
            organization_id: Organization ID
            days: Number of days to look back
            employee_ids: Restrict to these employees (department filter)
            now: Reference time (defaults to now, UTC)

        Returns:
            List of check-in dicts sorted by createdAt descending
        """
        now = now or datetime.now(timezone.utc)
        query: Dict[str, Any] = {
            "organizationId": to_object_id(organization_id, "organization id"),
            "createdAt": {"$gte": now - timedelta(days=days)},
        }
        if employee_ids is not None:
            query["employeeId"] = {
                "$in": [to_object_id(e, "employee id") for e in employee_ids]
            }

        cursor = self._checkins_collection.find(query)
        cursor = cursor.sort("createdAt", -1)
        return await cursor.to_list(length=None)
