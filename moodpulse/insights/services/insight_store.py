"""
Insight persistence.

Stores rule-origin and model-origin insights in one collection and exposes
the read/dismiss transitions. Insights are otherwise never edited.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Dict, Any, Sequence

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from common.utils.exceptions import NotFoundException, BadRequestException
from common.utils.ids import to_object_id
from moodpulse.insights.models import Insight, InsightOrigin

logger = logging.getLogger(__name__)


def format_insight(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format an insight document for API response."""
    created_at = doc.get("createdAt")
    return {
        "id": str(doc["_id"]),
        "organizationId": str(doc["organizationId"]),
        "insightType": doc.get("insightType"),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "severity": doc.get("severity"),
        "origin": doc.get("origin"),
        "rule": doc.get("rule"),
        "department": doc.get("department"),
        "employeeId": str(doc["employeeId"]) if doc.get("employeeId") else None,
        "dataPoints": doc.get("dataPoints") or {},
        "actionItems": doc.get("actionItems") or [],
        "isRead": doc.get("isRead", False),
        "isDismissed": doc.get("isDismissed", False),
        "createdAt": created_at.isoformat() if created_at else None,
    }


class InsightStore:
    """
    Handles insight storage, listing and read/dismiss state.
    """

    COLLECTION = "insights"
    MAX_LIMIT = 100

    def __init__(self, db: AsyncIOMotorDatabase, dedup_hours: int = 24):
        """
        Initialize InsightStore.

        Args:
            db: MongoDB database connection
            dedup_hours: Window in which a repeated rule finding is not stored again
        """
        self._db = db
        self._insights_collection = db[self.COLLECTION]
        self._dedup_hours = dedup_hours

    async def ensure_indexes(self) -> None:
        await self._insights_collection.create_index(
            [("organizationId", ASCENDING), ("createdAt", DESCENDING)],
            name="organization_recent",
        )
        await self._insights_collection.create_index(
            [("organizationId", ASCENDING), ("rule", ASCENDING), ("createdAt", DESCENDING)],
            name="rule_recent",
        )

    async def has_recent(
        self,
        organization_id: str,
        rule: str,
        employee_id: Optional[str] = None,
        department: Optional[str] = None,
        hours: Optional[int] = None,
    ) -> bool:
        """Check whether the same rule fired for the same subject recently."""
        threshold = datetime.now(timezone.utc) - timedelta(
            hours=self._dedup_hours if hours is None else hours
        )

        count = await self._insights_collection.count_documents({
            "organizationId": to_object_id(organization_id, "organization id"),
            "rule": rule,
            "employeeId": to_object_id(employee_id, "employee id") if employee_id else None,
            "department": department,
            "createdAt": {"$gte": threshold},
        })

        return count > 0

    async def save_many(self, insights: Sequence[Insight]) -> List[Dict[str, Any]]:
        """
        Persist insights, skipping rule findings already stored recently.

        Args:
            insights: Validated insights of either origin

        Returns:
            Formatted documents that were actually inserted
        """
        to_insert = []
        for insight in insights:
            if insight.origin == InsightOrigin.RULE and insight.rule:
                if await self.has_recent(
                    insight.organization_id,
                    insight.rule,
                    employee_id=insight.employee_id,
                    department=insight.department,
                ):
                    logger.debug(
                        f"Skipping repeated {insight.rule} insight for organization "
                        f"{insight.organization_id}"
                    )
                    continue
            to_insert.append(insight.to_document())

        if not to_insert:
            return []

        result = await self._insights_collection.insert_many(to_insert)
        for doc, inserted_id in zip(to_insert, result.inserted_ids):
            doc["_id"] = inserted_id

        logger.info(f"Stored {len(to_insert)} insight(s)")
        return [format_insight(doc) for doc in to_insert]

    async def list_insights(
        self,
        organization_id: str,
        department: Optional[str] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """
        Insights for an organization, newest first.

        Args:
            organization_id: Organization ID
            department: Optional department filter
            limit: Max records to return

        Returns:
            List of formatted insight dicts
        """
        limit = max(1, min(limit, self.MAX_LIMIT))
        query: Dict[str, Any] = {
            "organizationId": to_object_id(organization_id, "organization id"),
        }
        if department:
            query["department"] = department

        cursor = self._insights_collection.find(query)
        cursor = cursor.sort("createdAt", -1)
        cursor = cursor.limit(limit)

        insights = await cursor.to_list(length=limit)
        return [format_insight(i) for i in insights]

    async def update_flags(
        self,
        insight_id: str,
        is_read: Optional[bool] = None,
        is_dismissed: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Toggle read/dismissed state.

        Raises:
            BadRequestException: Neither flag given
            NotFoundException: Unknown insight
        """
        update: Dict[str, Any] = {}
        if is_read is not None:
            update["isRead"] = is_read
        if is_dismissed is not None:
            update["isDismissed"] = is_dismissed

        if not update:
            raise BadRequestException(
                message="Provide isRead or isDismissed",
                code="NO_UPDATE_FIELDS",
            )

        result = await self._insights_collection.find_one_and_update(
            {"_id": to_object_id(insight_id, "insight id")},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )

        if not result:
            raise NotFoundException(message="Insight not found", code="INSIGHT_NOT_FOUND")

        return format_insight(result)
