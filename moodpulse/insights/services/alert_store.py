"""
Burnout alert persistence. Alerts are read-only after creation.
"""

import logging
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from common.utils.ids import to_object_id
from moodpulse.insights.models import Alert, AlertSeverity

logger = logging.getLogger(__name__)


def format_alert(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format an alert document for API response."""
    created_at = doc.get("createdAt")
    return {
        "id": str(doc["_id"]),
        "organizationId": str(doc["organizationId"]),
        "employeeId": str(doc["employeeId"]),
        "alertType": doc.get("alertType"),
        "severity": doc.get("severity"),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "evidence": doc.get("evidence") or {},
        "createdAt": created_at.isoformat() if created_at else None,
    }


class AlertStore:
    """
    Handles burnout alert storage and listing.
    """

    COLLECTION = "alerts"
    MAX_LIMIT = 100

    def __init__(self, db: AsyncIOMotorDatabase, dedup_hours: int = 24):
        """
        Initialize AlertStore.

        Args:
            db: MongoDB database connection
            dedup_hours: Window in which an alert of the same or lower severity is not repeated
        """
        self._db = db
        self._alerts_collection = db[self.COLLECTION]
        self._dedup_hours = dedup_hours

    async def ensure_indexes(self) -> None:
        await self._alerts_collection.create_index(
            [("organizationId", ASCENDING), ("createdAt", DESCENDING)],
            name="organization_recent",
        )
        await self._alerts_collection.create_index(
            [("employeeId", ASCENDING), ("alertType", ASCENDING), ("createdAt", DESCENDING)],
            name="employee_alert_recent",
        )

    async def has_recent(self, alert: Alert) -> bool:
        """
        Check for an alert of the same type and at least the same severity
        for this employee inside the dedup window.
        """
        threshold = datetime.now(timezone.utc) - timedelta(hours=self._dedup_hours)
        severities = [AlertSeverity.HIGH.value]
        if alert.severity == AlertSeverity.MEDIUM:
            severities.append(AlertSeverity.MEDIUM.value)

        count = await self._alerts_collection.count_documents({
            "employeeId": to_object_id(alert.employee_id, "employee id"),
            "alertType": alert.alert_type,
            "severity": {"$in": severities},
            "createdAt": {"$gte": threshold},
        })

        return count > 0

    async def create(self, alert: Alert) -> Optional[Dict[str, Any]]:
        """
        Persist an alert unless an equivalent one was raised recently.

        Returns:
            Formatted alert, or None when suppressed
        """
        if await self.has_recent(alert):
            logger.debug(
                f"Skipping repeated {alert.alert_type} alert for employee {alert.employee_id}"
            )
            return None

        alert_doc = alert.to_document()
        result = await self._alerts_collection.insert_one(alert_doc)
        alert_doc["_id"] = result.inserted_id

        logger.warning(
            f"{alert.alert_type} alert ({alert.severity.value}) raised for employee "
            f"{alert.employee_id} in organization {alert.organization_id}"
        )
        return format_alert(alert_doc)

    async def list_alerts(
        self,
        organization_id: str,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Alerts for an organization, newest first."""
        limit = max(1, min(limit, self.MAX_LIMIT))
        cursor = self._alerts_collection.find({
            "organizationId": to_object_id(organization_id, "organization id"),
        })
        cursor = cursor.sort("createdAt", -1)
        cursor = cursor.limit(limit)

        alerts = await cursor.to_list(length=limit)
        return [format_alert(a) for a in alerts]
