"""
Delivery log for carrier traffic (whatsappLogs collection).
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from common.utils.ids import to_object_id

logger = logging.getLogger(__name__)


MESSAGE_TYPE_CHECKIN_REQUEST = "checkin_request"
MESSAGE_TYPE_RESPONSE = "response"
MESSAGE_TYPE_ACKNOWLEDGMENT = "acknowledgment"

DIRECTION_INBOUND = "inbound"
DIRECTION_OUTBOUND = "outbound"

STATUS_SENT = "sent"
STATUS_RECEIVED = "received"
STATUS_FAILED = "failed"


def format_log_entry(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Format a delivery log document for API response."""
    created_at = doc.get("createdAt")
    return {
        "id": str(doc["_id"]),
        "organizationId": str(doc["organizationId"]) if doc.get("organizationId") else None,
        "employeeId": str(doc["employeeId"]) if doc.get("employeeId") else None,
        "messageType": doc.get("messageType"),
        "direction": doc.get("direction"),
        "messageContent": doc.get("messageContent"),
        "providerMessageId": doc.get("providerMessageId"),
        "status": doc.get("status"),
        "errorMessage": doc.get("errorMessage"),
        "createdAt": created_at.isoformat() if created_at else None,
    }


def _optional_oid(value: Optional[str], field: str):
    return to_object_id(value, field) if value else None


class DeliveryLogService:
    """
    Records every inbound and outbound carrier message.
    """

    COLLECTION = "whatsappLogs"
    MAX_LIMIT = 200

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize DeliveryLogService.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._logs_collection = db[self.COLLECTION]

    async def ensure_indexes(self) -> None:
        await self._logs_collection.create_index(
            [("organizationId", ASCENDING), ("messageType", ASCENDING), ("createdAt", DESCENDING)],
            name="organization_type_recent",
        )

    async def record(
        self,
        message_type: str,
        direction: str,
        status: str,
        organization_id: Optional[str] = None,
        employee_id: Optional[str] = None,
        message_content: Optional[str] = None,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None,
        sender: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Append one delivery record.

        Args:
            message_type: checkin_request, response or acknowledgment
            direction: inbound or outbound
            status: sent, received or failed
            organization_id: Owning organization, when known
            employee_id: Employee, when known
            message_content: Message text
            provider_message_id: Carrier message id
            error_message: Failure reason
            sender: Raw sender address for unmatched inbound messages

        Returns:
            Created log document
        """
        log_doc = {
            "organizationId": _optional_oid(organization_id, "organization id"),
            "employeeId": _optional_oid(employee_id, "employee id"),
            "messageType": message_type,
            "direction": direction,
            "messageContent": message_content,
            "providerMessageId": provider_message_id,
            "status": status,
            "errorMessage": error_message,
            "createdAt": datetime.now(timezone.utc),
        }
        if sender:
            log_doc["sender"] = sender

        result = await self._logs_collection.insert_one(log_doc)
        log_doc["_id"] = result.inserted_id

        if status == STATUS_FAILED:
            logger.warning(
                f"Delivery failed ({message_type}, {direction}) for employee {employee_id}: "
                f"{error_message}"
            )
        return log_doc

    async def list_checkin_requests(
        self,
        organization_id: str,
        employee_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """
        Outbound check-in requests, newest first.

        Args:
            organization_id: Organization ID
            employee_id: Optional employee filter
            limit: Max records to return

        Returns:
            List of formatted log entries
        """
        limit = max(1, min(limit, self.MAX_LIMIT))
        query: Dict[str, Any] = {
            "organizationId": to_object_id(organization_id, "organization id"),
            "messageType": MESSAGE_TYPE_CHECKIN_REQUEST,
        }
        if employee_id:
            query["employeeId"] = to_object_id(employee_id, "employee id")

        cursor = self._logs_collection.find(query)
        cursor = cursor.sort("createdAt", -1)
        cursor = cursor.limit(limit)

        logs = await cursor.to_list(length=limit)
        return [format_log_entry(entry) for entry in logs]
