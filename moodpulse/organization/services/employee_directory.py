"""
Employee directory.

Read-only view over the employees and organizations collections, which are
maintained by the admin side of the product.
"""

import logging
from typing import Optional, List, Dict, Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.utils.ids import to_object_id
from moodpulse.messaging.services.carrier_client import strip_address_prefix

logger = logging.getLogger(__name__)


ACTIVE_SUBSCRIPTION = "active"
NO_DEPARTMENT = "Unassigned"


def _phone_candidates(phone: str) -> List[str]:
    """Stored numbers may or may not carry the leading '+'."""
    bare = phone.lstrip("+")
    return [f"+{bare}", bare] if bare else []


class EmployeeDirectory:
    """
    Looks up employees and organizations.
    """

    MAX_EMPLOYEES = 10000

    def __init__(self, db: AsyncIOMotorDatabase):
        """
        Initialize EmployeeDirectory.

        Args:
            db: MongoDB database connection
        """
        self._db = db
        self._employees_collection = db["employees"]
        self._orgs_collection = db["organizations"]

    async def find_active_by_phone(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Active employee for a carrier sender address.

        Args:
            address: Sender as received, e.g. "whatsapp:+254700000001"

        Returns:
            Employee document or None
        """
        candidates = _phone_candidates(strip_address_prefix(address))
        if not candidates:
            return None

        return await self._employees_collection.find_one({
            "phone": {"$in": candidates},
            "isActive": True,
        })

    async def get_active(self, employee_id: str) -> Optional[Dict[str, Any]]:
        return await self._employees_collection.find_one({
            "_id": to_object_id(employee_id, "employee id"),
            "isActive": True,
        })

    async def list_active(
        self,
        organization_id: str,
        department: Optional[str] = None,
        employee_ids: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Active employees of an organization.

        Args:
            organization_id: Organization ID
            department: Optional department filter
            employee_ids: Optional explicit id list

        Returns:
            Employee documents sorted by first name
        """
        query: Dict[str, Any] = {
            "organizationId": to_object_id(organization_id, "organization id"),
            "isActive": True,
        }
        if department:
            query["department"] = department
        if employee_ids is not None:
            query["_id"] = {"$in": [to_object_id(e, "employee id") for e in employee_ids]}

        cursor = self._employees_collection.find(query)
        cursor = cursor.sort("firstName", 1)
        return await cursor.to_list(length=self.MAX_EMPLOYEES)

    async def list_active_by_ids(self, employee_ids: List[str]) -> List[Dict[str, Any]]:
        """Active employees for an explicit id list, across organizations."""
        if not employee_ids:
            return []
        cursor = self._employees_collection.find({
            "_id": {"$in": [to_object_id(e, "employee id") for e in employee_ids]},
            "isActive": True,
        })
        return await cursor.to_list(length=len(employee_ids))

    async def get_organization(self, organization_id: str) -> Optional[Dict[str, Any]]:
        return await self._orgs_collection.find_one(
            {"_id": to_object_id(organization_id, "organization id")}
        )

    async def is_organization_active(self, organization_id: str) -> bool:
        """Whether the organization's subscription allows processing."""
        organization = await self.get_organization(organization_id)
        if not organization:
            return False
        return organization.get("subscriptionStatus") == ACTIVE_SUBSCRIPTION


def count_by_department(employees: List[Dict[str, Any]]) -> Dict[str, int]:
    """Active headcount per department."""
    counts: Dict[str, int] = {}
    for employee in employees:
        department = employee.get("department") or NO_DEPARTMENT
        counts[department] = counts.get(department, 0) + 1
    return counts
