"""
Outbound check-in pipeline functions.

Resolves who to message, renders the per-language template and hands the
batch to the Bulk Dispatcher.
"""

import logging
from typing import Optional, List, Dict, Any

from common.utils.exceptions import BadRequestException, NotFoundException
from config.messaging_config import MESSAGE_TEMPLATES, DEFAULT_LANGUAGE, DEFAULT_MESSAGE_TYPE
from moodpulse.messaging.models import Recipient
from moodpulse.messaging.services.delivery_log import (
    DeliveryLogService,
    MESSAGE_TYPE_CHECKIN_REQUEST,
)
from moodpulse.messaging.services.dispatcher import BulkDispatcher
from moodpulse.organization.services.employee_directory import EmployeeDirectory

logger = logging.getLogger(__name__)

TARGET_SINGLE = "single"
TARGET_LIST = "list"
TARGET_ORGANIZATION = "organization"


def build_checkin_message(recipient: Recipient, message_type: str = DEFAULT_MESSAGE_TYPE) -> str:
    """Check-in request in the recipient's language, English when unsupported."""
    templates = MESSAGE_TEMPLATES.get(recipient.language) or MESSAGE_TEMPLATES[DEFAULT_LANGUAGE]
    template = templates.get(message_type) or MESSAGE_TEMPLATES[DEFAULT_LANGUAGE][DEFAULT_MESSAGE_TYPE]
    return template.format(name=recipient.first_name or "there")


async def resolve_recipients(
    directory: EmployeeDirectory,
    target: str,
    organization_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    employee_ids: Optional[List[str]] = None,
    department: Optional[str] = None,
) -> List[Recipient]:
    """
    Turn a send request into active recipients.

    Raises:
        BadRequestException: Target is missing its identifiers
        NotFoundException: Single employee not found or inactive
    """
    if target == TARGET_SINGLE:
        if not employee_id:
            raise BadRequestException(message="employeeId is required", code="MISSING_EMPLOYEE")
        employee = await directory.get_active(employee_id)
        if not employee:
            raise NotFoundException(message="Employee not found", code="EMPLOYEE_NOT_FOUND")
        return [Recipient.from_employee(employee)]

    if target == TARGET_LIST:
        if not employee_ids:
            raise BadRequestException(message="employeeIds is required", code="MISSING_EMPLOYEES")
        if organization_id:
            employees = await directory.list_active(organization_id, employee_ids=employee_ids)
        else:
            employees = await directory.list_active_by_ids(employee_ids)
        # Keep the caller's order
        order = {eid: index for index, eid in enumerate(employee_ids)}
        employees.sort(key=lambda e: order.get(str(e["_id"]), len(order)))
        return [Recipient.from_employee(e) for e in employees]

    if target == TARGET_ORGANIZATION:
        if not organization_id:
            raise BadRequestException(
                message="organizationId is required",
                code="MISSING_ORGANIZATION",
            )
        employees = await directory.list_active(organization_id, department=department)
        return [Recipient.from_employee(e) for e in employees]

    raise BadRequestException(message=f"Unknown send type '{target}'", code="INVALID_SEND_TYPE")


async def send_checkins_pipeline(
    dispatcher: BulkDispatcher,
    directory: EmployeeDirectory,
    target: str,
    message_type: str = DEFAULT_MESSAGE_TYPE,
    organization_id: Optional[str] = None,
    employee_id: Optional[str] = None,
    employee_ids: Optional[List[str]] = None,
    department: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Orchestrates a check-in send.

    Args:
        dispatcher: Bounded fan-out to the carrier
        directory: For recipient lookup
        target: single, list or organization
        message_type: daily, weekly or biweekly template
        organization_id: Organization (organization target, optional for list)
        employee_id: Employee (single target)
        employee_ids: Employees (list target)
        department: Optional filter for the organization target

    Returns:
        DispatchSummary as a dict plus the message type
    """
    recipients = await resolve_recipients(
        directory,
        target,
        organization_id=organization_id,
        employee_id=employee_id,
        employee_ids=employee_ids,
        department=department,
    )

    logger.info(f"Sending {message_type} check-in to {len(recipients)} recipient(s) ({target})")

    summary = await dispatcher.dispatch_all(
        recipients,
        lambda recipient: build_checkin_message(recipient, message_type),
        MESSAGE_TYPE_CHECKIN_REQUEST,
    )

    return {
        **summary.to_dict(),
        "messageType": message_type,
    }


async def list_sent_checkins_pipeline(
    delivery_log: DeliveryLogService,
    organization_id: str,
    employee_id: Optional[str] = None,
    limit: int = 50,
) -> Dict[str, Any]:
    entries = await delivery_log.list_checkin_requests(
        organization_id, employee_id=employee_id, limit=limit
    )
    return {"messages": entries, "total": len(entries)}
