"""
FastAPI router for outbound check-in requests.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from common.utils import success_response
from moodpulse.dependencies import (
    get_dispatcher,
    get_delivery_log,
    get_employee_directory,
)
from moodpulse.messaging.services.delivery_log import DeliveryLogService
from moodpulse.messaging.services.dispatcher import BulkDispatcher
from moodpulse.organization.services.employee_directory import EmployeeDirectory
from moodpulse.schemas.dispatch import SendCheckinsRequest
from moodpulse.pipelines import dispatch as pipelines

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkins", tags=["checkins"])


@router.post("/send")
async def send_checkins(
    body: SendCheckinsRequest,
    dispatcher: Annotated[BulkDispatcher, Depends(get_dispatcher)],
    directory: Annotated[EmployeeDirectory, Depends(get_employee_directory)],
):
    """
    Send check-in requests to one employee, a list, or a whole organization.

    Partial failures are reported per recipient; the request itself succeeds.
    """
    result = await pipelines.send_checkins_pipeline(
        dispatcher=dispatcher,
        directory=directory,
        target=body.type,
        message_type=body.messageType,
        organization_id=body.organizationId,
        employee_id=body.employeeId,
        employee_ids=body.employeeIds,
        department=body.department,
    )
    return success_response(
        result,
        message=f"Sent {result['successful']} of {result['total']} check-in messages",
    )


@router.get("/send")
async def list_sent_checkins(
    delivery_log: Annotated[DeliveryLogService, Depends(get_delivery_log)],
    organizationId: str = Query(..., min_length=1),
    employeeId: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
):
    """
    Outbound check-in request history, newest first.
    """
    result = await pipelines.list_sent_checkins_pipeline(
        delivery_log=delivery_log,
        organization_id=organizationId,
        employee_id=employeeId,
        limit=limit,
    )
    return success_response(result)
