"""
Pydantic models for check-in send requests.
"""

from typing import Optional, List, Literal

from pydantic import BaseModel, Field, model_validator

from config.messaging_config import DEFAULT_MESSAGE_TYPE


# =============================================================================
# Request Schemas
# =============================================================================

class SendCheckinsRequest(BaseModel):
    """POST /api/v1/checkins/send"""
    type: Literal["single", "list", "organization"]
    organizationId: Optional[str] = None
    employeeId: Optional[str] = None
    employeeIds: Optional[List[str]] = Field(None, max_length=1000)
    department: Optional[str] = None
    messageType: Literal["daily", "weekly", "biweekly"] = DEFAULT_MESSAGE_TYPE

    @model_validator(mode="after")
    def _require_target_ids(self) -> "SendCheckinsRequest":
        if self.type == "single" and not self.employeeId:
            raise ValueError("employeeId is required for type 'single'")
        if self.type == "list" and not self.employeeIds:
            raise ValueError("employeeIds is required for type 'list'")
        if self.type == "organization" and not self.organizationId:
            raise ValueError("organizationId is required for type 'organization'")
        return self
