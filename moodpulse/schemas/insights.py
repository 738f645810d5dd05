"""
Pydantic models for Insight request validation.
"""

from typing import Optional

from pydantic import BaseModel, Field


# =============================================================================
# Request Schemas
# =============================================================================

class GenerateInsightsRequest(BaseModel):
    """POST /api/v1/insights"""
    organizationId: str = Field(..., min_length=1)
    department: Optional[str] = None


class UpdateInsightRequest(BaseModel):
    """PATCH /api/v1/insights (at least one flag; checked by the store, 400 otherwise)"""
    insightId: str = Field(..., min_length=1)
    isRead: Optional[bool] = None
    isDismissed: Optional[bool] = None
