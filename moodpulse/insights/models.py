"""
Pydantic models for Insights and Alerts.

Rule-based findings and model-generated recommendations share one validated
schema, tagged by origin, so stores and API consumers never inspect shapes.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any

from bson import ObjectId
from pydantic import BaseModel, Field, field_validator


class InsightType(str, Enum):
    TREND_ANALYSIS = "trend_analysis"
    RISK_DETECTION = "risk_detection"
    RECOMMENDATION = "recommendation"
    DEPARTMENT_INSIGHT = "department_insight"
    EMPLOYEE_INSIGHT = "employee_insight"
    POSITIVE_TREND = "positive_trend"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class InsightOrigin(str, Enum):
    RULE = "rule"
    MODEL = "model"


class AlertSeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


BURNOUT_ALERT_TYPE = "burnout_risk"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _oid_or_none(value: Optional[str]) -> Optional[ObjectId]:
    if value and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class Insight(BaseModel):
    """A materialized, severity-tagged finding."""

    organization_id: str
    insight_type: InsightType
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    severity: Severity
    origin: InsightOrigin
    rule: Optional[str] = None
    department: Optional[str] = None
    employee_id: Optional[str] = None
    data_points: Dict[str, Any] = Field(default_factory=dict)
    action_items: List[str] = Field(default_factory=list)
    is_read: bool = False
    is_dismissed: bool = False
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("department", mode="before")
    @classmethod
    def _blank_department(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("action_items", mode="before")
    @classmethod
    def _normalize_action_items(cls, value: Any) -> Any:
        """Accept a list, a JSON-encoded list, or a single string."""
        if value is None:
            return []
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            try:
                decoded = json.loads(stripped)
            except ValueError:
                return [stripped]
            value = decoded if isinstance(decoded, list) else [stripped]
        if isinstance(value, list):
            return [str(item).strip() for item in value if str(item).strip()]
        return value

    @field_validator("data_points", mode="before")
    @classmethod
    def _normalize_data_points(cls, value: Any) -> Any:
        """Accept an object or a JSON-encoded object; anything else is wrapped."""
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return {"value": value}
        if not isinstance(value, dict):
            return {"value": value}
        return value

    def to_document(self) -> Dict[str, Any]:
        """Mongo document for the insights collection."""
        return {
            "organizationId": ObjectId(self.organization_id),
            "insightType": self.insight_type.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "origin": self.origin.value,
            "rule": self.rule,
            "department": self.department,
            "employeeId": _oid_or_none(self.employee_id),
            "dataPoints": self.data_points,
            "actionItems": list(self.action_items),
            "isRead": self.is_read,
            "isDismissed": self.is_dismissed,
            "createdAt": self.created_at,
        }


class Alert(BaseModel):
    """Employee-scoped urgent finding (burnout risk)."""

    organization_id: str
    employee_id: str
    alert_type: str = BURNOUT_ALERT_TYPE
    severity: AlertSeverity
    title: str
    description: str
    evidence: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)

    def to_document(self) -> Dict[str, Any]:
        """Mongo document for the alerts collection."""
        return {
            "organizationId": ObjectId(self.organization_id),
            "employeeId": ObjectId(self.employee_id),
            "alertType": self.alert_type,
            "severity": self.severity.value,
            "title": self.title,
            "description": self.description,
            "evidence": self.evidence,
            "createdAt": self.created_at,
        }
