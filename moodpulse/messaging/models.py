"""
Dispatch value types.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

from config.messaging_config import DEFAULT_LANGUAGE


@dataclass(frozen=True)
class Recipient:
    """One employee to message."""
    recipient_id: str
    organization_id: str
    address: str
    first_name: str = ""
    language: str = DEFAULT_LANGUAGE
    department: Optional[str] = None

    @classmethod
    def from_employee(cls, employee: Dict[str, Any]) -> "Recipient":
        return cls(
            recipient_id=str(employee["_id"]),
            organization_id=str(employee["organizationId"]),
            address=employee.get("phone") or "",
            first_name=employee.get("firstName") or "",
            language=employee.get("languagePreference") or DEFAULT_LANGUAGE,
            department=employee.get("department"),
        )


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one send attempt."""
    recipient_id: str
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipientId": self.recipient_id,
            "success": self.success,
            "messageId": self.message_id,
            "error": self.error,
        }


@dataclass
class DispatchSummary:
    """Counts plus per-recipient outcomes in input order."""
    results: List[DispatchResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "results": [r.to_dict() for r in self.results],
        }
