"""Organization services."""

from moodpulse.organization.services.employee_directory import EmployeeDirectory

__all__ = ["EmployeeDirectory"]
