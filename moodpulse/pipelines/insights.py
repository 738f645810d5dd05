"""
Insight pipeline functions.

On-demand generation (aggregate → rules → model → store) plus the list and
read/dismiss operations the dashboard uses.
"""

import logging
from typing import Optional, List, Dict, Any

from common.utils.exceptions import NotFoundException
from moodpulse.checkin.services.checkin_service import CheckInService, to_samples
from moodpulse.insights.services.aggregator import ScoreSample
from moodpulse.insights.services.alert_store import AlertStore
from moodpulse.insights.services.insight_store import InsightStore
from moodpulse.insights.services.insight_synthesizer import InsightSynthesizer, build_digest
from moodpulse.insights.services.trend_detector import RiskTrendDetector
from moodpulse.organization.services.employee_directory import (
    EmployeeDirectory,
    count_by_department,
    NO_DEPARTMENT,
)

logger = logging.getLogger(__name__)

MIN_EMPLOYEES = 3
MIN_CHECKINS = 5

NOT_ENOUGH_DATA = (
    f"Not enough data to generate insights. At least {MIN_EMPLOYEES} employees and "
    f"{MIN_CHECKINS} check-ins are needed."
)


def group_by_department(
    samples: List[ScoreSample],
    employees: List[Dict[str, Any]],
) -> Dict[str, List[ScoreSample]]:
    """Assign each sample to its employee's department."""
    departments = {str(e["_id"]): e.get("department") or NO_DEPARTMENT for e in employees}
    grouped: Dict[str, List[ScoreSample]] = {}
    for sample in samples:
        department = departments.get(sample.employee_id)
        if department is None:
            continue
        grouped.setdefault(department, []).append(sample)
    return grouped


async def generate_insights_pipeline(
    directory: EmployeeDirectory,
    checkin_service: CheckInService,
    detector: RiskTrendDetector,
    synthesizer: InsightSynthesizer,
    insight_store: InsightStore,
    organization_id: str,
    department: Optional[str] = None,
    window_days: int = 30,
) -> Dict[str, Any]:
    """
    Orchestrates on-demand insight generation.

    Args:
        directory: For the organization and its active employees
        checkin_service: For check-ins in the window
        detector: Department and organization rules
        synthesizer: Model recommendations
        insight_store: Persistence
        organization_id: Organization to analyse
        department: Optional department filter
        window_days: Trailing window for the analysis

    Returns:
        dict with generated count, stored insights and an optional warning

    Raises:
        NotFoundException: Unknown organization
    """
    organization = await directory.get_organization(organization_id)
    if not organization:
        raise NotFoundException(message="Organization not found", code="ORGANIZATION_NOT_FOUND")

    employees = await directory.list_active(organization_id, department=department)
    checkins = await checkin_service.get_for_organization_since(
        organization_id,
        days=window_days,
        employee_ids=[str(e["_id"]) for e in employees] if department else None,
    )

    if len(employees) < MIN_EMPLOYEES or len(checkins) < MIN_CHECKINS:
        logger.info(
            f"Skipping insight generation for organization {organization_id}: "
            f"{len(employees)} employees, {len(checkins)} check-ins"
        )
        return {
            "generated": 0,
            "insights": [],
            "message": NOT_ENOUGH_DATA,
            "warning": None,
        }

    samples = to_samples(checkins)

    detection = detector.evaluate_departments(
        organization_id,
        group_by_department(samples, employees),
        count_by_department(employees),
    )
    if not department:
        detection.extend(detector.evaluate_organization(organization_id, samples))

    digest = build_digest(organization, employees, checkins)
    synthesis = await synthesizer.synthesize(digest, organization_id)

    stored = await insight_store.save_many(detection.insights + synthesis.insights)

    logger.info(
        f"Generated {len(stored)} insight(s) for organization {organization_id} "
        f"({len(detection.insights)} rule, {len(synthesis.insights)} model)"
    )
    return {
        "generated": len(stored),
        "insights": stored,
        "message": f"Generated {len(stored)} insights",
        "warning": synthesis.warning,
    }


async def list_insights_pipeline(
    insight_store: InsightStore,
    organization_id: str,
    department: Optional[str] = None,
    limit: int = 20,
) -> Dict[str, Any]:
    insights = await insight_store.list_insights(organization_id, department=department, limit=limit)
    return {"insights": insights, "total": len(insights)}


async def update_insight_pipeline(
    insight_store: InsightStore,
    insight_id: str,
    is_read: Optional[bool] = None,
    is_dismissed: Optional[bool] = None,
) -> Dict[str, Any]:
    insight = await insight_store.update_flags(
        insight_id, is_read=is_read, is_dismissed=is_dismissed
    )
    return {"insight": insight}


async def list_alerts_pipeline(
    alert_store: AlertStore,
    organization_id: str,
    limit: int = 20,
) -> Dict[str, Any]:
    alerts = await alert_store.list_alerts(organization_id, limit=limit)
    return {"alerts": alerts, "total": len(alerts)}
