"""
Risk & Trend Detector.

Fixed policies over aggregated mood scores. Every rule is independent and
stateless; exact boundary values never fire (ties favor the lower severity).
Each finding carries the numbers that justify its severity in data_points.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Dict, Any, Sequence

from moodpulse.insights.models import (
    Insight,
    Alert,
    InsightType,
    Severity,
    InsightOrigin,
    AlertSeverity,
)
from moodpulse.insights.services.aggregator import (
    ScoreSample,
    aggregate,
    split_halves,
    last_scores,
    as_utc,
)

logger = logging.getLogger(__name__)


# Rule keys (stable identifiers stored on each rule-origin insight)
RULE_DEPARTMENT_LOW_MOOD = "department_low_mood"
RULE_DEPARTMENT_HIGH_PERFORMANCE = "department_high_performance"
RULE_DEPARTMENT_LOW_RESPONSE_RATE = "department_low_response_rate"
RULE_ORGANIZATION_DECLINE = "organization_decline"
RULE_EMPLOYEE_DECLINING_TREND = "employee_declining_trend"
RULE_EMPLOYEE_PERSISTENT_LOW_MOOD = "employee_persistent_low_mood"
RULE_EMPLOYEE_POSITIVE_TREND = "employee_positive_trend"
RULE_BURNOUT_RISK = "burnout_risk"


DEPARTMENT_LOW_MOOD_ACTIONS = [
    "Conduct department-wide survey",
    "Review team workload and deadlines",
    "Consider team building activities",
    "Meet with department manager",
]

DEPARTMENT_HIGH_PERFORMANCE_ACTIONS = [
    "Document successful practices",
    "Share strategies with other departments",
    "Recognize team achievements",
    "Maintain current support level",
]

LOW_RESPONSE_RATE_ACTIONS = [
    "Review check-in timing and frequency",
    "Improve message templates",
    "Educate employees on importance",
    "Consider incentives for participation",
]

ORGANIZATION_DECLINE_ACTIONS = [
    "Investigate recent organizational changes",
    "Review company-wide policies or events",
    "Consider all-hands meeting to address concerns",
    "Increase check-in frequency temporarily",
]

DECLINING_TREND_ACTIONS = [
    "Schedule a private conversation with the employee",
    "Review recent workload and stress factors",
    "Consider temporary workload adjustment",
]

PERSISTENT_LOW_MOOD_ACTIONS = [
    "Immediate manager check-in required",
    "Consider mental health resources",
    "Review work environment factors",
]

POSITIVE_TREND_ACTIONS = [
    "Acknowledge positive performance",
    "Consider sharing successful practices with team",
    "Maintain current support level",
]


@dataclass
class DetectionResult:
    """Insights and alerts produced by one detector pass."""
    insights: List[Insight] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)

    def extend(self, other: "DetectionResult") -> "DetectionResult":
        self.insights.extend(other.insights)
        self.alerts.extend(other.alerts)
        return self

    @property
    def empty(self) -> bool:
        return not self.insights and not self.alerts


def _settle(value: float) -> float:
    # Float noise must not push a boundary value over a threshold
    return round(value, 4)


def _employee_name(employee: Dict[str, Any]) -> str:
    return f"{employee.get('firstName', '')} {employee.get('lastName', '')}".strip() or "Employee"


class RiskTrendDetector:
    """
    Applies the department, organization and employee rules.

    Department and organization rules run in batch during insight
    generation; employee rules run synchronously for each inbound check-in.
    """

    MIN_DEPARTMENT_SAMPLES = 5
    LOW_MOOD_WARNING = 2.5
    LOW_MOOD_CRITICAL = 2.0
    HIGH_PERFORMANCE = 4.2
    LOW_RESPONSE_RATE_PCT = 50.0

    ORG_DECLINE_SAMPLES = 20
    ORG_DECLINE_THRESHOLD = 0.5

    TREND_LENGTH = 3
    LOW_SCORE = 2
    HIGH_SCORE = 4
    PERSISTENT_LOOKBACK = 10
    PERSISTENT_MIN_LOW = 2

    BURNOUT_WINDOW_DAYS = 14
    BURNOUT_MEDIUM = 2
    BURNOUT_HIGH = 3

    def __init__(self, window_days: int = 30):
        """
        Initialize RiskTrendDetector.

        Args:
            window_days: Trailing window for department aggregates
        """
        self._window_days = window_days

    # ─────────────────────────────────────────────────────────────────
    # Department rules
    # ─────────────────────────────────────────────────────────────────

    def evaluate_departments(
        self,
        organization_id: str,
        samples_by_department: Dict[str, Sequence[ScoreSample]],
        population_by_department: Dict[str, int],
        now: Optional[datetime] = None,
    ) -> DetectionResult:
        """
        Run the department rules.

        Departments with a known population are checked for response rate
        even when they have no check-ins at all.

        Args:
            organization_id: Organization being analysed
            samples_by_department: Check-ins grouped by department
            population_by_department: Active employees per department
            now: End of the window (defaults to now, UTC)

        Returns:
            DetectionResult with department insights only
        """
        result = DetectionResult()
        departments = sorted(set(samples_by_department) | set(population_by_department))

        for department in departments:
            samples = samples_by_department.get(department, [])
            population = population_by_department.get(department, 0)
            window = aggregate(samples, self._window_days, population, now=now)

            if window.count >= self.MIN_DEPARTMENT_SAMPLES:
                average = _settle(window.average)

                if average < self.LOW_MOOD_WARNING:
                    severity = Severity.CRITICAL if average < self.LOW_MOOD_CRITICAL else Severity.WARNING
                    result.insights.append(Insight(
                        organization_id=organization_id,
                        insight_type=InsightType.DEPARTMENT_INSIGHT,
                        title=f"Low Mood Alert - {department} Department",
                        description=(
                            f"{department} department has an average mood score of {average:.1f} "
                            f"over the last {self._window_days} days. "
                            "This indicates potential team-wide issues."
                        ),
                        severity=severity,
                        origin=InsightOrigin.RULE,
                        rule=RULE_DEPARTMENT_LOW_MOOD,
                        department=department,
                        data_points={
                            "average_mood": round(average, 2),
                            "sample_count": window.count,
                            "total_responses": window.response_count,
                            "low_mood_count": sum(1 for s in window.scores if s <= self.LOW_SCORE),
                            "warning_threshold": self.LOW_MOOD_WARNING,
                            "critical_threshold": self.LOW_MOOD_CRITICAL,
                        },
                        action_items=DEPARTMENT_LOW_MOOD_ACTIONS,
                    ))

                if average > self.HIGH_PERFORMANCE:
                    result.insights.append(Insight(
                        organization_id=organization_id,
                        insight_type=InsightType.POSITIVE_TREND,
                        title=f"High Performance - {department} Department",
                        description=(
                            f"{department} department maintains excellent mood scores "
                            f"({average:.1f} average). Consider sharing their practices "
                            "with other teams."
                        ),
                        severity=Severity.INFO,
                        origin=InsightOrigin.RULE,
                        rule=RULE_DEPARTMENT_HIGH_PERFORMANCE,
                        department=department,
                        data_points={
                            "average_mood": round(average, 2),
                            "sample_count": window.count,
                            "total_responses": window.response_count,
                            "high_mood_count": sum(1 for s in window.scores if s >= self.HIGH_SCORE),
                            "threshold": self.HIGH_PERFORMANCE,
                        },
                        action_items=DEPARTMENT_HIGH_PERFORMANCE_ACTIONS,
                    ))

            if population > 0:
                rate = _settle(window.response_rate_pct)
                if rate < self.LOW_RESPONSE_RATE_PCT:
                    result.insights.append(Insight(
                        organization_id=organization_id,
                        insight_type=InsightType.TREND_ANALYSIS,
                        title=f"Low Response Rate - {department} Department",
                        description=(
                            f"{department} department has a low response rate ({rate:.1f}%). "
                            "Employees may not be engaging with check-ins."
                        ),
                        severity=Severity.WARNING,
                        origin=InsightOrigin.RULE,
                        rule=RULE_DEPARTMENT_LOW_RESPONSE_RATE,
                        department=department,
                        data_points={
                            "response_rate_pct": round(rate, 2),
                            "total_responses": window.response_count,
                            "population_size": population,
                            "window_days": self._window_days,
                            "threshold_pct": self.LOW_RESPONSE_RATE_PCT,
                        },
                        action_items=LOW_RESPONSE_RATE_ACTIONS,
                    ))

        return result

    # ─────────────────────────────────────────────────────────────────
    # Organization rules
    # ─────────────────────────────────────────────────────────────────

    def evaluate_organization(
        self,
        organization_id: str,
        samples: Sequence[ScoreSample],
    ) -> DetectionResult:
        """
        Organization-wide decline over the 20 newest check-ins.

        The 10 newest form the recent half and the 10 before them the prior
        half; the rule fires when prior - recent > 0.5.
        """
        result = DetectionResult()
        if len(samples) < self.ORG_DECLINE_SAMPLES:
            return result

        newest = sorted(samples, key=lambda s: as_utc(s.created_at))[-self.ORG_DECLINE_SAMPLES:]
        split = split_halves(newest)
        if split.delta is None:
            return result

        decline = _settle(-split.delta)
        if decline <= self.ORG_DECLINE_THRESHOLD:
            return result

        previous = split.prior.average
        current = split.recent.average
        result.insights.append(Insight(
            organization_id=organization_id,
            insight_type=InsightType.TREND_ANALYSIS,
            title="Organization-wide Mood Decline",
            description=(
                "Recent mood scores are declining across the organization. "
                f"Average dropped from {previous:.1f} to {current:.1f}."
            ),
            severity=Severity.WARNING,
            origin=InsightOrigin.RULE,
            rule=RULE_ORGANIZATION_DECLINE,
            data_points={
                "previous_average": round(previous, 2),
                "current_average": round(current, 2),
                "decline_amount": round(decline, 2),
                "previous_count": split.prior.count,
                "current_count": split.recent.count,
                "threshold": self.ORG_DECLINE_THRESHOLD,
            },
            action_items=ORGANIZATION_DECLINE_ACTIONS,
        ))
        return result

    # ─────────────────────────────────────────────────────────────────
    # Employee rules
    # ─────────────────────────────────────────────────────────────────

    def evaluate_employee(
        self,
        organization_id: str,
        employee: Dict[str, Any],
        samples: Sequence[ScoreSample],
        now: Optional[datetime] = None,
    ) -> DetectionResult:
        """
        Per-employee rules, run after every inbound check-in.

        Args:
            organization_id: Employee's organization
            employee: Employee document (_id, firstName, lastName, department)
            samples: The employee's recent check-ins, any order
            now: Reference time for the burnout window

        Returns:
            DetectionResult with employee insights and at most one burnout alert
        """
        result = DetectionResult()
        employee_id = str(employee["_id"])
        first_name = employee.get("firstName") or "Employee"
        name = _employee_name(employee)
        department = employee.get("department")

        recent = last_scores(samples, self.TREND_LENGTH)
        if len(recent) == self.TREND_LENGTH:
            latest = recent[-1]
            non_increasing = all(b <= a for a, b in zip(recent, recent[1:]))

            if non_increasing:
                severity = Severity.CRITICAL if latest <= self.LOW_SCORE else Severity.WARNING
                result.insights.append(Insight(
                    organization_id=organization_id,
                    insight_type=InsightType.RISK_DETECTION,
                    title=f"Declining Mood Trend - {name}",
                    description=(
                        f"{first_name} has shown a declining mood trend over the last "
                        f"{self.TREND_LENGTH} check-ins ({' → '.join(map(str, recent))}). "
                        "Consider a one-on-one check-in."
                    ),
                    severity=severity,
                    origin=InsightOrigin.RULE,
                    rule=RULE_EMPLOYEE_DECLINING_TREND,
                    department=department,
                    employee_id=employee_id,
                    data_points={
                        "recent_scores": recent,
                        "latest_score": latest,
                        "critical_at_or_below": self.LOW_SCORE,
                    },
                    action_items=DECLINING_TREND_ACTIONS,
                ))

            if all(score >= self.HIGH_SCORE for score in recent):
                result.insights.append(Insight(
                    organization_id=organization_id,
                    insight_type=InsightType.POSITIVE_TREND,
                    title=f"Positive Mood Trend - {name}",
                    description=(
                        f"{first_name} has maintained high mood scores (≥{self.HIGH_SCORE}) "
                        f"for {self.TREND_LENGTH} consecutive check-ins. Great job!"
                    ),
                    severity=Severity.INFO,
                    origin=InsightOrigin.RULE,
                    rule=RULE_EMPLOYEE_POSITIVE_TREND,
                    department=department,
                    employee_id=employee_id,
                    data_points={
                        "recent_scores": recent,
                        "threshold": self.HIGH_SCORE,
                    },
                    action_items=POSITIVE_TREND_ACTIONS,
                ))

        last_checkins = sorted(samples, key=lambda s: as_utc(s.created_at))[-self.PERSISTENT_LOOKBACK:]
        low_count = sum(
            1 for s in last_checkins if s.score is not None and s.score <= self.LOW_SCORE
        )
        if low_count >= self.PERSISTENT_MIN_LOW:
            result.insights.append(Insight(
                organization_id=organization_id,
                insight_type=InsightType.RISK_DETECTION,
                title=f"Persistent Low Mood - {name}",
                description=(
                    f"{first_name} has reported low mood (≤{self.LOW_SCORE}) in {low_count} "
                    f"of their last {len(last_checkins)} check-ins. Immediate attention recommended."
                ),
                severity=Severity.CRITICAL,
                origin=InsightOrigin.RULE,
                rule=RULE_EMPLOYEE_PERSISTENT_LOW_MOOD,
                department=department,
                employee_id=employee_id,
                data_points={
                    "low_mood_count": low_count,
                    "checkins_considered": len(last_checkins),
                    "low_score_threshold": self.LOW_SCORE,
                    "min_low_count": self.PERSISTENT_MIN_LOW,
                },
                action_items=PERSISTENT_LOW_MOOD_ACTIONS,
            ))

        alert = self.evaluate_burnout(organization_id, employee_id, samples, now=now)
        if alert:
            result.alerts.append(alert)

        return result

    def evaluate_burnout(
        self,
        organization_id: str,
        employee_id: str,
        samples: Sequence[ScoreSample],
        now: Optional[datetime] = None,
    ) -> Optional[Alert]:
        """
        Burnout heuristic over the trailing 14 days.

        Two low scores (≤2) raise a medium alert, three or more a high one.
        Independent of the persistent-low-mood insight.
        """
        end = as_utc(now or datetime.now(timezone.utc))
        start = end - timedelta(days=self.BURNOUT_WINDOW_DAYS)

        low = sorted(
            (
                s for s in samples
                if s.score is not None
                and s.score <= self.LOW_SCORE
                and start <= as_utc(s.created_at) <= end
            ),
            key=lambda s: as_utc(s.created_at),
        )
        if len(low) < self.BURNOUT_MEDIUM:
            return None

        severity = AlertSeverity.HIGH if len(low) >= self.BURNOUT_HIGH else AlertSeverity.MEDIUM
        logger.info(
            f"Burnout risk ({severity.value}) for employee {employee_id}: "
            f"{len(low)} low scores in {self.BURNOUT_WINDOW_DAYS} days"
        )
        return Alert(
            organization_id=organization_id,
            employee_id=employee_id,
            severity=severity,
            title="Potential Burnout Risk Detected",
            description=(
                f"Employee has reported {len(low)} low mood scores in the past 2 weeks."
            ),
            evidence={
                "low_scores": [
                    {"score": s.score, "created_at": as_utc(s.created_at).isoformat()}
                    for s in low
                ],
                "low_mood_count": len(low),
                "window_days": self.BURNOUT_WINDOW_DAYS,
            },
        )
