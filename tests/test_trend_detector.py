"""Unit tests for RiskTrendDetector (department, organization and employee rules)."""

import pytest
from datetime import timedelta

from moodpulse.insights.models import Severity, AlertSeverity, InsightOrigin, InsightType
from moodpulse.insights.services.aggregator import ScoreSample
from moodpulse.insights.services.trend_detector import (
    RiskTrendDetector,
    RULE_DEPARTMENT_LOW_MOOD,
    RULE_DEPARTMENT_HIGH_PERFORMANCE,
    RULE_DEPARTMENT_LOW_RESPONSE_RATE,
    RULE_ORGANIZATION_DECLINE,
    RULE_EMPLOYEE_DECLINING_TREND,
    RULE_EMPLOYEE_PERSISTENT_LOW_MOOD,
    RULE_EMPLOYEE_POSITIVE_TREND,
)


@pytest.fixture
def detector():
    return RiskTrendDetector(window_days=30)


def by_rule(insights, rule):
    return [i for i in insights if i.rule == rule]


# ─────────────────────────────────────────────────────────────────
# Department rules
# ─────────────────────────────────────────────────────────────────


class TestDepartmentRules:
    def test_low_mood_warning(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([3, 2, 3, 2, 2], now)  # 2.4

        result = detector.evaluate_departments(
            sample_org_id, {"Sales": samples}, {"Sales": 1}, now=now
        )

        low = by_rule(result.insights, RULE_DEPARTMENT_LOW_MOOD)
        assert len(low) == 1
        assert low[0].severity == Severity.WARNING
        assert low[0].department == "Sales"
        assert low[0].title == "Low Mood Alert - Sales Department"
        assert low[0].origin == InsightOrigin.RULE
        assert low[0].data_points["average_mood"] == 2.4
        assert low[0].data_points["sample_count"] == 5

    def test_low_mood_critical(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([2, 2, 1, 2, 2], now)  # 1.8

        result = detector.evaluate_departments(sample_org_id, {"Ops": samples}, {}, now=now)

        low = by_rule(result.insights, RULE_DEPARTMENT_LOW_MOOD)
        assert low[0].severity == Severity.CRITICAL

    def test_exact_warning_threshold_does_not_fire(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([2, 3, 2, 3, 2, 3], now)  # exactly 2.5

        result = detector.evaluate_departments(sample_org_id, {"Ops": samples}, {}, now=now)

        assert by_rule(result.insights, RULE_DEPARTMENT_LOW_MOOD) == []

    def test_high_performance(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([5, 4, 5, 4, 4], now)  # 4.4

        result = detector.evaluate_departments(sample_org_id, {"R&D": samples}, {}, now=now)

        high = by_rule(result.insights, RULE_DEPARTMENT_HIGH_PERFORMANCE)
        assert len(high) == 1
        assert high[0].severity == Severity.INFO
        assert high[0].insight_type == InsightType.POSITIVE_TREND

    def test_exact_high_threshold_does_not_fire(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([5, 4, 4, 4, 4], now)  # exactly 4.2

        result = detector.evaluate_departments(sample_org_id, {"R&D": samples}, {}, now=now)

        assert by_rule(result.insights, RULE_DEPARTMENT_HIGH_PERFORMANCE) == []

    def test_too_few_samples_skips_mood_rules(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([1, 1, 1, 1], now)

        result = detector.evaluate_departments(sample_org_id, {"Ops": samples}, {}, now=now)

        assert result.empty

    def test_null_scores_do_not_count_towards_minimum(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([1, 1, 1, 1, None], now)

        result = detector.evaluate_departments(sample_org_id, {"Ops": samples}, {}, now=now)

        assert by_rule(result.insights, RULE_DEPARTMENT_LOW_MOOD) == []

    def test_low_response_rate(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([3, 3, 3], now)

        result = detector.evaluate_departments(
            sample_org_id, {"Sales": samples}, {"Sales": 2}, now=now
        )

        rate = by_rule(result.insights, RULE_DEPARTMENT_LOW_RESPONSE_RATE)
        assert len(rate) == 1
        assert rate[0].severity == Severity.WARNING
        assert rate[0].data_points["response_rate_pct"] == 5.0

    def test_department_without_checkins_still_checked_for_rate(self, detector, sample_org_id, now):
        result = detector.evaluate_departments(sample_org_id, {}, {"Legal": 3}, now=now)

        assert [i.department for i in result.insights] == ["Legal"]
        assert result.insights[0].rule == RULE_DEPARTMENT_LOW_RESPONSE_RATE

    def test_exact_response_rate_threshold_does_not_fire(self, sample_org_id, now, samples_of):
        detector = RiskTrendDetector(window_days=10)
        samples = samples_of([3, 3, 3, 3, 3], now)  # 5 / (1 * 10) = 50%

        result = detector.evaluate_departments(
            sample_org_id, {"Ops": samples}, {"Ops": 1}, now=now
        )

        assert by_rule(result.insights, RULE_DEPARTMENT_LOW_RESPONSE_RATE) == []


# ─────────────────────────────────────────────────────────────────
# Organization rules
# ─────────────────────────────────────────────────────────────────


class TestOrganizationDecline:
    def test_decline_over_newest_twenty(self, detector, sample_org_id, now, samples_of):
        older = [1, 1, 1, 1, 1]
        prior = [4, 4, 4, 4, 4, 4, 3, 3, 3, 3]    # 3.6
        recent = [3, 3, 3, 3, 3, 3, 3, 3, 2, 2]   # 2.8
        samples = samples_of(older + prior + recent, now, step=timedelta(hours=6))

        result = detector.evaluate_organization(sample_org_id, samples)

        assert len(result.insights) == 1
        insight = result.insights[0]
        assert insight.rule == RULE_ORGANIZATION_DECLINE
        assert insight.title == "Organization-wide Mood Decline"
        assert insight.severity == Severity.WARNING
        assert insight.department is None
        assert insight.data_points["previous_average"] == 3.6
        assert insight.data_points["current_average"] == 2.8
        assert insight.data_points["decline_amount"] == pytest.approx(0.8)

    def test_fewer_than_twenty_samples(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([5] * 10 + [1] * 9, now)

        assert detector.evaluate_organization(sample_org_id, samples).empty

    def test_exact_threshold_does_not_fire(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([4] * 5 + [3] * 5 + [4] * 5 + [2] * 5, now)  # 3.5 -> 3.0

        assert detector.evaluate_organization(sample_org_id, samples).empty

    def test_improvement_does_not_fire(self, detector, sample_org_id, now, samples_of):
        samples = samples_of([2] * 10 + [5] * 10, now)

        assert detector.evaluate_organization(sample_org_id, samples).empty


# ─────────────────────────────────────────────────────────────────
# Employee rules
# ─────────────────────────────────────────────────────────────────


class TestEmployeeRules:
    def test_declining_trend_warning(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([5, 4, 3], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        declining = by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND)
        assert len(declining) == 1
        assert declining[0].severity == Severity.WARNING
        assert declining[0].title == "Declining Mood Trend - Amina Otieno"
        assert declining[0].employee_id == str(sample_employee_doc["_id"])
        assert declining[0].data_points["recent_scores"] == [5, 4, 3]
        assert result.alerts == []

    def test_declining_trend_critical_when_latest_low(
        self, detector, sample_org_id, sample_employee_doc, now, samples_of
    ):
        samples = samples_of([3, 2, 1], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        declining = by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND)
        assert declining[0].severity == Severity.CRITICAL

    def test_plateau_then_drop_is_declining(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([4, 4, 3], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        assert len(by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND)) == 1

    def test_flat_scores_are_declining(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([3, 3, 3], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        declining = by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND)
        assert len(declining) == 1
        assert declining[0].severity == Severity.WARNING
        assert result.alerts == []

    def test_flat_low_scores_are_critical(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([2, 2, 2], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        declining = by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND)
        assert len(declining) == 1
        assert declining[0].severity == Severity.CRITICAL

    def test_rising_scores_are_not_declining(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([2, 3, 3], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        assert by_rule(result.insights, RULE_EMPLOYEE_DECLINING_TREND) == []

    def test_positive_trend(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([4, 5, 4], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        positive = by_rule(result.insights, RULE_EMPLOYEE_POSITIVE_TREND)
        assert len(positive) == 1
        assert positive[0].severity == Severity.INFO

    def test_two_checkins_are_not_a_trend(self, detector, sample_org_id, sample_employee_doc, now, samples_of):
        samples = samples_of([5, 4], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        assert result.empty

    def test_persistent_low_mood_and_high_burnout(
        self, detector, sample_org_id, sample_employee_doc, now, samples_of
    ):
        samples = samples_of([3, 2, 3, 1, 2], now)

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        persistent = by_rule(result.insights, RULE_EMPLOYEE_PERSISTENT_LOW_MOOD)
        assert len(persistent) == 1
        assert persistent[0].severity == Severity.CRITICAL
        assert persistent[0].data_points["low_mood_count"] == 3

        assert len(result.alerts) == 1
        alert = result.alerts[0]
        assert alert.severity == AlertSeverity.HIGH
        assert alert.title == "Potential Burnout Risk Detected"
        assert alert.evidence["low_mood_count"] == 3
        assert [s["score"] for s in alert.evidence["low_scores"]] == [2, 1, 2]

    def test_persistent_low_only_looks_at_last_ten(
        self, detector, sample_org_id, sample_employee_doc, now, samples_of
    ):
        samples = samples_of([1, 1] + [3] * 10, now, step=timedelta(days=3))

        result = detector.evaluate_employee(sample_org_id, sample_employee_doc, samples, now=now)

        assert by_rule(result.insights, RULE_EMPLOYEE_PERSISTENT_LOW_MOOD) == []


class TestBurnout:
    def test_two_low_scores_is_medium(self, detector, sample_org_id, sample_employee_id, now, samples_of):
        alert = detector.evaluate_burnout(
            sample_org_id, sample_employee_id, samples_of([2, 4, 1], now), now=now
        )

        assert alert.severity == AlertSeverity.MEDIUM
        assert alert.alert_type == "burnout_risk"

    def test_one_low_score_is_nothing(self, detector, sample_org_id, sample_employee_id, now, samples_of):
        assert detector.evaluate_burnout(
            sample_org_id, sample_employee_id, samples_of([2, 4, 4], now), now=now
        ) is None

    def test_low_scores_outside_window_ignored(self, detector, sample_org_id, sample_employee_id, now):
        samples = [
            ScoreSample(score=1, created_at=now - timedelta(days=20)),
            ScoreSample(score=1, created_at=now - timedelta(days=15)),
            ScoreSample(score=2, created_at=now - timedelta(days=1)),
        ]

        assert detector.evaluate_burnout(sample_org_id, sample_employee_id, samples, now=now) is None
