"""
LLM Insight Synthesizer.

Builds a bounded digest of an organization's recent check-ins, asks the
language model for recommendations as a JSON array, and recovers what it
can from the raw completion. Malformed output, timeouts and provider errors
all end in an empty list plus a warning; nothing here raises to the caller.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Sequence

from pydantic import ValidationError

from common.ai.base import AIProvider
from moodpulse.insights.models import Insight, InsightOrigin, InsightType

logger = logging.getLogger(__name__)


MAX_DIGEST_CHECKINS = 50

SYSTEM_PROMPT = (
    "You are an HR wellbeing analyst. You reply with a JSON array only: "
    "no prose, no markdown, no code fences, no commentary."
)

PROMPT_TEMPLATE = """Analyse this organization's recent employee mood check-ins and suggest actionable insights.

Organization: {organization_name}
Employees ({employee_count}):
{roster}

Most recent check-ins ({checkin_count}, mood 1-5, newest first):
{checkins}

Respond with ONLY a JSON array. Each element must be an object with these fields:
- "title": short headline
- "description": one or two sentences
- "severity": one of "info", "warning", "critical"
- "insight_type": one of "trend_analysis", "risk_detection", "recommendation", "department_insight", "employee_insight", "positive_trend"
- "department": department name, or null for organization-wide findings
- "action_items": array of short strings

Do not include any text before or after the array. Do not wrap it in markdown.
If there is not enough data to say anything useful, respond with []."""


@dataclass
class OrgDigest:
    """Size-bounded organization summary sent to the model."""
    organization_name: str
    roster: List[Dict[str, Any]] = field(default_factory=list)
    checkins: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class SynthesisResult:
    insights: List[Insight] = field(default_factory=list)
    warning: Optional[str] = None
    dropped: int = 0


def build_digest(
    organization: Dict[str, Any],
    employees: Sequence[Dict[str, Any]],
    checkins: Sequence[Dict[str, Any]],
    max_checkins: int = MAX_DIGEST_CHECKINS,
) -> OrgDigest:
    """
    Reduce organization data to what the prompt needs.

    Args:
        organization: Organization document
        employees: Active employee documents
        checkins: Check-in documents, newest first
        max_checkins: Cap on check-ins included

    Returns:
        OrgDigest with name+department roster and score/department/date rows
    """
    departments = {str(e["_id"]): e.get("department") for e in employees}

    roster = [
        {
            "name": f"{e.get('firstName', '')} {e.get('lastName', '')}".strip(),
            "department": e.get("department"),
        }
        for e in employees
    ]

    rows = []
    for checkin in list(checkins)[:max_checkins]:
        created_at = checkin.get("createdAt")
        rows.append({
            "score": checkin.get("moodScore"),
            "department": departments.get(str(checkin.get("employeeId"))),
            "date": created_at.date().isoformat() if created_at else None,
        })

    return OrgDigest(
        organization_name=organization.get("name") or "Organization",
        roster=roster,
        checkins=rows,
    )


def build_prompt(digest: OrgDigest) -> str:
    roster = "\n".join(
        f"- {r['name']} ({r['department'] or 'No department'})" for r in digest.roster
    ) or "- none"
    checkins = "\n".join(
        f"- {c['date']}: mood {c['score'] if c['score'] is not None else 'n/a'}"
        f" ({c['department'] or 'No department'})"
        for c in digest.checkins
    ) or "- none"

    return PROMPT_TEMPLATE.format(
        organization_name=digest.organization_name,
        employee_count=len(digest.roster),
        roster=roster,
        checkin_count=len(digest.checkins),
        checkins=checkins,
    )


# ─────────────────────────────────────────────────────────────────
# Repair steps (each independent and idempotent)
# ─────────────────────────────────────────────────────────────────

_FENCE = re.compile(r"```[A-Za-z0-9_-]*")
_TRAILING_COMMA = re.compile(r",\s*([\]}])")


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers, keeping what was inside them."""
    return _FENCE.sub("", text)


def locate_array(text: str) -> Optional[str]:
    """
    Substring from the first '[' to its matching ']'.

    Runs to the end of the text when the array never closes. Brackets inside
    JSON strings are ignored. None when there is no '['.
    """
    start = text.find("[")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return text[start:]


def remove_trailing_commas(text: str) -> str:
    """Drop commas that directly precede a closing ']' or '}'."""
    return _TRAILING_COMMA.sub(r"\1", text)


def balance_brackets(text: str) -> str:
    """Append the missing ']' when '[' outnumbers ']'."""
    deficit = text.count("[") - text.count("]")
    return text + "]" * deficit if deficit > 0 else text


def parse_insight_array(raw_text: Optional[str]) -> Tuple[List[Any], Optional[str]]:
    """
    Run the repair pipeline and parse strictly.

    Returns:
        (items, warning) - warning is None on success, items empty on failure
    """
    if not raw_text or not raw_text.strip():
        return [], "Model returned an empty response"

    candidate = locate_array(strip_code_fences(raw_text))
    if candidate is None:
        return [], "Model response did not contain a JSON array"

    candidate = balance_brackets(remove_trailing_commas(candidate))

    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        return [], f"Model response could not be parsed as JSON: {e}"

    if not isinstance(parsed, list):
        return [], "Model response was not a JSON array"

    return parsed, None


def to_model_insight(item: Any, organization_id: str) -> Insight:
    """
    Validate one recovered object into the shared Insight schema.

    Raises:
        ValueError: Item is not an object or fails validation
    """
    if not isinstance(item, dict):
        raise ValueError(f"expected an object, got {type(item).__name__}")

    return Insight(
        organization_id=organization_id,
        insight_type=item.get("insight_type") or InsightType.RECOMMENDATION,
        title=item.get("title"),
        description=item.get("description"),
        severity=item.get("severity"),
        origin=InsightOrigin.MODEL,
        rule=None,
        department=item.get("department"),
        employee_id=None,
        data_points=item.get("data_points"),
        action_items=item.get("action_items"),
    )


class InsightSynthesizer:
    """
    Turns an organization digest into model-origin insights.

    Exactly one model call per synthesize(); no retries.
    """

    def __init__(
        self,
        ai_provider: Optional[AIProvider],
        timeout_seconds: float = 30.0,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ):
        """
        Initialize InsightSynthesizer.

        Args:
            ai_provider: Configured provider, or None to disable synthesis
            timeout_seconds: Hard limit for the single model call
            max_tokens: Completion budget
            temperature: Sampling temperature
        """
        self._ai_provider = ai_provider
        self._timeout_seconds = timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def enabled(self) -> bool:
        return self._ai_provider is not None

    async def synthesize(self, digest: OrgDigest, organization_id: str) -> SynthesisResult:
        """
        Ask the model for insights and recover a validated list.

        Args:
            digest: Bounded organization summary
            organization_id: Stamped on every returned insight

        Returns:
            SynthesisResult; warning set whenever output was missing or partial
        """
        if not self._ai_provider:
            return SynthesisResult(
                warning="AI provider is not configured; only rule-based insights were generated"
            )

        prompt = build_prompt(digest)

        try:
            raw = await asyncio.wait_for(
                self._ai_provider.chat(
                    prompt,
                    system_prompt=SYSTEM_PROMPT,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                ),
                timeout=self._timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"AI insight synthesis timed out after {self._timeout_seconds}s "
                f"for organization {organization_id}"
            )
            return SynthesisResult(warning="AI insight generation timed out")
        except Exception as e:
            logger.warning(f"AI insight synthesis failed for organization {organization_id}: {e}")
            return SynthesisResult(warning="AI insight generation failed")

        items, warning = parse_insight_array(raw)
        if warning:
            logger.warning(f"Discarding AI output for organization {organization_id}: {warning}")
            return SynthesisResult(warning=warning)

        insights: List[Insight] = []
        dropped = 0
        for index, item in enumerate(items):
            try:
                insights.append(to_model_insight(item, organization_id))
            except (ValidationError, ValueError) as e:
                dropped += 1
                logger.warning(
                    f"Dropped AI insight #{index} for organization {organization_id}: {e}"
                )

        result = SynthesisResult(insights=insights, dropped=dropped)
        if dropped:
            result.warning = f"{dropped} AI insight(s) failed validation and were dropped"
        return result
