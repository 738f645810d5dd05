"""
Rolling-window aggregation over mood scores.

Pure functions over (score, timestamp) samples; callers supply the
population size because it cannot be derived from the scores alone.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from typing import Optional, List, Sequence


@dataclass(frozen=True)
class ScoreSample:
    """One check-in reduced to what aggregation needs."""
    score: Optional[int]
    created_at: datetime
    employee_id: Optional[str] = None


@dataclass
class AggregateWindow:
    """
    Scores for one scope inside a time range.

    count is the number of non-null scores; response_count includes
    replies that could not be scored. average is 0.0 when count is 0,
    so check count before trusting it.
    """
    start: datetime
    end: datetime
    scores: List[int] = field(default_factory=list)
    response_count: int = 0
    population_size: int = 0
    response_rate_pct: float = 0.0

    @property
    def count(self) -> int:
        return len(self.scores)

    @property
    def average(self) -> float:
        return mean(self.scores)


@dataclass(frozen=True)
class HalfStats:
    count: int
    average: float


@dataclass(frozen=True)
class SplitWindow:
    """Two contiguous halves of a window, oldest half first."""
    prior: HalfStats
    recent: HalfStats

    @property
    def delta(self) -> Optional[float]:
        """recent - prior; None when either half has no samples."""
        if self.prior.count == 0 or self.recent.count == 0:
            return None
        return self.recent.average - self.prior.average


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _half(samples: Sequence[ScoreSample]) -> HalfStats:
    scores = [s.score for s in samples if s.score is not None]
    return HalfStats(count=len(scores), average=mean(scores))


def _chronological(samples: Sequence[ScoreSample]) -> List[ScoreSample]:
    return sorted(samples, key=lambda s: as_utc(s.created_at))


def aggregate(
    samples: Sequence[ScoreSample],
    window_days: int,
    population_size: int,
    now: Optional[datetime] = None,
) -> AggregateWindow:
    """
    Summarise the samples that fall inside the trailing window.

    Response rate = response_count / (population_size * window_days) * 100.

    Args:
        samples: Check-ins in any order
        window_days: Length of the trailing window
        population_size: Employees expected to reply in this scope
        now: End of the window (defaults to now, UTC)

    Returns:
        AggregateWindow for [now - window_days, now]
    """
    end = as_utc(now or datetime.now(timezone.utc))
    start = end - timedelta(days=window_days)

    in_window = [s for s in samples if start <= as_utc(s.created_at) <= end]
    scores = [s.score for s in in_window if s.score is not None]

    expected = population_size * window_days
    response_rate = (len(in_window) / expected * 100) if expected > 0 else 0.0

    return AggregateWindow(
        start=start,
        end=end,
        scores=scores,
        response_count=len(in_window),
        population_size=population_size,
        response_rate_pct=response_rate,
    )


def split_halves(samples: Sequence[ScoreSample]) -> SplitWindow:
    """
    Split samples by position into two equal contiguous halves.

    With an odd number of samples the oldest one is left out so both halves
    have the same size. Null scores are excluded from each half's mean.
    """
    ordered = _chronological(samples)
    half = len(ordered) // 2
    if half == 0:
        return SplitWindow(prior=HalfStats(0, 0.0), recent=HalfStats(0, 0.0))

    ordered = ordered[len(ordered) - 2 * half:]
    return SplitWindow(prior=_half(ordered[:half]), recent=_half(ordered[half:]))


def last_scores(samples: Sequence[ScoreSample], n: int) -> List[int]:
    """The n most recent non-null scores, oldest first."""
    scored = [s for s in _chronological(samples) if s.score is not None]
    return [s.score for s in scored[-n:]] if n > 0 else []
