# schedule_forecast/engine/forecast.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from ..config.settings import settings
from .models import ProgressSnapshot, ProjectResource, Task
from .snapshots import SnapshotIndex
from .workdays import add_working_days, as_date

logger = logging.getLogger(__name__)

TREND_IMPROVING = "improving"
TREND_STABLE = "stable"
TREND_DECLINING = "declining"


# -----------------------------
# Small helpers
# -----------------------------

def planned_velocity(project_resources: Iterable[ProjectResource]) -> float:
    """Committed daily capacity: sum(number_of_resources * focus/100), person-days/day."""
    return float(sum(
        pr.number_of_resources * (pr.focus_factor / 100.0) for pr in project_resources
    ))


def confidence_for(days_analyzed: int) -> str:
    if days_analyzed >= settings.CONFIDENCE_HIGH_DATES:
        return "high"
    if days_analyzed >= settings.CONFIDENCE_MEDIUM_DATES:
        return "medium"
    return "low"


def project_completion_date(anchor: date, remaining_work: float, velocity: float) -> Optional[date]:
    """
    anchor + ceil(remaining / velocity) working days.

    None when velocity <= 0: the forecast is unavailable, not infinite.
    """
    if velocity <= 0:
        return None
    days = max(0, math.ceil(round(remaining_work / velocity, 9)))
    return add_working_days(anchor, days)


# -----------------------------
# 1. Aggregate remaining-work series
# -----------------------------

def aggregate_remaining_series(
    tasks: Iterable[Task],
    baselines: Mapping[str, float],
    index: SnapshotIndex,
    dates: Iterable[date],
) -> pd.Series:
    """
    Total remaining work on each date: per task the latest snapshot at or
    before the date, or its baseline estimate if it has none yet.
    """
    task_ids = [t.id for t in tasks]
    values = {}
    for d in dates:
        total = 0.0
        for task_id in task_ids:
            snap = index.latest_at_or_before(task_id, d)
            total += snap.remaining_estimate if snap is not None else baselines.get(task_id, 0.0)
        values[d] = total
    return pd.Series(values, dtype=float).sort_index()


def current_remaining_work(
    tasks: Iterable[Task],
    baselines: Mapping[str, float],
    index: SnapshotIndex,
    anchor: date,
) -> float:
    """
    Work left at the anchor date. Tasks without a snapshot yet fall back to
    baseline * (1 - progress/100).
    """
    total = 0.0
    for task in tasks:
        snap = index.latest_at_or_before(task.id, anchor)
        if snap is not None:
            total += snap.remaining_estimate
        else:
            total += baselines.get(task.id, 0.0) * (1 - task.progress / 100.0)
    return total


# -----------------------------
# 2. Observed velocity & trend
# -----------------------------

def observed_velocity(series: pd.Series) -> float:
    """
    Recency-weighted average burn rate of an aggregate remaining series.

    Each consecutive pair of dates with work actually done contributes
    (prev - curr) / calendar days between; later intervals weigh more
    (weights 1..n). 0.0 when nothing was burned.
    """
    if len(series) < 2:
        return 0.0

    rates: List[float] = []
    items = list(series.items())
    for (d0, v0), (d1, v1) in zip(items, items[1:]):
        work_done = v0 - v1
        days_between = (d1 - d0).days
        if days_between > 0 and work_done > 0:
            rates.append(work_done / days_between)

    if not rates:
        return 0.0

    weights = np.arange(1, len(rates) + 1, dtype=float)
    return float(np.average(rates, weights=weights))


def velocity_trend(series: pd.Series, tolerance: Optional[float] = None) -> str:
    """
    Compare the first half of the analysed dates against the second.

    Fewer than 4 dates can't give two halves with a rate each -> stable.
    """
    if tolerance is None:
        tolerance = settings.TREND_TOLERANCE

    if len(series) < 4:
        return TREND_STABLE

    mid = len(series) // 2
    first = observed_velocity(series.iloc[:mid])
    second = observed_velocity(series.iloc[mid:])

    if second > first * (1 + tolerance):
        return TREND_IMPROVING
    if second < first * (1 - tolerance):
        return TREND_DECLINING
    return TREND_STABLE


# -----------------------------
# 3. Forecast record
# -----------------------------

@dataclass
class VelocityForecast:
    average_velocity: float
    planned_velocity: float
    trend: str
    completion_date_optimistic: Optional[date]
    completion_date_realistic: Optional[date]
    confidence_level: str
    days_analyzed: int
    remaining_work: float
    anchor_date: date
    notes: List[str] = field(default_factory=list)

    @property
    def is_available(self) -> bool:
        return self.completion_date_realistic is not None

    @property
    def schedule_delta_days(self) -> Optional[int]:
        """Optimistic minus realistic, calendar days; negative means behind plan."""
        if self.completion_date_optimistic is None or self.completion_date_realistic is None:
            return None
        return (self.completion_date_optimistic - self.completion_date_realistic).days

    def to_dict(self) -> Dict[str, Any]:
        def _iso(d: Optional[date]) -> Optional[str]:
            return d.isoformat() if d is not None else None

        return {
            "averageVelocity": self.average_velocity,
            "plannedVelocity": self.planned_velocity,
            "trend": self.trend,
            "completionDateOptimistic": _iso(self.completion_date_optimistic),
            "completionDateRealistic": _iso(self.completion_date_realistic),
            "confidenceLevel": self.confidence_level,
            "daysAnalyzed": self.days_analyzed,
            "remainingWork": self.remaining_work,
            "anchorDate": self.anchor_date.isoformat(),
            "scheduleDeltaDays": self.schedule_delta_days,
            "notes": list(self.notes),
        }


def compute_velocity_forecast(
    tasks: Iterable[Task],
    baselines: Mapping[str, float],
    snapshots: Iterable[ProgressSnapshot] | SnapshotIndex,
    project_resources: Iterable[ProjectResource] = (),
    anchor_date: Optional[date] = None,
    window_days: Optional[int] = None,
) -> VelocityForecast:
    """
    Observed velocity, trend and completion forecasts at the anchor date.

      plannedVelocity   -> project allocations
      averageVelocity   -> burn rate of aggregate remaining work across
                           distinct snapshot dates (planned velocity when
                           fewer than 2 dates exist)
      optimistic date   -> anchor + ceil(remaining / planned) working days
      realistic date    -> anchor + ceil(remaining / average) working days

    A zero or negative divisor leaves that date as None with a note.
    """
    anchor = as_date(settings.resolve_anchor_date(anchor_date))
    if window_days is None:
        window_days = settings.VELOCITY_WINDOW_DAYS

    task_list = list(tasks)
    index = snapshots if isinstance(snapshots, SnapshotIndex) else SnapshotIndex(snapshots)
    notes: List[str] = []

    planned = planned_velocity(project_resources)

    dates = [d for d in index.distinct_dates([t.id for t in task_list]) if d <= anchor]
    if window_days:
        cutoff = anchor - timedelta(days=window_days)
        recent = [d for d in dates if d >= cutoff]
        if len(recent) >= 2:
            dates = recent
        else:
            notes.append(f"fewer than 2 snapshot dates in the last {window_days} days; using full history")

    series = aggregate_remaining_series(task_list, baselines, index, dates)
    days_analyzed = len(series)

    if days_analyzed < 2:
        average = planned
        confidence = "low"
        notes.append("fewer than 2 snapshot dates; average velocity falls back to planned velocity")
    else:
        average = observed_velocity(series)
        confidence = confidence_for(days_analyzed)

    trend = velocity_trend(series)
    remaining = current_remaining_work(task_list, baselines, index, anchor)

    optimistic = project_completion_date(anchor, remaining, planned)
    if optimistic is None:
        notes.append("planned velocity is zero; optimistic forecast unavailable")
    realistic = project_completion_date(anchor, remaining, average)
    if realistic is None:
        notes.append("observed velocity is zero; realistic forecast unavailable")

    for note in notes:
        logger.info("Forecast: %s", note)

    return VelocityForecast(
        average_velocity=average,
        planned_velocity=planned,
        trend=trend,
        completion_date_optimistic=optimistic,
        completion_date_realistic=realistic,
        confidence_level=confidence,
        days_analyzed=days_analyzed,
        remaining_work=remaining,
        anchor_date=anchor,
        notes=notes,
    )


def project_remaining(current_remaining: float, velocity: float, max_days: int) -> List[float]:
    """
    Straight-line projection of remaining work at `velocity` per day,
    stopping at the first day it reaches zero.
    """
    projection: List[float] = []
    remaining = current_remaining

    for _ in range(max_days):
        projection.append(max(0.0, remaining))
        remaining -= velocity
        if remaining <= 0:
            projection.append(0.0)
            break

    return projection
