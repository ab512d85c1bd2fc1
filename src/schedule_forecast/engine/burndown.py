# schedule_forecast/engine/burndown.py

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from .models import ProgressSnapshot, Task, TaskDates
from .snapshots import SnapshotIndex
from .workdays import as_date, date_range

logger = logging.getLogger(__name__)

BURNDOWN_COLUMNS = ["Date", "IdealRemaining", "ActualRemaining", "IdealPct", "RemainingPct"]


def _empty_burndown() -> pd.DataFrame:
    return pd.DataFrame(columns=BURNDOWN_COLUMNS)


def task_remaining_on(
    task_id: str,
    day: date,
    dates: TaskDates,
    baseline: float,
    index: SnapshotIndex,
) -> float:
    """
    Remaining work of one task on `day` for the actual burndown line:

      plan end <= day     -> 0 (assumed done)
      plan start > day    -> full baseline (not started)
      otherwise           -> latest snapshot at or before day, else baseline
    """
    if dates.end <= day:
        return 0.0
    if dates.start > day:
        return baseline
    snapshot = index.latest_at_or_before(task_id, day)
    return snapshot.remaining_estimate if snapshot is not None else baseline


def generate_burndown(
    tasks: Iterable[Task],
    plan_dates: Mapping[str, TaskDates],
    baselines: Mapping[str, float],
    snapshots: Iterable[ProgressSnapshot] | SnapshotIndex = (),
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> pd.DataFrame:
    """
    Ideal vs actual remaining work, one row per calendar day in [start, end].

    Range defaults to the plan schedule's span. W is the sum of baseline
    estimates; both lines are normalised to W:

      IdealPct     = max(0, W * (1 - elapsed / total_days)) / W * 100
      RemainingPct = sum(task_remaining_on(...)) / W * 100

    Returns an empty frame when W == 0 (nothing to burn down) or when the
    range has no elapsed span.
    """
    index = snapshots if isinstance(snapshots, SnapshotIndex) else SnapshotIndex(snapshots)
    scheduled = [t for t in tasks if t.id in plan_dates]

    total_work = float(sum(baselines.get(t.id, 0.0) for t in scheduled))
    if total_work <= 0:
        logger.info("Burndown skipped: baseline estimate is zero")
        return _empty_burndown()

    if start is None:
        start = min(plan_dates[t.id].start for t in scheduled)
    if end is None:
        end = max(plan_dates[t.id].end for t in scheduled)
    start, end = as_date(start), as_date(end)

    total_days = (end - start).days
    if total_days <= 0:
        logger.info("Burndown skipped: empty date range %s..%s", start, end)
        return _empty_burndown()

    days = list(date_range(start, end))
    elapsed = np.arange(len(days), dtype=float)
    ideal = np.maximum(0.0, total_work * (1.0 - elapsed / total_days))

    actual = np.array([
        sum(
            task_remaining_on(t.id, day, plan_dates[t.id], baselines.get(t.id, 0.0), index)
            for t in scheduled
        )
        for day in days
    ], dtype=float)

    return pd.DataFrame({
        "Date": pd.to_datetime(days),
        "IdealRemaining": ideal,
        "ActualRemaining": actual,
        "IdealPct": ideal / total_work * 100.0,
        "RemainingPct": actual / total_work * 100.0,
    })


def burndown_records(df: pd.DataFrame) -> list:
    """[{date, idealPct, remainingPct}, ...] for JSON consumers."""
    return [
        {
            "date": row.Date.date().isoformat(),
            "idealPct": float(row.IdealPct),
            "remainingPct": float(row.RemainingPct),
        }
        for row in df.itertuples(index=False)
    ]
