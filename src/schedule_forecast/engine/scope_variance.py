# schedule_forecast/engine/scope_variance.py

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..config.settings import settings
from .models import ProgressSnapshot, Task, TaskResource
from .snapshots import SnapshotIndex

logger = logging.getLogger(__name__)


# -----------------------------
# Consecutive-snapshot scope changes
# -----------------------------

@dataclass(frozen=True)
class ScopeChange:
    task_id: str
    task_title: str
    date: date
    theoretical_remaining: float
    new_remaining: float
    scope_change: float       # >0 added work, <0 removed work
    change_pct: float         # relative to the previous remaining estimate

    @property
    def direction(self) -> str:
        return "increase" if self.scope_change > 0 else "decrease"

    @property
    def magnitude(self) -> float:
        return abs(self.scope_change)


def theoretical_remaining(prev: ProgressSnapshot, curr: ProgressSnapshot) -> float:
    """
    What `curr.remaining_estimate` should be if the task shrank exactly in
    proportion to the progress reported since `prev`, with no added scope.
    """
    return prev.remaining_estimate * (1 - (curr.progress - prev.progress) / 100.0)


def detect_scope_changes(
    task: Task,
    snapshots: Sequence[ProgressSnapshot],
    threshold: Optional[float] = None,
) -> List[ScopeChange]:
    """
    Compare consecutive (date-ordered) snapshots of one task.

    Changes with |scope_change| <= threshold person-days are noise.
    """
    if threshold is None:
        threshold = settings.SCOPE_NOISE_THRESHOLD

    ordered = sorted(snapshots, key=lambda s: s.date)
    changes: List[ScopeChange] = []

    for prev, curr in zip(ordered, ordered[1:]):
        expected = theoretical_remaining(prev, curr)
        delta = curr.remaining_estimate - expected
        if abs(delta) <= threshold:
            continue

        pct = (delta / prev.remaining_estimate * 100.0) if prev.remaining_estimate > 0 else 0.0
        changes.append(
            ScopeChange(
                task_id=task.id,
                task_title=task.title,
                date=curr.date,
                theoretical_remaining=expected,
                new_remaining=curr.remaining_estimate,
                scope_change=delta,
                change_pct=pct,
            )
        )

    return changes


@dataclass
class ScopeVarianceReport:
    total_increase: float = 0.0
    total_decrease: float = 0.0
    adjustment_count: int = 0
    top_changes: List[ScopeChange] = field(default_factory=list)
    changes: List[ScopeChange] = field(default_factory=list)
    # most recent dates first
    net_change_by_date: List[Tuple[date, float]] = field(default_factory=list)

    @property
    def net_change(self) -> float:
        return self.total_increase - self.total_decrease

    def to_frame(self) -> pd.DataFrame:
        """All flagged events, biggest first."""
        rows = []
        for c in sorted(self.changes, key=lambda c: c.magnitude, reverse=True):
            rows.append({
                "TaskID": c.task_id,
                "Title": c.task_title,
                "Date": pd.Timestamp(c.date),
                "Direction": c.direction,
                "ScopeChange": c.scope_change,
                "TheoreticalRemaining": c.theoretical_remaining,
                "NewRemaining": c.new_remaining,
                "ChangePct": c.change_pct,
            })
        columns = [
            "TaskID", "Title", "Date", "Direction", "ScopeChange",
            "TheoreticalRemaining", "NewRemaining", "ChangePct",
        ]
        return pd.DataFrame(rows, columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        def _event(c: ScopeChange) -> Dict[str, Any]:
            d = asdict(c)
            d["date"] = c.date.isoformat()
            d["direction"] = c.direction
            return d

        return {
            "total_increase": self.total_increase,
            "total_decrease": self.total_decrease,
            "net_change": self.net_change,
            "adjustment_count": self.adjustment_count,
            "top_changes": [_event(c) for c in self.top_changes],
            "net_change_by_date": [
                {"date": d.isoformat(), "change": v} for d, v in self.net_change_by_date
            ],
        }


def compute_scope_variance(
    tasks: Iterable[Task],
    snapshots: Iterable[ProgressSnapshot] | SnapshotIndex,
    threshold: Optional[float] = None,
    top_n: Optional[int] = None,
    recent_dates: Optional[int] = None,
) -> ScopeVarianceReport:
    """
    Project-level scope creep / shrink from snapshot history.

    Returns a ScopeVarianceReport with:
      total_increase, total_decrease, net_change, adjustment_count,
      top_changes        (top_n events by magnitude)
      net_change_by_date (net change per date, most recent `recent_dates`)
    """
    if top_n is None:
        top_n = settings.SCOPE_TOP_CHANGES
    if recent_dates is None:
        recent_dates = settings.SCOPE_RECENT_DATES

    index = snapshots if isinstance(snapshots, SnapshotIndex) else SnapshotIndex(snapshots)
    task_map = {t.id: t for t in tasks}

    report = ScopeVarianceReport()
    for task_id in index.task_ids():
        task = task_map.get(task_id)
        if task is None:
            logger.debug("Skipping snapshots of unknown task %s", task_id)
            continue
        report.changes.extend(detect_scope_changes(task, index.for_task(task_id), threshold))

    by_date: Dict[date, float] = defaultdict(float)
    for c in report.changes:
        if c.scope_change > 0:
            report.total_increase += c.scope_change
        else:
            report.total_decrease += c.magnitude
        by_date[c.date] += c.scope_change

    report.adjustment_count = len(report.changes)
    report.top_changes = sorted(report.changes, key=lambda c: c.magnitude, reverse=True)[:top_n]
    report.net_change_by_date = sorted(by_date.items(), reverse=True)[:recent_dates]
    return report


# -----------------------------
# Baseline vs current estimate comparison
# -----------------------------

ON_TRACK_PCT = 10.0
SCOPE_CREEP_PCT = 25.0


def classify_variance(variance_pct: float) -> str:
    if abs(variance_pct) <= ON_TRACK_PCT:
        return "on-track"
    if ON_TRACK_PCT < variance_pct <= SCOPE_CREEP_PCT:
        return "scope-creep"
    return "major-issues"


def compare_estimates(
    tasks: Iterable[Task],
    task_resources: Iterable[TaskResource],
    snapshots: Iterable[ProgressSnapshot] | SnapshotIndex,
) -> pd.DataFrame:
    """
    Per-task original estimate vs latest remaining estimate.

    Columns:
      TaskID, Title, Status, OriginalEstimate, CurrentRemaining,
      WorkCompleted, ProgressPct, Variance, VariancePct, Health,
      LastUpdated, HasSnapshot
    """
    index = snapshots if isinstance(snapshots, SnapshotIndex) else SnapshotIndex(snapshots)

    original: Dict[str, float] = defaultdict(float)
    for r in task_resources:
        original[r.task_id] += float(r.estimated_days)

    rows = []
    for task in tasks:
        est = original.get(task.id, 0.0)
        theoretical = est * (1 - task.progress / 100.0)
        latest = index.latest(task.id)
        current = latest.remaining_estimate if latest is not None else theoretical

        completed = max(0.0, est - current)
        progress_pct = min(100.0, completed / est * 100.0) if est > 0 else 0.0
        variance = current - theoretical
        variance_pct = variance / est * 100.0 if est > 0 else 0.0

        rows.append({
            "TaskID": task.id,
            "Title": task.title,
            "Status": task.status.value,
            "OriginalEstimate": est,
            "CurrentRemaining": current,
            "WorkCompleted": completed,
            "ProgressPct": progress_pct,
            "Variance": variance,
            "VariancePct": variance_pct,
            "Health": classify_variance(variance_pct),
            "LastUpdated": pd.Timestamp(latest.date) if latest is not None else pd.NaT,
            "HasSnapshot": latest is not None,
        })

    columns = [
        "TaskID", "Title", "Status", "OriginalEstimate", "CurrentRemaining",
        "WorkCompleted", "ProgressPct", "Variance", "VariancePct", "Health",
        "LastUpdated", "HasSnapshot",
    ]
    return pd.DataFrame(rows, columns=columns)


def summarize_estimate_comparison(df: pd.DataFrame) -> Dict[str, Any]:
    """Aggregate totals and health counts over compare_estimates output."""
    out: Dict[str, Any] = {}

    out["total_tasks"] = int(len(df))
    out["total_original_estimate"] = float(df["OriginalEstimate"].sum())
    out["total_current_remaining"] = float(df["CurrentRemaining"].sum())
    out["total_work_completed"] = float(df["WorkCompleted"].sum())
    out["total_variance"] = float(df["Variance"].sum())

    if out["total_original_estimate"] > 0:
        out["total_variance_pct"] = out["total_variance"] / out["total_original_estimate"] * 100.0
    else:
        out["total_variance_pct"] = 0.0

    out["avg_progress_pct"] = float(df["ProgressPct"].mean()) if len(df) else 0.0

    health = df["Health"].value_counts()
    out["on_track_count"] = int(health.get("on-track", 0))
    out["scope_creep_count"] = int(health.get("scope-creep", 0))
    out["major_issues_count"] = int(health.get("major-issues", 0))

    return out
