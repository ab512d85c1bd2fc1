# schedule_forecast/engine/outlook.py

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Mapping, Optional

import pandas as pd

from ..config.settings import settings
from .burndown import generate_burndown
from .forecast import compute_velocity_forecast
from .graph import assert_acyclic, build_dependency_map
from .models import ProjectData, TaskDates
from .resolver import ScheduleMode, ScheduleResolver
from .scope_variance import compare_estimates, compute_scope_variance
from .snapshots import SnapshotIndex
from .workdays import working_days_between

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = [
    "TaskID", "Title", "Status", "Progress",
    "PlanStart", "PlanEnd", "PlanDuration",
    "ProjectedStart", "ProjectedEnd", "ProjectedDuration",
    "SlipDays",
]


# ---------------------------------------------------------
# COMPILE RESULTS
# ---------------------------------------------------------

def compile_schedule(
    data: ProjectData,
    plan: Mapping[str, TaskDates],
    projected: Mapping[str, TaskDates],
) -> pd.DataFrame:
    """
    One row per task with both schedules side by side.

    Durations and SlipDays are in working days; SlipDays > 0 means the
    projected end is later than planned.
    """
    rows = []
    for task in data.tasks:
        p = plan[task.id]
        q = projected[task.id]
        rows.append({
            "TaskID": task.id,
            "Title": task.title,
            "Status": task.status.value,
            "Progress": float(task.progress),
            "PlanStart": p.start,
            "PlanEnd": p.end,
            "PlanDuration": working_days_between(p.start, p.end),
            "ProjectedStart": q.start,
            "ProjectedEnd": q.end,
            "ProjectedDuration": working_days_between(q.start, q.end),
            "SlipDays": working_days_between(p.end, q.end),
        })

    df = pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)
    for col in ["PlanStart", "PlanEnd", "ProjectedStart", "ProjectedEnd"]:
        df[col] = pd.to_datetime(df[col])
    return df


# ---------------------------------------------------------
# EXPORTED ENTRY POINT
# ---------------------------------------------------------

def compute_project_outlook(
    data: ProjectData,
    anchor_date: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Full pipeline:
      1. Reject cyclic dependency graphs before computing any date
      2. Plan schedule (original estimates)
      3. Projected schedule (anchor-date snapshots)
      4. Merge both into one frame
      5. Scope variance, estimate comparison, burndown, velocity forecast

    Returns a dict keyed:
      schedule, plan, projected, scope, estimates, burndown, forecast,
      milestones, anchor_date
    """
    anchor = settings.resolve_anchor_date(anchor_date)

    # 1. Cycle check
    assert_acyclic(build_dependency_map([t.id for t in data.tasks], data.dependencies))

    index = SnapshotIndex(data.snapshots)

    # 2-3. Two passes, two memo tables
    plan = ScheduleResolver.for_project(data, ScheduleMode.PLAN, anchor, index).resolve_all()
    projected = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, anchor, index).resolve_all()

    # 4. Merge
    schedule = compile_schedule(data, plan, projected)

    # 5. Analytics
    baselines = data.baseline_estimates()
    scope = compute_scope_variance(data.tasks, index)
    estimates = compare_estimates(data.tasks, data.task_resources, index)
    burndown = generate_burndown(data.tasks, plan, baselines, index)
    forecast = compute_velocity_forecast(
        data.tasks,
        baselines,
        index,
        project_resources=data.project_resources,
        anchor_date=anchor,
    )

    logger.info(
        "Outlook for project %s: %d tasks, %d scope adjustments, realistic finish %s",
        data.project.id,
        len(data.tasks),
        scope.adjustment_count,
        forecast.completion_date_realistic or "unavailable",
    )

    return {
        "schedule": schedule,
        "plan": plan,
        "projected": projected,
        "scope": scope,
        "estimates": estimates,
        "burndown": burndown,
        "forecast": forecast,
        "milestones": sorted(data.milestones, key=lambda m: m.date),
        "anchor_date": anchor,
    }
