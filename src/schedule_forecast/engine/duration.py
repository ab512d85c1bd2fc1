# schedule_forecast/engine/duration.py

import math
from dataclasses import replace
from typing import Iterable, List, Optional

from .models import ProjectResource, TaskResource

DEFAULT_FOCUS_FACTOR = 100.0


# ---------------------------------------------------------
# FOCUS FACTOR FALLBACK
# ---------------------------------------------------------

def resolve_focus_factors(
    task_resources: Iterable[TaskResource],
    project_resources: Iterable[ProjectResource] = (),
) -> List[TaskResource]:
    """
    Fill in task resources that carry no focus factor of their own.

    Priority: task-specific focus factor, then the project allocation of
    the same resource type, then 100%.
    """
    project_focus = {pr.resource_id: pr.focus_factor for pr in project_resources}
    resolved = []
    for r in task_resources:
        if r.focus_factor:
            resolved.append(r)
            continue
        focus = project_focus.get(r.resource_id) or DEFAULT_FOCUS_FACTOR
        resolved.append(replace(r, focus_factor=focus))
    return resolved


# ---------------------------------------------------------
# DURATION FORMULAS
# ---------------------------------------------------------

def daily_capacity(resource: TaskResource) -> float:
    """Person-days per working day this resource row contributes."""
    focus = resource.focus_factor if resource.focus_factor else DEFAULT_FOCUS_FACTOR
    return resource.number_of_profiles * (focus / 100.0)


def stream_duration(resource: TaskResource) -> float:
    """Working days one resource stream needs: estimated_days / capacity."""
    return resource.estimated_days / daily_capacity(resource)


def aggregate_capacity(resources: Iterable[TaskResource]) -> float:
    return sum(daily_capacity(r) for r in resources)


def _ceil_days(value: float) -> int:
    # 9 decimals strips float noise such as 6.000000000001 before rounding up
    return max(1, math.ceil(round(value, 9)))


def compute_task_duration(
    resources: Iterable[TaskResource],
    remaining_estimate: Optional[float] = None,
) -> int:
    """
    Whole working days a task takes.

    Plan mode (remaining_estimate is None):
        streams of different resource types run in parallel, so the task
        lasts as long as its slowest stream:
            ceil(max(estimated_days / (profiles * focus/100)))
        no resources -> 1 day

    Projected mode (remaining_estimate given):
        remaining work spread across the task's whole daily capacity:
            ceil(R / sum(profiles * focus/100)), or ceil(R) without capacity

    Never returns less than 1.
    """
    rows = list(resources)

    if remaining_estimate is not None:
        capacity = aggregate_capacity(rows)
        if capacity > 0:
            return _ceil_days(remaining_estimate / capacity)
        return _ceil_days(remaining_estimate)

    if not rows:
        return 1
    return _ceil_days(max(stream_duration(r) for r in rows))
