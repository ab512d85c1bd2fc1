# schedule_forecast/engine/resolver.py

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from ..config.settings import settings
from .duration import compute_task_duration, resolve_focus_factors
from .errors import CyclicDependencyError
from .graph import build_dependency_map
from .models import (
    Project,
    ProjectData,
    ProjectResource,
    ProgressSnapshot,
    Task,
    TaskDates,
    TaskDependency,
    TaskResource,
)
from .snapshots import SnapshotIndex
from .workdays import add_working_days, as_date, skip_to_weekday

logger = logging.getLogger(__name__)


class ScheduleMode(str, Enum):
    PLAN = "plan"            # original estimates, ignores progress
    PROJECTED = "projected"  # anchor-date remaining estimates replan in-flight tasks


class ScheduleResolver:
    """
    One date-resolution pass over a project's dependency graph.

    Each task moves unvisited -> on the stack -> resolved. The memo table
    and the stack belong to this instance only: a plan pass and a projected
    pass (or two anchor dates) must use separate resolvers, since start
    dates legitimately differ between them.
    """

    def __init__(
        self,
        project: Project,
        tasks: Iterable[Task],
        task_resources: Iterable[TaskResource] = (),
        dependencies: Iterable[TaskDependency] = (),
        snapshots: Union[SnapshotIndex, Iterable[ProgressSnapshot], None] = None,
        *,
        mode: Union[ScheduleMode, str] = ScheduleMode.PLAN,
        anchor_date: Optional[date] = None,
        project_resources: Iterable[ProjectResource] = (),
    ):
        self.project = project
        self.mode = ScheduleMode(mode)
        self.anchor_date = as_date(settings.resolve_anchor_date(anchor_date))

        self._tasks: Dict[str, Task] = {t.id: t for t in tasks}
        self._deps = build_dependency_map(self._tasks, dependencies)

        self._resources: Dict[str, List[TaskResource]] = defaultdict(list)
        for r in resolve_focus_factors(task_resources, project_resources):
            self._resources[r.task_id].append(r)

        if isinstance(snapshots, SnapshotIndex):
            self._snapshots = snapshots
        else:
            self._snapshots = SnapshotIndex(snapshots or ())

        self._memo: Dict[str, TaskDates] = {}

    @classmethod
    def for_project(
        cls,
        data: ProjectData,
        mode: Union[ScheduleMode, str] = ScheduleMode.PLAN,
        anchor_date: Optional[date] = None,
        snapshots: Optional[SnapshotIndex] = None,
    ) -> "ScheduleResolver":
        return cls(
            data.project,
            data.tasks,
            data.task_resources,
            data.dependencies,
            snapshots if snapshots is not None else data.snapshots,
            mode=mode,
            anchor_date=anchor_date,
            project_resources=data.project_resources,
        )

    # ---------------------------------------------------------
    # RESOLUTION
    # ---------------------------------------------------------

    def resolve(self, task_id: str) -> TaskDates:
        """
        Dates of one task, resolving its dependencies first.

        Walks the graph depth-first with an explicit stack; reaching a task
        that is already on the stack is a cycle and fails immediately with
        the full path.
        """
        if task_id in self._memo:
            return self._memo[task_id]
        if task_id not in self._tasks:
            raise KeyError(f"Unknown task: {task_id}")

        path = [task_id]
        on_stack = {task_id}
        pending = [iter(self._deps[task_id])]

        while pending:
            for dep_id in pending[-1]:
                if dep_id in self._memo:
                    continue
                if dep_id in on_stack:
                    raise CyclicDependencyError(path[path.index(dep_id):] + [dep_id])
                path.append(dep_id)
                on_stack.add(dep_id)
                pending.append(iter(self._deps[dep_id]))
                break
            else:
                pending.pop()
                current = path.pop()
                on_stack.discard(current)
                self._memo[current] = self._place(current)

        return self._memo[task_id]

    def resolve_all(self) -> Dict[str, TaskDates]:
        """{task_id: TaskDates} for every task, in input order."""
        for task_id in self._tasks:
            self.resolve(task_id)
        return {task_id: self._memo[task_id] for task_id in self._tasks}

    # ---------------------------------------------------------
    # PLACEMENT OF A SINGLE TASK (dependencies already resolved)
    # ---------------------------------------------------------

    def _earliest_start(self, task: Task) -> date:
        deps = self._deps[task.id]
        if deps:
            latest_dep_end = max(self._memo[d].end for d in deps)
            return skip_to_weekday(add_working_days(latest_dep_end, 1))

        anchor = task.start_date or self.project.start_date or self.anchor_date
        return skip_to_weekday(anchor)

    def _place(self, task_id: str) -> TaskDates:
        task = self._tasks[task_id]
        start = self._earliest_start(task)

        remaining = None
        if self.mode is ScheduleMode.PROJECTED:
            snapshot = self._snapshots.on(task_id, self.anchor_date)
            if snapshot is not None:
                remaining = snapshot.remaining_estimate
                if snapshot.progress > 0:
                    # in-flight work is replanned from "now", not its original start
                    start = skip_to_weekday(self.anchor_date)

        duration = compute_task_duration(self._resources.get(task_id, []), remaining)
        end = add_working_days(start, duration)

        logger.debug(
            "%s pass: task %s %s -> %s (%d working days)",
            self.mode.value, task_id, start, end, duration,
        )
        return TaskDates(start, end)


# ---------------------------------------------------------
# EXPORTED ENTRY POINTS
# ---------------------------------------------------------

def compute_schedule(
    project: Project,
    tasks: Iterable[Task],
    task_resources: Iterable[TaskResource] = (),
    dependencies: Iterable[TaskDependency] = (),
    snapshots: Union[SnapshotIndex, Iterable[ProgressSnapshot], None] = None,
    mode: Union[ScheduleMode, str] = ScheduleMode.PLAN,
    anchor_date: Optional[date] = None,
    project_resources: Iterable[ProjectResource] = (),
) -> Dict[str, TaskDates]:
    """
    {task_id: TaskDates(start, end)} for one mode, with a fresh memo table.

    Raises CyclicDependencyError if resolution runs into a cycle.
    """
    resolver = ScheduleResolver(
        project,
        tasks,
        task_resources,
        dependencies,
        snapshots,
        mode=mode,
        anchor_date=anchor_date,
        project_resources=project_resources,
    )
    return resolver.resolve_all()


def compute_dual_schedule(
    data: ProjectData,
    anchor_date: Optional[date] = None,
) -> Tuple[Dict[str, TaskDates], Dict[str, TaskDates]]:
    """
    Plan and projected schedules of a project, as two independent passes:

      plan       -> original estimates
      projected  -> anchor-date snapshots replan in-progress tasks
    """
    anchor = settings.resolve_anchor_date(anchor_date)
    index = SnapshotIndex(data.snapshots)

    plan = ScheduleResolver.for_project(data, ScheduleMode.PLAN, anchor, index).resolve_all()
    projected = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, anchor, index).resolve_all()
    return plan, projected
