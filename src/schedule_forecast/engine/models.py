# schedule_forecast/engine/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Tuple


class TaskStatus(str, Enum):
    TODO = "Todo"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, value) -> "TaskStatus":
        """
        Lenient status parsing for exported data:
          "done", "Completed"      -> Done
          "InProgress", "active"   -> In Progress
          anything else            -> Todo
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower().replace("_", " ").replace("-", " ")
        if text in ("done", "complete", "completed"):
            return cls.DONE
        if "progress" in text or text == "active":
            return cls.IN_PROGRESS
        return cls.TODO


@dataclass(frozen=True)
class Project:
    id: str
    title: str
    status: str = "Active"
    start_date: Optional[date] = None


@dataclass(frozen=True)
class Task:
    """A unit of work. Scheduling derives dates for it, never mutates it."""

    id: str
    project_id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    progress: float = 0.0
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    color: str = "#6366f1"


@dataclass(frozen=True)
class TaskResource:
    """
    Effort of one resource type on one task.

    focus_factor is a percentage (1-100). None means "use the project
    allocation for this resource", see duration.resolve_focus_factors.
    """

    task_id: str
    resource_id: str
    estimated_days: float
    focus_factor: Optional[float] = 100.0
    number_of_profiles: int = 1


@dataclass(frozen=True)
class ProjectResource:
    """Committed project-level allocation of a resource type."""

    project_id: str
    resource_id: str
    number_of_resources: int
    focus_factor: float = 100.0


@dataclass(frozen=True)
class TaskDependency:
    """task_id cannot start until depends_on_task_id has finished."""

    task_id: str
    depends_on_task_id: str


@dataclass(frozen=True)
class ProgressSnapshot:
    task_id: str
    date: date
    remaining_estimate: float
    progress: float = 0.0
    status: TaskStatus = TaskStatus.TODO
    project_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Milestone:
    id: str
    project_id: str
    date: date
    title: str
    icon: str = "flag"
    color: str = "#9333ea"


class TaskDates(NamedTuple):
    start: date
    end: date


@dataclass(frozen=True)
class ProjectData:
    """Everything the engine needs about one project, as validated records."""

    project: Project
    tasks: Tuple[Task, ...] = ()
    task_resources: Tuple[TaskResource, ...] = ()
    dependencies: Tuple[TaskDependency, ...] = ()
    snapshots: Tuple[ProgressSnapshot, ...] = ()
    milestones: Tuple[Milestone, ...] = ()
    project_resources: Tuple[ProjectResource, ...] = ()

    def resources_for(self, task_id: str) -> List[TaskResource]:
        return [r for r in self.task_resources if r.task_id == task_id]

    def baseline_estimates(self) -> Dict[str, float]:
        """Original estimate per task: sum of estimated_days over its resources."""
        totals = {t.id: 0.0 for t in self.tasks}
        for r in self.task_resources:
            if r.task_id in totals:
                totals[r.task_id] += float(r.estimated_days)
        return totals
