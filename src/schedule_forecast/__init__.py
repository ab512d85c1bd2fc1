"""Scheduling & progress-forecast engine."""

from .engine import *  # noqa: F401,F403
from .engine import __all__ as _engine_all
from .engine.models import (
    Milestone,
    Project,
    ProjectData,
    ProjectResource,
    ProgressSnapshot,
    Task,
    TaskDates,
    TaskDependency,
    TaskResource,
    TaskStatus,
)

__version__ = "0.1.0"

__all__ = list(_engine_all) + [
    "Milestone",
    "Project",
    "ProjectData",
    "ProjectResource",
    "ProgressSnapshot",
    "Task",
    "TaskDates",
    "TaskDependency",
    "TaskResource",
    "TaskStatus",
]
