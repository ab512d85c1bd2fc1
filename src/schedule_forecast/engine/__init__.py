from .burndown import generate_burndown
from .duration import compute_task_duration
from .errors import CyclicDependencyError, InvalidProjectDataError, ScheduleError
from .forecast import VelocityForecast, compute_velocity_forecast
from .outlook import compute_project_outlook
from .resolver import ScheduleMode, ScheduleResolver, compute_dual_schedule, compute_schedule
from .scope_variance import ScopeVarianceReport, compare_estimates, compute_scope_variance
from .snapshots import SnapshotIndex
from .workdays import add_working_days, skip_to_weekday

__all__ = [
    "CyclicDependencyError",
    "InvalidProjectDataError",
    "ScheduleError",
    "ScheduleMode",
    "ScheduleResolver",
    "ScopeVarianceReport",
    "SnapshotIndex",
    "VelocityForecast",
    "add_working_days",
    "compare_estimates",
    "compute_dual_schedule",
    "compute_project_outlook",
    "compute_schedule",
    "compute_scope_variance",
    "compute_task_duration",
    "compute_velocity_forecast",
    "generate_burndown",
    "skip_to_weekday",
]
