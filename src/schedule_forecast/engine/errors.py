# schedule_forecast/engine/errors.py

from typing import Any, Dict, List, Sequence


class ScheduleError(ValueError):
    """Base class for errors that make a project's schedule impossible to compute."""


class CyclicDependencyError(ScheduleError):
    """
    A dependency cycle was reached while resolving dates.

    `path` starts and ends on the same task, e.g. ["A", "B", "C", "A"].
    """

    def __init__(self, path: Sequence[str]):
        self.path = [str(p) for p in path]
        super().__init__(
            "Dependency graph is not acyclic; cycle: " + " -> ".join(self.path)
        )


class InvalidProjectDataError(ScheduleError):
    """Raised when ingestion validation finds critical issues."""

    def __init__(self, issues: List[Dict[str, Any]]):
        self.issues = issues
        kinds = sorted({str(i.get("IssueType")) for i in issues})
        super().__init__(
            f"{len(issues)} critical validation issue(s): {', '.join(kinds)}"
        )
