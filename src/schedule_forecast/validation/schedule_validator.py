# schedule_forecast/validation/schedule_validator.py

import logging
from collections import Counter
from typing import Any, Dict, List

import pandas as pd

from ..engine.errors import CyclicDependencyError, InvalidProjectDataError
from ..engine.graph import find_cycle
from ..engine.models import ProjectData

logger = logging.getLogger(__name__)

ISSUE_COLUMNS = ["TaskID", "Name", "Severity", "IssueType", "Description", "SuggestedFix"]


# ------------------------------------------------------------------
# 🧱 Helper: make a consistent issue dictionary
# ------------------------------------------------------------------
def make_issue(task_id, name, severity, issue_type, description, suggestion):
    return {
        "TaskID": task_id,
        "Name": name,
        "Severity": severity,
        "IssueType": issue_type,
        "Description": description,
        "SuggestedFix": suggestion,
    }


# ------------------------------------------------------------------
# 🧠 MAIN VALIDATION ENGINE
# ------------------------------------------------------------------
def validate_project(data: ProjectData) -> List[Dict[str, Any]]:
    """
    Check a loaded project for data the scheduler can't or shouldn't use.

    Severity:
      critical -> scheduling would fail or be meaningless
      error    -> record is ignored or clamped downstream
      warning  -> suspicious but usable
    """
    issues = []
    titles = {t.id: t.title for t in data.tasks}
    task_ids = set(titles)

    # ------------------------------------------------------------------
    # 1. Task ids
    # ------------------------------------------------------------------
    if not data.tasks:
        issues.append(make_issue(
            None, None, "warning", "NoTasks",
            f"Project {data.project.id} has no tasks.",
            "Add tasks before scheduling."
        ))

    dups = sorted(k for k, n in Counter(t.id for t in data.tasks).items() if n > 1)
    if dups:
        issues.append(make_issue(
            ", ".join(dups), "",
            "critical", "DuplicateTaskID",
            f"Duplicate task ids detected: {dups}",
            "Give every task a unique id."
        ))

    for task in data.tasks:
        if not 0 <= task.progress <= 100:
            issues.append(make_issue(
                task.id, task.title,
                "error", "ProgressOutOfRange",
                f"Progress is {task.progress}; expected 0-100.",
                "Progress is a percentage."
            ))

    # ------------------------------------------------------------------
    # 2. Resource allocations
    # ------------------------------------------------------------------
    for r in data.task_resources:
        name = titles.get(r.task_id)
        if r.task_id not in task_ids:
            issues.append(make_issue(
                r.task_id, None,
                "warning", "OrphanResource",
                f"Resource {r.resource_id} is allocated to unknown task {r.task_id}.",
                "Remove the allocation or add the task."
            ))
            continue

        if r.estimated_days <= 0:
            issues.append(make_issue(
                r.task_id, name,
                "error", "NonPositiveEstimate",
                f"Resource {r.resource_id} has estimatedDays={r.estimated_days}.",
                "Estimates must be positive person-days."
            ))

        if r.focus_factor is not None and not 1 <= r.focus_factor <= 100:
            issues.append(make_issue(
                r.task_id, name,
                "critical", "FocusFactorOutOfRange",
                f"Resource {r.resource_id} has focusFactor={r.focus_factor}.",
                "Focus factor is a percentage between 1 and 100; leave blank to inherit."
            ))

        if r.number_of_profiles < 1:
            issues.append(make_issue(
                r.task_id, name,
                "critical", "InvalidProfileCount",
                f"Resource {r.resource_id} has numberOfProfiles={r.number_of_profiles}.",
                "At least one profile must work on an allocation."
            ))

    for pr in data.project_resources:
        if pr.number_of_resources < 0 or not 0 <= pr.focus_factor <= 100:
            issues.append(make_issue(
                None, None,
                "error", "InvalidProjectResource",
                f"Project resource {pr.resource_id}: count={pr.number_of_resources}, focus={pr.focus_factor}.",
                "Counts must be >= 0 and focus within 0-100."
            ))

    # ------------------------------------------------------------------
    # 3. Snapshots
    # ------------------------------------------------------------------
    for s in data.snapshots:
        if s.task_id not in task_ids:
            issues.append(make_issue(
                s.task_id, None,
                "warning", "OrphanSnapshot",
                f"Snapshot on {s.date.isoformat()} refers to unknown task {s.task_id}.",
                "Remove it or fix the task id."
            ))
            continue
        if s.remaining_estimate < 0:
            issues.append(make_issue(
                s.task_id, titles[s.task_id],
                "error", "NegativeRemaining",
                f"Snapshot on {s.date.isoformat()} has remainingEstimate={s.remaining_estimate}.",
                "Remaining work can't be negative."
            ))

    # ------------------------------------------------------------------
    # 4. Dependencies
    # ------------------------------------------------------------------
    dep_map: Dict[str, List[str]] = {t.id: [] for t in data.tasks}
    for edge in data.dependencies:
        missing = [t for t in (edge.task_id, edge.depends_on_task_id) if t not in task_ids]
        if missing:
            issues.append(make_issue(
                edge.task_id, titles.get(edge.task_id),
                "warning", "DanglingDependency",
                f"Dependency {edge.task_id} -> {edge.depends_on_task_id} references unknown task(s) {missing}.",
                "The link is ignored when scheduling; remove it or add the task."
            ))
            continue

        dep_map[edge.task_id].append(edge.depends_on_task_id)

    cycle = find_cycle(dep_map)
    if cycle:
        issue = make_issue(
            cycle[0], titles.get(cycle[0]),
            "critical", "CyclicDependency",
            "Dependency cycle: " + " -> ".join(cycle),
            "Break the loop by removing one of the links."
        )
        issue["Cycle"] = cycle
        issues.append(issue)

    logger.debug("Validation of project %s found %d issue(s)", data.project.id, len(issues))
    return issues


def issues_frame(issues: List[Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(issues, columns=ISSUE_COLUMNS)


def ensure_valid(data: ProjectData) -> List[Dict[str, Any]]:
    """
    Validate and raise on critical issues; returns the non-critical ones.

    A cycle raises CyclicDependencyError (with its path) so callers get the
    same error the resolver would raise.
    """
    issues = validate_project(data)

    for issue in issues:
        if issue["Severity"] != "critical":
            logger.warning("%s: %s", issue["IssueType"], issue["Description"])

    critical = [i for i in issues if i["Severity"] == "critical"]
    if not critical:
        return issues

    if [i["IssueType"] for i in critical] == ["CyclicDependency"]:
        raise CyclicDependencyError(critical[0]["Cycle"])
    raise InvalidProjectDataError(critical)
