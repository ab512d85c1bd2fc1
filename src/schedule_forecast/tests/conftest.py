"""Pytest configuration and fixtures."""
import csv
from datetime import date
from pathlib import Path
from typing import Any, Dict, List

import pytest

from schedule_forecast.engine.models import (
    Project,
    ProjectData,
    ProjectResource,
    Task,
    TaskDependency,
    TaskResource,
)

MONDAY = date(2024, 1, 1)


@pytest.fixture
def project() -> Project:
    """Project starting Monday 2024-01-01."""
    return Project(id="P1", title="Website relaunch", start_date=MONDAY)


@pytest.fixture
def make_task():
    """Factory for tasks of project P1."""
    def _make(task_id: str, **kwargs) -> Task:
        kwargs.setdefault("title", f"Task {task_id}")
        return Task(id=task_id, project_id="P1", **kwargs)
    return _make


@pytest.fixture
def one_dev():
    """Factory for a single-profile, full-focus allocation."""
    def _make(task_id: str, days: float, **kwargs) -> TaskResource:
        return TaskResource(task_id=task_id, resource_id="dev", estimated_days=days, **kwargs)
    return _make


@pytest.fixture
def chain_data(project, make_task, one_dev) -> ProjectData:
    """
    A (4 days) <- B (2 days): B depends on A.
    Plan: A 2024-01-01..01-05, B 2024-01-08..01-10.
    """
    return ProjectData(
        project=project,
        tasks=(make_task("A"), make_task("B")),
        task_resources=(one_dev("A", 4), one_dev("B", 2)),
        dependencies=(TaskDependency("B", "A"),),
        project_resources=(ProjectResource("P1", "dev", 1),),
    )


@pytest.fixture
def write_export(tmp_path):
    """
    Write a project CSV export into tmp_path.

    Usage: write_export({"tasks.csv": [{"id": "A", ...}], ...}) -> directory
    """
    def _write(files: Dict[str, List[Dict[str, Any]]]) -> Path:
        for name, rows in files.items():
            fieldnames: List[str] = []
            for row in rows:
                fieldnames.extend(k for k in row if k not in fieldnames)
            with open(tmp_path / name, "w", newline="", encoding="utf-8") as f:
                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)
        return tmp_path
    return _write


@pytest.fixture
def sample_export(write_export) -> Path:
    """Two-task export with one snapshot history and a milestone."""
    return write_export({
        "project.csv": [{"id": "P1", "title": "Website relaunch", "status": "Active", "startDate": "2024-01-01"}],
        "tasks.csv": [
            {"id": "A", "projectId": "P1", "title": "Design", "status": "In Progress", "progress": "40"},
            {"id": "B", "projectId": "P1", "title": "Build", "status": "Todo", "progress": "0"},
        ],
        "task_resources.csv": [
            {"taskId": "A", "resourceId": "dev", "estimatedDays": "4", "focusFactor": "100", "numberOfProfiles": "1"},
            {"taskId": "B", "resourceId": "dev", "estimatedDays": "2", "focusFactor": "", "numberOfProfiles": "1"},
        ],
        "task_dependencies.csv": [{"taskId": "B", "dependsOnTaskId": "A"}],
        "progress_snapshots.csv": [
            {"taskId": "A", "date": "2024-01-02", "remainingEstimate": "4", "progress": "0", "status": "Todo"},
            {"taskId": "A", "date": "2024-01-03", "remainingEstimate": "3", "progress": "40", "status": "In Progress"},
        ],
        "milestones.csv": [{"id": "M1", "projectId": "P1", "date": "2024-01-12", "title": "Launch"}],
        "project_resources.csv": [
            {"projectId": "P1", "resourceId": "dev", "numberOfResources": "1", "focusFactor": "100"},
        ],
    })
