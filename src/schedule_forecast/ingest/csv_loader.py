# schedule_forecast/ingest/csv_loader.py

import logging
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd

from ..engine.models import (
    Milestone,
    Project,
    ProjectData,
    ProjectResource,
    ProgressSnapshot,
    Task,
    TaskDependency,
    TaskResource,
    TaskStatus,
)

logger = logging.getLogger(__name__)

PROJECT_FILE = "project.csv"
TASKS_FILE = "tasks.csv"
TASK_RESOURCES_FILE = "task_resources.csv"
DEPENDENCIES_FILE = "task_dependencies.csv"
SNAPSHOTS_FILE = "progress_snapshots.csv"
MILESTONES_FILE = "milestones.csv"
PROJECT_RESOURCES_FILE = "project_resources.csv"


# ---------------------------------------------------------
# FIELD CLEANUP & PREPARATION
# ---------------------------------------------------------

def normalize_frame(df_input: pd.DataFrame, required: Sequence[str], label: str) -> pd.DataFrame:
    """
    Strip header whitespace and blank string cells, and check required
    columns are present.
    """
    df = df_input.copy()
    df.columns = [str(c).strip() for c in df.columns]

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{label}: missing required columns: {missing}")

    for col in df.columns:
        if pd.api.types.is_object_dtype(df[col]) or pd.api.types.is_string_dtype(df[col]):
            cleaned = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
            df[col] = cleaned.where(cleaned != "", None)
    return df


def _numeric(df: pd.DataFrame, col: str, label: str, default: Optional[float] = None) -> pd.Series:
    """
    Coerce a column to numbers. Blank cells take `default`; text that isn't
    a number is an error (it would otherwise turn silently into NaN).
    """
    if col not in df.columns:
        return pd.Series(default, index=df.index, dtype=float)

    raw = df[col]
    values = pd.to_numeric(raw, errors="coerce")
    bad = values.isna() & raw.notna()
    if bad.any():
        examples = raw[bad].head().tolist()
        raise ValueError(f"{label}: non-numeric values in '{col}': {examples}")
    if default is not None:
        values = values.fillna(default)
    return values


def _dates(df: pd.DataFrame, col: str, label: str) -> List[Optional[date]]:
    if col not in df.columns:
        return [None] * len(df)

    parsed = pd.to_datetime(df[col], errors="coerce")
    bad = parsed.isna() & df[col].notna()
    if bad.any():
        examples = df[col][bad].head().tolist()
        raise ValueError(f"{label}: unparseable dates in '{col}': {examples}")
    return [None if pd.isna(v) else v.date() for v in parsed]


def _text(df: pd.DataFrame, col: str, default: Optional[str] = None) -> List[Optional[str]]:
    if col not in df.columns:
        return [default] * len(df)
    return [default if pd.isna(v) else str(v) for v in df[col]]


def _read(directory: Path, filename: str, required: bool = True) -> Optional[pd.DataFrame]:
    path = directory / filename
    if not path.exists():
        if required:
            raise ValueError(f"Missing required file: {path}")
        logger.debug("Optional file %s not found", path)
        return None
    return pd.read_csv(path, dtype=str, keep_default_na=True)


# ---------------------------------------------------------
# FRAME -> RECORDS
# ---------------------------------------------------------

def project_from_frame(df_input: pd.DataFrame) -> Project:
    df = normalize_frame(df_input, ["id", "title"], PROJECT_FILE)
    if df.empty:
        raise ValueError(f"{PROJECT_FILE}: no project row")
    if len(df) > 1:
        logger.warning("%s has %d rows; using the first", PROJECT_FILE, len(df))

    starts = _dates(df, "startDate", PROJECT_FILE)
    return Project(
        id=_text(df, "id")[0],
        title=_text(df, "title")[0],
        status=_text(df, "status", "Active")[0],
        start_date=starts[0],
    )


def tasks_from_frame(df_input: pd.DataFrame, project_id: str) -> List[Task]:
    df = normalize_frame(df_input, ["id", "title"], TASKS_FILE)

    progress = _numeric(df, "progress", TASKS_FILE, default=0.0).clip(lower=0.0, upper=100.0)
    starts = _dates(df, "startDate", TASKS_FILE)
    ends = _dates(df, "endDate", TASKS_FILE)

    tasks = []
    for i, (task_id, title, status, owner, color) in enumerate(zip(
        _text(df, "id"),
        _text(df, "title"),
        _text(df, "status", TaskStatus.TODO.value),
        _text(df, "projectId", project_id),
        _text(df, "color", "#6366f1"),
    )):
        tasks.append(Task(
            id=task_id,
            project_id=owner,
            title=title,
            status=TaskStatus.parse(status),
            progress=float(progress.iloc[i]),
            start_date=starts[i],
            end_date=ends[i],
            color=color,
        ))
    return tasks


def task_resources_from_frame(df_input: pd.DataFrame) -> List[TaskResource]:
    df = normalize_frame(df_input, ["taskId", "estimatedDays"], TASK_RESOURCES_FILE)

    estimated = _numeric(df, "estimatedDays", TASK_RESOURCES_FILE)
    if estimated.isna().any():
        raise ValueError(f"{TASK_RESOURCES_FILE}: blank estimatedDays")
    focus = _numeric(df, "focusFactor", TASK_RESOURCES_FILE)
    profiles = _numeric(df, "numberOfProfiles", TASK_RESOURCES_FILE, default=1)

    resources = []
    for i, (task_id, resource_id) in enumerate(zip(
        _text(df, "taskId"),
        _text(df, "resourceId", "generic"),
    )):
        f = focus.iloc[i]
        resources.append(TaskResource(
            task_id=task_id,
            resource_id=resource_id,
            estimated_days=float(estimated.iloc[i]),
            focus_factor=None if pd.isna(f) else float(f),
            number_of_profiles=int(profiles.iloc[i]),
        ))
    return resources


def dependencies_from_frame(df_input: pd.DataFrame) -> List[TaskDependency]:
    df = normalize_frame(df_input, ["taskId", "dependsOnTaskId"], DEPENDENCIES_FILE)
    df = df.dropna(subset=["taskId", "dependsOnTaskId"])
    return [
        TaskDependency(task_id=a, depends_on_task_id=b)
        for a, b in zip(_text(df, "taskId"), _text(df, "dependsOnTaskId"))
    ]


def snapshots_from_frame(df_input: pd.DataFrame) -> List[ProgressSnapshot]:
    df = normalize_frame(df_input, ["taskId", "date", "remainingEstimate"], SNAPSHOTS_FILE)

    dates = _dates(df, "date", SNAPSHOTS_FILE)
    if any(d is None for d in dates):
        raise ValueError(f"{SNAPSHOTS_FILE}: every snapshot needs a date")
    remaining = _numeric(df, "remainingEstimate", SNAPSHOTS_FILE, default=0.0)
    progress = _numeric(df, "progress", SNAPSHOTS_FILE, default=0.0).clip(lower=0.0, upper=100.0)

    snapshots = []
    for i, (task_id, status, project_id, notes) in enumerate(zip(
        _text(df, "taskId"),
        _text(df, "status", TaskStatus.TODO.value),
        _text(df, "projectId"),
        _text(df, "notes"),
    )):
        snapshots.append(ProgressSnapshot(
            task_id=task_id,
            date=dates[i],
            remaining_estimate=float(remaining.iloc[i]),
            progress=float(progress.iloc[i]),
            status=TaskStatus.parse(status),
            project_id=project_id,
            notes=notes,
        ))
    return snapshots


def milestones_from_frame(df_input: pd.DataFrame, project_id: str) -> List[Milestone]:
    df = normalize_frame(df_input, ["date", "title"], MILESTONES_FILE)
    dates = _dates(df, "date", MILESTONES_FILE)

    milestones = []
    for i, (milestone_id, owner, title, icon, color) in enumerate(zip(
        _text(df, "id"),
        _text(df, "projectId", project_id),
        _text(df, "title"),
        _text(df, "icon", "flag"),
        _text(df, "color", "#9333ea"),
    )):
        if dates[i] is None:
            logger.warning("Skipping milestone '%s' without a date", title)
            continue
        milestones.append(Milestone(
            id=milestone_id or f"milestone-{i + 1}",
            project_id=owner,
            date=dates[i],
            title=title,
            icon=icon,
            color=color,
        ))
    return milestones


def project_resources_from_frame(df_input: pd.DataFrame, project_id: str) -> List[ProjectResource]:
    df = normalize_frame(df_input, ["resourceId", "numberOfResources"], PROJECT_RESOURCES_FILE)
    counts = _numeric(df, "numberOfResources", PROJECT_RESOURCES_FILE, default=0)
    focus = _numeric(df, "focusFactor", PROJECT_RESOURCES_FILE, default=100.0)

    return [
        ProjectResource(
            project_id=owner,
            resource_id=resource_id,
            number_of_resources=int(counts.iloc[i]),
            focus_factor=float(focus.iloc[i]),
        )
        for i, (resource_id, owner) in enumerate(zip(
            _text(df, "resourceId"),
            _text(df, "projectId", project_id),
        ))
    ]


# ---------------------------------------------------------
# EXPORTED ENTRY POINT
# ---------------------------------------------------------

def load_project_data(directory: Union[str, Path]) -> ProjectData:
    """
    Read a project export directory into a ProjectData bundle.

    Required: project.csv, tasks.csv. Everything else is optional and
    defaults to empty. Records of other projects are dropped.
    """
    root = Path(directory)

    project = project_from_frame(_read(root, PROJECT_FILE))
    tasks = [t for t in tasks_from_frame(_read(root, TASKS_FILE), project.id) if t.project_id == project.id]

    frame = _read(root, TASK_RESOURCES_FILE, required=False)
    task_resources = task_resources_from_frame(frame) if frame is not None else []

    frame = _read(root, DEPENDENCIES_FILE, required=False)
    dependencies = dependencies_from_frame(frame) if frame is not None else []

    frame = _read(root, SNAPSHOTS_FILE, required=False)
    snapshots = snapshots_from_frame(frame) if frame is not None else []
    snapshots = [s for s in snapshots if s.project_id in (None, project.id)]

    frame = _read(root, MILESTONES_FILE, required=False)
    milestones = milestones_from_frame(frame, project.id) if frame is not None else []
    milestones = [m for m in milestones if m.project_id == project.id]

    frame = _read(root, PROJECT_RESOURCES_FILE, required=False)
    project_resources = project_resources_from_frame(frame, project.id) if frame is not None else []
    project_resources = [r for r in project_resources if r.project_id == project.id]

    logger.info(
        "Loaded project %s: %d tasks, %d resources, %d dependencies, %d snapshots",
        project.id, len(tasks), len(task_resources), len(dependencies), len(snapshots),
    )

    return ProjectData(
        project=project,
        tasks=tuple(tasks),
        task_resources=tuple(task_resources),
        dependencies=tuple(dependencies),
        snapshots=tuple(snapshots),
        milestones=tuple(milestones),
        project_resources=tuple(project_resources),
    )
