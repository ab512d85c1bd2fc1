import logging
from dataclasses import replace
from datetime import date

import pytest

from schedule_forecast.engine.errors import CyclicDependencyError
from schedule_forecast.engine.models import (
    ProgressSnapshot,
    ProjectData,
    TaskDependency,
    TaskStatus,
)
from schedule_forecast.engine.resolver import (
    ScheduleMode,
    ScheduleResolver,
    compute_dual_schedule,
    compute_schedule,
)


def plan_of(data, anchor=date(2024, 1, 1)):
    return ScheduleResolver.for_project(data, ScheduleMode.PLAN, anchor).resolve_all()


# ----------------------------------------------------------------
# 1. PLAN MODE
# ----------------------------------------------------------------
def test_simple_chain(chain_data):
    """
    A (4 days) starts Mon 2024-01-01 -> ends Fri 01-05
    B (2 days) depends on A -> starts Mon 01-08, ends Wed 01-10
    """
    dates = plan_of(chain_data)

    assert dates["A"].start == date(2024, 1, 1)
    assert dates["A"].end == date(2024, 1, 5)
    assert dates["B"].start == date(2024, 1, 8)
    assert dates["B"].end == date(2024, 1, 10)


def test_dependency_ordering_and_no_weekends(project, make_task, one_dev):
    """
    Diamond: B, C depend on A; D depends on B and C.
    """
    data = ProjectData(
        project=project,
        tasks=tuple(make_task(t) for t in "ABCD"),
        task_resources=(one_dev("A", 3), one_dev("B", 7), one_dev("C", 2), one_dev("D", 1.5)),
        dependencies=(
            TaskDependency("B", "A"),
            TaskDependency("C", "A"),
            TaskDependency("D", "B"),
            TaskDependency("D", "C"),
        ),
    )
    dates = plan_of(data)

    for edge in data.dependencies:
        assert dates[edge.task_id].start > dates[edge.depends_on_task_id].end
    for d in dates.values():
        assert d.start.weekday() < 5 and d.end.weekday() < 5

    # D waits for the later of B (ends Tue 01-16) and C (ends 01-09)
    assert dates["B"].end == date(2024, 1, 16)
    assert dates["D"].start == date(2024, 1, 17)


def test_weekend_project_start_moves_to_monday(project, make_task, one_dev):
    data = ProjectData(
        project=replace(project, start_date=date(2024, 1, 6)),
        tasks=(make_task("A"),),
        task_resources=(one_dev("A", 1),),
    )
    assert plan_of(data)["A"].start == date(2024, 1, 8)


def test_task_start_overrides_project_start(project, make_task):
    data = ProjectData(project=project, tasks=(make_task("A", start_date=date(2024, 2, 7)),))
    assert plan_of(data)["A"] == (date(2024, 2, 7), date(2024, 2, 8))


def test_no_start_date_falls_back_to_anchor(project, make_task):
    data = ProjectData(project=replace(project, start_date=None), tasks=(make_task("A"),))
    assert plan_of(data, anchor=date(2024, 3, 4))["A"].start == date(2024, 3, 4)


def test_plan_mode_ignores_snapshots(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", date(2024, 1, 1), remaining_estimate=20, progress=10),
    ))
    assert plan_of(data) == plan_of(chain_data)


# ----------------------------------------------------------------
# 2. ERRORS & DEGRADED INPUT
# ----------------------------------------------------------------
def test_cycle_reports_full_path(project, make_task):
    data = ProjectData(
        project=project,
        tasks=tuple(make_task(t) for t in "ABC"),
        dependencies=(
            TaskDependency("A", "B"),
            TaskDependency("B", "C"),
            TaskDependency("C", "A"),
        ),
    )
    with pytest.raises(CyclicDependencyError, match="not acyclic") as exc:
        plan_of(data)

    assert exc.value.path == ["A", "B", "C", "A"]


def test_cycle_is_a_value_error(project, make_task):
    data = ProjectData(
        project=project,
        tasks=(make_task("A"),),
        dependencies=(TaskDependency("A", "A"),),
    )
    with pytest.raises(ValueError, match="A -> A"):
        plan_of(data)


def test_dangling_dependency_is_ignored(project, make_task, one_dev, caplog):
    data = ProjectData(
        project=project,
        tasks=(make_task("A"),),
        task_resources=(one_dev("A", 2),),
        dependencies=(TaskDependency("A", "ghost"),),
    )
    with caplog.at_level(logging.WARNING):
        dates = plan_of(data)

    assert dates["A"] == (date(2024, 1, 1), date(2024, 1, 3))
    assert "ghost" in caplog.text


def test_unknown_task_raises_key_error(chain_data):
    resolver = ScheduleResolver.for_project(chain_data, anchor_date=date(2024, 1, 1))
    with pytest.raises(KeyError):
        resolver.resolve("Z")


def test_long_chain_does_not_recurse(project, make_task):
    n = 3000
    tasks = tuple(make_task(f"T{i}") for i in range(n))
    deps = tuple(TaskDependency(f"T{i}", f"T{i - 1}") for i in range(1, n))
    dates = plan_of(ProjectData(project=project, tasks=tasks, dependencies=deps))

    assert len(dates) == n
    assert dates[f"T{n - 1}"].start > dates["T0"].end


# ----------------------------------------------------------------
# 3. PROJECTED MODE
# ----------------------------------------------------------------
ANCHOR = date(2024, 1, 10)  # Wednesday


def test_in_progress_task_replans_from_anchor(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", ANCHOR, remaining_estimate=3, progress=40, status=TaskStatus.IN_PROGRESS),
    ))
    dates = compute_schedule(
        data.project, data.tasks, data.task_resources, data.dependencies, data.snapshots,
        mode=ScheduleMode.PROJECTED, anchor_date=ANCHOR,
    )

    assert dates["A"] == (date(2024, 1, 10), date(2024, 1, 15))
    # B follows the projected end of A
    assert dates["B"].start == date(2024, 1, 16)
    assert dates["B"].end == date(2024, 1, 18)


def test_unstarted_snapshot_keeps_start_but_uses_remaining(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", ANCHOR, remaining_estimate=6, progress=0),
    ))
    dates = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, ANCHOR).resolve_all()

    assert dates["A"] == (date(2024, 1, 1), date(2024, 1, 9))


def test_snapshot_not_on_anchor_date_is_ignored(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", date(2024, 1, 9), remaining_estimate=10, progress=50),
    ))
    projected = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, ANCHOR).resolve_all()

    assert projected == plan_of(chain_data)


def test_dual_schedule_passes_are_independent(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", ANCHOR, remaining_estimate=3, progress=40),
    ))
    plan, projected = compute_dual_schedule(data, anchor_date=ANCHOR)

    assert plan["B"].end == date(2024, 1, 10)
    assert projected["B"].end == date(2024, 1, 18)


def test_memo_is_per_resolver(chain_data):
    data = replace(chain_data, snapshots=(
        ProgressSnapshot("A", ANCHOR, remaining_estimate=3, progress=40),
    ))
    first = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, ANCHOR).resolve_all()
    other_day = ScheduleResolver.for_project(data, ScheduleMode.PROJECTED, date(2024, 1, 11)).resolve_all()

    assert first["A"].start == ANCHOR
    assert other_day["A"].start == date(2024, 1, 1)
