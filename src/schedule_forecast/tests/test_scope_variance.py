from datetime import date

import pandas as pd
import pytest

from schedule_forecast.engine.models import ProgressSnapshot, TaskResource
from schedule_forecast.engine.scope_variance import (
    classify_variance,
    compare_estimates,
    compute_scope_variance,
    detect_scope_changes,
    summarize_estimate_comparison,
)

D1, D2, D3 = date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4)


def snap(task_id, day, remaining, progress=0.0):
    return ProgressSnapshot(task_id, day, remaining_estimate=remaining, progress=progress)


# ----------------------------------------------------------------
# 1. PER-TASK DETECTION
# ----------------------------------------------------------------
def test_progress_without_shrink_is_scope_increase(make_task):
    changes = detect_scope_changes(make_task("A"), [snap("A", D1, 10, 0), snap("A", D2, 10, 50)])

    assert len(changes) == 1
    c = changes[0]
    assert c.theoretical_remaining == pytest.approx(5.0)
    assert c.scope_change == pytest.approx(5.0)
    assert c.change_pct == pytest.approx(50.0)
    assert c.direction == "increase"
    assert c.date == D2


def test_faster_shrink_is_scope_decrease(make_task):
    changes = detect_scope_changes(make_task("A"), [snap("A", D1, 10, 0), snap("A", D2, 2, 50)])

    assert changes[0].scope_change == pytest.approx(-3.0)
    assert changes[0].direction == "decrease"
    assert changes[0].magnitude == pytest.approx(3.0)


def test_small_changes_are_noise(make_task):
    history = [snap("A", D1, 10, 0), snap("A", D2, 5.4, 50)]
    assert detect_scope_changes(make_task("A"), history) == []
    assert len(detect_scope_changes(make_task("A"), history, threshold=0.1)) == 1


def test_snapshots_are_compared_in_date_order(make_task):
    history = [snap("A", D2, 10, 50), snap("A", D1, 10, 0)]
    assert detect_scope_changes(make_task("A"), history)[0].date == D2


def test_zero_previous_remaining_has_zero_pct(make_task):
    changes = detect_scope_changes(make_task("A"), [snap("A", D1, 0, 100), snap("A", D2, 3, 100)])
    assert changes[0].scope_change == pytest.approx(3.0)
    assert changes[0].change_pct == 0.0


# ----------------------------------------------------------------
# 2. PROJECT REPORT
# ----------------------------------------------------------------
def test_report_aggregates_and_ranks(make_task):
    tasks = [make_task("A"), make_task("B")]
    snapshots = [
        snap("A", D1, 10, 0), snap("A", D2, 10, 50),      # +5 on D2
        snap("B", D1, 8, 0), snap("B", D2, 8, 0),         # nothing
        snap("B", D3, 2, 25),                             # 8*0.75=6 -> -4 on D3
        snap("ghost", D1, 1, 0), snap("ghost", D2, 9, 0),  # unknown task
    ]
    report = compute_scope_variance(tasks, snapshots)

    assert report.adjustment_count == 2
    assert report.total_increase == pytest.approx(5.0)
    assert report.total_decrease == pytest.approx(4.0)
    assert report.net_change == pytest.approx(1.0)
    assert [c.task_id for c in report.top_changes] == ["A", "B"]
    assert report.net_change_by_date == [(D3, pytest.approx(-4.0)), (D2, pytest.approx(5.0))]


def test_report_limits(make_task):
    tasks = [make_task(t) for t in "ABC"]
    snapshots = []
    for i, t in enumerate("ABC"):
        snapshots += [snap(t, D1, 10, 0), snap(t, date(2024, 1, 10 + i), 10 + i + 1, 0)]
    report = compute_scope_variance(tasks, snapshots, top_n=2, recent_dates=1)

    assert [c.task_id for c in report.top_changes] == ["C", "B"]
    assert report.net_change_by_date == [(date(2024, 1, 12), pytest.approx(3.0))]
    assert len(report.changes) == 3


def test_report_serialises(make_task):
    report = compute_scope_variance([make_task("A")], [snap("A", D1, 10, 0), snap("A", D2, 10, 50)])

    out = report.to_dict()
    assert out["top_changes"][0]["date"] == "2024-01-03"
    assert out["top_changes"][0]["direction"] == "increase"
    assert out["net_change"] == pytest.approx(5.0)

    df = report.to_frame()
    assert list(df["TaskID"]) == ["A"]
    assert df["Date"].iloc[0] == pd.Timestamp(D2)


# ----------------------------------------------------------------
# 3. BASELINE VS CURRENT ESTIMATE
# ----------------------------------------------------------------
@pytest.mark.parametrize("pct, health", [
    (0, "on-track"),
    (-10, "on-track"),
    (20, "scope-creep"),
    (25, "scope-creep"),
    (40, "major-issues"),
    (-30, "major-issues"),
])
def test_classify_variance(pct, health):
    assert classify_variance(pct) == health


def test_compare_estimates(make_task):
    tasks = [
        make_task("A"),
        make_task("B", progress=50),
        make_task("C"),
    ]
    resources = [TaskResource(t, "dev", 10) for t in "ABC"]
    snapshots = [snap("B", D1, 9, 10), snap("B", D2, 7, 50), snap("C", D1, 14, 0)]

    df = compare_estimates(tasks, resources, snapshots).set_index("TaskID")

    assert df.loc["A", "CurrentRemaining"] == 10
    assert df.loc["A", "Health"] == "on-track"
    assert not df.loc["A", "HasSnapshot"]

    assert df.loc["B", "Variance"] == pytest.approx(2.0)
    assert df.loc["B", "VariancePct"] == pytest.approx(20.0)
    assert df.loc["B", "WorkCompleted"] == pytest.approx(3.0)
    assert df.loc["B", "Health"] == "scope-creep"
    assert df.loc["B", "LastUpdated"] == pd.Timestamp(D2)

    assert df.loc["C", "Health"] == "major-issues"
    assert df.loc["C", "WorkCompleted"] == 0.0

    summary = summarize_estimate_comparison(df.reset_index())
    assert summary["total_tasks"] == 3
    assert summary["total_original_estimate"] == pytest.approx(30.0)
    assert summary["on_track_count"] == 1
    assert summary["scope_creep_count"] == 1
    assert summary["major_issues_count"] == 1
