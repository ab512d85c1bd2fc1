from datetime import date

import numpy as np
import pandas as pd
import pytest

from schedule_forecast.engine.burndown import BURNDOWN_COLUMNS, burndown_records, generate_burndown
from schedule_forecast.engine.models import ProgressSnapshot, TaskDates

PLAN = {
    "A": TaskDates(date(2024, 1, 1), date(2024, 1, 5)),
    "B": TaskDates(date(2024, 1, 8), date(2024, 1, 10)),
}
BASELINES = {"A": 4.0, "B": 2.0}


@pytest.fixture
def tasks(make_task):
    return [make_task("A"), make_task("B")]


def test_series_covers_plan_span(tasks):
    df = generate_burndown(tasks, PLAN, BASELINES)

    assert list(df.columns) == BURNDOWN_COLUMNS
    assert len(df) == 10
    assert df["Date"].iloc[0] == pd.Timestamp("2024-01-01")
    assert df["Date"].iloc[-1] == pd.Timestamp("2024-01-10")


def test_ideal_line_falls_linearly_to_zero(tasks):
    df = generate_burndown(tasks, PLAN, BASELINES)

    assert df["IdealPct"].iloc[0] == pytest.approx(100.0)
    assert df["IdealPct"].iloc[-1] == pytest.approx(0.0)
    assert (np.diff(df["IdealPct"].to_numpy()) <= 0).all()


def test_actual_line_without_snapshots(tasks):
    df = generate_burndown(tasks, PLAN, BASELINES).set_index("Date")

    # nothing done yet
    assert df.loc[pd.Timestamp("2024-01-01"), "RemainingPct"] == pytest.approx(100.0)
    # A planned done, B not started
    assert df.loc[pd.Timestamp("2024-01-05"), "ActualRemaining"] == pytest.approx(2.0)
    assert df.loc[pd.Timestamp("2024-01-05"), "RemainingPct"] == pytest.approx(100 / 3)
    assert df.loc[pd.Timestamp("2024-01-10"), "RemainingPct"] == pytest.approx(0.0)


def test_actual_line_uses_latest_snapshot(tasks):
    snapshots = [ProgressSnapshot("A", date(2024, 1, 3), remaining_estimate=1, progress=75)]
    df = generate_burndown(tasks, PLAN, BASELINES, snapshots).set_index("Date")

    assert df.loc[pd.Timestamp("2024-01-02"), "ActualRemaining"] == pytest.approx(6.0)
    assert df.loc[pd.Timestamp("2024-01-03"), "ActualRemaining"] == pytest.approx(3.0)
    assert df.loc[pd.Timestamp("2024-01-04"), "RemainingPct"] == pytest.approx(50.0)


def test_remaining_may_rise_with_scope(tasks):
    snapshots = [ProgressSnapshot("A", date(2024, 1, 2), remaining_estimate=7, progress=10)]
    df = generate_burndown(tasks, PLAN, BASELINES, snapshots)

    assert df["RemainingPct"].max() == pytest.approx(150.0)


def test_zero_baseline_gives_empty_series(tasks):
    df = generate_burndown(tasks, PLAN, {"A": 0.0, "B": 0.0})

    assert df.empty
    assert list(df.columns) == BURNDOWN_COLUMNS


def test_empty_range_gives_empty_series(tasks):
    df = generate_burndown(tasks, PLAN, BASELINES, start=date(2024, 1, 5), end=date(2024, 1, 5))
    assert df.empty


def test_records_for_json(tasks):
    records = burndown_records(generate_burndown(tasks, PLAN, BASELINES))

    assert records[0] == {"date": "2024-01-01", "idealPct": 100.0, "remainingPct": 100.0}
    assert set(records[-1]) == {"date", "idealPct", "remainingPct"}
