# schedule_forecast/engine/snapshots.py

from bisect import bisect_right
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional

from .models import ProgressSnapshot
from .workdays import as_date


class SnapshotIndex:
    """
    Per-task date -> snapshot lookup, built once per computation.

    Snapshots are append-only; when a task has several snapshots on the
    same date the one added last wins.
    """

    def __init__(self, snapshots: Iterable[ProgressSnapshot] = ()):
        by_task: Dict[str, Dict[date, ProgressSnapshot]] = defaultdict(dict)
        for s in snapshots:
            by_task[s.task_id][as_date(s.date)] = s

        self._dates: Dict[str, List[date]] = {}
        self._rows: Dict[str, List[ProgressSnapshot]] = {}
        for task_id, per_date in by_task.items():
            ordered = sorted(per_date)
            self._dates[task_id] = ordered
            self._rows[task_id] = [per_date[d] for d in ordered]

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._rows.values())

    def task_ids(self) -> List[str]:
        return list(self._rows)

    def for_task(self, task_id: str) -> List[ProgressSnapshot]:
        """Date-ordered snapshots of one task (one per date)."""
        return list(self._rows.get(task_id, []))

    def on(self, task_id: str, day) -> Optional[ProgressSnapshot]:
        """Snapshot dated exactly `day`, if any."""
        dates = self._dates.get(task_id)
        if not dates:
            return None
        day = as_date(day)
        i = bisect_right(dates, day)
        if i and dates[i - 1] == day:
            return self._rows[task_id][i - 1]
        return None

    def latest_at_or_before(self, task_id: str, day) -> Optional[ProgressSnapshot]:
        """Most recent snapshot dated on or before `day`."""
        dates = self._dates.get(task_id)
        if not dates:
            return None
        i = bisect_right(dates, as_date(day))
        return self._rows[task_id][i - 1] if i else None

    def latest(self, task_id: str) -> Optional[ProgressSnapshot]:
        rows = self._rows.get(task_id)
        return rows[-1] if rows else None

    def distinct_dates(self, task_ids: Optional[Iterable[str]] = None) -> List[date]:
        """Sorted distinct snapshot dates, optionally limited to some tasks."""
        keys = self._dates.keys() if task_ids is None else [t for t in task_ids if t in self._dates]
        found = set()
        for k in keys:
            found.update(self._dates[k])
        return sorted(found)
