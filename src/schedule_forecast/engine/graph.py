# schedule_forecast/engine/graph.py

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .errors import CyclicDependencyError
from .models import TaskDependency

logger = logging.getLogger(__name__)


def build_dependency_map(
    task_ids: Iterable[str],
    dependencies: Iterable[TaskDependency],
) -> Dict[str, List[str]]:
    """
    {task_id: [depends_on_task_id, ...]} restricted to known tasks.

    Edges pointing at unknown tasks are dangling: they are dropped and
    logged so they can be surfaced upstream, scheduling carries on.
    """
    ordered = list(task_ids)
    known = set(ordered)
    deps: Dict[str, List[str]] = defaultdict(list)
    for edge in dependencies:
        if edge.task_id not in known:
            logger.warning(
                "Ignoring dependency of unknown task %s on %s",
                edge.task_id, edge.depends_on_task_id,
            )
            continue
        if edge.depends_on_task_id not in known:
            logger.warning(
                "Dangling dependency: task %s depends on missing task %s; treated as no dependency",
                edge.task_id, edge.depends_on_task_id,
            )
            continue
        if edge.depends_on_task_id not in deps[edge.task_id]:
            deps[edge.task_id].append(edge.depends_on_task_id)
    return {t: deps.get(t, []) for t in ordered}


def find_cycle(dep_map: Dict[str, List[str]]) -> Optional[List[str]]:
    """
    Depth-first search for a dependency cycle.

    Returns the cycle as a path that starts and ends on the same task
    (["A", "B", "C", "A"]), or None for a DAG. Iterative, so long chains
    don't hit the recursion limit.
    """
    done = set()
    for root in sorted(dep_map):
        if root in done:
            continue
        path = [root]
        on_path = {root}
        stack = [iter(dep_map.get(root, []))]
        while stack:
            for nxt in stack[-1]:
                if nxt in done:
                    continue
                if nxt in on_path:
                    return path[path.index(nxt):] + [nxt]
                path.append(nxt)
                on_path.add(nxt)
                stack.append(iter(dep_map.get(nxt, [])))
                break
            else:
                stack.pop()
                finished = path.pop()
                on_path.discard(finished)
                done.add(finished)
    return None


def assert_acyclic(dep_map: Dict[str, List[str]]) -> None:
    """Raise CyclicDependencyError naming the cycle, before any date is computed."""
    cycle = find_cycle(dep_map)
    if cycle:
        raise CyclicDependencyError(cycle)
