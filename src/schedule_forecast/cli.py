"""
CLI interface for the scheduling & forecast engine.

Reads a project CSV export directory and prints schedules, scope variance,
burndown and velocity forecasts as tables or JSON.
"""

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from .engine.burndown import burndown_records
from .engine.errors import ScheduleError
from .engine.outlook import compute_project_outlook
from .engine.scope_variance import summarize_estimate_comparison
from .ingest.csv_loader import load_project_data
from .utils.logger import configure_logging
from .validation.schedule_validator import ensure_valid, issues_frame, validate_project

logger = logging.getLogger(__name__)

COMMANDS = ["validate", "schedule", "scope", "burndown", "forecast", "report"]


def frame_records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as JSON-safe dicts: dates as YYYY-MM-DD, NaN/NaT as None."""
    out = df.copy()
    for col in out.columns:
        if pd.api.types.is_datetime64_any_dtype(out[col]):
            out[col] = out[col].dt.strftime("%Y-%m-%d")
    out = out.astype(object).where(out.notna(), None)
    return out.to_dict("records")


def _print_frame(title: str, df: pd.DataFrame) -> None:
    print(f"\n=== {title} ===")
    if df.empty:
        print("(none)")
    else:
        print(df.to_string(index=False))


# ---------------------------------------------------------
# Commands
# ---------------------------------------------------------

def run_validate(data_dir: Path, as_json: bool) -> int:
    data = load_project_data(data_dir)
    issues = validate_project(data)
    critical = sum(1 for i in issues if i["Severity"] == "critical")

    if as_json:
        print(json.dumps(frame_records(issues_frame(issues)), indent=2))
    else:
        _print_frame(f"Validation: {data.project.title}", issues_frame(issues))
        print(f"\n{len(issues)} issue(s), {critical} critical")

    return 1 if critical else 0


def run_report(data_dir: Path, command: str, anchor: Optional[date], as_json: bool) -> int:
    data = load_project_data(data_dir)
    ensure_valid(data)
    outlook = compute_project_outlook(data, anchor_date=anchor)

    sections: Dict[str, Any] = {}
    if command in ("schedule", "report"):
        sections["schedule"] = outlook["schedule"]
    if command in ("scope", "report"):
        sections["scope"] = outlook["scope"]
        sections["estimates"] = outlook["estimates"]
    if command in ("burndown", "report"):
        sections["burndown"] = outlook["burndown"]
    if command in ("forecast", "report"):
        sections["forecast"] = outlook["forecast"]
    if command == "report":
        sections["milestones"] = outlook["milestones"]

    if as_json:
        print(json.dumps(_json_payload(outlook, sections), indent=2))
    else:
        _print_report(outlook, sections)
    return 0


def _json_payload(outlook: Dict[str, Any], sections: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"anchorDate": outlook["anchor_date"].isoformat()}
    for key, value in sections.items():
        if key == "scope":
            payload[key] = value.to_dict()
        elif key == "estimates":
            payload[key] = {
                "tasks": frame_records(value),
                "summary": summarize_estimate_comparison(value),
            }
        elif key == "burndown":
            payload[key] = burndown_records(value)
        elif key == "forecast":
            payload[key] = value.to_dict()
        elif key == "milestones":
            payload[key] = [
                {"id": m.id, "title": m.title, "date": m.date.isoformat(), "icon": m.icon}
                for m in value
            ]
        else:
            payload[key] = frame_records(value)
    return payload


def _print_report(outlook: Dict[str, Any], sections: Dict[str, Any]) -> None:
    print(f"Anchor date: {outlook['anchor_date'].isoformat()}")

    if "schedule" in sections:
        _print_frame("Schedule (plan vs projected)", sections["schedule"])

    if "scope" in sections:
        scope = sections["scope"]
        print("\n=== Scope variance ===")
        print(f"Added:       {scope.total_increase:.2f} person-days")
        print(f"Removed:     {scope.total_decrease:.2f} person-days")
        print(f"Net:         {scope.net_change:+.2f} person-days")
        print(f"Adjustments: {scope.adjustment_count}")
        if scope.top_changes:
            print("\nTop changes:")
            for c in scope.top_changes:
                print(f"  {c.date.isoformat()}  {c.task_title}: {c.scope_change:+.2f} ({c.change_pct:+.1f}%)")

        summary = summarize_estimate_comparison(sections["estimates"])
        _print_frame("Estimate comparison", sections["estimates"])
        print(
            f"\nOn track: {summary['on_track_count']}  "
            f"Scope creep: {summary['scope_creep_count']}  "
            f"Major issues: {summary['major_issues_count']}"
        )

    if "burndown" in sections:
        _print_frame("Burndown", sections["burndown"])

    if "forecast" in sections:
        f = sections["forecast"].to_dict()
        print("\n=== Velocity forecast ===")
        print(f"Remaining work:   {f['remainingWork']:.2f} person-days")
        print(f"Planned velocity: {f['plannedVelocity']:.2f} / day")
        print(f"Average velocity: {f['averageVelocity']:.2f} / day ({f['trend']})")
        print(f"Optimistic:       {f['completionDateOptimistic'] or 'unavailable'}")
        print(f"Realistic:        {f['completionDateRealistic'] or 'unavailable'}")
        print(f"Confidence:       {f['confidenceLevel']} ({f['daysAnalyzed']} dates analysed)")
        for note in f["notes"]:
            print(f"  note: {note}")

    if "milestones" in sections:
        print("\n=== Milestones ===")
        if not sections["milestones"]:
            print("(none)")
        for m in sections["milestones"]:
            print(f"  {m.date.isoformat()}  {m.title}")


# ---------------------------------------------------------
# Entry point
# ---------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedule_forecast",
        description="Plan/projected schedules and progress forecasts from a project CSV export",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check an export before scheduling
  python -m schedule_forecast validate data/acme

  # Plan vs projected dates as of a given day
  python -m schedule_forecast schedule data/acme --anchor 2024-03-01

  # Everything, as JSON
  python -m schedule_forecast report data/acme --json
""",
    )
    parser.add_argument("command", choices=COMMANDS, help="What to compute")
    parser.add_argument("data_dir", type=Path, help="Directory holding project.csv, tasks.csv, ...")
    parser.add_argument(
        "--anchor",
        type=date.fromisoformat,
        help="Anchor date (YYYY-MM-DD) for projected schedules and forecasts (default: ANCHOR_DATE or today)",
    )
    parser.add_argument("--json", action="store_true", dest="as_json", help="Emit JSON instead of tables")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging("schedule_forecast", "DEBUG" if args.verbose else None)

    try:
        if args.command == "validate":
            return run_validate(args.data_dir, args.as_json)
        return run_report(args.data_dir, args.command, args.anchor, args.as_json)
    except ScheduleError as e:
        logger.error("%s", e)
        return 1
    except ValueError as e:
        logger.error("Could not load %s: %s", args.data_dir, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
