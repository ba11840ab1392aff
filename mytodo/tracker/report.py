"""Weighted rollup and the textual encodings of a tracker report."""

import csv
import io
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import yaml

from mytodo.tracker.rows import TrackerRow

FORMAT_ALIASES = {
    "markdown": "markdown",
    "md": "markdown",
    "table": "markdown",
    "csv": "csv",
    "yaml": "yaml",
    "yml": "yaml",
    "json": "json",
}

COLUMNS = [
    "Ticket",
    "Description",
    "Owner",
    "Expected Date",
    "% Completion",
    "% Weight",
    "Estimate (days)",
    "Status",
    "Dependencies",
]


@dataclass
class RollupSummary:
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    not_started: int = 0
    total_estimate: float = 0.0
    overall_completion: float = 0.0


def apply_weights(rows: Sequence[TrackerRow]) -> RollupSummary:
    """Fill in percent_weight on every row and compute the rollup.

    Rows without an estimate get zero weight, so they do not move the
    overall completion even when they are done.
    """
    summary = RollupSummary(total=len(rows))
    summary.total_estimate = sum(row.estimate_days for row in rows)

    for row in rows:
        if summary.total_estimate == 0:
            row.percent_weight = 0.0
        else:
            row.percent_weight = 100.0 * row.estimate_days / summary.total_estimate

        if row.percent_completion >= 100:
            summary.completed += 1
        elif row.percent_completion > 0:
            summary.in_progress += 1
        else:
            summary.not_started += 1

    summary.overall_completion = sum(row.percent_completion * row.percent_weight / 100.0 for row in rows)
    return summary


def _summary_lines(summary: RollupSummary) -> List[List[str]]:
    return [
        ["Total tickets", str(summary.total)],
        ["Completed", str(summary.completed)],
        ["In Progress", str(summary.in_progress)],
        ["Not Started", str(summary.not_started)],
        ["Total Estimated Days", f"{summary.total_estimate:.1f}"],
        ["Overall Completion", f"{summary.overall_completion:.2f}%"],
    ]


def _cells(row: TrackerRow) -> List[str]:
    return [
        row.ticket_label,
        row.description,
        row.owner,
        row.expected_date,
        f"{row.percent_completion:.2f}",
        f"{row.percent_weight:.2f}",
        f"{row.estimate_days:.1f}",
        row.status,
        row.dependency_note,
    ]


def _table_cell(value: str) -> str:
    return " ".join(value.split()).replace("|", "\\|")


def format_markdown(
    rows: Sequence[TrackerRow], epic_key: str, epic_name: str, summary: RollupSummary, generated_at: datetime
) -> str:
    lines = [
        f"# Project Tracker: {epic_key} - {epic_name}",
        "",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "| " + " | ".join(COLUMNS) + " |",
        "|" + "|".join("-" * (len(c) + 2) for c in COLUMNS) + "|",
    ]
    for row in rows:
        cells = _cells(row)
        cells[4] += "%"
        cells[5] += "%"
        lines.append("| " + " | ".join(_table_cell(c) for c in cells) + " |")

    lines += ["", "## Summary"]
    lines += [f"- {name}: {value}" for name, value in _summary_lines(summary)]
    return "\n".join(lines) + "\n"


def format_csv(rows: Sequence[TrackerRow], summary: RollupSummary) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(COLUMNS)
    for row in rows:
        writer.writerow(_cells(row))
    buf.write("\n")
    writer.writerow(["Metric", "Value"])
    writer.writerows(_summary_lines(summary))
    return buf.getvalue()


def _payload(
    rows: Sequence[TrackerRow], epic_key: str, epic_name: str, summary: RollupSummary, generated_at: datetime
) -> Dict[str, Any]:
    return {
        "schema_version": 1,
        "epic": epic_key,
        "epic_name": epic_name,
        "generated_at": generated_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "summary": {
            "total": summary.total,
            "completed": summary.completed,
            "in_progress": summary.in_progress,
            "not_started": summary.not_started,
            "total_estimate": round(summary.total_estimate, 2),
            "overall_completion": round(summary.overall_completion, 2),
        },
        "rows": [asdict(row) for row in rows],
    }


def render(
    rows: Sequence[TrackerRow],
    epic_key: str,
    epic_name: str,
    fmt: str = "markdown",
    generated_at: Optional[datetime] = None,
    summary: Optional[RollupSummary] = None,
) -> str:
    """Encode weighted rows. ``summary`` is computed here unless ``apply_weights`` already ran."""
    encoding = FORMAT_ALIASES.get((fmt or "").lower())
    if encoding is None:
        raise ValueError(f"Unknown output format {fmt!r}; choose from {', '.join(sorted(FORMAT_ALIASES))}")

    if summary is None:
        summary = apply_weights(rows)
    if encoding == "csv":
        return format_csv(rows, summary)

    if generated_at is None:
        generated_at = datetime.now(timezone.utc)
    if encoding == "markdown":
        return format_markdown(rows, epic_key, epic_name, summary, generated_at)

    payload = _payload(rows, epic_key, epic_name, summary, generated_at)
    if encoding == "json":
        return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False, allow_unicode=True)
