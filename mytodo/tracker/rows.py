"""NormalizedIssue -> TrackerRow."""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from mytodo.tracker.normalize import NormalizedIssue

# First match wins, matched case-insensitively as substrings of the status name
COMPLETION_BY_STATUS: Tuple[Tuple[Tuple[str, ...], float], ...] = (
    (("done", "closed", "complete"), 100.0),
    (("review", "qa"), 90.0),
    (("progress",), 50.0),
    (("started",), 10.0),
)

_KEY_RE = re.compile(r"^([A-Za-z][A-Za-z0-9_]*)-(\d+)")


@dataclass
class TrackerRow:
    ticket_label: str
    description: str = ""
    owner: str = ""
    status: str = ""
    percent_completion: float = 0.0
    estimate_days: float = 0.0
    percent_weight: float = 0.0
    expected_date: str = ""
    dependency_note: str = ""


def completion_for_status(status_name: Optional[str]) -> float:
    status = (status_name or "").lower()
    for needles, pct in COMPLETION_BY_STATUS:
        if any(n in status for n in needles):
            return pct
    return 0.0


def dependency_note(text: Optional[str]) -> str:
    """First line mentioning a dependency, stripped."""
    for line in (text or "").splitlines():
        if "depend" in line.lower():
            return line.strip()
    return ""


def extract_row(issue: NormalizedIssue) -> Optional[TrackerRow]:
    if not issue.key:
        return None
    issue_type = issue.issue_type_name.lower() or "unknown"
    return TrackerRow(
        ticket_label=f"{issue.key} ({issue_type})",
        description=issue.summary,
        owner=issue.assignee_name or "",
        status=issue.status_name,
        percent_completion=completion_for_status(issue.status_name),
        estimate_days=issue.estimate,
        expected_date=issue.expected_date,
        dependency_note=dependency_note(issue.description),
    )


def _row_sort_key(row: TrackerRow):
    m = _KEY_RE.match(row.ticket_label)
    if m:
        return (m.group(1).upper(), int(m.group(2)), row.ticket_label)
    return (row.ticket_label.upper(), -1, row.ticket_label)


def sort_rows(rows: Iterable[TrackerRow]) -> List[TrackerRow]:
    """Order by project, then issue number (ABC-2 before ABC-10)."""
    return sorted(rows, key=_row_sort_key)


def extract_rows(issues: Iterable[NormalizedIssue]) -> List[TrackerRow]:
    rows = []
    for issue in issues:
        row = extract_row(issue)
        if row is not None:
            rows.append(row)
    return sort_rows(rows)
