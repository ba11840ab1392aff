"""Entry points the CLI calls: the epic tracker report and the project summary."""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from mytodo.config import DEFAULT_ESTIMATE_FIELDS
from mytodo.tracker.client import QueryExecutor
from mytodo.tracker.discovery import DiscoveryResult, LinkageDiscoverer, iter_search
from mytodo.tracker.normalize import NormalizedIssue, normalize
from mytodo.tracker.report import RollupSummary, apply_weights, render
from mytodo.tracker.rows import TrackerRow, completion_for_status, extract_rows

logger = logging.getLogger(__name__)


@dataclass
class TrackerReport:
    text: str
    rows: List[TrackerRow]
    summary: RollupSummary
    discovery: DiscoveryResult


@dataclass
class EpicSummary:
    key: str
    name: str
    stories: int = 0
    done: int = 0
    pending: int = 0
    estimate: float = 0.0


def issue_type_breakdown(issues: Iterable[NormalizedIssue]) -> Dict[str, int]:
    counts = Counter(issue.issue_type_name or "Unknown" for issue in issues)
    return dict(sorted(counts.items()))


def generate_tracker(discoverer: LinkageDiscoverer, epic_key: str, fmt: str = "markdown") -> TrackerReport:
    """Discover, extract rows, weight and render. Writing or publishing is left to the caller."""
    discovery = discoverer.discover(epic_key)
    epic_name = discovery.epic.summary if discovery.epic else ""

    rows = extract_rows(discovery.issues.values())
    summary = apply_weights(rows)
    text = render(rows, epic_key, epic_name, fmt, summary=summary)
    return TrackerReport(text=text, rows=rows, summary=summary, discovery=discovery)


def summarize_project(
    executor: QueryExecutor,
    project_key: str,
    estimate_fields: Sequence[str] = DEFAULT_ESTIMATE_FIELDS,
) -> List[EpicSummary]:
    """Per epic of the project: stories linked through "Epic Link", done vs pending, estimate total."""
    if not project_key:
        raise ValueError("JIRA_PROJECT_KEY is not set")

    results = []
    for record in iter_search(executor, f"project = {project_key} AND type = Epic"):
        epic = normalize(record, estimate_fields=estimate_fields)
        if not epic.key:
            continue
        entry = EpicSummary(key=epic.key, name=epic.summary)
        for story_record in iter_search(executor, f'project = {project_key} AND "Epic Link" = {epic.key}'):
            story = normalize(story_record, estimate_fields=estimate_fields)
            entry.stories += 1
            if completion_for_status(story.status_name) >= 100:
                entry.done += 1
            else:
                entry.pending += 1
            entry.estimate += story.estimate
        logger.info("Epic %s: %d stories", epic.key, entry.stories)
        results.append(entry)
    return results
