"""Find every issue belonging to an epic.

Three redundant strategies run in a fixed order and merge into one set keyed
by issue key:

1. ``parent = EPIC`` (team-managed and modern company-managed projects)
2. ``<epic link field> = EPIC`` for each legacy field expression
3. the epic's own subtask list, fetched issue by issue

A strategy that fails is logged and skipped. Discovery only fails when the
epic itself cannot be fetched and nothing else was found.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Set

from mytodo.config import DEFAULT_EPIC_LINK_FIELDS, DEFAULT_ESTIMATE_FIELDS, MAX_PAGE_SIZE
from mytodo.errors import MytodoError, NotFoundError
from mytodo.tracker.client import QueryExecutor
from mytodo.tracker.normalize import NormalizedIssue, normalize

logger = logging.getLogger(__name__)

IssueSet = Dict[str, NormalizedIssue]


@dataclass
class StrategyOutcome:
    name: str
    query: str
    found: int = 0
    added: int = 0
    error: Optional[str] = None


@dataclass
class DiscoveryResult:
    issues: IssueSet
    epic: Optional[NormalizedIssue] = None
    outcomes: List[StrategyOutcome] = field(default_factory=list)


def iter_search(executor: QueryExecutor, query: str, page_size: Optional[int] = None) -> Iterator[dict]:
    """Yield every raw issue matching ``query``, page by page.

    Follows ``nextPageToken`` until ``isLast`` or until no token comes back.
    Without a token, offsets advance by the page length and stop once
    ``start + len(page) >= total``, or on a short page when the total is
    missing. An empty page, or one with no unseen keys, always ends the loop.
    """
    size = max(1, min(page_size or executor.page_size, MAX_PAGE_SIZE))
    start = 0
    token: Optional[str] = None
    seen: Set[str] = set()
    while True:
        page = executor.search(query, start, size, page_token=token)

        fresh = 0
        for record in page.issues:
            key = record.get("key")
            if key:
                if key in seen:
                    continue
                seen.add(key)
            fresh += 1
            yield record

        if not page.issues or not fresh or page.is_last:
            break
        if page.next_page_token:
            token = page.next_page_token
            continue
        if token is not None:
            break

        if page.total_count is None:
            if len(page.issues) < size:
                break
        elif start + len(page.issues) >= page.total_count:
            break
        start += len(page.issues)


class LinkageDiscoverer:
    def __init__(
        self,
        executor: QueryExecutor,
        epic_link_fields: Sequence[str] = DEFAULT_EPIC_LINK_FIELDS,
        estimate_fields: Sequence[str] = DEFAULT_ESTIMATE_FIELDS,
        page_size: Optional[int] = None,
    ):
        self.executor = executor
        self.epic_link_fields = tuple(epic_link_fields)
        self.estimate_fields = tuple(estimate_fields)
        self.page_size = page_size

    def _normalize(self, record: dict) -> NormalizedIssue:
        return normalize(record, estimate_fields=self.estimate_fields)

    def _merge_query(self, issues: IssueSet, outcome: StrategyOutcome, overwrite: bool) -> None:
        for record in iter_search(self.executor, outcome.query, self.page_size):
            issue = self._normalize(record)
            if not issue.key:
                continue
            outcome.found += 1
            if issue.key not in issues:
                outcome.added += 1
            elif not overwrite:
                continue
            issues[issue.key] = issue

    def _run_query_strategy(self, issues: IssueSet, name: str, query: str, overwrite: bool) -> StrategyOutcome:
        outcome = StrategyOutcome(name=name, query=query)
        logger.info("Searching with JQL: %s", query)
        try:
            self._merge_query(issues, outcome, overwrite)
        except MytodoError as e:
            # pages merged before the failure are kept
            outcome.error = str(e)
            logger.warning("JQL search %r failed, skipping: %s", query, e)
        logger.info("Found %d issues (%d new) with %r", outcome.found, outcome.added, query)
        return outcome

    def _run_subtask_strategy(self, issues: IssueSet, epic: NormalizedIssue) -> StrategyOutcome:
        outcome = StrategyOutcome(name="subtasks", query=f"subtasks of {epic.key}")
        for key in epic.subtask_keys:
            outcome.found += 1
            if key in issues:
                continue
            try:
                subtask = self._normalize(self.executor.get_issue(key))
            except MytodoError as e:
                outcome.error = str(e)
                logger.warning("Could not fetch subtask %s of %s: %s", key, epic.key, e)
                continue
            issues[subtask.key or key] = subtask
            outcome.added += 1
        logger.info("Found %d subtasks (%d new) on %s", outcome.found, outcome.added, epic.key)
        return outcome

    def discover(self, epic_key: str) -> DiscoveryResult:
        epic_key = (epic_key or "").strip()
        if not epic_key:
            raise ValueError("Epic key must not be empty")

        issues: IssueSet = {}
        outcomes: List[StrategyOutcome] = []

        outcomes.append(self._run_query_strategy(issues, "parent", f"parent = {epic_key}", overwrite=True))

        for link_field in self.epic_link_fields:
            outcomes.append(
                self._run_query_strategy(issues, "epic-link", f"{link_field} = {epic_key}", overwrite=False)
            )

        epic: Optional[NormalizedIssue] = None
        epic_error: Optional[MytodoError] = None
        try:
            epic = self._normalize(self.executor.get_issue(epic_key))
        except MytodoError as e:
            epic_error = e
            outcomes.append(StrategyOutcome(name="subtasks", query=f"subtasks of {epic_key}", error=str(e)))
            logger.warning("Could not fetch epic %s: %s", epic_key, e)
        else:
            outcomes.append(self._run_subtask_strategy(issues, epic))

        if epic_error is not None and not issues:
            raise NotFoundError(
                getattr(epic_error, "status_code", None),
                getattr(epic_error, "body", ""),
                message=f"Epic {epic_key} could not be fetched and no related issues were found: {epic_error}",
            ) from epic_error

        logger.info("Total unique issues found: %d", len(issues))
        return DiscoveryResult(issues=issues, epic=epic, outcomes=outcomes)
