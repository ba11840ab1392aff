"""Jira transport: one filtered, paginated search or one issue fetch per call."""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

import requests
from jira import JIRA
from jira.exceptions import JIRAError

from mytodo.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Settings
from mytodo.errors import DecodeError, NotFoundError, RemoteServiceError, TransportError

logger = logging.getLogger(__name__)

SEARCH_PATH = "/rest/api/3/search/jql"
ISSUE_PATH = "/rest/api/3/issue/{key}"
ISSUE_EXPAND = "renderedFields,names"


class PageResult(NamedTuple):
    issues: List[Dict[str, Any]]
    start_offset: int
    total_count: Optional[int]
    next_page_token: Optional[str] = None
    is_last: Optional[bool] = None


def get_jira_client(settings: Settings) -> JIRA:
    """Authenticated python-jira client for the configured server."""
    if not settings.jira_configured:
        raise ValueError("JIRA not configured. Please set JIRA_URL, JIRA_EMAIL, and JIRA_TOKEN environment variables")
    try:
        return JIRA(
            options={"server": settings.jira_url, "api_version": "3"},
            basic_auth=(settings.jira_email, settings.jira_token),
            get_server_info=False,
        )
    except (JIRAError, requests.RequestException) as e:
        raise TransportError(f"Error connecting to Jira: {e}") from e


def adf_document(text: str) -> Dict[str, Any]:
    """Wrap plain text in the Atlassian Document Format API v3 expects, one paragraph per line."""
    paragraphs = []
    for line in text.splitlines():
        content = [{"type": "text", "text": line}] if line else []
        paragraphs.append({"type": "paragraph", "content": content})
    return {"type": "doc", "version": 1, "content": paragraphs}


def create_issue(
    jira: JIRA,
    project_key: str,
    summary: str,
    description: str = "",
    issue_type: str = "Task",
    labels: Optional[List[str]] = None,
) -> str:
    """Create an issue and return its key."""
    if not project_key:
        raise ValueError("JIRA_PROJECT_KEY is not set")
    if not summary.strip():
        raise ValueError("Summary must not be empty")
    fields: Dict[str, Any] = {
        "project": {"key": project_key},
        "summary": summary.strip(),
        "issuetype": {"name": issue_type},
    }
    if description.strip():
        fields["description"] = adf_document(description.strip())
    labels = [label.strip() for label in labels or [] if label.strip()]
    if labels:
        fields["labels"] = labels

    try:
        issue = jira.create_issue(fields=fields)
    except JIRAError as e:
        raise _remote_error(e.status_code, e.text or str(e)) from e
    except requests.RequestException as e:
        raise TransportError(f"Create issue failed: {e}") from e
    return issue.key


def _remote_error(status_code: Optional[int], body: str) -> RemoteServiceError:
    if status_code == 404:
        return NotFoundError(status_code, body)
    return RemoteServiceError(status_code, body)


class QueryExecutor:
    """Builds the request, sends it through the client's session, decodes the JSON.

    No retries happen here; callers decide whether a failure is fatal.
    """

    def __init__(self, jira: JIRA, page_size: int = DEFAULT_PAGE_SIZE):
        self.jira = jira
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.server = jira._options.get("server", "").rstrip("/")

    def _get_json(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.server}{path}"
        try:
            resp = self.jira._session.get(url, params=params)
        except JIRAError as e:
            # ResilientSession raises on >= 400 instead of handing back the response
            raise _remote_error(e.status_code, e.text or str(e)) from e
        except requests.RequestException as e:
            raise TransportError(f"GET {url} failed: {e}") from e

        if resp.status_code != 200:
            raise _remote_error(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {url}: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError(f"Expected a JSON object from {url}, got {type(data).__name__}")
        return data

    def search(
        self,
        query: str,
        start_offset: int = 0,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> PageResult:
        """Run one JQL page: GET /rest/api/3/search/jql.

        Jira Cloud pages this endpoint with nextPageToken / isLast and ignores
        startAt; older servers answer startAt / total. Both are sent and both
        are reported back so the caller can follow whichever the server uses.
        """
        if not query or not query.strip():
            raise ValueError("JQL query must not be empty")
        size = self.page_size if page_size is None else max(1, min(page_size, MAX_PAGE_SIZE))

        params: Dict[str, Any] = {
            "jql": query,
            "startAt": start_offset,
            "maxResults": size,
            "fields": "*all",
        }
        if page_token:
            params["nextPageToken"] = page_token

        data = self._get_json(SEARCH_PATH, params)
        issues = data.get("issues")
        if not isinstance(issues, list):
            raise DecodeError(f"Search response for {query!r} has no 'issues' list")

        total = data.get("total")
        if isinstance(total, bool) or not isinstance(total, int):
            total = None
        next_token = data.get("nextPageToken")
        if not isinstance(next_token, str) or not next_token:
            next_token = None
        is_last = data.get("isLast")
        if not isinstance(is_last, bool):
            is_last = None
        return PageResult(
            issues=[it for it in issues if isinstance(it, dict)],
            start_offset=start_offset,
            total_count=total,
            next_page_token=next_token,
            is_last=is_last,
        )

    def get_issue(self, key: str) -> Dict[str, Any]:
        """Single issue with every field expanded."""
        if not key:
            raise ValueError("Issue key must not be empty")
        return self._get_json(
            ISSUE_PATH.format(key=key),
            {"fields": "*all", "expand": ISSUE_EXPAND},
        )
