from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest

from mytodo.tracker.client import ISSUE_PATH, SEARCH_PATH

SERVER = "https://jira.example.com"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeJiraSession:
    """Answers /search/jql and /issue/{key} like Jira does, from in-memory data.

    With ``token_paging`` set it behaves like Jira Cloud: startAt is ignored,
    no total is returned and pages chain through nextPageToken / isLast.
    """

    def __init__(self, token_paging: bool = False) -> None:
        self.token_paging = token_paging
        self.results: Dict[str, List[Dict[str, Any]]] = {}
        self.errors: Dict[str, FakeResponse] = {}
        self.issues: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Dict[str, Any]] = []

    def get(self, url: str, params: Optional[Dict[str, Any]] = None) -> FakeResponse:
        params = params or {}
        self.calls.append({"url": url, "params": dict(params)})

        if url == f"{SERVER}{SEARCH_PATH}":
            jql = params["jql"]
            if jql in self.errors:
                return self.errors[jql]
            matches = self.results.get(jql, [])
            if self.token_paging:
                start, size = int(params.get("nextPageToken") or 0), params["maxResults"]
                end = start + size
                payload: Dict[str, Any] = {"issues": matches[start:end], "isLast": end >= len(matches)}
                if end < len(matches):
                    payload["nextPageToken"] = str(end)
                return FakeResponse(payload=payload)
            start, size = params["startAt"], params["maxResults"]
            return FakeResponse(payload={
                "startAt": start,
                "maxResults": size,
                "total": len(matches),
                "issues": matches[start:start + size],
            })

        key = url.rsplit("/", 1)[-1]
        if url == f"{SERVER}{ISSUE_PATH.format(key=key)}":
            if key in self.errors:
                return self.errors[key]
            if key not in self.issues:
                return FakeResponse(404, text='{"errorMessages":["Issue does not exist"]}')
            return FakeResponse(payload=self.issues[key])

        return FakeResponse(404, text="unknown endpoint")

    def search_calls(self, jql: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["params"].get("jql") == jql]


def build_issue(
    key: str,
    status: str = "To Do",
    issue_type: str = "Story",
    summary: str = "",
    estimate: Optional[float] = None,
    description: Any = None,
    assignee: Optional[str] = None,
    subtasks: tuple = (),
    **extra_fields: Any,
) -> Dict[str, Any]:
    fields: Dict[str, Any] = {
        "summary": summary or f"Summary of {key}",
        "status": {"name": status},
        "issuetype": {"name": issue_type},
        "assignee": {"displayName": assignee} if assignee else None,
        "description": description,
        "subtasks": [{"key": k} for k in subtasks],
    }
    if estimate is not None:
        fields["customfield_10016"] = estimate
    fields.update(extra_fields)
    return {"key": key, "fields": fields}


@pytest.fixture()
def make_issue():
    return build_issue


@pytest.fixture()
def jira_session() -> FakeJiraSession:
    return FakeJiraSession()


@pytest.fixture()
def fake_jira(jira_session: FakeJiraSession) -> SimpleNamespace:
    return SimpleNamespace(_options={"server": SERVER}, _session=jira_session)


@pytest.fixture()
def fake_response():
    return FakeResponse
