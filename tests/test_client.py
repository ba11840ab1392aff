from types import SimpleNamespace

import pytest
import requests
from jira.exceptions import JIRAError

from mytodo.config import Settings
from mytodo.errors import DecodeError, NotFoundError, RemoteServiceError, TransportError
from mytodo.tracker.client import QueryExecutor, adf_document, create_issue, get_jira_client


def test_search_sends_paging_params(fake_jira, jira_session, make_issue) -> None:
    jira_session.results["parent = E-1"] = [make_issue("A-1"), make_issue("A-2")]
    executor = QueryExecutor(fake_jira, page_size=50)

    page = executor.search("parent = E-1", start_offset=0)

    assert [i["key"] for i in page.issues] == ["A-1", "A-2"]
    assert page.start_offset == 0
    assert page.total_count == 2
    params = jira_session.calls[0]["params"]
    assert params["startAt"] == 0
    assert params["maxResults"] == 50
    assert params["fields"] == "*all"


def test_search_clamps_page_size(fake_jira, jira_session) -> None:
    executor = QueryExecutor(fake_jira)
    executor.search("parent = E-1", page_size=1000)
    assert jira_session.calls[0]["params"]["maxResults"] == 100


def test_search_rejects_empty_query(fake_jira) -> None:
    with pytest.raises(ValueError):
        QueryExecutor(fake_jira).search("   ")


def test_search_non_success_status(fake_jira, jira_session, fake_response) -> None:
    jira_session.errors["cf[10008] = E-1"] = fake_response(400, text="Field 'cf[10008]' does not exist")
    with pytest.raises(RemoteServiceError) as exc:
        QueryExecutor(fake_jira).search("cf[10008] = E-1")
    assert exc.value.status_code == 400
    assert "does not exist" in exc.value.body


def test_search_malformed_payload(fake_jira, jira_session, fake_response) -> None:
    jira_session.errors["parent = E-1"] = fake_response(200, payload={"unexpected": True})
    with pytest.raises(DecodeError):
        QueryExecutor(fake_jira).search("parent = E-1")


def test_search_invalid_json(fake_jira, jira_session, fake_response) -> None:
    jira_session.errors["parent = E-1"] = fake_response(200, payload=ValueError("Expecting value"))
    with pytest.raises(DecodeError):
        QueryExecutor(fake_jira).search("parent = E-1")


def test_search_missing_total_is_none(fake_jira, jira_session, fake_response) -> None:
    jira_session.errors["parent = E-1"] = fake_response(200, payload={"issues": [{"key": "A-1"}], "isLast": True})
    page = QueryExecutor(fake_jira).search("parent = E-1")
    assert page.total_count is None
    assert page.is_last is True
    assert page.next_page_token is None


def test_search_sends_and_reports_page_token(fake_jira, jira_session, fake_response) -> None:
    payload = {"issues": [{"key": "A-1"}], "nextPageToken": "tok-2", "isLast": False}
    jira_session.errors["parent = E-1"] = fake_response(200, payload=payload)

    page = QueryExecutor(fake_jira).search("parent = E-1", page_token="tok-1")

    assert jira_session.calls[0]["params"]["nextPageToken"] == "tok-1"
    assert page.next_page_token == "tok-2"
    assert page.is_last is False


def test_search_without_token_omits_it(fake_jira, jira_session) -> None:
    QueryExecutor(fake_jira).search("parent = E-1")
    assert "nextPageToken" not in jira_session.calls[0]["params"]


def test_transport_failure() -> None:
    def boom(url, params=None):
        raise requests.ConnectionError("connection refused")

    jira = SimpleNamespace(_options={"server": "https://jira.example.com"}, _session=SimpleNamespace(get=boom))
    with pytest.raises(TransportError):
        QueryExecutor(jira).search("parent = E-1")


def test_session_raising_jira_error_is_mapped() -> None:
    def raise_jira_error(url, params=None):
        raise JIRAError(status_code=404, text="Issue does not exist")

    jira = SimpleNamespace(_options={"server": "https://jira.example.com"}, _session=SimpleNamespace(get=raise_jira_error))
    with pytest.raises(NotFoundError):
        QueryExecutor(jira).get_issue("E-404")


def test_get_issue(fake_jira, jira_session, make_issue) -> None:
    jira_session.issues["E-1"] = make_issue("E-1", issue_type="Epic")
    record = QueryExecutor(fake_jira).get_issue("E-1")
    assert record["key"] == "E-1"
    assert jira_session.calls[0]["params"]["expand"] == "renderedFields,names"


def test_get_issue_not_found(fake_jira) -> None:
    with pytest.raises(NotFoundError) as exc:
        QueryExecutor(fake_jira).get_issue("E-404")
    assert exc.value.status_code == 404


def test_get_jira_client_requires_settings() -> None:
    with pytest.raises(ValueError):
        get_jira_client(Settings())


def test_create_issue_builds_fields() -> None:
    captured = {}

    def create(fields):
        captured.update(fields)
        return SimpleNamespace(key="PROJ-7")

    jira = SimpleNamespace(create_issue=create)
    key = create_issue(jira, "PROJ", " Write docs ", "line one\nline two", labels=["docs", " "])

    assert key == "PROJ-7"
    assert captured["project"] == {"key": "PROJ"}
    assert captured["summary"] == "Write docs"
    assert captured["issuetype"] == {"name": "Task"}
    assert captured["labels"] == ["docs"]
    assert len(captured["description"]["content"]) == 2


def test_create_issue_without_label_or_description() -> None:
    captured = {}
    jira = SimpleNamespace(create_issue=lambda fields: captured.update(fields) or SimpleNamespace(key="PROJ-8"))
    create_issue(jira, "PROJ", "Title", "", labels=[""])
    assert "labels" not in captured
    assert "description" not in captured


def test_adf_document_keeps_blank_lines() -> None:
    doc = adf_document("a\n\nb")
    assert [p["content"] for p in doc["content"]] == [
        [{"type": "text", "text": "a"}],
        [],
        [{"type": "text", "text": "b"}],
    ]
