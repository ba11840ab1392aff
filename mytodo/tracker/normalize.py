"""Raw Jira issue dicts -> NormalizedIssue.

Custom field ids differ between Jira deployments, so every field is probed
defensively: a missing or oddly shaped value empties that one field and
never aborts the record.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from mytodo.config import DEFAULT_ESTIMATE_FIELDS

# Expected QA date, a plain string on the deployments that have it
DEFAULT_EXPECTED_DATE_FIELD = "customfield_10020"

# ADF nodes that end a line of text
_ADF_BLOCK_TYPES = {"paragraph", "heading", "listItem", "codeBlock", "blockquote", "tableRow", "rule"}


@dataclass(frozen=True)
class NormalizedIssue:
    key: str
    summary: str = ""
    assignee_name: Optional[str] = None
    status_name: str = ""
    issue_type_name: str = ""
    estimate: float = 0.0
    subtask_keys: Tuple[str, ...] = ()
    linked_keys: Tuple[str, ...] = ()
    description: str = ""
    expected_date: str = ""


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _nested_str(fields: Dict[str, Any], name: str, attr: str) -> str:
    value = _as_dict(fields.get(name)).get(attr)
    return value if isinstance(value, str) else ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def first_numeric(fields: Dict[str, Any], candidates: Iterable[str]) -> Optional[float]:
    """Value of the first candidate field holding a number, else None."""
    for name in candidates:
        value = fields.get(name)
        if _is_number(value):
            return float(value)
    return None


def _adf_lines(node: Any, out: List[str], current: List[str]) -> None:
    if isinstance(node, list):
        for child in node:
            _adf_lines(child, out, current)
        return
    if not isinstance(node, dict):
        return

    node_type = node.get("type")
    if node_type == "text" and isinstance(node.get("text"), str):
        current.append(node["text"])
    elif node_type == "hardBreak":
        out.append("".join(current))
        current.clear()

    _adf_lines(node.get("content"), out, current)

    if node_type in _ADF_BLOCK_TYPES and current:
        out.append("".join(current))
        current.clear()


def description_text(value: Any) -> str:
    """Plain text of a description: API v2 strings as-is, API v3 ADF documents flattened."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        lines: List[str] = []
        current: List[str] = []
        _adf_lines(value, lines, current)
        if current:
            lines.append("".join(current))
        return "\n".join(lines)
    return ""


def _subtask_keys(fields: Dict[str, Any]) -> Tuple[str, ...]:
    subtasks = fields.get("subtasks")
    if not isinstance(subtasks, list):
        return ()
    keys = []
    for st in subtasks:
        key = _as_dict(st).get("key")
        if isinstance(key, str) and key:
            keys.append(key)
    return tuple(keys)


def _linked_keys(fields: Dict[str, Any]) -> Tuple[str, ...]:
    links = fields.get("issuelinks")
    if not isinstance(links, list):
        return ()
    keys = []
    for link in links:
        link = _as_dict(link)
        linked = _as_dict(link.get("outwardIssue")) or _as_dict(link.get("inwardIssue"))
        key = linked.get("key")
        if isinstance(key, str) and key:
            keys.append(key)
    return tuple(keys)


def normalize(
    record: Dict[str, Any],
    estimate_fields: Sequence[str] = DEFAULT_ESTIMATE_FIELDS,
    expected_date_field: str = DEFAULT_EXPECTED_DATE_FIELD,
) -> NormalizedIssue:
    """Project one raw issue onto NormalizedIssue. The record is only read."""
    record = _as_dict(record)
    fields = _as_dict(record.get("fields"))

    key = record.get("key")
    summary = fields.get("summary")
    assignee = _nested_str(fields, "assignee", "displayName")
    expected_date = fields.get(expected_date_field)

    return NormalizedIssue(
        key=key.strip() if isinstance(key, str) else "",
        summary=summary if isinstance(summary, str) else "",
        assignee_name=assignee or None,
        status_name=_nested_str(fields, "status", "name"),
        issue_type_name=_nested_str(fields, "issuetype", "name"),
        estimate=first_numeric(fields, estimate_fields) or 0.0,
        subtask_keys=_subtask_keys(fields),
        linked_keys=_linked_keys(fields),
        description=description_text(fields.get("description")),
        expected_date=expected_date if isinstance(expected_date, str) else "",
    )
