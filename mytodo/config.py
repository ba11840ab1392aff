"""Settings read from the environment once at process start."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

JIRA_URL_ENV = "JIRA_URL"
JIRA_EMAIL_ENV = "JIRA_EMAIL"
JIRA_TOKEN_ENV = "JIRA_TOKEN"
JIRA_PROJECT_KEY_ENV = "JIRA_PROJECT_KEY"
JIRA_EPIC_LINK_FIELDS_ENV = "JIRA_EPIC_LINK_FIELDS"
JIRA_ESTIMATE_FIELDS_ENV = "JIRA_ESTIMATE_FIELDS"
JIRA_PAGE_SIZE_ENV = "JIRA_PAGE_SIZE"
QUIP_TOKEN_ENV = "QUIP_TOKEN"
AI_ENABLED_ENV = "USE_AI"
OPENAI_TOKEN_ENV = "OPEN_AI_API_KEY"
TASK_FILE_ENV = "MYTODO_FILE"

# "Epic Link" is a custom field whose id differs between Jira deployments
DEFAULT_EPIC_LINK_FIELDS: Tuple[str, ...] = ('"Epic Link"', "cf[10014]", "cf[10008]")

# Story point fields, probed in this order
DEFAULT_ESTIMATE_FIELDS: Tuple[str, ...] = ("customfield_10013", "customfield_10016")

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 100
DEFAULT_TASK_FILE = ".mytodo.json"


def _split_list(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    """Comma separated env value -> tuple. Unset keeps the default, blank disables."""
    if value is None:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_page_size(value: Optional[str]) -> int:
    if not value:
        return DEFAULT_PAGE_SIZE
    try:
        size = int(value)
    except ValueError:
        raise ValueError(f"{JIRA_PAGE_SIZE_ENV} must be an integer, got {value!r}")
    return max(1, min(size, MAX_PAGE_SIZE))


@dataclass(frozen=True)
class Settings:
    jira_url: str = ""
    jira_email: str = ""
    jira_token: str = ""
    project_key: str = ""
    epic_link_fields: Tuple[str, ...] = DEFAULT_EPIC_LINK_FIELDS
    estimate_fields: Tuple[str, ...] = DEFAULT_ESTIMATE_FIELDS
    page_size: int = DEFAULT_PAGE_SIZE
    quip_token: str = ""
    use_ai: bool = False
    openai_token: str = ""
    task_file: str = DEFAULT_TASK_FILE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            jira_url=env.get(JIRA_URL_ENV, "").rstrip("/"),
            jira_email=env.get(JIRA_EMAIL_ENV, ""),
            jira_token=env.get(JIRA_TOKEN_ENV, ""),
            project_key=env.get(JIRA_PROJECT_KEY_ENV, ""),
            epic_link_fields=_split_list(env.get(JIRA_EPIC_LINK_FIELDS_ENV), DEFAULT_EPIC_LINK_FIELDS),
            estimate_fields=_split_list(env.get(JIRA_ESTIMATE_FIELDS_ENV), DEFAULT_ESTIMATE_FIELDS),
            page_size=_parse_page_size(env.get(JIRA_PAGE_SIZE_ENV)),
            quip_token=env.get(QUIP_TOKEN_ENV, ""),
            use_ai=bool(env.get(AI_ENABLED_ENV)),
            openai_token=env.get(OPENAI_TOKEN_ENV, ""),
            task_file=env.get(TASK_FILE_ENV) or DEFAULT_TASK_FILE,
        )

    @property
    def jira_configured(self) -> bool:
        return bool(self.jira_url and self.jira_email and self.jira_token)

    @property
    def agent_enabled(self) -> bool:
        return self.use_ai or bool(self.openai_token)
