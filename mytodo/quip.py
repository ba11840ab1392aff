"""Publish tracker reports to a Quip document."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import markdown
import requests

from mytodo.errors import DecodeError, RemoteServiceError, TransportError

logger = logging.getLogger(__name__)

QUIP_API_URL = "https://platform.quip.com/1"

# edit-document locations
LOCATION_APPEND = 0


def extract_thread_id(url: str) -> str:
    """https://domain.quip.com/ePhzA3UgR8Wd/My-project -> ePhzA3UgR8Wd"""
    parsed = urlparse(url.strip())
    host = parsed.netloc.lower()
    if not host.endswith("quip.com"):
        raise ValueError(f"Not a Quip URL: {url}")
    parts = [p for p in parsed.path.split("/") if p]
    if not parts:
        raise ValueError(f"Could not extract thread ID from URL: {url}")
    return parts[0]


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=["tables"])


class QuipClient:
    def __init__(
        self,
        token: str,
        base_url: str = QUIP_API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        if not token:
            raise ValueError("Quip not configured. Please set QUIP_TOKEN environment variable")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {token}"})
        self.timeout = timeout

    def _post(self, path: str, data: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            resp = self.session.post(url, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"POST {url} failed: {e}") from e
        if resp.status_code != 200:
            raise RemoteServiceError(resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {url}: {e}") from e

    def edit_document(self, thread_id: str, content: str, fmt: str, location: int = LOCATION_APPEND) -> Dict[str, Any]:
        return self._post(
            "threads/edit-document",
            {"thread_id": thread_id, "content": content, "format": fmt, "location": location},
        )

    def append_html(self, thread_id: str, html: str) -> Dict[str, Any]:
        return self.edit_document(thread_id, html, "html")

    def append_markdown(self, thread_id: str, text: str) -> Dict[str, Any]:
        return self.edit_document(thread_id, "\n" + text, "markdown")

    def publish_report(self, doc_url: str, epic_key: str, report: str) -> str:
        """Append a report under an "Updated: EPIC" separator; HTML first, markdown if that fails."""
        thread_id = extract_thread_id(doc_url)
        content = f"\n\n---\n**Updated: {epic_key}**\n\n{report}"
        try:
            self.append_html(thread_id, markdown_to_html(content))
        except (RemoteServiceError, TransportError, DecodeError) as e:
            logger.warning("HTML append failed, trying markdown format: %s", e)
            self.append_markdown(thread_id, content)
        return thread_id
