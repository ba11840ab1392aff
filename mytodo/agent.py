"""LLM agents used to turn free-form notes into tasks and to summarise lists."""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from mytodo.config import Settings
from mytodo.errors import DecodeError, RemoteServiceError, TransportError
from mytodo.tasklist import Task

logger = logging.getLogger(__name__)

OLLAMA_BASE_URL = "http://localhost:11434"
OLLAMA_MODEL = "gpt-oss:20b"
OPENAI_BASE_URL = "https://api.openai.com"
OPENAI_MODEL = "gpt-4.1"


class LlmResponse:
    def __init__(self, raw: Dict[str, Any]):
        self.raw = raw

    def text(self) -> str:
        """The answer with whitespace and code fences trimmed."""
        value = self.raw.get("response")
        if not isinstance(value, str) or not value:
            return "No response"
        return value.strip().strip("`").strip()


def trim_response(text: str) -> str:
    """Keep the outermost JSON array, dropping any chatter around it."""
    begin = text.find("[")
    end = text.rfind("]")
    if begin != -1 and end != -1 and end > begin:
        return text[begin:end + 1]
    return text


def parse_tasks(text: str) -> List[Task]:
    try:
        items = json.loads(trim_response(text))
    except json.JSONDecodeError as e:
        raise DecodeError(f"LLM did not return a JSON task list: {e}") from e
    if not isinstance(items, list):
        raise DecodeError("LLM did not return a JSON array")
    try:
        return [Task.from_dict(item) for item in items]
    except ValueError as e:
        raise DecodeError(str(e)) from e


class BaseAgent:
    endpoint = ""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 120.0):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _payload(self, prompt: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _wrap(self, data: Dict[str, Any]) -> LlmResponse:
        return LlmResponse(data)

    def prompt(self, prompt: str) -> LlmResponse:
        url = f"{self.base_url}{self.endpoint}"
        try:
            resp = self.session.post(url, json=self._payload(prompt), headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"LLM request to {url} failed: {e}") from e
        if resp.status_code != 200:
            raise RemoteServiceError(resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"LLM returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise DecodeError("LLM returned a non-object payload")
        return self._wrap(data)


class OllamaAgent(BaseAgent):
    endpoint = "/api/generate"

    def __init__(self, base_url: str = OLLAMA_BASE_URL, model: str = OLLAMA_MODEL, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self.model = model

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {"model": self.model, "prompt": prompt, "stream": False}


class OpenAIAgent(BaseAgent):
    endpoint = "/v1/responses"

    def __init__(self, api_key: str, base_url: str = OPENAI_BASE_URL, model: str = OPENAI_MODEL, **kwargs: Any):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key
        self.model = model

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {"model": self.model, "input": prompt, "max_output_tokens": 512, "temperature": 0.7}

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _wrap(self, data: Dict[str, Any]) -> LlmResponse:
        # {"output": [{"content": [{"type": "output_text", "text": "..."}]}]}
        for output in data.get("output") or []:
            for content in (output or {}).get("content") or []:
                text = (content or {}).get("text")
                if isinstance(text, str):
                    return LlmResponse({"response": text})
        raise DecodeError(f"No output text in OpenAI response: {json.dumps(data)[:200]}")


def create_agent(settings: Settings) -> Optional[BaseAgent]:
    if settings.openai_token:
        return OpenAIAgent(settings.openai_token)
    if settings.use_ai:
        return OllamaAgent()
    return None


# -------- Prompts --------

def tasks_prompt(note: str) -> str:
    return (
        "Please turn the following note into a JSON array of tasks.\n"
        'Each task must have "content" (string) and "done" (boolean) fields.\n'
        "No extra keys. No explanation.\n\n"
        f'Note: "{note}"'
    )


def refine_prompt(note: str, feedback: str) -> str:
    return (
        "User declined the generated tasks.\n\n"
        f'Original note: "{note}"\n\n'
        f'User feedback: "{feedback}"\n\n'
        "With user feedback, please revise the task list to better reflect the note. "
        'Return a JSON array of tasks with "content" and "done" only, no extra keys, no explanation'
    )


def summary_prompt(tasks: List[Task]) -> str:
    payload = json.dumps([t.to_dict() for t in tasks])
    return f"Here is the list of tasks in JSON:\n{payload}\nSummarize the above list in one concise sentence."
