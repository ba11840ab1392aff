from types import SimpleNamespace

import pytest
import requests

from mytodo.agent import (
    LlmResponse,
    OllamaAgent,
    OpenAIAgent,
    create_agent,
    parse_tasks,
    summary_prompt,
    trim_response,
)
from mytodo.config import Settings
from mytodo.errors import DecodeError, RemoteServiceError, TransportError
from mytodo.tasklist import Task


class RecordingSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def test_trim_response() -> None:
    assert trim_response('Sure! ```json\n[{"content": "a", "done": false}]\n``` Enjoy') == '[{"content": "a", "done": false}]'
    assert trim_response("no array") == "no array"


def test_parse_tasks() -> None:
    tasks = parse_tasks('Here you go: [{"content": "buy milk", "done": false}, {"content": "call bob", "done": true}]')
    assert tasks == [Task("buy milk"), Task("call bob", True)]


@pytest.mark.parametrize("text", ["not json at all", '{"content": "x"}', '[{"done": true}]'])
def test_parse_tasks_rejects_bad_output(text) -> None:
    with pytest.raises(DecodeError):
        parse_tasks(text)


def test_llm_response_text() -> None:
    assert LlmResponse({"response": "  ```[1]```  "}).text() == "[1]"
    assert LlmResponse({}).text() == "No response"


def test_ollama_prompt(fake_response) -> None:
    session = RecordingSession(fake_response(200, payload={"response": "hello"}))
    agent = OllamaAgent(session=session)

    assert agent.prompt("hi").text() == "hello"
    url, kwargs = session.calls[0]
    assert url == "http://localhost:11434/api/generate"
    assert kwargs["json"] == {"model": "gpt-oss:20b", "prompt": "hi", "stream": False}


def test_openai_prompt_extracts_output_text(fake_response) -> None:
    payload = {"output": [{"content": [{"type": "output_text", "text": "summary"}]}]}
    session = RecordingSession(fake_response(200, payload=payload))
    agent = OpenAIAgent("sk-test", session=session)

    assert agent.prompt("hi").text() == "summary"
    url, kwargs = session.calls[0]
    assert url == "https://api.openai.com/v1/responses"
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


def test_openai_without_output(fake_response) -> None:
    agent = OpenAIAgent("sk-test", session=RecordingSession(fake_response(200, payload={"output": []})))
    with pytest.raises(DecodeError):
        agent.prompt("hi")


def test_prompt_errors(fake_response) -> None:
    with pytest.raises(RemoteServiceError):
        OllamaAgent(session=RecordingSession(fake_response(500, text="model not loaded"))).prompt("hi")
    with pytest.raises(TransportError):
        OllamaAgent(session=RecordingSession(requests.ConnectionError("refused"))).prompt("hi")


def test_create_agent() -> None:
    assert create_agent(Settings()) is None
    assert isinstance(create_agent(Settings(use_ai=True)), OllamaAgent)
    assert isinstance(create_agent(Settings(use_ai=True, openai_token="sk")), OpenAIAgent)


def test_summary_prompt_embeds_tasks() -> None:
    prompt = summary_prompt([Task("a", True)])
    assert '[{"content": "a", "done": true}]' in prompt
