import pytest
import requests

from interview_agent.errors import LLMError
from interview_agent.services import llm


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text="", headers=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.headers = headers or {}

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _chat(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def post(monkeypatch):
    calls = []
    responses = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json})
        reply = responses.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(llm.requests, "post", fake_post)
    monkeypatch.setattr(llm.time, "sleep", lambda s: None)
    fake_post.calls = calls
    fake_post.responses = responses
    return fake_post


def test_complete_returns_text(ctx, post):
    post.responses.append(FakeResponse(payload=_chat("  Hello there  ")))
    assert llm.complete("Say hi", temperature=0.3) == "Hello there"
    body = post.calls[0]["json"]
    assert body["messages"] == [{"role": "user", "content": "Say hi"}]
    assert body["temperature"] == 0.3
    assert post.calls[0]["url"].endswith("/chat/completions")
    assert post.calls[0]["headers"]["Authorization"] == "Bearer test-key"


def test_complete_requires_api_key(ctx, post):
    ctx.config["OPENAI_API_KEY"] = None
    with pytest.raises(LLMError):
        llm.complete("Say hi")
    assert post.calls == []


def test_client_error_is_not_retried(ctx, post):
    ctx.config["LLM_MAX_ATTEMPTS"] = 3
    post.responses.append(FakeResponse(400, text="bad request"))
    with pytest.raises(LLMError):
        llm.complete("Say hi")
    assert len(post.calls) == 1


def test_server_errors_are_retried(ctx, post):
    ctx.config["LLM_MAX_ATTEMPTS"] = 3
    post.responses.extend([
        FakeResponse(503, text="unavailable"),
        requests.exceptions.ConnectionError("reset"),
        FakeResponse(payload=_chat("finally")),
    ])
    assert llm.complete("Say hi") == "finally"
    assert len(post.calls) == 3


def test_retries_are_bounded(ctx, post):
    ctx.config["LLM_MAX_ATTEMPTS"] = 2
    post.responses.extend([FakeResponse(500), FakeResponse(429, headers={"Retry-After": "1"})])
    with pytest.raises(LLMError):
        llm.complete("Say hi")
    assert len(post.calls) == 2


def test_insufficient_quota_stops_immediately(ctx, post):
    ctx.config["LLM_MAX_ATTEMPTS"] = 3
    post.responses.append(FakeResponse(429, text='{"error": {"code": "insufficient_quota"}}'))
    with pytest.raises(LLMError):
        llm.complete("Say hi")
    assert len(post.calls) == 1


def test_empty_completion(ctx, post):
    post.responses.append(FakeResponse(payload=_chat("   ")))
    with pytest.raises(LLMError):
        llm.complete("Say hi")


@pytest.mark.parametrize("payload", [
    {"choices": ["oops"]},
    {"choices": {"a": 1}},
    {"choices": [{"message": "text"}]},
    {"output": [{"content": 5}]},
])
def test_malformed_payload_raises_llm_error(ctx, post, payload):
    post.responses.append(FakeResponse(payload=payload))
    with pytest.raises(LLMError):
        llm.complete("Say hi")
    assert len(post.calls) == 1


def test_extract_json_from_prose():
    assert llm.extract_json('Sure! ```json\n{"score": 4}\n``` hope that helps') == {"score": 4}
    assert llm.extract_json('Here: [1, 2, 3]', kind="array") == [1, 2, 3]


@pytest.mark.parametrize("text,kind", [
    ("no json here", "object"),
    ("", "object"),
    ('{"a": 1}', "array"),
    ("{not: valid}", "object"),
])
def test_extract_json_failures(text, kind):
    with pytest.raises(ValueError):
        llm.extract_json(text, kind=kind)
