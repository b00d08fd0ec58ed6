import json

import httpx
import pytest

from app.agents.llm import client as client_module
from app.agents.llm.base import reply_from_completion
from app.agents.llm.client import get_llm_client
from app.agents.llm.openai_compat import OpenAICompatClient
from app.agents.llm.openrouter import OpenRouterClient
from app.agents.schemas import ModelMessage
from app.errors import ConfigurationError, UpstreamError, UpstreamUnavailable

MESSAGES = [ModelMessage(role="user", content="hi")]


def completion(content, **extra):
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    body.update(extra)
    return body


def make_client(handler, **kwargs):
    return OpenRouterClient(
        api_key="k",
        base_url="https://llm.test/api/v1/",
        model="test/model",
        site_url="https://site.test",
        app_title="Stockfolio",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_openrouter_posts_chat_completion():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=completion("ok", usage={"total_tokens": 7}))

    reply = make_client(handler).complete(MESSAGES, temperature=0.3, max_tokens=150, stop=["\n\n"])

    assert reply.text == "ok"
    assert reply.usage.total_tokens == 7
    assert seen["url"] == "https://llm.test/api/v1/chat/completions"
    assert seen["headers"]["authorization"] == "Bearer k"
    assert seen["headers"]["http-referer"] == "https://site.test"
    assert seen["headers"]["x-title"] == "Stockfolio"
    assert seen["body"] == {
        "model": "test/model",
        "messages": [{"role": "user", "content": "hi"}],
        "temperature": 0.3,
        "max_tokens": 150,
        "stop": ["\n\n"],
    }


def test_non_success_status_is_upstream_error():
    client = make_client(lambda r: httpx.Response(429, text="slow down"))
    with pytest.raises(UpstreamError) as exc:
        client.complete(MESSAGES)
    assert exc.value.status == 429
    assert exc.value.body == "slow down"


def test_transport_failure_is_unavailable_and_not_retried_by_default():
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        make_client(handler).complete(MESSAGES)
    assert len(calls) == 1


def test_bounded_retry_on_unavailable(monkeypatch):
    sleeps = []
    monkeypatch.setattr("app.agents.llm.base.time.sleep", sleeps.append)
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ReadTimeout("timeout", request=request)
        return httpx.Response(200, json=completion("third time"))

    reply = make_client(handler, max_retries=2, retry_backoff=0.5).complete(MESSAGES)
    assert reply.text == "third time"
    assert sleeps == [0.5, 1.0]


def test_upstream_error_is_never_retried(monkeypatch):
    monkeypatch.setattr("app.agents.llm.base.time.sleep", lambda s: None)
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="boom")

    with pytest.raises(UpstreamError):
        make_client(handler, max_retries=3).complete(MESSAGES)
    assert len(calls) == 1


def test_reply_extraction_fallbacks():
    assert reply_from_completion(completion(None)).text == ""
    assert reply_from_completion({"output": "plain"}).text == "plain"
    assert reply_from_completion({"output": {"a": 1}}).text == '{"a": 1}'
    assert reply_from_completion({"weird": True}).text == '{"weird": true}'


def test_factory_requires_key(monkeypatch):
    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "openrouter")
    monkeypatch.setattr(client_module.settings, "OPENROUTER_API_KEY", None)
    with pytest.raises(ConfigurationError):
        get_llm_client()


def test_factory_rejects_unknown_provider(monkeypatch):
    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "mystery")
    with pytest.raises(ConfigurationError):
        get_llm_client()


def test_factory_builds_configured_clients(monkeypatch):
    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "openrouter")
    monkeypatch.setattr(client_module.settings, "OPENROUTER_API_KEY", "k")
    monkeypatch.setattr(client_module.settings, "llm_max_retries", 2)
    llm = get_llm_client()
    assert isinstance(llm, OpenRouterClient)
    assert llm.max_retries == 2

    monkeypatch.setattr(client_module.settings, "LLM_PROVIDER", "openai")
    monkeypatch.setattr(client_module.settings, "OPENAI_API_KEY", "g")
    assert isinstance(get_llm_client(), OpenAICompatClient)
