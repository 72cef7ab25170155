from __future__ import annotations

import asyncio

import httpx
import pytest

from formcraft.errors import UpstreamError, ValidationFailed
from formcraft.suggestions import (
    AnthropicProvider,
    DisabledProvider,
    GroqProvider,
    generate_suggestions,
    get_suggestion_provider,
    parse_suggestions,
)

from conftest import FakeSuggestionProvider, make_settings


def test_parse_strips_code_fences():
    text = '```json\n[{"fieldType": "email", "label": "Email", "required": true}]\n```'
    suggestions = parse_suggestions(text)
    assert suggestions[0]["fieldType"] == "email"
    assert suggestions[0]["required"] is True
    assert suggestions[0]["id"].startswith("ai-suggestion-")


def test_parse_falls_back_to_text_for_unknown_type():
    suggestions = parse_suggestions('[{"fieldType": "slider", "label": "Level"}]')
    assert suggestions[0]["fieldType"] == "text"


@pytest.mark.parametrize("text", ["not json", '{"a": 1}', '[{"label": "No type"}]'])
def test_parse_rejects_bad_output(text):
    with pytest.raises(UpstreamError):
        parse_suggestions(text)


def _groq(status: int, body: dict | None = None, api_key: str = "key") -> GroqProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == f"Bearer {api_key}"
        return httpx.Response(status, json=body or {})

    return GroqProvider(api_key, transport=httpx.MockTransport(handler))


def test_groq_returns_message_content():
    provider = _groq(200, {"choices": [{"message": {"content": "[]"}}]})
    assert asyncio.run(provider.complete("prompt")) == "[]"


@pytest.mark.parametrize("status, expected", [(401, 502), (429, 429), (500, 503), (503, 503), (400, 502)])
def test_upstream_statuses_are_mapped(status, expected):
    with pytest.raises(UpstreamError) as info:
        asyncio.run(_groq(status).complete("prompt"))
    assert info.value.status_code == expected


def test_missing_api_key_is_unavailable():
    with pytest.raises(UpstreamError) as info:
        asyncio.run(AnthropicProvider("").complete("prompt"))
    assert info.value.status_code == 503


def test_anthropic_reads_text_block():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-api-key"] == "key"
        return httpx.Response(200, json={"content": [{"type": "text", "text": "[]"}]})

    provider = AnthropicProvider("key", transport=httpx.MockTransport(handler))
    assert asyncio.run(provider.complete("prompt")) == "[]"


def test_connection_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    provider = GroqProvider("key", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError) as info:
        asyncio.run(provider.complete("prompt"))
    assert info.value.status_code == 503


def test_provider_selection(tmp_path):
    settings = make_settings(tmp_path)
    assert isinstance(get_suggestion_provider(settings), DisabledProvider)
    settings.ai_provider = "anthropic"
    assert isinstance(get_suggestion_provider(settings), AnthropicProvider)
    settings.ai_provider = "groq"
    assert isinstance(get_suggestion_provider(settings), GroqProvider)


def test_purpose_is_required():
    with pytest.raises(ValidationFailed):
        asyncio.run(generate_suggestions(FakeSuggestionProvider(), "  ", "u1"))


def test_suggestions_endpoint(client, auth, suggestion_provider):
    suggestion_provider.reply = '[{"fieldType": "rating", "label": "Overall", "reasoning": "score"}]'
    res = client.post("/api/ai/suggestions", json={"purpose": "Event feedback"}, headers=auth)
    assert res.status_code == 200
    assert [s["label"] for s in res.json()] == ["Overall"]
    assert "Event feedback" in suggestion_provider.prompts[0]


def test_suggestions_endpoint_requires_auth(client):
    assert client.post("/api/ai/suggestions", json={"purpose": "x"}).status_code == 401


def test_suggestions_endpoint_reports_upstream_failure(client, auth, suggestion_provider):
    suggestion_provider.reply = "sorry, no JSON today"
    res = client.post("/api/ai/suggestions", json={"purpose": "Survey"}, headers=auth)
    assert res.status_code == 502
    assert res.json()["success"] is False


def test_non_json_success_body_is_an_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    provider = GroqProvider("key", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.complete("prompt"))


@pytest.mark.parametrize(
    "body",
    [[1, 2], {"choices": "oops"}, {"choices": [None]}, {"choices": [{"message": "hi"}]}],
)
def test_unexpected_groq_shape_is_an_upstream_error(body):
    provider = GroqProvider("key", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.complete("prompt"))


@pytest.mark.parametrize("body", [{"content": "text"}, {"content": ["x", {"type": "text", "text": 5}]}])
def test_unexpected_anthropic_shape_is_an_upstream_error(body):
    provider = AnthropicProvider("key", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body)))
    with pytest.raises(UpstreamError):
        asyncio.run(provider.complete("prompt"))
