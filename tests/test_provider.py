import asyncio
import json

import httpx
import pytest

from songorders.domain.errors import ProviderError, ProviderTimeout
from songorders.services.providers.openai_text import OpenAITextProvider, ProviderConfig

MESSAGES = [{"role": "system", "content": "sys"}, {"role": "user", "content": "write"}]


def _provider(handler, **cfg):
    config = ProviderConfig(model="test-model", api_key="sk-test", base_url="https://llm.test/v1", **cfg)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return OpenAITextProvider(config, client=client)


class Recorder:
    def __init__(self, responses):
        self.responses = dict(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses[request.url.path]

    def bodies(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.mark.asyncio
async def test_primary_call_returns_chat_content():
    rec = Recorder({"/v1/chat/completions": httpx.Response(200, json={"choices": [{"message": {"content": "lyrics"}}]})})
    text = await _provider(rec).complete(MESSAGES, temperature=0.9, max_tokens=500)

    assert text == "lyrics"
    assert len(rec.requests) == 1
    assert rec.requests[0].headers["Authorization"] == "Bearer sk-test"
    body = rec.bodies()[0]
    assert body == {"model": "test-model", "messages": MESSAGES, "temperature": 0.9, "max_tokens": 500}


@pytest.mark.asyncio
async def test_error_status_falls_back_once_to_responses_shape():
    rec = Recorder(
        {
            "/v1/chat/completions": httpx.Response(500, text="boom"),
            "/v1/responses": httpx.Response(200, json={"output_text": ["verse one", "verse two"]}),
        }
    )
    text = await _provider(rec).complete(MESSAGES, temperature=0.5, max_tokens=300)

    assert text == "verse one\nverse two"
    assert [r.url.path for r in rec.requests] == ["/v1/chat/completions", "/v1/responses"]
    fallback = rec.bodies()[1]
    assert fallback["input"] == MESSAGES
    assert fallback["max_output_tokens"] == 300
    assert "messages" not in fallback


@pytest.mark.asyncio
async def test_malformed_primary_body_also_falls_back():
    rec = Recorder(
        {
            "/v1/chat/completions": httpx.Response(200, json={"unexpected": True}),
            "/v1/responses": httpx.Response(200, json={"output_text": "plain"}),
        }
    )
    assert await _provider(rec).complete(MESSAGES) == "plain"


@pytest.mark.asyncio
async def test_both_protocols_failing_raises_provider_error():
    rec = Recorder(
        {
            "/v1/chat/completions": httpx.Response(500),
            "/v1/responses": httpx.Response(503),
        }
    )
    with pytest.raises(ProviderError) as ei:
        await _provider(rec).complete(MESSAGES)
    assert ei.value.upstream_status == 503
    assert not isinstance(ei.value, ProviderTimeout)
    assert len(rec.requests) == 2


@pytest.mark.asyncio
async def test_transport_timeout_raises_without_fallback():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProviderTimeout) as ei:
        await _provider(handler).complete(MESSAGES)
    assert ei.value.status_code == 504
    assert calls == ["/v1/chat/completions"]


@pytest.mark.asyncio
async def test_client_deadline_is_enforced():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200, json={"choices": [{"message": {"content": "late"}}]})

    with pytest.raises(ProviderTimeout):
        await _provider(handler).complete(MESSAGES, timeout_ms=20)


@pytest.mark.asyncio
async def test_unreachable_provider():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ProviderError) as ei:
        await _provider(handler).complete(MESSAGES)
    assert ei.value.code == "provider_unreachable"


@pytest.mark.asyncio
async def test_missing_api_key_is_reported_before_any_call():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200)

    config = ProviderConfig(api_key="", base_url="https://llm.test/v1")
    p = OpenAITextProvider(config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(ProviderError) as ei:
        await p.complete(MESSAGES)
    assert ei.value.code == "provider_not_configured"
    assert calls == []
