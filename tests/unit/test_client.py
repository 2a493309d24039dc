import json

import pytest

from bulk_translate.config import TranslateConfig
from bulk_translate.pipeline.chunker import Chunk
from bulk_translate.pipeline.client import TranslationClient
from bulk_translate.providers.base import (
    BaseProvider,
    ProviderError,
    ProviderRequest,
    ProviderResponse,
)


def _paragraphs(*texts):
    return json.dumps(
        [{"line": idx + 1, "text": text} for idx, text in enumerate(texts)],
        ensure_ascii=False,
    )


class ScriptedProvider(BaseProvider):
    """Replays scripted responses (str) or errors (ProviderError) in order."""

    def __init__(self, script):
        super().__init__({})
        self.script = list(script)
        self.requests = []

    def build_request(self, messages, settings):
        return ProviderRequest(
            model=settings.get("model") or "dummy-model",
            messages=messages,
            request_id=settings.get("request_id"),
        )

    def send(self, request):
        self.requests.append(request)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return ProviderResponse(
            text=item,
            raw={},
            usage={"promptTokenCount": 10, "candidatesTokenCount": 4},
            status_code=200,
            duration_ms=12,
        )


def _client(provider, **kwargs):
    return TranslationClient(provider, target_language="Vietnamese", **kwargs)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_joins_sentences_per_paragraph():
    provider = ScriptedProvider([_paragraphs(["Xin chào.", "Bạn khỏe không?"], ["Tạm biệt."])])
    chunk = Chunk(sequence_index=3, lines=("Hello. How are you?", "Bye."), offset=6)
    result = await _client(provider).translate_chunk(chunk)

    assert result.sequence_index == 3
    assert result.offset == 6
    assert result.original_lines == chunk.lines
    assert result.translated_lines == ["Xin chào.\nBạn khỏe không?", "Tạm biệt."]
    assert not result.mismatched
    assert result.usage_stats.prompt_tokens == 10
    assert result.usage_stats.total_tokens == 14
    assert result.usage_stats.request_id == provider.requests[0].request_id


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_wraps_lines_in_paragraph_markers():
    provider = ScriptedProvider([_paragraphs(["x"], ["y"])])
    await _client(provider).translate_chunk(Chunk(1, ("first", "second")))
    messages = provider.requests[0].messages
    assert messages[0]["role"] == "system"
    assert "Vietnamese" in messages[0]["content"]
    assert "There are 2 paragraphs" in messages[0]["content"]
    assert messages[1]["content"] == "<paragraph>first</paragraph>\n<paragraph>second</paragraph>"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_parse_failure_becomes_mismatch(caplog):
    provider = ScriptedProvider(["I am sorry, I cannot do that."])
    result = await _client(provider).translate_chunk(Chunk(1, ("a", "b")))
    assert result.translated_lines == []
    assert result.original_lines == ("a", "b")
    assert result.mismatched
    assert "JSON parse error" in caplog.text


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_provider_error_is_fatal_by_default():
    provider = ScriptedProvider([ProviderError("HTTP 503", status_code=503), _paragraphs(["x"])])
    with pytest.raises(ProviderError):
        await _client(provider).translate_chunk(Chunk(1, ("a",)))
    assert len(provider.requests) == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_resends_retryable_errors_when_enabled():
    provider = ScriptedProvider(
        [
            ProviderError("HTTP 429", status_code=429),
            ProviderError("timeout", error_type="timeout"),
            _paragraphs(["x"]),
        ]
    )
    client = _client(provider, request_retries=2, retry_delay=0)
    result = await client.translate_chunk(Chunk(1, ("a",)))
    assert result.translated_lines == ["x"]
    assert len(provider.requests) == 3


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_chunk_never_resends_auth_errors():
    provider = ScriptedProvider([ProviderError("HTTP 401: bad key", status_code=401), _paragraphs(["x"])])
    client = _client(provider, request_retries=3, retry_delay=0)
    with pytest.raises(ProviderError):
        await client.translate_chunk(Chunk(1, ("a",)))
    assert len(provider.requests) == 1


@pytest.mark.unit
def test_from_config_passes_settings_through():
    provider = ScriptedProvider([])
    config = TranslateConfig(
        target_language="German",
        model="gemini-x",
        temperature=0.3,
        request_retries=2,
        prompt_template="Into {{language}}",
    )
    client = TranslationClient.from_config(config, provider)
    assert client.provider is provider
    assert client.settings == {"model": "gemini-x", "temperature": 0.3}
    assert client.request_retries == 2
    assert client.prompt_template == "Into {{language}}"
