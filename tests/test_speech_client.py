import json

import httpx
import pytest

from founderdesk.exceptions import SpeechSynthesisFailed
from founderdesk.services.speech_client import VOICES, SpeechClient


def _client(handler, api_key: str | None = "tts-key") -> SpeechClient:
    return SpeechClient(
        api_key=api_key,
        base_url="https://tts.test/",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_synthesize_posts_request_and_returns_audio() -> None:
    """synthesize sends the Cartesia payload and returns the body bytes."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, content=b"ID3-audio")

    client = _client(handler)
    audio = await client.synthesize("Hello founder", output_format="wav")
    await client.close()

    assert audio == b"ID3-audio"
    assert seen["url"] == "https://tts.test/tts/bytes"
    assert seen["headers"]["X-API-Key"] == "tts-key"
    assert seen["headers"]["Cartesia-Version"] == "2024-06-30"
    assert seen["body"]["transcript"] == "Hello founder"
    assert seen["body"]["voice"] == {"mode": "id", "id": VOICES[0].id}
    assert seen["body"]["output_format"]["container"] == "wav"
    assert seen["body"]["output_format"]["encoding"] == "pcm_f32le"


@pytest.mark.asyncio
async def test_non_2xx_raises() -> None:
    """An error status from the endpoint raises SpeechSynthesisFailed."""
    client = _client(lambda request: httpx.Response(401, text="unauthorized"))
    with pytest.raises(SpeechSynthesisFailed, match="401"):
        await client.synthesize("Hello")


@pytest.mark.asyncio
async def test_transport_error_raises() -> None:
    """A connection error raises SpeechSynthesisFailed."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SpeechSynthesisFailed):
        await _client(handler).synthesize("Hello")


@pytest.mark.asyncio
async def test_empty_audio_raises() -> None:
    """An empty body is treated as a failure."""
    client = _client(lambda request: httpx.Response(200, content=b""))
    with pytest.raises(SpeechSynthesisFailed, match="empty"):
        await client.synthesize("Hello")


@pytest.mark.asyncio
async def test_missing_key_or_text_raises_without_request() -> None:
    """No API key or blank text fails before any request is sent."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, content=b"x")

    with pytest.raises(SpeechSynthesisFailed):
        await _client(handler, api_key=None).synthesize("Hello")
    with pytest.raises(SpeechSynthesisFailed):
        await _client(handler).synthesize("  ")
    assert calls == []


def test_available_voices() -> None:
    """The built-in voice catalogue is exposed."""
    client = SpeechClient(api_key="k")
    names = [voice.name for voice in client.available_voices()]
    assert names == ["Default Voice", "Sarah", "Mark"]
