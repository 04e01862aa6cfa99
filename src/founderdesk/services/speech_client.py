import logging
from dataclasses import dataclass
from typing import List, Literal

import httpx

from ..exceptions import SpeechSynthesisFailed
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

OutputFormat = Literal["mp3", "wav"]

MEDIA_TYPES = {"mp3": "audio/mpeg", "wav": "audio/wav"}


@dataclass(frozen=True)
class Voice:
    id: str
    name: str
    description: str
    language: str = "en"
    accent: str = "american"
    age: str = "middle-aged"
    gender: str = "neutral"


VOICES: List[Voice] = [
    Voice(
        id="694f9389-aac1-45b6-b726-9d9369183238",
        name="Default Voice",
        description="Default Cartesia voice",
    ),
    Voice(
        id="b7d50908-b17c-442d-ad8d-810c63997ed9",
        name="Sarah",
        description="Young, excited female voice",
        age="young",
        gender="female",
    ),
    Voice(
        id="a0e99841-438c-4a64-b679-ae501e7d6091",
        name="Mark",
        description="Middle-aged professional male voice",
        gender="male",
    ),
]


class SpeechClient:
    """Text-to-speech over the Cartesia ``/tts/bytes`` endpoint."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.cartesia.ai",
        api_version: str = "2024-06-30",
        model_id: str = "sonic-english",
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._model_id = model_id
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SpeechClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.tts_api_key,
            base_url=settings.tts_base_url,
            api_version=settings.tts_api_version,
            model_id=settings.tts_model_id,
            timeout_seconds=settings.tts_request_timeout_seconds,
        )

    def available_voices(self) -> List[Voice]:
        return list(VOICES)

    def _payload(self, text: str, voice_id: str, output_format: OutputFormat) -> dict:
        return {
            "model_id": self._model_id,
            "transcript": text,
            "voice": {"mode": "id", "id": voice_id},
            "output_format": {
                "container": output_format,
                "encoding": "mp3" if output_format == "mp3" else "pcm_f32le",
                "sample_rate": 44100,
            },
        }

    async def synthesize(
        self,
        text: str,
        voice_id: str | None = None,
        output_format: OutputFormat = "mp3",
    ) -> bytes:
        """Return audio bytes for text.

        Raises:
            SpeechSynthesisFailed: missing key, transport error, non-2xx or empty body.
        """
        if not text or not text.strip():
            raise SpeechSynthesisFailed("text cannot be empty")
        if not self._api_key:
            raise SpeechSynthesisFailed("TTS API key is not configured")

        use_voice = voice_id or VOICES[0].id
        logger.info(
            "TTS request voice=%s format=%s chars=%d", use_voice, output_format, len(text)
        )
        headers = {
            "X-API-Key": self._api_key,
            "Cartesia-Version": self._api_version,
            "Content-Type": "application/json",
        }
        try:
            response = await self._client.post(
                f"{self._base_url}/tts/bytes",
                headers=headers,
                json=self._payload(text, use_voice, output_format),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("TTS request rejected: %s", e.response.status_code)
            raise SpeechSynthesisFailed(
                f"TTS request failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("TTS request failed: %s", e)
            raise SpeechSynthesisFailed(f"TTS request failed: {e}") from e

        if not response.content:
            raise SpeechSynthesisFailed("Received empty audio from TTS endpoint")
        return response.content

    async def close(self) -> None:
        await self._client.aclose()
