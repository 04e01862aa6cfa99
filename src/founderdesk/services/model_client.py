import asyncio
import logging

from openai import APIError, AsyncOpenAI

from ..exceptions import GenerationFailed
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class ModelClient:
    """Single-shot text generation against an OpenAI-compatible endpoint.

    Retries of transient failures are left to the SDK (``max_retries``). The
    timeout bounds the whole call; each attempt gets an equal share of it so
    a timed-out attempt still leaves room for its retries.

    Prompts longer than ``max_prompt_chars`` are cut to their first
    ``max_prompt_chars`` characters before sending.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str,
        temperature: float = 0.7,
        timeout_seconds: float = 30.0,
        max_prompt_chars: int = 24000,
        max_retries: int = 2,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._timeout = timeout_seconds
        self._max_prompt_chars = max_prompt_chars
        self._max_retries = max_retries

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ModelClient":
        """Build a client (and its AsyncOpenAI transport) from settings."""
        settings = settings or get_settings()
        client = AsyncOpenAI(
            api_key=settings.genai_api_key or "missing-api-key",
            base_url=settings.genai_base_url,
            timeout=settings.request_timeout_seconds,
            max_retries=settings.max_retries,
        )
        return cls(
            client=client,
            model=settings.model,
            temperature=settings.temperature,
            timeout_seconds=settings.request_timeout_seconds,
            max_prompt_chars=settings.max_prompt_chars,
            max_retries=settings.max_retries,
        )

    @property
    def max_prompt_chars(self) -> int:
        return self._max_prompt_chars

    async def generate(self, prompt_text: str, timeout: float | None = None) -> str:
        """Return generated text for prompt_text.

        Raises:
            ValueError: prompt_text is empty.
            GenerationFailed: transport, auth, timeout or empty-content failure.
        """
        if not prompt_text or not prompt_text.strip():
            raise ValueError("prompt_text cannot be empty")

        if len(prompt_text) > self._max_prompt_chars:
            logger.warning(
                "Prompt of %d chars truncated to %d",
                len(prompt_text),
                self._max_prompt_chars,
            )
            prompt_text = prompt_text[: self._max_prompt_chars]

        use_timeout = self._timeout if timeout is None else timeout
        attempt_timeout = use_timeout / (self._max_retries + 1)
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "user", "content": prompt_text}],
                    temperature=self._temperature,
                    timeout=attempt_timeout,
                ),
                timeout=use_timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationFailed(f"Model request timed out after {use_timeout}s") from e
        except APIError as e:
            raise GenerationFailed(f"Model request failed: {e.__class__.__name__}") from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise GenerationFailed("Model response missing message content") from e

        content = content.strip()
        if not content:
            raise GenerationFailed("Model returned empty content")
        return content

    async def close(self) -> None:
        await self._client.close()
