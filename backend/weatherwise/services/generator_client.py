"""Client for the external recommendation generator."""
from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from weatherwise.core.config import Settings
from weatherwise.core.errors import GenerationMalformed, GenerationUnavailable

logger = logging.getLogger(__name__)


class GeneratorClient:
    """Issue one chat-completion call per prompt and return the message text.

    Retries are disabled at the SDK level; callers decide whether to try again.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
        timeout: float = 60.0,
        client: Optional[Any] = None,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["GeneratorClient"]:
        """Build a client, or return None when no API key is configured."""
        if not settings.mistral_api_key:
            return None
        return cls(
            settings.mistral_api_key,
            base_url=settings.generation_base_url,
            model=settings.generation_model,
            temperature=settings.generation_temperature,
            max_tokens=settings.generation_max_tokens,
            timeout=settings.generation_timeout_seconds,
        )

    async def generate(self, prompt: str) -> str:
        logger.info("Calling generation service (model=%s)", self.model)
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIStatusError as exc:
            logger.error("Generation service error: %s - %s", exc.status_code, exc.message)
            raise GenerationUnavailable(
                f"Generation service returned {exc.status_code}", status=exc.status_code
            ) from exc
        except openai.APIConnectionError as exc:
            logger.error("Generation service unreachable: %s", exc)
            raise GenerationUnavailable("Generation service unreachable") from exc

        content = _message_content(completion)
        if content is None:
            logger.error("Invalid generation response structure: %r", completion)
            raise GenerationMalformed("Generation response is missing message content")
        logger.info("Generation response received (%d chars)", len(content))
        return content


def _message_content(completion: Any) -> Optional[str]:
    choices = getattr(completion, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    if message is None:
        return None
    content = getattr(message, "content", None)
    if not isinstance(content, str):
        return None
    return content
