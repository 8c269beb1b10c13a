"""
Generative Text Client - thin wrapper over OpenAI chat completions

Exposes a single `generate(prompt)` call returning the reply text and
turns provider failure modes into UpstreamError:

    - no choices returned
    - reply stopped by the content filter, or a refusal
    - empty reply content
    - transport/API errors from the SDK
"""

import logging
import time
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from app.config import get_settings
from app.errors import ConfigurationError, UpstreamError
from app.middleware.metrics import record_ai_latency

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert career advisor and recruiter. "
    "Follow the requested output format exactly."
)


class AIClient:
    def __init__(
        self,
        openai_client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        settings = get_settings()
        self.model = model or settings.openai_model
        self.temperature = settings.ai_temperature if temperature is None else temperature
        self.max_tokens = max_tokens or settings.ai_max_tokens

        if openai_client is None:
            if not settings.openai_api_key:
                raise ConfigurationError("OpenAI API key is not configured.")
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.ai_timeout)
        self.client = openai_client

    async def generate(self, prompt: str, temperature: Optional[float] = None) -> str:
        start = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"AI request failed: {e}")
            raise UpstreamError("AI request failed", detail=str(e)) from e
        finally:
            record_ai_latency(time.perf_counter() - start)

        if not response.choices:
            raise UpstreamError("No response generated from AI")

        choice = response.choices[0]
        refusal = getattr(choice.message, "refusal", None)
        if choice.finish_reason == "content_filter" or (isinstance(refusal, str) and refusal):
            raise UpstreamError(
                "AI response was blocked by safety filters",
                detail=f"finish_reason={choice.finish_reason}",
            )

        content = choice.message.content
        if not content or not content.strip():
            raise UpstreamError("No content in AI response")

        return content
