"""
Text completion through LiteLLM.

The card generator is the only caller. Models are named
"provider/model-name" (``settings.TEXT_MODEL``), so moving between
providers is a configuration change. Transient provider failures are
retried here with exponential backoff; callers see either text or the
last exception.

Usage:
    from intellicard.services.llm import build_messages, get_llm_client

    reply = await get_llm_client().complete(
        messages=build_messages(prompt, system_prompt=SYSTEM_PROMPT),
        temperature=0.7,
        max_tokens=2500,
    )
"""

import logging
import os
import time
from typing import Optional

import litellm
from litellm import acompletion
from tenacity import retry, stop_after_attempt, wait_exponential

from intellicard.config.settings import settings

logger = logging.getLogger(__name__)

litellm.drop_params = True
if settings.DEBUG:
    os.environ["LITELLM_LOG"] = "DEBUG"

PROVIDER_KEYS = {
    "OpenAI": "OPENAI_API_KEY",
    "Anthropic": "ANTHROPIC_API_KEY",
}


def get_default_text_model() -> str:
    return settings.TEXT_MODEL


def build_messages(prompt: str, system_prompt: Optional[str] = None) -> list[dict[str, str]]:
    """Chat messages in OpenAI format, system prompt first when given."""
    messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
    messages.append({"role": "user", "content": prompt})
    return messages


def configured_providers() -> list[str]:
    """Providers with an API key in the environment or in settings."""
    return [
        provider
        for provider, key in PROVIDER_KEYS.items()
        if os.getenv(key) or getattr(settings, key, "")
    ]


class LLMClient:
    def __init__(self, model: Optional[str] = None):
        self.model = model or get_default_text_model()

        providers = configured_providers()
        if providers:
            logger.info(f"LLM client ready (model={self.model}, providers={providers})")
        else:
            logger.warning(
                f"No LLM API key configured; set one of {sorted(PROVIDER_KEYS.values())}. "
                "Card generation will fail until one is set."
            )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def complete(
        self,
        messages: list[dict],
        temperature: float = 0.3,
        max_tokens: int = 4096,
        model: Optional[str] = None,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        A reply without content comes back as "". Provider errors are
        logged and re-raised after the last attempt.
        """
        model = model or self.model
        started = time.perf_counter()

        try:
            response = await acompletion(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"Completion against {model} failed: {e}")
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(f"Completion against {model} took {elapsed_ms:.0f}ms")
        return response.choices[0].message.content or ""


_shared_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Process-wide client, created on first call."""
    global _shared_client
    if _shared_client is None:
        _shared_client = LLMClient()
    return _shared_client


def reset_llm_client() -> None:
    global _shared_client
    _shared_client = None
