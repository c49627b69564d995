"""
LLM Service Module

Provides a unified interface to LLM providers via LiteLLM.

Usage:
    from intellicard.services.llm import get_llm_client, build_messages

    client = get_llm_client()
    text = await client.complete(messages=build_messages("..."))
"""

from intellicard.services.llm.client import (
    LLMClient,
    get_llm_client,
    reset_llm_client,
    get_default_text_model,
    build_messages,
)

__all__ = [
    "LLMClient",
    "get_llm_client",
    "reset_llm_client",
    "get_default_text_model",
    "build_messages",
]
