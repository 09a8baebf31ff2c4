"""Thin wrappers around the async chat clients used by the agents.

DashScope exposes an OpenAI-compatible endpoint, so it shares the ``openai``
client with OpenAI itself; Anthropic goes through its own SDK.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from anthropic import AnthropicError, AsyncAnthropic
from openai import AsyncOpenAI, OpenAIError

from climate_seal.config import settings
from climate_seal.core.exceptions import IntegrationError, LLMResponseError

logger = logging.getLogger(__name__)

_openai_clients: Dict[str, AsyncOpenAI] = {}
_anthropic_client: AsyncAnthropic | None = None

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


def get_openai_client(provider: str) -> AsyncOpenAI:
    if provider not in _openai_clients:
        if provider == "dashscope":
            api_key = settings.dashscope_api_key.get_secret_value()
            base_url = settings.dashscope_base_url
            env_name = "DASHSCOPE_API_KEY"
        else:
            api_key = settings.openai_api_key.get_secret_value()
            base_url = settings.openai_base_url
            env_name = "OPENAI_API_KEY"
        if not api_key:
            raise IntegrationError(f"{env_name} is not configured")
        _openai_clients[provider] = AsyncOpenAI(api_key=api_key, base_url=base_url)
    return _openai_clients[provider]


def get_anthropic_client() -> AsyncAnthropic:
    global _anthropic_client
    if _anthropic_client is None:
        api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise IntegrationError("ANTHROPIC_API_KEY is not configured")
        _anthropic_client = AsyncAnthropic(api_key=api_key)
    return _anthropic_client


def default_model(provider: str) -> str:
    if provider == "anthropic":
        return settings.anthropic_model
    if provider == "openai":
        return settings.openai_model
    return settings.dashscope_model


async def chat_completion(
    messages: List[Dict[str, str]],
    *,
    max_tokens: int,
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    provider: Optional[str] = None,
) -> str:
    """Send a chat request and return the stripped text of the first choice.

    SDK failures surface as ``IntegrationError``.
    """
    provider = provider or settings.llm_provider
    model = model or default_model(provider)

    if provider == "anthropic":
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [m for m in messages if m["role"] != "system"],
        }
        if system:
            kwargs["system"] = system
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            message = await get_anthropic_client().messages.create(**kwargs)
        except AnthropicError as e:
            logger.error(f"Anthropic request failed: {str(e)}")
            raise IntegrationError(f"Anthropic request failed: {e}") from e
        content = message.content[0].text if message.content else ""
    else:
        kwargs = {"model": model, "max_tokens": max_tokens, "messages": messages}
        if temperature is not None:
            kwargs["temperature"] = temperature
        try:
            response = await get_openai_client(provider).chat.completions.create(**kwargs)
        except OpenAIError as e:
            logger.error(f"{provider} request failed: {str(e)}")
            raise IntegrationError(f"{provider} request failed: {e}") from e
        content = response.choices[0].message.content if response.choices else ""

    content = (content or "").strip()
    if not content:
        raise LLMResponseError(f"Empty response from {provider} model {model}")
    logger.debug(f"LLM {provider}/{model} replied with {len(content)} chars")
    return content


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_START.sub("", cleaned)
    cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


def extract_json(text: str) -> Any:
    """Parse a JSON reply, tolerating a surrounding markdown code fence."""
    cleaned = strip_code_fence(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise LLMResponseError(f"LLM reply is not valid JSON: {exc}") from exc
