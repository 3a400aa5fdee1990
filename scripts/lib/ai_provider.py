"""
Brokerage Hub — Unified AI Provider
=====================================

Thin abstraction over the OpenAI, Groq and Claude chat APIs.
AI_PROVIDER chooses the backend (default "openai"); OPENAI_MODEL overrides
the OpenAI model.

Usage:
    from scripts.lib.ai_provider import ai_complete
    response = await ai_complete(
        task="brochure_extraction",
        system_prompt="You are a real estate data extraction assistant.",
        user_prompt="Extract ... from: ...",
        json_mode=True,
    )
    print(response.content)
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Optional

from scripts.lib.config import Settings, get_settings
from scripts.lib.errors import NotConfiguredError
from scripts.lib.logger import setup_logger

logger = setup_logger("ai_provider")


# ─── Response Model ─────────────────────────────────────────

@dataclass
class AIResponse:
    """Standardised response from any AI provider."""
    content: str
    provider: str          # "openai" | "groq" | "claude"
    model: str
    input_tokens: int
    output_tokens: int
    latency_ms: int


# ─── Provider Config ────────────────────────────────────────

GROQ_MODEL = "llama-3.3-70b-versatile"
CLAUDE_MODEL = "claude-sonnet-4-5-20250929"

DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.0

PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}


def provider_api_key(settings: Settings, provider: str = None) -> str:
    provider = provider or settings.ai_provider
    return {
        "openai": settings.openai_api_key,
        "groq": settings.groq_api_key,
        "claude": settings.anthropic_api_key,
    }.get(provider, "")


def require_provider(feature: str, settings: Settings = None, provider: str = None) -> str:
    """Chosen provider name; NotConfiguredError when its key is missing."""
    settings = settings or get_settings()
    provider = provider or settings.ai_provider
    if provider not in PROVIDER_KEYS:
        raise NotConfiguredError(feature, message=f"Unknown AI_PROVIDER: {provider}")
    if not provider_api_key(settings, provider):
        raise NotConfiguredError(feature, missing=[PROVIDER_KEYS[provider]])
    return provider


# ─── Core Completion ────────────────────────────────────────

async def ai_complete(
    task: str,
    system_prompt: str,
    user_prompt: str,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    temperature: float = DEFAULT_TEMPERATURE,
    json_mode: bool = False,
    settings: Settings = None,
    client: Any = None,
) -> AIResponse:
    """
    Run one chat completion.

    Args:
        task: What this call is for (logged with the token usage).
        system_prompt: System-level instructions.
        user_prompt: The user-facing prompt content.
        provider: Force a specific provider. Defaults to AI_PROVIDER.
        model: Force a specific model. Defaults based on provider.
        max_tokens: Max output tokens.
        temperature: Sampling temperature.
        json_mode: Request a JSON object (OpenAI and Groq only).
        settings: Settings snapshot; read from the environment when omitted.
        client: Pre-built SDK client for the chosen provider.

    Returns:
        AIResponse with content and token usage.
    """
    settings = settings or get_settings()
    chosen = require_provider(task, settings, provider)
    api_key = provider_api_key(settings, chosen)

    if chosen == "claude":
        response = await _call_claude(
            system_prompt, user_prompt,
            model=model or CLAUDE_MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            client=client or _claude_client(api_key),
        )
    else:
        if chosen == "groq":
            sdk_client = client or _groq_client(api_key)
            default_model = GROQ_MODEL
        else:
            sdk_client = client or _openai_client(api_key)
            default_model = settings.openai_model
        response = await _call_chat_completions(
            chosen, sdk_client, system_prompt, user_prompt,
            model=model or default_model,
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=json_mode,
        )

    logger.info(
        "AI [%s/%s] task=%s tokens=%d+%d latency=%dms",
        response.provider, response.model, task,
        response.input_tokens, response.output_tokens, response.latency_ms,
    )
    return response


def _openai_client(api_key: str):
    from openai import AsyncOpenAI
    return AsyncOpenAI(api_key=api_key)


def _groq_client(api_key: str):
    from groq import AsyncGroq
    return AsyncGroq(api_key=api_key)


def _claude_client(api_key: str):
    import anthropic
    return anthropic.AsyncAnthropic(api_key=api_key)


# ─── OpenAI / Groq Backend ──────────────────────────────────

async def _call_chat_completions(
    provider: str,
    client,
    system_prompt: str,
    user_prompt: str,
    *,
    model: str,
    max_tokens: int,
    temperature: float,
    json_mode: bool = False,
) -> AIResponse:
    """Both SDKs expose the same chat.completions surface."""
    messages = [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]

    kwargs = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if json_mode:
        kwargs["response_format"] = {"type": "json_object"}

    start = time.perf_counter()
    response = await client.chat.completions.create(**kwargs)
    latency_ms = int((time.perf_counter() - start) * 1000)

    choice = response.choices[0]
    usage = getattr(response, "usage", None)

    return AIResponse(
        content=choice.message.content or "",
        provider=provider,
        model=model,
        input_tokens=usage.prompt_tokens if usage else 0,
        output_tokens=usage.completion_tokens if usage else 0,
        latency_ms=latency_ms,
    )


# ─── Claude Backend ─────────────────────────────────────────

async def _call_claude(
    system_prompt: str,
    user_prompt: str,
    *,
    model: str,
    max_tokens: int,
    temperature: float,
    client,
) -> AIResponse:
    """Call Anthropic Claude API."""
    start = time.perf_counter()
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system_prompt,
        messages=[{"role": "user", "content": user_prompt}],
    )
    latency_ms = int((time.perf_counter() - start) * 1000)

    content = ""
    for block in response.content:
        if hasattr(block, "text"):
            content += block.text

    return AIResponse(
        content=content,
        provider="claude",
        model=model,
        input_tokens=response.usage.input_tokens,
        output_tokens=response.usage.output_tokens,
        latency_ms=latency_ms,
    )
