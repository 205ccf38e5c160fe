from __future__ import annotations

import logging
import time
from functools import lru_cache

import openai
from openai import AsyncOpenAI

from app.core.config import Settings, settings
from app.core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def llm_configured(config: Settings = settings) -> bool:
    api_key = (config.openai_api_key or "").strip()
    return bool(api_key) and not _looks_like_placeholder(api_key)


@lru_cache(maxsize=1)
def default_client() -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url or None,
        timeout=float(settings.openai_timeout_s),
        max_retries=settings.openai_max_retries,
    )


async def json_completion_content(
    *,
    system_prompt: str,
    user_prompt: str,
    max_output_tokens: int,
    purpose: str,
    temperature: float = 0.2,
    client: AsyncOpenAI | None = None,
    model: str | None = None,
) -> str:
    """Run one JSON-mode chat completion and return the raw message content.

    Every failure mode (missing key, timeout, non-2xx, empty content) surfaces as
    UpstreamUnavailableError so callers can tell a broken search from an empty one.
    """
    if client is None:
        if not llm_configured():
            raise UpstreamUnavailableError(
                f"OPENAI_API_KEY is not configured for job {purpose}.", code="llm_disabled"
            )
        client = default_client()

    model_name = model or settings.openai_model
    started = time.perf_counter()
    try:
        response = await client.chat.completions.create(
            model=model_name,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=temperature,
            response_format={"type": "json_object"},
            max_tokens=max_output_tokens,
        )
    except openai.APITimeoutError as exc:
        logger.warning("unemployedle_llm_timeout purpose=%s model=%s", purpose, model_name)
        raise UpstreamUnavailableError(f"ChatGPT job {purpose} timed out.", code="llm_timeout") from exc
    except openai.APIStatusError as exc:
        logger.warning(
            "unemployedle_llm_status_error purpose=%s model=%s status=%s body=%s",
            purpose,
            model_name,
            exc.status_code,
            str(exc.message)[:200],
        )
        raise UpstreamUnavailableError(f"ChatGPT job {purpose} failed.", code="llm_failed") from exc
    except openai.APIConnectionError as exc:
        logger.warning("unemployedle_llm_connection_failed purpose=%s model=%s: %s", purpose, model_name, exc)
        raise UpstreamUnavailableError(f"ChatGPT job {purpose} failed.", code="llm_failed") from exc

    content = response.choices[0].message.content if response.choices else ""
    latency_ms = int((time.perf_counter() - started) * 1000)
    if not content:
        logger.warning("unemployedle_llm_empty purpose=%s model=%s latency_ms=%s", purpose, model_name, latency_ms)
        raise UpstreamUnavailableError(f"ChatGPT did not return job {purpose} results.", code="llm_empty")

    logger.info(
        "unemployedle_llm_completed purpose=%s model=%s latency_ms=%s content_len=%s",
        purpose,
        model_name,
        latency_ms,
        len(content),
    )
    return content
