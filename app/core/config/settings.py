from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    rate_limit_enabled: bool
    unemployedle_rate_limit: str
    openai_api_key: str | None
    openai_base_url: str | None
    openai_model: str
    openai_timeout_s: float
    openai_max_retries: int
    openai_max_tokens: int
    openai_ranking_max_tokens: int
    job_ranker_enabled: bool
    unemployedle_max_guesses: int
    unemployedle_max_games: int
    unemployedle_cache_ttl_s: float
    unemployedle_cache_max_entries: int
    unemployedle_max_resume_chars: int
    unemployedle_max_upload_bytes: int
    link_verify_timeout_s: float


settings = Settings(
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    unemployedle_rate_limit=_get_env("UNEMPLOYEDLE_RATE_LIMIT", "6/10 minutes") or "6/10 minutes",
    openai_api_key=_get_env("OPENAI_API_KEY"),
    openai_base_url=_get_env("OPENAI_BASE_URL"),
    openai_model=_get_env("OPENAI_MODEL", "gpt-4o-mini") or "gpt-4o-mini",
    openai_timeout_s=_get_env_float("OPENAI_TIMEOUT_S", 300.0),
    openai_max_retries=int(_get_env("OPENAI_MAX_RETRIES", "0") or "0"),
    openai_max_tokens=_get_env_int("OPENAI_MAX_TOKENS", 1800),
    openai_ranking_max_tokens=_get_env_int("OPENAI_RANKING_MAX_TOKENS", 900),
    job_ranker_enabled=_get_env_bool("JOB_RANKER_ENABLED", True),
    unemployedle_max_guesses=_get_env_int("UNEMPLOYEDLE_MAX_GUESSES", 7),
    unemployedle_max_games=_get_env_int("UNEMPLOYEDLE_MAX_GAMES", 50),
    unemployedle_cache_ttl_s=_get_env_float("UNEMPLOYEDLE_CACHE_TTL_S", 600.0),
    unemployedle_cache_max_entries=_get_env_int("UNEMPLOYEDLE_CACHE_MAX_ENTRIES", 30),
    unemployedle_max_resume_chars=_get_env_int("UNEMPLOYEDLE_MAX_RESUME_CHARS", 4000),
    unemployedle_max_upload_bytes=_get_env_int("UNEMPLOYEDLE_MAX_UPLOAD_BYTES", 5 * 1024 * 1024),
    link_verify_timeout_s=_get_env_float("LINK_VERIFY_TIMEOUT_S", 4.0),
)
