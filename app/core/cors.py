from __future__ import annotations

from typing import Any

from app.core.config import Settings, settings


def cors_middleware_options(config: Settings = settings) -> dict[str, Any]:
    """Keyword arguments for CORSMiddleware; the frontend posts multipart uploads and JSON guesses."""
    origins = list(dict.fromkeys(origin.rstrip("/") for origin in config.cors_allowed_origins))
    regex = (config.cors_allow_origin_regex or "").strip() or None
    return {
        "allow_origins": origins,
        "allow_origin_regex": regex,
        "allow_credentials": True,
        "allow_methods": ["GET", "POST", "OPTIONS"],
        "allow_headers": ["*"],
    }
