from __future__ import annotations

import math
import re
from typing import Any

_BULLET_CHARS = "•◦▪▫●○■□◆◇▶►-–—*·"
_BULLET_PATTERN = re.compile(rf"^\s*(?:[{re.escape(_BULLET_CHARS)}]|(?:\d+[\.\)]))\s+")
_TOKEN_PATTERN = re.compile(r"[a-z0-9]+")


def normalize_line(line: str) -> str:
    return re.sub(r"\s+", " ", line).strip()


def is_bullet_like(line: str) -> bool:
    return bool(_BULLET_PATTERN.match(line))


def strip_bullet_prefix(line: str) -> str:
    return _BULLET_PATTERN.sub("", line).strip()


def tokenize(text: str, *, min_length: int = 1) -> list[str]:
    return [token for token in _TOKEN_PATTERN.findall((text or "").lower()) if len(token) >= min_length]


def to_non_empty_string(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return str(value)
    return None


def to_finite_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def clamp_number(value: float, min_value: float, max_value: float) -> float:
    return min(max_value, max(min_value, value))


def truncate_text(text: str, max_chars: int) -> str:
    return text[:max_chars] if len(text) > max_chars else text
