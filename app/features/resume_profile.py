from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from pydantic import BaseModel, Field

from app.normalize.utils import is_bullet_like, normalize_line, strip_bullet_prefix

KNOWN_KEYWORDS: tuple[str, ...] = (
    "react",
    "typescript",
    "javascript",
    "node",
    "nest",
    "graphql",
    "rest",
    "aws",
    "gcp",
    "azure",
    "python",
    "java",
    "docker",
    "kubernetes",
    "terraform",
    "postgres",
    "sql",
    "redis",
    "testing",
    "observability",
    "frontend",
    "backend",
    "fullstack",
    "ui",
    "ux",
    "performance",
    "accessibility",
    "machine learning",
    "data",
    "analytics",
    "product",
    "design",
    "marketing",
    "seo",
    "content",
    "sales",
    "crm",
    "finance",
    "accounting",
    "healthcare",
    "clinical",
    "operations",
    "logistics",
)

GENERIC_FOCUS_ID = "software engineer"

_EXPERIENCE_HEADERS = (
    "experience",
    "work experience",
    "professional experience",
    "relevant experience",
    "work history",
    "employment",
    "employment history",
    "career history",
)
_OTHER_SECTION_HEADERS = (
    "summary",
    "professional summary",
    "objective",
    "profile",
    "about",
    "about me",
    "skills",
    "technical skills",
    "core skills",
    "education",
    "projects",
    "personal projects",
    "certifications",
    "certificates",
    "awards",
    "publications",
    "languages",
    "interests",
    "volunteering",
    "volunteer experience",
    "references",
)
_HEADER_PUNCTUATION_RE = re.compile(r"[^a-z&/ ]+")
_MIN_SECTION_LINES = 3
_FALLBACK_LINE_COUNT = 40
_MAX_EXPERIENCE_CHARS = 4000
_MAX_HIGHLIGHTS = 8


@dataclass(frozen=True)
class FocusRule:
    id: str
    keywords: tuple[str, ...]
    required: tuple[str, ...] = ()
    min_matches: int = 2


FOCUS_RULES: tuple[FocusRule, ...] = (
    FocusRule(
        id="backend engineering",
        keywords=("backend", "api", "microservice", "node", "python", "java", "postgres", "sql", "redis", "distributed"),
    ),
    FocusRule(
        id="frontend engineering",
        keywords=("frontend", "react", "typescript", "javascript", "css", "ui", "accessibility", "web"),
    ),
    FocusRule(
        id="fullstack engineering",
        keywords=("fullstack", "frontend", "backend", "react", "node", "api"),
        required=("fullstack",),
    ),
    FocusRule(
        id="data and machine learning",
        keywords=("data", "machine learning", "analytics", "python", "sql", "model", "pipeline", "statistics"),
    ),
    FocusRule(
        id="platform and devops",
        keywords=("devops", "kubernetes", "docker", "terraform", "aws", "gcp", "infrastructure", "observability", "ci/cd"),
    ),
    FocusRule(
        id="product management",
        keywords=("product", "roadmap", "stakeholder", "strategy", "launch", "requirements"),
        required=("product",),
    ),
    FocusRule(
        id="design",
        keywords=("design", "figma", "ux", "ui", "prototype", "user research"),
    ),
    FocusRule(
        id="marketing",
        keywords=("marketing", "seo", "campaign", "brand", "content", "growth", "social media"),
    ),
    FocusRule(
        id="sales",
        keywords=("sales", "crm", "quota", "pipeline", "account", "prospecting"),
        required=("sales",),
    ),
    FocusRule(
        id="finance",
        keywords=("finance", "financial", "accounting", "budget", "forecast", "audit"),
    ),
    FocusRule(
        id="healthcare",
        keywords=("healthcare", "clinical", "patient", "nursing", "medical", "hospital"),
    ),
    FocusRule(
        id="operations",
        keywords=("operations", "logistics", "supply chain", "process", "vendor", "inventory"),
    ),
    FocusRule(
        id=GENERIC_FOCUS_ID,
        keywords=("software", "engineer", "developer", "code", "programming", "testing"),
    ),
)


class ResumeProfile(BaseModel):
    keywords: set[str] = Field(default_factory=set)
    experience_text: str = ""
    experience_keywords: list[str] = Field(default_factory=list)
    experience_highlights: list[str] = Field(default_factory=list, max_length=_MAX_HIGHLIGHTS)
    focus_scores: dict[str, float] = Field(default_factory=dict)
    focus_tags: list[str] = Field(default_factory=list)


class _MatchText:
    """Lowercased text plus punctuation-free variants so 'Node.js' and 'nodejs' both hit 'node'."""

    def __init__(self, text: str) -> None:
        lowered = (text or "").lower()
        self.variants = (
            lowered,
            re.sub(r"\s+", " ", re.sub(r"[^a-z0-9+#/\s]", "", lowered)),
            re.sub(r"\s+", " ", re.sub(r"[^a-z0-9+#/]", " ", lowered)),
        )

    def contains(self, keyword: str) -> bool:
        pattern = _keyword_pattern(keyword)
        return any(pattern.search(variant) for variant in self.variants)


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(keyword.lower())}")


def extract_keywords_from_text(text: str) -> list[str]:
    haystack = _MatchText(text)
    return [keyword for keyword in KNOWN_KEYWORDS if haystack.contains(keyword)]


def extract_resume_keywords(resume_text: str) -> set[str]:
    return set(extract_keywords_from_text(resume_text))


def _header_key(line: str) -> str:
    lowered = normalize_line(strip_bullet_prefix(line)).lower()
    return normalize_line(_HEADER_PUNCTUATION_RE.sub(" ", lowered))


def _is_experience_header(line: str) -> bool:
    key = _header_key(line)
    return bool(key) and len(key.split()) <= 4 and key in _EXPERIENCE_HEADERS


def _is_other_header(line: str) -> bool:
    key = _header_key(line)
    return bool(key) and len(key.split()) <= 4 and key in _OTHER_SECTION_HEADERS


def extract_experience_lines(resume_text: str) -> list[str]:
    lines = [line.rstrip() for line in (resume_text or "").splitlines()]
    section: list[str] = []
    in_section = False
    for line in lines:
        if _is_experience_header(line):
            in_section = True
            continue
        if in_section and _is_other_header(line):
            break
        if in_section and line.strip():
            section.append(line.strip())

    if len(section) >= _MIN_SECTION_LINES:
        return section
    return [line.strip() for line in lines if line.strip()][:_FALLBACK_LINE_COUNT]


def _experience_highlights(lines: list[str]) -> list[str]:
    bullets = [strip_bullet_prefix(line) for line in lines if is_bullet_like(line)]
    bullets = [line for line in bullets if line]
    if bullets:
        return bullets[:_MAX_HIGHLIGHTS]
    return [normalize_line(line) for line in lines if normalize_line(line)][:_MAX_HIGHLIGHTS]


def extract_focus_scores(text: str) -> dict[str, float]:
    haystack = _MatchText(text)
    scores: dict[str, float] = {}
    for rule in FOCUS_RULES:
        if rule.required and not all(haystack.contains(term) for term in rule.required):
            continue
        matched = sum(1 for keyword in rule.keywords if haystack.contains(keyword))
        if matched < rule.min_matches:
            continue
        scores[rule.id] = matched / len(rule.keywords)
    return scores


def rank_focus_tags(scores: dict[str, float], limit: int = 3) -> list[str]:
    order = {rule.id: index for index, rule in enumerate(FOCUS_RULES)}
    ranked = sorted(scores, key=lambda tag: (-scores[tag], order.get(tag, len(order))))
    if any(tag != GENERIC_FOCUS_ID for tag in ranked):
        ranked = [tag for tag in ranked if tag != GENERIC_FOCUS_ID]
    return ranked[: max(0, limit)]


def extract_focus_tags(text: str, limit: int = 3) -> list[str]:
    return rank_focus_tags(extract_focus_scores(text), limit)


def build_resume_profile(resume_text: str) -> ResumeProfile:
    experience_lines = extract_experience_lines(resume_text)
    experience_text = "\n".join(experience_lines)[:_MAX_EXPERIENCE_CHARS]
    focus_scores = extract_focus_scores(experience_text)
    return ResumeProfile(
        keywords=extract_resume_keywords(resume_text),
        experience_text=experience_text,
        experience_keywords=extract_keywords_from_text(experience_text),
        experience_highlights=_experience_highlights(experience_lines),
        focus_scores=focus_scores,
        focus_tags=rank_focus_tags(focus_scores, limit=3),
    )
