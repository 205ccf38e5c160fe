from __future__ import annotations

import hashlib
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from app.features.resume_profile import extract_focus_tags, extract_keywords_from_text
from app.schemas.unemployedle import CompanySize, JobOpening, JobRanking, JobSource, RawJob

from .job_urls import build_fallback_url, resolve_job_urls
from .utils import clamp_number, normalize_line, to_finite_number, to_non_empty_string, tokenize

logger = logging.getLogger(__name__)

DEFAULT_RATING = 4.0
DEFAULT_LOCATION = "Remote"
MAX_COMPANY_HINT_CHARS = 160

_KEYWORD_SPLIT_RE = re.compile(r"[,/|]")
_COMPANY_SUFFIXES = {
    "inc",
    "incorporated",
    "llc",
    "ltd",
    "limited",
    "corp",
    "corporation",
    "co",
    "company",
    "plc",
    "gmbh",
    "ag",
    "sa",
    "lp",
    "llp",
}
_GENERIC_COMPANY_WORDS = {
    "group",
    "labs",
    "systems",
    "technologies",
    "technology",
    "solutions",
    "health",
    "healthcare",
    "capital",
    "bank",
    "global",
    "international",
    "partners",
    "services",
    "software",
    "digital",
    "media",
    "energy",
    "financial",
    "holdings",
    "the",
}
_STARTUP_MARKERS = ("startup", "start-up", "seed", "vc", "venture", "series")
_MID_MARKERS = ("mid", "scale", "growth")
_LARGE_MARKERS = ("enterprise", "fortune", "big", "large", "global", "multinational")
_SIZE_PHRASES: dict[str, str] = {
    "large": "Large, established",
    "mid": "Mid-sized",
    "startup": "Fast-growing",
}
_INDUSTRY_LABELS: dict[str, str] = {
    "backend engineering": "software",
    "frontend engineering": "software",
    "fullstack engineering": "software",
    "data and machine learning": "data and AI",
    "platform and devops": "cloud infrastructure",
    "product management": "product-led tech",
    "design": "design-focused",
    "marketing": "marketing",
    "sales": "sales-driven",
    "finance": "financial services",
    "healthcare": "healthcare",
    "operations": "operations and logistics",
    "software engineer": "technology",
}
_LOW_SIGNAL_HINT_KEYWORDS = {"testing", "performance", "rest", "ui", "ux", "data", "content", "product", "design"}


def normalize_job_source(value: Any) -> JobSource:
    source = str(value or "").lower()
    if "linkedin" in source:
        return "LinkedIn"
    if "glassdoor" in source:
        return "Glassdoor"
    if "fortune" in source:
        return "Fortune 500"
    if "indeed" in source:
        return "Indeed"
    if "career" in source or "company" in source:
        return "Company Careers"
    return "Other"


def normalize_keywords(value: Any) -> list[str]:
    if isinstance(value, list):
        raw_items = [to_non_empty_string(item) for item in value]
    elif isinstance(value, str):
        raw_items = [to_non_empty_string(item) for item in _KEYWORD_SPLIT_RE.split(value)]
    else:
        raw_items = []
    keywords = [item.lower() for item in raw_items if item]
    return list(dict.fromkeys(keywords))


def normalize_match_score(value: Any) -> float | None:
    number = to_finite_number(value)
    if number is None:
        return None
    if number > 1:
        return clamp_number(number / 100, 0.0, 1.0)
    return clamp_number(number, 0.0, 1.0)


def normalize_company_size(value: Any) -> CompanySize:
    text = str(value or "").lower()
    if any(marker in text for marker in _STARTUP_MARKERS):
        return "startup"
    if any(marker in text for marker in _MID_MARKERS):
        return "mid"
    if any(marker in text for marker in _LARGE_MARKERS):
        return "large"
    return "mid"


def normalize_company_key(company: str) -> str:
    tokens = tokenize(company)
    while len(tokens) > 1 and tokens[-1] in _COMPANY_SUFFIXES:
        tokens.pop()
    return " ".join(tokens)


def build_job_id(company: str, title: str, location: str, url: str) -> str:
    return hashlib.sha256(f"{company}|{title}|{location}|{url}".encode("utf-8")).hexdigest()[:12]


def build_dedup_key(company: str, title: str, location: str) -> str:
    return f"{normalize_company_key(company)}|{title.lower()}|{location.lower()}"


def hint_mentions_company(hint: str, company: str) -> bool:
    key = normalize_company_key(company)
    if not key:
        return False
    hint_tokens = tokenize(hint)
    hint_text = f" {' '.join(hint_tokens)} "
    if f" {key} " in hint_text:
        return True
    compact = key.replace(" ", "")
    if len(compact) >= 4 and compact in "".join(hint_tokens):
        return True
    distinctive = [token for token in key.split() if len(token) >= 4 and token not in _GENERIC_COMPANY_WORDS]
    return any(token in hint_tokens for token in distinctive)


def _truncate_hint(hint: str) -> str:
    if len(hint) <= MAX_COMPANY_HINT_CHARS:
        return hint
    cut = hint[:MAX_COMPANY_HINT_CHARS].rsplit(" ", 1)[0].rstrip(",;:- ")
    return cut or hint[:MAX_COMPANY_HINT_CHARS]


def sanitize_company_hint(value: Any, company: str) -> str | None:
    text = to_non_empty_string(value)
    if not text:
        return None
    hint = normalize_line(text).strip("\"'` ")
    if not hint or hint_mentions_company(hint, company):
        return None
    return _truncate_hint(hint)


def build_company_hint(
    *,
    company: str,
    company_size: CompanySize,
    location: str,
    keywords: list[str],
    focus_tag: str | None,
) -> str:
    industry = _INDUSTRY_LABELS.get(focus_tag or "", "")
    size_phrase = _SIZE_PHRASES[company_size]
    noun = "startup" if company_size == "startup" else "company"
    lead = " ".join(part for part in (size_phrase, industry, noun) if part)

    if "remote" in location.lower():
        location_part = "hiring remotely"
    else:
        location_part = f"hiring in {location}"
    signal_keywords = [keyword for keyword in keywords if keyword not in _LOW_SIGNAL_HINT_KEYWORDS][:3]
    keyword_part = f"; work spans {', '.join(signal_keywords)}" if signal_keywords else ""

    candidates = (
        f"{lead} {location_part}{keyword_part}.",
        f"{lead}{keyword_part}.",
        f"{lead}.",
    )
    for candidate in candidates:
        hint = sanitize_company_hint(candidate, company)
        if hint:
            return hint
    return "A company hiring for this role."


def _coerce_raw_job(item: Any) -> RawJob | None:
    if isinstance(item, RawJob):
        return item
    if isinstance(item, Mapping):
        return RawJob.model_validate(dict(item))
    return None


def normalize_job_results(raw_jobs: Iterable[RawJob | Mapping[str, Any]]) -> list[JobOpening]:
    normalized: list[JobOpening] = []
    seen: set[str] = set()

    for item in raw_jobs:
        job = _coerce_raw_job(item)
        if job is None:
            continue
        company = to_non_empty_string(job.company)
        title = to_non_empty_string(job.title)
        if not company or not title:
            continue

        location = to_non_empty_string(job.location) or DEFAULT_LOCATION
        key = build_dedup_key(company, title, location)
        if key in seen:
            continue
        seen.add(key)

        source = normalize_job_source(job.source)
        rating_value = to_finite_number(job.rating)
        rating = clamp_number(rating_value if rating_value is not None else DEFAULT_RATING, 1.0, 5.0)
        keywords = normalize_keywords(job.keywords) or extract_keywords_from_text(f"{title} {company} {location}")
        company_url, source_url = resolve_job_urls(job)
        url = company_url or source_url or build_fallback_url(source, company, title, location)

        size_signal = job.company_size
        if to_non_empty_string(size_signal) is None and source == "Fortune 500":
            size_signal = "fortune"
        company_size = normalize_company_size(size_signal)

        focus_tags = extract_focus_tags(f"{title} {' '.join(keywords)}", limit=1)
        company_hint = sanitize_company_hint(job.company_hint, company) or build_company_hint(
            company=company,
            company_size=company_size,
            location=location,
            keywords=keywords,
            focus_tag=focus_tags[0] if focus_tags else None,
        )
        rationale = to_non_empty_string(job.rationale)

        normalized.append(
            JobOpening(
                id=build_job_id(company, title, location, url),
                company=company,
                title=title,
                location=location,
                source=source,
                rating=rating,
                keywords=keywords,
                url=url,
                company_url=company_url,
                source_url=source_url,
                company_size=company_size,
                company_hint=company_hint,
                match_score_hint=normalize_match_score(job.match_score),
                rationale=rationale[:280] if rationale else None,
            )
        )

    dropped = 0
    if isinstance(raw_jobs, list):
        dropped = len(raw_jobs) - len(normalized)
    if dropped:
        logger.debug("unemployedle_jobs_normalized kept=%s dropped=%s", len(normalized), dropped)
    return normalized


def apply_job_rankings(jobs: list[JobOpening], rankings: list[JobRanking]) -> list[JobOpening]:
    by_id: dict[str, JobRanking] = {}
    for ranking in rankings:
        by_id.setdefault(ranking.id, ranking)

    overlaid: list[JobOpening] = []
    for job in jobs:
        ranking = by_id.get(job.id)
        if ranking is None:
            overlaid.append(job)
            continue
        update: dict[str, Any] = {}
        score_hint = normalize_match_score(ranking.match_score)
        if score_hint is not None:
            update["match_score_hint"] = score_hint
        if ranking.company_size:
            update["company_size"] = ranking.company_size
        hint = sanitize_company_hint(ranking.company_hint, job.company)
        if hint:
            update["company_hint"] = hint
        if ranking.rationale:
            update["rationale"] = ranking.rationale[:280]
        overlaid.append(job.model_copy(update=update))
    return overlaid
