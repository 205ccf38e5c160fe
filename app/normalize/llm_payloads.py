from __future__ import annotations

import json
import re
from typing import Any

from app.schemas.unemployedle import JobRanking, JobSearchResult, RawJob

from .normalize_jobs import normalize_company_size
from .utils import to_finite_number, to_non_empty_string

DEFAULT_SELECTION_SUMMARY = "ChatGPT searched job sites for the best resume matches."

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_JOB_MARKER_KEYS = ("company", "title", "location", "source")
_NESTED_RESULT_KEYS = ("data", "result", "results", "jobResults", "openings")
_SUMMARY_KEYS = ("data", "result", "results")


def safe_parse_json(text: str) -> Any:
    """Parse model output that may be wrapped in Markdown fences or surrounded by prose."""
    cleaned = _FENCE_RE.sub("", text or "").replace("```", "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            return None
    return None


def looks_like_job(value: Any) -> bool:
    return isinstance(value, dict) and any(key in value for key in _JOB_MARKER_KEYS)


def find_jobs_array(value: Any) -> list[Any] | None:
    if isinstance(value, list):
        return value if any(looks_like_job(item) for item in value) else None
    if not isinstance(value, dict):
        return None

    jobs = value.get("jobs")
    if isinstance(jobs, list):
        return jobs
    if isinstance(jobs, str):
        try:
            parsed = json.loads(jobs)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list) and any(looks_like_job(item) for item in parsed):
            return parsed
    if isinstance(jobs, dict):
        values = list(jobs.values())
        if any(looks_like_job(item) for item in values):
            return values

    for candidate in value.values():
        if isinstance(candidate, list) and any(looks_like_job(item) for item in candidate):
            return candidate
    return None


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def extract_search_result(parsed: Any) -> JobSearchResult | None:
    root = _as_dict(parsed)
    if root is None:
        return None

    nested = [root] + [_as_dict(root.get(key)) for key in _NESTED_RESULT_KEYS]
    candidates = [candidate for candidate in nested if candidate]

    jobs: list[Any] | None = None
    for candidate in candidates:
        jobs = find_jobs_array(candidate)
        if jobs:
            break
    if not jobs:
        return None

    summary_sources = [root] + [_as_dict(root.get(key)) or {} for key in _SUMMARY_KEYS]
    summary = next(
        (text for text in (to_non_empty_string(source.get("summary")) for source in summary_sources) if text),
        "",
    )

    queries: list[Any] = []
    for source in summary_sources:
        value = source.get("searchQueries")
        if isinstance(value, list) and value:
            queries = value
            break

    return JobSearchResult(
        summary=summary,
        search_queries=[str(query).strip() for query in queries if str(query).strip()],
        jobs=[RawJob.model_validate(item) for item in jobs if isinstance(item, dict)],
    )


def extract_rankings(parsed: Any) -> list[Any]:
    root = _as_dict(parsed)
    if root is None:
        return []
    data = _as_dict(root.get("data")) or {}
    result = _as_dict(root.get("result")) or {}
    candidates = (
        root.get("rankings"),
        root.get("results"),
        root.get("jobs"),
        root.get("data"),
        data.get("rankings"),
        result.get("rankings"),
    )
    for candidate in candidates:
        if isinstance(candidate, list):
            return candidate
    return []


def normalize_ranking(value: Any) -> JobRanking | None:
    if not isinstance(value, dict):
        return None
    ranking_id = to_non_empty_string(value.get("id"))
    if not ranking_id:
        return None

    match_score = value.get("matchScore", value.get("match_score"))
    size_value = to_non_empty_string(value.get("companySize", value.get("company_size")))
    return JobRanking(
        id=ranking_id,
        match_score=to_finite_number(match_score),
        company_size=normalize_company_size(size_value) if size_value else None,
        company_hint=to_non_empty_string(value.get("companyHint", value.get("company_hint"))),
        rationale=to_non_empty_string(value.get("rationale")),
    )


def build_selection_summary(result: JobSearchResult, suffix: str) -> str:
    summary = to_non_empty_string(result.summary) or DEFAULT_SELECTION_SUMMARY
    queries = [query.strip() for query in result.search_queries if query.strip()]
    query_snippet = f"Search queries: {' | '.join(queries[:3])}." if queries else ""
    return " ".join(part for part in (summary, query_snippet, suffix) if part)
