from __future__ import annotations

import re
from typing import Any
from urllib.parse import ParseResult, parse_qs, quote, urlparse

import httpx

from app.core.config.scoring import get_scoring_value
from app.schemas.unemployedle import JobSource, RawJob

JOB_BOARD_HOSTS = ("linkedin.com", "glassdoor.com", "indeed.com")

_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_LINKEDIN_VIEW_RE = re.compile(r"^/jobs/view/(?:[^/]*-)?(\d+)")
_URI_COMPONENT_SAFE = "-_.!~*'()"


def _min_job_id_length() -> int:
    return int(get_scoring_value("link_verification.min_job_id_length", 6))


def normalize_hostname(host: str) -> str:
    lowered = (host or "").lower()
    return lowered[4:] if lowered.startswith("www.") else lowered


def host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def is_job_board_host(host: str) -> bool:
    normalized = normalize_hostname(host)
    return any(host_matches(normalized, domain) for domain in JOB_BOARD_HOSTS)


def normalize_http_url(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not _HTTP_URL_RE.match(trimmed) or any(char.isspace() or not char.isprintable() for char in trimmed):
        return None
    try:
        parsed = urlparse(trimmed)
        hostname = parsed.hostname
        if not hostname or "." not in hostname or parsed.port == 0:
            return None
        # Same parser the verifier fetches with; rejects bad ports and characters.
        httpx.URL(trimmed)
        # Resolvers decode punycode labels, so "xn--" with an empty payload must fail here.
        hostname.encode("idna").decode("idna")
    except (ValueError, httpx.InvalidURL, UnicodeError):
        return None
    return trimmed


def _query(parsed: ParseResult) -> dict[str, list[str]]:
    return parse_qs(parsed.query, keep_blank_values=True)


def _first_param(params: dict[str, list[str]], *names: str) -> str:
    for name in names:
        values = params.get(name)
        if values:
            return values[0].strip()
    return ""


def is_job_board_search_url(parsed: ParseResult) -> bool:
    host = normalize_hostname(parsed.hostname or "")
    path = parsed.path.lower()
    params = _query(parsed)

    if host_matches(host, "linkedin.com"):
        return path.startswith("/jobs/search") and "keywords" in params
    if host_matches(host, "glassdoor.com"):
        return "/job" in path and path.endswith("jobs.htm") and "sc.keyword" in params
    if host_matches(host, "indeed.com"):
        return path.startswith("/jobs") and "q" in params
    if host_matches(host, "google.com"):
        return path.startswith("/search") and "q" in params
    return False


def is_job_board_detail_url(parsed: ParseResult) -> bool:
    host = normalize_hostname(parsed.hostname or "")
    path = parsed.path.lower()
    params = _query(parsed)
    min_length = _min_job_id_length()

    if host_matches(host, "linkedin.com"):
        match = _LINKEDIN_VIEW_RE.match(path)
        return bool(match and len(match.group(1)) >= min_length)
    if host_matches(host, "indeed.com"):
        job_key = _first_param(params, "jk")
        return len(job_key) >= min_length and path.startswith(("/viewjob", "/rc/clk", "/pagead/clk"))
    if host_matches(host, "glassdoor.com"):
        listing_id = _first_param(params, "jl", "jobListingId")
        return "/job-listing/" in path and len(listing_id) >= min_length
    return False


def normalize_company_url(value: Any) -> str | None:
    normalized = normalize_http_url(value)
    if not normalized:
        return None
    parsed = urlparse(normalized)
    if is_job_board_host(parsed.hostname or ""):
        return None
    host = normalize_hostname(parsed.hostname or "")
    if host_matches(host, "google.com") and parsed.path.lower().startswith("/search"):
        return None
    return normalized


def normalize_source_url(value: Any) -> str | None:
    normalized = normalize_http_url(value)
    if not normalized:
        return None
    parsed = urlparse(normalized)
    if not is_job_board_host(parsed.hostname or ""):
        return None
    if is_job_board_search_url(parsed):
        return None
    return normalized if is_job_board_detail_url(parsed) else None


def resolve_job_urls(job: RawJob) -> tuple[str | None, str | None]:
    """Return (company_url, source_url); a legacy `url` fills whichever side its host belongs to."""
    company_url = normalize_company_url(job.company_url)
    source_url = normalize_source_url(job.source_url)

    legacy_url = normalize_http_url(job.url)
    if legacy_url:
        on_job_board = is_job_board_host(urlparse(legacy_url).hostname or "")
        if not company_url and not on_job_board:
            company_url = normalize_company_url(legacy_url)
        if not source_url and on_job_board:
            source_url = normalize_source_url(legacy_url)

    return company_url, source_url


def _encode_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_fallback_url(source: JobSource, company: str, title: str, location: str) -> str:
    query = _encode_component(f"{title} {company} {location}".strip())
    if source == "LinkedIn":
        return f"https://www.linkedin.com/jobs/search/?keywords={query}"
    if source == "Glassdoor":
        return f"https://www.glassdoor.com/Job/jobs.htm?sc.keyword={query}"
    if source == "Indeed":
        return f"https://www.indeed.com/jobs?q={query}"
    if source == "Company Careers":
        return f"https://www.google.com/search?q={_encode_component(f'{company} careers {title}')}"
    return f"https://www.google.com/search?q={query}"
