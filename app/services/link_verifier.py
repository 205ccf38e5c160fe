from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Literal
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from app.core.config.scoring import get_scoring_value
from app.normalize.job_urls import host_matches, is_job_board_search_url, normalize_hostname, normalize_http_url
from app.normalize.normalize_jobs import build_job_id, normalize_company_key
from app.normalize.utils import tokenize
from app.schemas.unemployedle import JobOpening

logger = logging.getLogger(__name__)

UrlStatus = Literal["valid", "invalid"]

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/122.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

ATS_HOSTS = (
    "greenhouse.io",
    "lever.co",
    "myworkdayjobs.com",
    "smartrecruiters.com",
    "ashbyhq.com",
    "workable.com",
    "icims.com",
    "jobvite.com",
    "bamboohr.com",
    "recruitee.com",
    "taleo.net",
    "successfactors.com",
)

NOT_FOUND_PHRASES = (
    "page not found",
    "job not found",
    "404 not found",
    "this job is no longer available",
    "job is no longer available",
    "position is no longer available",
    "no longer accepting applications",
    "position has been filled",
    "this job has expired",
    "job posting has expired",
    "posting has been removed",
    "this position is closed",
    "this job is closed",
    "the page you are looking for",
    "we couldn't find that page",
    "we can't find that page",
)

JOB_PAGE_PHRASES = (
    "responsibilities",
    "qualifications",
    "requirements",
    "apply now",
    "apply for this job",
    "submit application",
    "job description",
    "about the role",
    "what you'll do",
)

_BLOCKED_STATUSES = {401, 403, 429}
_GONE_STATUSES = {404, 410}
_TEXT_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain")
_NUMERIC_ID_RE = re.compile(r"\d{4,}")
_GENERIC_PATH_SEGMENTS = {
    "jobs",
    "job",
    "careers",
    "career",
    "en",
    "us",
    "en-us",
    "view",
    "viewjob",
    "apply",
    "position",
    "positions",
    "openings",
    "opening",
    "job-listing",
    "details",
    "posting",
    "postings",
    "search",
    "www",
}
_MAX_BODY_BYTES = 2_000_000
_LINK_ATTRIBUTES = ("href", "src", "action")


def _significant_tokens(text: str) -> set[str]:
    return set(tokenize(text, min_length=3))


def title_matches(expected_title: str, candidate_tokens: set[str]) -> bool:
    expected = _significant_tokens(expected_title)
    min_shared = int(get_scoring_value("link_verification.min_shared_title_tokens", 2))
    required = min(min_shared, len(expected))
    if required == 0:
        return True
    return len(expected & candidate_tokens) >= required


def company_matches(expected_company: str, candidate_tokens: set[str]) -> bool:
    key_tokens = normalize_company_key(expected_company).split()
    if not key_tokens:
        return False
    return all(token in candidate_tokens for token in key_tokens)


def _numeric_ids(value: str) -> set[str]:
    return set(_NUMERIC_ID_RE.findall(value or ""))


def _path_segments(url: str) -> set[str]:
    try:
        path = urlparse(url).path
    except ValueError:
        return set()
    segments = {segment.lower() for segment in path.split("/") if segment}
    return {segment for segment in segments if len(segment) >= 3 and segment not in _GENERIC_PATH_SEGMENTS}


def canonical_matches(canonical: str, targets: list[str]) -> bool:
    canonical_ids = _numeric_ids(canonical)
    canonical_segments = _path_segments(canonical)
    for target in targets:
        if canonical_ids & _numeric_ids(target):
            return True
        if canonical_segments & _path_segments(target):
            return True
    return False


def identifier_matches(identifier: str, targets: list[str]) -> bool:
    identifier = identifier.strip().lower()
    if not identifier:
        return False
    identifier_ids = _numeric_ids(identifier)
    for target in targets:
        lowered = target.lower()
        if identifier_ids & _numeric_ids(lowered):
            return True
        if len(identifier) >= 4 and identifier in lowered:
            return True
    return False


def iter_json_nodes(payload: Any) -> list[dict[str, Any]]:
    nodes: list[dict[str, Any]] = []
    if isinstance(payload, dict):
        nodes.append(payload)
        graph = payload.get("@graph")
        if isinstance(graph, (list, dict)):
            nodes.extend(iter_json_nodes(graph))
    elif isinstance(payload, list):
        for item in payload:
            nodes.extend(iter_json_nodes(item))
    return nodes


def _is_job_posting(node: dict[str, Any]) -> bool:
    type_value = node.get("@type")
    if isinstance(type_value, str):
        types = [type_value]
    elif isinstance(type_value, list):
        types = [str(item) for item in type_value]
    else:
        return False
    return any(item.replace(" ", "").lower().rsplit("/", 1)[-1] == "jobposting" for item in types)


def extract_job_postings(soup: BeautifulSoup) -> list[dict[str, Any]]:
    postings: list[dict[str, Any]] = []
    scripts = soup.find_all("script", attrs={"type": re.compile(r"ld\+json", re.IGNORECASE)})
    for script in scripts:
        raw_json = (script.string or script.get_text() or "").strip()
        if not raw_json:
            continue
        try:
            parsed = json.loads(raw_json)
        except json.JSONDecodeError:
            continue
        postings.extend(node for node in iter_json_nodes(parsed) if _is_job_posting(node))
    return postings


def _organization_name(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        name = value.get("name")
        return name if isinstance(name, str) else ""
    if isinstance(value, list):
        return " ".join(_organization_name(item) for item in value).strip()
    return ""


def _identifier_value(value: Any) -> str:
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, dict):
        return _identifier_value(value.get("value") or value.get("name"))
    if isinstance(value, list):
        return " ".join(_identifier_value(item) for item in value).strip()
    return ""


def job_posting_matches(node: dict[str, Any], job: JobOpening, targets: list[str]) -> bool:
    title = node.get("title") or node.get("name")
    if not isinstance(title, str) or not title_matches(job.title, _significant_tokens(title)):
        return False

    organization = _organization_name(node.get("hiringOrganization"))
    if organization and not company_matches(job.company, set(tokenize(organization))):
        return False

    canonical = node.get("url") if isinstance(node.get("url"), str) else ""
    identifier = _identifier_value(node.get("identifier"))
    if canonical or identifier:
        return bool(
            (canonical and canonical_matches(canonical, targets))
            or (identifier and identifier_matches(identifier, targets))
        )
    return True


def _url_host(url: str) -> str:
    try:
        return normalize_hostname(urlparse(url.strip()).hostname or "")
    except ValueError:
        return ""


def linked_hosts(soup: BeautifulSoup) -> set[str]:
    hosts: set[str] = set()
    for tag in soup.find_all(True):
        for attribute in _LINK_ATTRIBUTES:
            value = tag.get(attribute)
            if isinstance(value, str) and value:
                host = _url_host(value)
                if host:
                    hosts.add(host)
    return hosts


def _is_ats_host(host: str) -> bool:
    return any(host_matches(host, ats) for ats in ATS_HOSTS)


def _has_job_indicators(page_text: str, raw_html: str, targets: list[str], page_hosts: set[str]) -> bool:
    if "schema.org/jobposting" in raw_html:
        return True
    if any(phrase in page_text for phrase in JOB_PAGE_PHRASES):
        return True
    if any(_is_ats_host(_url_host(target)) for target in targets):
        return True
    return any(_is_ats_host(host) for host in page_hosts)


def _redirected_away(requested: str, final: str) -> bool:
    requested_parsed = urlparse(requested)
    final_parsed = urlparse(final)
    if is_job_board_search_url(final_parsed):
        return True
    requested_path = requested_parsed.path.strip("/")
    final_path = final_parsed.path.strip("/")
    return bool(requested_path) and not final_path


def classify_job_page(raw_html: str, job: JobOpening, requested_url: str, final_url: str) -> UrlStatus:
    """Decide whether a fetched page is a live posting for this job."""
    soup = BeautifulSoup(raw_html, "html.parser")
    postings = extract_job_postings(soup)
    page_hosts = linked_hosts(soup)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    page_text = " ".join(soup.get_text(" ", strip=True).split()).lower()

    if any(phrase in page_text for phrase in NOT_FOUND_PHRASES):
        return "invalid"

    targets = list(dict.fromkeys([requested_url, final_url]))
    if postings:
        return "valid" if any(job_posting_matches(node, job, targets) for node in postings) else "invalid"

    page_tokens = set(tokenize(page_text))
    if not title_matches(job.title, page_tokens) or not company_matches(job.company, page_tokens):
        return "invalid"
    return "valid" if _has_job_indicators(page_text, raw_html.lower(), targets, page_hosts) else "invalid"


async def _read_capped(response: httpx.Response, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        chunks.append(chunk[: max_bytes - total])
        total += len(chunks[-1])
        if total >= max_bytes:
            break
    return b"".join(chunks)


class LinkVerifier:
    """Confirms candidate job URLs are live, specific postings before they reach a player."""

    def __init__(
        self,
        *,
        timeout_s: float = 4.0,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._transport = transport
        self._headers = headers or BROWSER_HEADERS

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_s,
            follow_redirects=True,
            headers=self._headers,
            transport=self._transport,
        )

    async def check_url(self, url: str, job: JobOpening, client: httpx.AsyncClient | None = None) -> UrlStatus:
        if client is None:
            async with self._client() as owned_client:
                return await self._check(owned_client, url, job)
        return await self._check(client, url, job)

    async def _check(self, client: httpx.AsyncClient, url: str, job: JobOpening) -> UrlStatus:
        if normalize_http_url(url) is None:
            logger.debug("link_verify_malformed_url url=%r", url)
            return "invalid"
        try:
            async with client.stream("GET", url) as response:
                status = response.status_code
                if status in _GONE_STATUSES or status in _BLOCKED_STATUSES or status >= 500 or not 200 <= status < 400:
                    logger.debug("link_verify_bad_status url=%s status=%s", url, status)
                    return "invalid"

                content_type = (response.headers.get("content-type") or "").lower()
                if not any(kind in content_type for kind in _TEXT_CONTENT_TYPES):
                    logger.debug("link_verify_bad_content_type url=%s content_type=%s", url, content_type)
                    return "invalid"

                final_url = str(response.url)
                if _redirected_away(url, final_url):
                    logger.debug("link_verify_redirected_away url=%s final_url=%s", url, final_url)
                    return "invalid"

                body = await _read_capped(response, _MAX_BODY_BYTES)
                encoding = response.charset_encoding or "utf-8"
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeError) as exc:
            logger.debug("link_verify_request_failed url=%s error=%s", url, exc.__class__.__name__)
            return "invalid"

        try:
            raw_html = body.decode(encoding, errors="replace")
        except LookupError:
            raw_html = body.decode("utf-8", errors="replace")
        return classify_job_page(raw_html, job, url, final_url)

    async def resolve_verified_job(
        self, job: JobOpening, client: httpx.AsyncClient | None = None
    ) -> JobOpening | None:
        candidates = [url for url in dict.fromkeys([job.company_url, job.source_url]) if url]
        for url in candidates:
            if await self.check_url(url, job, client=client) == "valid":
                return job.model_copy(
                    update={"url": url, "id": build_job_id(job.company, job.title, job.location, url)}
                )
        return None

    async def verify_jobs(self, jobs: list[JobOpening]) -> list[JobOpening]:
        if not jobs:
            return []
        async with self._client() as client:
            results = await asyncio.gather(*(self.resolve_verified_job(job, client=client) for job in jobs))
        verified = [job for job in results if job is not None]
        logger.info("link_verification_complete candidates=%s verified=%s", len(jobs), len(verified))
        return verified
