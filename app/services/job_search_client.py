from __future__ import annotations

import logging
from typing import Protocol

from openai import AsyncOpenAI

from app.core.config import settings
from app.core.errors import UpstreamUnavailableError
from app.normalize.llm_payloads import extract_search_result, safe_parse_json
from app.normalize.utils import truncate_text
from app.schemas.unemployedle import JobSearchResult, SearchOptions

from .unemployedle_llm import json_completion_content

logger = logging.getLogger(__name__)

SEARCH_SYSTEM_PROMPT = (
    "You are a job search engine. Use the resume to infer target industries, job families, "
    "and seniority. Return openings aligned to those industries (not just software engineering) "
    "on LinkedIn, Glassdoor, Indeed, and company career pages. Respond with JSON only."
)

SEARCH_INSTRUCTIONS = (
    "Return JSON with fields summary, searchQueries, and jobs. "
    "summary: 1-2 sentences (<=35 words) about how the search was performed and which "
    "industries or functions were targeted. "
    "searchQueries: 5-8 short queries (<=6 words each) that reflect the resume focus. "
    "jobs: 8-12 openings aligned to the resume focus with company, title, location, source, "
    "rating (1-5), keywords (3-6 items), companyUrl, sourceUrl, companyHint, companySize, "
    "matchScore (0-100), and rationale (<=20 words). "
    "Each job must be a unique company (no repeats). "
    "companySize must be one of: large, mid, startup. Return 4 per size if possible. "
    "companyUrl must be a direct job posting on the hiring company careers/ATS site "
    "(Workday, Greenhouse, Lever, SmartRecruiters, etc); if unavailable set it to null. "
    "sourceUrl must be a direct job posting on the third-party site named in source "
    "(LinkedIn /jobs/view/<id>, Indeed /viewjob?jk=..., Glassdoor /job-listing/...?jl=...); "
    "if you cannot provide a job ID set it to null. "
    "Do not fabricate URLs and do not use search-result or Google URLs; return fewer jobs "
    "instead of guessing. "
    "companyHint must describe what the company does in <=15 words and must not include "
    "the company name. Keep values concise and return JSON only."
)


class JobSearchClient(Protocol):
    async def search_jobs(self, resume_text: str, options: SearchOptions | None = None) -> JobSearchResult:
        """Return raw job candidates; raise UpstreamUnavailableError instead of returning nothing."""


def build_search_preferences(options: SearchOptions | None) -> str:
    if options is None:
        return ""
    locations: list[str] = []
    if options.include_remote:
        locations.append("remote roles")
    if options.include_local:
        locations.append("roles near the candidate's location from the resume")
    if options.include_specific and options.specific_location:
        locations.append(f"roles in {options.specific_location.strip()}")

    lines: list[str] = []
    if locations:
        lines.append(f"Location preferences: {'; '.join(locations)}.")
    if options.desired_title and options.desired_title.strip():
        lines.append(f"Desired job title: {options.desired_title.strip()}. Prefer openings close to this title.")
    return "\n".join(lines)


class ChatGptJobSearchClient:
    def __init__(
        self,
        *,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        max_resume_chars: int | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens or settings.openai_max_tokens
        self._max_resume_chars = max_resume_chars or settings.unemployedle_max_resume_chars

    def build_user_prompt(self, resume_text: str, options: SearchOptions | None = None) -> str:
        preferences = build_search_preferences(options)
        parts = [SEARCH_INSTRUCTIONS]
        if preferences:
            parts.append(preferences)
        parts.append(f"Resume:\n{truncate_text(resume_text, self._max_resume_chars)}")
        return "\n\n".join(parts)

    async def search_jobs(self, resume_text: str, options: SearchOptions | None = None) -> JobSearchResult:
        content = await json_completion_content(
            system_prompt=SEARCH_SYSTEM_PROMPT,
            user_prompt=self.build_user_prompt(resume_text, options),
            max_output_tokens=self._max_tokens,
            purpose="search",
            client=self._client,
            model=self._model,
        )
        extracted = extract_search_result(safe_parse_json(content))
        if extracted is None:
            logger.warning("job_search_unparseable content_len=%s", len(content))
            raise UpstreamUnavailableError("ChatGPT response was missing job results.", code="llm_invalid")
        logger.info(
            "job_search_completed jobs=%s queries=%s", len(extracted.jobs), len(extracted.search_queries)
        )
        return extracted
