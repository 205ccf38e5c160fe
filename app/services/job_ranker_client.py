from __future__ import annotations

import json
import logging
from typing import Protocol

from openai import AsyncOpenAI

from app.core.config import settings
from app.features.resume_profile import build_resume_profile, extract_focus_tags
from app.normalize.llm_payloads import extract_rankings, normalize_ranking, safe_parse_json
from app.normalize.utils import truncate_text
from app.schemas.unemployedle import JobOpening, JobRanking

from .unemployedle_llm import json_completion_content

logger = logging.getLogger(__name__)

MAX_RANKING_JOBS = 30
_MAX_HIGHLIGHT_CHARS = 160

RANKING_SYSTEM_PROMPT = (
    "You are a job ranking assistant. Rank ONLY the provided jobs based on the resume fit. "
    "Prioritize prior job responsibilities and focus areas over raw keyword overlap. "
    "Return JSON only."
)

RANKING_INSTRUCTIONS = (
    "Return JSON with a rankings array. Each ranking must include: id (from the list), "
    "matchScore (0-100), companySize (large|mid|startup), and companyHint (<=15 words, no "
    "company name). Make companyHint specific using ONLY the provided fields (size, industry "
    "signals, location, focus keywords, or focus tags). Do not invent external facts. Do not "
    "add or remove jobs. If unsure about companySize or companyHint, set them to null.\n\n"
    "Scoring guidance:\n"
    "- Use resume experience highlights and job keywords/focusTags more than the skills list.\n"
    "- Infer focus areas (e.g., backend vs frontend) from the resume job descriptions and weight "
    "those matches higher.\n"
    "- If the resume is backend-heavy, backend roles should score higher than frontend roles.\n"
    "- If a desired title is given, roles close to it should score higher."
)


class JobRanker(Protocol):
    async def rank_jobs(
        self, resume_text: str, jobs: list[JobOpening], desired_title: str | None = None
    ) -> list[JobRanking]:
        """Return per-job overlays keyed by job id."""


def build_resume_summary(resume_text: str) -> str:
    profile = build_resume_profile(resume_text)
    highlights = [truncate_text(line, _MAX_HIGHLIGHT_CHARS) for line in profile.experience_highlights if line]
    if not highlights:
        highlights = [
            truncate_text(line.strip(), _MAX_HIGHLIGHT_CHARS)
            for line in profile.experience_text.splitlines()
            if line.strip()
        ][:6]

    parts: list[str] = []
    if profile.focus_tags:
        parts.append(f"Focus areas: {', '.join(profile.focus_tags)}")
    if profile.experience_keywords:
        parts.append(f"Experience keywords: {', '.join(profile.experience_keywords[:10])}")
    if highlights:
        parts.append("Experience highlights:\n- " + "\n- ".join(highlights))
    return "\n".join(parts) if parts else "Experience summary: Not available."


def build_job_payload(jobs: list[JobOpening]) -> list[dict[str, object]]:
    return [
        {
            "id": job.id,
            "company": job.company,
            "title": job.title,
            "location": job.location,
            "source": job.source,
            "companySize": job.company_size,
            "keywords": job.keywords[:8],
            "focusTags": extract_focus_tags(f"{job.title} {' '.join(job.keywords)}".strip(), limit=2),
        }
        for job in jobs[:MAX_RANKING_JOBS]
    ]


class ChatGptJobRanker:
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
        self._max_tokens = max_tokens or settings.openai_ranking_max_tokens
        self._max_resume_chars = max_resume_chars or settings.unemployedle_max_resume_chars

    def build_user_prompt(self, resume_text: str, jobs: list[JobOpening], desired_title: str | None = None) -> str:
        parts = [
            RANKING_INSTRUCTIONS,
            f"Resume experience summary:\n{build_resume_summary(resume_text)}",
        ]
        if desired_title and desired_title.strip():
            parts.append(f"Desired job title: {desired_title.strip()}")
        parts.append(f"Resume (full):\n{truncate_text(resume_text, self._max_resume_chars)}")
        parts.append(f"Jobs:\n{json.dumps(build_job_payload(jobs), ensure_ascii=False)}")
        return "\n\n".join(parts)

    async def rank_jobs(
        self, resume_text: str, jobs: list[JobOpening], desired_title: str | None = None
    ) -> list[JobRanking]:
        if not jobs:
            return []
        content = await json_completion_content(
            system_prompt=RANKING_SYSTEM_PROMPT,
            user_prompt=self.build_user_prompt(resume_text, jobs, desired_title),
            max_output_tokens=self._max_tokens,
            purpose="ranking",
            client=self._client,
            model=self._model,
        )
        rankings = [ranking for ranking in map(normalize_ranking, extract_rankings(safe_parse_json(content))) if ranking]
        logger.info("job_ranking_completed jobs=%s rankings=%s", len(jobs), len(rankings))
        return rankings
