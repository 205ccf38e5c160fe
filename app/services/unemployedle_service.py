from __future__ import annotations

import hashlib
import json
import logging
import random
import time

from app.core.config import Settings, settings
from app.core.errors import GameNotFoundError, InvalidGameInputError, NoMatchesFoundError
from app.core.memory_store import Clock, GameStore, TTLCache
from app.features.resume_profile import build_resume_profile
from app.normalize.llm_payloads import build_selection_summary
from app.normalize.normalize_jobs import apply_job_rankings, normalize_job_results
from app.schemas.unemployedle import (
    GuessResponse,
    JobOpening,
    JobSearchResult,
    RankedJob,
    SearchOptions,
    StartResponse,
    TopJobItem,
    TopJobsResponse,
)
from app.semantic.match_score import MatchWeights, score_jobs

from .job_curation import CurationMode, curate_jobs, load_curation_mode
from .job_ranker_client import ChatGptJobRanker, JobRanker
from .job_search_client import ChatGptJobSearchClient, JobSearchClient
from .link_verifier import LinkVerifier
from .unemployedle_game import apply_guess, build_start_response, new_game

logger = logging.getLogger(__name__)

GAME_SUMMARY_SUFFIX = "Selected a random company from the top matches."
TOP_JOBS_SUMMARY_SUFFIX = "Showing the top matches."


def validate_search_options(options: SearchOptions | None) -> SearchOptions:
    options = options or SearchOptions()
    specific_location = (options.specific_location or "").strip() or None
    desired_title = (options.desired_title or "").strip() or None

    if options.include_specific and not specific_location:
        raise InvalidGameInputError(
            "Specific location is required when includeSpecific is set.", code="invalid_options"
        )
    if not (options.include_remote or options.include_local or options.include_specific):
        raise InvalidGameInputError("Select at least one location preference.", code="invalid_options")

    return SearchOptions(
        include_remote=options.include_remote,
        include_local=options.include_local,
        include_specific=options.include_specific,
        specific_location=specific_location if options.include_specific else None,
        desired_title=desired_title,
    )


def build_cache_key(resume_text: str, options: SearchOptions) -> str:
    canonical_options = json.dumps(options.model_dump(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(f"{resume_text}\n{canonical_options}".encode("utf-8")).hexdigest()


def _has_letters(company: str) -> bool:
    return any(("a" <= char <= "z") or ("A" <= char <= "Z") for char in company)


def _top_job_item(job: RankedJob) -> TopJobItem:
    return TopJobItem(
        id=job.id,
        company=job.company,
        title=job.title,
        location=job.location,
        source=job.source,
        rating=job.rating,
        match_score=round(job.match_score * 100),
        url=job.url,
        company_size=job.company_size,
    )


class UnemployedleService:
    """Runs search → normalize → verify → rank → score → curate and owns the in-memory games."""

    def __init__(
        self,
        *,
        search_client: JobSearchClient,
        verifier: LinkVerifier,
        ranker: JobRanker | None = None,
        games: GameStore | None = None,
        search_cache: TTLCache[JobSearchResult] | None = None,
        top_jobs_cache: TTLCache[TopJobsResponse] | None = None,
        clock: Clock = time.monotonic,
        rng: random.Random | None = None,
        max_guesses: int = 7,
        weights: MatchWeights | None = None,
        game_mode: CurationMode | None = None,
        top_jobs_mode: CurationMode | None = None,
    ) -> None:
        self._search_client = search_client
        self._verifier = verifier
        self._ranker = ranker
        self._clock = clock
        # Stores define __len__, so an empty injected store is falsy.
        self._games = games if games is not None else GameStore()
        self._search_cache = (
            search_cache if search_cache is not None else TTLCache(ttl_s=600, max_entries=30, clock=clock)
        )
        self._top_jobs_cache = (
            top_jobs_cache if top_jobs_cache is not None else TTLCache(ttl_s=600, max_entries=30, clock=clock)
        )
        self._rng = rng or random.Random()
        self._max_guesses = max_guesses
        self._weights = weights
        self._game_mode = game_mode
        self._top_jobs_mode = top_jobs_mode

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "UnemployedleService":
        ranker = ChatGptJobRanker() if config.job_ranker_enabled else None
        return cls(
            search_client=ChatGptJobSearchClient(),
            verifier=LinkVerifier(timeout_s=config.link_verify_timeout_s),
            ranker=ranker,
            games=GameStore(max_games=config.unemployedle_max_games),
            search_cache=TTLCache(
                ttl_s=config.unemployedle_cache_ttl_s, max_entries=config.unemployedle_cache_max_entries
            ),
            top_jobs_cache=TTLCache(
                ttl_s=config.unemployedle_cache_ttl_s, max_entries=config.unemployedle_cache_max_entries
            ),
            max_guesses=config.unemployedle_max_guesses,
        )

    @property
    def games(self) -> GameStore:
        return self._games

    async def start_game(self, resume_text: str, options: SearchOptions | None = None) -> StartResponse:
        resume_text, options = self._prepare(resume_text, options)
        mode = self._game_mode or load_curation_mode("game")
        ranked_jobs, search_result = await self._rank_jobs(resume_text, options, mode)

        playable = [job for job in ranked_jobs if _has_letters(job.company)]
        if not playable:
            raise NoMatchesFoundError("No job matches were returned.")
        selected = self._rng.choice(playable)

        game = new_game(
            selected,
            max_guesses=self._max_guesses,
            selection_summary=build_selection_summary(search_result, GAME_SUMMARY_SUFFIX),
            created_at=self._clock(),
        )
        self._games.add(game)
        logger.info(
            "unemployedle_game_started game_id=%s pool=%s match_score=%.2f",
            game.id,
            len(playable),
            selected.match_score,
        )
        return build_start_response(game, "in_progress")

    async def get_top_jobs(self, resume_text: str, options: SearchOptions | None = None) -> TopJobsResponse:
        resume_text, options = self._prepare(resume_text, options)
        cache_key = build_cache_key(resume_text, options)
        cached = self._top_jobs_cache.get(cache_key)
        if cached is not None:
            logger.info("unemployedle_top_jobs_cache_hit key=%s", cache_key[:12])
            return cached

        mode = self._top_jobs_mode or load_curation_mode("top_jobs")
        ranked_jobs, search_result = await self._rank_jobs(resume_text, options, mode)
        response = TopJobsResponse(
            selection_summary=build_selection_summary(search_result, TOP_JOBS_SUMMARY_SUFFIX),
            jobs=[_top_job_item(job) for job in ranked_jobs],
        )
        self._top_jobs_cache.set(cache_key, response)
        return response

    def guess(self, game_id: str, letter: str) -> GuessResponse:
        game = self._games.get((game_id or "").strip())
        if game is None:
            raise GameNotFoundError("Game not found")
        response = apply_guess(game, letter)
        if response.status != "in_progress" and not response.already_guessed:
            logger.info("unemployedle_game_finished game_id=%s status=%s", game.id, response.status)
        return response

    def _prepare(self, resume_text: str, options: SearchOptions | None) -> tuple[str, SearchOptions]:
        cleaned = (resume_text or "").strip()
        if not cleaned:
            raise InvalidGameInputError("Resume text is required.", code="missing_resume")
        return cleaned, validate_search_options(options)

    async def _get_search_result(self, resume_text: str, options: SearchOptions) -> JobSearchResult:
        cache_key = build_cache_key(resume_text, options)
        cached = self._search_cache.get(cache_key)
        if cached is not None:
            logger.info("unemployedle_search_cache_hit key=%s", cache_key[:12])
            return cached

        result = await self._search_client.search_jobs(resume_text, options)
        self._search_cache.set(cache_key, result)
        return result

    async def _apply_rankings(
        self, resume_text: str, jobs: list[JobOpening], desired_title: str | None
    ) -> list[JobOpening]:
        if self._ranker is None:
            return jobs
        try:
            rankings = await self._ranker.rank_jobs(resume_text, jobs, desired_title)
        except Exception as exc:  # noqa: BLE001
            logger.warning("job_ranker_failed jobs=%s error=%s", len(jobs), exc)
            return jobs
        return apply_job_rankings(jobs, rankings)

    async def _rank_jobs(
        self, resume_text: str, options: SearchOptions, mode: CurationMode
    ) -> tuple[list[RankedJob], JobSearchResult]:
        profile = build_resume_profile(resume_text)
        search_result = await self._get_search_result(resume_text, options)

        normalized = normalize_job_results(search_result.jobs)
        if not normalized:
            logger.warning("unemployedle_no_usable_jobs raw=%s", len(search_result.jobs))
            raise NoMatchesFoundError("No job matches were returned.")

        verified = await self._verifier.verify_jobs(normalized)
        if not verified:
            logger.warning("unemployedle_no_verified_jobs candidates=%s", len(normalized))
            raise NoMatchesFoundError("No live job postings could be verified.")

        overlaid = await self._apply_rankings(resume_text, verified, options.desired_title)
        ranked = score_jobs(overlaid, profile, options.desired_title, self._weights)
        curated = curate_jobs(ranked, mode)
        if not curated:
            logger.warning("unemployedle_no_jobs_above_threshold scored=%s", len(ranked))
            raise NoMatchesFoundError("No job matches cleared the match threshold.")

        logger.info(
            "unemployedle_jobs_ranked raw=%s normalized=%s verified=%s curated=%s",
            len(search_result.jobs),
            len(normalized),
            len(verified),
            len(curated),
        )
        return curated, search_result
