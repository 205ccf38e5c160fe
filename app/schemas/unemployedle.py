from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

JobSource = Literal["LinkedIn", "Glassdoor", "Fortune 500", "Company Careers", "Indeed", "Other"]
CompanySize = Literal["large", "mid", "startup"]
GameStatus = Literal["in_progress", "won", "lost"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchOptions(BaseModel):
    include_remote: bool = True
    include_local: bool = True
    include_specific: bool = False
    specific_location: str | None = Field(default=None, max_length=200)
    desired_title: str | None = Field(default=None, max_length=200)


class RawJob(BaseModel):
    """Job record as produced by the LLM search; every field is untrusted."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    company: Any = None
    title: Any = None
    location: Any = None
    source: Any = None
    rating: Any = None
    keywords: Any = None
    company_url: Any = Field(default=None, validation_alias=AliasChoices("companyUrl", "company_url"))
    source_url: Any = Field(default=None, validation_alias=AliasChoices("sourceUrl", "source_url"))
    url: Any = None
    match_score: Any = Field(default=None, validation_alias=AliasChoices("matchScore", "match_score"))
    company_hint: Any = Field(default=None, validation_alias=AliasChoices("companyHint", "company_hint"))
    company_size: Any = Field(default=None, validation_alias=AliasChoices("companySize", "company_size"))
    rationale: Any = None


class JobSearchResult(BaseModel):
    summary: str = ""
    search_queries: list[str] = Field(default_factory=list)
    jobs: list[RawJob] = Field(default_factory=list)


class JobRanking(BaseModel):
    id: str
    match_score: float | None = None
    company_size: CompanySize | None = None
    company_hint: str | None = None
    rationale: str | None = None


class JobOpening(BaseModel):
    id: str
    company: str
    title: str
    location: str = "Remote"
    source: JobSource = "Other"
    rating: float = Field(default=4.0, ge=1.0, le=5.0)
    keywords: list[str] = Field(default_factory=list)
    url: str
    company_url: str | None = None
    source_url: str | None = None
    company_size: CompanySize = "mid"
    company_hint: str = Field(default="", max_length=160)
    match_score_hint: float | None = Field(default=None, ge=0.0, le=1.0)
    rationale: str | None = None


class RankedJob(JobOpening):
    match_score: float = Field(ge=0.0, le=1.0)
    overall_score: float = Field(ge=0.0, le=1.0)


class GameJobSummary(CamelModel):
    title: str
    location: str
    source: JobSource
    rating: float
    match_score: int = Field(ge=0, le=100)
    company_masked: str


class StartResponse(CamelModel):
    game_id: str
    masked_company: str
    guesses_left: int = Field(ge=0)
    max_guesses: int = Field(ge=1)
    status: GameStatus
    selection_summary: str
    hint: str | None = None
    job: GameJobSummary
    guessed_letters: list[str] = Field(default_factory=list)
    incorrect_guesses: list[str] = Field(default_factory=list)


class GuessResponse(StartResponse):
    already_guessed: bool = False
    revealed_company: str | None = None
    job_url: str | None = None


class GuessRequest(CamelModel):
    game_id: str = Field(default="", max_length=200)
    letter: str = ""


class TopJobItem(CamelModel):
    id: str
    company: str
    title: str
    location: str
    source: JobSource
    rating: float
    match_score: int = Field(ge=0, le=100)
    url: str
    company_size: CompanySize


class TopJobsResponse(CamelModel):
    selection_summary: str
    jobs: list[TopJobItem] = Field(default_factory=list)
