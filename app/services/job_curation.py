from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from app.core.config.scoring import get_scoring_value
from app.normalize.normalize_jobs import normalize_company_key
from app.schemas.unemployedle import RankedJob

CurationModeName = Literal["game", "top_jobs"]

DEFAULT_SIZE_LIMITS: dict[str, int] = {"large": 4, "mid": 4, "startup": 4}
_MODE_DEFAULTS: dict[str, tuple[tuple[float, ...], int, int]] = {
    "game": ((0.75, 0.70, 0.65, 0.60), 10, 10),
    "top_jobs": ((0.35,), 12, 12),
}


@dataclass(frozen=True)
class CurationMode:
    thresholds: tuple[float, ...]
    desired_count: int
    max_results: int
    size_limits: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SIZE_LIMITS))


def load_curation_mode(name: CurationModeName) -> CurationMode:
    thresholds, desired_count, max_results = _MODE_DEFAULTS[name]
    raw_thresholds = get_scoring_value(f"curation.{name}.thresholds", list(thresholds))
    raw_limits = get_scoring_value("curation.company_size_limits", DEFAULT_SIZE_LIMITS) or {}
    return CurationMode(
        thresholds=tuple(float(value) for value in raw_thresholds) or thresholds,
        desired_count=int(get_scoring_value(f"curation.{name}.desired_count", desired_count)),
        max_results=int(get_scoring_value(f"curation.{name}.max_results", max_results)),
        size_limits={size: int(raw_limits.get(size, limit)) for size, limit in DEFAULT_SIZE_LIMITS.items()},
    )


def apply_match_threshold(
    jobs: list[RankedJob], thresholds: list[float] | tuple[float, ...], desired_count: int
) -> list[RankedJob]:
    """Keep jobs above the strictest threshold that matches anything, relaxing only while short."""
    selected: list[RankedJob] = []
    for threshold in thresholds:
        matches = [job for job in jobs if job.match_score >= threshold]
        if not matches:
            continue
        selected = matches
        if len(selected) >= desired_count:
            break
    return selected


def apply_company_diversity(
    jobs: list[RankedJob],
    max_results: int,
    size_limits: dict[str, int] | None = None,
) -> list[RankedJob]:
    limits = size_limits if size_limits is not None else DEFAULT_SIZE_LIMITS
    selected: list[RankedJob] = []
    selected_ids: set[str] = set()
    seen_companies: set[str] = set()
    size_counts: dict[str, int] = {}

    for job in jobs:
        if len(selected) >= max_results:
            break
        company_key = normalize_company_key(job.company)
        if company_key in seen_companies:
            continue
        if size_counts.get(job.company_size, 0) >= limits.get(job.company_size, max_results):
            continue
        selected.append(job)
        selected_ids.add(job.id)
        seen_companies.add(company_key)
        size_counts[job.company_size] = size_counts.get(job.company_size, 0) + 1

    if len(selected) < max_results:
        for job in jobs:
            if len(selected) >= max_results:
                break
            if job.id in selected_ids:
                continue
            company_key = normalize_company_key(job.company)
            if company_key in seen_companies:
                continue
            selected.append(job)
            selected_ids.add(job.id)
            seen_companies.add(company_key)

    return selected


def curate_jobs(jobs: list[RankedJob], mode: CurationMode) -> list[RankedJob]:
    thresholded = apply_match_threshold(jobs, mode.thresholds, mode.desired_count)
    return apply_company_diversity(thresholded, mode.max_results, mode.size_limits)
