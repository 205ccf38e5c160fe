from __future__ import annotations

import math
from dataclasses import dataclass

from app.core.config.scoring import get_scoring_value
from app.features.resume_profile import (
    GENERIC_FOCUS_ID,
    ResumeProfile,
    extract_focus_scores,
    extract_keywords_from_text,
    rank_focus_tags,
)
from app.normalize.utils import clamp_number
from app.schemas.unemployedle import JobOpening, RankedJob


@dataclass(frozen=True)
class MatchWeights:
    experience_overlap: float = 0.45
    keyword_overlap: float = 0.25
    focus_alignment: float = 0.2
    title_overlap: float = 0.1
    floor: float = 0.15
    scale: float = 0.85
    no_keyword_base: float = 0.35
    no_keyword_focus_scale: float = 0.45
    generic_focus_weight: float = 0.6
    focus_mismatch_min_score: float = 0.35
    focus_mismatch_penalty: float = 0.1
    hint_weight: float = 0.4

    @classmethod
    def from_config(cls) -> "MatchWeights":
        defaults = cls()
        return cls(
            experience_overlap=float(
                get_scoring_value("matching.weights.experience_overlap", defaults.experience_overlap)
            ),
            keyword_overlap=float(get_scoring_value("matching.weights.keyword_overlap", defaults.keyword_overlap)),
            focus_alignment=float(get_scoring_value("matching.weights.focus_alignment", defaults.focus_alignment)),
            title_overlap=float(get_scoring_value("matching.weights.title_overlap", defaults.title_overlap)),
            floor=float(get_scoring_value("matching.floor", defaults.floor)),
            scale=float(get_scoring_value("matching.scale", defaults.scale)),
            no_keyword_base=float(get_scoring_value("matching.no_keyword_fallback.base", defaults.no_keyword_base)),
            no_keyword_focus_scale=float(
                get_scoring_value("matching.no_keyword_fallback.focus_scale", defaults.no_keyword_focus_scale)
            ),
            generic_focus_weight=float(
                get_scoring_value("matching.generic_focus_weight", defaults.generic_focus_weight)
            ),
            focus_mismatch_min_score=float(
                get_scoring_value("matching.focus_mismatch.min_score", defaults.focus_mismatch_min_score)
            ),
            focus_mismatch_penalty=float(
                get_scoring_value("matching.focus_mismatch.penalty", defaults.focus_mismatch_penalty)
            ),
            hint_weight=float(get_scoring_value("matching.hint_weight", defaults.hint_weight)),
        )


def cosine_similarity(left: list[float], right: list[float]) -> float:
    if len(left) != len(right):
        return 0.0
    dot = sum(a * b for a, b in zip(left, right))
    left_norm = math.sqrt(sum(a * a for a in left))
    right_norm = math.sqrt(sum(b * b for b in right))
    if left_norm <= 0 or right_norm <= 0:
        return 0.0
    return dot / (left_norm * right_norm)


def focus_alignment(
    resume_scores: dict[str, float],
    job_scores: dict[str, float],
    generic_weight: float = 0.6,
) -> float:
    dimensions = sorted(set(resume_scores) | set(job_scores))
    if not dimensions:
        return 0.0

    def vector(scores: dict[str, float]) -> list[float]:
        return [
            scores.get(tag, 0.0) * (generic_weight if tag == GENERIC_FOCUS_ID else 1.0) for tag in dimensions
        ]

    return clamp_number(cosine_similarity(vector(resume_scores), vector(job_scores)), 0.0, 1.0)


def _overlap_ratio(keywords: list[str], reference: set[str]) -> float:
    if not keywords:
        return 0.0
    return sum(1 for keyword in keywords if keyword in reference) / len(keywords)


def _dominant_focus(scores: dict[str, float]) -> tuple[str, float] | None:
    ranked = rank_focus_tags(scores, limit=1)
    if not ranked:
        return None
    return ranked[0], scores[ranked[0]]


def _focus_mismatch(resume_scores: dict[str, float], job_scores: dict[str, float], min_score: float) -> bool:
    resume_focus = _dominant_focus(resume_scores)
    job_focus = _dominant_focus(job_scores)
    if resume_focus is None or job_focus is None:
        return False
    resume_tag, resume_score = resume_focus
    job_tag, job_score = job_focus
    if GENERIC_FOCUS_ID in (resume_tag, job_tag):
        return False
    return resume_tag != job_tag and resume_score >= min_score and job_score >= min_score


def compute_match_score(
    job: JobOpening,
    profile: ResumeProfile,
    desired_title: str | None = None,
    weights: MatchWeights | None = None,
) -> float:
    """Deterministic resume-to-job fit in [0, 1].

    Blends experience-keyword overlap, whole-resume keyword overlap, focus-area cosine
    alignment and (when the title carries vocabulary keywords) title overlap, then
    applies the floor/scale and a penalty when both sides strongly belong to different
    focus areas.
    """
    weights = weights or MatchWeights.from_config()
    title_keywords = extract_keywords_from_text(job.title)
    job_keywords = list(dict.fromkeys(keyword.lower() for keyword in job.keywords)) or title_keywords

    job_focus_scores = extract_focus_scores(f"{job.title} {' '.join(job_keywords)}")
    alignment = focus_alignment(profile.focus_scores, job_focus_scores, weights.generic_focus_weight)

    if not job_keywords:
        return clamp_number(weights.no_keyword_base + alignment * weights.no_keyword_focus_scale, 0.0, 1.0)

    experience_keywords = set(profile.experience_keywords)
    components = [
        (_overlap_ratio(job_keywords, experience_keywords), weights.experience_overlap),
        (_overlap_ratio(job_keywords, profile.keywords), weights.keyword_overlap),
        (alignment, weights.focus_alignment),
    ]
    if title_keywords:
        reference = experience_keywords | set(extract_keywords_from_text(desired_title or ""))
        components.append((_overlap_ratio(title_keywords, reference), weights.title_overlap))

    total_weight = sum(weight for _, weight in components)
    blend = sum(value * weight for value, weight in components) / total_weight if total_weight > 0 else 0.0
    score = weights.floor + blend * weights.scale

    if _focus_mismatch(profile.focus_scores, job_focus_scores, weights.focus_mismatch_min_score):
        score -= weights.focus_mismatch_penalty
    return clamp_number(score, 0.0, 1.0)


def build_ranked_job(
    job: JobOpening,
    profile: ResumeProfile,
    desired_title: str | None = None,
    weights: MatchWeights | None = None,
) -> RankedJob:
    weights = weights or MatchWeights.from_config()
    score = compute_match_score(job, profile, desired_title, weights)
    if job.match_score_hint is not None:
        hint_weight = clamp_number(weights.hint_weight, 0.0, 1.0)
        score = clamp_number(score * (1 - hint_weight) + job.match_score_hint * hint_weight, 0.0, 1.0)
    return RankedJob(**job.model_dump(), match_score=score, overall_score=score)


def score_jobs(
    jobs: list[JobOpening],
    profile: ResumeProfile,
    desired_title: str | None = None,
    weights: MatchWeights | None = None,
) -> list[RankedJob]:
    """Score every job and sort best-first; ties keep input order."""
    weights = weights or MatchWeights.from_config()
    ranked = [build_ranked_job(job, profile, desired_title, weights) for job in jobs]
    return sorted(ranked, key=lambda job: job.overall_score, reverse=True)
