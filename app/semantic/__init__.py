from .match_score import MatchWeights, build_ranked_job, compute_match_score, focus_alignment, score_jobs

__all__ = ["MatchWeights", "build_ranked_job", "compute_match_score", "focus_alignment", "score_jobs"]
