from .resume_profile import (
    GENERIC_FOCUS_ID,
    KNOWN_KEYWORDS,
    ResumeProfile,
    build_resume_profile,
    extract_focus_scores,
    extract_focus_tags,
    extract_keywords_from_text,
)

__all__ = [
    "GENERIC_FOCUS_ID",
    "KNOWN_KEYWORDS",
    "ResumeProfile",
    "build_resume_profile",
    "extract_focus_scores",
    "extract_focus_tags",
    "extract_keywords_from_text",
]
