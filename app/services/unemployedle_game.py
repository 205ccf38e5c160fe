from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field

from app.core.errors import InvalidGameInputError
from app.schemas.unemployedle import GameJobSummary, GameStatus, GuessResponse, RankedJob, StartResponse

DEFAULT_MAX_GUESSES = 7
HINT_GUESS_THRESHOLD = 2

_LETTER_RE = re.compile(r"^[A-Z]$")


@dataclass
class GameState:
    id: str
    company: str
    masked_company: str
    guesses_left: int
    max_guesses: int
    job: RankedJob
    created_at: float
    selection_summary: str
    guessed_letters: set[str] = field(default_factory=set)
    incorrect_guesses: set[str] = field(default_factory=set)


def sanitize_letter(letter: str) -> str:
    return (letter or "").strip().upper()


def _is_ascii_letter(char: str) -> bool:
    return ("a" <= char <= "z") or ("A" <= char <= "Z")


def mask_company_name(company: str, guessed: set[str]) -> str:
    return "".join(
        char if not _is_ascii_letter(char) or char.upper() in guessed else "_" for char in company
    )


def resolve_status(game: GameState) -> GameStatus:
    if "_" not in game.masked_company:
        return "won"
    if game.guesses_left <= 0:
        return "lost"
    return "in_progress"


def new_game(job: RankedJob, *, max_guesses: int, selection_summary: str, created_at: float) -> GameState:
    return GameState(
        id=str(uuid.uuid4()),
        company=job.company,
        masked_company=mask_company_name(job.company, set()),
        guesses_left=max_guesses,
        max_guesses=max_guesses,
        job=job,
        created_at=created_at,
        selection_summary=selection_summary,
    )


def build_hint(game: GameState, status: GameStatus) -> str | None:
    if status != "in_progress" or game.guesses_left > HINT_GUESS_THRESHOLD:
        return None
    return game.job.company_hint or None


def build_start_response(game: GameState, status: GameStatus | None = None) -> StartResponse:
    status = status or resolve_status(game)
    return StartResponse(
        game_id=game.id,
        masked_company=game.masked_company,
        guesses_left=game.guesses_left,
        max_guesses=game.max_guesses,
        status=status,
        selection_summary=game.selection_summary,
        hint=build_hint(game, status),
        job=GameJobSummary(
            title=game.job.title,
            location=game.job.location,
            source=game.job.source,
            rating=game.job.rating,
            match_score=round(game.job.match_score * 100),
            company_masked=game.masked_company,
        ),
        guessed_letters=sorted(game.guessed_letters),
        incorrect_guesses=sorted(game.incorrect_guesses),
    )


def build_guess_response(game: GameState, *, already_guessed: bool) -> GuessResponse:
    status = resolve_status(game)
    response = build_start_response(game, status)
    terminal = status != "in_progress"
    return GuessResponse(
        **response.model_dump(),
        already_guessed=already_guessed,
        revealed_company=game.company if terminal else None,
        job_url=game.job.url if terminal else None,
    )


def apply_guess(game: GameState, letter: str) -> GuessResponse:
    """Apply one guess in place. Invalid letters raise before any state is touched."""
    sanitized = sanitize_letter(letter)
    if not _LETTER_RE.match(sanitized):
        raise InvalidGameInputError("Guess must be a single letter.", code="invalid_letter")

    if resolve_status(game) != "in_progress":
        return build_guess_response(game, already_guessed=False)

    if sanitized in game.guessed_letters:
        return build_guess_response(game, already_guessed=True)

    game.guessed_letters.add(sanitized)
    if sanitized not in game.company.upper():
        game.guesses_left = max(0, game.guesses_left - 1)
        game.incorrect_guesses.add(sanitized)
    game.masked_company = mask_company_name(game.company, game.guessed_letters)
    return build_guess_response(game, already_guessed=False)
