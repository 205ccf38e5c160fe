from __future__ import annotations


class UnemployedleError(RuntimeError):
    status_code = 500
    default_code = "unemployedle_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.code = code or self.default_code


class InvalidGameInputError(UnemployedleError):
    status_code = 400
    default_code = "invalid_input"


class GameNotFoundError(UnemployedleError):
    status_code = 404
    default_code = "game_not_found"


class UpstreamUnavailableError(UnemployedleError):
    status_code = 503
    default_code = "upstream_unavailable"


class NoMatchesFoundError(UpstreamUnavailableError):
    default_code = "no_matches"
