from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile, status

from app.core.config import settings
from app.core.errors import UnemployedleError
from app.core.rate_limit import rate_limit
from app.schemas.unemployedle import GuessRequest, GuessResponse, SearchOptions, StartResponse, TopJobsResponse
from app.services.unemployedle_service import UnemployedleService

router = APIRouter(prefix="/games/unemployedle")

_READ_CHUNK_BYTES = 1024 * 64


def _service(request: Request) -> UnemployedleService:
    service = getattr(request.app.state, "unemployedle_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unemployedle is not available right now.",
        )
    return service


def _raise_http_error(exc: UnemployedleError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


async def _read_resume_text(resume: UploadFile | None) -> str:
    if resume is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resume file is required.")

    max_bytes = settings.unemployedle_max_upload_bytes
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await resume.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {max_bytes // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)

    text = b"".join(chunks).decode("utf-8", errors="replace").strip()
    if not text:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resume file is empty.")
    return text


def _search_options(
    include_remote: bool,
    include_local: bool,
    include_specific: bool,
    specific_location: str | None,
    desired_job_title: str | None,
) -> SearchOptions:
    return SearchOptions(
        include_remote=include_remote,
        include_local=include_local,
        include_specific=include_specific,
        specific_location=specific_location,
        desired_title=desired_job_title,
    )


@router.post("/start", response_model=StartResponse, response_model_exclude_none=True)
@rate_limit()
async def start_game(
    request: Request,
    resume: UploadFile | None = File(default=None),
    include_remote: bool = Form(default=True, alias="includeRemote"),
    include_local: bool = Form(default=True, alias="includeLocal"),
    include_specific: bool = Form(default=False, alias="includeSpecific"),
    specific_location: str | None = Form(default=None, alias="specificLocation", max_length=200),
    desired_job_title: str | None = Form(default=None, alias="desiredJobTitle", max_length=200),
):
    resume_text = await _read_resume_text(resume)
    options = _search_options(include_remote, include_local, include_specific, specific_location, desired_job_title)
    try:
        return await _service(request).start_game(resume_text, options)
    except UnemployedleError as exc:
        _raise_http_error(exc)


@router.post("/jobs", response_model=TopJobsResponse, response_model_exclude_none=True)
@rate_limit()
async def top_jobs(
    request: Request,
    resume: UploadFile | None = File(default=None),
    include_remote: bool = Form(default=True, alias="includeRemote"),
    include_local: bool = Form(default=True, alias="includeLocal"),
    include_specific: bool = Form(default=False, alias="includeSpecific"),
    specific_location: str | None = Form(default=None, alias="specificLocation", max_length=200),
    desired_job_title: str | None = Form(default=None, alias="desiredJobTitle", max_length=200),
):
    resume_text = await _read_resume_text(resume)
    options = _search_options(include_remote, include_local, include_specific, specific_location, desired_job_title)
    try:
        return await _service(request).get_top_jobs(resume_text, options)
    except UnemployedleError as exc:
        _raise_http_error(exc)


@router.post("/guess", response_model=GuessResponse, response_model_exclude_none=True)
async def guess(request: Request, payload: GuessRequest):
    if not payload.game_id.strip() or not payload.letter:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="gameId and letter are required.",
        )
    try:
        return _service(request).guess(payload.game_id, payload.letter)
    except UnemployedleError as exc:
        _raise_http_error(exc)
