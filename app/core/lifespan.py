from contextlib import asynccontextmanager
import logging

from app.core.config import settings
from app.services.unemployedle_llm import llm_configured
from app.services.unemployedle_service import UnemployedleService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    if getattr(app.state, "unemployedle_service", None) is None:
        app.state.unemployedle_service = UnemployedleService.from_settings(settings)
    if not llm_configured(settings):
        logger.warning("unemployedle_llm_not_configured model=%s", settings.openai_model)
    logger.info(
        "unemployedle_service_ready ranker_enabled=%s max_games=%s cache_ttl_s=%s",
        settings.job_ranker_enabled,
        settings.unemployedle_max_games,
        settings.unemployedle_cache_ttl_s,
    )
    yield
