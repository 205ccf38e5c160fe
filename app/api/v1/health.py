from fastapi import APIRouter, Request

from app.services.unemployedle_llm import llm_configured

router = APIRouter()


@router.get("/health", summary="Health Check", description="Check the health status of the application.")
async def health_check(request: Request):
    service = getattr(request.app.state, "unemployedle_service", None)
    return {
        "status": "healthy",
        "unemployedle": {
            "ready": service is not None,
            "llm_configured": llm_configured(),
            "active_games": len(service.games) if service is not None else 0,
        },
    }
