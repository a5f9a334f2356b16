from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import Response

from salesdesk.core.config import get_settings
from salesdesk.crm.api import (
    activities_router,
    contacts_router,
    deals_router,
    pipeline_router,
    stages_router,
)
from salesdesk.metrics import generate_metrics_payload, metrics_content_type

router = APIRouter()
router.include_router(contacts_router)
router.include_router(deals_router)
router.include_router(pipeline_router)
router.include_router(activities_router)
router.include_router(stages_router)


@router.get("/health", tags=["system"])
def health(request: Request) -> dict[str, object]:
    settings = get_settings()
    crm = getattr(request.app.state, "crm", None)
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
        "records": crm.store.counts() if crm is not None else {},
    }


@router.get("/metrics", tags=["system"])
def metrics() -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
