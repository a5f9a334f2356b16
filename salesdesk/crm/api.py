from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from salesdesk.context import get_correlation_id
from salesdesk.core.config import get_settings
from salesdesk.crm.activity_feed import ActivitySort, build_feed
from salesdesk.crm.contact_directory import ContactCategory, ContactSort, distinct_tags, query_contacts
from salesdesk.crm.container import CRMServices
from salesdesk.crm.errors import NotFoundError
from salesdesk.crm.schemas import (
    Activity,
    ActivityCreate,
    ActivityFeedRead,
    ActivityType,
    ActivityUpdate,
    Contact,
    ContactCreate,
    ContactUpdate,
    Deal,
    DealCreate,
    DealDeleteRead,
    DealStageChange,
    DealUpdate,
    PipelineColumn,
    PipelineMetrics,
    Stage,
    StageCreate,
    StageMoveRead,
    StageOrder,
    StageUpdate,
)

contacts_router = APIRouter(prefix="/api/crm", tags=["crm.contacts"])
deals_router = APIRouter(prefix="/api/crm", tags=["crm.deals"])
pipeline_router = APIRouter(prefix="/api/crm", tags=["crm.pipeline"])
activities_router = APIRouter(prefix="/api/crm", tags=["crm.activities"])
stages_router = APIRouter(prefix="/api/crm", tags=["crm.stages"])


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def not_found_response(request: Request, exc: NotFoundError, code: str) -> JSONResponse:
    return error_response(
        request,
        status_code=status.HTTP_404_NOT_FOUND,
        code=code,
        message=str(exc),
        details={"entity_type": exc.entity_type, "entity_id": exc.entity_id},
    )


def get_crm(request: Request) -> CRMServices:
    return request.app.state.crm


@contacts_router.get("/contacts", response_model=list[Contact])
async def list_contacts(
    q: str | None = Query(default=None),
    category: ContactCategory = Query(default="all"),
    sort_by: ContactSort | None = Query(default=None, alias="sort"),
    crm: CRMServices = Depends(get_crm),
) -> list[Contact]:
    contacts = await crm.contacts.search(q) if q is not None else await crm.contacts.get_all()
    return query_contacts(contacts, category=category, sort_by=sort_by)


@contacts_router.get("/contacts/tags", response_model=list[str])
async def list_contact_tags(crm: CRMServices = Depends(get_crm)) -> list[str]:
    return distinct_tags(await crm.contacts.get_all())


@contacts_router.post("/contacts", response_model=Contact, status_code=status.HTTP_201_CREATED)
async def create_contact(dto: ContactCreate, crm: CRMServices = Depends(get_crm)) -> Contact:
    return await crm.contacts.create(dto)


@contacts_router.get("/contacts/{contact_id}", response_model=Contact)
async def get_contact(
    request: Request,
    contact_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Contact | JSONResponse:
    try:
        return await crm.contacts.get_by_id(contact_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_contact_get_failed")


@contacts_router.patch("/contacts/{contact_id}", response_model=Contact)
async def patch_contact(
    request: Request,
    contact_id: int,
    dto: ContactUpdate,
    crm: CRMServices = Depends(get_crm),
) -> Contact | JSONResponse:
    try:
        return await crm.contacts.update(contact_id, dto)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_contact_update_failed")


@contacts_router.delete("/contacts/{contact_id}", response_model=Contact)
async def delete_contact(
    request: Request,
    contact_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Contact | JSONResponse:
    try:
        return await crm.contacts.delete(contact_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_contact_delete_failed")


@contacts_router.get("/contacts/{contact_id}/deals", response_model=list[Deal])
async def list_contact_deals(contact_id: int, crm: CRMServices = Depends(get_crm)) -> list[Deal]:
    return await crm.deals.get_by_contact_id(contact_id)


@contacts_router.get("/contacts/{contact_id}/activities", response_model=list[Activity])
async def list_contact_activities(contact_id: int, crm: CRMServices = Depends(get_crm)) -> list[Activity]:
    return await crm.activities.get_by_contact_id(contact_id)


@deals_router.get("/deals", response_model=list[Deal])
async def list_deals(
    stage: str | None = Query(default=None),
    crm: CRMServices = Depends(get_crm),
) -> list[Deal]:
    if stage is not None:
        return await crm.deals.get_by_stage(stage)
    return await crm.deals.get_all()


@deals_router.post("/deals", response_model=Deal, status_code=status.HTTP_201_CREATED)
async def create_deal(dto: DealCreate, crm: CRMServices = Depends(get_crm)) -> Deal:
    return await crm.deals.create(dto)


@deals_router.get("/deals/{deal_id}", response_model=Deal)
async def get_deal(
    request: Request,
    deal_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Deal | JSONResponse:
    try:
        return await crm.deals.get_by_id(deal_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_deal_get_failed")


@deals_router.patch("/deals/{deal_id}", response_model=Deal)
async def patch_deal(
    request: Request,
    deal_id: int,
    dto: DealUpdate,
    crm: CRMServices = Depends(get_crm),
) -> Deal | JSONResponse:
    try:
        return await crm.deals.update(deal_id, dto)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_deal_update_failed")


@deals_router.delete("/deals/{deal_id}", response_model=DealDeleteRead)
async def delete_deal(
    request: Request,
    deal_id: int,
    crm: CRMServices = Depends(get_crm),
) -> DealDeleteRead | JSONResponse:
    try:
        return await crm.board.delete_deal(deal_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_deal_delete_failed")


@deals_router.post("/deals/{deal_id}/stage", response_model=Deal)
async def change_deal_stage(
    request: Request,
    deal_id: int,
    dto: DealStageChange,
    crm: CRMServices = Depends(get_crm),
) -> Deal | JSONResponse:
    try:
        return await crm.deals.update_stage(deal_id, dto.stage)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_deal_change_stage_failed")


@deals_router.post("/deals/{deal_id}/move", response_model=StageMoveRead)
async def move_deal(
    request: Request,
    deal_id: int,
    dto: DealStageChange,
    crm: CRMServices = Depends(get_crm),
) -> StageMoveRead | JSONResponse:
    try:
        return await crm.board.move_deal(deal_id, dto.stage)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_deal_move_failed")


@deals_router.get("/deals/{deal_id}/activities", response_model=list[Activity])
async def list_deal_activities(deal_id: int, crm: CRMServices = Depends(get_crm)) -> list[Activity]:
    return await crm.activities.get_by_deal_id(deal_id)


@pipeline_router.get("/pipeline/metrics", response_model=PipelineMetrics)
async def get_pipeline_metrics(crm: CRMServices = Depends(get_crm)) -> PipelineMetrics:
    return await crm.deals.get_pipeline_metrics()


@pipeline_router.get("/pipeline/board", response_model=list[PipelineColumn])
async def get_pipeline_board(
    include_closed: bool = Query(default=False),
    crm: CRMServices = Depends(get_crm),
) -> list[PipelineColumn]:
    return await crm.board.columns(include_closed=include_closed)


@activities_router.get("/activities", response_model=list[Activity])
async def list_activities(
    activity_type: ActivityType | None = Query(default=None, alias="type"),
    crm: CRMServices = Depends(get_crm),
) -> list[Activity]:
    if activity_type is not None:
        return await crm.activities.get_by_type(activity_type)
    return await crm.activities.get_all()


@activities_router.get("/activities/recent", response_model=list[Activity])
async def list_recent_activities(
    limit: int | None = Query(default=None, ge=0, le=100),
    crm: CRMServices = Depends(get_crm),
) -> list[Activity]:
    if limit is None:
        limit = get_settings().recent_activity_limit
    return await crm.activities.get_recent(limit)


@activities_router.get("/activities/feed", response_model=ActivityFeedRead)
async def get_activity_feed(
    activity_type: ActivityType | None = Query(default=None, alias="type"),
    on_date: date | None = Query(default=None, alias="date"),
    sort_by: ActivitySort = Query(default="recent", alias="sort"),
    crm: CRMServices = Depends(get_crm),
) -> ActivityFeedRead:
    activities = await crm.activities.get_all()
    contacts = await crm.contacts.get_all()
    deals = await crm.deals.get_all()
    return build_feed(
        activities,
        contacts,
        deals,
        now=crm.activities.clock(),
        activity_type=activity_type,
        on_date=on_date,
        sort_by=sort_by,
    )


@activities_router.post("/activities", response_model=Activity, status_code=status.HTTP_201_CREATED)
async def create_activity(dto: ActivityCreate, crm: CRMServices = Depends(get_crm)) -> Activity:
    return await crm.activities.create(dto)


@activities_router.get("/activities/{activity_id}", response_model=Activity)
async def get_activity(
    request: Request,
    activity_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Activity | JSONResponse:
    try:
        return await crm.activities.get_by_id(activity_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_activity_get_failed")


@activities_router.patch("/activities/{activity_id}", response_model=Activity)
async def patch_activity(
    request: Request,
    activity_id: int,
    dto: ActivityUpdate,
    crm: CRMServices = Depends(get_crm),
) -> Activity | JSONResponse:
    try:
        return await crm.activities.update(activity_id, dto)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_activity_update_failed")


@activities_router.delete("/activities/{activity_id}", response_model=Activity)
async def delete_activity(
    request: Request,
    activity_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Activity | JSONResponse:
    try:
        return await crm.activities.delete(activity_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_activity_delete_failed")


@stages_router.get("/stages", response_model=list[Stage])
async def list_stages(crm: CRMServices = Depends(get_crm)) -> list[Stage]:
    return await crm.stages.get_all()


@stages_router.post("/stages", response_model=Stage, status_code=status.HTTP_201_CREATED)
async def create_stage(dto: StageCreate, crm: CRMServices = Depends(get_crm)) -> Stage:
    return await crm.stages.create(dto)


@stages_router.post("/stages/reorder", response_model=list[Stage])
async def reorder_stages(
    stage_orders: list[StageOrder] = Body(...),
    crm: CRMServices = Depends(get_crm),
) -> list[Stage]:
    return await crm.stages.reorder(stage_orders)


@stages_router.get("/stages/{stage_id}", response_model=Stage)
async def get_stage(
    request: Request,
    stage_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Stage | JSONResponse:
    try:
        return await crm.stages.get_by_id(stage_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_stage_get_failed")


@stages_router.patch("/stages/{stage_id}", response_model=Stage)
async def patch_stage(
    request: Request,
    stage_id: int,
    dto: StageUpdate,
    crm: CRMServices = Depends(get_crm),
) -> Stage | JSONResponse:
    try:
        return await crm.stages.update(stage_id, dto)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_stage_update_failed")


@stages_router.delete("/stages/{stage_id}", response_model=Stage)
async def delete_stage(
    request: Request,
    stage_id: int,
    crm: CRMServices = Depends(get_crm),
) -> Stage | JSONResponse:
    try:
        return await crm.stages.delete(stage_id)
    except NotFoundError as exc:
        return not_found_response(request, exc, "crm_stage_delete_failed")
