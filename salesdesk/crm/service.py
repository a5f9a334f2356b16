from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from salesdesk import events
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.errors import NotFoundError
from salesdesk.crm.pipeline import compute_pipeline_metrics, probability_for_stage, stage_metric_label
from salesdesk.crm.schemas import (
    Activity,
    ActivityCreate,
    ActivityUpdate,
    Contact,
    ContactCreate,
    ContactUpdate,
    Deal,
    DealCreate,
    DealUpdate,
    PipelineMetrics,
    Stage,
    StageCreate,
    StageOrder,
    StageUpdate,
)
from salesdesk.crm.store import EntityStore
from salesdesk.logging import log_fields
from salesdesk.metrics import observe_crm_operation, observe_stage_transition
from salesdesk.otel import get_tracer


logger = logging.getLogger("salesdesk.crm")
tracer = get_tracer("salesdesk.crm")

Clock = Callable[[], datetime]

RecordT = TypeVar("RecordT", bound=BaseModel)
CreateT = TypeVar("CreateT", bound=BaseModel)
UpdateT = TypeVar("UpdateT", bound=BaseModel)

_TIMESTAMP_STEP = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntityService(ABC, Generic[RecordT, CreateT, UpdateT]):
    """Async CRUD over one entity store.

    Every public call first awaits the latency policy, then runs to completion
    without further suspension. Records handed out are deep copies, so callers
    can never mutate the store through them.
    """

    entity_type: ClassVar[str] = ""
    delays_ms: ClassVar[dict[str, int]] = {
        "get_all": 300,
        "get_by_id": 200,
        "create": 400,
        "update": 350,
        "delete": 250,
    }
    # Fields an update may explicitly clear to None.
    nullable_fields: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        store: EntityStore[RecordT],
        *,
        latency: SimulatedLatency | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self.store = store
        self.latency = latency or SimulatedLatency.disabled()
        self.clock = clock

    async def get_all(self) -> list[RecordT]:
        await self._pause("get_all")
        return self._snapshots(self._ordered(self.store.values()))

    async def get_by_id(self, record_id: int) -> RecordT:
        await self._pause("get_by_id")
        return self._snapshot(self._require(record_id, "get_by_id"))

    async def create(self, dto: CreateT) -> RecordT:
        await self._pause("create")
        record = self._build(self.store.next_id(), dto.model_dump(mode="python"))
        self.store.put(record)
        self._record_change("created", record)
        return self._snapshot(record)

    async def update(self, record_id: int, dto: UpdateT) -> RecordT:
        await self._pause("update")
        existing = self._require(record_id, "update")
        changes = self._explicit_changes(dto)
        updated = self._merge(existing, changes)
        self.store.put(updated)
        self._record_change("updated", updated, changed_fields=sorted(changes))
        return self._snapshot(updated)

    async def delete(self, record_id: int) -> RecordT:
        await self._pause("delete")
        self._require(record_id, "delete")
        removed = self.store.remove(record_id)
        self._record_change("deleted", removed)
        return self._snapshot(removed)

    @abstractmethod
    def _build(self, record_id: int, data: dict[str, Any]) -> RecordT:
        """Create a new record from validated create-DTO data."""

    def _merge(self, existing: RecordT, changes: dict[str, Any]) -> RecordT:
        return existing.model_copy(update=changes)

    def _ordered(self, records: list[RecordT]) -> list[RecordT]:
        return records

    def _explicit_changes(self, dto: BaseModel) -> dict[str, Any]:
        changes = dto.model_dump(mode="python", exclude_unset=True)
        return {
            key: value
            for key, value in changes.items()
            if value is not None or key in self.nullable_fields
        }

    def _stamp(self, previous: datetime | None = None) -> datetime:
        now = self.clock()
        if previous is not None and now <= previous:
            now = previous + _TIMESTAMP_STEP
        return now

    async def _pause(self, operation: str) -> None:
        await self.latency.wait(f"{self.entity_type}.{operation}", self.delays_ms.get(operation, 0))

    def _require(self, record_id: int, operation: str) -> RecordT:
        try:
            return self.store.require(record_id)
        except NotFoundError:
            observe_crm_operation(self.entity_type, operation, "not_found")
            logger.warning(
                f"crm.{self.entity_type}.not_found",
                extra=log_fields(entity_type=self.entity_type, entity_id=record_id, operation=operation),
            )
            raise

    def _record_change(self, action: str, record: RecordT, **payload: Any) -> None:
        record_id = getattr(record, "id")
        observe_crm_operation(self.entity_type, action)
        logger.info(
            f"crm.{self.entity_type}.{action}",
            extra=log_fields(
                entity_type=self.entity_type,
                entity_id=record_id,
                operation=action,
                changed_fields=payload.get("changed_fields"),
            ),
        )
        events.publish(
            events.build_envelope(
                f"crm.{self.entity_type}.{action}",
                {f"{self.entity_type}_id": record_id, **payload},
            )
        )

    @staticmethod
    def _snapshot(record: RecordT) -> RecordT:
        return record.model_copy(deep=True)

    @classmethod
    def _snapshots(cls, records: Iterable[RecordT]) -> list[RecordT]:
        return [cls._snapshot(record) for record in records]


class ContactService(EntityService[Contact, ContactCreate, ContactUpdate]):
    entity_type = "contact"
    delays_ms = {**EntityService.delays_ms, "search": 200}

    async def search(self, query: str) -> list[Contact]:
        await self._pause("search")
        term = query.strip().lower()
        if not term:
            return self._snapshots(self.store.values())
        return self._snapshots(contact for contact in self.store.values() if _contact_matches(contact, term))

    def _build(self, record_id: int, data: dict[str, Any]) -> Contact:
        now = self._stamp()
        return Contact(id=record_id, created_at=now, updated_at=now, **data)

    def _merge(self, existing: Contact, changes: dict[str, Any]) -> Contact:
        return existing.model_copy(update={**changes, "updated_at": self._stamp(existing.updated_at)})


def _contact_matches(contact: Contact, term: str) -> bool:
    haystack = [contact.name, contact.email, contact.company, contact.position]
    if any(term in value.lower() for value in haystack):
        return True
    return any(term in tag.lower() for tag in contact.tags)


class DealService(EntityService[Deal, DealCreate, DealUpdate]):
    entity_type = "deal"
    delays_ms = {
        **EntityService.delays_ms,
        "get_by_contact_id": 250,
        "get_by_stage": 200,
        "update_stage": 250,
        "get_pipeline_metrics": 300,
    }
    nullable_fields = frozenset({"contact_id", "expected_close_date"})

    async def get_by_contact_id(self, contact_id: int) -> list[Deal]:
        await self._pause("get_by_contact_id")
        return self._snapshots(deal for deal in self.store.values() if deal.contact_id == contact_id)

    async def get_by_stage(self, stage: str) -> list[Deal]:
        await self._pause("get_by_stage")
        return self._snapshots(deal for deal in self.store.values() if deal.stage == stage)

    async def update_stage(self, deal_id: int, stage: str) -> Deal:
        """Move a deal to ``stage`` and re-derive its probability.

        Unknown stage names keep the deal's current probability. Logging the
        move as an activity is left to the caller.
        """
        await self._pause("update_stage")
        with tracer.start_as_current_span("crm.deal.update_stage") as span:
            span.set_attribute("deal_id", deal_id)
            span.set_attribute("to_stage", stage)
            existing = self._require(deal_id, "update_stage")
            updated = existing.model_copy(
                update={
                    "stage": stage,
                    "probability": probability_for_stage(stage, existing.probability),
                    "updated_at": self._stamp(existing.updated_at),
                }
            )
            self.store.put(updated)
            span.set_attribute("from_stage", existing.stage)

        observe_stage_transition(stage_metric_label(stage))
        observe_crm_operation(self.entity_type, "update_stage")
        logger.info(
            "crm.deal.stage_changed",
            extra=log_fields(
                entity_type=self.entity_type,
                entity_id=deal_id,
                from_stage=existing.stage,
                to_stage=stage,
                probability=updated.probability,
            ),
        )
        events.publish(
            events.build_envelope(
                "crm.deal.stage_changed",
                {"deal_id": deal_id, "from_stage": existing.stage, "to_stage": stage},
            )
        )
        return self._snapshot(updated)

    async def get_pipeline_metrics(self) -> PipelineMetrics:
        await self._pause("get_pipeline_metrics")
        with tracer.start_as_current_span("crm.pipeline.metrics") as span:
            metrics = compute_pipeline_metrics(self.store.values())
            span.set_attribute("total_deals", metrics.total_deals)
        return metrics

    def _build(self, record_id: int, data: dict[str, Any]) -> Deal:
        now = self._stamp()
        if data.get("probability") is None:
            data["probability"] = probability_for_stage(data["stage"], 0)
        return Deal(id=record_id, created_at=now, updated_at=now, **data)

    def _merge(self, existing: Deal, changes: dict[str, Any]) -> Deal:
        if "stage" in changes and "probability" not in changes:
            changes["probability"] = probability_for_stage(changes["stage"], existing.probability)
        return existing.model_copy(update={**changes, "updated_at": self._stamp(existing.updated_at)})


class ActivityService(EntityService[Activity, ActivityCreate, ActivityUpdate]):
    entity_type = "activity"
    delays_ms = {
        **EntityService.delays_ms,
        "get_by_contact_id": 250,
        "get_by_deal_id": 250,
        "get_recent": 200,
        "get_by_type": 200,
    }
    nullable_fields = frozenset({"contact_id", "deal_id"})

    async def get_by_contact_id(self, contact_id: int) -> list[Activity]:
        await self._pause("get_by_contact_id")
        return self._snapshots(
            self._ordered([activity for activity in self.store.values() if activity.contact_id == contact_id])
        )

    async def get_by_deal_id(self, deal_id: int) -> list[Activity]:
        await self._pause("get_by_deal_id")
        return self._snapshots(
            self._ordered([activity for activity in self.store.values() if activity.deal_id == deal_id])
        )

    async def get_recent(self, limit: int = 10) -> list[Activity]:
        await self._pause("get_recent")
        return self._snapshots(self._ordered(self.store.values())[: max(limit, 0)])

    async def get_by_type(self, activity_type: str) -> list[Activity]:
        await self._pause("get_by_type")
        return self._snapshots(
            self._ordered([activity for activity in self.store.values() if activity.type == activity_type])
        )

    def _ordered(self, records: list[Activity]) -> list[Activity]:
        return sorted(records, key=lambda activity: (activity.timestamp, activity.id), reverse=True)

    def _build(self, record_id: int, data: dict[str, Any]) -> Activity:
        return Activity(id=record_id, timestamp=self._stamp(), **data)


class StageService(EntityService[Stage, StageCreate, StageUpdate]):
    entity_type = "stage"
    delays_ms = {
        "get_all": 200,
        "get_by_id": 150,
        "create": 300,
        "update": 250,
        "delete": 200,
        "reorder": 300,
    }

    async def reorder(self, stage_orders: Iterable[StageOrder]) -> list[Stage]:
        await self._pause("reorder")
        applied: list[int] = []
        for item in stage_orders:
            stage = self.store.get(item.id)
            if stage is None:
                continue
            self.store.put(stage.model_copy(update={"order": item.order}))
            applied.append(item.id)

        observe_crm_operation(self.entity_type, "reorder")
        logger.info(
            "crm.stage.reordered",
            extra=log_fields(entity_type=self.entity_type, operation="reorder", stage_ids=applied),
        )
        events.publish(events.build_envelope("crm.stage.reordered", {"stage_ids": applied}))
        return self._snapshots(self._ordered(self.store.values()))

    def _ordered(self, records: list[Stage]) -> list[Stage]:
        return sorted(records, key=lambda stage: (stage.order, stage.id))

    def _build(self, record_id: int, data: dict[str, Any]) -> Stage:
        max_order = max((stage.order for stage in self.store.values()), default=0)
        return Stage(id=record_id, order=max_order + 1, **data)

