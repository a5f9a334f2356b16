from __future__ import annotations

from dataclasses import dataclass

from salesdesk.core.config import Settings
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.board import PipelineBoard
from salesdesk.crm.service import (
    ActivityService,
    Clock,
    ContactService,
    DealService,
    StageService,
    utcnow,
)
from salesdesk.crm.store import CRMDataStore


@dataclass
class CRMServices:
    store: CRMDataStore
    contacts: ContactService
    deals: DealService
    activities: ActivityService
    stages: StageService
    board: PipelineBoard


def build_services(
    store: CRMDataStore | None = None,
    *,
    latency: SimulatedLatency | None = None,
    clock: Clock = utcnow,
) -> CRMServices:
    data_store = store if store is not None else CRMDataStore.from_seed()
    deals = DealService(data_store.deals, latency=latency, clock=clock)
    activities = ActivityService(data_store.activities, latency=latency, clock=clock)
    stages = StageService(data_store.stages, latency=latency, clock=clock)
    return CRMServices(
        store=data_store,
        contacts=ContactService(data_store.contacts, latency=latency, clock=clock),
        deals=deals,
        activities=activities,
        stages=stages,
        board=PipelineBoard(deals, activities, stages),
    )


def build_services_from_settings(settings: Settings) -> CRMServices:
    store = CRMDataStore.from_seed() if settings.seed_fixtures else CRMDataStore.empty()
    return build_services(store, latency=SimulatedLatency.from_settings(settings))
