from salesdesk.crm.board import PipelineBoard
from salesdesk.crm.contact_directory import distinct_tags, query_contacts
from salesdesk.crm.container import CRMServices, build_services, build_services_from_settings
from salesdesk.crm.errors import CRMError, NotFoundError
from salesdesk.crm.pipeline import STAGE_PROBABILITIES, compute_pipeline_metrics, probability_for_stage
from salesdesk.crm.schemas import (
    Activity,
    ActivityCreate,
    ActivityUpdate,
    Contact,
    ContactCreate,
    ContactUpdate,
    Deal,
    DealCreate,
    DealDeleteRead,
    DealUpdate,
    PipelineMetrics,
    Stage,
    StageCreate,
    StageOrder,
    StageUpdate,
)
from salesdesk.crm.service import ActivityService, ContactService, DealService, StageService
from salesdesk.crm.store import CRMDataStore, EntityStore

__all__ = [
    "Activity",
    "ActivityCreate",
    "ActivityService",
    "ActivityUpdate",
    "CRMDataStore",
    "CRMError",
    "CRMServices",
    "Contact",
    "ContactCreate",
    "ContactService",
    "ContactUpdate",
    "Deal",
    "DealCreate",
    "DealDeleteRead",
    "DealService",
    "DealUpdate",
    "EntityStore",
    "NotFoundError",
    "PipelineBoard",
    "PipelineMetrics",
    "STAGE_PROBABILITIES",
    "Stage",
    "StageCreate",
    "StageOrder",
    "StageService",
    "StageUpdate",
    "build_services",
    "build_services_from_settings",
    "compute_pipeline_metrics",
    "distinct_tags",
    "probability_for_stage",
    "query_contacts",
]
