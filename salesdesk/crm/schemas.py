from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


ActivityType = Literal["call", "email", "meeting", "note", "task", "demo"]

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


def _split_tags(value: Any) -> Any:
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return value


TagList = Annotated[list[str], BeforeValidator(_split_tags)]


class ContactCreate(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    phone: str = ""
    company: str = Field(min_length=1)
    position: str = Field(min_length=1)
    tags: TagList = Field(default_factory=list)
    notes: str = ""


class ContactUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    phone: str | None = None
    company: str | None = Field(default=None, min_length=1)
    position: str | None = Field(default=None, min_length=1)
    tags: TagList | None = None
    notes: str | None = None


class Contact(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str = ""
    company: str = ""
    position: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    created_at: datetime
    updated_at: datetime


class DealCreate(BaseModel):
    title: str = Field(min_length=1)
    contact_id: int | None = None
    value: float = Field(ge=0)
    stage: str = Field(default="Lead", min_length=1)
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    notes: str = ""


class DealUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    contact_id: int | None = None
    value: float | None = Field(default=None, ge=0)
    stage: str | None = Field(default=None, min_length=1)
    probability: int | None = Field(default=None, ge=0, le=100)
    expected_close_date: date | None = None
    notes: str | None = None


class DealStageChange(BaseModel):
    stage: str = Field(min_length=1)


class Deal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    contact_id: int | None
    value: float
    stage: str
    probability: int
    expected_close_date: date | None = None
    notes: str = ""
    created_at: datetime
    updated_at: datetime


class ActivityCreate(BaseModel):
    type: ActivityType
    contact_id: int | None = None
    deal_id: int | None = None
    description: str = Field(min_length=1)


class ActivityUpdate(BaseModel):
    type: ActivityType | None = None
    contact_id: int | None = None
    deal_id: int | None = None
    description: str | None = Field(default=None, min_length=1)


class Activity(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: ActivityType
    contact_id: int | None = None
    deal_id: int | None = None
    description: str
    timestamp: datetime


class StageCreate(BaseModel):
    name: str = Field(min_length=1)
    color: str = "#6B7280"


class StageUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    color: str | None = None
    order: int | None = None


class StageOrder(BaseModel):
    id: int
    order: int


class Stage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    color: str
    order: int


class StageBreakdown(BaseModel):
    count: int = 0
    value: float = 0.0


class PipelineMetrics(BaseModel):
    total_value: float
    total_deals: int
    active_deals: int
    won_deals: int
    lost_deals: int
    win_rate: float
    average_deal_size: float
    stage_breakdown: dict[str, StageBreakdown] = Field(default_factory=dict)


class PipelineColumn(BaseModel):
    stage: Stage
    deals: list[Deal] = Field(default_factory=list)
    total_value: float = 0.0


class StageMoveRead(BaseModel):
    deal: Deal
    previous_stage: str
    moved: bool
    activity: Activity | None = None


class DealDeleteRead(BaseModel):
    deal: Deal
    activity: Activity


class ActivityFeedEntry(BaseModel):
    activity: Activity
    contact: Contact | None = None
    deal: Deal | None = None


class ActivityFeedGroup(BaseModel):
    label: str
    entries: list[ActivityFeedEntry] = Field(default_factory=list)


class ActivityStats(BaseModel):
    by_type: dict[str, int] = Field(default_factory=dict)
    today: int = 0
    yesterday: int = 0
    last_7_days: int = 0


class ActivityFeedRead(BaseModel):
    groups: list[ActivityFeedGroup] = Field(default_factory=list)
    stats: ActivityStats
    total: int
