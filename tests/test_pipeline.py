from __future__ import annotations

import pytest

from salesdesk import events
from salesdesk.core.latency import SimulatedLatency
from salesdesk.crm.container import CRMServices, build_services
from salesdesk.crm.errors import NotFoundError
from salesdesk.crm.pipeline import compute_pipeline_metrics, probability_for_stage, stage_metric_label
from salesdesk.crm.schemas import DealCreate
from salesdesk.crm.store import CRMDataStore


@pytest.fixture(autouse=True)
def clear_events() -> None:
    events.published_events.clear()


@pytest.fixture()
def crm() -> CRMServices:
    return build_services(CRMDataStore.from_seed(), latency=SimulatedLatency.disabled())


@pytest.fixture()
def empty_crm() -> CRMServices:
    return build_services(CRMDataStore.empty(), latency=SimulatedLatency.disabled())


def test_probability_table() -> None:
    assert probability_for_stage("Lead") == 20
    assert probability_for_stage("Qualified") == 40
    assert probability_for_stage("Proposal") == 60
    assert probability_for_stage("Negotiation") == 75
    assert probability_for_stage("Closed Won") == 100
    assert probability_for_stage("Closed Lost", 50) == 0
    assert probability_for_stage("Discovery", 50) == 50
    assert probability_for_stage("Discovery") is None


def test_metrics_for_no_deals_are_zero() -> None:
    metrics = compute_pipeline_metrics([])

    assert metrics.total_value == 0
    assert metrics.total_deals == 0
    assert metrics.active_deals == 0
    assert metrics.win_rate == 0
    assert metrics.average_deal_size == 0
    assert metrics.stage_breakdown == {}


@pytest.mark.asyncio
async def test_metrics_for_lead_and_won_deal(empty_crm: CRMServices) -> None:
    await empty_crm.deals.create(DealCreate(title="Lead deal", value=1000, stage="Lead"))
    await empty_crm.deals.create(DealCreate(title="Won deal", value=2000, stage="Closed Won"))

    metrics = await empty_crm.deals.get_pipeline_metrics()

    assert metrics.total_value == 3000
    assert metrics.total_deals == 2
    assert metrics.active_deals == 1
    assert metrics.won_deals == 1
    assert metrics.lost_deals == 0
    assert metrics.win_rate == 50
    assert metrics.average_deal_size == 1500
    assert metrics.model_dump()["stage_breakdown"] == {
        "Lead": {"count": 1, "value": 1000.0},
        "Closed Won": {"count": 1, "value": 2000.0},
    }


@pytest.mark.asyncio
async def test_metrics_over_fixture_pipeline(crm: CRMServices) -> None:
    metrics = await crm.deals.get_pipeline_metrics()

    assert metrics.total_value == 343500
    assert metrics.total_deals == 7
    assert metrics.active_deals == 5
    assert metrics.won_deals == 1
    assert metrics.lost_deals == 1
    assert metrics.win_rate == pytest.approx(100 / 7)
    assert list(metrics.stage_breakdown) == [
        "Negotiation",
        "Proposal",
        "Qualified",
        "Closed Won",
        "Lead",
        "Closed Lost",
    ]
    assert metrics.stage_breakdown["Lead"].count == 2
    assert metrics.stage_breakdown["Lead"].value == 63000


@pytest.mark.asyncio
async def test_unknown_stage_gets_its_own_bucket(empty_crm: CRMServices) -> None:
    await empty_crm.deals.create(DealCreate(title="Odd", value=500, stage="Discovery"))

    metrics = await empty_crm.deals.get_pipeline_metrics()

    assert metrics.active_deals == 1
    assert metrics.stage_breakdown["Discovery"].count == 1


@pytest.mark.asyncio
async def test_update_stage_to_closed_won_sets_full_probability(crm: CRMServices) -> None:
    deal = await crm.deals.update_stage(5, "Closed Won")

    assert deal.stage == "Closed Won"
    assert deal.probability == 100


@pytest.mark.asyncio
async def test_update_stage_to_closed_lost_sets_zero_probability(crm: CRMServices) -> None:
    deal = await crm.deals.update_stage(1, "Closed Lost")

    assert deal.stage == "Closed Lost"
    assert deal.probability == 0


@pytest.mark.asyncio
async def test_update_stage_to_unknown_keeps_probability(crm: CRMServices) -> None:
    before = await crm.deals.get_by_id(2)

    deal = await crm.deals.update_stage(2, "On Hold")

    assert deal.stage == "On Hold"
    assert deal.probability == before.probability == 60
    assert deal.updated_at > before.updated_at


@pytest.mark.asyncio
async def test_update_stage_on_missing_deal_raises(crm: CRMServices) -> None:
    with pytest.raises(NotFoundError):
        await crm.deals.update_stage(404, "Lead")


@pytest.mark.asyncio
async def test_update_stage_publishes_transition_event(crm: CRMServices) -> None:
    await crm.deals.update_stage(3, "Proposal")

    assert events.published_events[-1]["event_type"] == "crm.deal.stage_changed"
    assert events.published_events[-1]["payload"] == {
        "deal_id": 3,
        "from_stage": "Qualified",
        "to_stage": "Proposal",
    }


@pytest.mark.asyncio
async def test_board_columns_skip_closed_stages(crm: CRMServices) -> None:
    columns = await crm.board.columns()

    assert [column.stage.name for column in columns] == ["Lead", "Qualified", "Proposal", "Negotiation"]
    lead = columns[0]
    assert [deal.id for deal in lead.deals] == [5, 7]
    assert lead.total_value == 63000

    everything = await crm.board.columns(include_closed=True)
    assert len(everything) == 6


@pytest.mark.asyncio
async def test_move_deal_logs_note_activity(crm: CRMServices) -> None:
    result = await crm.board.move_deal(2, "Negotiation")

    assert result.moved is True
    assert result.previous_stage == "Proposal"
    assert result.deal.stage == "Negotiation"
    assert result.deal.probability == 75
    assert result.activity is not None
    assert result.activity.type == "note"
    assert result.activity.deal_id == 2
    assert result.activity.contact_id == 2
    assert result.activity.description == "Deal moved from Proposal to Negotiation"

    recent = await crm.activities.get_recent(1)
    assert recent[0].id == result.activity.id


@pytest.mark.asyncio
async def test_move_deal_to_same_stage_is_noop(crm: CRMServices) -> None:
    before = await crm.activities.get_all()

    result = await crm.board.move_deal(1, "Negotiation")

    assert result.moved is False
    assert result.activity is None
    assert len(await crm.activities.get_all()) == len(before)
    assert len(events.published_events) == 0


@pytest.mark.asyncio
async def test_move_missing_deal_raises(crm: CRMServices) -> None:
    with pytest.raises(NotFoundError):
        await crm.board.move_deal(99, "Lead")


@pytest.mark.asyncio
async def test_delete_deal_leaves_unlinked_note_for_contact(crm: CRMServices) -> None:
    result = await crm.board.delete_deal(1)

    assert result.deal.id == 1
    assert result.activity.type == "note"
    assert result.activity.description == 'Deal "TechCorp Enterprise License" was deleted'
    assert result.activity.contact_id == 1
    assert result.activity.deal_id is None

    with pytest.raises(NotFoundError):
        await crm.deals.get_by_id(1)
    contact_timeline = await crm.activities.get_by_contact_id(1)
    assert contact_timeline[0].id == result.activity.id
    assert [event["event_type"] for event in events.published_events] == [
        "crm.deal.deleted",
        "crm.activity.created",
    ]


@pytest.mark.asyncio
async def test_delete_missing_deal_writes_no_note(crm: CRMServices) -> None:
    before = len(await crm.activities.get_all())

    with pytest.raises(NotFoundError):
        await crm.board.delete_deal(99)

    assert len(await crm.activities.get_all()) == before


def test_stage_metric_label_collapses_unknown_stages() -> None:
    assert stage_metric_label("Negotiation") == "Negotiation"
    assert stage_metric_label("Closed Lost") == "Closed Lost"
    assert stage_metric_label("On Hold") == "other"
    assert stage_metric_label("lead") == "other"
