"""Stage rules and pipeline-wide aggregates over deals.

This module owns the canonical stage -> probability table. Deal creation,
deal updates and stage transitions all read it from here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from salesdesk.crm.schemas import Deal, PipelineMetrics, StageBreakdown

CLOSED_WON = "Closed Won"
CLOSED_LOST = "Closed Lost"
CLOSED_STAGES = frozenset({CLOSED_WON, CLOSED_LOST})

STAGE_PROBABILITIES: Mapping[str, int] = {
    "Lead": 20,
    "Qualified": 40,
    "Proposal": 60,
    "Negotiation": 75,
    CLOSED_WON: 100,
    CLOSED_LOST: 0,
}


def probability_for_stage(stage: str, default: int | None = None) -> int | None:
    # Closed Lost maps to 0.
    if stage in STAGE_PROBABILITIES:
        return STAGE_PROBABILITIES[stage]
    return default


def is_closed_stage(stage: str) -> bool:
    return stage in CLOSED_STAGES


def compute_pipeline_metrics(deals: Iterable[Deal]) -> PipelineMetrics:
    """Aggregate a deal collection into dashboard metrics.

    Deals are grouped by their literal ``stage`` string, so stages without deals
    are absent from the breakdown and unknown stage names still get a bucket.
    Breakdown keys keep first-seen order.
    """
    total_value = 0.0
    total_deals = 0
    won_deals = 0
    lost_deals = 0
    breakdown: dict[str, StageBreakdown] = {}

    for deal in deals:
        total_deals += 1
        total_value += deal.value
        bucket = breakdown.setdefault(deal.stage, StageBreakdown())
        bucket.count += 1
        bucket.value += deal.value
        if deal.stage == CLOSED_WON:
            won_deals += 1
        elif deal.stage == CLOSED_LOST:
            lost_deals += 1

    return PipelineMetrics(
        total_value=total_value,
        total_deals=total_deals,
        active_deals=total_deals - won_deals - lost_deals,
        won_deals=won_deals,
        lost_deals=lost_deals,
        win_rate=(won_deals / total_deals) * 100 if total_deals > 0 else 0.0,
        average_deal_size=total_value / total_deals if total_deals > 0 else 0.0,
        stage_breakdown=breakdown,
    )


def stage_metric_label(stage: str) -> str:
    """Metric label for a stage name; names outside the table collapse to ``other``."""
    return stage if stage in STAGE_PROBABILITIES else "other"
