from __future__ import annotations

import logging

from salesdesk.crm.pipeline import is_closed_stage
from salesdesk.crm.schemas import Activity, ActivityCreate, DealDeleteRead, PipelineColumn, StageMoveRead
from salesdesk.crm.service import ActivityService, DealService, StageService
from salesdesk.logging import log_fields


logger = logging.getLogger("salesdesk.crm.board")


class PipelineBoard:
    """Kanban view of the pipeline: stage columns, drag-and-drop moves and deletes."""

    def __init__(self, deals: DealService, activities: ActivityService, stages: StageService) -> None:
        self.deals = deals
        self.activities = activities
        self.stages = stages

    async def columns(self, include_closed: bool = False) -> list[PipelineColumn]:
        stages = await self.stages.get_all()
        deals = await self.deals.get_all()
        columns: list[PipelineColumn] = []
        for stage in stages:
            if not include_closed and is_closed_stage(stage.name):
                continue
            stage_deals = [deal for deal in deals if deal.stage == stage.name]
            columns.append(
                PipelineColumn(
                    stage=stage,
                    deals=stage_deals,
                    total_value=sum(deal.value for deal in stage_deals),
                )
            )
        return columns

    async def move_deal(self, deal_id: int, stage: str) -> StageMoveRead:
        """Transition a deal and log the move as a note activity.

        Dropping a deal on its current stage is a no-op. The stage change and the
        activity are two separate writes; if the second fails the deal stays moved.
        """
        current = await self.deals.get_by_id(deal_id)
        if current.stage == stage:
            return StageMoveRead(deal=current, previous_stage=current.stage, moved=False)

        updated = await self.deals.update_stage(deal_id, stage)
        activity = await self._log_note(
            deal_id,
            ActivityCreate(
                type="note",
                contact_id=current.contact_id,
                deal_id=current.id,
                description=f"Deal moved from {current.stage} to {stage}",
            ),
        )
        return StageMoveRead(deal=updated, previous_stage=current.stage, moved=True, activity=activity)

    async def delete_deal(self, deal_id: int) -> DealDeleteRead:
        """Remove a deal and leave a note on its contact's timeline.

        The note is not linked to the removed deal. As with moves, the delete
        stands even if writing the note fails.
        """
        removed = await self.deals.delete(deal_id)
        activity = await self._log_note(
            deal_id,
            ActivityCreate(
                type="note",
                contact_id=removed.contact_id,
                deal_id=None,
                description=f'Deal "{removed.title}" was deleted',
            ),
        )
        return DealDeleteRead(deal=removed, activity=activity)

    async def _log_note(self, deal_id: int, note: ActivityCreate) -> Activity:
        try:
            return await self.activities.create(note)
        except Exception as exc:
            logger.exception(
                "crm.board.activity_log_failed",
                extra=log_fields(entity_type="deal", entity_id=deal_id, error=str(exc)),
            )
            raise
