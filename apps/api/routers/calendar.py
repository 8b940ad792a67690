"""
Calendar API Router

The training block calendar: planned sessions per day, merged with the runs
that actually happened.

Endpoints:
- GET /calendar/block - Day grid, block volume and week summaries
- GET /calendar/week - Raw entries for the 7 days from a start date
- PUT /calendar/entry - Create or replace the entry for a date
- DELETE /calendar/entry/{entry_id} - Remove an entry
- PATCH /calendar/entry/{entry_id}/status - Set planned/completed
- POST /calendar/entry/{entry_id}/toggle - Flip completed <-> planned
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from core.exceptions import ServiceUnavailableError
from core.gateway import get_gateway, get_training_block_view
from schemas import (
    CalendarCellResponse,
    CalendarEntryRequest,
    CalendarEntryResponse,
    CalendarWeekResponse,
    StatusUpdate,
    TrainingBlockResponse,
    WeekSummaryResponse,
)
from services.api_gateway import APIGateway, GatewayError
from services.dashboard_view import TrainingBlockView
from services.training_block import TrainingBlock, date_key, parse_date_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["Calendar"])


def _to_response(block: TrainingBlock) -> TrainingBlockResponse:
    return TrainingBlockResponse(
        start_date=block.start_date,
        end_date=block.end_date,
        label=block.label,
        block_volume_miles=block.block_volume_miles,
        days=[
            CalendarCellResponse(
                date=cell.date,
                date_key=cell.date_key,
                is_today=cell.is_today,
                entry=cell.entry,
                effective_status=cell.effective_status,
                planned_miles=cell.planned_miles,
                planned_pace=cell.planned_pace,
                activity_count=len(cell.activities),
                completed_miles=cell.completed_miles,
            )
            for cell in block.cells
        ],
        weeks=[
            WeekSummaryResponse(
                week_start=w.week_start,
                planned_sessions=w.planned_sessions,
                training_sessions=w.training_sessions,
                completed_sessions=w.completed_sessions,
                planned_miles=w.planned_miles,
                completed_runs=w.completed_runs,
                completed_miles=w.completed_miles,
            )
            for w in block.weeks
        ],
    )


def _unavailable(e: GatewayError) -> ServiceUnavailableError:
    logger.warning(f"Calendar request failed at gateway: {e}")
    return ServiceUnavailableError()


@router.get("/block", response_model=TrainingBlockResponse)
def get_training_block(
    start: Optional[str] = Query(None, description="Any day in the block, YYYY-MM-DD (default: today)"),
    days: Optional[int] = Query(None, ge=1, le=70),
    view: TrainingBlockView = Depends(get_training_block_view),
):
    """
    Grid for the block containing `start`, normalized back to its week start.

    Planned entries and synced activities are merged per day; past days
    still planned come back with effective_status "missed".
    """
    if days is not None:
        view.length_days = days
    anchor = parse_date_key(start) if start else None
    try:
        block = view.load(anchor)
    except GatewayError as e:
        raise _unavailable(e)
    return _to_response(block)


@router.get("/week", response_model=CalendarWeekResponse)
def get_calendar_week(
    start: str = Query(..., description="First day of the week, YYYY-MM-DD"),
    gateway: APIGateway = Depends(get_gateway),
):
    week_start = parse_date_key(start)
    try:
        entries = gateway.get_calendar_week(date_key(week_start))
    except GatewayError as e:
        raise _unavailable(e)
    return CalendarWeekResponse(week_start=week_start, entries=entries)


@router.put("/entry", response_model=CalendarEntryResponse)
def upsert_calendar_entry(
    request: CalendarEntryRequest,
    view: TrainingBlockView = Depends(get_training_block_view),
):
    """Create or fully replace the entry on request.date. Repeating the call is a no-op."""
    try:
        entry = view.save_entry(request.model_dump(exclude_unset=True))
    except GatewayError as e:
        raise _unavailable(e)
    return CalendarEntryResponse(entry=entry)


@router.delete("/entry/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_calendar_entry(
    entry_id: UUID,
    gateway: APIGateway = Depends(get_gateway),
):
    try:
        gateway.delete_calendar_entry(entry_id)
    except GatewayError as e:
        raise _unavailable(e)


@router.patch("/entry/{entry_id}/status", status_code=status.HTTP_204_NO_CONTENT)
def update_calendar_entry_status(
    entry_id: UUID,
    update: StatusUpdate,
    gateway: APIGateway = Depends(get_gateway),
):
    try:
        gateway.update_calendar_entry_status(entry_id, update.status)
    except GatewayError as e:
        raise _unavailable(e)


@router.post("/entry/{entry_id}/toggle", response_model=CalendarEntryResponse)
def toggle_calendar_entry(
    entry_id: UUID,
    start: Optional[str] = Query(None, description="Any day in the block holding the entry"),
    view: TrainingBlockView = Depends(get_training_block_view),
):
    """Completed goes back to planned, planned (or missed) completes."""
    try:
        if start:
            view.load(parse_date_key(start))
        entry = view.toggle_status(entry_id)
    except GatewayError as e:
        raise _unavailable(e)
    return CalendarEntryResponse(entry=entry)
