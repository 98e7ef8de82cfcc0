"""Task recurrence router."""
from datetime import date, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.config import RECURRENCE_DEFAULT_WINDOW_DAYS, today
from app.recurrence.engine import occurrences_in_range
from app.recurrence.errors import ValidationError
from app.routers.tasks import api_logger, get_task_service
from app.schemas.recurrence import (
    MaterializeOccurrenceRequest,
    OccurrenceListResponse,
    OccurrencePreview,
    RecurrencePreviewRequest,
    RecurrenceRuleIn,
    TaskRecurrenceResponse,
)
from app.schemas.task import RecurrenceDeleteResult, TaskResponse
from app.services.task_service import TaskService

router = APIRouter(tags=["Task Recurrences"])


def _validation_failed(error: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.to_dict())


def _window(start: Optional[date], end: Optional[date], anchor: date):
    """Default a preview window to the anchor plus the configured number of days."""
    start = start or anchor
    end = end or start + timedelta(days=RECURRENCE_DEFAULT_WINDOW_DAYS)
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    return start, end


@router.get("/workspaces/{workspace_id}/task-recurrences", response_model=List[TaskRecurrenceResponse])
async def list_task_recurrences(
    workspace_id: int,
    service: TaskService = Depends(get_task_service),
):
    """List every recurrence of a workspace, newest first."""
    return service.store.list_workspace_recurrences(workspace_id)


@router.get("/task-recurrences/{recurrence_id}", response_model=TaskRecurrenceResponse)
async def get_task_recurrence(
    recurrence_id: int,
    service: TaskService = Depends(get_task_service),
):
    recurrence = service.store.get_recurrence(recurrence_id)
    if not recurrence:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task recurrence not found"
        )
    return recurrence


@router.patch("/task-recurrences/{recurrence_id}", response_model=TaskRecurrenceResponse)
async def update_task_recurrence(
    recurrence_id: int,
    rule_data: RecurrenceRuleIn,
    service: TaskService = Depends(get_task_service),
):
    """Replace the rule of a series; the anchor date is kept."""
    try:
        recurrence = service.update_recurrence(recurrence_id, rule_data, today())
    except ValidationError as e:
        raise _validation_failed(e)

    if not recurrence:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task recurrence not found"
        )
    return recurrence


@router.delete("/task-recurrences/{recurrence_id}", response_model=RecurrenceDeleteResult)
async def delete_task_recurrence(
    recurrence_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Stop a series: today's and future occurrences are deleted, past ones kept."""
    result = service.delete_recurrence(recurrence_id, today())
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task recurrence not found"
        )

    deleted, total = result
    api_logger.bind(recurrence_id=recurrence_id).info(
        "recurrence deleted",
        deleted_tasks=deleted,
        total_tasks=total,
    )
    return RecurrenceDeleteResult(
        message=f"Task recurrence and {deleted} future tasks deleted successfully",
        deleted_tasks_count=deleted,
        total_tasks_in_series=total,
    )


@router.get("/task-recurrences/{recurrence_id}/occurrences", response_model=OccurrenceListResponse)
async def list_recurrence_occurrences(
    recurrence_id: int,
    start: Optional[date] = Query(None, description="Window start (defaults to the anchor date)"),
    end: Optional[date] = Query(None, description="Window end (defaults to start plus the preview window)"),
    service: TaskService = Depends(get_task_service),
):
    """Scheduled dates of a stored series within a window."""
    recurrence = service.store.get_recurrence(recurrence_id)
    if not recurrence:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task recurrence not found"
        )

    start, end = _window(start, end, recurrence.anchor_date)
    pairs, truncated = service.preview_recurrence(recurrence, start, end)
    return OccurrenceListResponse(
        occurrences=[OccurrencePreview(sequence_index=i, scheduled_date=d) for i, d in pairs],
        count=len(pairs),
        truncated=truncated,
    )


@router.post(
    "/task-recurrences/{recurrence_id}/occurrences",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def materialize_recurrence_occurrence(
    recurrence_id: int,
    request: MaterializeOccurrenceRequest,
    service: TaskService = Depends(get_task_service),
):
    """Store the occurrence on a given date so it can be edited like any task."""
    try:
        task = service.materialize_occurrence(recurrence_id, request.scheduled_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task recurrence not found"
        )
    return task


@router.post("/recurrence/preview", response_model=OccurrenceListResponse)
async def preview_recurrence(request: RecurrencePreviewRequest):
    """Expand a rule literal without storing it."""
    try:
        rule = request.recurrence.to_rule(request.anchor_date)
    except ValidationError as e:
        raise _validation_failed(e)

    start, end = _window(request.start, request.end, request.anchor_date)
    pairs, truncated = occurrences_in_range(rule, start, end).collect()
    occurrences = [OccurrencePreview(sequence_index=i, scheduled_date=d) for i, d in pairs]
    return OccurrenceListResponse(
        occurrences=occurrences,
        count=len(occurrences),
        truncated=truncated,
    )
