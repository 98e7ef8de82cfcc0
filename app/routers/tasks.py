"""Task router for workspace tasks."""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlmodel import Session

from app.config import today
from app.db.config import get_session
from app.schemas.recurrence import TaskRecurrenceResponse
from app.schemas.task import (
    TaskCreate,
    TaskCreateResult,
    TaskDeleteResult,
    TaskResponse,
    TaskUpdate,
)
from app.services.task_service import TaskService
from app.utils.logger import get_logger

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix
api_logger = get_logger("workspace-tasks.api")


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    """Dependency for getting TaskService instance."""
    return TaskService(session)


@router.get("/workspaces/{workspace_id}/tasks", response_model=List[TaskResponse])
async def list_tasks(
    workspace_id: int,
    service: TaskService = Depends(get_task_service),
    status_filter: Optional[str] = Query(None, alias="status", description="todo, in_progress, review, completed"),
    project_id: Optional[int] = Query(None, description="Filter by project"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
):
    """List stored tasks of a workspace."""
    return service.list_workspace_tasks(
        workspace_id,
        status=status_filter,
        project_id=project_id,
        category_id=category_id,
    )


@router.post(
    "/workspaces/{workspace_id}/tasks",
    response_model=TaskCreateResult,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    workspace_id: int,
    task_data: TaskCreate,
    service: TaskService = Depends(get_task_service),
):
    """Create a task; repeating tasks create a recurrence and its first occurrences."""
    try:
        outcome = service.create_task(workspace_id, task_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if outcome.recurrence is None:
        return TaskCreateResult(
            message="Task created",
            tasks=[TaskResponse.model_validate(outcome.tasks[0])],
        )

    api_logger.bind(workspace_id=workspace_id, recurrence_id=outcome.recurrence.id).info(
        "recurring task created",
        stored_occurrences=len(outcome.tasks),
        warnings=outcome.warnings,
    )
    return TaskCreateResult(
        message=f"Created {len(outcome.tasks)} recurring tasks",
        tasks=[TaskResponse.model_validate(t) for t in outcome.tasks],
        recurrence=TaskRecurrenceResponse.model_validate(outcome.recurrence),
        truncated=outcome.truncated,
    )


@router.get("/workspaces/{workspace_id}/tasks/due", response_model=List[TaskResponse])
async def get_tasks_due_between(
    workspace_id: int,
    start: date = Query(..., description="Start date in ISO format (e.g., 2025-01-01)"),
    end: date = Query(..., description="End date in ISO format (e.g., 2025-01-31)"),
    service: TaskService = Depends(get_task_service),
):
    """Tasks due in a date range, including occurrences not stored yet."""
    if start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start must not be after end",
        )
    return service.tasks_due_between(workspace_id, start, end)


@router.get("/workspaces/{workspace_id}/tasks/due-today", response_model=List[TaskResponse])
async def get_due_today_tasks(
    workspace_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Open tasks due today in the application timezone."""
    return service.due_today(workspace_id, today())


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    task = service.get_by_id(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_data: TaskUpdate,
    service: TaskService = Depends(get_task_service),
):
    """Update a task. Completing a recurring occurrence stores the next one."""
    task = service.update_task(task_id, task_data)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.delete("/tasks/{task_id}", response_model=TaskDeleteResult)
async def delete_task(
    task_id: int,
    scope: str = Query("this", description="this: only this occurrence; future: this and later occurrences"),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task or a tail of its recurring series."""
    try:
        result = service.delete_task(task_id, scope)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )

    deleted, recurrence = result
    if recurrence is not None:
        api_logger.bind(task_id=task_id, recurrence_id=recurrence.id).info(
            "recurring task deleted", scope=scope, deleted=deleted
        )
    if scope == "future" and recurrence is not None:
        message = f"Deleted {deleted} occurrences; the series now ends before this task"
    else:
        message = "Task deleted successfully"
    return TaskDeleteResult(
        message=message,
        deleted_count=deleted,
        recurrence=TaskRecurrenceResponse.model_validate(recurrence) if recurrence else None,
    )
