"""Task schemas for workspace task management."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.schemas.recurrence import RecurrenceRuleIn, TaskRecurrenceResponse


class TaskCreate(BaseModel):
    """
    Schema for creating a task, optionally repeating.

    The create-task form sends its recurrence fields flat on the task body
    together with a ``hasRecurrence`` switch; newer clients send a nested
    ``recurrence`` object. ``recurrence_rule()`` returns whichever is present.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = Field(None, validation_alias=AliasChoices("projectId", "project_id"))
    category_id: Optional[int] = Field(None, validation_alias=AliasChoices("categoryId", "category_id"))
    assigned_member_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("assignedMemberId", "assigned_member_id")
    )
    status: str = Field("todo", pattern=r"^(todo|in_progress|review|completed)$")
    priority: int = Field(0, ge=0, le=3)  # 0=low, 3=urgent
    due_date: Optional[date] = Field(None, validation_alias=AliasChoices("dueDate", "due_date"))
    time_slot: Optional[str] = Field(None, validation_alias=AliasChoices("timeSlot", "time_slot"))
    has_recurrence: bool = Field(False, validation_alias=AliasChoices("hasRecurrence", "has_recurrence"))
    recurrence: Optional[RecurrenceRuleIn] = None

    def recurrence_rule(self) -> Optional[RecurrenceRuleIn]:
        """Recurrence literal from the nested object or the flat form fields."""
        if self.recurrence is not None:
            return self.recurrence
        if not self.has_recurrence:
            return None
        return RecurrenceRuleIn.model_validate(self.model_extra or {})


class TaskUpdate(BaseModel):
    """Schema for updating a task."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    project_id: Optional[int] = Field(None, validation_alias=AliasChoices("projectId", "project_id"))
    category_id: Optional[int] = Field(None, validation_alias=AliasChoices("categoryId", "category_id"))
    assigned_member_id: Optional[int] = Field(
        None, validation_alias=AliasChoices("assignedMemberId", "assigned_member_id")
    )
    status: Optional[str] = Field(None, pattern=r"^(todo|in_progress|review|completed)$")
    priority: Optional[int] = Field(None, ge=0, le=3)
    due_date: Optional[date] = Field(None, validation_alias=AliasChoices("dueDate", "due_date"))
    time_slot: Optional[str] = Field(None, validation_alias=AliasChoices("timeSlot", "time_slot"))


class TaskResponse(BaseModel):
    """
    Schema for task API responses.

    Virtual occurrences (expanded on demand, not yet stored) have no ``id``
    and ``is_virtual`` set.
    """

    id: Optional[int] = None
    workspace_id: int
    project_id: Optional[int] = None
    category_id: Optional[int] = None
    assigned_member_id: Optional[int] = None
    title: str
    description: Optional[str] = None
    status: str = "todo"
    priority: int = 0
    due_date: Optional[date] = None
    time_slot: Optional[str] = None
    task_recurrence_id: Optional[int] = None
    is_recurring_instance: bool = False
    original_task_id: Optional[int] = None
    sequence_index: Optional[int] = None
    is_virtual: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TaskCreateResult(BaseModel):
    """Result of creating a task; repeating tasks return every stored instance."""

    message: str
    tasks: List[TaskResponse]
    recurrence: Optional[TaskRecurrenceResponse] = None
    truncated: bool = False


class TaskDeleteResult(BaseModel):
    message: str
    deleted_count: int
    recurrence: Optional[TaskRecurrenceResponse] = None


class RecurrenceDeleteResult(BaseModel):
    message: str
    deleted_tasks_count: int
    total_tasks_in_series: int
