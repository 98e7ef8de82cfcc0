"""Task model for SQLModel."""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

TASK_STATUSES = ("todo", "in_progress", "review", "completed")


class Task(SQLModel, table=True):
    """
    Task entity scoped to a workspace.

    Tasks created from a recurrence carry ``task_recurrence_id`` and their
    ``sequence_index`` in the series. The first stored task of a series is the
    template; later instances point back to it through ``original_task_id``.
    """

    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: int = Field(index=True)
    project_id: Optional[int] = Field(default=None, index=True)
    category_id: Optional[int] = Field(default=None)
    assigned_member_id: Optional[int] = Field(default=None)
    title: str = Field(max_length=255, min_length=1)
    description: Optional[str] = Field(default=None)
    status: str = Field(default="todo", max_length=50)  # todo, in_progress, review, completed
    priority: int = Field(default=0)  # 0-3 (0=low, 3=urgent)
    due_date: Optional[date] = Field(default=None, index=True)
    time_slot: Optional[str] = Field(default=None, max_length=20)  # e.g. "6:00-9:00"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Recurrence
    task_recurrence_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("task_recurrences.id"), index=True, nullable=True),
    )
    is_recurring_instance: bool = Field(default=False)
    original_task_id: Optional[int] = Field(default=None)  # template task of the series
    sequence_index: Optional[int] = Field(default=None)  # 0-based position in the series

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"
