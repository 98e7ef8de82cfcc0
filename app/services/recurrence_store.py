"""Persistence for recurrence rules and their materialized occurrences."""
from datetime import date, datetime
import logging
from typing import List, Optional, Set

from sqlmodel import Session, select

from app.models.recurrence_rule import TaskRecurrence
from app.models.task import Task
from app.recurrence.rule import RecurrenceRule, TaskOccurrence

logger = logging.getLogger(__name__)


class RecurrenceStore:
    """Stores recurrence rules and the task rows generated from them."""

    def __init__(self, session: Session):
        self.session = session

    def create_rule(self, workspace_id: int, rule: RecurrenceRule) -> TaskRecurrence:
        recurrence = TaskRecurrence.from_rule(workspace_id, rule)
        self.session.add(recurrence)
        self.session.commit()
        self.session.refresh(recurrence)
        logger.info(
            f"Created recurrence {recurrence.id} ({rule.type.value}, every {rule.interval}) "
            f"in workspace {workspace_id}"
        )
        return recurrence

    def get_recurrence(self, recurrence_id: int) -> Optional[TaskRecurrence]:
        return self.session.get(TaskRecurrence, recurrence_id)

    def load_rule(self, recurrence_id: int) -> Optional[RecurrenceRule]:
        """Load the engine rule for a stored recurrence, or None if it does not exist."""
        recurrence = self.get_recurrence(recurrence_id)
        if recurrence is None:
            return None
        return recurrence.to_rule()

    def list_workspace_recurrences(self, workspace_id: int, active_only: bool = False) -> List[TaskRecurrence]:
        statement = select(TaskRecurrence).where(TaskRecurrence.workspace_id == workspace_id)
        if active_only:
            statement = statement.where(TaskRecurrence.is_active == True)  # noqa: E712
        statement = statement.order_by(TaskRecurrence.created_at.desc())
        return list(self.session.exec(statement).all())

    def update_rule(self, recurrence: TaskRecurrence, rule: RecurrenceRule) -> TaskRecurrence:
        recurrence.apply_rule(rule)
        self.session.add(recurrence)
        self.session.commit()
        self.session.refresh(recurrence)
        return recurrence

    def deactivate(self, recurrence: TaskRecurrence) -> TaskRecurrence:
        recurrence.is_active = False
        recurrence.updated_at = datetime.utcnow()
        self.session.add(recurrence)
        self.session.commit()
        self.session.refresh(recurrence)
        return recurrence

    def exclude_date(self, recurrence: TaskRecurrence, day: date) -> TaskRecurrence:
        """Record a single removed occurrence so on-demand expansion skips it."""
        excluded = set(recurrence.excluded_dates or [])
        excluded.add(day.isoformat())
        # Reassign so the JSON column is flagged dirty
        recurrence.excluded_dates = sorted(excluded)
        recurrence.updated_at = datetime.utcnow()
        self.session.add(recurrence)
        self.session.commit()
        self.session.refresh(recurrence)
        return recurrence

    def save_occurrence(self, occurrence: TaskOccurrence, template: Task, commit: bool = True) -> Task:
        """
        Store one occurrence as a task copied from ``template``.

        The returned task's ``id`` is the occurrence id.
        """
        is_template = occurrence.origin_task_id is None
        task = Task(
            workspace_id=template.workspace_id,
            project_id=template.project_id,
            category_id=template.category_id,
            assigned_member_id=template.assigned_member_id,
            title=template.title,
            description=template.description,
            status="todo" if not is_template else template.status,
            priority=template.priority,
            due_date=occurrence.scheduled_date,
            time_slot=template.time_slot,
            task_recurrence_id=occurrence.recurrence_id,
            is_recurring_instance=not is_template,
            original_task_id=occurrence.origin_task_id,
            sequence_index=occurrence.sequence_index,
        )
        self.session.add(task)
        if commit:
            self.session.commit()
            self.session.refresh(task)
        return task

    def occurrences_for(self, recurrence_id: int) -> List[Task]:
        statement = (
            select(Task)
            .where(Task.task_recurrence_id == recurrence_id)
            .order_by(Task.due_date.asc(), Task.id.asc())
        )
        return list(self.session.exec(statement).all())

    def materialized_dates(self, recurrence_id: int) -> Set[date]:
        statement = select(Task.due_date).where(Task.task_recurrence_id == recurrence_id)
        return {d for d in self.session.exec(statement).all() if d is not None}

    def materialized_indexes(self, recurrence_id: int) -> Set[int]:
        """Sequence indexes already stored; a rescheduled task still holds its slot."""
        statement = select(Task.sequence_index).where(Task.task_recurrence_id == recurrence_id)
        return {i for i in self.session.exec(statement).all() if i is not None}

    def template_for(self, recurrence_id: int) -> Optional[Task]:
        """First stored task of the series; it supplies title, priority and so on."""
        statement = (
            select(Task)
            .where(Task.task_recurrence_id == recurrence_id)
            .order_by(Task.sequence_index.asc(), Task.id.asc())
        )
        return self.session.exec(statement).first()

    def delete_occurrences_from(self, recurrence_id: int, from_date: date) -> int:
        """Delete stored occurrences due on or after ``from_date``; returns how many."""
        statement = (
            select(Task)
            .where(Task.task_recurrence_id == recurrence_id)
            .where(Task.due_date >= from_date)
        )
        tasks = list(self.session.exec(statement).all())
        for task in tasks:
            self.session.delete(task)
        self.session.commit()
        logger.info(f"Deleted {len(tasks)} occurrences of recurrence {recurrence_id} from {from_date}")
        return len(tasks)
