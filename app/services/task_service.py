"""Task service for workspace tasks and their recurring series."""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
import logging
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from app.config import RECURRENCE_EAGER_INSTANCES
from app.models.recurrence_rule import TaskRecurrence
from app.models.task import Task
from app.recurrence.engine import (
    is_occurrence,
    materialize,
    occurrence_at,
    occurrence_index,
    occurrences_in_range,
    truncate_before,
)
from app.recurrence.rule import TaskOccurrence
from app.schemas.recurrence import RecurrenceRuleIn
from app.schemas.task import TaskCreate, TaskResponse, TaskUpdate
from app.services.recurrence_store import RecurrenceStore
from app.services.recurrence_validator import RecurrenceValidator
from app.services.recurring_task_service import RecurringTaskService

logger = logging.getLogger(__name__)

DELETE_SCOPES = ("this", "future")


@dataclass
class TaskCreateOutcome:
    tasks: List[Task]
    recurrence: Optional[TaskRecurrence] = None
    truncated: bool = False
    warnings: List[str] = field(default_factory=list)


class TaskService:
    """Service class for workspace task CRUD and recurring series management."""

    def __init__(self, session: Session):
        self.session = session
        self.store = RecurrenceStore(session)

    # ---- tasks ----

    def create_task(self, workspace_id: int, data: TaskCreate) -> TaskCreateOutcome:
        """
        Create a task; a repeating task stores its first occurrences up front.

        Raises:
            ValueError: If the recurrence settings are invalid.
        """
        priority_validation = RecurrenceValidator.validate_priority(data.priority)
        if not priority_validation["valid"]:
            raise ValueError(", ".join(priority_validation["errors"]))

        recurrence_in = data.recurrence_rule()
        base = Task(
            workspace_id=workspace_id,
            project_id=data.project_id,
            category_id=data.category_id,
            assigned_member_id=data.assigned_member_id,
            title=data.title,
            description=data.description,
            status=data.status,
            priority=data.priority,
            due_date=data.due_date,
            time_slot=data.time_slot,
        )

        if recurrence_in is None:
            self.session.add(base)
            self.session.commit()
            self.session.refresh(base)
            return TaskCreateOutcome(tasks=[base])

        validation = RecurrenceValidator.validate_task_with_recurrence(recurrence_in, data.due_date)
        if not validation["valid"]:
            raise ValueError(", ".join(validation["errors"]))
        rule = validation["rule"]

        # One extra occurrence tells whether the series goes past the eager window
        occurrences = materialize(rule, None, limit=RECURRENCE_EAGER_INSTANCES + 1)
        if not occurrences:
            raise ValueError("Recurrence does not produce any occurrence")
        truncated = len(occurrences) > RECURRENCE_EAGER_INSTANCES
        occurrences = occurrences[:RECURRENCE_EAGER_INSTANCES]

        recurrence = self.store.create_rule(workspace_id, rule)

        first = replace(occurrences[0], recurrence_id=recurrence.id)
        template = self.store.save_occurrence(first, base)
        tasks = [template]
        for occurrence in occurrences[1:]:
            occurrence = replace(occurrence, recurrence_id=recurrence.id, origin_task_id=template.id)
            tasks.append(self.store.save_occurrence(occurrence, template, commit=False))
        self.session.commit()
        for task in tasks:
            self.session.refresh(task)

        logger.info(
            f"Created recurring task '{data.title}' with {len(tasks)} stored occurrences "
            f"(recurrence {recurrence.id})"
        )
        return TaskCreateOutcome(
            tasks=tasks,
            recurrence=recurrence,
            truncated=truncated,
            warnings=validation["warnings"],
        )

    def list_workspace_tasks(
        self,
        workspace_id: int,
        status: Optional[str] = None,
        project_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> List[Task]:
        """Get stored tasks for a workspace with optional filters."""
        statement = select(Task).where(Task.workspace_id == workspace_id)
        if status:
            statement = statement.where(Task.status == status)
        if project_id is not None:
            statement = statement.where(Task.project_id == project_id)
        if category_id is not None:
            statement = statement.where(Task.category_id == category_id)
        statement = statement.order_by(Task.due_date.asc().nullslast(), Task.created_at.desc())
        return list(self.session.exec(statement).all())

    def get_by_id(self, task_id: int) -> Optional[Task]:
        return self.session.get(Task, task_id)

    def update_task(self, task_id: int, data: TaskUpdate) -> Optional[Task]:
        """Update a task; completing a recurring occurrence stores the next one."""
        task = self.get_by_id(task_id)
        if not task:
            return None

        was_completed = task.is_completed
        for name, value in data.model_dump(exclude_unset=True).items():
            if value is None and name in ("title", "status", "priority"):
                continue
            setattr(task, name, value)
        task.updated_at = datetime.utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)

        if task.is_completed and not was_completed and task.task_recurrence_id is not None:
            RecurringTaskService(self.session).create_next_occurrence(task)
        return task

    def delete_task(self, task_id: int, scope: str = "this") -> Optional[Tuple[int, Optional[TaskRecurrence]]]:
        """
        Delete a task.

        Args:
            task_id: Task to delete
            scope: ``"this"`` removes only this occurrence; ``"future"`` also
                removes every later occurrence and ends the series before it

        Returns:
            ``(deleted_count, recurrence)`` or None if the task does not exist
        """
        if scope not in DELETE_SCOPES:
            raise ValueError(f"Delete scope must be one of: {', '.join(DELETE_SCOPES)}")

        task = self.get_by_id(task_id)
        if not task:
            return None

        recurrence = None
        if task.task_recurrence_id is not None:
            recurrence = self.store.get_recurrence(task.task_recurrence_id)

        scheduled = self._scheduled_date(recurrence, task) if recurrence is not None else None
        if recurrence is None or scheduled is None or scope == "this":
            if scheduled is not None:
                self.store.exclude_date(recurrence, scheduled)
            self.session.delete(task)
            self.session.commit()
            return 1, recurrence

        # A rescheduled occurrence ends the series at its original slot
        cut_from = scheduled
        deleted = 0
        if task.due_date is None or task.due_date < cut_from:
            self.session.delete(task)
            deleted = 1
        deleted += self.store.delete_occurrences_from(recurrence.id, cut_from)
        shortened = truncate_before(recurrence.to_rule(), cut_from)
        if shortened is None:
            recurrence = self.store.deactivate(recurrence)
        else:
            recurrence = self.store.update_rule(recurrence, shortened)
        logger.info(f"Ended recurrence {recurrence.id} before {cut_from}; deleted {deleted} occurrences")
        return deleted, recurrence

    @staticmethod
    def _scheduled_date(recurrence: TaskRecurrence, task: Task) -> Optional[date]:
        """Date the series gave ``task``, which may differ from its current due date."""
        if task.sequence_index is None:
            return task.due_date
        return occurrence_at(recurrence.to_rule(), task.sequence_index) or task.due_date

    # ---- due-date queries ----

    def tasks_due_between(self, workspace_id: int, start: date, end: date) -> List[TaskResponse]:
        """
        Tasks due in ``[start, end]``: stored tasks plus occurrences of active
        recurrences that have not been stored yet.
        """
        if start > end:
            raise ValueError("start must not be after end")

        statement = (
            select(Task)
            .where(Task.workspace_id == workspace_id)
            .where(Task.due_date >= start)
            .where(Task.due_date <= end)
        )
        results = [TaskResponse.model_validate(task) for task in self.session.exec(statement).all()]

        for recurrence in self.store.list_workspace_recurrences(workspace_id, active_only=True):
            results.extend(self._virtual_occurrences(recurrence, start, end))

        results.sort(key=lambda t: (t.due_date, -t.priority, t.id or 0))
        return results

    def _virtual_occurrences(self, recurrence: TaskRecurrence, start: date, end: date) -> List[TaskResponse]:
        template = self.store.template_for(recurrence.id)
        if template is None:
            return []

        # Stored tasks are matched by slot so a moved one does not reappear
        stored = self.store.materialized_indexes(recurrence.id)
        excluded = recurrence.excluded
        pairs, truncated = occurrences_in_range(recurrence.to_rule(), start, end).collect()
        virtual = []
        for sequence_index, day in pairs:
            if sequence_index in stored or day in excluded:
                continue
            virtual.append(
                TaskResponse(
                    workspace_id=template.workspace_id,
                    project_id=template.project_id,
                    category_id=template.category_id,
                    assigned_member_id=template.assigned_member_id,
                    title=template.title,
                    description=template.description,
                    status="todo",
                    priority=template.priority,
                    due_date=day,
                    time_slot=template.time_slot,
                    task_recurrence_id=recurrence.id,
                    is_recurring_instance=True,
                    original_task_id=template.id,
                    sequence_index=sequence_index,
                    is_virtual=True,
                )
            )
        if truncated:
            logger.warning(f"Recurrence {recurrence.id} expansion between {start} and {end} was truncated")
        return virtual

    def due_today(self, workspace_id: int, today: date) -> List[TaskResponse]:
        """Open (``todo``) tasks due today, ordered by priority."""
        return [t for t in self.tasks_due_between(workspace_id, today, today) if t.status == "todo"]

    # ---- recurrences ----

    def update_recurrence(self, recurrence_id: int, data: RecurrenceRuleIn, today: date) -> Optional[TaskRecurrence]:
        """
        Replace a series' rule, keeping its anchor.

        Stored open occurrences from ``today`` on that the new rule no longer
        produces are removed; past and finished ones are kept.

        Raises:
            ValidationError: If the new rule is invalid.
        """
        recurrence = self.store.get_recurrence(recurrence_id)
        if recurrence is None:
            return None

        rule = data.to_rule(recurrence.anchor_date)
        recurrence = self.store.update_rule(recurrence, rule)

        stale = [
            task
            for task in self.store.occurrences_for(recurrence.id)
            if task.due_date is not None
            and task.due_date >= today
            and task.status == "todo"
            and not is_occurrence(rule, task.due_date)
        ]
        for task in stale:
            self.session.delete(task)
        if stale:
            self.session.commit()
            logger.info(f"Removed {len(stale)} occurrences no longer produced by recurrence {recurrence.id}")
        return recurrence

    def delete_recurrence(self, recurrence_id: int, today: date) -> Optional[Tuple[int, int]]:
        """
        Stop a series from ``today``: delete today's and later occurrences,
        keep past ones, and deactivate the rule.

        Returns:
            ``(deleted_count, total_in_series)`` or None if it does not exist
        """
        recurrence = self.store.get_recurrence(recurrence_id)
        if recurrence is None:
            return None

        total = len(self.store.occurrences_for(recurrence.id))
        deleted = self.store.delete_occurrences_from(recurrence.id, today)

        shortened = truncate_before(recurrence.to_rule(), today)
        if shortened is not None:
            recurrence = self.store.update_rule(recurrence, shortened)
        self.store.deactivate(recurrence)
        return deleted, total

    def materialize_occurrence(self, recurrence_id: int, day: date) -> Optional[Task]:
        """
        Store the occurrence of a series on ``day`` (e.g. before editing it).

        Returns the existing task when it is already stored.

        Raises:
            ValueError: If ``day`` is not an occurrence of the series.
        """
        recurrence = self.store.get_recurrence(recurrence_id)
        if recurrence is None:
            return None

        rule = recurrence.to_rule()
        sequence_index = occurrence_index(rule, day)
        if sequence_index is None or day in recurrence.excluded or not recurrence.is_active:
            raise ValueError(f"{day.isoformat()} is not an occurrence of recurrence {recurrence_id}")

        for task in self.store.occurrences_for(recurrence.id):
            if task.sequence_index == sequence_index:
                return task

        template = self.store.template_for(recurrence.id)
        if template is None:
            raise ValueError(f"Recurrence {recurrence_id} has no remaining tasks to copy from")

        occurrence = TaskOccurrence(
            recurrence_id=recurrence.id,
            sequence_index=sequence_index,
            scheduled_date=day,
            origin_task_id=template.id,
        )
        return self.store.save_occurrence(occurrence, template)

    def preview_recurrence(
        self, recurrence: TaskRecurrence, start: Optional[date], end: Optional[date]
    ) -> Tuple[List[Tuple[int, date]], bool]:
        """Scheduled ``(sequence_index, date)`` pairs of a stored series in a window."""
        excluded = recurrence.excluded
        pairs, truncated = occurrences_in_range(recurrence.to_rule(), start, end).collect()
        return [(i, d) for i, d in pairs if d not in excluded], truncated
