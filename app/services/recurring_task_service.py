"""
Recurring Task Service

Rolls a repeating series forward: when an occurrence is completed, the next
occurrence is stored so it shows up as a regular task.
"""

from datetime import date
import logging
from typing import Optional

from sqlmodel import Session

from app.models.recurrence_rule import TaskRecurrence
from app.models.task import Task
from app.recurrence.engine import next_occurrence, occurrence_index
from app.recurrence.rule import TaskOccurrence
from app.services.recurrence_store import RecurrenceStore

logger = logging.getLogger(__name__)


class RecurringTaskService:
    """Service to handle recurring task logic."""

    def __init__(self, session: Session):
        self.session = session
        self.store = RecurrenceStore(session)

    def calculate_next_occurrence(self, recurrence: TaskRecurrence, after: date) -> Optional[date]:
        """Next scheduled date after ``after``, skipping dates removed from the series."""
        if not recurrence.is_active:
            return None

        rule = recurrence.to_rule()
        excluded = recurrence.excluded
        candidate = next_occurrence(rule, after)
        while candidate is not None and candidate in excluded:
            candidate = next_occurrence(rule, candidate)
        return candidate

    def prevent_duplicate_creation(self, recurrence_id: int, sequence_index: Optional[int]) -> bool:
        """
        Check that the slot ``sequence_index`` is not stored yet, even under a
        moved due date.

        Returns:
            True if the occurrence can be created, False if it already exists
        """
        if sequence_index in self.store.materialized_indexes(recurrence_id):
            logger.info(f"Duplicate prevention: recurrence {recurrence_id} already stores occurrence #{sequence_index}")
            return False
        return True

    def create_next_occurrence(self, completed_task: Task) -> Optional[Task]:
        """Create the next occurrence of a recurring task."""
        if completed_task.task_recurrence_id is None or completed_task.due_date is None:
            return None

        recurrence = self.store.get_recurrence(completed_task.task_recurrence_id)
        if recurrence is None:
            logger.warning(
                f"Task {completed_task.id} references missing recurrence {completed_task.task_recurrence_id}"
            )
            return None

        next_date = self.calculate_next_occurrence(recurrence, completed_task.due_date)
        if next_date is None:
            logger.info(f"Recurrence {recurrence.id} has no occurrence after {completed_task.due_date}")
            return None

        sequence_index = occurrence_index(recurrence.to_rule(), next_date)
        if not self.prevent_duplicate_creation(recurrence.id, sequence_index):
            return None

        template = self.store.template_for(recurrence.id) or completed_task
        occurrence = TaskOccurrence(
            recurrence_id=recurrence.id,
            sequence_index=sequence_index,
            scheduled_date=next_date,
            origin_task_id=template.id,
        )
        new_task = self.store.save_occurrence(occurrence, template)

        logger.info(f"Created next occurrence of task {completed_task.id}: new task {new_task.id} on {next_date}")
        return new_task
