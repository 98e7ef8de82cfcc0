"""Recurrence schemas shared by the task and recurrence routers."""
from datetime import date, datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.recurrence.rule import (
    MONTHLY_OPTION_ALIASES,
    MonthlyOption,
    RecurrenceRule,
    RecurrenceType,
    end_condition_from_fields,
)


class RecurrenceRuleIn(BaseModel):
    """
    Recurrence rule literal sent by the UI.

    The create-task and edit-task forms drifted apart and send different field
    names (``recurrenceType``/``recurrenceInterval``/``recurrenceEndType`` vs
    ``type``/``interval``/``endType``). Both shapes are accepted here and
    turned into one ``RecurrenceRule``. Structural checks (interval >= 1,
    weekly days present, ...) are left to the rule so every violation is
    reported together.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(
        "daily",
        validation_alias=AliasChoices("type", "recurrenceType", "recurrence_type"),
    )
    interval: int = Field(
        1,
        validation_alias=AliasChoices("interval", "recurrenceInterval", "recurrence_interval"),
    )
    end_type: str = Field(
        "never",
        validation_alias=AliasChoices("endType", "recurrenceEndType", "end_type"),
    )
    end_count: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("endCount", "recurrenceEndCount", "end_count"),
    )
    end_date: Optional[date] = Field(
        None,
        validation_alias=AliasChoices("endDate", "recurrenceEndDate", "end_date"),
    )
    weekly_days: Optional[List[int]] = Field(
        None,
        validation_alias=AliasChoices("weeklyDays", "weekly_days"),
    )
    monthly_option: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("monthlyOption", "monthly_option"),
    )

    def to_rule(self, anchor_date: date) -> RecurrenceRule:
        """
        Build the canonical rule anchored on ``anchor_date``.

        Raises:
            ValidationError: If the rule violates any construction constraint.
        """
        option = MONTHLY_OPTION_ALIASES.get((self.monthly_option or "").lower(), self.monthly_option)
        return RecurrenceRule(
            type=self.type,
            anchor_date=anchor_date,
            interval=self.interval,
            weekly_days=frozenset(self.weekly_days or ()),
            monthly_option=option or MonthlyOption.BY_DATE,
            end_condition=end_condition_from_fields(self.end_type, self.end_count, self.end_date),
        )


class RecurrencePreviewRequest(BaseModel):
    """Expand a rule literal without storing anything."""

    anchor_date: date = Field(validation_alias=AliasChoices("anchorDate", "anchor_date", "dueDate"))
    recurrence: RecurrenceRuleIn
    start: Optional[date] = None
    end: Optional[date] = None


class OccurrencePreview(BaseModel):
    sequence_index: int
    scheduled_date: date


class OccurrenceListResponse(BaseModel):
    occurrences: List[OccurrencePreview]
    count: int
    truncated: bool = False


class MaterializeOccurrenceRequest(BaseModel):
    scheduled_date: date = Field(validation_alias=AliasChoices("date", "scheduledDate", "scheduled_date"))


class TaskRecurrenceResponse(BaseModel):
    """Schema for task recurrence API responses."""

    id: int
    workspace_id: int
    recurrence_type: RecurrenceType
    recurrence_pattern: dict
    interval: int
    anchor_date: date
    weekly_days: Optional[List[int]] = None
    days_of_week: Optional[str] = None
    monthly_option: Optional[MonthlyOption] = None
    day_of_month: Optional[int] = None
    week_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    end_type: str
    end_count: Optional[int] = None
    end_date: Optional[date] = None
    excluded_dates: List[str] = []
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
