"""Task recurrence model for SQLModel."""
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from app.recurrence.rule import (
    RecurrenceRule,
    RecurrenceType,
    MonthlyOption,
    end_condition_from_fields,
    weekday_names,
)


class TaskRecurrence(SQLModel, table=True):
    """Stored recurrence rule shared by every occurrence of a repeating task."""

    __tablename__ = "task_recurrences"

    id: Optional[int] = Field(default=None, primary_key=True)
    workspace_id: int = Field(index=True)
    recurrence_type: str = Field(max_length=20)  # daily, weekly, monthly, yearly, custom
    recurrence_pattern: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    interval: int = Field(default=1)  # every N units
    anchor_date: date
    weekly_days: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))  # 0-6 for Sunday-Saturday
    days_of_week: Optional[str] = Field(default=None, max_length=100)  # "monday,wednesday"
    monthly_option: Optional[str] = Field(default=None, max_length=20)  # by-date, by-relative-day
    day_of_month: Optional[int] = Field(default=None)  # 15 for the 15th
    week_of_month: Optional[int] = Field(default=None)  # 1 for first week, -1 for last week
    month_of_year: Optional[int] = Field(default=None)  # 1-12, yearly rules only
    end_type: str = Field(default="never", max_length=20)  # never, after_count, on_date
    end_count: Optional[int] = Field(default=None)
    end_date: Optional[date] = Field(default=None)
    # ISO dates removed one at a time; expansion skips them
    excluded_dates: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_rule(self) -> RecurrenceRule:
        """Rebuild the engine rule from the stored columns."""
        return RecurrenceRule(
            type=RecurrenceType(self.recurrence_type),
            anchor_date=self.anchor_date,
            interval=self.interval,
            weekly_days=frozenset(self.weekly_days or ()),
            monthly_option=self.monthly_option or MonthlyOption.BY_DATE,
            end_condition=end_condition_from_fields(self.end_type, self.end_count, self.end_date),
        )

    def apply_rule(self, rule: RecurrenceRule) -> None:
        """Copy a validated rule onto the stored columns."""
        anchor = rule.anchor_date
        self.recurrence_type = rule.type.value
        self.recurrence_pattern = rule.to_pattern()
        self.interval = rule.interval
        self.anchor_date = anchor
        self.weekly_days = rule.sorted_weekly_days or None
        self.days_of_week = weekday_names(rule.weekly_days) or None
        self.monthly_option = rule.monthly_option.value if rule.type is RecurrenceType.MONTHLY else None
        self.day_of_month = None
        self.week_of_month = None
        self.month_of_year = None
        if rule.type is RecurrenceType.MONTHLY:
            if rule.monthly_option is MonthlyOption.BY_RELATIVE_DAY:
                ordinal = (anchor.day - 1) // 7 + 1
                self.week_of_month = -1 if ordinal >= 5 else ordinal
            else:
                self.day_of_month = anchor.day
        elif rule.type is RecurrenceType.YEARLY:
            self.day_of_month = anchor.day
            self.month_of_year = anchor.month
        self.end_type = rule.end_condition.end_type
        self.end_count = rule.end_count
        self.end_date = rule.end_date
        self.updated_at = datetime.utcnow()

    @classmethod
    def from_rule(cls, workspace_id: int, rule: RecurrenceRule) -> "TaskRecurrence":
        recurrence = cls(
            workspace_id=workspace_id,
            recurrence_type=rule.type.value,
            anchor_date=rule.anchor_date,
        )
        recurrence.apply_rule(rule)
        return recurrence

    @property
    def excluded(self) -> set:
        return {date.fromisoformat(d) for d in (self.excluded_dates or [])}
