"""Recurrence Validator."""
from datetime import date
from typing import Any, Dict, Optional

from app.recurrence.errors import ValidationError
from app.recurrence.rule import RecurrenceRule, RecurrenceType
from app.schemas.recurrence import RecurrenceRuleIn


class RecurrenceValidator:
    """Validate recurrence payloads and task fields before anything is stored."""

    @staticmethod
    def _result() -> Dict[str, Any]:
        return {
            "valid": True,
            "errors": [],
            "warnings": [],
        }

    @staticmethod
    def validate_recurrence_pattern(recurrence: RecurrenceRuleIn, anchor_date: date) -> Dict[str, Any]:
        """
        Validate a recurrence literal against an anchor date.

        Args:
            recurrence: Recurrence literal from the request body
            anchor_date: Due date of the first occurrence

        Returns:
            Dict with validation result; ``rule`` holds the built rule when valid
        """
        result = RecurrenceValidator._result()

        try:
            rule = recurrence.to_rule(anchor_date)
        except ValidationError as e:
            result["valid"] = False
            result["errors"].extend(e.violations)
            return result

        result["rule"] = rule
        result["warnings"].extend(RecurrenceValidator.rule_warnings(rule))
        result["warnings"].extend(RecurrenceValidator.end_field_warnings(recurrence))
        return result

    @staticmethod
    def rule_warnings(rule: RecurrenceRule) -> list:
        """Fields that were supplied but have no effect on the expansion."""
        warnings = []
        if rule.type is RecurrenceType.CUSTOM:
            fallback = "weekly" if rule.weekly_days else "daily"
            warnings.append(f"Custom recurrence has no pattern of its own; expanding as {fallback}")
        elif rule.weekly_days and rule.type is not RecurrenceType.WEEKLY:
            warnings.append(f"Weekly days are ignored for a {rule.type.value} recurrence")
        return warnings

    @staticmethod
    def end_field_warnings(recurrence: RecurrenceRuleIn) -> list:
        """End count or date sent alongside an end type that does not read it."""
        end_type = (recurrence.end_type or "never").strip().lower()
        warnings = []
        if recurrence.end_count is not None and end_type != "after_count":
            warnings.append(f"End count is ignored when end type is {end_type}")
        if recurrence.end_date is not None and end_type != "on_date":
            warnings.append(f"End date is ignored when end type is {end_type}")
        return warnings

    @staticmethod
    def validate_task_with_recurrence(
        recurrence: Optional[RecurrenceRuleIn], due_date: Optional[date]
    ) -> Dict[str, Any]:
        """
        Validate a task that has recurrence settings.

        A repeating task is anchored on its due date, so one is required.
        """
        result = RecurrenceValidator._result()

        if recurrence is None:
            return result

        if due_date is None:
            result["valid"] = False
            result["errors"].append("A recurring task requires a due date to anchor the series")
            return result

        return RecurrenceValidator.validate_recurrence_pattern(recurrence, due_date)

    @staticmethod
    def validate_priority(priority: Any) -> Dict[str, Any]:
        """
        Validate priority value.

        Args:
            priority: Priority level, 0 (low) to 3 (urgent)

        Returns:
            Dict with validation result
        """
        result = RecurrenceValidator._result()

        if priority is None:
            return result

        if isinstance(priority, bool) or not isinstance(priority, int) or not 0 <= priority <= 3:
            result["valid"] = False
            result["errors"].append(f"Priority must be an integer from 0 (low) to 3 (urgent), got: {priority}")

        return result
