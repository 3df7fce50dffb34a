"""
Form-level validation helpers

Unlike model validation (which stops at the first problem), these helpers
collect every error so callers can report them together.
"""

import html
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from taskhub.config.constants import TASK_TITLE_MAX_LENGTH, TASK_DESCRIPTION_MAX_LENGTH
from taskhub.models.task import TaskPriority
from taskhub.utils.date_utils import get_current_datetime, parse_datetime

HTML_TAG_PATTERN = re.compile(r"<[^>]*>")


@dataclass
class ValidationResult:
    """Outcome of a validation run"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    sanitized: Any = None


def contains_html(text: str) -> bool:
    return bool(HTML_TAG_PATTERN.search(text))


def sanitize(text: str) -> str:
    return html.escape(text, quote=True)


def validate_title(title: Optional[str], max_length: int = TASK_TITLE_MAX_LENGTH) -> ValidationResult:
    """
    Validate task title

    Args:
        title: Raw title
        max_length: Maximum allowed length

    Returns:
        ValidationResult with trimmed, escaped title
    """
    if not title:
        return ValidationResult(is_valid=False, errors=["Title is required"])
    if not isinstance(title, str):
        return ValidationResult(is_valid=False, errors=["Title must be a string"])

    errors: List[str] = []
    trimmed = title.strip()

    if not trimmed:
        errors.append("Title cannot be empty or only whitespace")

    if len(trimmed) > max_length:
        errors.append(f"Title must be no more than {max_length} characters")

    if contains_html(trimmed):
        errors.append("Title cannot contain HTML tags")

    return ValidationResult(is_valid=not errors, errors=errors, sanitized=sanitize(trimmed))


def validate_description(
    description: Optional[str],
    max_length: int = TASK_DESCRIPTION_MAX_LENGTH,
) -> ValidationResult:
    """Validate optional task description"""
    if not description:
        return ValidationResult(is_valid=True, sanitized="")
    if not isinstance(description, str):
        return ValidationResult(is_valid=False, errors=["Description must be a string"])

    errors: List[str] = []
    trimmed = description.strip()

    if len(trimmed) > max_length:
        errors.append(f"Description must be no more than {max_length} characters")

    if contains_html(trimmed):
        errors.append("Description cannot contain HTML tags")

    return ValidationResult(is_valid=not errors, errors=errors, sanitized=sanitize(trimmed))


def validate_priority(priority: Optional[str]) -> ValidationResult:
    """Validate priority, defaulting to medium"""
    if not priority:
        return ValidationResult(is_valid=True, sanitized=TaskPriority.MEDIUM.value)

    normalized = str(priority).lower().strip()
    valid = [p.value for p in TaskPriority]

    if normalized not in valid:
        return ValidationResult(
            is_valid=False,
            errors=[f"Priority must be one of: {', '.join(valid)}"],
            sanitized=normalized,
        )

    return ValidationResult(is_valid=True, sanitized=normalized)


def validate_due_date(due_date: Any, allow_past: bool = False) -> ValidationResult:
    """Validate optional due date (today or later unless allow_past)"""
    if due_date is None or due_date == "":
        return ValidationResult(is_valid=True, sanitized=None)

    try:
        parsed = parse_datetime(due_date)
    except ValueError:
        return ValidationResult(is_valid=False, errors=["Due date must be a valid date"])

    if not allow_past:
        today = get_current_datetime().replace(hour=0, minute=0, second=0, microsecond=0)
        if parsed < today:
            return ValidationResult(
                is_valid=False,
                errors=["Due date must be today or in the future"],
                sanitized=parsed,
            )

    return ValidationResult(is_valid=True, sanitized=parsed)


def validate_task_data(data: Dict[str, Any], partial: bool = False) -> ValidationResult:
    """
    Validate a task payload field by field

    Args:
        data: Task fields (snake_case or camelCase keys)
        partial: Only validate fields present in data (updates)

    Returns:
        ValidationResult whose errors are prefixed with the field name
    """
    checks = {
        "title": lambda v: validate_title(v),
        "description": lambda v: validate_description(v),
        "priority": lambda v: validate_priority(v),
        "due_date": lambda v: validate_due_date(v),
    }
    aliases = {"dueDate": "due_date"}

    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[aliases.get(key, key)] = value

    all_errors: List[str] = []
    sanitized: Dict[str, Any] = {}

    for name, check in checks.items():
        if partial and name not in normalized:
            continue
        result = check(normalized.get(name))
        for error in result.errors:
            all_errors.append(f"{name}: {error}")
        sanitized[name] = result.sanitized

    return ValidationResult(is_valid=not all_errors, errors=all_errors, sanitized=sanitized)
