"""
Validation of the values entered into a form.

validate_values() returns one message per failing field; the first failing
rule wins. Derived fields are checked like any other field.
"""

import re
from typing import Any, Dict, Optional, Sequence

from formbuilder.models import Field, FieldType

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_MIN_LENGTH = 8


def is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, list):
        return len(value) == 0
    return False


def check_value(field: Field) -> Optional[str]:
    """Return the error message for a field's current value, or None if it is valid."""
    rules = field.validations
    value = field.value

    if rules.required and is_empty(value):
        return "This field is required"

    if not isinstance(value, str) or not value:
        return None

    if field.type == FieldType.TEXT and rules.email and not EMAIL_RE.match(value):
        return "Invalid email format"

    if field.type == FieldType.TEXT and rules.password:
        if len(value) < PASSWORD_MIN_LENGTH:
            return f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
        if not re.search(r"\d", value):
            return "Password must contain at least one number"

    if rules.min_length is not None and len(value) < rules.min_length:
        return f"Must be at least {rules.min_length} characters"
    if rules.max_length is not None and len(value) > rules.max_length:
        return f"Must be at most {rules.max_length} characters"

    return None


def validate_values(fields: Sequence[Field]) -> Dict[str, str]:
    """Map field id to error message for every field whose value is invalid."""
    errors = {}
    for f in fields:
        message = check_value(f)
        if message:
            errors[f.id] = message
    return errors
