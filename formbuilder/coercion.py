"""
Numeric coercion shared by the validator and the evaluator.

Both sides must agree on what counts as a number: a parent that the
validator accepts for sum() is exactly a parent whose value the evaluator
can add up.
"""

import math
import re
from typing import Any, Optional, Union

# Plain decimal notation with optional sign, fraction and exponent
_NUMBER_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a field value to a finite number.

    Args:
        value: Any field value (str, int, float, bool, list or None)

    Returns:
        The number, or None when the value is absent, boolean, not numeric
        or not finite
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str):
        raw = value.strip()
        if not _NUMBER_RE.fullmatch(raw):
            return None
    else:
        return None
    try:
        number = float(raw)
    except OverflowError:
        # ints beyond the float range
        return None
    return number if math.isfinite(number) else None


def is_numeric(value: Any) -> bool:
    return to_number(value) is not None


def format_number(number: Union[int, float]) -> str:
    """Render a number the way form values display it: 10 not 10.0, 2.5 stays 2.5."""
    if isinstance(number, float) and number.is_integer():
        return str(int(number))
    return str(number)
