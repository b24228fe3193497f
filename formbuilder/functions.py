"""
Registry of the functions a derived-field formula may call.

Each entry pairs a validation policy (how many parents, what kind of parents)
with the strategy that computes the value. The validator reads the policy,
the evaluator calls the strategy; neither needs to know individual function
names.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from formbuilder.coercion import format_number, to_number

Result = Union[str, int]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Arity(Enum):
    EXACTLY_ONE = "exactly one parent field"
    ONE_OR_MORE = "at least one parent field"
    VARIADIC = "one or more parent fields and an optional separator"


class ParentType(Enum):
    ANY = "any"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class Call:
    """Inputs to one function evaluation."""

    parents: Sequence[str]
    snapshot: Mapping[str, Any]
    args: List[str]
    now: datetime

    def values(self) -> List[Any]:
        # Stale parent ids (deleted fields) read as absent
        return [self.snapshot.get(pid) for pid in self.parents]

    def numbers(self) -> List[float]:
        return [n for n in (to_number(v) for v in self.values()) if n is not None]


@dataclass(frozen=True)
class FunctionSpec:
    name: str
    arity: Arity
    parent_type: ParentType
    evaluate: Callable[[Call], Result]


def parse_date(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string. Naive values are taken as UTC."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def calculate_age(date_of_birth: Any, now: datetime) -> Result:
    """
    Whole years elapsed between date_of_birth and now.

    The elapsed time is laid on top of the Unix epoch and the UTC year is
    read off, so the result counts year boundaries rather than exact
    birthdays. Dates in the future give a positive value as well.
    """
    dob = parse_date(date_of_birth)
    if dob is None:
        return ""
    try:
        shifted = EPOCH + (now - dob)
    except OverflowError:
        return ""
    return abs(shifted.year - 1970)


def round_half_away(number: float) -> int:
    return int(math.copysign(math.floor(abs(number) + 0.5), number))


def _calculate_age(call: Call) -> Result:
    if len(call.parents) != 1:
        return ""
    return calculate_age(call.values()[0], call.now)


def _finite_sum(numbers: Sequence[float]) -> Optional[float]:
    """Exact sum of finite numbers, or None when it leaves the float range."""
    try:
        return math.fsum(numbers)
    except OverflowError:
        return None


def _sum(call: Call) -> Result:
    # Non-numeric parents contribute nothing
    total = _finite_sum(call.numbers())
    return "" if total is None else format_number(total)


def _average(call: Call) -> Result:
    numbers = call.numbers()
    if not numbers:
        return ""
    total = _finite_sum(numbers)
    if total is None:
        return ""
    return format_number(total / len(numbers))


def _max(call: Call) -> Result:
    numbers = call.numbers()
    return format_number(max(numbers)) if numbers else ""


def _min(call: Call) -> Result:
    numbers = call.numbers()
    return format_number(min(numbers)) if numbers else ""


def _concat(call: Call) -> Result:
    # concat(a, b, -): more arguments than parents means the last one is the
    # separator and the rest pick which parents to join, in that order
    parent_ids: Sequence[str] = call.parents
    separator = ""
    if len(call.args) > len(call.parents):
        separator = call.args[-1]
        parent_ids = [a for a in call.args[:-1] if a in call.parents]
    parts = []
    for pid in parent_ids:
        value = call.snapshot.get(pid)
        if value is None or value == "":
            continue
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        elif isinstance(value, bool):
            value = "true" if value else "false"
        elif isinstance(value, float):
            value = format_number(value)
        parts.append(str(value))
    return separator.join(parts)


def _uppercase(call: Call) -> Result:
    if len(call.parents) != 1:
        return ""
    value = call.values()[0]
    return value.upper() if isinstance(value, str) else ""


def _lowercase(call: Call) -> Result:
    if len(call.parents) != 1:
        return ""
    value = call.values()[0]
    return value.lower() if isinstance(value, str) else ""


def _round(call: Call) -> Result:
    if len(call.parents) != 1:
        return ""
    number = to_number(call.values()[0])
    if number is None:
        return ""
    return str(round_half_away(number))


_SPECS = [
    FunctionSpec("calculateAge", Arity.EXACTLY_ONE, ParentType.ANY, _calculate_age),
    FunctionSpec("sum", Arity.ONE_OR_MORE, ParentType.NUMERIC, _sum),
    FunctionSpec("average", Arity.ONE_OR_MORE, ParentType.NUMERIC, _average),
    FunctionSpec("avg", Arity.ONE_OR_MORE, ParentType.NUMERIC, _average),
    FunctionSpec("max", Arity.ONE_OR_MORE, ParentType.NUMERIC, _max),
    FunctionSpec("min", Arity.ONE_OR_MORE, ParentType.NUMERIC, _min),
    FunctionSpec("concat", Arity.VARIADIC, ParentType.ANY, _concat),
    FunctionSpec("uppercase", Arity.EXACTLY_ONE, ParentType.ANY, _uppercase),
    FunctionSpec("lowercase", Arity.EXACTLY_ONE, ParentType.ANY, _lowercase),
    FunctionSpec("round", Arity.EXACTLY_ONE, ParentType.NUMERIC, _round),
]

# Keyed by lower-cased name; lookups are case-insensitive
REGISTRY: Dict[str, FunctionSpec] = {spec.name.lower(): spec for spec in _SPECS}


def get_function(name: str) -> Optional[FunctionSpec]:
    return REGISTRY.get(name.lower())


def supported_function_names() -> List[str]:
    return [spec.name for spec in _SPECS]
