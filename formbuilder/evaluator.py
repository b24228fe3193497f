"""
Formula evaluator for derived fields.

evaluate() is a pure function of the formula, the parent ids and a snapshot
of field values. It never raises for bad data: anything that cannot be
computed (unparseable formula, unknown function, missing or non-numeric
parents) yields the empty string, so a derived field shows no value instead
of breaking the form.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from formbuilder.errors import FormulaSyntaxError
from formbuilder.formula_parser import parse_formula
from formbuilder.functions import Call, get_function


def evaluate(
    formula: str,
    parents: Sequence[str],
    snapshot: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Union[str, int]:
    """
    Compute the value of a derived field.

    Args:
        formula: Formula text, e.g. "sum()" or "concat(first, last, -)"
        parents: Parent field ids, in order
        snapshot: Current value of every field, keyed by field id
        now: Reference time for date functions (defaults to the current UTC time)

    Returns:
        The computed value, or "" when it cannot be computed
    """
    try:
        parsed = parse_formula(formula)
    except FormulaSyntaxError:
        return ""

    spec = get_function(parsed.function_name)
    if spec is None:
        return ""

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    call = Call(parents=list(parents), snapshot=snapshot, args=parsed.args, now=now)
    return spec.evaluate(call)
