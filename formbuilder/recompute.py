"""
Recompute loop for derived fields.

Whenever a field value changes, every derived field is re-evaluated against
a snapshot of all current values. If any derived value changed, the pass is
repeated on the new values, until a pass changes nothing (a fixed point).

Parent graphs without cycles settle after at most one pass per derived
field plus a final confirming pass. Passes are capped so that a form with a
cycle (which validation normally rejects) reports that it did not converge
instead of looping forever.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Sequence, Set

from formbuilder.evaluator import evaluate
from formbuilder.models import Field, FieldValue

logger = logging.getLogger(__name__)


class RecomputeInProgressError(RuntimeError):
    """Raised when a recompute is started while another one is running."""

    pass


@dataclass
class RecomputeResult:
    fields: List[Field]
    passes: int
    changed: Set[str] = field(default_factory=set)
    converged: bool = True
    error: Optional[str] = None


def build_snapshot(fields: Sequence[Field]) -> Mapping[str, Any]:
    """Read-only mapping of field id to current value."""
    return MappingProxyType({f.id: f.value for f in fields})


def recompute_pass(
    fields: Sequence[Field], now: Optional[datetime] = None
) -> List[Field]:
    """
    Run one pass: evaluate every derived field against the same snapshot.

    Returns:
        New field list; fields whose value did not change are the same objects
    """
    snapshot = build_snapshot(fields)
    updated = []
    for f in fields:
        if f.derived is not None:
            value = evaluate(f.derived.formula, f.derived.parents, snapshot, now=now)
            if value != f.value:
                f = replace(f, default_value=value)
        updated.append(f)
    return updated


def recompute(
    fields: Sequence[Field],
    max_passes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> RecomputeResult:
    """
    Recompute derived fields until their values settle.

    Args:
        fields: Current fields of the form (not modified)
        max_passes: Pass limit; defaults to the number of fields plus one
        now: Reference time for date functions

    Returns:
        RecomputeResult with the updated fields. converged is False and error
        is set when the limit was reached with values still changing.
    """
    if max_passes is None:
        max_passes = len(fields) + 1
    if max_passes < 1:
        raise ValueError(f"max_passes must be at least 1, got {max_passes}")

    current = list(fields)
    changed: Set[str] = set()
    for passes in range(1, max_passes + 1):
        updated = recompute_pass(current, now=now)
        pass_changed = [new.id for old, new in zip(current, updated) if old is not new]
        current = updated
        if not pass_changed:
            logger.debug("Derived fields settled after %d pass(es)", passes)
            return RecomputeResult(fields=current, passes=passes, changed=changed)
        logger.debug("Pass %d changed %s", passes, ", ".join(pass_changed))
        changed.update(pass_changed)

    still_changing = ", ".join(pass_changed)
    logger.warning(
        "Derived fields did not converge after %d passes (still changing: %s)",
        max_passes,
        still_changing,
    )
    return RecomputeResult(
        fields=current,
        passes=max_passes,
        changed=changed,
        converged=False,
        error=f"Formula did not converge after {max_passes} passes: {still_changing}",
    )


class RecomputeState(Enum):
    IDLE = "idle"
    RECOMPUTING = "recomputing"


class Recomputer:
    """
    Owner of one open form's field values.

    Applies user edits and keeps derived fields consistent. Passes for one
    form never overlap: starting a recompute while one is running raises
    RecomputeInProgressError.
    """

    def __init__(self, fields: Sequence[Field], max_passes: Optional[int] = None):
        self.fields: List[Field] = list(fields)
        self.max_passes = max_passes
        self.state = RecomputeState.IDLE
        self.last_result: Optional[RecomputeResult] = None

    def recompute(self, now: Optional[datetime] = None) -> RecomputeResult:
        if self.state is RecomputeState.RECOMPUTING:
            raise RecomputeInProgressError("A recompute pass is already running for this form")
        self.state = RecomputeState.RECOMPUTING
        try:
            result = recompute(self.fields, max_passes=self.max_passes, now=now)
        finally:
            self.state = RecomputeState.IDLE
        self.fields = result.fields
        self.last_result = result
        return result

    def set_value(
        self, field_id: str, value: FieldValue, now: Optional[datetime] = None
    ) -> RecomputeResult:
        """
        Set the value of a non-derived field and recompute.

        Raises:
            KeyError: If no field has this id
            ValueError: If the field is derived
        """
        for i, f in enumerate(self.fields):
            if f.id == field_id:
                break
        else:
            raise KeyError(field_id)
        if f.derived is not None:
            raise ValueError(f"Field '{field_id}' is derived; its value is computed")
        if value != f.value:
            self.fields[i] = replace(f, default_value=value)
        return self.recompute(now=now)

    def values(self) -> Mapping[str, Any]:
        return build_snapshot(self.fields)
