"""
Edits to a form's field list.

Every function returns a new list and leaves its input untouched. Deleting
a field also removes its id from the parents of every derived field, so no
derived configuration keeps pointing at a field that no longer exists.
"""

import uuid
from dataclasses import replace
from typing import List, Sequence

from formbuilder.models import Field


def new_field_id() -> str:
    """Fresh field id. Ids are never reused."""
    return uuid.uuid4().hex


def add_field(fields: Sequence[Field], field: Field) -> List[Field]:
    """
    Append a field.

    Raises:
        ValueError: If a field with the same id already exists
    """
    if any(f.id == field.id for f in fields):
        raise ValueError(f"Field id '{field.id}' already exists")
    return list(fields) + [field]


def update_field(fields: Sequence[Field], field: Field) -> List[Field]:
    """Replace the field with the same id. Unknown ids leave the list unchanged."""
    return [field if f.id == field.id else f for f in fields]


def delete_field(fields: Sequence[Field], field_id: str) -> List[Field]:
    """Remove a field and every reference to it from derived parents."""
    remaining = []
    for f in fields:
        if f.id == field_id:
            continue
        if f.derived is not None and field_id in f.derived.parents:
            parents = [p for p in f.derived.parents if p != field_id]
            f = replace(f, derived=replace(f.derived, parents=parents))
        remaining.append(f)
    return remaining


def reorder_fields(fields: Sequence[Field], from_index: int, to_index: int) -> List[Field]:
    """Move the field at from_index to to_index. Out-of-range indexes are ignored."""
    result = list(fields)
    if not (0 <= from_index < len(result) and 0 <= to_index < len(result)):
        return result
    moved = result.pop(from_index)
    result.insert(to_index, moved)
    return result


def reset_fields() -> List[Field]:
    return []
