"""
Validation of derived-field configurations.

The field editor calls validate_derived_field() every time the formula text
or the parent selection changes. The result either confirms a
DerivedFieldConfig to store on the field, or carries the message to display
(in which case the field stops being derived).

Checks run in a fixed order and stop at the first failure:

1. not marked as derived -> nothing to validate
2. at least one parent selected
3. formula has the name(args) shape
4. function is in the registry
5. no parent is selected twice
6. parent count matches the function
7. every parent exists
8. numeric functions only get numeric parents
9. the field does not list itself
10. the new configuration does not close a dependency cycle

calculateAge() accepts any single parent; a parent that does not hold a
date simply evaluates to an empty value.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from formbuilder.coercion import is_numeric
from formbuilder.errors import (
    ArityError,
    CycleError,
    DerivedFieldError,
    DuplicateParentError,
    EmptySelectionError,
    MissingParentError,
    ParentTypeError,
    SelfReferenceError,
    UnsupportedFunctionError,
)
from formbuilder.formula_parser import parse_formula
from formbuilder.functions import Arity, ParentType, get_function, supported_function_names
from formbuilder.models import DerivedFieldConfig, Field, FieldType


@dataclass(frozen=True)
class DerivedFieldResult:
    """Outcome of validating a derived-field configuration."""

    config: Optional[DerivedFieldConfig] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_numeric_field(field: Field) -> bool:
    """A field can feed a numeric function if it is a number field or holds a number."""
    return field.type == FieldType.NUMBER or is_numeric(field.value)


def check_derived_field(
    formula: str,
    parents: Sequence[str],
    current_field_id: str,
    all_fields: Sequence[Field],
) -> DerivedFieldConfig:
    """
    Validate a derived-field configuration.

    Args:
        formula: Formula text entered by the user
        parents: Selected parent field ids
        current_field_id: Id of the field being configured
        all_fields: Every field of the form

    Returns:
        The confirmed DerivedFieldConfig

    Raises:
        DerivedFieldError: The first check that failed
    """
    if not parents:
        raise EmptySelectionError()

    parsed = parse_formula(formula)

    spec = get_function(parsed.function_name)
    if spec is None:
        raise UnsupportedFunctionError(parsed.function_name, supported_function_names())

    duplicates = [pid for i, pid in enumerate(parents) if pid in parents[:i]]
    if duplicates:
        raise DuplicateParentError(list(dict.fromkeys(duplicates)))

    if spec.arity == Arity.EXACTLY_ONE and len(parents) != 1:
        raise ArityError(spec.name, spec.arity.value, len(parents))

    # A new field may not be in all_fields yet; listing it is a self-reference
    fields_by_id = {f.id: f for f in all_fields}
    missing = [pid for pid in parents if pid not in fields_by_id and pid != current_field_id]
    if missing:
        raise MissingParentError(missing)

    if spec.parent_type == ParentType.NUMERIC:
        offending = [
            fields_by_id[pid].label or pid
            for pid in parents
            if pid in fields_by_id and not is_numeric_field(fields_by_id[pid])
        ]
        if offending:
            raise ParentTypeError(spec.name, offending)

    if current_field_id in parents:
        raise SelfReferenceError(current_field_id)

    graph = dependency_graph(all_fields)
    graph[current_field_id] = list(parents)
    cycle = find_cycle_through(graph, current_field_id)
    if cycle:
        raise CycleError(cycle)

    return DerivedFieldConfig(parents=list(parents), formula=formula)


def validate_derived_field(
    formula: str,
    parents: Sequence[str],
    current_field_id: str,
    all_fields: Sequence[Field],
    is_derived: bool = True,
) -> DerivedFieldResult:
    """
    Validate a derived-field configuration without raising.

    Returns:
        DerivedFieldResult with the confirmed config, or with the error
        message to display. When is_derived is False both are None.
    """
    if not is_derived:
        return DerivedFieldResult()
    try:
        config = check_derived_field(formula, parents, current_field_id, all_fields)
    except DerivedFieldError as e:
        return DerivedFieldResult(error=e.message)
    return DerivedFieldResult(config=config)


def dependency_graph(fields: Sequence[Field]) -> Dict[str, List[str]]:
    """Map each field id to the ids of the parents it is derived from."""
    return {f.id: list(f.derived.parents) if f.derived else [] for f in fields}


def detect_cycles(graph: Dict[str, List[str]]) -> List[List[str]]:
    """
    Detect circular dependencies using DFS with color marking.

    Args:
        graph: Dependency graph

    Returns:
        List of cycles, each a path that starts and ends on the same field
    """
    WHITE, GRAY, BLACK = 0, 1, 2
    color = {node: WHITE for node in graph}
    cycles = []

    def dfs(node: str, path: List[str]):
        color[node] = GRAY
        path.append(node)

        for neighbor in graph.get(node, []):
            # Parents that are not in the graph (deleted fields) end the path
            state = color.get(neighbor, BLACK)
            if state == GRAY:
                cycle_start = path.index(neighbor)
                cycles.append(path[cycle_start:] + [neighbor])
            elif state == WHITE:
                dfs(neighbor, path[:])

        color[node] = BLACK

    for node in graph:
        if color[node] == WHITE:
            dfs(node, [])

    return cycles


def find_cycle_through(graph: Dict[str, List[str]], node: str) -> Optional[List[str]]:
    """Return a dependency path leading from node back to itself, or None."""
    visited = set()

    def dfs(current: str, path: List[str]) -> Optional[List[str]]:
        for neighbor in graph.get(current, []):
            if neighbor == node:
                return path + [neighbor]
            if neighbor not in visited:
                visited.add(neighbor)
                found = dfs(neighbor, path + [neighbor])
                if found:
                    return found
        return None

    return dfs(node, [node])
