"""
Errors raised while validating a derived-field configuration.

Every error carries a human-readable message meant to be shown next to the
formula editor. None of them is fatal: the editing surface catches them and
clears the field's derived configuration.
"""

from typing import Iterable, List


class DerivedFieldError(ValueError):
    """Base class for derived-field validation errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class EmptySelectionError(DerivedFieldError):
    """Raised when a derived field has no parent fields selected."""

    def __init__(self):
        super().__init__("Please select at least one parent field.")


class FormulaSyntaxError(DerivedFieldError):
    """Raised when a formula does not have the name(args) shape."""

    EXPECTED_SHAPE = "a function call like sum(), calculateAge() or concat(first, last, -)"

    def __init__(self, formula: str, loc: int = 0, detail: str = ""):
        self.formula = formula
        self.loc = loc
        self.detail = detail
        message = f"Formula must be {self.EXPECTED_SHAPE}"
        if formula.strip():
            message += f" (syntax error at position {loc})"
        super().__init__(message)


class UnsupportedFunctionError(DerivedFieldError):
    """Raised when a formula names a function that is not in the registry."""

    def __init__(self, function_name: str, supported: Iterable[str]):
        self.function_name = function_name
        self.supported = list(supported)
        super().__init__(
            f"Unsupported function '{function_name}'. Supported: {', '.join(self.supported)}"
        )


class ArityError(DerivedFieldError):
    """Raised when a function gets the wrong number of parent fields."""

    def __init__(self, function_name: str, expected: str, actual: int):
        self.function_name = function_name
        self.actual = actual
        super().__init__(
            f"{function_name}() requires {expected}, but {actual} were selected."
        )


class ParentTypeError(DerivedFieldError):
    """Raised when a numeric function is given parents that are not numeric."""

    def __init__(self, function_name: str, labels: List[str]):
        self.function_name = function_name
        self.labels = labels
        super().__init__(
            f"Selected parent fields contain non-numeric values, which are not valid "
            f"for {function_name}(): {', '.join(labels)}"
        )


class SelfReferenceError(DerivedFieldError):
    """Raised when a field lists itself as a parent."""

    def __init__(self, field_id: str):
        self.field_id = field_id
        super().__init__("A derived field cannot use itself as a parent field.")


class DuplicateParentError(DerivedFieldError):
    """Raised when the same parent field is selected more than once."""

    def __init__(self, duplicates: List[str]):
        self.duplicates = duplicates
        super().__init__(f"Parent fields selected more than once: {', '.join(duplicates)}")


class MissingParentError(DerivedFieldError):
    """Raised when a parent id does not resolve to a field of the form."""

    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Parent fields do not exist: {', '.join(missing)}")


class CycleError(DerivedFieldError):
    """Raised when a derived configuration would make fields depend on each other."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"Circular dependency between derived fields: {' → '.join(cycle)}")
