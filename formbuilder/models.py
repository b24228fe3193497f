"""
Data model for form schemas.

A FormSchema is an ordered list of Field objects. Fields may carry a
DerivedFieldConfig, in which case their value is computed from their parent
fields by a formula instead of being entered directly.

The dict layout used by to_dict()/from_dict() keeps the camelCase keys of the
stored JSON/YAML documents (defaultValue, createdAt, minLength, ...), so
files written by other tools load unchanged.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

FieldValue = Union[str, int, float, bool, List[str], None]


class SchemaError(ValueError):
    """Raised when a dict does not describe a valid field or form."""

    pass


class FieldType(str, Enum):
    """Input types a field can have."""

    TEXT = "text"
    NUMBER = "number"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    DATE = "date"


# Field types that offer a fixed list of options
CHOICE_TYPES = frozenset({FieldType.SELECT, FieldType.RADIO, FieldType.CHECKBOX})


@dataclass
class ValidationRules:
    """Value rules attached to a field. Every rule is optional."""

    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    email: bool = False
    password: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.required:
            data["required"] = True
        if self.min_length is not None:
            data["minLength"] = self.min_length
        if self.max_length is not None:
            data["maxLength"] = self.max_length
        if self.email:
            data["email"] = True
        if self.password:
            data["password"] = True
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ValidationRules":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise SchemaError("Field 'validations' must be a dictionary")
        for key in ("minLength", "maxLength"):
            value = data.get(key)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise SchemaError(f"Validation '{key}' must be an integer")
        return cls(
            required=bool(data.get("required", False)),
            min_length=data.get("minLength"),
            max_length=data.get("maxLength"),
            email=bool(data.get("email", False)),
            password=bool(data.get("password", False)),
        )


@dataclass
class DerivedFieldConfig:
    """Confirmed derivation of a field: which parents feed which formula."""

    parents: List[str]
    formula: str

    def to_dict(self) -> Dict[str, Any]:
        return {"parents": list(self.parents), "formula": self.formula}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DerivedFieldConfig":
        if not isinstance(data, dict):
            raise SchemaError("Field 'derived' must be a dictionary")
        parents = data.get("parents", [])
        formula = data.get("formula", "")
        if not isinstance(parents, list) or not all(isinstance(p, str) for p in parents):
            raise SchemaError("Derived 'parents' must be a list of field ids")
        if not isinstance(formula, str):
            raise SchemaError("Derived 'formula' must be a string")
        return cls(parents=list(parents), formula=formula)


@dataclass
class Field:
    """A single input of a form."""

    id: str
    type: FieldType
    label: str
    default_value: FieldValue = None
    options: Optional[List[str]] = None
    validations: ValidationRules = field(default_factory=ValidationRules)
    derived: Optional[DerivedFieldConfig] = None

    @property
    def value(self) -> FieldValue:
        """Current value of the field (the default value doubles as the live value)."""
        return self.default_value

    @property
    def is_derived(self) -> bool:
        return self.derived is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "type": self.type.value, "label": self.label}
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        if self.options is not None:
            data["options"] = list(self.options)
        validations = self.validations.to_dict()
        if validations:
            data["validations"] = validations
        if self.derived is not None:
            data["derived"] = self.derived.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Field":
        """
        Build a Field from its stored dict form.

        Raises:
            SchemaError: If a required key is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise SchemaError("Field must be a dictionary")
        for key in ("id", "type", "label"):
            if key not in data:
                raise SchemaError(f"Field is missing required key '{key}'")
            if not isinstance(data[key], str):
                raise SchemaError(f"Field key '{key}' must be a string")
        try:
            field_type = FieldType(data["type"])
        except ValueError:
            supported = ", ".join(t.value for t in FieldType)
            raise SchemaError(
                f"Field '{data['id']}' has unknown type '{data['type']}'. Supported: {supported}"
            )

        options = data.get("options")
        if options is not None and (
            not isinstance(options, list) or not all(isinstance(o, str) for o in options)
        ):
            raise SchemaError(f"Field '{data['id']}': 'options' must be a list of strings")

        derived = data.get("derived")
        return cls(
            id=data["id"],
            type=field_type,
            label=data["label"],
            default_value=data.get("defaultValue"),
            options=list(options) if options is not None else None,
            validations=ValidationRules.from_dict(data.get("validations")),
            derived=DerivedFieldConfig.from_dict(derived) if derived is not None else None,
        )


@dataclass
class FormSchema:
    """A named, ordered collection of fields."""

    id: str
    name: str
    created_at: str
    fields: List[Field] = field(default_factory=list)

    def field_by_id(self, field_id: str) -> Optional[Field]:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormSchema":
        if not isinstance(data, dict):
            raise SchemaError("Form must be a dictionary")
        for key in ("id", "name", "createdAt"):
            if key not in data:
                raise SchemaError(f"Form is missing required key '{key}'")
        fields = data.get("fields", [])
        if not isinstance(fields, list):
            raise SchemaError("Form key 'fields' must be a list")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=str(data["createdAt"]),
            fields=[Field.from_dict(f) for f in fields],
        )
