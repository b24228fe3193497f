#!/usr/bin/env python3
"""
Form YAML Linter

Validates stored form schema files against defined rules to ensure that
every field is well formed and every derived field has a formula that
would be accepted by the field editor.

Usage:
    formbuilder-lint [forms-directory]

Exit codes:
    0: All checks passed
    1: One or more lint errors found
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from formbuilder.config import load_settings
from formbuilder.errors import CycleError, DerivedFieldError
from formbuilder.models import CHOICE_TYPES, FormSchema, SchemaError
from formbuilder.recompute import recompute
from formbuilder.validator import check_derived_field, dependency_graph, detect_cycles


def _load_form(data: Dict[str, Any]) -> Optional[FormSchema]:
    """Parse form data, or None if it is malformed (reported by FormStructureRule)."""
    try:
        return FormSchema.from_dict(data)
    except SchemaError:
        return None


class LintRule:
    """Base class for lint rules."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        """
        Check the rule against a form YAML file.

        Args:
            file_path: Path to the YAML file
            data: Parsed YAML data

        Returns:
            Tuple of (errors, warnings) - both are lists of messages
        """
        raise NotImplementedError("Subclasses must implement check()")


class FormStructureRule(LintRule):
    """Rule: File must describe a form with well-formed fields."""

    def __init__(self):
        super().__init__(
            name="valid-form-structure",
            description="File must describe a form with well-formed fields",
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []
        try:
            FormSchema.from_dict(data)
        except SchemaError as e:
            errors.append(f"{file_path}: {e}")
        return errors, warnings


class UniqueFieldIdsRule(LintRule):
    """Rule: Field ids must be unique within a form."""

    def __init__(self):
        super().__init__(
            name="unique-field-ids", description="Field ids must be unique within a form"
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []

        form = _load_form(data)
        if form is None:
            return errors, warnings

        seen = set()
        for f in form.fields:
            if f.id in seen:
                errors.append(f"{file_path}: Field id '{f.id}' is used more than once")
            seen.add(f.id)

        return errors, warnings


class ChoiceOptionsRule(LintRule):
    """Rule: select, radio and checkbox fields need options; other fields have none."""

    def __init__(self):
        super().__init__(
            name="choice-options",
            description="Select, radio and checkbox fields must list their options",
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []

        form = _load_form(data)
        if form is None:
            return errors, warnings

        for f in form.fields:
            if f.type in CHOICE_TYPES:
                if not f.options:
                    errors.append(
                        f"{file_path}: Field '{f.id}' is a {f.type.value} field without options"
                    )
            elif f.options is not None:
                warnings.append(
                    f"{file_path}: Field '{f.id}' is a {f.type.value} field; "
                    f"its options are ignored"
                )

        return errors, warnings


class ValidDerivedConfigRule(LintRule):
    """Rule: Derived fields must pass the same checks as the field editor."""

    def __init__(self):
        super().__init__(
            name="valid-derived-config",
            description="Derived fields must have valid parents and a supported formula",
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []

        form = _load_form(data)
        if form is None:
            return errors, warnings

        for f in form.fields:
            if f.derived is None:
                continue
            try:
                check_derived_field(f.derived.formula, f.derived.parents, f.id, form.fields)
            except CycleError:
                # Reported once per cycle by NoDependencyCyclesRule
                continue
            except DerivedFieldError as e:
                errors.append(f"{file_path}: Field '{f.id}': {e.message}")

        return errors, warnings


class NoDependencyCyclesRule(LintRule):
    """Rule: Derived fields must not depend on each other in a cycle."""

    def __init__(self):
        super().__init__(
            name="no-dependency-cycles",
            description="Derived fields must not depend on each other in a cycle",
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []

        form = _load_form(data)
        if form is None:
            return errors, warnings

        for cycle in detect_cycles(dependency_graph(form.fields)):
            errors.append(f"{file_path}: Circular dependency: {' → '.join(cycle)}")

        return errors, warnings


class DerivedValuesCurrentRule(LintRule):
    """Rule: Stored values of derived fields should match their formulas."""

    def __init__(self):
        super().__init__(
            name="derived-values-current",
            description="Stored values of derived fields should match their formulas",
        )

    def check(self, file_path: Path, data: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        errors = []
        warnings = []

        form = _load_form(data)
        if form is None:
            return errors, warnings

        result = recompute(form.fields)
        if not result.converged:
            # Cycles are reported as errors by NoDependencyCyclesRule
            return errors, warnings

        for field_id in sorted(result.changed):
            warnings.append(
                f"{file_path}: Stored value of derived field '{field_id}' is out of date"
            )

        return errors, warnings


class FormLinter:
    """Main linter class that runs all validation rules."""

    def __init__(self):
        self.rules: List[LintRule] = [
            FormStructureRule(),
            UniqueFieldIdsRule(),
            ChoiceOptionsRule(),
            ValidDerivedConfigRule(),
            NoDependencyCyclesRule(),
            DerivedValuesCurrentRule(),
        ]

    def lint_file(self, file_path: Path) -> Tuple[List[str], List[str]]:
        """
        Lint a single YAML file.

        Args:
            file_path: Path to the YAML file to lint

        Returns:
            Tuple of (errors, warnings)
        """
        errors = []
        warnings = []

        try:
            with open(file_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            errors.append(f"{file_path}: YAML parsing error: {e}")
            return errors, warnings
        except OSError as e:
            errors.append(f"{file_path}: Could not read file: {e}")
            return errors, warnings

        if not isinstance(data, dict):
            errors.append(f"{file_path}: Invalid YAML structure (expected dictionary)")
            return errors, warnings

        for rule in self.rules:
            rule_errors, rule_warnings = rule.check(file_path, data)
            errors.extend(rule_errors)
            warnings.extend(rule_warnings)

        return errors, warnings

    def lint_all(self, directory: Path = None) -> Tuple[int, int, int, List[str], List[str]]:
        """
        Lint all YAML files in the forms directory.

        Args:
            directory: Directory to search for YAML files (defaults to the configured forms dir)

        Returns:
            Tuple of (files_checked, error_count, warning_count, errors, warnings)
        """
        if directory is None:
            directory = load_settings().forms_dir

        yaml_files = sorted(Path(directory).glob("*.yaml"))

        all_errors = []
        all_warnings = []
        files_checked = 0

        for yaml_file in yaml_files:
            files_checked += 1
            errors, warnings = self.lint_file(yaml_file)
            all_errors.extend(errors)
            all_warnings.extend(warnings)

        return files_checked, len(all_errors), len(all_warnings), all_errors, all_warnings


def main(argv: List[str] = None):
    """Main entry point for the linter."""
    if argv is None:
        argv = sys.argv[1:]
    directory = Path(argv[0]) if argv else None

    print("🔍 Linting form YAML files...")
    print()

    linter = FormLinter()

    print(f"Running {len(linter.rules)} lint rule(s):")
    for rule in linter.rules:
        print(f"  • {rule.name}: {rule.description}")
    print()

    try:
        files_checked, error_count, warning_count, errors, warnings = linter.lint_all(directory)
    except ValueError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    if warning_count > 0:
        print(f"⚠️  Found {warning_count} warning(s):")
        print()
        for warning in warnings:
            print(f"  {warning}")
        print()

    if error_count == 0:
        if warning_count > 0:
            print(f"✅ All {files_checked} file(s) passed lint checks (with warnings above)")
        else:
            print(f"✅ All {files_checked} file(s) passed lint checks!")
        return 0
    print(f"❌ Found {error_count} error(s) in {files_checked} file(s):")
    print()
    for error in errors:
        print(f"  {error}")
    print()
    print("Please fix the errors above and run the linter again.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
