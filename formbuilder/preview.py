#!/usr/bin/env python3
"""
Preview a stored form.

Loads a form from the forms directory, recomputes its derived fields and
prints every field value together with any value errors. Values can be
overridden on the command line to see how derived fields react.

Usage:
    formbuilder-preview FORM_ID [--set FIELD_ID=VALUE ...] [--forms-dir DIR] [--save]
"""

import argparse
import sys
from typing import List, Tuple

from formbuilder.config import load_settings
from formbuilder.models import FormSchema
from formbuilder.recompute import Recomputer
from formbuilder.store import FormStore, StoreError
from formbuilder.value_rules import validate_values


def parse_assignment(text: str) -> Tuple[str, str]:
    field_id, sep, value = text.partition("=")
    if not sep or not field_id:
        raise argparse.ArgumentTypeError(f"expected FIELD_ID=VALUE, got '{text}'")
    return field_id, value


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formbuilder-preview",
        description="Recompute and print the values of a stored form.",
    )
    parser.add_argument("form_id", help="id of the stored form")
    parser.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        type=parse_assignment,
        metavar="FIELD_ID=VALUE",
        help="override a field value before recomputing (repeatable)",
    )
    parser.add_argument("--forms-dir", help="directory holding form YAML files")
    parser.add_argument(
        "--save", action="store_true", help="write the recomputed values back to the store"
    )
    return parser


def render(form: FormSchema, errors: dict) -> List[str]:
    lines = [f"📋 {form.name} ({form.id})", ""]
    for f in form.fields:
        marker = "ƒ" if f.derived else " "
        value = "" if f.value is None else f.value
        lines.append(f"  {marker} {f.label}: {value}")
        if f.id in errors:
            lines.append(f"      ⚠️  {errors[f.id]}")
    return lines


def main(argv: List[str] = None):
    """Main entry point for the previewer."""
    args = build_arg_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        return 1

    store = FormStore(args.forms_dir or settings.forms_dir)
    try:
        form = store.get(args.form_id)
    except StoreError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1
    if form is None:
        print(f"❌ No form with id '{args.form_id}' in {store.directory}", file=sys.stderr)
        return 1

    recomputer = Recomputer(form.fields, max_passes=settings.max_passes)
    try:
        for field_id, value in args.assignments:
            recomputer.set_value(field_id, value)
        result = recomputer.recompute()
    except KeyError as e:
        print(f"❌ Unknown field id {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    form.fields = result.fields
    errors = validate_values(form.fields)
    print("\n".join(render(form, errors)))

    if not result.converged:
        print()
        print(f"❌ {result.error}", file=sys.stderr)
        return 1

    if args.save:
        try:
            path = store.save(form)
        except StoreError as e:
            print(f"❌ Error: {e}", file=sys.stderr)
            return 1
        print()
        print(f"✓ Saved {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
