"""
formbuilder package.

Form schemas with derived fields whose values are computed by formulas:
- formula_parser: Parsing of name(args) formulas
- functions: Registry of formula functions and their evaluation strategies
- evaluator: Evaluation of a formula against a snapshot of field values
- validator: Validation of derived-field configurations
- recompute: Fixed-point recompute of derived fields
- fields, value_rules, store: Field list edits, value checks and YAML storage
- lint_forms, preview: Command line tools
"""
