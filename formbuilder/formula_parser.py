"""
Formula parser for derived-field formulas.

This module provides:
- FormulaParser: A pyparsing-based parser for the derived-field formula syntax
- parse_formula: Parse with a shared module-level parser
- split_args: Split the raw argument text of a formula into arguments

A formula is a single function call, optionally with raw argument text:

    sum()
    calculateAge()
    concat(first_name, last_name, -)

There is no nesting, no operators and no literals outside the parentheses.
Whitespace around the formula and between the name and '(' is tolerated.
"""

from dataclasses import dataclass
from typing import List

from pyparsing import (
    CharsNotIn,
    Literal,
    Opt,
    ParseException,
    StringEnd,
    Word,
    alphanums,
)

from formbuilder.errors import FormulaSyntaxError


@dataclass(frozen=True)
class ParsedFormula:
    """Result of parsing a formula: normalized function name and raw argument text."""

    function_name: str
    raw_args: str

    @property
    def args(self) -> List[str]:
        return split_args(self.raw_args)


class FormulaParser:
    """Parser for derived-field formulas using pyparsing."""

    def __init__(self):
        """Initialize the parser with grammar definition."""
        # \w+ : one or more word characters
        identifier = Word(alphanums + "_")
        lparen = Literal("(")
        rparen = Literal(")")

        # Everything up to the closing paren, kept verbatim (leading spaces included)
        raw_args = Opt(CharsNotIn(")").leave_whitespace(), default="")

        self.grammar = (
            identifier("function")
            + lparen.suppress()
            + raw_args("args")
            + rparen.suppress()
            + StringEnd()
        ).parse_with_tabs()

    def parse(self, formula: str) -> ParsedFormula:
        """
        Parse a formula.

        Args:
            formula: Formula text to parse

        Returns:
            ParsedFormula with the lower-cased function name and the raw args

        Raises:
            FormulaSyntaxError: If the formula is not a single name(args) call
        """
        if not isinstance(formula, str):
            raise FormulaSyntaxError(str(formula))
        try:
            result = self.grammar.parse_string(formula.strip(), parse_all=True)
        except ParseException as e:
            raise FormulaSyntaxError(formula, loc=e.loc, detail=e.msg) from e

        return ParsedFormula(
            function_name=result["function"].lower(),
            raw_args=result.get("args", ""),
        )


_parser = FormulaParser()


def parse_formula(formula: str) -> ParsedFormula:
    """Parse a formula with the shared parser. See FormulaParser.parse."""
    return _parser.parse(formula)


def split_args(raw_args: str) -> List[str]:
    """
    Comma-split raw argument text.

    Each argument is stripped, except that an argument made only of
    whitespace keeps its whitespace (so concat(a, b, ) joins with a space).
    Empty raw text gives no arguments.
    """
    if raw_args == "":
        return []
    args = []
    for part in raw_args.split(","):
        stripped = part.strip()
        args.append(stripped if stripped else part)
    return args
