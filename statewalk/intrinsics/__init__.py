"""Intrinsic functions usable inside payload templates."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import IntrinsicSyntaxError
from .functions import FUNCTIONS
from .parser import FunctionCall, Literal, ParseFailure, Parser, PathRef, rule_name

logger = logging.getLogger(__name__)

PREFIX = "States."


class IntrinsicFunction:
    """A parsed ``States.*(...)`` call expression.

    Parsing happens once, on construction; :meth:`value` evaluates the call
    tree innermost-first against a context and input and can be called any
    number of times.
    """

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tree: FunctionCall = self.parse(expression)

    @staticmethod
    def parse(expression: str) -> FunctionCall:
        try:
            return Parser(expression, list(FUNCTIONS)).parse()
        except ParseFailure as failure:
            deepest = failure.deepest()
            logger.debug(
                f"Failed to parse intrinsic [{expression}], furthest at line {deepest.line} "
                f"char {deepest.char}:\n{failure.tree()}"
            )
            # ParseFailure.expected is "one of [...]"; keep just the rule names
            names = failure.expected[len("one of [") : -1].split(", ")
            raise IntrinsicSyntaxError(
                expression, names, failure.line, failure.char
            ) from failure

    @classmethod
    def is_intrinsic(cls, value: Any) -> bool:
        """Return whether ``value`` is a well-formed intrinsic function call."""
        if not isinstance(value, str) or not value.lstrip().startswith(PREFIX):
            return False
        try:
            cls.parse(value)
        except IntrinsicSyntaxError:
            return False
        return True

    @classmethod
    def evaluate(cls, expression: str, context: Any = None, input: Any = None) -> Any:
        """Parse and evaluate ``expression`` in one go."""
        return cls(expression).value(context, input)

    def value(self, context: Any = None, input: Any = None) -> Any:
        return self.tree.evaluate(context, {} if input is None else input)

    def __repr__(self) -> str:
        return f"IntrinsicFunction({self.expression!r})"


is_intrinsic = IntrinsicFunction.is_intrinsic
evaluate = IntrinsicFunction.evaluate

__all__ = [
    "FUNCTIONS",
    "FunctionCall",
    "IntrinsicFunction",
    "Literal",
    "ParseFailure",
    "PathRef",
    "evaluate",
    "is_intrinsic",
    "rule_name",
]
