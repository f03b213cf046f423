"""Choice rules: data comparisons and the And/Or/Not combinators."""

from __future__ import annotations

import operator
import re
from typing import Any, Callable, Dict, List, Optional

from ..errors import InvalidWorkflowError
from ..paths import Path
from ..utils.timestamps import is_timestamp, parse_timestamp

_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "Equals": operator.eq,
    "LessThan": operator.lt,
    "GreaterThan": operator.gt,
    "LessThanEquals": operator.le,
    "GreaterThanEquals": operator.ge,
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_TESTS: Dict[str, Callable[[Any], bool]] = {
    "IsNull": lambda value: value is None,
    "IsNumeric": _is_number,
    "IsString": lambda value: isinstance(value, str),
    "IsBoolean": lambda value: isinstance(value, bool),
    "IsTimestamp": is_timestamp,
}


def _string_matches(value: str, pattern: str) -> bool:
    """``*`` matches any run of characters; ``\\*`` is a literal asterisk."""
    pieces = re.split(r"(?<!\\)\*", pattern)
    regex = ".*".join(re.escape(piece.replace("\\*", "*")) for piece in pieces)
    return re.fullmatch(regex, value, re.DOTALL) is not None


def _compare(kind: str, op: Callable[[Any, Any], bool], left: Any, right: Any) -> bool:
    if kind == "String":
        return isinstance(left, str) and isinstance(right, str) and op(left, right)
    if kind == "Numeric":
        return _is_number(left) and _is_number(right) and op(left, right)
    if kind == "Boolean":
        return isinstance(left, bool) and isinstance(right, bool) and op(left, right)
    if not (is_timestamp(left) and is_timestamp(right)):
        return False
    return op(parse_timestamp(left), parse_timestamp(right))


def _operators() -> Dict[str, tuple]:
    table: Dict[str, tuple] = {}
    for kind in ("String", "Numeric", "Timestamp"):
        for name, op in _COMPARISONS.items():
            table[kind + name] = (kind, op)
    table["BooleanEquals"] = ("Boolean", operator.eq)
    table["StringMatches"] = ("Matches", None)
    return table


OPERATORS = _operators()


class ChoiceRule:
    """A node of a ``Choices`` entry.

    Top-level rules carry ``Next``; rules nested in ``And``/``Or``/``Not``
    must not.
    """

    def __init__(self, payload: Dict[str, Any], top_level: bool = True) -> None:
        self.payload = payload
        self.next: Optional[str] = payload.get("Next")
        if top_level and self.next is None:
            raise InvalidWorkflowError(f"Choice rule {payload!r} requires Next")
        if not top_level and "Next" in payload:
            raise InvalidWorkflowError(f"Nested choice rule {payload!r} must not have Next")

    @classmethod
    def build(cls, payload: Any, top_level: bool = True) -> "ChoiceRule":
        if not isinstance(payload, dict):
            raise InvalidWorkflowError(f"Choice rule must be an object, got {payload!r}")
        if "And" in payload:
            return AndRule(payload, top_level)
        if "Or" in payload:
            return OrRule(payload, top_level)
        if "Not" in payload:
            return NotRule(payload, top_level)
        return DataRule(payload, top_level)

    def true(self, context: Any, input: Any) -> bool:
        raise NotImplementedError


class AndRule(ChoiceRule):
    key = "And"

    def __init__(self, payload: Dict[str, Any], top_level: bool = True) -> None:
        super().__init__(payload, top_level)
        children = payload[self.key]
        if not isinstance(children, list) or not children:
            raise InvalidWorkflowError(f"{self.key} requires a non-empty array of rules")
        self.children: List[ChoiceRule] = [
            ChoiceRule.build(child, top_level=False) for child in children
        ]

    def true(self, context: Any, input: Any) -> bool:
        return all(child.true(context, input) for child in self.children)


class OrRule(AndRule):
    key = "Or"

    def true(self, context: Any, input: Any) -> bool:
        return any(child.true(context, input) for child in self.children)


class NotRule(ChoiceRule):
    def __init__(self, payload: Dict[str, Any], top_level: bool = True) -> None:
        super().__init__(payload, top_level)
        self.child = ChoiceRule.build(payload["Not"], top_level=False)

    def true(self, context: Any, input: Any) -> bool:
        return not self.child.true(context, input)


class DataRule(ChoiceRule):
    """Test the value at ``Variable`` with exactly one operator.

    A ``Variable`` that does not resolve satisfies only ``IsPresent: false``.
    """

    def __init__(self, payload: Dict[str, Any], top_level: bool = True) -> None:
        super().__init__(payload, top_level)
        try:
            self.variable = Path(payload.get("Variable"))
        except InvalidWorkflowError as e:
            raise InvalidWorkflowError(f"Choice rule {payload!r}: {e}") from e

        keys = [key for key in payload if key not in ("Variable", "Next", "Comment")]
        if len(keys) != 1:
            raise InvalidWorkflowError(
                f"Choice rule {payload!r} must have exactly one comparison operator"
            )
        self.operator = keys[0]
        self.expected = payload[self.operator]
        self.expected_path: Optional[Path] = None

        name = self.operator
        if name in _TYPE_TESTS or name == "IsPresent":
            if not isinstance(self.expected, bool):
                raise InvalidWorkflowError(f"Choice operator {name} requires a boolean")
            return
        if name.endswith("Path") and name[: -len("Path")] in OPERATORS:
            name = name[: -len("Path")]
            self.expected_path = Path(self.expected)
        if name not in OPERATORS:
            raise InvalidWorkflowError(f"Unknown choice operator [{self.operator}]")
        self.kind, self.op = OPERATORS[name]
        if self.kind == "Matches" and self.expected_path is not None:
            raise InvalidWorkflowError("StringMatches does not support a Path variant")

    def true(self, context: Any, input: Any) -> bool:
        present = self.variable.exists(context, input)
        if self.operator == "IsPresent":
            return present == self.expected
        if not present:
            return False

        value = self.variable.value(context, input)
        if self.operator in _TYPE_TESTS:
            return _TYPE_TESTS[self.operator](value) == self.expected

        expected = self.expected
        if self.expected_path is not None:
            if not self.expected_path.exists(context, input):
                return False
            expected = self.expected_path.value(context, input)

        if self.kind == "Matches":
            return isinstance(value, str) and isinstance(expected, str) and _string_matches(
                value, expected
            )
        return _compare(self.kind, self.op, value, expected)
