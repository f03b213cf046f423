"""Recursive-descent parser for ``States.*(...)`` expressions.

Grammar::

    call     := NAME "(" [ arg ( "," arg )* ] ")"
    arg      := call | path | string | number | "true" | "false" | "null"
    NAME     := one of the registered ``States.*`` function names
    path     := "$" path-chars*
    string   := "'" ( "\\" any | not-quote )* "'"

Each registered function name is its own rule, named e.g.
``STATES_ARRAY_PARTITION``; the top level is an ordered choice over them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Sequence, Tuple

from ..errors import InvalidWorkflowError
from ..paths import Path

_NUMBER = re.compile(r"-?(?:0|[1-9]\d*)(\.\d+)?([eE][+-]?\d+)?")
_KEYWORDS = {"true": True, "false": False, "null": None}
_IDENT_CHAR = re.compile(r"[A-Za-z0-9_]")


def rule_name(function_name: str) -> str:
    """Return the grammar rule name for ``function_name``."""
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", function_name.replace(".", "_")).upper()


def _line_and_char(source: str, offset: int) -> Tuple[int, int]:
    before = source[:offset]
    line = before.count("\n") + 1
    char = offset - (before.rfind("\n") + 1) + 1
    return line, char


class ParseFailure(Exception):
    """A grammar rule that did not match, with the failures that caused it."""

    def __init__(
        self,
        expected: str,
        source: str,
        offset: int,
        children: Iterable["ParseFailure"] = (),
    ) -> None:
        self.expected = expected
        self.source = source
        self.offset = offset
        self.children: List[ParseFailure] = list(children)
        self.line, self.char = _line_and_char(source, offset)
        super().__init__(f"Expected {expected} at line {self.line} char {self.char}.")

    def deepest(self) -> "ParseFailure":
        """Return the failure that got furthest into the input."""
        best = self
        for child in self.children:
            candidate = child.deepest()
            if candidate.offset > best.offset:
                best = candidate
        return best

    def tree(self, indent: int = 0) -> str:
        lines = [f"{'  ' * indent}{self}"]
        for child in self.children:
            lines.append(child.tree(indent + 1))
        return "\n".join(lines)


@dataclass(frozen=True)
class Literal:
    data: Any

    def evaluate(self, context: Any, input: Any) -> Any:
        return self.data


@dataclass(frozen=True)
class PathRef:
    path: Path

    def evaluate(self, context: Any, input: Any) -> Any:
        return self.path.value(context, input)


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: Tuple[Any, ...]

    def evaluate(self, context: Any, input: Any) -> Any:
        from .functions import FUNCTIONS

        values = [arg.evaluate(context, input) for arg in self.args]
        return FUNCTIONS[self.name](*values)


class Parser:
    """Parse one expression against a fixed catalogue of function names."""

    def __init__(self, text: str, names: Sequence[str]) -> None:
        self.text = text
        # Longest first so "States.ArrayPartition" is not cut short by "States.Array".
        self.names = sorted(names, key=len, reverse=True)

    def parse(self) -> FunctionCall:
        start = self._skip_ws(0)
        node, end = self._call(start)
        end = self._skip_ws(end)
        if end != len(self.text):
            raise ParseFailure(
                "one of [" + ", ".join(rule_name(n) for n in self.names) + "]",
                self.text,
                0,
                [ParseFailure("end of input", self.text, end)],
            )
        return node

    def _skip_ws(self, pos: int) -> int:
        while pos < len(self.text) and self.text[pos].isspace():
            pos += 1
        return pos

    def _call(self, pos: int) -> Tuple[FunctionCall, int]:
        failures = []
        for name in self.names:
            try:
                return self._named_call(name, pos)
            except ParseFailure as failure:
                failures.append(failure)
        raise ParseFailure(
            "one of [" + ", ".join(rule_name(n) for n in self.names) + "]",
            self.text,
            pos,
            failures,
        )

    def _named_call(self, name: str, pos: int) -> Tuple[FunctionCall, int]:
        rule = rule_name(name)
        start = pos
        try:
            pos = self._expect(name, pos)
            if pos < len(self.text) and _IDENT_CHAR.match(self.text[pos]):
                raise ParseFailure("'('", self.text, pos)
            pos = self._skip_ws(pos)
            pos = self._expect("(", pos)
            args, pos = self._args(pos)
            pos = self._expect(")", pos)
        except ParseFailure as failure:
            raise ParseFailure(rule, self.text, start, [failure]) from None
        return FunctionCall(name, tuple(args)), pos

    def _args(self, pos: int) -> Tuple[List[Any], int]:
        args: List[Any] = []
        pos = self._skip_ws(pos)
        if self.text.startswith(")", pos):
            return args, pos
        while True:
            arg, pos = self._arg(self._skip_ws(pos))
            args.append(arg)
            pos = self._skip_ws(pos)
            if not self.text.startswith(",", pos):
                return args, pos
            pos += 1

    def _arg(self, pos: int) -> Tuple[Any, int]:
        failures = []
        for parse in (self._call, self._path, self._string, self._number, self._keyword):
            try:
                return parse(pos)
            except ParseFailure as failure:
                failures.append(failure)
        raise ParseFailure(
            "one of [FUNCTION_CALL, PATH, STRING, NUMBER, BOOLEAN, NULL]",
            self.text,
            pos,
            failures,
        )

    def _expect(self, token: str, pos: int) -> int:
        if not self.text.startswith(token, pos):
            raise ParseFailure(repr(token), self.text, pos)
        return pos + len(token)

    def _path(self, pos: int) -> Tuple[PathRef, int]:
        if not self.text.startswith("$", pos):
            raise ParseFailure("PATH", self.text, pos)
        end = pos
        depth = 0
        quoted = False
        while end < len(self.text):
            char = self.text[end]
            if quoted:
                if char == "\\":
                    end += 1
                elif char == "'":
                    quoted = False
            elif char == "'" and depth:
                quoted = True
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif depth == 0 and (char in ",()" or char.isspace()):
                break
            end += 1
        try:
            path = Path(self.text[pos:end])
        except InvalidWorkflowError:
            raise ParseFailure("PATH", self.text, pos) from None
        return PathRef(path), end

    def _string(self, pos: int) -> Tuple[Literal, int]:
        if not self.text.startswith("'", pos):
            raise ParseFailure("STRING", self.text, pos)
        chars = []
        end = pos + 1
        while end < len(self.text):
            char = self.text[end]
            if char == "\\" and end + 1 < len(self.text):
                escaped = self.text[end + 1]
                # braces stay escaped so States.Format can tell them from placeholders
                chars.append(escaped if escaped in "'\\" else char + escaped)
                end += 2
                continue
            if char == "'":
                return Literal("".join(chars)), end + 1
            chars.append(char)
            end += 1
        raise ParseFailure("closing quote", self.text, end)

    def _number(self, pos: int) -> Tuple[Literal, int]:
        match = _NUMBER.match(self.text, pos)
        if not match:
            raise ParseFailure("NUMBER", self.text, pos)
        token = match.group(0)
        value = float(token) if match.group(1) or match.group(2) else int(token)
        return Literal(value), match.end()

    def _keyword(self, pos: int) -> Tuple[Literal, int]:
        for keyword, value in _KEYWORDS.items():
            end = pos + len(keyword)
            if self.text.startswith(keyword, pos) and not (
                end < len(self.text) and _IDENT_CHAR.match(self.text[end])
            ):
                return Literal(value), end
        raise ParseFailure("one of [BOOLEAN, NULL]", self.text, pos)
