"""JSONPath subset used for InputPath, OutputPath, ResultPath and friends."""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Tuple, Union

from .context import Context
from .errors import InvalidWorkflowError, PathError

Segment = Union[str, int]

_NAME = re.compile(r"\.([^.\[\]'\s]+)")
_QUOTED = re.compile(r"\['((?:[^'\\]|\\.)*)'\]")
_INDEX = re.compile(r"\[(\d+)\]")

_MISSING = object()


def _context_root(context: Any) -> Any:
    if isinstance(context, Context):
        return context.context_object()
    return {} if context is None else context


def _parse_segments(path: str, start: int) -> List[Segment]:
    segments: List[Segment] = []
    pos = start
    while pos < len(path):
        for pattern in (_NAME, _QUOTED, _INDEX):
            match = pattern.match(path, pos)
            if match:
                break
        else:
            raise InvalidWorkflowError(f"Invalid path {path!r} at char {pos + 1}")
        if pattern is _INDEX:
            segments.append(int(match.group(1)))
        elif pattern is _QUOTED:
            segments.append(re.sub(r"\\(.)", r"\1", match.group(1)))
        else:
            segments.append(match.group(1))
        pos = match.end()
    return segments


def _lookup(node: Any, segment: Segment) -> Any:
    if isinstance(segment, int):
        if isinstance(node, list) and segment < len(node):
            return node[segment]
        return _MISSING
    if isinstance(node, Mapping) and segment in node:
        return node[segment]
    return _MISSING


class Path:
    """A parsed ``$``/``$$`` path.

    Lookups that miss (unknown key, index out of range, descending into a
    scalar) resolve to ``None`` rather than raising.
    """

    def __init__(self, payload: str) -> None:
        if not isinstance(payload, str) or not payload.startswith("$"):
            raise InvalidWorkflowError(f"Path [{payload}] must start with \"$\"")
        self.payload = payload
        self.context_relative = payload.startswith("$$")
        self.segments: Tuple[Segment, ...] = tuple(
            _parse_segments(payload, 2 if self.context_relative else 1)
        )

    def _resolve(self, context: Any, input: Any) -> Any:
        node = _context_root(context) if self.context_relative else input
        for segment in self.segments:
            node = _lookup(node, segment)
            if node is _MISSING:
                break
        return node

    def value(self, context: Any = None, input: Any = None) -> Any:
        node = self._resolve(context, input)
        return None if node is _MISSING else node

    def exists(self, context: Any = None, input: Any = None) -> bool:
        """Return whether the path resolves, even to an explicit ``null``."""
        return self._resolve(context, input) is not _MISSING

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Path) and other.payload == self.payload

    def __hash__(self) -> int:
        return hash(self.payload)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.payload!r})"

    def __str__(self) -> str:
        return self.payload


class ReferencePath(Path):
    """A writable path into the state input, used by ``ResultPath``."""

    def __init__(self, payload: str) -> None:
        super().__init__(payload)
        if self.context_relative:
            raise InvalidWorkflowError(
                f"Reference path [{payload}] cannot refer to the context object"
            )

    def set(self, container: Any, value: Any) -> Any:
        """Return a copy of ``container`` with ``value`` placed at this path.

        Only the containers along the path are copied; ``container`` itself
        is left untouched.
        """
        if not self.segments:
            return value
        return self._assign(container, list(self.segments), value)

    def _assign(self, node: Any, segments: List[Segment], value: Any) -> Any:
        segment, rest = segments[0], segments[1:]

        if isinstance(segment, int):
            if not isinstance(node, list):
                raise PathError(
                    f"Cannot set [{self.payload}]: index {segment} into non-array {node!r}"
                )
            if segment > len(node):
                raise PathError(
                    f"Cannot set [{self.payload}]: index {segment} out of range"
                )
            copy = list(node)
            child = copy[segment] if segment < len(copy) else None
            new_child = self._assign(child, rest, value) if rest else value
            if segment == len(copy):
                copy.append(new_child)
            else:
                copy[segment] = new_child
            return copy

        if node is None:
            node = {}
        if not isinstance(node, Mapping):
            raise PathError(
                f"Cannot set [{self.payload}]: key {segment!r} into non-object {node!r}"
            )
        copy = dict(node)
        new_child = self._assign(copy.get(segment), rest, value) if rest else value
        copy[segment] = new_child
        return copy
