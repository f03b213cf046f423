"""Payload templates: JSON literals with ``.$`` keys interpolated at runtime."""

from __future__ import annotations

from typing import Any

from .errors import InvalidWorkflowError
from .intrinsics import PREFIX, IntrinsicFunction
from .paths import Path

SUFFIX = ".$"


class PayloadTemplate:
    """Parsed ``Parameters``/``ResultSelector``/``ItemSelector`` payload.

    Every value under a key ending in ``.$`` is parsed up front into a
    :class:`Path` or :class:`IntrinsicFunction`, so malformed expressions are
    reported when the workflow is loaded. :meth:`value` never mutates the
    parsed tree.
    """

    def __init__(self, payload: Any) -> None:
        self.payload = payload
        self._tree = self._parse(payload)

    def value(self, context: Any = None, input: Any = None) -> Any:
        return self._interpolate(self._tree, context, {} if input is None else input)

    def _parse(self, value: Any, dynamic: bool = False, nested: bool = False) -> Any:
        if isinstance(value, list):
            return [self._parse(item, dynamic, nested=dynamic) for item in value]
        if isinstance(value, dict):
            return {
                key: self._parse(item, key.endswith(SUFFIX))
                for key, item in value.items()
            }
        if dynamic:
            return self._parse_expression(value, strict=not nested)
        return value

    def _parse_expression(self, value: Any, strict: bool = True) -> Any:
        if isinstance(value, str):
            if value.startswith("$"):
                return Path(value)
            if value.lstrip().startswith(PREFIX):
                return IntrinsicFunction(value)
        if not strict:
            return value
        raise InvalidWorkflowError(
            f"Value {value!r} of a \"{SUFFIX}\" key must be a path or an intrinsic function"
        )

    def _interpolate(self, value: Any, context: Any, input: Any) -> Any:
        if isinstance(value, list):
            return [self._interpolate(item, context, input) for item in value]
        if isinstance(value, dict):
            return {
                (key[: -len(SUFFIX)] if key.endswith(SUFFIX) else key): self._interpolate(
                    item, context, input
                )
                for key, item in value.items()
            }
        if isinstance(value, (Path, IntrinsicFunction)):
            return value.value(context, input)
        return value

    def __repr__(self) -> str:
        return f"PayloadTemplate({self.payload!r})"
