"""In-process runner for tests and embedding hosts."""

from __future__ import annotations

import inspect
import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import BaseRunner

Handler = Callable[[Dict[str, str], Dict[str, Any]], Any]


class InMemoryRunner(BaseRunner):
    """Dispatch resources to registered Python callables.

    A handler receives ``(env, secrets)`` and returns either an
    ``(exit_status, output)`` pair or a plain value, which is reported as a
    successful run with the value JSON-encoded as output. Handlers may be
    coroutine functions.
    """

    def __init__(self, handlers: Optional[Dict[str, Handler]] = None) -> None:
        self._handlers: Dict[str, Handler] = dict(handlers or {})
        self.calls: List[Tuple[str, Dict[str, str], Dict[str, Any]]] = []

    def register(self, resource: str, handler: Handler) -> None:
        self._handlers[resource] = handler

    async def run(
        self,
        resource: str,
        env: Optional[Dict[str, str]] = None,
        secrets: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, bytes]:
        handler = self._handlers.get(resource) if resource else None
        if handler is None:
            raise ValueError("Invalid resource")

        env = dict(env or {})
        secrets = dict(secrets or {})
        self.calls.append((resource, env, secrets))

        result = handler(env, secrets)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, tuple):
            exit_status, output = result
        else:
            exit_status, output = 0, result
        return exit_status, _to_bytes(output)


def _to_bytes(output: Any) -> bytes:
    if isinstance(output, bytes):
        return output
    if isinstance(output, str):
        return output.encode("utf-8")
    return json.dumps(output).encode("utf-8")
