from __future__ import annotations

import asyncio
import json
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..constants import STATES_RUNTIME, STATES_TASK_FAILED, STATES_TIMEOUT
from ..errors import InvalidWorkflowError, TaskFailed
from ..utils.timestamps import parse_timestamp, utcnow
from .result import ResultState, task_failed

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow

logger = logging.getLogger(__name__)


def parse_output(text: str) -> Any:
    """Decode runner output: the whole text as JSON, else its last line, else raw."""
    try:
        return json.loads(text)
    except ValueError:
        pass
    lines = [line for line in text.splitlines() if line.strip()]
    if lines:
        try:
            return json.loads(lines[-1])
        except ValueError:
            pass
    return text


class Task(ResultState):
    """Run ``Resource`` through the execution's runner.

    The effective input must be an object; each key becomes an environment
    variable, with non-string values JSON encoded. ``Credentials`` is
    evaluated against the run's credentials and handed to the runner as
    secrets, never as environment.
    """

    TYPE = "Task"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        self.resource: Optional[str] = payload.get("Resource")
        if not isinstance(self.resource, str) or not self.resource:
            raise InvalidWorkflowError(f"State [{name}] requires a Resource string")

        self.credentials = self.template_field("Credentials")
        self.timeout_seconds = payload.get("TimeoutSeconds")
        self.timeout_seconds_path = self.path_field("TimeoutSecondsPath", default=None)
        if self.timeout_seconds is not None and self.timeout_seconds_path is not None:
            raise InvalidWorkflowError(
                f"State [{name}] must not have both TimeoutSeconds and TimeoutSecondsPath"
            )
        if self.timeout_seconds is not None and not _positive_number(self.timeout_seconds):
            raise InvalidWorkflowError(f"State [{name}] TimeoutSeconds must be a positive number")

    async def start(self, execution: "Execution") -> None:
        await super().start(execution)
        context = execution.context

        input = self.effective_input(context)
        if not isinstance(input, dict):
            self.defer_error(
                context, TaskFailed(STATES_RUNTIME, f"Task input must be an object, got {input!r}")
            )
            return

        timeout = self.timeout_seconds
        if self.timeout_seconds_path is not None:
            timeout = self.timeout_seconds_path.value(context, context.input)
            if not _positive_number(timeout):
                self.defer_error(
                    context,
                    TaskFailed(STATES_RUNTIME, f"TimeoutSecondsPath resolved to {timeout!r}"),
                )
                return
        if timeout is not None:
            context.state["TimeoutAt"] = (utcnow() + timedelta(seconds=timeout)).isoformat()

        env = {
            str(key): value if isinstance(value, str) else json.dumps(value)
            for key, value in input.items()
        }
        secrets = {}
        if self.credentials is not None:
            secrets = self.credentials.value(context, context.credentials)

        logger.debug(f"Task [{self.name}] running {self.resource}")
        context.attach(asyncio.ensure_future(execution.runner.run(self.resource, env, secrets)))

    def running(self, execution: "Execution") -> bool:
        if not super().running(execution):
            return False
        context = execution.context
        deadline = context.state.get("TimeoutAt")
        expired = deadline and utcnow() >= parse_timestamp(deadline)
        if expired and not context.state.get("TimedOut"):
            context.pending.cancel()
            context.state["TimedOut"] = True
            logger.warning(f"Task [{self.name}] timed out, cancelling")
        # a cancelled runner call stays in flight until its cleanup has run
        return True

    def collect(self, execution: "Execution", handle: Optional[asyncio.Future]) -> Any:
        context = execution.context
        if context.state.pop("TimedOut", False) or handle.cancelled():
            if not handle.cancelled() and handle.exception() is not None:
                logger.warning(
                    f"Task [{self.name}] failed while cancelling: {handle.exception()!r}"
                )
            raise TaskFailed(STATES_TIMEOUT, "Task did not complete before its timeout")

        try:
            exit_status, output = handle.result()
        except Exception as e:
            raise task_failed(e) from e

        text = output.decode("utf-8", errors="replace") if isinstance(output, bytes) else output
        parsed = parse_output(text)
        if exit_status == 0:
            return parsed
        if isinstance(parsed, dict) and "Error" in parsed:
            raise TaskFailed(parsed["Error"], parsed.get("Cause"))
        raise TaskFailed(STATES_TASK_FAILED, text.strip() or f"exit status {exit_status}")


def _positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0
