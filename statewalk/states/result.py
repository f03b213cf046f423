"""Shared behaviour of states that produce a result from background work."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..constants import STATES_TASK_FAILED
from ..errors import TaskFailed
from ..paths import ReferencePath
from ..payload_template import PayloadTemplate
from ..utils.timestamps import utcnow
from .base import NonTerminalState
from .error_handling import parse_catchers, parse_retriers

if TYPE_CHECKING:
    from ..context import Context
    from ..workflow import Execution, Workflow

logger = logging.getLogger(__name__)


class ResultState(NonTerminalState):
    """Base for Task, Parallel and Map.

    :meth:`start` attaches an asyncio handle to the context; the state stays
    running until that handle is done. :meth:`finish` turns the handle's
    outcome into the state output, or routes a failure through ``Retry`` and
    ``Catch``.
    """

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        self.parameters = self.template_field("Parameters")
        self.result_selector = self.template_field("ResultSelector")
        self.result_path = self.path_field("ResultPath", ReferencePath)
        self.retry = parse_retriers(name, payload.get("Retry"))
        self.catch = parse_catchers(name, payload.get("Catch"))

    def template_field(self, key: str) -> Optional[PayloadTemplate]:
        value = self.payload.get(key)
        return None if value is None else PayloadTemplate(value)

    def validate_next(self, states) -> None:
        super().validate_next(states)
        for catcher in self.catch:
            self.validate_target("Catch.Next", catcher.next, states)

    def effective_input(self, context: "Context") -> Any:
        """The state input after ``InputPath`` and ``Parameters``."""
        input = self.apply_input_path(context)
        if self.parameters is not None:
            input = self.parameters.value(context, input)
        return input

    # lifecycle
    def running(self, execution: "Execution") -> bool:
        handle = execution.context.pending
        return handle is not None and not handle.done()

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        handle = context.detach()
        error = context.state.pop("PendingError", None)

        if error is None:
            try:
                result = self.collect(execution, handle)
            except TaskFailed as e:
                error = e.to_output()

        if error is None:
            context.output = self.build_output(context, result)
            self.transition(context)
        else:
            self.handle_error(context, error)
        super().finish(execution)

    def collect(self, execution: "Execution", handle: Optional[asyncio.Future]) -> Any:
        """Return the raw result of ``handle`` or raise :class:`TaskFailed`."""
        raise NotImplementedError

    def build_output(self, context: "Context", result: Any) -> Any:
        if self.result_selector is not None:
            result = self.result_selector.value(context, result)
        output = self.apply_input_path(context)
        if self.result_path is not None:
            output = self.result_path.set(output, result)
        return self.apply_output_path(context, output)

    # error handling
    def handle_error(self, context: "Context", error: Dict[str, Any]) -> None:
        if self.retry_error(context, error) or self.catch_error(context, error):
            return
        self.fail(context, error)

    def retry_error(self, context: "Context", error: Dict[str, Any]) -> bool:
        for index, retrier in enumerate(self.retry):
            if retrier.matches(error.get("Error")):
                break
        else:
            return False

        attempts = context.state.setdefault("RetryAttempts", {})
        attempt = attempts.get(str(index), 0) + 1
        if attempt > retrier.max_attempts:
            return False
        attempts[str(index)] = attempt
        context.state["RetryCount"] = context.state.get("RetryCount", 0) + 1

        delay = retrier.delay(attempt)
        context.state["WaitUntil"] = (utcnow() + timedelta(seconds=delay)).isoformat()
        context.state["Retrying"] = True
        context.next_state = self.name
        context.output = context.input
        logger.info(
            f"State [{self.long_name}] failed with {error.get('Error')}, "
            f"retry {attempt}/{retrier.max_attempts} in {delay:.2f}s"
        )
        return True

    def catch_error(self, context: "Context", error: Dict[str, Any]) -> bool:
        catcher = next((c for c in self.catch if c.matches(error.get("Error"))), None)
        if catcher is None:
            return False
        context.next_state = catcher.next
        context.output = catcher.apply(context.input, error)
        logger.info(
            f"State [{self.long_name}] caught {error.get('Error')}, next state [{catcher.next}]"
        )
        return True


def task_failed(exc: BaseException) -> TaskFailed:
    """Convert an arbitrary exception into a :class:`TaskFailed`."""
    if isinstance(exc, TaskFailed):
        return exc
    return TaskFailed(getattr(exc, "error", STATES_TASK_FAILED), str(exc) or type(exc).__name__)
