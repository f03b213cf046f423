"""Common behaviour shared by all state kinds."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional

from ..errors import InvalidWorkflowError, TaskFailed
from ..paths import Path
from ..utils.timestamps import iso_now, parse_timestamp

if TYPE_CHECKING:
    from ..context import Context
    from ..workflow import Execution, Workflow

logger = logging.getLogger(__name__)

MAX_STATE_NAME_LENGTH = 80


class State:
    """Base class for all state kinds.

    A state is built once from its definition and shared, read-only, by every
    run of the workflow. Per-run data lives in the ``Context`` reached through
    the ``Execution`` passed to each lifecycle method:

    * :meth:`start` enters the state (and may launch background work),
    * :meth:`running` reports whether that work is still in flight,
    * :meth:`finish` produces the output and chooses the next state.
    """

    TYPE: ClassVar[str]

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        self.workflow = workflow
        self.name = name
        self.payload = payload
        self.type = payload.get("Type")
        self.comment = payload.get("Comment")

        if len(name) > MAX_STATE_NAME_LENGTH:
            raise InvalidWorkflowError(
                f"State name [{name}] must be at most {MAX_STATE_NAME_LENGTH} characters"
            )

        self.input_path = self.path_field("InputPath")
        self.output_path = self.path_field("OutputPath")

    @property
    def long_name(self) -> str:
        return f"{self.type}:{self.name}"

    @property
    def end(self) -> bool:
        return False

    def path_field(self, key: str, path_class: type = Path, default: Any = "$") -> Optional[Path]:
        """Parse the path stored under ``key``; an explicit ``null`` gives ``None``."""
        value = self.payload.get(key, default)
        if value is None:
            return None
        try:
            return path_class(value)
        except InvalidWorkflowError as e:
            raise InvalidWorkflowError(f"State [{self.name}] field [{key}]: {e}") from e

    def validate_next(self, states: Dict[str, "State"]) -> None:
        """Check transitions once every state of the workflow is built."""

    def validate_target(self, field: str, target: Optional[str], states: Dict[str, "State"]) -> None:
        if target is not None and target not in states:
            raise InvalidWorkflowError(
                f"State [{self.name}] field [{field}] points to unknown state [{target}]"
            )

    def apply_input_path(self, context: "Context") -> Any:
        if self.input_path is None:
            return {}
        return self.input_path.value(context, context.input)

    def apply_output_path(self, context: "Context", output: Any) -> Any:
        if self.output_path is None:
            return {}
        return self.output_path.value(context, output)

    # lifecycle
    async def start(self, execution: "Execution") -> None:
        context = execution.context
        context.state["EnteredTime"] = iso_now()
        context.state.setdefault("Guid", str(uuid.uuid4()))
        logger.info(f"Running state: [{self.long_name}] with input [{context.input}]...")

    def running(self, execution: "Execution") -> bool:
        return False

    def ready(self, execution: "Execution") -> bool:
        return not execution.context.waiting and not self.running(execution)

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        finished = iso_now()
        context.state["FinishedTime"] = finished
        entered = context.state.get("EnteredTime")
        if entered:
            elapsed = parse_timestamp(finished) - parse_timestamp(entered)
            context.state["Duration"] = elapsed.total_seconds()

        message = (
            f"Running state: [{self.long_name}] with input [{context.input}]"
            f"...Complete - next state [{context.next_state}] output: [{context.output}]"
        )
        if "Error" in context.state:
            logger.error(message)
        else:
            logger.info(message)

    # error helpers
    def defer_error(self, context: "Context", error: TaskFailed) -> None:
        """Record an error found during :meth:`start` for :meth:`finish` to handle."""
        context.state["PendingError"] = error.to_output()

    def fail(self, context: "Context", error: Dict[str, Any]) -> None:
        """End the run with ``error`` as its output."""
        context.next_state = None
        context.output = error
        context.state["Error"] = error.get("Error")
        if error.get("Cause") is not None:
            context.state["Cause"] = error["Cause"]
        logger.error(
            f"State [{self.long_name}] failed with {error.get('Error')}: {error.get('Cause')}"
        )


class NonTerminalState(State):
    """A state that either transitions with ``Next`` or ends the run with ``End``."""

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        self.next: Optional[str] = payload.get("Next")
        self._end = bool(payload.get("End", False))

        if self.next is not None and self._end:
            raise InvalidWorkflowError(f"State [{name}] must not have both Next and End")
        if self.next is None and not self._end:
            raise InvalidWorkflowError(f"State [{name}] must have either Next or End")

    @property
    def end(self) -> bool:
        return self._end

    def validate_next(self, states: Dict[str, State]) -> None:
        self.validate_target("Next", self.next, states)

    def transition(self, context: "Context") -> None:
        context.next_state = None if self.end else self.next
