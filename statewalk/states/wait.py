from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..constants import STATES_RUNTIME
from ..errors import InvalidWorkflowError, TaskFailed
from ..utils.timestamps import parse_timestamp, utcnow
from .base import NonTerminalState

if TYPE_CHECKING:
    from ..context import Context
    from ..workflow import Execution, Workflow

_FIELDS = ("Seconds", "SecondsPath", "Timestamp", "TimestampPath")


class Wait(NonTerminalState):
    """Delay the run for a number of seconds or until a timestamp.

    The state never sleeps itself: :meth:`start` records ``WaitUntil`` and
    the driver reports that time through ``Execution.wait_until``.
    """

    TYPE = "Wait"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        given = [field for field in _FIELDS if field in payload]
        if len(given) != 1:
            raise InvalidWorkflowError(
                f"State [{name}] requires exactly one of {', '.join(_FIELDS)}"
            )

        self.seconds = payload.get("Seconds")
        self.timestamp: Optional[datetime] = None
        self.seconds_path = self.path_field("SecondsPath", default=None)
        self.timestamp_path = self.path_field("TimestampPath", default=None)

        if "Seconds" in payload and not _non_negative_number(self.seconds):
            raise InvalidWorkflowError(f"State [{name}] Seconds must be a non-negative number")
        if "Timestamp" in payload:
            try:
                self.timestamp = parse_timestamp(payload["Timestamp"])
            except ValueError as e:
                raise InvalidWorkflowError(f"State [{name}] Timestamp is invalid: {e}") from e

    async def start(self, execution: "Execution") -> None:
        await super().start(execution)
        context = execution.context
        wait_until = self._wait_until(context)
        if wait_until is not None:
            context.state["WaitUntil"] = wait_until.isoformat()

    def _wait_until(self, context: "Context") -> Optional[datetime]:
        input = self.apply_input_path(context)
        if self.seconds_path is not None:
            seconds = self.seconds_path.value(context, input)
            if not _non_negative_number(seconds):
                cause = f"SecondsPath [{self.seconds_path}] resolved to {seconds!r}"
                self.defer_error(context, TaskFailed(STATES_RUNTIME, cause))
                return None
            return utcnow() + timedelta(seconds=seconds)
        if self.timestamp_path is not None:
            value = self.timestamp_path.value(context, input)
            try:
                return parse_timestamp(value)
            except ValueError:
                cause = f"TimestampPath [{self.timestamp_path}] resolved to {value!r}"
                self.defer_error(context, TaskFailed(STATES_RUNTIME, cause))
                return None
        if self.timestamp is not None:
            return self.timestamp
        return utcnow() + timedelta(seconds=self.seconds)

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        error = context.state.pop("PendingError", None)
        if error is not None:
            self.fail(context, error)
        else:
            context.output = self.apply_output_path(context, self.apply_input_path(context))
            self.transition(context)
        super().finish(execution)


def _non_negative_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0
