from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from ..errors import InvalidWorkflowError
from .base import State

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow


class Fail(State):
    """Terminal state that ends the run with an error.

    ``Error`` and ``Cause`` may be given literally or resolved from the state
    input with ``ErrorPath`` and ``CausePath``.
    """

    TYPE = "Fail"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        if "Next" in payload or "End" in payload:
            raise InvalidWorkflowError(f"State [{name}] is terminal and must not have Next or End")
        for field in ("Error", "Cause"):
            if field in payload and f"{field}Path" in payload:
                raise InvalidWorkflowError(
                    f"State [{name}] must not have both {field} and {field}Path"
                )

        self.error: Optional[str] = payload.get("Error")
        self.cause: Optional[str] = payload.get("Cause")
        self.error_path = self.path_field("ErrorPath", default=None)
        self.cause_path = self.path_field("CausePath", default=None)

    @property
    def end(self) -> bool:
        return True

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        error = self.error
        cause = self.cause
        if self.error_path is not None:
            error = self.error_path.value(context, context.input)
        if self.cause_path is not None:
            cause = self.cause_path.value(context, context.input)

        output: Dict[str, Any] = {"Error": error}
        if cause is not None:
            output["Cause"] = cause
        self.fail(context, output)
        super().finish(execution)
