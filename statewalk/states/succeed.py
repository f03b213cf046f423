from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import InvalidWorkflowError
from .base import State

if TYPE_CHECKING:
    from ..workflow import Execution


class Succeed(State):
    """Terminal state that ends the run successfully."""

    TYPE = "Succeed"

    def __init__(self, workflow, name, payload) -> None:
        super().__init__(workflow, name, payload)
        if "Next" in payload or "End" in payload:
            raise InvalidWorkflowError(f"State [{name}] is terminal and must not have Next or End")

    @property
    def end(self) -> bool:
        return True

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        context.output = self.apply_output_path(context, self.apply_input_path(context))
        context.next_state = None
        super().finish(execution)
