from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from ..paths import ReferencePath
from ..payload_template import PayloadTemplate
from .base import NonTerminalState

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow


class Pass(NonTerminalState):
    """Pass its input to its output, optionally injecting ``Result``."""

    TYPE = "Pass"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        self.has_result = "Result" in payload
        self.result = payload.get("Result")
        parameters = payload.get("Parameters")
        self.parameters = None if parameters is None else PayloadTemplate(parameters)
        self.result_path = self.path_field("ResultPath", ReferencePath)

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        input = self.apply_input_path(context)

        if self.has_result:
            result: Any = self.result
        elif self.parameters is not None:
            result = self.parameters.value(context, input)
        else:
            result = input

        output = input if self.result_path is None else self.result_path.set(input, result)
        context.output = self.apply_output_path(context, output)
        self.transition(context)
        super().finish(execution)
