from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..constants import STATES_NO_CHOICE_MATCHED
from ..errors import InvalidWorkflowError
from .base import State
from .choice_rules import ChoiceRule

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow


class Choice(State):
    """Branch to the ``Next`` of the first matching rule, else ``Default``."""

    TYPE = "Choice"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        if "Next" in payload or "End" in payload:
            raise InvalidWorkflowError(f"State [{name}] must not have Next or End")

        choices = payload.get("Choices") or []
        if not isinstance(choices, list):
            raise InvalidWorkflowError(f"State [{name}] field [Choices] must be an array")
        self.default: Optional[str] = payload.get("Default")
        if not choices and self.default is None:
            raise InvalidWorkflowError(f"State [{name}] requires Choices or a Default")

        try:
            self.choices: List[ChoiceRule] = [ChoiceRule.build(rule) for rule in choices]
        except InvalidWorkflowError as e:
            raise InvalidWorkflowError(f"State [{name}]: {e}") from e

    def validate_next(self, states) -> None:
        for rule in self.choices:
            self.validate_target("Choices.Next", rule.next, states)
        self.validate_target("Default", self.default, states)

    def finish(self, execution: "Execution") -> None:
        context = execution.context
        input = self.apply_input_path(context)

        target = next(
            (rule.next for rule in self.choices if rule.true(context, input)), self.default
        )
        if target is None:
            self.fail(
                context,
                {
                    "Error": STATES_NO_CHOICE_MATCHED,
                    "Cause": f"No matching choice rule in state [{self.name}]",
                },
            )
        else:
            context.output = self.apply_output_path(context, input)
            context.next_state = target
        super().finish(execution)
