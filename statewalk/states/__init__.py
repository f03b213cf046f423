"""State kinds and the registry used to build them from a definition."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Type

from ..errors import InvalidWorkflowError
from .base import NonTerminalState, State
from .choice import Choice
from .fail import Fail
from .map_state import Map
from .parallel import Parallel
from .pass_state import Pass
from .result import ResultState
from .succeed import Succeed
from .task import Task
from .wait import Wait

if TYPE_CHECKING:
    from ..workflow import Workflow

STATE_TYPES: Dict[str, Type[State]] = {
    cls.TYPE: cls for cls in (Pass, Task, Choice, Wait, Succeed, Fail, Parallel, Map)
}


def build_state(workflow: "Workflow", name: str, payload: Any) -> State:
    """Build the state ``name`` from its definition ``payload``."""
    if not isinstance(payload, dict):
        raise InvalidWorkflowError(f"State [{name}] must be an object")
    state_type = payload.get("Type")
    if state_type not in STATE_TYPES:
        raise InvalidWorkflowError(f"State [{name}] has unknown Type [{state_type}]")
    return STATE_TYPES[state_type](workflow, name, payload)


__all__ = [
    "STATE_TYPES",
    "Choice",
    "Fail",
    "Map",
    "NonTerminalState",
    "Parallel",
    "Pass",
    "ResultState",
    "State",
    "Succeed",
    "Task",
    "Wait",
    "build_state",
]
