from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..errors import InvalidWorkflowError
from .children import run_children
from .result import ResultState

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow


class Parallel(ResultState):
    """Run every branch on the same input; the result lists their outputs."""

    TYPE = "Parallel"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        super().__init__(workflow, name, payload)
        branches = payload.get("Branches")
        if not isinstance(branches, list) or not branches:
            raise InvalidWorkflowError(f"State [{name}] requires a non-empty Branches array")
        self.branches: List["Workflow"] = [
            workflow.nested(branch, f"{name}.Branches[{index}]")
            for index, branch in enumerate(branches)
        ]

    async def start(self, execution: "Execution") -> None:
        await super().start(execution)
        context = execution.context
        input = self.effective_input(context)
        children = [execution.child(branch, context.child(input)) for branch in self.branches]
        context.attach(asyncio.ensure_future(run_children(children)))

    def collect(self, execution: "Execution", handle: Optional[asyncio.Future]) -> Any:
        return [child.output for child in handle.result()]
