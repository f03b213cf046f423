from __future__ import annotations

import asyncio
import math
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..constants import STATES_RUNTIME
from ..errors import InvalidWorkflowError, TaskFailed
from ..payload_template import PayloadTemplate
from .children import run_children
from .result import ResultState

if TYPE_CHECKING:
    from ..workflow import Execution, Workflow


class Map(ResultState):
    """Run ``ItemProcessor`` once per item of the array at ``ItemsPath``.

    Each iteration sees ``$$.Map.Item.Index`` and ``$$.Map.Item.Value``;
    ``ItemSelector`` (legacy ``Parameters``) shapes the iteration input. The
    result lists the iteration outputs in item order.
    """

    TYPE = "Map"

    def __init__(self, workflow: "Workflow", name: str, payload: Dict[str, Any]) -> None:
        # Parameters on a Map selects items rather than shaping the state input
        payload = dict(payload)
        legacy_parameters = payload.pop("Parameters", None)
        super().__init__(workflow, name, payload)

        self.items_path = self.path_field("ItemsPath")
        selector = payload.get("ItemSelector", legacy_parameters)
        self.item_selector = None if selector is None else PayloadTemplate(selector)

        processor = payload.get("ItemProcessor", payload.get("Iterator"))
        if not isinstance(processor, dict):
            raise InvalidWorkflowError(f"State [{name}] requires an ItemProcessor")
        self.item_processor: "Workflow" = workflow.nested(processor, f"{name}.ItemProcessor")

        self.max_concurrency: Optional[int] = payload.get("MaxConcurrency")
        if self.max_concurrency is not None and (
            not isinstance(self.max_concurrency, int) or self.max_concurrency < 0
        ):
            raise InvalidWorkflowError(f"State [{name}] MaxConcurrency must be a non-negative integer")

        self.tolerated_failure_count: Optional[int] = payload.get("ToleratedFailureCount")
        self.tolerated_failure_percentage: Optional[float] = payload.get(
            "ToleratedFailurePercentage"
        )
        if self.tolerated_failure_percentage is not None and not (
            0 <= self.tolerated_failure_percentage <= 100
        ):
            raise InvalidWorkflowError(
                f"State [{name}] ToleratedFailurePercentage must be between 0 and 100"
            )

    def tolerates_failures(self) -> bool:
        return bool(self.tolerated_failure_count) or bool(self.tolerated_failure_percentage)

    def tolerated(self, failures: int, total: int) -> bool:
        """Return whether ``failures`` out of ``total`` items is acceptable."""
        if self.tolerated_failure_count is not None and failures > self.tolerated_failure_count:
            return False
        if self.tolerated_failure_percentage is not None:
            allowed = math.floor(total * self.tolerated_failure_percentage / 100)
            if failures > allowed:
                return False
        return True

    async def start(self, execution: "Execution") -> None:
        await super().start(execution)
        context = execution.context
        input = self.apply_input_path(context)
        items = self.items_path.value(context, input) if self.items_path is not None else {}
        if not isinstance(items, list):
            self.defer_error(
                context,
                TaskFailed(STATES_RUNTIME, f"ItemsPath [{self.items_path}] did not resolve to an array"),
            )
            return

        children = []
        for index, item in enumerate(items):
            map_item = {"Index": index, "Value": item}
            item_input = item
            if self.item_selector is not None:
                context_object = dict(context.context_object(), Map={"Item": map_item})
                item_input = self.item_selector.value(context_object, input)
            children.append(
                execution.child(self.item_processor, context.child(item_input, map_item))
            )

        max_concurrency = self.max_concurrency
        if max_concurrency is None:
            max_concurrency = execution.config.engine.max_concurrency

        tolerate = None
        if self.tolerates_failures():
            total = len(children)

            def tolerate(failures: int) -> bool:
                return self.tolerated(failures, total)

        context.attach(
            asyncio.ensure_future(run_children(children, max_concurrency, tolerate))
        )

    def collect(self, execution: "Execution", handle: Optional[asyncio.Future]) -> Any:
        return [child.output for child in handle.result()]
