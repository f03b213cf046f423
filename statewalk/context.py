"""Per-run execution record threaded through the driver."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr

from .utils.timestamps import iso_now, parse_timestamp, utcnow


class Context(BaseModel):
    """Mutable record of one workflow run.

    ``execution``, ``state``, ``state_machine`` and ``task`` make up the
    ``$$`` context object seen by paths. The current state's input, output
    and next state live inside ``state`` so a finished state can be copied
    into ``state_history`` as a whole.
    """

    execution: Dict[str, Any] = Field(default_factory=dict)
    state: Dict[str, Any] = Field(default_factory=dict)
    state_machine: Dict[str, Any] = Field(default_factory=dict)
    task: Dict[str, Any] = Field(default_factory=dict)
    map_item: Optional[Dict[str, Any]] = None
    state_history: List[Dict[str, Any]] = Field(default_factory=list)
    credentials: Dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    _pending: Optional[asyncio.Future] = PrivateAttr(default=None)

    @classmethod
    def new(
        cls,
        input: Any = None,
        name: Optional[str] = None,
        credentials: Optional[Dict[str, Any]] = None,
    ) -> "Context":
        """Create the context for a fresh run with ``input``."""
        input = {} if input is None else input
        execution_id = str(uuid.uuid4())
        return cls(
            execution={
                "Id": execution_id,
                "Name": name or execution_id,
                "Input": input,
            },
            state={"Input": input},
            credentials=credentials or {},
        )

    def context_object(self) -> Dict[str, Any]:
        """Return the ``$$`` object visible to paths and templates."""
        obj = {
            "Execution": self.execution,
            "State": self.state,
            "StateMachine": self.state_machine,
            "Task": self.task,
        }
        if self.map_item is not None:
            obj["Map"] = {"Item": self.map_item}
        return obj

    # state record accessors
    @property
    def state_name(self) -> Optional[str]:
        return self.state.get("Name")

    @property
    def input(self) -> Any:
        return self.state.get("Input")

    @input.setter
    def input(self, value: Any) -> None:
        self.state["Input"] = value

    @property
    def output(self) -> Any:
        return self.state.get("Output")

    @output.setter
    def output(self, value: Any) -> None:
        self.state["Output"] = value

    @property
    def next_state(self) -> Optional[str]:
        return self.state.get("NextState")

    @next_state.setter
    def next_state(self, value: Optional[str]) -> None:
        self.state["NextState"] = value

    @property
    def state_started(self) -> bool:
        return "EnteredTime" in self.state

    def wait_until(self) -> Optional[Any]:
        """Return the time the current state sleeps until, if any."""
        value = self.state.get("WaitUntil")
        return parse_timestamp(value) if value else None

    @property
    def waiting(self) -> bool:
        wait_until = self.wait_until()
        return wait_until is not None and utcnow() < wait_until

    # run status
    @property
    def started(self) -> bool:
        return "StartTime" in self.execution

    @property
    def ended(self) -> bool:
        return "EndTime" in self.execution

    @property
    def running(self) -> bool:
        return self.started and not self.ended

    @property
    def failed(self) -> bool:
        return self.ended and "Error" in self.execution

    @property
    def status(self) -> str:
        if not self.started:
            return "pending"
        if self.running:
            return "running"
        return "failure" if self.failed else "success"

    def start_execution(self) -> None:
        self.execution["StartTime"] = iso_now()

    def end_execution(self) -> None:
        self.execution["EndTime"] = iso_now()
        if "Error" in self.state:
            self.execution["Error"] = self.state["Error"]
            if self.state.get("Cause") is not None:
                self.execution["Cause"] = self.state["Cause"]

    # in-flight work for the current state
    @property
    def pending(self) -> Optional[asyncio.Future]:
        return self._pending

    def attach(self, handle: asyncio.Future) -> None:
        self._pending = handle

    def detach(self) -> Optional[asyncio.Future]:
        handle, self._pending = self._pending, None
        return handle

    def child(self, input: Any, map_item: Optional[Dict[str, Any]] = None) -> "Context":
        """Create an independent context for a Parallel branch or Map item."""
        execution = {
            key: value
            for key, value in self.execution.items()
            if key not in ("StartTime", "EndTime", "Error", "Cause")
        }
        execution["Input"] = input
        return Context(
            execution=execution,
            state={"Input": input},
            state_machine=dict(self.state_machine),
            map_item=map_item,
            credentials=self.credentials,
        )
