"""Workflow definitions and the driver that executes them."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Union

import yaml

from .config import StatewalkConfig, load_config
from .constants import STATES_RUNTIME, STATES_TIMEOUT
from .context import Context
from .errors import ExecutionError, InvalidWorkflowError
from .runners import BaseRunner, get_runner
from .states import State, build_state
from .utils.timestamps import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

# carried from a failed attempt into the retry of the same state
_RETRY_KEYS = ("RetryCount", "RetryAttempts", "WaitUntil")


class Workflow:
    """A parsed, validated workflow definition.

    A workflow is immutable once built and may be shared by any number of
    concurrent executions, including the nested ones run by Parallel and
    Map states.
    """

    def __init__(self, payload: Dict[str, Any], name: Optional[str] = None) -> None:
        if not isinstance(payload, dict):
            raise InvalidWorkflowError("Workflow definition must be an object")

        self.payload = payload
        self.name = name or "workflow"
        self.comment = payload.get("Comment")
        self.version = payload.get("Version")
        self.start_at = payload.get("StartAt")
        self.timeout_seconds = payload.get("TimeoutSeconds")

        states = payload.get("States")
        if not isinstance(self.start_at, str):
            raise InvalidWorkflowError(f"Workflow [{self.name}] requires a StartAt string")
        if not isinstance(states, dict) or not states:
            raise InvalidWorkflowError(f"Workflow [{self.name}] requires a non-empty States object")
        if self.timeout_seconds is not None and (
            not isinstance(self.timeout_seconds, (int, float))
            or isinstance(self.timeout_seconds, bool)
            or self.timeout_seconds <= 0
        ):
            raise InvalidWorkflowError(f"Workflow [{self.name}] TimeoutSeconds must be positive")

        self.states: Dict[str, State] = {
            state_name: build_state(self, state_name, state_payload)
            for state_name, state_payload in states.items()
        }
        if self.start_at not in self.states:
            raise InvalidWorkflowError(
                f"Workflow [{self.name}] StartAt [{self.start_at}] is not a state"
            )
        for state in self.states.values():
            state.validate_next(self.states)

    @classmethod
    def load(cls, source: Union[str, os.PathLike], name: Optional[str] = None) -> "Workflow":
        """Load a workflow from a JSON or YAML file path or document text."""
        text = str(source)
        if isinstance(source, os.PathLike) or os.path.isfile(text):
            path = os.fspath(source)
            with open(path) as f:
                text = f.read()
            name = name or os.path.splitext(os.path.basename(path))[0]

        try:
            payload = json.loads(text)
        except ValueError:
            try:
                payload = yaml.safe_load(text)
            except yaml.YAMLError as e:
                raise InvalidWorkflowError(f"Workflow document is not valid JSON or YAML: {e}") from e
        return cls(payload, name=name)

    def nested(self, payload: Dict[str, Any], name: str) -> "Workflow":
        """Build a branch or item-processor workflow nested in this one."""
        return Workflow(payload, name=f"{self.name}/{name}")

    def execute(self, input: Any = None, **kwargs: Any) -> "Execution":
        return Execution(self, input=input, **kwargs)

    def __getitem__(self, state_name: str) -> State:
        return self.states[state_name]

    def __repr__(self) -> str:
        return f"Workflow(name={self.name!r}, start_at={self.start_at!r})"


class Execution:
    """One run of a :class:`Workflow`.

    :meth:`step` advances the run without blocking and is what embedding
    hosts drive themselves; :meth:`run` loops over it until the run ends,
    idling on in-flight work or the current wake-up time in between.
    """

    def __init__(
        self,
        workflow: Workflow,
        input: Any = None,
        runner: Optional[BaseRunner] = None,
        credentials: Optional[Dict[str, Any]] = None,
        context: Optional[Context] = None,
        config: Optional[StatewalkConfig] = None,
    ) -> None:
        self.workflow = workflow
        self.config = config or load_config()
        self._runner = runner
        self.context = context or Context.new(input, credentials=credentials)

        self.context.state_machine.setdefault("Name", workflow.name)
        self.context.state_machine.setdefault("Id", str(uuid.uuid4()))
        if not self.context.state_name:
            self.context.state["Name"] = workflow.start_at
            self.context.state.setdefault("Guid", str(uuid.uuid4()))

    @property
    def runner(self) -> BaseRunner:
        if self._runner is None:
            self._runner = get_runner(config=self.config)
        return self._runner

    @property
    def current_state(self) -> State:
        return self.workflow.states[self.context.state_name]

    @property
    def status(self) -> str:
        return self.context.status

    @property
    def output(self) -> Any:
        return self.context.output

    def child(self, workflow: Workflow, context: Context) -> "Execution":
        """Create a nested execution sharing this one's runner and config."""
        return Execution(workflow, runner=self.runner, context=context, config=self.config)

    async def step(self) -> bool:
        """Advance the run by at most one state.

        Returns whether a state finished. ``False`` means the current state
        is waiting or its background work is still in flight.
        """
        context = self.context
        if context.ended:
            return False
        if not context.started:
            context.start_execution()
            logger.info(
                f"Starting execution [{context.execution['Id']}] of [{self.workflow.name}] "
                f"with input [{context.execution.get('Input')}]"
            )

        if self._timed_out():
            await self._abort(STATES_TIMEOUT, "Workflow did not complete before its timeout")
            return True

        state = self.current_state
        if not context.state_started:
            if context.waiting:
                return False
            await state.start(self)

        if not state.ready(self):
            return False

        state.finish(self)
        context.state_history.append(dict(context.state))
        if context.next_state is not None:
            self._transition()
        else:
            self._end()
        return True

    async def run(self) -> Context:
        """Drive the run to completion and return its context."""
        try:
            while not self.context.ended:
                if not await self.step():
                    await self._idle()
        except asyncio.CancelledError:
            await self.cancel()
            raise
        return self.context

    def wait_until(self) -> Optional[datetime]:
        """Return when the current state stops waiting, if it is waiting."""
        if self.context.ended or not self.context.waiting:
            return None
        return self.context.wait_until()

    async def cancel(self) -> None:
        """Cancel in-flight work and end the run as failed."""
        if self.context.ended:
            return
        await self._abort(STATES_RUNTIME, "Execution was cancelled")

    def raise_for_status(self) -> None:
        """Raise :class:`ExecutionError` if the run ended with an error."""
        context = self.context
        if context.failed:
            state_name = context.state_history[-1].get("Name") if context.state_history else None
            raise ExecutionError(
                state_name, context.execution["Error"], context.execution.get("Cause")
            )

    # internals
    def _transition(self) -> None:
        context = self.context
        previous = context.state
        record: Dict[str, Any] = {
            "Name": context.next_state,
            "Guid": str(uuid.uuid4()),
            "PreviousStateGuid": previous.get("Guid"),
            "Input": previous.get("Output"),
        }
        if previous.get("Retrying"):
            for key in _RETRY_KEYS:
                if key in previous:
                    record[key] = previous[key]
            record["RetryAttempts"] = dict(previous.get("RetryAttempts", {}))
        context.state = record

    def _end(self) -> None:
        context = self.context
        context.end_execution()
        if context.failed:
            logger.error(
                f"Execution [{context.execution['Id']}] of [{self.workflow.name}] failed "
                f"with {context.execution['Error']}: {context.execution.get('Cause')}"
            )
        else:
            logger.info(
                f"Execution [{context.execution['Id']}] of [{self.workflow.name}] "
                f"succeeded with output [{context.output}]"
            )

    def _timed_out(self) -> bool:
        timeout = self.workflow.timeout_seconds
        if timeout is None:
            return False
        started = parse_timestamp(self.context.execution["StartTime"])
        return utcnow() >= started + timedelta(seconds=timeout)

    async def _abort(self, error: str, cause: str) -> None:
        context = self.context
        if not context.started:
            context.start_execution()
        handle = context.detach()
        if handle is not None and not handle.done():
            handle.cancel()
            await asyncio.gather(handle, return_exceptions=True)

        context.state["Error"] = error
        context.state["Cause"] = cause
        context.output = {"Error": error, "Cause": cause}
        context.next_state = None
        context.state_history.append(dict(context.state))
        self._end()

    async def _idle(self) -> None:
        poll_interval = self.config.engine.poll_interval
        handle = self.context.pending
        if handle is not None and not handle.done():
            await asyncio.wait({handle}, timeout=poll_interval)
            return

        wait_until = self.wait_until()
        delay = poll_interval
        if wait_until is not None:
            delay = max((wait_until - utcnow()).total_seconds(), 0)
        if self.workflow.timeout_seconds is not None:
            delay = min(delay, poll_interval)
        await asyncio.sleep(delay)
