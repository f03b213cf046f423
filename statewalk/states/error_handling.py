"""Retry and Catch rules for Task, Parallel and Map states."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..constants import (
    DEFAULT_BACKOFF_RATE,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    STATES_ALL,
    STATES_RUNTIME,
    STATES_TASK_FAILED,
    STATES_TIMEOUT,
)
from ..errors import InvalidWorkflowError
from ..paths import ReferencePath
from ..utils.retry import compute_backoff


class ErrorMatcher(BaseModel):
    error_equals: List[str] = Field(alias="ErrorEquals", min_length=1)
    comment: Optional[str] = Field(default=None, alias="Comment")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("error_equals")
    @classmethod
    def _all_stands_alone(cls, value: List[str]) -> List[str]:
        if STATES_ALL in value and len(value) > 1:
            raise ValueError(f"{STATES_ALL} must be the only error name in ErrorEquals")
        return value

    @property
    def catches_all(self) -> bool:
        return STATES_ALL in self.error_equals

    def matches(self, error: Optional[str]) -> bool:
        """Match ``error`` by name, or by the States.ALL and States.TaskFailed wildcards."""
        if error in self.error_equals:
            return True
        if STATES_TASK_FAILED in self.error_equals:
            return error not in (STATES_TIMEOUT, STATES_RUNTIME)
        return self.catches_all and error != STATES_RUNTIME


class Retrier(ErrorMatcher):
    """One entry of a state's ``Retry`` list."""

    interval_seconds: float = Field(
        default=DEFAULT_INTERVAL_SECONDS, alias="IntervalSeconds", gt=0
    )
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, alias="MaxAttempts", ge=0)
    backoff_rate: float = Field(default=DEFAULT_BACKOFF_RATE, alias="BackoffRate", ge=1.0)
    max_delay_seconds: Optional[float] = Field(default=None, alias="MaxDelaySeconds", gt=0)
    jitter_strategy: Literal["FULL", "NONE"] = Field(default="NONE", alias="JitterStrategy")

    def delay(self, attempt: int) -> float:
        """Seconds to sleep before retry number ``attempt`` (1-based)."""
        return compute_backoff(
            attempt,
            interval=self.interval_seconds,
            backoff_rate=self.backoff_rate,
            max_delay=self.max_delay_seconds,
            jitter=self.jitter_strategy,
        )


class Catcher(ErrorMatcher):
    """One entry of a state's ``Catch`` list."""

    next: str = Field(alias="Next")
    result_path: Optional[str] = Field(default="$", alias="ResultPath")

    @field_validator("result_path")
    @classmethod
    def _valid_reference_path(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                ReferencePath(value)
            except InvalidWorkflowError as e:
                raise ValueError(str(e)) from e
        return value

    def apply(self, input: Any, error: Any) -> Any:
        """Place ``error`` into ``input`` at this catcher's ``ResultPath``."""
        if self.result_path is None:
            return input
        return ReferencePath(self.result_path).set(input, error)


def _parse(state_name: str, field: str, model: type, payload: Any) -> list:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise InvalidWorkflowError(f"State [{state_name}] field [{field}] must be an array")
    try:
        rules = [model.model_validate(item) for item in payload]
    except ValidationError as e:
        raise InvalidWorkflowError(f"State [{state_name}] field [{field}] is invalid: {e}") from e

    for rule in rules[:-1]:
        if rule.catches_all:
            raise InvalidWorkflowError(
                f"State [{state_name}] field [{field}]: {STATES_ALL} must appear in the last rule"
            )
    return rules


def parse_retriers(state_name: str, payload: Any) -> List[Retrier]:
    return _parse(state_name, "Retry", Retrier, payload)


def parse_catchers(state_name: str, payload: Any) -> List[Catcher]:
    return _parse(state_name, "Catch", Catcher, payload)
