"""Exception hierarchy for statewalk."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class StatewalkError(Exception):
    """Base class for all statewalk errors."""


class InvalidWorkflowError(StatewalkError):
    """Raised when a workflow document fails validation at load time."""


class IntrinsicSyntaxError(InvalidWorkflowError):
    """An intrinsic function expression that does not match the grammar.

    The underlying parser failure is chained as ``__cause__`` so callers can
    inspect where parsing actually gave up.
    """

    def __init__(self, text: str, expected: List[str], line: int, char: int) -> None:
        self.text = text
        self.expected = expected
        self.line = line
        self.char = char
        super().__init__(
            f"Expected one of [{', '.join(expected)}] at line {line} char {char}."
        )


class IntrinsicArgumentError(StatewalkError, ValueError):
    """Wrong arity, type or value passed to an intrinsic function."""

    def __init__(self, function: str, message: str) -> None:
        self.function = function
        super().__init__(message)


class PathError(StatewalkError):
    """A reference path could not be resolved to an assignable location."""


class TaskFailed(StatewalkError):
    """A unit of work failed with a States-language error name."""

    def __init__(self, error: str, cause: Optional[str] = None) -> None:
        self.error = error
        self.cause = cause
        super().__init__(f"{error}: {cause}" if cause else error)

    def to_output(self) -> Dict[str, Any]:
        """Return the ``{"Error", "Cause"}`` error output object."""
        output: Dict[str, Any] = {"Error": self.error}
        if self.cause is not None:
            output["Cause"] = self.cause
        return output


class ExecutionError(StatewalkError):
    """A workflow run terminated with an unrecovered error."""

    def __init__(
        self, state_name: Optional[str], error: str, cause: Optional[str] = None
    ) -> None:
        self.state_name = state_name
        self.error = error
        self.cause = cause
        message = f"State [{state_name}] failed with {error}"
        if cause:
            message += f": {cause}"
        super().__init__(message)
